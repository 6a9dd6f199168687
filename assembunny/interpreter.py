"""
Execution engine for Assembunny-plus programs.

``run`` is the stateless entry point: each call builds its own
``Interpreter`` with a fresh register environment, program counter and
output buffer. ``Interpreter`` itself is exposed for embedders (such as the
REPL) that drive execution one instruction at a time.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

import structlog

from .config import RuntimeConfig
from .core.instruction import Instruction, Opcode, Program, wrap_int32
from .core.registers import RegisterEnvironment
from .errors import AsmbError, ErrorKind, ExecutionError

logger = structlog.get_logger(__name__)

OutputCallback = Callable[[str], None]


@dataclass(frozen=True)
class Halted:
    def __str__(self) -> str:
        return "Halted"


@dataclass(frozen=True)
class Failed:
    kind: ErrorKind
    index: int

    def __str__(self) -> str:
        return f"Failed({self.kind}, {self.index})"


RunStatus = Union[Halted, Failed]


@dataclass
class RunResult:
    status: RunStatus
    fragments: List[str] = field(default_factory=list)
    steps: int = 0
    registers: Dict[str, int] = field(default_factory=dict)
    error: Optional[ExecutionError] = None

    @property
    def output(self) -> str:
        return "".join(self.fragments)

    @property
    def ok(self) -> bool:
        return isinstance(self.status, Halted)

    @property
    def exit_status(self) -> int:
        return 0 if self.ok else self.status.kind.exit_status

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error


def truncating_div(dividend: int, divisor: int) -> int:
    """Integer division rounding toward zero, as C does."""
    quotient = abs(dividend) // abs(divisor)
    return quotient if (dividend < 0) == (divisor < 0) else -quotient


def character_for(code: int) -> str:
    if code < 0 or code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
        raise AsmbError(ErrorKind.INVALID_CHARACTER, f"invalid character code {code}")
    return chr(code)


class Interpreter:
    """Mutable machine state: program, counter, registers and output stream."""

    def __init__(self, program: Optional[Program] = None,
                 config: Optional[RuntimeConfig] = None,
                 on_output: Optional[OutputCallback] = None):
        self.program = program if program is not None else Program()
        self.config = config or RuntimeConfig()
        self.registers = RegisterEnvironment(allow_redefinition=self.config.allow_redefinition)
        self.ip = 0
        self.steps = 0
        self.fragments: List[str] = []
        self.on_output = on_output
        self._handlers = {
            Opcode.DEF: self._def,
            Opcode.CPY: self._cpy,
            Opcode.INC: self._inc,
            Opcode.DEC: self._dec,
            Opcode.INCT: self._inct,
            Opcode.DECT: self._dect,
            Opcode.MUL: self._mul,
            Opcode.DIV: self._div,
            Opcode.JNZ: self._jnz,
            Opcode.OUTN: self._outn,
            Opcode.OUTC: self._outc,
        }

    @property
    def halted(self) -> bool:
        return not 0 <= self.ip < len(self.program)

    def step(self) -> bool:
        """
        Execute the instruction at the program counter.

        Returns False without doing anything once the counter has left the
        program, True otherwise.

        Raises:
            ExecutionError: the instruction failed; the counter stays on it.
        """
        if self.halted:
            return False
        index = self.ip
        instruction = self.program[index]
        try:
            next_ip = self.execute(instruction, index)
        except AsmbError as exc:
            raise ExecutionError(exc.kind, exc.detail, index=index, line=instruction.line) from None
        self.steps += 1
        self.ip = next_ip
        return True

    def execute(self, instruction: Instruction, index: Optional[int] = None) -> int:
        """Apply one instruction and return the next program counter."""
        index = self.ip if index is None else index
        handler = self._handlers.get(instruction.opcode)
        if handler is None:
            raise AsmbError(ErrorKind.UNKNOWN_OPCODE, f"no handler for {instruction.opcode!r}")
        instruction.validate()
        jump = handler(*instruction.operands)
        if jump is None:
            return index + 1
        return index + jump

    def run(self) -> RunResult:
        max_steps = self.config.max_steps
        log = logger.bind(instructions=len(self.program), max_steps=max_steps)
        log.debug("Starting run")
        try:
            while not self.halted:
                if max_steps is not None and self.steps >= max_steps:
                    raise ExecutionError(ErrorKind.STEP_LIMIT_EXCEEDED,
                                         f"step limit of {max_steps} reached",
                                         index=self.ip, line=self.program[self.ip].line)
                self.step()
        except ExecutionError as exc:
            log.warning("Run failed", kind=str(exc.kind), index=exc.index, steps=self.steps)
            return RunResult(Failed(exc.kind, exc.index), self.fragments, self.steps,
                             self.registers.snapshot(), exc)
        log.debug("Run halted", steps=self.steps, final_ip=self.ip)
        return RunResult(Halted(), self.fragments, self.steps, self.registers.snapshot())

    def _emit(self, text: str) -> None:
        self.fragments.append(text)
        if self.on_output is not None:
            self.on_output(text)

    def _target(self, operand) -> str:
        # Destination registers must already exist
        name = operand.name
        self.registers.get(name)
        return name

    def _def(self, name, value):
        self.registers.define(name.name, self.registers.resolve(value))

    def _cpy(self, src, dst):
        value = self.registers.resolve(src)
        self.registers.set(self._target(dst), value)

    def _inc(self, reg):
        self._add(reg, 1)

    def _dec(self, reg):
        self._add(reg, -1)

    def _inct(self, reg, amount):
        current = self.registers.resolve(reg)
        self.registers.set(reg.name, wrap_int32(current + self.registers.resolve(amount)))

    def _dect(self, reg, amount):
        current = self.registers.resolve(reg)
        self.registers.set(reg.name, wrap_int32(current - self.registers.resolve(amount)))

    def _add(self, reg, delta):
        self.registers.set(reg.name, wrap_int32(self.registers.resolve(reg) + delta))

    def _mul(self, a, b, dst):
        left = self.registers.resolve(a)
        right = self.registers.resolve(b)
        self.registers.set(self._target(dst), wrap_int32(left * right))

    def _div(self, a, b, dst):
        dividend = self.registers.resolve(a)
        divisor = self.registers.resolve(b)
        name = self._target(dst)
        if divisor == 0:
            raise AsmbError(ErrorKind.DIVISION_BY_ZERO, "division by zero")
        self.registers.set(name, wrap_int32(truncating_div(dividend, divisor)))

    def _jnz(self, cond, offset):
        condition = self.registers.resolve(cond)
        distance = self.registers.resolve(offset)
        if condition != 0:
            return distance
        return None

    def _outn(self, value):
        self._emit(f"{self.registers.resolve(value)}\n")

    def _outc(self, value):
        self._emit(character_for(self.registers.resolve(value)))


def run(program: Program, config: Optional[RuntimeConfig] = None,
        on_output: Optional[OutputCallback] = None) -> RunResult:
    """Run ``program`` to completion (or failure, or the step limit)."""
    return Interpreter(program, config, on_output).run()
