"""
Structured representation of Assembunny-plus instructions.

Every source line becomes one immutable ``Instruction``: an ``Opcode`` and
up to three operands, each either a ``Literal`` or a ``RegisterRef``.
"""

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, Optional, Sequence, Tuple, Union

from ..errors import AsmbError, ErrorKind

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


class Opcode(IntEnum):
    """Opcodes; the numeric value is the keyword payload in bytecode files."""

    DEF = 0
    INC = 1
    INCT = 2
    DEC = 3
    DECT = 4
    MUL = 5
    DIV = 6
    CPY = 7
    JNZ = 8
    OUTN = 9
    OUTC = 10

    @property
    def keyword(self) -> str:
        return self.name.lower()


# Operand rules per opcode:
#   N - name of the register being defined
#   R - register reference
#   L - integer literal
#   B - either
OPERAND_RULES = {
    Opcode.DEF: "NL",
    Opcode.INC: "R",
    Opcode.INCT: "RB",
    Opcode.DEC: "R",
    Opcode.DECT: "RB",
    Opcode.MUL: "BBR",
    Opcode.DIV: "BBR",
    Opcode.CPY: "BR",
    Opcode.JNZ: "BB",
    Opcode.OUTN: "B",
    Opcode.OUTC: "B",
}


@dataclass(frozen=True)
class Literal:
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class RegisterRef:
    name: str

    def __str__(self) -> str:
        return self.name


Operand = Union[Literal, RegisterRef]

_FORBIDDEN_CHARS = re.compile(r"[^0-9A-Za-z_]")


def regname_valid(name: str) -> None:
    """Raise DuplicateOrInvalidDefinition if ``name`` cannot be used as a register name."""
    if not isinstance(name, str) or not name or _FORBIDDEN_CHARS.search(name):
        raise AsmbError(ErrorKind.INVALID_DEFINITION,
                        f"forbidden characters in register name '{name}'")
    if name[0].isdigit():
        raise AsmbError(ErrorKind.INVALID_DEFINITION,
                        f"register name '{name}' should not start with a digit")
    # '__' is reserved for identifiers in generated C
    if name.startswith("__"):
        raise AsmbError(ErrorKind.INVALID_DEFINITION,
                        f"register name '{name}' should not start with two underscores")


def wrap_int32(value: int) -> int:
    """Truncate an integer to 32-bit two's complement."""
    value &= 0xFFFFFFFF
    if value > INT32_MAX:
        value -= 2 ** 32
    return value


@dataclass(frozen=True)
class Instruction:
    opcode: Opcode
    operands: Tuple[Operand, ...] = ()
    line: Optional[int] = field(default=None, compare=False)

    def register_operands(self) -> Iterator[Tuple[int, RegisterRef]]:
        """Yield (position, operand) for operands that reference a register, left to right.

        The name introduced by DEF is not a reference and is skipped.
        """
        for position, operand in enumerate(self.operands):
            if self.opcode == Opcode.DEF and position == 0:
                continue
            if isinstance(operand, RegisterRef):
                yield position, operand

    def validate(self) -> None:
        """
        Check operands against ``OPERAND_RULES``.

        Instructions built in code get the same checks the parser applies:
        operand count and kind, 32-bit literal range and register names.

        Raises:
            AsmbError: DuplicateOrInvalidDefinition for a bad DEF name,
                MalformedOperand for anything else.
        """
        keyword = self.opcode.keyword
        rules = OPERAND_RULES[self.opcode]
        if len(self.operands) != len(rules):
            raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                            f"'{keyword}' expects {len(rules)} parameters, "
                            f"received {len(self.operands)}")
        for operand, rule in zip(self.operands, rules):
            if rule in "NR" and not isinstance(operand, RegisterRef):
                raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                                f"'{keyword}' expects a register, got {operand}")
            if rule == "L" and not isinstance(operand, Literal):
                raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                                f"'{keyword}' expects an integer literal, got {operand}")
            if not isinstance(operand, (Literal, RegisterRef)):
                raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                                f"unexpected operand {operand!r}")

            if isinstance(operand, Literal):
                if not isinstance(operand.value, int) or not INT32_MIN <= operand.value <= INT32_MAX:
                    raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                                    f"literal {operand.value!r} does not fit in 32 bits")
            elif rule == "N":
                regname_valid(operand.name)
            else:
                try:
                    regname_valid(operand.name)
                except AsmbError as exc:
                    raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                                    f"'{keyword}' has an invalid register operand: {exc.detail}") from None

    @property
    def defined_name(self) -> Optional[str]:
        if self.opcode == Opcode.DEF:
            return self.operands[0].name
        return None

    def __str__(self) -> str:
        return " ".join([self.opcode.keyword] + [str(op) for op in self.operands])


class Program:
    """Immutable ordered sequence of instructions."""

    def __init__(self, instructions: Sequence[Instruction] = ()):
        self._instructions: Tuple[Instruction, ...] = tuple(instructions)

    @property
    def instructions(self) -> Tuple[Instruction, ...]:
        return self._instructions

    def __len__(self) -> int:
        return len(self._instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self._instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self._instructions[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Program):
            return NotImplemented
        return self._instructions == other._instructions

    def __hash__(self) -> int:
        return hash(self._instructions)

    def __repr__(self) -> str:
        return f"Program(instructions={len(self._instructions)})"

    def to_source(self) -> str:
        return "".join(f"{instr}\n" for instr in self._instructions)
