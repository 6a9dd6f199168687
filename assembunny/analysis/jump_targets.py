"""
Static analysis of Assembunny-plus programs.

A single linear pass in program order that:

1. builds the register table (first defining index of each register),
2. rejects registers referenced before their first DEF and, under strict
   definitions, duplicate DEFs,
3. classifies every JNZ by how its target is known:

   - "never":    the condition is the literal 0, control always falls through
   - "static":   the offset is a literal, the target index is known
   - "computed": the offset is a register, the target is only known at run time

The code generator uses the result to decide which labels to emit, whether
a run-time dispatcher is needed and whether definitions must be tracked at
run time.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from ..config import RuntimeConfig
from ..core.instruction import Literal, Opcode, Program, RegisterRef
from ..errors import AsmbError, ErrorKind, GenerationError

logger = structlog.get_logger(__name__)

JUMP_NEVER = "never"
JUMP_STATIC = "static"
JUMP_COMPUTED = "computed"


@dataclass
class RegisterInfo:
    name: str
    defined_at: int
    initial_value: int


@dataclass
class JumpInfo:
    index: int
    kind: str
    unconditional: bool
    target: Optional[int] = None
    in_bounds: Optional[bool] = None


@dataclass
class ProgramAnalysis:
    instruction_count: int
    registers: List[RegisterInfo] = field(default_factory=list)
    jumps: List[JumpInfo] = field(default_factory=list)

    @property
    def needs_dispatcher(self) -> bool:
        return any(jump.kind == JUMP_COMPUTED for jump in self.jumps)

    @property
    def needs_definition_tracking(self) -> bool:
        """True when some JNZ can transfer control, so a DEF may be skipped or repeated."""
        return any(jump.kind != JUMP_NEVER for jump in self.jumps)

    @property
    def uses_halt_label(self) -> bool:
        return self.needs_dispatcher or any(
            jump.kind == JUMP_STATIC and not jump.in_bounds for jump in self.jumps
        )

    @property
    def label_targets(self) -> List[int]:
        """Instruction indices that need a label, in ascending order."""
        if self.needs_dispatcher:
            return list(range(self.instruction_count))
        return sorted({
            jump.target for jump in self.jumps
            if jump.kind == JUMP_STATIC and jump.in_bounds
        })

    def register_names(self) -> List[str]:
        return [info.name for info in self.registers]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["needs_dispatcher"] = self.needs_dispatcher
        data["needs_definition_tracking"] = self.needs_definition_tracking
        data["label_targets"] = self.label_targets
        return data


def classify_jump(index: int, cond, offset, instruction_count: int) -> JumpInfo:
    if isinstance(cond, Literal) and cond.value == 0:
        return JumpInfo(index=index, kind=JUMP_NEVER, unconditional=False)

    unconditional = isinstance(cond, Literal)
    if isinstance(offset, RegisterRef):
        return JumpInfo(index=index, kind=JUMP_COMPUTED, unconditional=unconditional)

    target = index + offset.value
    return JumpInfo(
        index=index,
        kind=JUMP_STATIC,
        unconditional=unconditional,
        target=target,
        in_bounds=0 <= target < instruction_count,
    )


def analyze_program(program: Program, config: Optional[RuntimeConfig] = None) -> ProgramAnalysis:
    """
    Validate ``program`` statically and describe its control flow.

    Raises:
        GenerationError: malformed instruction, register used before its
            first DEF, or duplicate DEF when redefinition is not allowed.
    """
    config = config or RuntimeConfig()
    analysis = ProgramAnalysis(instruction_count=len(program))
    declared: Dict[str, RegisterInfo] = {}

    for index, instruction in enumerate(program):
        try:
            instruction.validate()
        except AsmbError as exc:
            raise GenerationError(exc.kind, exc.detail, index=index, line=instruction.line) from None

        for _, ref in instruction.register_operands():
            if ref.name not in declared:
                raise GenerationError(
                    ErrorKind.UNDECLARED_REGISTER,
                    f"register '{ref.name}' is used before its definition",
                    index=index,
                    line=instruction.line,
                )

        name = instruction.defined_name
        if name is not None:
            if name in declared:
                if not config.allow_redefinition:
                    raise GenerationError(
                        ErrorKind.INVALID_DEFINITION,
                        f"register '{name}' already exists",
                        index=index,
                        line=instruction.line,
                    )
            else:
                info = RegisterInfo(name=name, defined_at=index,
                                    initial_value=instruction.operands[1].value)
                declared[name] = info
                analysis.registers.append(info)

        if instruction.opcode == Opcode.JNZ:
            cond, offset = instruction.operands
            analysis.jumps.append(classify_jump(index, cond, offset, len(program)))

    logger.debug(
        "Analyzed program",
        instructions=len(program),
        registers=len(analysis.registers),
        jumps=len(analysis.jumps),
        dispatcher=analysis.needs_dispatcher,
    )
    return analysis
