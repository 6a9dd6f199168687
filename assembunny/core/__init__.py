from .instruction import (
    INT32_MAX,
    INT32_MIN,
    OPERAND_RULES,
    Instruction,
    Literal,
    Opcode,
    Operand,
    Program,
    RegisterRef,
    regname_valid,
    wrap_int32,
)
from .registers import RegisterEnvironment

__all__ = [
    "INT32_MAX",
    "INT32_MIN",
    "OPERAND_RULES",
    "Instruction",
    "Literal",
    "Opcode",
    "Operand",
    "Program",
    "RegisterRef",
    "RegisterEnvironment",
    "regname_valid",
    "wrap_int32",
]
