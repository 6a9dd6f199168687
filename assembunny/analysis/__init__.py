from .jump_targets import (
    JUMP_COMPUTED,
    JUMP_NEVER,
    JUMP_STATIC,
    JumpInfo,
    ProgramAnalysis,
    RegisterInfo,
    analyze_program,
    classify_jump,
)

__all__ = [
    "JUMP_COMPUTED",
    "JUMP_NEVER",
    "JUMP_STATIC",
    "JumpInfo",
    "ProgramAnalysis",
    "RegisterInfo",
    "analyze_program",
    "classify_jump",
]
