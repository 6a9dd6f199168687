"""
Runtime settings shared by the interpreter, the code generator and the CLI.

Values come from keyword arguments or from the ``ASMB_*`` environment
variables; command line flags override the environment.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_INDENT = "\t"


def _env_flag(value: Optional[str]) -> bool:
    return (value or "false").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Settings shared by the interpreter and the code generator.

    Attributes:
        max_steps: Step budget for the interpreter; None runs until halt.
        allow_redefinition: A second DEF of a register resets it when True,
            and is a DuplicateOrInvalidDefinition error when False.
        indent: Indentation unit for generated C.
    """

    max_steps: Optional[int] = None
    allow_redefinition: bool = True
    indent: str = DEFAULT_INDENT

    def __post_init__(self):
        if self.max_steps is not None and self.max_steps < 0:
            raise ValueError("max_steps must be non-negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RuntimeConfig":
        """Build a config from ASMB_MAX_STEPS, ASMB_STRICT_DEFINITIONS and ASMB_INDENT."""
        environ = os.environ if environ is None else environ
        max_steps = environ.get("ASMB_MAX_STEPS")
        return cls(
            max_steps=int(max_steps) if max_steps else None,
            allow_redefinition=not _env_flag(environ.get("ASMB_STRICT_DEFINITIONS")),
            indent=environ.get("ASMB_INDENT", DEFAULT_INDENT),
        )
