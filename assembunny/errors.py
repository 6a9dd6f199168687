"""
Error kinds and exceptions shared by the parser, interpreter, code generator
and bytecode codec.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Failure classes, each with the process exit status used by the CLI and generated C."""

    UNDECLARED_REGISTER = ("UndeclaredRegister", 2, "undeclared register")
    INVALID_DEFINITION = ("DuplicateOrInvalidDefinition", 3, "invalid definition")
    DIVISION_BY_ZERO = ("DivisionByZero", 4, "division by zero")
    MALFORMED_OPERAND = ("MalformedOperand", 5, "malformed operand")
    INVALID_CHARACTER = ("InvalidCharacter", 6, "invalid character code")
    UNKNOWN_OPCODE = ("UnknownOpcode", 7, "unknown opcode")
    UNSUPPORTED_INSTRUCTION = ("UnsupportedInstruction", 8, "unsupported instruction")
    MALFORMED_BYTECODE = ("MalformedBytecode", 9, "malformed bytecode")
    STEP_LIMIT_EXCEEDED = ("StepLimitExceeded", 10, "step limit exceeded")

    def __init__(self, label: str, exit_status: int, description: str):
        self.label = label
        self.exit_status = exit_status
        self.description = description

    def __str__(self) -> str:
        return self.label


class AsmbError(Exception):
    """Base class for every language-level failure."""

    def __init__(self, kind: ErrorKind, detail: str = "",
                 index: Optional[int] = None, line: Optional[int] = None):
        self.kind = kind
        self.detail = detail
        self.index = index
        self.line = line
        super().__init__(self._format())

    def _format(self) -> str:
        message = self.detail or self.kind.description
        if self.index is not None:
            message = f"{message} at instruction {self.index}"
        if self.line is not None:
            message = f"{message} (line {self.line})"
        return message

    def locate(self, index: Optional[int] = None, line: Optional[int] = None) -> "AsmbError":
        """Attach position information if it is not already known."""
        if self.index is None and index is not None:
            self.index = index
        if self.line is None and line is not None:
            self.line = line
        self.args = (self._format(),)
        return self

    @property
    def exit_status(self) -> int:
        return self.kind.exit_status


class ParseError(AsmbError):
    pass


class ExecutionError(AsmbError):
    pass


class GenerationError(AsmbError):
    pass


class BytecodeError(AsmbError):
    pass
