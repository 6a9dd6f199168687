"""
Assembunny-plus: interpreter, C compiler and bytecode tools for a
register-based, jump-driven assembly-like language.
"""

from .analysis import ProgramAnalysis, analyze_program
from .bytecode import from_bytecode, to_bytecode
from .codegen import CGenerator, generate
from .config import RuntimeConfig
from .core import Instruction, Literal, Opcode, Program, RegisterEnvironment, RegisterRef
from .errors import (
    AsmbError,
    BytecodeError,
    ErrorKind,
    ExecutionError,
    GenerationError,
    ParseError,
)
from .interpreter import Failed, Halted, Interpreter, RunResult, run
from .parser import parse_line, parse_program

__version__ = "0.1.0"

__all__ = [
    # Model
    "Instruction",
    "Literal",
    "Opcode",
    "Program",
    "RegisterEnvironment",
    "RegisterRef",
    # Front end
    "parse_line",
    "parse_program",
    # Engine
    "Interpreter",
    "RunResult",
    "Halted",
    "Failed",
    "run",
    # Code generation
    "CGenerator",
    "generate",
    "ProgramAnalysis",
    "analyze_program",
    # Bytecode
    "to_bytecode",
    "from_bytecode",
    # Config and errors
    "RuntimeConfig",
    "AsmbError",
    "BytecodeError",
    "ErrorKind",
    "ExecutionError",
    "GenerationError",
    "ParseError",
]
