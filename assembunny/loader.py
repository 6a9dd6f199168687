"""File loading for the interpreter, compiler and bytecode converter."""

from typing import Optional

import structlog

from .bytecode import from_bytecode, to_bytecode
from .codegen import generate
from .config import RuntimeConfig
from .core.instruction import Program
from .interpreter import OutputCallback, RunResult, run
from .parser import parse_program

logger = structlog.get_logger(__name__)


def load_source(filename: str) -> Program:
    """
    Read and parse a source file.

    Args:
        filename: Path to an Assembunny-plus source file

    Returns:
        The parsed Program

    Raises:
        ParseError: the text is not a valid program.
        OSError: the file cannot be read.
    """
    logger.debug("Loading source file", path=filename)
    with open(filename, "r", encoding="utf-8") as f:
        return parse_program(f.read())


def load_bytecode(filename: str) -> Program:
    """Read and decode a bytecode file; raises BytecodeError on malformed data."""
    logger.debug("Loading bytecode file", path=filename)
    with open(filename, "rb") as f:
        return from_bytecode(f.read())


def run_file(filename: str, config: Optional[RuntimeConfig] = None,
             on_output: Optional[OutputCallback] = None) -> RunResult:
    """Parse and run a source file; execution failures come back in the RunResult."""
    return run(load_source(filename), config, on_output)


def run_bytecode(filename: str, config: Optional[RuntimeConfig] = None,
                 on_output: Optional[OutputCallback] = None) -> RunResult:
    return run(load_bytecode(filename), config, on_output)


def compile_file(filename: str, config: Optional[RuntimeConfig] = None) -> str:
    """Translate a source file to C source text."""
    return generate(load_source(filename), config)


def convert_to_bytecode(source_filename: str, output_filename: str) -> int:
    """Convert a source file to bytecode; returns the number of bytes written."""
    data = to_bytecode(load_source(source_filename))
    with open(output_filename, "wb") as f:
        f.write(data)
    logger.info("Wrote bytecode", source=source_filename, output=output_filename, size=len(data))
    return len(data)
