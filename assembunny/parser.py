"""
Parser for Assembunny-plus source text.

One non-blank line holds one instruction: a case-insensitive keyword
followed by whitespace-separated operands. ``#`` starts a comment that runs
to the end of the line.
"""

import re
from typing import List, Optional

import structlog

from .core.instruction import (
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
)
from .errors import AsmbError, ErrorKind, ParseError

logger = structlog.get_logger(__name__)

KEYWORDS = {opcode.keyword: opcode for opcode in Opcode}

# Keywords of the wider Assembunny family that are recognised but refused.
UNSUPPORTED_KEYWORDS = {"tgl"}

_INTEGER = re.compile(r"^[+-]?[0-9]+$")


def tokenize_line(line: str) -> List[str]:
    """Split a line into tokens, dropping any trailing comment."""
    return line.split("#", 1)[0].split()


def parse_literal(token: str) -> Optional[int]:
    """Integer value of ``token``, or None if it is not an integer literal."""
    if not _INTEGER.match(token):
        return None
    value = int(token)
    if not INT32_MIN <= value <= INT32_MAX:
        raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                        f"literal {token} does not fit in 32 bits")
    return value


def parse_operand(token: str, rule: str, keyword: str) -> Operand:
    if rule == "N":
        regname_valid(token)
        return RegisterRef(token)

    value = parse_literal(token)
    if value is not None:
        if rule == "R":
            raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                            f"'{keyword}' expects a register, got literal {token}")
        return Literal(value)

    if rule == "L":
        raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                        f"'{keyword}' expects an integer literal, got '{token}'")
    try:
        regname_valid(token)
    except AsmbError as exc:
        raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                        f"'{token}' is neither a literal nor a register name: {exc.detail}") from None
    return RegisterRef(token)


def parse_line(line: str, line_number: Optional[int] = None) -> Optional[Instruction]:
    """
    Parse one source line.

    Returns None for blank and comment-only lines.

    Raises:
        ParseError: unknown or unsupported keyword, wrong operand count or
            kind, invalid register name in DEF.
    """
    tokens = tokenize_line(line)
    if not tokens:
        return None

    keyword = tokens[0].lower()
    try:
        if keyword in UNSUPPORTED_KEYWORDS:
            raise AsmbError(ErrorKind.UNSUPPORTED_INSTRUCTION,
                            f"'{keyword}' is not supported")
        opcode = KEYWORDS.get(keyword)
        if opcode is None:
            raise AsmbError(ErrorKind.UNKNOWN_OPCODE, f"unknown keyword '{tokens[0]}'")

        rules = OPERAND_RULES[opcode]
        params = tokens[1:]
        if len(params) != len(rules):
            raise AsmbError(ErrorKind.MALFORMED_OPERAND,
                            f"'{keyword}' expects {len(rules)} parameters, received {len(params)}")

        operands = tuple(parse_operand(tok, rule, keyword) for tok, rule in zip(params, rules))
    except AsmbError as exc:
        raise ParseError(exc.kind, exc.detail, line=line_number) from None

    return Instruction(opcode, operands, line=line_number)


def parse_program(source: str) -> Program:
    """Parse a whole source text; blank and comment lines are skipped."""
    instructions = []
    for line_number, line in enumerate(source.splitlines(), start=1):
        instruction = parse_line(line, line_number)
        if instruction is not None:
            instructions.append(instruction)
    logger.debug("Parsed program", instructions=len(instructions))
    return Program(instructions)
