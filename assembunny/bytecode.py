"""
Bytecode files (``.asmbb``) for Assembunny-plus.

A bytecode file has two segments. The first is a 32 byte header:

    |----:----------------------------|
      |                     |
    [register count]  [reserved, zero]

The register count is a big-endian u32. The second segment is a run of
5 byte token blobs:

    |--------:--------:--------:--------:--------|
      type u8        payload, big-endian i32

Token types are keyword (payload: opcode number), register (payload: index
of the register in first-DEF order) and literal (payload: the value). A new
statement starts at every keyword token.

Register names are not stored; decoded programs name their registers
``r0``, ``r1``, ...
"""

import struct
from enum import IntEnum
from typing import Dict, List, Tuple

import structlog

from .core.instruction import (
    Instruction,
    Literal,
    Opcode,
    Operand,
    Program,
    RegisterRef,
)
from .errors import AsmbError, BytecodeError, ErrorKind

logger = structlog.get_logger(__name__)

HEADER_SIZE = 32
TOKEN_SIZE = 5

_HEADER = struct.Struct(">I")
_TOKEN = struct.Struct(">Bi")


class TokenType(IntEnum):
    KEYWORD = 0
    REGISTER = 1
    LITERAL = 2


def decoded_register_name(index: int) -> str:
    return f"r{index}"


def _encode_operand(operand: Operand, registers: Dict[str, int], index: int) -> bytes:
    if isinstance(operand, Literal):
        return _TOKEN.pack(TokenType.LITERAL, operand.value)
    try:
        return _TOKEN.pack(TokenType.REGISTER, registers[operand.name])
    except KeyError:
        raise BytecodeError(ErrorKind.UNDECLARED_REGISTER,
                            f"register '{operand.name}' is used before its definition",
                            index=index) from None


def to_bytecode(program: Program) -> bytes:
    """Serialise ``program``; registers are numbered in first-DEF order."""
    registers: Dict[str, int] = {}
    tokens: List[bytes] = []

    for index, instruction in enumerate(program):
        try:
            instruction.validate()
        except AsmbError as exc:
            raise BytecodeError(exc.kind, exc.detail, index=index, line=instruction.line) from None

        tokens.append(_TOKEN.pack(TokenType.KEYWORD, instruction.opcode))
        name = instruction.defined_name
        if name is not None:
            registers.setdefault(name, len(registers))
        for operand in instruction.operands:
            tokens.append(_encode_operand(operand, registers, index))

    header = _HEADER.pack(len(registers)) + bytes(HEADER_SIZE - _HEADER.size)
    logger.debug("Encoded bytecode", instructions=len(program), registers=len(registers))
    return header + b"".join(tokens)


def _split_statements(data: bytes) -> List[List[Tuple[TokenType, int]]]:
    body = data[HEADER_SIZE:]
    if len(body) % TOKEN_SIZE:
        raise BytecodeError(ErrorKind.MALFORMED_BYTECODE,
                            f"token segment length {len(body)} is not a multiple of {TOKEN_SIZE}")

    statements: List[List[Tuple[TokenType, int]]] = []
    for chunk, offset in enumerate(range(0, len(body), TOKEN_SIZE)):
        type_value, payload = _TOKEN.unpack_from(body, offset)
        try:
            token_type = TokenType(type_value)
        except ValueError:
            raise BytecodeError(ErrorKind.MALFORMED_BYTECODE,
                                f"unknown token type {type_value} in chunk {chunk}") from None
        if token_type == TokenType.KEYWORD:
            statements.append([(token_type, payload)])
        elif not statements:
            raise BytecodeError(ErrorKind.MALFORMED_BYTECODE, "first token is not a keyword")
        else:
            statements[-1].append((token_type, payload))
    return statements


def from_bytecode(data: bytes) -> Program:
    """
    Decode a bytecode blob back into a Program.

    Raises:
        BytecodeError: header or token segment is malformed.
    """
    if len(data) < HEADER_SIZE:
        raise BytecodeError(ErrorKind.MALFORMED_BYTECODE,
                            f"header needs {HEADER_SIZE} bytes, got {len(data)}")
    (register_count,) = _HEADER.unpack_from(data, 0)

    instructions = []
    for index, tokens in enumerate(_split_statements(data)):
        _, opcode_value = tokens[0]
        try:
            opcode = Opcode(opcode_value)
        except ValueError:
            raise BytecodeError(ErrorKind.MALFORMED_BYTECODE,
                                f"unknown opcode {opcode_value}", index=index) from None

        operands: List[Operand] = []
        for token_type, payload in tokens[1:]:
            if token_type == TokenType.LITERAL:
                operands.append(Literal(payload))
            else:
                if not 0 <= payload < register_count:
                    raise BytecodeError(ErrorKind.MALFORMED_BYTECODE,
                                        f"register index {payload} out of range", index=index)
                operands.append(RegisterRef(decoded_register_name(payload)))

        instruction = Instruction(opcode, tuple(operands))
        try:
            instruction.validate()
        except AsmbError as exc:
            raise BytecodeError(ErrorKind.MALFORMED_BYTECODE, exc.detail, index=index) from None
        instructions.append(instruction)

    logger.debug("Decoded bytecode", instructions=len(instructions), registers=register_count)
    return Program(instructions)
