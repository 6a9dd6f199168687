import pytest

from assembunny.core.instruction import Instruction, Literal, Opcode, RegisterRef
from assembunny.errors import AsmbError, ErrorKind, ParseError
from assembunny.parser import parse_line, parse_program, regname_valid, tokenize_line


def test_parse_def():
    """DEF takes a new register name and a literal."""
    instr = parse_line("def a 5")
    assert instr == Instruction(Opcode.DEF, (RegisterRef("a"), Literal(5)))
    assert instr.defined_name == "a"


def test_keywords_are_case_insensitive():
    assert parse_line("InCt a b").opcode == Opcode.INCT
    assert parse_line("OUTN -3").operands == (Literal(-3),)


def test_register_names_are_case_sensitive():
    instr = parse_line("cpy Abc abc")
    assert instr.operands == (RegisterRef("Abc"), RegisterRef("abc"))


def test_blank_and_comment_lines():
    assert parse_line("") is None
    assert parse_line("   \t ") is None
    assert parse_line("# just a comment") is None


def test_trailing_comment_is_dropped():
    instr = parse_line("inc a   # bump a")
    assert instr == Instruction(Opcode.INC, (RegisterRef("a"),))
    assert tokenize_line("jnz a -2 # loop") == ["jnz", "a", "-2"]


def test_three_operand_instructions():
    instr = parse_line("mul a 3 dst")
    assert instr.operands == (RegisterRef("a"), Literal(3), RegisterRef("dst"))
    assert str(instr) == "mul a 3 dst"


def test_unknown_keyword():
    with pytest.raises(ParseError) as excinfo:
        parse_line("add a 1", line_number=7)
    assert excinfo.value.kind == ErrorKind.UNKNOWN_OPCODE
    assert excinfo.value.line == 7


def test_toggle_is_unsupported():
    with pytest.raises(ParseError) as excinfo:
        parse_line("tgl a")
    assert excinfo.value.kind == ErrorKind.UNSUPPORTED_INSTRUCTION


@pytest.mark.parametrize("line", [
    "inc",             # too few
    "inc a b",         # too many
    "inc 5",           # literal where a register is required
    "cpy a 4",         # literal destination
    "def a b",         # DEF value must be a literal
    "outn 2147483648",  # does not fit 32 bits
    "outn a$",         # neither literal nor register name
    "jnz 1 __x",       # reserved prefix
])
def test_malformed_operands(line):
    with pytest.raises(ParseError) as excinfo:
        parse_line(line)
    assert excinfo.value.kind == ErrorKind.MALFORMED_OPERAND


@pytest.mark.parametrize("name", ["1a", "__hidden", "a-b", "é"])
def test_invalid_definitions(name):
    with pytest.raises(ParseError) as excinfo:
        parse_line(f"def {name} 0")
    assert excinfo.value.kind == ErrorKind.INVALID_DEFINITION


def test_regname_valid_accepts_identifiers():
    for name in ("a", "_a", "reg_9", "A1"):
        regname_valid(name)
    with pytest.raises(AsmbError):
        regname_valid("9a")


def test_int32_bounds():
    assert parse_line("outn -2147483648").operands == (Literal(-2147483648),)
    assert parse_line("outn +7").operands == (Literal(7),)


def test_parse_program_skips_blank_lines_and_keeps_line_numbers():
    source = "def a 1\n\n# comment\noutn a\n"
    program = parse_program(source)
    assert len(program) == 2
    assert program[0].line == 1
    assert program[1].line == 4
    assert program.to_source() == "def a 1\noutn a\n"


def test_parse_program_reports_failing_line():
    with pytest.raises(ParseError) as excinfo:
        parse_program("def a 1\nfoo a\n")
    assert excinfo.value.line == 2
    assert "line 2" in str(excinfo.value)
