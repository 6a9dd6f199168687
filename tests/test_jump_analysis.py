import pytest

from assembunny.analysis import (
    JUMP_COMPUTED,
    JUMP_NEVER,
    JUMP_STATIC,
    analyze_program,
    classify_jump,
)
from assembunny.config import RuntimeConfig
from assembunny.core.instruction import Literal, RegisterRef
from assembunny.errors import ErrorKind, GenerationError
from assembunny.parser import parse_program


def analyze(source, **config):
    return analyze_program(parse_program(source.replace(";", "\n")), RuntimeConfig(**config))


def test_straight_line_program():
    analysis = analyze("DEF a 0; INC a; OUTN a")
    assert analysis.instruction_count == 3
    assert analysis.register_names() == ["a"]
    assert analysis.registers[0].defined_at == 0
    assert analysis.jumps == []
    assert not analysis.needs_dispatcher
    assert not analysis.needs_definition_tracking
    assert not analysis.uses_halt_label
    assert analysis.label_targets == []


def test_static_backward_jump():
    analysis = analyze("DEF a 3; OUTN a; DEC a; JNZ a -2")
    (jump,) = analysis.jumps
    assert jump.kind == JUMP_STATIC
    assert jump.target == 1
    assert jump.in_bounds
    assert not jump.unconditional
    assert analysis.label_targets == [1]
    assert analysis.needs_definition_tracking
    assert not analysis.needs_dispatcher


def test_computed_jump_needs_dispatcher():
    analysis = analyze("DEF a 1; DEF off 1; JNZ a off; OUTC 65; OUTC 66")
    assert analysis.jumps[0].kind == JUMP_COMPUTED
    assert analysis.needs_dispatcher
    assert analysis.uses_halt_label
    assert analysis.label_targets == [0, 1, 2, 3, 4]


def test_never_jump():
    analysis = analyze("JNZ 0 5; OUTN 1")
    assert analysis.jumps[0].kind == JUMP_NEVER
    assert not analysis.needs_definition_tracking


@pytest.mark.parametrize("index,cond,offset,expected", [
    (0, Literal(0), Literal(3), (JUMP_NEVER, False, None, None)),
    (0, Literal(0), RegisterRef("x"), (JUMP_NEVER, False, None, None)),
    (1, Literal(7), Literal(2), (JUMP_STATIC, True, 3, True)),
    (1, RegisterRef("c"), Literal(-2), (JUMP_STATIC, False, -1, False)),
    (2, RegisterRef("c"), Literal(2), (JUMP_STATIC, False, 4, False)),
    (2, Literal(1), RegisterRef("o"), (JUMP_COMPUTED, True, None, None)),
])
def test_classify_jump(index, cond, offset, expected):
    jump = classify_jump(index, cond, offset, 4)
    assert (jump.kind, jump.unconditional, jump.target, jump.in_bounds) == expected


def test_out_of_bounds_static_jump_uses_halt_label():
    analysis = analyze("JNZ 1 10; OUTN 1")
    assert analysis.uses_halt_label
    assert analysis.label_targets == []


def test_use_before_definition():
    with pytest.raises(GenerationError) as excinfo:
        analyze("DEF a 0; INC b; DEF b 1")
    assert excinfo.value.kind == ErrorKind.UNDECLARED_REGISTER
    assert excinfo.value.index == 1
    assert excinfo.value.line == 2


def test_duplicate_definition():
    analysis = analyze("DEF a 0; DEF a 5")
    assert analysis.register_names() == ["a"]
    assert analysis.registers[0].initial_value == 0
    with pytest.raises(GenerationError) as excinfo:
        analyze("DEF a 0; DEF a 5", allow_redefinition=False)
    assert excinfo.value.kind == ErrorKind.INVALID_DEFINITION
    assert excinfo.value.index == 1


def test_to_dict():
    data = analyze("DEF a 1; JNZ a -1").to_dict()
    assert data["instruction_count"] == 2
    assert data["registers"] == [{"name": "a", "defined_at": 0, "initial_value": 1}]
    assert data["jumps"][0]["kind"] == JUMP_STATIC
    assert data["jumps"][0]["target"] == 0
    assert data["needs_dispatcher"] is False
    assert data["needs_definition_tracking"] is True
    assert data["label_targets"] == [0]
