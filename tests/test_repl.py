import io

from assembunny.config import RuntimeConfig
from assembunny.repl import BANNER, REPL


def session(text, config=None):
    stdout = io.StringIO()
    repl = REPL(config, stdin=io.StringIO(text), stdout=stdout)
    repl.run()
    return repl, stdout.getvalue()


def test_banner_and_prompt():
    repl, out = session(":exit\n")
    assert out == BANNER + "0::>Bye\n"
    assert not repl.running


def test_instructions_advance_counter():
    repl, out = session("def a 4\ninc a\nouTn a\n")
    assert "0::>1::>2::>5\n3::>\n" in out
    assert repl.interpreter.registers.get("a") == 5


def test_reg_lists_registers_in_definition_order():
    _, out = session("def b 1\ndef a 2\n:reg\n:exit\n")
    assert "b => 1\na => 2\n" in out


def test_errors_leave_state_unchanged():
    repl, out = session("def a 1\ninc b\ndiv a 0 a\nfoo\n")
    assert "Failed: register 'b' does not exist\n" in out
    assert "Failed: division by zero\n" in out
    assert "Failed to tokenize: unknown keyword 'foo'\n" in out
    assert repl.interpreter.ip == 1
    assert repl.interpreter.registers.get("a") == 1


def test_jnz_is_refused():
    repl, out = session("jnz 1 -1\n")
    assert "This REPL does not support JNZ.\n" in out
    assert repl.interpreter.ip == 0


def test_rawtoken_toggle():
    _, out = session(":rawtoken\noutc 33\n")
    assert "Toggled show raw tokens before execution\n" in out
    assert "Instruction(opcode=<Opcode.OUTC: 10>" in out
    assert out.count("!") == 1


def test_help_and_unknown_command():
    _, out = session(":help\n:nope\n")
    assert "Commands:" in out
    assert "Unknown command :nope\n" in out


def test_blank_and_comment_lines_are_ignored():
    repl, _ = session("\n   \n# nothing\n")
    assert repl.interpreter.ip == 0


def test_strict_definitions():
    repl, out = session("def a 1\ndef a 2\n", RuntimeConfig(allow_redefinition=False))
    assert "Failed: register 'a' already exists\n" in out
    assert repl.interpreter.registers.get("a") == 1
