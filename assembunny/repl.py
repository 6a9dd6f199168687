"""
Interactive line-at-a-time front end.

Each line is parsed and executed immediately against one persistent
``Interpreter``. Lines starting with ``:`` are REPL commands.
"""

import sys
from typing import Optional, TextIO

import structlog

from .config import RuntimeConfig
from .core.instruction import Opcode
from .errors import AsmbError
from .interpreter import Interpreter
from .parser import parse_line, tokenize_line

logger = structlog.get_logger(__name__)

BANNER = (
    "Welcome to the Assembunny-plus REPL.\n"
    "Use :help for help, :reg for registers and their values, and :exit to leave.\n"
    "At the > prompt, enter your lines of Assembunny-plus.\n"
)

HELP_TEXT = (
    "Commands:\n"
    "  :help      show this help\n"
    "  :reg       list registers and their values\n"
    "  :rawtoken  toggle printing the parsed instruction before execution\n"
    "  :exit      leave the REPL\n"
    "Instructions: def inc dec inct dect mul div cpy outn outc (jnz is not available here)\n"
)


class REPL:
    """Line-at-a-time front end over a persistent Interpreter."""

    def __init__(self, config: Optional[RuntimeConfig] = None,
                 stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.interpreter = Interpreter(config=config, on_output=self._write)
        self.show_raw_token = False
        self.running = False

    def _write(self, text: str) -> None:
        self.stdout.write(text)
        self.stdout.flush()

    def prompt(self) -> str:
        return f"{self.interpreter.ip}::>"

    def run(self) -> None:
        """Read lines until :exit or end of input."""
        self._write(BANNER)
        self.running = True
        while self.running:
            self._write(self.prompt())
            line = self.stdin.readline()
            if not line:
                self._write("\n")
                break
            self.handle_line(line)

    def handle_line(self, line: str) -> None:
        """
        Process one line of input.

        Commands are dispatched, instructions are parsed and executed. On
        success the counter advances; on failure an error line is written
        and the interpreter state is left as it was.

        Args:
            line: Raw input line, with or without its newline
        """
        tokens = tokenize_line(line)
        if not tokens:
            return
        if tokens[0].startswith(":"):
            self._command(tokens[0])
            return

        try:
            instruction = parse_line(line)
        except AsmbError as exc:
            self._write(f"Failed to tokenize: {exc}\n")
            return

        if instruction.opcode == Opcode.JNZ:
            self._write("This REPL does not support JNZ.\n")
            return
        if self.show_raw_token:
            self._write(f"{instruction!r}\n")

        try:
            self.interpreter.execute(instruction)
        except AsmbError as exc:
            logger.debug("REPL instruction failed", instruction=str(instruction), kind=str(exc.kind))
            self._write(f"Failed: {exc}\n")
            return
        self.interpreter.ip += 1

    def _command(self, command: str) -> None:
        if command == ":help":
            self._write(HELP_TEXT)
        elif command == ":reg":
            for name, value in self.interpreter.registers.items():
                self._write(f"{name} => {value}\n")
        elif command == ":exit":
            self._write("Bye\n")
            self.running = False
        elif command == ":rawtoken":
            self.show_raw_token = not self.show_raw_token
            self._write("Toggled show raw tokens before execution\n")
        else:
            self._write(f"Unknown command {command}\n")
