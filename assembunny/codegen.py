"""
C code generation for Assembunny-plus.

Example::

    (ASMB)
    0  def a 3
    1  outn a
    2  dec a
    3  jnz a -2

      |
      V

    (C)
    int main(void)
    {
        int32_t __asmb_reg_a = 0;
        int __asmb_def_a = 0;

        /* def a 3 */
        __asmb_reg_a = 3;
        __asmb_def_a = 1;
    __asmb_line_1:
        /* outn a */
        __asmb_need(__asmb_def_a, "register 'a' does not exist", 1);
        printf("%ld\\n", (long)__asmb_reg_a);
        ...
        if (__asmb_reg_a != 0) goto __asmb_line_1;
        fflush(stdout);
        return 0;
    }

Registers become fixed ``int32_t`` locals and every DEF an assignment at its
own position. Jumps with a literal offset are direct ``goto``s; jumps with a
register offset go through a ``switch`` dispatcher that covers every
instruction index, with out-of-range targets halting.
"""

from typing import List, Optional, Set

import structlog

from .analysis.jump_targets import (
    JUMP_COMPUTED,
    JUMP_NEVER,
    ProgramAnalysis,
    analyze_program,
    classify_jump,
)
from .config import RuntimeConfig
from .core.instruction import INT32_MIN, Instruction, Literal, Opcode, Program
from .errors import ErrorKind, GenerationError

logger = structlog.get_logger(__name__)

# Register names may not start with "__", so these never collide.
REG_VARNAME_PREFIX = "__asmb_reg_"
DEF_FLAG_PREFIX = "__asmb_def_"
LINE_LABEL_PREFIX = "__asmb_line_"
HALT_LABEL = "__asmb_halt"
DISPATCH_LABEL = "__asmb_dispatch"
TARGET_VAR = "__asmb_target"

C_INCLUDES = "#include <stdint.h>\n#include <stdio.h>\n#include <stdlib.h>\n"

HELPER_ORDER = ("fail", "wrap", "need", "div", "outc")

HELPER_DEPENDENCIES = {
    "need": ("fail",),
    "div": ("fail", "wrap"),
    "outc": ("fail",),
}

HELPERS = {
    "fail": (
        "static void __asmb_fail(int status, const char *message, long index)\n"
        "{{\n"
        "\tfflush(stdout);\n"
        "\tfprintf(stderr, \"%s at instruction %ld\\n\", message, index);\n"
        "\texit(status);\n"
        "}}\n"
    ),
    "wrap": (
        "static int32_t __asmb_wrap(int64_t value)\n"
        "{{\n"
        "\treturn (int32_t)(uint32_t)(uint64_t)value;\n"
        "}}\n"
    ),
    "need": (
        "static void __asmb_need(int defined, const char *message, long index)\n"
        "{{\n"
        "\tif (!defined)\n"
        "\t\t__asmb_fail({undeclared}, message, index);\n"
        "}}\n"
    ),
    "div": (
        "static int32_t __asmb_div(int32_t dividend, int32_t divisor, long index)\n"
        "{{\n"
        "\tif (divisor == 0)\n"
        "\t\t__asmb_fail({division}, \"division by zero\", index);\n"
        "\treturn __asmb_wrap((int64_t)dividend / divisor);\n"
        "}}\n"
    ),
    "outc": (
        "static void __asmb_outc(int32_t code, long index)\n"
        "{{\n"
        "\tuint32_t c = (uint32_t)code;\n"
        "\n"
        "\tif (code < 0 || code > 0x10FFFF || (code >= 0xD800 && code <= 0xDFFF))\n"
        "\t\t__asmb_fail({character}, \"invalid character code\", index);\n"
        "\tif (c < 0x80) {{\n"
        "\t\tputchar((int)c);\n"
        "\t}} else if (c < 0x800) {{\n"
        "\t\tputchar((int)(0xC0 | (c >> 6)));\n"
        "\t\tputchar((int)(0x80 | (c & 0x3F)));\n"
        "\t}} else if (c < 0x10000) {{\n"
        "\t\tputchar((int)(0xE0 | (c >> 12)));\n"
        "\t\tputchar((int)(0x80 | ((c >> 6) & 0x3F)));\n"
        "\t\tputchar((int)(0x80 | (c & 0x3F)));\n"
        "\t}} else {{\n"
        "\t\tputchar((int)(0xF0 | (c >> 18)));\n"
        "\t\tputchar((int)(0x80 | ((c >> 12) & 0x3F)));\n"
        "\t\tputchar((int)(0x80 | ((c >> 6) & 0x3F)));\n"
        "\t\tputchar((int)(0x80 | (c & 0x3F)));\n"
        "\t}}\n"
        "}}\n"
    ),
}


def c_int(value: int) -> str:
    """C spelling of a 32-bit literal; INT32_MIN has no direct spelling."""
    if value == INT32_MIN:
        return "(-2147483647 - 1)"
    return str(value)


def reg_var(name: str) -> str:
    return f"{REG_VARNAME_PREFIX}{name}"


def def_flag(name: str) -> str:
    return f"{DEF_FLAG_PREFIX}{name}"


def line_label(index: int) -> str:
    return f"{LINE_LABEL_PREFIX}{index}"


class CGenerator:
    """Translates one program into one C translation unit."""

    def __init__(self, program: Program, config: Optional[RuntimeConfig] = None):
        self.program = program
        self.config = config or RuntimeConfig()
        self.indent = self.config.indent
        self.analysis: ProgramAnalysis = analyze_program(program, self.config)
        self.tracking = self.analysis.needs_definition_tracking
        self.helpers: Set[str] = set()
        self.body: List[str] = []

    def generate(self) -> str:
        self._emit_body()
        parts = [
            f"/* Generated by assembunny from {len(self.program)} instructions. */\n",
            C_INCLUDES,
        ]
        for name in self._helper_closure():
            parts.append("\n")
            parts.append(self._render_helper(name))
        parts.append("\n")
        parts.append("int main(void)\n{\n")
        parts.extend(f"{line}\n" for line in self._declarations())
        parts.extend(f"{line}\n" for line in self.body)
        parts.append("}\n")
        source = "".join(parts)
        logger.debug(
            "Generated C source",
            instructions=len(self.program),
            dispatcher=self.analysis.needs_dispatcher,
            tracking=self.tracking,
            size=len(source),
        )
        return source

    def _helper_closure(self) -> List[str]:
        needed = set(self.helpers)
        for name in self.helpers:
            needed.update(HELPER_DEPENDENCIES.get(name, ()))
        return [name for name in HELPER_ORDER if name in needed]

    def _render_helper(self, name: str) -> str:
        template = HELPERS[name].format(
            undeclared=ErrorKind.UNDECLARED_REGISTER.exit_status,
            division=ErrorKind.DIVISION_BY_ZERO.exit_status,
            character=ErrorKind.INVALID_CHARACTER.exit_status,
        )
        return template.replace("\t", self.indent)

    def _declarations(self) -> List[str]:
        lines = []
        for name in self.analysis.register_names():
            lines.append(f"{self.indent}int32_t {reg_var(name)} = 0;")
            if self.tracking:
                lines.append(f"{self.indent}int {def_flag(name)} = 0;")
        if self.analysis.needs_dispatcher:
            lines.append(f"{self.indent}int64_t {TARGET_VAR} = 0;")
        if lines:
            lines.append("")
        return lines

    def _line(self, text: str, depth: int = 1) -> None:
        self.body.append(f"{self.indent * depth}{text}")

    def _emit_body(self) -> None:
        labels = set(self.analysis.label_targets)
        for index, instruction in enumerate(self.program):
            if index in labels:
                self.body.append(f"{line_label(index)}:")
            self._line(f"/* {instruction} */")
            self._emit_guards(instruction, index)
            self._emit_instruction(instruction, index)

        if self.analysis.needs_dispatcher:
            self._line(f"goto {HALT_LABEL};")
            self._emit_dispatcher()
        if self.analysis.uses_halt_label:
            self.body.append(f"{HALT_LABEL}:")
        self._line("fflush(stdout);")
        self._line("return 0;")

    def _emit_dispatcher(self) -> None:
        self.body.append(f"{DISPATCH_LABEL}:")
        self._line(f"switch ({TARGET_VAR}) {{")
        for index in range(len(self.program)):
            self._line(f"case {index}: goto {line_label(index)};")
        self._line(f"default: goto {HALT_LABEL};")
        self._line("}")

    def _emit_guards(self, instruction: Instruction, index: int) -> None:
        """Run-time declaration checks, in the interpreter's resolution order."""
        if not self.tracking:
            return
        for _, ref in instruction.register_operands():
            self.helpers.add("need")
            self._line(
                f"__asmb_need({def_flag(ref.name)}, \"register '{ref.name}' does not exist\", {index});"
            )

    def _operand(self, operand) -> str:
        if isinstance(operand, Literal):
            return c_int(operand.value)
        return reg_var(operand.name)

    def _emit_instruction(self, instruction: Instruction, index: int) -> None:
        opcode = instruction.opcode
        ops = instruction.operands

        if opcode == Opcode.DEF:
            name = ops[0].name
            if self.tracking and not self.config.allow_redefinition:
                self.helpers.add("fail")
                self._line(
                    f"if ({def_flag(name)}) __asmb_fail({ErrorKind.INVALID_DEFINITION.exit_status}, "
                    f"\"register '{name}' already exists\", {index});"
                )
            self._line(f"{reg_var(name)} = {self._operand(ops[1])};")
            if self.tracking:
                self._line(f"{def_flag(name)} = 1;")
        elif opcode == Opcode.CPY:
            self._line(f"{self._operand(ops[1])} = {self._operand(ops[0])};")
        elif opcode in (Opcode.INC, Opcode.DEC):
            sign = "+" if opcode == Opcode.INC else "-"
            self._wrapped(ops[0], f"(int64_t){self._operand(ops[0])} {sign} 1")
        elif opcode in (Opcode.INCT, Opcode.DECT):
            sign = "+" if opcode == Opcode.INCT else "-"
            self._wrapped(ops[0], f"(int64_t){self._operand(ops[0])} {sign} {self._operand(ops[1])}")
        elif opcode == Opcode.MUL:
            self._wrapped(ops[2], f"(int64_t){self._operand(ops[0])} * {self._operand(ops[1])}")
        elif opcode == Opcode.DIV:
            self.helpers.add("div")
            self._line(
                f"{self._operand(ops[2])} = __asmb_div({self._operand(ops[0])}, "
                f"{self._operand(ops[1])}, {index});"
            )
        elif opcode == Opcode.JNZ:
            self._emit_jump(instruction, index)
        elif opcode == Opcode.OUTN:
            self._line(f"printf(\"%ld\\n\", (long){self._operand(ops[0])});")
        elif opcode == Opcode.OUTC:
            self.helpers.add("outc")
            self._line(f"__asmb_outc({self._operand(ops[0])}, {index});")
        else:
            raise GenerationError(ErrorKind.UNKNOWN_OPCODE, f"no C translation for {opcode!r}",
                                  index=index, line=instruction.line)

    def _wrapped(self, dst, expression: str) -> None:
        self.helpers.add("wrap")
        self._line(f"{self._operand(dst)} = __asmb_wrap({expression});")

    def _emit_jump(self, instruction: Instruction, index: int) -> None:
        cond, offset = instruction.operands
        jump = classify_jump(index, cond, offset, len(self.program))

        if jump.kind == JUMP_NEVER:
            self._line(";")
            return

        if jump.kind == JUMP_COMPUTED:
            transfer = [
                f"{TARGET_VAR} = (int64_t){index} + {self._operand(offset)};",
                f"goto {DISPATCH_LABEL};",
            ]
        else:
            destination = line_label(jump.target) if jump.in_bounds else HALT_LABEL
            transfer = [f"goto {destination};"]

        if jump.unconditional:
            for text in transfer:
                self._line(text)
        elif len(transfer) == 1:
            self._line(f"if ({self._operand(cond)} != 0) {transfer[0]}")
        else:
            self._line(f"if ({self._operand(cond)} != 0) {{")
            for text in transfer:
                self._line(text, depth=2)
            self._line("}")


def generate(program: Program, config: Optional[RuntimeConfig] = None) -> str:
    """Translate ``program`` into C source text.

    Raises:
        GenerationError: the program fails the static checks.
    """
    return CGenerator(program, config).generate()
