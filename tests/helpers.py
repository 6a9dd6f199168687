"""Shared helpers for tests that compile generated C."""

import os
import shutil
import subprocess
import tempfile
from typing import Optional

from assembunny import parse_program, run
from assembunny.codegen import generate
from assembunny.config import RuntimeConfig


def find_c_compiler() -> Optional[str]:
    for name in ("cc", "gcc", "clang"):
        path = shutil.which(name)
        if path:
            return path
    return None


def compile_and_run(c_source: str, timeout: float = 10) -> subprocess.CompletedProcess:
    """Compile C source with the system compiler and run the binary, capturing bytes."""
    compiler = find_c_compiler()
    with tempfile.TemporaryDirectory() as workdir:
        source_path = os.path.join(workdir, "program.c")
        binary_path = os.path.join(workdir, "program")
        with open(source_path, "w", encoding="utf-8") as f:
            f.write(c_source)
        subprocess.run(
            [compiler, "-std=c99", "-o", binary_path, source_path],
            check=True,
            capture_output=True,
        )
        return subprocess.run([binary_path], capture_output=True, timeout=timeout)


def interpret_and_compile(source: str, config: Optional[RuntimeConfig] = None):
    """Run a program both ways; returns (RunResult, CompletedProcess)."""
    program = parse_program(source)
    result = run(program, config)
    process = compile_and_run(generate(program, config))
    return result, process
