#!/usr/bin/env python3
"""
Command line interface for Assembunny-plus.

Interprets source or bytecode files, compiles source to C, converts source
to bytecode and reports the static jump analysis of a program. Without a
mode it starts the REPL.
"""

import argparse
import json
import os
import sys
from typing import List, Optional, TextIO

import structlog
import yaml

from .analysis.jump_targets import ProgramAnalysis, analyze_program
from .config import RuntimeConfig
from .errors import AsmbError
from .loader import compile_file, convert_to_bytecode, load_source, run_bytecode, run_file
from .logging_config import configure_logging
from .repl import REPL

logger = structlog.get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def export_analysis(analysis: ProgramAnalysis, output_format: str) -> str:
    data = analysis.to_dict()
    if output_format == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    return json.dumps(data, indent=2) + "\n"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments; defaults come from the environment."""
    env = RuntimeConfig.from_env()
    parser = argparse.ArgumentParser(
        prog="assembunny",
        description="A compiler, interpreter, and bytecode manager for Assembunny-plus, "
                    "an ASM-like language extended from the Assembunny concept in Advent of Code 2016",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('-i', '--interpret', metavar='ASMB_FILE',
                      help='Interpret the given source file')
    mode.add_argument('-c', '--compile', metavar='ASMB_FILE',
                      help='Compile the given source file to C source code')
    mode.add_argument('-b', '--to-bytecode', nargs=2, metavar=('ASMB_FILE', 'BYTECODE_FILE'),
                      help='Convert the source file to bytecode and store it in the output file')
    mode.add_argument('-e', '--from-bytecode', metavar='BYTECODE_FILE',
                      help='Read bytecode from the given file and execute the instructions')
    mode.add_argument('-a', '--analyze', metavar='ASMB_FILE',
                      help='Report registers and jump targets of the given source file')
    parser.add_argument('-o', '--output',
                        help='Write compiled C or the analysis report to this file instead of stdout')
    parser.add_argument('--format', choices=['json', 'yaml'], default='json',
                        help='Analysis report format (default: json)')
    parser.add_argument('--max-steps', type=int, default=env.max_steps,
                        help='Abort interpretation after this many steps (env: ASMB_MAX_STEPS, default: unbounded)')
    parser.add_argument('--strict-definitions', action='store_true',
                        default=not env.allow_redefinition,
                        help='Treat a second DEF of a register as an error (env: ASMB_STRICT_DEFINITIONS)')
    parser.add_argument('--log-level', default=os.environ.get('ASMB_LOG_LEVEL', 'WARNING').upper(),
                        choices=LOG_LEVELS, help='Logging level (default: WARNING)')
    parser.add_argument('--log-format', default=os.environ.get('ASMB_LOG_FORMAT', 'console'),
                        choices=['console', 'json'], help='Log renderer (default: console)')
    args = parser.parse_args(argv)
    args.config = RuntimeConfig(
        max_steps=args.max_steps,
        allow_redefinition=not args.strict_definitions,
        indent=env.indent,
    )
    return args


def _write_result(text: str, output: Optional[str], stdout: TextIO) -> None:
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info("Wrote output", path=output, size=len(text))
    else:
        stdout.write(text)


def _execute(args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> int:
    if args.interpret or args.from_bytecode:
        runner = run_file if args.interpret else run_bytecode
        result = runner(args.interpret or args.from_bytecode, args.config, stdout.write)
        stdout.flush()
        if not result.ok:
            stderr.write(f"Run file failed: {result.error}\n")
        return result.exit_status

    if args.compile:
        _write_result(compile_file(args.compile, args.config), args.output, stdout)
        return 0

    if args.to_bytecode:
        source, destination = args.to_bytecode
        convert_to_bytecode(source, destination)
        return 0

    if args.analyze:
        analysis = analyze_program(load_source(args.analyze), args.config)
        _write_result(export_analysis(analysis, args.format), args.output, stdout)
        return 0

    REPL(args.config, stdout=stdout).run()
    return 0


def main(argv: Optional[List[str]] = None, stdout: Optional[TextIO] = None,
         stderr: Optional[TextIO] = None) -> int:
    """Entry point; returns the process exit status."""
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    try:
        return _execute(args, stdout, stderr)
    except AsmbError as exc:
        stderr.write(f"{type(exc).__name__} ({exc.kind}): {exc}\n")
        return exc.exit_status
    except OSError as exc:
        logger.error("File operation failed", error=str(exc))
        stderr.write(f"Error: {exc}\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
