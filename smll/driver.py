from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import ast_json, parser
from .ast import CommandNode
from .errors import InterpreterError, SmllError
from .interp import Interpreter

logger = logging.getLogger(__name__)


def run_file(
    source_path: Path,
    ast_out: Path | None = None,
    parse_only: bool = False,
    stdout=None,
    stderr=None,
) -> int:
    """Parse (and unless `parse_only`, run) one source file; returns the exit status."""
    if stderr is None:
        stderr = sys.stderr
    source = source_path.read_text(encoding="utf-8")
    try:
        program = parser.parse_program(source)
    except SmllError as err:
        print(err, file=stderr)
        return 1
    if ast_out is not None:
        _write_ast(program, ast_out)
    if parse_only:
        return 0
    try:
        Interpreter(stdout=stdout).run(program)
    except InterpreterError as err:
        print(err.report(), file=stderr)
        return 1
    return 0


def _write_ast(program: CommandNode, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(ast_json.dumps(program) + "\n", encoding="utf-8")
    logger.debug("wrote AST to %s", path)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="smll", description="smll: parse and interpret an SmLL program")
    ap.add_argument("source", type=Path, help="SmLL source file")
    ap.add_argument("--ast-out", type=Path, help="Write the parsed AST as JSON to this path")
    ap.add_argument("--parse-only", action="store_true", help="Stop after parsing (and --ast-out)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log interpreter debug traces to stderr")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return run_file(args.source, ast_out=args.ast_out, parse_only=args.parse_only)


if __name__ == "__main__":
    raise SystemExit(main())
