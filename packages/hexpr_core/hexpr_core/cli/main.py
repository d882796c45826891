"""hexpr_core.cli.main

Entry point for `hexpr` CLI.

Usage:
- hexpr "([x . x x] add)" -s signature.json
- hexpr "([x . x x] add)" -s signature.json -f json -p
- echo "{[_] neg}" | hexpr - -s signature.json -f dot
- hexpr "({[_] -} +)" -f ast -d
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from hexpr_core.api.errors import CompileError
from hexpr_core.graph.compiler import HExprCompiler
from hexpr_core.graph.config import load_config
from hexpr_core.graph.dot import to_dot
from hexpr_core.graph.introspection import explain_graph
from hexpr_core.graph.signature import load_signature

logger = logging.getLogger(__name__)


def _read_input(text: str) -> str:
    if text == "-":
        return sys.stdin.read()
    return text


def _configure_logging(args) -> None:
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def cmd_compile(args) -> int:
    source = _read_input(args.input)
    signature = load_signature(args.signature)
    config = load_config(args.config)
    compiler = HExprCompiler(signature, config)

    expr = compiler.parse(source)
    if args.debug:
        debug_line = f"Debug AST: {expr!r}"
        if args.format == "ast":
            print(debug_line)
            return 0
        print(debug_line, file=sys.stderr)

    if args.format == "ast":
        print(f"Parsed: {expr}" if args.pretty else str(expr))
        return 0

    graph = compiler.compile_expr(expr)
    if args.format == "json":
        indent = 2 if args.pretty else None
        print(json.dumps(graph.serialize(), indent=indent, ensure_ascii=False))
    elif args.format == "dot":
        print(to_dot(graph, title=str(expr)))
    else:
        print(explain_graph(graph, title=str(expr)))
    return 0


def build_parser():
    p = argparse.ArgumentParser(
        prog="hexpr",
        description="Compile H-expressions into open hypergraphs.",
    )
    p.add_argument("input", help="H-expression to compile (use '-' to read from stdin)")
    p.add_argument("-s", "--signature", default=None, help="Path to signature JSON file")
    p.add_argument("-c", "--config", default=None, help="Path to compiler config YAML file")
    p.add_argument(
        "-f",
        "--format",
        choices=["summary", "json", "dot", "ast"],
        default="summary",
        help="Output format (default: summary)",
    )
    p.add_argument("-p", "--pretty", action="store_true", help="Pretty-print the output")
    p.add_argument("-d", "--debug", action="store_true", help="Show debug AST representation")
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every compiler stage")
    p.set_defaults(func=cmd_compile)
    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)
    try:
        return args.func(args)
    except CompileError as exc:
        logger.debug(f"Compilation failed: {exc.details}")
        print(f"error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
