"""sketchgraph CLI - compile graphs and inspect headers.

Usage:
    sketchgraph compile <graph_file> [-o OUT] [--indent N] [--header TEXT]...
    sketchgraph parse <header_file> [--json]
    sketchgraph --version
    sketchgraph --help

Examples:
    sketchgraph compile blink.graph.json
    sketchgraph compile blink.graph.json -o blink.ino --indent 4
    sketchgraph parse Servo.h
    sketchgraph parse Servo.h --json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from sketchgraph import __version__
from sketchgraph.domain.models import Graph
from sketchgraph.services.generator import CompilerOptions, compile_graph
from sketchgraph.services.header_parser import parse_header


def _options_from_args(args: argparse.Namespace) -> CompilerOptions:
    update = {}
    if args.indent is not None:
        update["indent"] = " " * args.indent
    if args.no_header:
        update["header"] = []
    elif args.header:
        update["header"] = [line if line.startswith("//") else f"// {line}" for line in args.header]
    return CompilerOptions(**update)


def cmd_compile(args: argparse.Namespace) -> int:
    """Compile a graph JSON file to a sketch.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    graph_file = Path(args.file)

    if not graph_file.exists():
        print(f"Error: File not found: {graph_file}", file=sys.stderr)
        return 1

    try:
        graph = Graph.model_validate_json(graph_file.read_text(encoding="utf-8"))
    except ValidationError as e:
        print(f"Error: Invalid graph file: {graph_file}", file=sys.stderr)
        for err in e.errors(include_url=False):
            loc = ".".join(str(part) for part in err["loc"])
            print(f"  {loc}: {err['msg']}", file=sys.stderr)
        return 1

    source = compile_graph(graph, _options_from_args(args))

    if args.output:
        Path(args.output).write_text(source, encoding="utf-8")
        print(f"Wrote {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(source)
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    """Parse a C/C++ header into a library descriptor.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    header_file = Path(args.file)

    if not header_file.exists():
        print(f"Error: File not found: {header_file}", file=sys.stderr)
        return 1

    content = header_file.read_text(encoding="utf-8", errors="replace")
    result = parse_header(content, header_file.name)

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if not result.success or result.library is None:
        for error in result.errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    library = result.library
    if args.json:
        print(library.model_dump_json(indent=2))
        return 0

    print(f"Library: {library.display_name}")
    print(f"  Include: {library.include}")
    print()

    if library.constants:
        print(f"Constants: {len(library.constants)}")
        for const in library.constants:
            print(f"  • {const.name} = {const.value} ({const.type})")
        print()

    if library.functions:
        print(f"Functions: {len(library.functions)}")
        for fn in library.functions:
            params = ", ".join(f"{p.type} {p.name}" for p in fn.parameters)
            print(f"  • {fn.return_type} {fn.name}({params})")
        print()

    for cls in library.classes:
        print(f"Class {cls.name}: {len(cls.constructors)} constructors, {len(cls.methods)} methods")
        for method in cls.methods:
            params = ", ".join(f"{p.type} {p.name}" for p in method.parameters)
            print(f"  • {method.return_type} {method.qualified_name}({params})")
        print()

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="sketchgraph",
        description="sketchgraph - visual Arduino sketch compiler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sketchgraph compile blink.graph.json -o blink.ino
  sketchgraph parse Servo.h --json
        """,
    )

    parser.add_argument("--version", action="version", version=f"sketchgraph {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Compile command
    compile_parser = subparsers.add_parser("compile", help="Compile a graph JSON file to a sketch")
    compile_parser.add_argument("file", help="Path to the graph JSON file")
    compile_parser.add_argument("-o", "--output", help="Write the sketch to this file instead of stdout")
    compile_parser.add_argument("--indent", type=int, help="Spaces per indentation level (default: 2)")
    compile_parser.add_argument(
        "--header",
        action="append",
        help="Header comment line (can be used multiple times)",
    )
    compile_parser.add_argument("--no-header", action="store_true", help="Omit the header comment")

    # Parse command
    parse_parser = subparsers.add_parser("parse", help="Parse a C/C++ header file")
    parse_parser.add_argument("file", help="Path to the header file")
    parse_parser.add_argument("--json", action="store_true", help="Print the library descriptor as JSON")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "compile":
        return cmd_compile(args)
    elif args.command == "parse":
        return cmd_parse(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
