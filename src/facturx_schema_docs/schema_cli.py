"""
CLI commands for inspecting Factur-X schemas and their documentation.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .compiler import SchemaCompilationError
from .discovery import ConfigurationError, collect_schema_files
from .excel_parser import DocumentationSourceError
from .merger import build_documentation_tree
from .namespaces import resolve_prefixes
from .xsd_parser import ParserConfig

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def cmd_files(args):
    """List every schema file reachable from the entry schemas."""
    setup_logging(args.verbose)

    try:
        files = collect_schema_files(args.xsd)
    except ConfigurationError as e:
        print(f"✗ {e}")
        return 1
    for path in files:
        print(path)
    return 0


def cmd_prefixes(args):
    """Print the namespace → prefix table."""
    setup_logging(args.verbose)

    try:
        prefixes = resolve_prefixes(collect_schema_files(args.xsd))
    except ConfigurationError as e:
        print(f"✗ {e}")
        return 1
    for uri, prefix in prefixes.items():
        print(f"  {prefix or '(default)'}: {uri}")
    return 0


def cmd_tree(args):
    """Build the documented tree and write it as JSON."""
    setup_logging(args.verbose)

    config = ParserConfig(validation=args.validation)
    try:
        roots = build_documentation_tree(args.xsd, args.documentation, parser_config=config)
    except (
        ConfigurationError,
        DocumentationSourceError,
        SchemaCompilationError,
        FileNotFoundError,
    ) as e:
        print(f"✗ {e}")
        return 1

    payload = json.dumps(
        {"roots": [root.to_dict() for root in roots]},
        indent=args.indent,
        ensure_ascii=False,
    )
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"✓ Wrote {len(roots)} root element(s) to: {args.output}")
    else:
        print(payload)
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Factur-X schema documentation CLI",
        prog="facturx-schema-docs"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands"
    )

    # Files command
    files_parser = subparsers.add_parser(
        "files",
        help="List schema files reachable through import/include/redefine"
    )
    files_parser.add_argument("xsd", nargs="+", help="Entry XSD file(s)")
    files_parser.set_defaults(func=cmd_files)

    # Prefixes command
    prefixes_parser = subparsers.add_parser(
        "prefixes",
        help="Show the namespace prefix table"
    )
    prefixes_parser.add_argument("xsd", nargs="+", help="Entry XSD file(s)")
    prefixes_parser.set_defaults(func=cmd_prefixes)

    # Tree command
    tree_parser = subparsers.add_parser(
        "tree",
        help="Build the element tree (with documentation) as JSON"
    )
    tree_parser.add_argument("xsd", nargs="+", help="Entry XSD file(s)")
    tree_parser.add_argument(
        "--documentation",
        help="Factur-X documentation workbook (.xlsx)"
    )
    tree_parser.add_argument("--output", help="Write JSON to this file instead of stdout")
    tree_parser.add_argument("--indent", type=int, default=2, help="JSON indentation")
    tree_parser.add_argument(
        "--validation",
        default="lax",
        choices=["strict", "lax", "skip"],
        help="Schema compilation mode; strict fails on schema errors (default: lax)"
    )
    tree_parser.set_defaults(func=cmd_tree)

    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
