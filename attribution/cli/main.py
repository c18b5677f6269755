"""
Attribution CLI — build and inspect encoded attribution sets.

Commands:
    attribution build <output> [--entry ID[:NAME]]... [--chain NODES]...
    attribution show <input>
    attribution compare <left> <right>

Chains are given as comma separated nodes, each ID or ID:TAG, originator
first:

    attribution build ws.bin --entry 10:foo --chain 56,57:sync

Exit status:
    0 — success (for compare: the sets are structurally equal)
    1 — compare found the sets unequal
    2 — a file could not be read, written or decoded
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from ..attribution_set import AttributionSet
from ..chain import AttributionChain
from ..codec import DecodeError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEQUAL = 1
EXIT_ERROR = 2


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def _split_id(text: str) -> tuple[int, Optional[str]]:
    """Split 'ID' or 'ID:LABEL' into its parts. The label may contain ':'."""
    raw_id, sep, label = text.partition(":")
    try:
        value = int(raw_id)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid id: {raw_id!r}")
    return value, (label if sep else None)


def parse_entry(text: str) -> tuple[int, Optional[str]]:
    """Parse an --entry value."""
    return _split_id(text)


def parse_chain(text: str) -> AttributionChain:
    """Parse a --chain value into a chain, originator first."""
    if not text:
        raise argparse.ArgumentTypeError("chain must have at least one node")
    chain = AttributionChain()
    for node in text.split(","):
        node_id, tag = _split_id(node)
        chain.add_node(node_id, tag)
    return chain


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def _label(value: int, label: Optional[str]) -> str:
    if label is None:
        return str(value)
    return f"{value} ({label})"


def format_chain(chain: AttributionChain) -> str:
    """Render a chain as 'a -> b -> c'."""
    return " -> ".join(
        _label(node.id, node.tag) for node in chain.get_nodes()
    ) or "(empty)"


def format_set(attribution: AttributionSet) -> str:
    """Format the full content of a set for display."""
    lines = []
    lines.append(f"Attribution id: {attribution.get_attribution_id()}")
    lines.append("")
    lines.append(f"ENTRIES ({attribution.size()}):")
    for entry in attribution.get_entries():
        lines.append(f"  • {_label(entry.id, entry.name)}")

    chains = attribution.get_chains()
    lines.append("")
    lines.append(f"CHAINS ({len(chains)}):")
    for index, chain in enumerate(chains):
        lines.append(f"  [{index}] {format_chain(chain)}")

    return "\n".join(lines)


def _load(path: str) -> AttributionSet:
    return AttributionSet.decode(Path(path).read_bytes())


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_build(args: argparse.Namespace) -> int:
    """Build a set from the command line and write its encoding."""
    attribution = AttributionSet()
    for entry_id, name in args.entry or []:
        attribution.add(entry_id, name)
    for chain in args.chain or []:
        target = attribution.create_chain()
        for node in chain.get_nodes():
            target.add_node(node.id, node.tag)

    data = attribution.encode()
    try:
        Path(args.output).write_bytes(data)
    except OSError as e:
        print(f"ERROR: Cannot write {args.output}")
        print(f"Reason: {e}")
        return EXIT_ERROR

    logger.debug("Wrote %d bytes to %s", len(data), args.output)
    print(f"Wrote {attribution!r} ({len(data)} bytes) to {args.output}")
    return EXIT_OK


def cmd_show(args: argparse.Namespace) -> int:
    """Decode a file and print its content."""
    try:
        attribution = _load(args.input)
    except (OSError, DecodeError) as e:
        print(f"ERROR: Cannot read {args.input}")
        print(f"Reason: {e}")
        return EXIT_ERROR

    print(f"Attribution set: {args.input}")
    print("=" * 50)
    print(format_set(attribution))
    return EXIT_OK


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare two encoded sets with both the legacy diff and equality."""
    loaded = []
    for path in (args.left, args.right):
        try:
            loaded.append(_load(path))
        except (OSError, DecodeError) as e:
            print(f"ERROR: Cannot read {path}")
            print(f"Reason: {e}")
            return EXIT_ERROR
    left, right = loaded

    differs = left.diff(right)
    equal = left == right

    print(f"Entries differ (legacy diff): {'yes' if differs else 'no'}")
    print(f"Structurally equal:           {'yes' if equal else 'no'}")
    if not differs and not equal:
        print("Sets differ only in their chains.")

    return EXIT_OK if equal else EXIT_UNEQUAL


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="attribution",
        description="Build and inspect encoded attribution sets",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build a set and write its encoding",
    )
    build_parser.add_argument(
        "output",
        help="File to write the encoded set to",
    )
    build_parser.add_argument(
        "--entry",
        action="append",
        type=parse_entry,
        metavar="ID[:NAME]",
        help="Flat entry (repeatable)",
    )
    build_parser.add_argument(
        "--chain",
        action="append",
        type=parse_chain,
        metavar="ID[:TAG],...",
        help="Attribution chain, originator first (repeatable)",
    )
    build_parser.set_defaults(func=cmd_build)

    # Show command
    show_parser = subparsers.add_parser(
        "show",
        help="Print the content of an encoded set",
    )
    show_parser.add_argument(
        "input",
        help="Encoded set to read",
    )
    show_parser.set_defaults(func=cmd_show)

    # Compare command
    compare_parser = subparsers.add_parser(
        "compare",
        help="Compare two encoded sets",
    )
    compare_parser.add_argument("left", help="First encoded set")
    compare_parser.add_argument("right", help="Second encoded set")
    compare_parser.set_defaults(func=cmd_compare)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
