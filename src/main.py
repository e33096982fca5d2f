"""
1) Read the family member sheet (CSV or Excel upload template) into memory.
2) Resolve father/mother/spouse names into member ids and repair the edges.
3) Classify every member (originator, twin, polygamous, role, lineage tag).
4) Validate the resolved graph for cycles, asymmetric edges and impossible ages.
5) Lay out the tree from the originator and render it.
"""

import argparse
import logging
from pathlib import Path
import sys

from config import ConfigError, TreeConfig, load_config
from parsing import SheetError, load_member_records
from pipeline import resolve_family
from plotting import STATUS_NO_ORIGINATOR, RenderError, render_tree
from validation import validate_resolution


def print_warnings(title: str, warnings: list[str], limit: int = 10):
    if not warnings:
        print(f"  No {title} found")
        return
    print(f"  Found {len(warnings)} {title}:")
    for w in warnings[:limit]:
        print(f"    - {w}")
    if len(warnings) > limit:
        print(f"    ... and {len(warnings) - limit} more")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve and render a family tree")
    parser.add_argument("sheet", type=Path, help="Member sheet (.csv, .xlsx or .xls)")
    parser.add_argument("--config", type=Path, help="JSON tree configuration")
    parser.add_argument(
        "--output", type=Path, default=Path("family_tree.svg"), help="png, svg, pdf or dot"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config) if args.config else TreeConfig()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"Reading member sheet: {args.sheet}")
    try:
        records, row_errors = load_member_records(args.sheet)
    except SheetError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    print(f"  Found {len(records)} members")
    print_warnings(
        "sheet validation errors", [f"row {e.row} {e.field}: {e.message}" for e in row_errors]
    )

    print("Resolving relationships...")
    resolution = resolve_family(records, config)
    print_warnings("resolution warnings", resolution.warnings)

    print("Validating graph...")
    print_warnings("validation warnings", validate_resolution(resolution.nodes))

    print(f"Rendering tree to: {args.output}")
    try:
        outcome = render_tree(resolution, args.output, config)
    except RenderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if outcome.status == STATUS_NO_ORIGINATOR:
        print(f"Cannot render tree: {outcome.message}", file=sys.stderr)
        return 1
    print(f"  Tree rendered with {outcome.node_count} nodes ({outcome.status})")
    print("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
