#!/usr/bin/env python3
"""
Parameter reference CLI.

Shows all sweepable parameters, their valid ranges, and defaults. With
--script, lists the parameters a strategy script reads.
"""
import argparse
import sys
from itertools import groupby
from pathlib import Path
from typing import Optional

from paramsweep.shared.defaults import PARAMETER_CATALOG
from paramsweep.shared.errors import ConfigError
from paramsweep.signals.script_host import discover_parameters
from paramsweep.sweep.grid_search import parameter_pair_warnings


def print_catalog():
    """Print all catalogued parameters grouped by category."""
    print("=" * 80)
    print("PARAMETER REFERENCE")
    print("=" * 80)
    print()

    entries = sorted(PARAMETER_CATALOG.items(), key=lambda item: item[1]["category"])
    for category, group in groupby(entries, key=lambda item: item[1]["category"]):
        print(category.upper())
        print("-" * 80)
        for name, entry in group:
            print(f"  {name:<22} {entry['label']}: {entry['default']} (default)")
            print(f"  {'':<22} Range: {entry['min']}-{entry['max']}, at most {entry['max_count']} values per sweep")
            print(f"  {'':<22} {entry['description']}")
        print()

    print("Parameters not listed here (custom script parameters) are passed through unchecked.")


def print_script_parameters(script_path: Path) -> int:
    if not script_path.exists():
        print(f"Error: Strategy script not found: {script_path}", file=sys.stderr)
        return 1
    try:
        names = discover_parameters(script_path.read_text(encoding="utf-8"))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Parameters read by {script_path.name}:")
    if not names:
        print("  (none)")
    for name in names:
        entry = PARAMETER_CATALOG.get(name)
        if entry is None:
            print(f"  {name:<22} custom")
        else:
            print(f"  {name:<22} {entry['label']}, default {entry['default']}, range {entry['min']}-{entry['max']}")
    for warning in parameter_pair_warnings(names):
        print(f"Warning: {warning}")
    return 0


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Show sweepable parameters and their ranges")
    parser.add_argument("--script", default=None, help="List the parameters this strategy script reads")
    args = parser.parse_args(argv)

    if args.script:
        return print_script_parameters(Path(args.script))
    print_catalog()
    return 0


if __name__ == "__main__":
    sys.exit(main())
