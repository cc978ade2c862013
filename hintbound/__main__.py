#!/usr/bin/env python3

import argparse
import collections
import sys

from hintbound import HintParseError, HintSettings, lint
from hintbound.util import to_json


def eprint(*args, **kwargs):
    print(*args, file=sys.stderr, **kwargs)


def parse_catalog(parser: argparse.ArgumentParser, table_specs: list[str], default_block: int) -> dict[int, list[str]]:
    catalog: dict[int, list[str]] = collections.defaultdict(list)
    for table_spec in table_specs:
        block, sep, table = table_spec.partition(":")
        if not sep:
            catalog[default_block].append(table_spec)
            continue
        if not block.isdigit() or not table:
            parser.error(f"Invalid table specification '{table_spec}', expected [BLOCK:][DB.]TABLE")
        catalog[int(block)].append(table)
    return dict(catalog)


def main():
    parser = argparse.ArgumentParser(prog="hintbound", description="Utility to check whether optimizer hints match the "
                                     "tables of a statement.")
    parser.add_argument("hints", action="store", help="The hint block, e.g. '/*+ HASH_JOIN(t1, t2) */'")
    parser.add_argument("--table", "-t", action="append", default=[], help="A table of the statement, written as "
                        "[BLOCK:][DB.]TABLE. Tables without a block belong to the current block. Can be repeated.")
    parser.add_argument("--db", action="store", default="test", help="The current database of the session")
    parser.add_argument("--block", action="store", type=int, default=1, help="The query block that the hints are "
                        "written for")
    parser.add_argument("--config", action="store", default="", help="JSON file with the hint settings. Defaults to "
                        "~/.hintbound/settings.json if it exists.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log the processing steps to stderr")
    parser.add_argument("--report", action="store_true", help="Print the match status of all hints")
    parser.add_argument("--json", action="store_true", help="Write the result as JSON to stdout")

    args = parser.parse_args()
    settings = HintSettings.default(args.config if args.config else None)
    if args.verbose:
        settings = HintSettings(show_alias_hints=settings.show_alias_hints, verbose=True)

    catalog = parse_catalog(parser, args.table, args.block)
    try:
        result = lint(args.hints, catalog, current_db=args.db, current_block=args.block, settings=settings)
    except HintParseError as err:
        eprint("Could not parse hints:", err)
        sys.exit(2)

    if args.json:
        print(to_json(result, indent=2))
    else:
        for warning in result.warnings:
            eprint(f"{type(warning).__name__}: {warning}")
        if args.report:
            print(result.report().to_string(index=False))

    if result.passed():
        eprint("All hints matched")
    sys.exit(0 if result.passed() else 1)


if __name__ == "__main__":
    main()
