"""Resolve covers from the command line and warm the on-disk cache.

Runs the same fallback chain as the HTTP service, so configure credentials
and ``COVER_CACHE_DIR`` the same way (environment or ``.env``).

Usage:
    python -m tools.warm_covers <title> <core> [--source PROVIDER]
    python -m tools.warm_covers --file games.tsv

Examples:
    python -m tools.warm_covers "Super Mario Bros." nes
    python -m tools.warm_covers "Golden Sun" gba --source thegamesdb
    python -m tools.warm_covers --file library.tsv

The list file holds one ``title<TAB>core`` pair per line; blank lines and
lines starting with ``#`` are skipped.
"""

from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path

from dotenv import load_dotenv

from cover_resolver.config import get_config
from cover_resolver.context import AppContext, create_context
from cover_resolver.errors import ConfigurationError, CoverResolverError
from cover_resolver.logger import setup_logger


def read_pairs(path: Path) -> list[tuple[str, str]]:
    """Read ``title<TAB>core`` lines from a list file."""
    pairs: list[tuple[str, str]] = []
    with open(path, encoding="utf-8", newline="") as f:
        for row in csv.reader(f, delimiter="\t"):
            if not row or not row[0].strip() or row[0].lstrip().startswith("#"):
                continue
            if len(row) < 2:
                print(f"Skipping line without a core: {row[0]}")
                continue
            pairs.append((row[0].strip(), row[1].strip()))
    return pairs


def resolve_one(ctx: AppContext, title: str, core: str, source: str | None) -> bool:
    try:
        query = ctx.resolver.build_query(title, core, source)
    except CoverResolverError as e:
        print(f"  {title} ({core}): {e.code} - {e.message}")
        return False

    resolution = ctx.resolver.resolve(query)
    if resolution.resolved:
        origin = "cache" if resolution.from_cache else "fetched"
        print(f"  {title} ({core}): {resolution.result.provider_id.value} [{origin}]")
        print(f"    {resolution.result.image_url}")
        return True

    tried = ", ".join(f"{a.provider_id.value}={a.outcome.value}" for a in resolution.attempts)
    print(f"  {title} ({core}): not found ({tried or 'cached miss'})")
    return False


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Resolve game covers and warm the cover cache.",
    )
    parser.add_argument("title", nargs="?", help="Game title")
    parser.add_argument("core", nargs="?", help="Platform core (e.g. nes, snes, gba)")
    parser.add_argument("--source", help="Only ask this provider")
    parser.add_argument("--file", type=Path, help="TSV file of title<TAB>core lines")
    args = parser.parse_args()

    if args.file:
        if not args.file.exists():
            print(f"Error: list file not found: {args.file}")
            return 1
        pairs = read_pairs(args.file)
    elif args.title and args.core:
        pairs = [(args.title, args.core)]
    else:
        parser.error("give a title and core, or --file")

    load_dotenv()
    config = get_config()
    setup_logger(config.log_dir, level="WARNING")
    try:
        ctx = create_context(config)
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1

    found = 0
    try:
        print(f"Resolving {len(pairs)} cover(s) ...")
        for title, core in pairs:
            if resolve_one(ctx, title, core, args.source):
                found += 1
    finally:
        ctx.close()

    print(f"Done: {found}/{len(pairs)} resolved.")
    return 0 if found == len(pairs) else 1


if __name__ == "__main__":
    sys.exit(main())
