#!/usr/bin/env python3
# /backend/tools/lint_cheatsheet.py
# Lint a markdown cheat sheet without starting the web app or touching the database.

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[2]))
    from backend import bootstrap

    bootstrap(__file__)

from cheatsheet.document import DEFAULT_CHEATSHEET_PATH, load_document
from cheatsheet.errors import DocumentNotFound
from cheatsheet.lint import available_checks, lint_document
from cheatsheet.linkcheck import LinkChecker


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Check a markdown cheat sheet for broken anchors, unlabeled code and bad snippets.")
    ap.add_argument("path", nargs="?", default=str(DEFAULT_CHEATSHEET_PATH), help="Markdown file (default: the packaged cheat sheet)")
    ap.add_argument("--links", action="store_true", help="Also request every external link (network)")
    ap.add_argument("--json", action="store_true", help="Print the report as JSON")
    ap.add_argument(
        "--check",
        action="append",
        choices=available_checks(),
        help="Run only this check; repeat for several (default: all offline checks)",
    )
    ap.add_argument("--timeout", type=float, default=10.0, help="Seconds per link request (default: 10)")
    ap.add_argument("--workers", type=int, default=4, help="Parallel link requests (default: 4)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    return ap


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        doc = load_document(Path(args.path))
    except DocumentNotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    checker = LinkChecker(timeout=args.timeout, workers=args.workers) if args.links else None
    try:
        report = lint_document(doc, checks=args.check, check_links=args.links, link_checker=checker)
    finally:
        if checker is not None:
            checker.close()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        for issue in report.issues:
            print(f"{args.path}:{issue}")
        print(f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)")

    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
