"""Command-line entry point for the pattern-compliance gate."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import CatalogError, PolicyError
from .gate import GateController
from .policy import load_policy
from .result import Report, format_report_table, render_json
from .rules.catalog import Catalog, default_catalog, load_catalog, merge

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_CATALOG_ERROR = 3
EXIT_POLICY_ERROR = 4
EXIT_ROOT_NOT_FOUND = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patterngate",
        description="Scan source files for forbidden patterns and gate on severity.",
    )
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="File or directory to scan (defaults to the current directory).",
    )
    parser.add_argument(
        "--catalog",
        "-c",
        dest="catalog_path",
        default=None,
        help="Rule catalog (YAML). Defaults to the bundled SwiftUI catalog.",
    )
    parser.add_argument(
        "--extend",
        dest="extend_paths",
        action="append",
        default=[],
        help="Catalog whose rules override or extend the base catalog (repeatable).",
    )
    parser.add_argument(
        "--policy",
        "-p",
        dest="policy_path",
        default=None,
        help="Gate policy (YAML): blocking severities, excludes, suppressions.",
    )
    parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Console output format (defaults to table).",
    )
    parser.add_argument(
        "--out",
        "--output",
        dest="output_path",
        type=str,
        default=None,
        help="Path to write the JSON report (e.g., artifacts/patterngate.json).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker threads (defaults to the policy value or the CPU count).",
    )
    parser.add_argument(
        "--list-rules",
        action="store_true",
        help="Print the effective catalog and exit.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser


def build_catalog(catalog_path: Optional[str], extend_paths: Sequence[str] = ()) -> Catalog:
    catalog = load_catalog(catalog_path) if catalog_path else default_catalog()
    for extra in extend_paths:
        catalog = merge(catalog, load_catalog(extra))
    return catalog


def write_output(report: Report, output_path: Optional[str], report_format: str) -> None:
    if report_format == "json":
        print(render_json(report))
    else:
        print(format_report_table(report))

    if output_path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(render_json(report), encoding="utf-8")
        if report_format != "json":
            print(f"\nReport written to {output_path}")


def scan(
    root: str,
    catalog_path: Optional[str] = None,
    policy_path: Optional[str] = None,
    extend_paths: Sequence[str] = (),
    report_format: str = "table",
    output_path: Optional[str] = None,
    workers: Optional[int] = None,
) -> int:
    """Run one gated scan and return the process exit code.

    ``0`` pass, ``1`` gate failed, ``3`` catalog error, ``4`` policy error,
    ``5`` missing root. Catalog and policy are loaded before any file is read.
    """

    try:
        catalog = build_catalog(catalog_path, extend_paths)
    except CatalogError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return EXIT_CATALOG_ERROR
    try:
        policy = load_policy(policy_path)
    except PolicyError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return EXIT_POLICY_ERROR

    if not Path(root).exists():
        sys.stderr.write(f"error: scan root not found: {root}\n")
        return EXIT_ROOT_NOT_FOUND

    outcome = GateController(workers=workers).run(root, catalog, policy)
    write_output(outcome.report, output_path, report_format)
    return EXIT_PASS if outcome.success else EXIT_FAIL


def list_rules(catalog: Catalog) -> None:
    for rule in catalog:
        print(f"{rule.id:<32} {rule.severity.value:<8} {rule.category.value:<15} {rule.message}")


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be a positive integer")

    if args.list_rules:
        try:
            catalog = build_catalog(args.catalog_path, args.extend_paths)
        except CatalogError as exc:
            sys.stderr.write(f"error: {exc}\n")
            return EXIT_CATALOG_ERROR
        list_rules(catalog)
        return EXIT_PASS

    return scan(
        args.root,
        catalog_path=args.catalog_path,
        policy_path=args.policy_path,
        extend_paths=args.extend_paths,
        report_format=args.format,
        output_path=args.output_path,
        workers=args.workers,
    )


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
