from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from a11y_scanner.batch import dedupe_violations, exceeds_thresholds, run_batch, summarize
from a11y_scanner.catalog import RULE_CATALOG, remediation_for
from a11y_scanner.config import ConfigError, load_config
from a11y_scanner.evaluators.templating import DELEGATE_RULES
from a11y_scanner.models import (
    AnalyzerSettings,
    AppConfig,
    BatchResult,
    FailureThresholds,
    ScanSettings,
    SourceFile,
)
from a11y_scanner.pipeline import run_scan
from a11y_scanner.sources.local import collect_files


def utc_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="a11y-scanner",
        description="Static WCAG 2.2 accessibility analyzer for web front-end sources",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Evaluate local files or directories")
    check_parser.add_argument("paths", nargs="+")
    check_parser.add_argument("--config", default=None)
    check_parser.add_argument("--dedupe", action="store_true", help="Merge violations by rule and line")

    scan_parser = subparsers.add_parser("scan", help="Evaluate every configured source and write reports")
    scan_parser.add_argument("--config", default="configs/settings.example.json")
    scan_parser.add_argument("--output-dir", default=f"outputs/report-{utc_stamp()}")
    scan_parser.add_argument("--source-regex", default=None)

    fix_parser = subparsers.add_parser("suggest-fix", help="Print remediation guidance for a rule")
    fix_parser.add_argument("rule_id")
    fix_parser.add_argument("--code", default=None, help="Offending snippet to rewrite")

    subparsers.add_parser("rules", help="List the built-in rule catalogue")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "check":
        try:
            config = load_config(args.config) if args.config else _default_config()
        except ConfigError as exc:
            parser.error(str(exc))
            return 2

        files: list[SourceFile] = []
        for raw_path in args.paths:
            path = Path(raw_path)
            if not path.exists():
                parser.error(f"Path not found: {raw_path}")
                return 2
            files.extend(collect_files(path.resolve(), config.scan))

        batch = run_batch(
            files,
            settings=config.analyzer,
            concurrency=config.scan.concurrency,
            timeout=config.scan.file_timeout_seconds,
        )
        if args.dedupe:
            batch = _dedupe(batch)
        print(json.dumps(batch.to_dict(), indent=2, ensure_ascii=True))
        return 1 if exceeds_thresholds(batch.summary, config.failure_thresholds) else 0

    if args.command == "scan":
        try:
            config = load_config(args.config)
        except ConfigError as exc:
            parser.error(str(exc))
            return 2

        summary = run_scan(config, output_dir=args.output_dir, source_regex=args.source_regex)
        print(json.dumps(summary, indent=2, ensure_ascii=True))
        return 1 if summary["failed"] else 0

    if args.command == "suggest-fix":
        payload = {"rule_id": args.rule_id, "remediation": remediation_for(args.rule_id, args.code)}
        print(json.dumps(payload, indent=2, ensure_ascii=True))
        return 0

    if args.command == "rules":
        rows = [
            {
                "rule_id": rule.rule_id,
                "severity": rule.severity,
                "formats": sorted(rule.formats),
                "standard_refs": list(rule.standard_refs),
                "summary": rule.summary,
            }
            for rule in sorted([*RULE_CATALOG.values(), *DELEGATE_RULES.values()], key=lambda item: item.rule_id)
        ]
        print(json.dumps(rows, indent=2, ensure_ascii=True))
        return 0

    parser.error(f"Unsupported command: {args.command}")
    return 2


def _default_config() -> AppConfig:
    return AppConfig(
        analyzer=AnalyzerSettings(),
        scan=ScanSettings(),
        failure_thresholds=FailureThresholds(),
    )


def _dedupe(batch: BatchResult) -> BatchResult:
    files = tuple(
        replace(result, violations=tuple(dedupe_violations(result.violations)))
        for result in batch.files
    )
    return BatchResult(files=files, summary=summarize(files))


if __name__ == "__main__":
    raise SystemExit(main())
