from __future__ import annotations

import csv
import json
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path

from a11y_scanner.models import BatchResult

SEVERITY_ORDER = {"error": 1, "warning": 2, "info": 3}


def write_reports(
    batch: BatchResult,
    *,
    output_dir: str | Path,
    sources: list[str] | None = None,
) -> dict:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    violation_rows = violation_rows_for(batch)
    rule_rows = rule_rows_for(violation_rows)
    failed_files = [
        {"path": result.path, "error": result.error} for result in batch.files if result.error
    ]

    summary = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "sources": sources or [],
        "summary": batch.summary.to_dict(),
        "counts": {
            "rules_triggered": len(rule_rows),
            "violation_rows": len(violation_rows),
            "failed_files": len(failed_files),
        },
        "failed_files": failed_files,
        "files": {},
    }

    run_json = out_dir / "run_summary.json"
    violations_csv = out_dir / "violations.csv"
    rule_csv = out_dir / "violations_by_rule.csv"

    _write_csv(violations_csv, violation_rows)
    _write_csv(rule_csv, rule_rows)

    summary["files"] = {
        "run_summary": str(run_json.resolve()),
        "violations": str(violations_csv.resolve()),
        "violations_by_rule": str(rule_csv.resolve()),
    }

    _write_json(run_json, summary)
    return summary


def violation_rows_for(batch: BatchResult) -> list[dict]:
    rows = [
        {
            "file_path": result.path,
            "kind": result.kind or "",
            "line": violation.line,
            "column": violation.column,
            "rule_id": violation.rule_id,
            "severity": violation.severity,
            "standard_refs": ";".join(violation.standard_refs),
            "message": violation.message,
            "remediation": violation.remediation[0],
        }
        for result in batch.files
        for violation in result.violations
    ]
    rows.sort(
        key=lambda row: (
            SEVERITY_ORDER.get(row["severity"], 9),
            row["file_path"],
            row["line"],
            row["column"],
        )
    )
    return rows


def rule_rows_for(violation_rows: list[dict]) -> list[dict]:
    grouped: dict[tuple[str, str], dict] = defaultdict(
        lambda: {"violation_count": 0, "files": set(), "standard_refs": ""}
    )
    for row in violation_rows:
        entry = grouped[(row["rule_id"], row["severity"])]
        entry["violation_count"] += 1
        entry["files"].add(row["file_path"])
        entry["standard_refs"] = row["standard_refs"]

    rows = [
        {
            "rule_id": rule_id,
            "severity": severity,
            "standard_refs": entry["standard_refs"],
            "violation_count": entry["violation_count"],
            "file_count": len(entry["files"]),
        }
        for (rule_id, severity), entry in grouped.items()
    ]
    rows.sort(key=lambda row: (-row["violation_count"], row["rule_id"]))
    return rows


def _write_json(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=True)


def _write_csv(path: Path, rows: list[dict]) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        if not rows:
            handle.write("")
            return

        fieldnames: list[str] = []
        seen = set()
        for row in rows:
            for key in row:
                if key not in seen:
                    seen.add(key)
                    fieldnames.append(key)

        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
