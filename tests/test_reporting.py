import csv
import json
from pathlib import Path

from a11y_scanner.batch import run_batch
from a11y_scanner.reporting import write_reports


def test_reports_are_written(tmp_path: Path):
    batch = run_batch(
        [
            ("index.html", '<img src="a.png">\n<iframe src="/map"></iframe>'),
            ("clean.css", "body { color: #000; background: #fff; }"),
        ]
    )

    summary = write_reports(batch, output_dir=tmp_path / "out", sources=["local"])

    run_json = Path(summary["files"]["run_summary"])
    violations_csv = Path(summary["files"]["violations"])
    rule_csv = Path(summary["files"]["violations_by_rule"])
    assert run_json.exists() and violations_csv.exists() and rule_csv.exists()

    written = json.loads(run_json.read_text(encoding="utf-8"))
    assert written["summary"]["total_files"] == 2
    assert written["sources"] == ["local"]
    assert written["files"]["violations"] == str(violations_csv)

    with violations_csv.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == batch.summary.total_violations
    assert {row["file_path"] for row in rows} == {"index.html"}

    with rule_csv.open(encoding="utf-8", newline="") as handle:
        by_rule = {row["rule_id"]: row for row in csv.DictReader(handle)}
    assert by_rule["img-missing-alt"]["violation_count"] == "2"
    assert by_rule["img-missing-alt"]["file_count"] == "1"


def test_empty_batch_writes_empty_csvs(tmp_path: Path):
    summary = write_reports(run_batch([]), output_dir=tmp_path)

    assert Path(summary["files"]["violations"]).read_text(encoding="utf-8") == ""
    assert summary["counts"]["violation_rows"] == 0
