import asyncio

from a11y_scanner import batch as batch_module
from a11y_scanner.batch import dedupe_violations, evaluate_batch, exceeds_thresholds, run_batch, summarize
from a11y_scanner.models import BatchSummary, FailureThresholds, FileResult, SourceFile, Violation


def _violation(rule_id: str, severity: str, line: int, refs=()) -> Violation:
    return Violation(
        rule_id=rule_id,
        severity=severity,
        message=rule_id,
        line=line,
        column=1,
        standard_refs=refs,
        remediation=("fix it",),
    )


def test_run_batch_keeps_input_order_and_summarizes():
    files = [
        SourceFile(path="index.html", content='<img src="a.png">'),
        ("clean.css", "body { color: #000; background: #fff; }"),
        ("notes.txt", "nothing to see"),
    ]

    result = run_batch(files)

    assert [item.path for item in result.files] == ["index.html", "clean.css", "notes.txt"]
    assert result.files[2].kind is None
    assert result.summary.total_files == 3
    assert result.summary.files_with_violations == 1
    assert result.summary.errors == result.summary.total_violations
    assert "1.1.1" in result.summary.standard_refs


def test_summary_counts_and_criterion_order():
    results = [
        FileResult(
            path="a.html",
            kind="markup",
            violations=(
                _violation("r1", "error", 1, ("4.1.2", "1.1.1")),
                _violation("r2", "warning", 2, ("1.4.10",)),
            ),
        ),
        FileResult(path="b.css", kind="stylesheet", violations=(_violation("r3", "info", 3, ("1.4.3",)),)),
        FileResult(path="c.js", kind="script", violations=()),
    ]

    summary = summarize(results)

    assert (summary.total_files, summary.files_with_violations, summary.total_violations) == (3, 2, 3)
    assert (summary.errors, summary.warnings, summary.infos) == (1, 1, 1)
    assert summary.standard_refs == ("1.1.1", "1.4.3", "1.4.10", "4.1.2")


def test_per_file_timeout_is_recorded(monkeypatch):
    async def slow(request, settings):
        await asyncio.sleep(5)
        return []

    monkeypatch.setattr(batch_module, "classify_and_evaluate", slow)

    result = asyncio.run(evaluate_batch([("slow.html", "<p>x</p>")], timeout=0.01))

    assert result.files[0].error == "timeout"
    assert result.files[0].violations == ()
    assert result.files[0].kind == "markup"


def test_dedupe_keeps_first_occurrence_per_rule_and_line():
    items = [
        _violation("duplicate-id", "error", 4),
        _violation("duplicate-id", "warning", 4),
        _violation("duplicate-id", "error", 5),
    ]

    deduped = dedupe_violations(items)

    assert [(item.line, item.severity) for item in deduped] == [(4, "error"), (5, "error")]


def test_failure_thresholds():
    summary = BatchSummary(
        total_files=1,
        files_with_violations=1,
        total_violations=3,
        errors=0,
        warnings=3,
        infos=0,
        standard_refs=(),
    )

    assert not exceeds_thresholds(summary, FailureThresholds(error=0, warning=10))
    assert exceeds_thresholds(summary, FailureThresholds(error=0, warning=2))
