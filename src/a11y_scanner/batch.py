from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from a11y_scanner.dispatcher import classify, classify_and_evaluate
from a11y_scanner.models import (
    AnalyzerSettings,
    BatchResult,
    BatchSummary,
    EvaluationRequest,
    FailureThresholds,
    FileResult,
    SourceFile,
    Violation,
)

logger = logging.getLogger(__name__)


async def evaluate_batch(
    files: Iterable[SourceFile | tuple[str, str]],
    *,
    settings: AnalyzerSettings | None = None,
    concurrency: int = 8,
    timeout: float | None = 30.0,
) -> BatchResult:
    settings = settings or AnalyzerSettings()
    requests = [
        EvaluationRequest(path=item.path, content=item.content)
        if isinstance(item, SourceFile)
        else EvaluationRequest(path=item[0], content=item[1])
        for item in files
    ]
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run_one(request: EvaluationRequest) -> FileResult:
        try:
            kind = classify(request)
        except ValueError:
            kind = None
        async with semaphore:
            try:
                violations = await asyncio.wait_for(classify_and_evaluate(request, settings), timeout)
            except asyncio.TimeoutError:
                logger.warning("Timed out evaluating %s after %ss", request.path, timeout)
                return FileResult(path=request.path, kind=kind, violations=(), error="timeout")
        return FileResult(path=request.path, kind=kind, violations=tuple(violations))

    results = await asyncio.gather(*(run_one(request) for request in requests))
    return BatchResult(files=tuple(results), summary=summarize(results))


def run_batch(
    files: Iterable[SourceFile | tuple[str, str]],
    *,
    settings: AnalyzerSettings | None = None,
    concurrency: int = 8,
    timeout: float | None = 30.0,
) -> BatchResult:
    return asyncio.run(evaluate_batch(files, settings=settings, concurrency=concurrency, timeout=timeout))


def summarize(results: Iterable[FileResult]) -> BatchSummary:
    results = list(results)
    violations = [violation for result in results for violation in result.violations]
    refs = sorted({ref for violation in violations for ref in violation.standard_refs}, key=_criterion_key)
    return BatchSummary(
        total_files=len(results),
        files_with_violations=sum(1 for result in results if result.violations),
        total_violations=len(violations),
        errors=sum(1 for violation in violations if violation.severity == "error"),
        warnings=sum(1 for violation in violations if violation.severity == "warning"),
        infos=sum(1 for violation in violations if violation.severity == "info"),
        standard_refs=tuple(refs),
    )


def _criterion_key(ref: str) -> tuple:
    return tuple(int(part) if part.isdigit() else 0 for part in ref.split(".")), ref


def dedupe_violations(violations: Iterable[Violation]) -> list[Violation]:
    # First occurrence wins.
    deduped: dict[tuple[str, int], Violation] = {}
    for item in violations:
        deduped.setdefault((item.rule_id, item.line), item)
    return list(deduped.values())


def exceeds_thresholds(summary: BatchSummary, thresholds: FailureThresholds) -> bool:
    return summary.errors > thresholds.error or summary.warnings > thresholds.warning
