from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import replace

from a11y_scanner.evaluators.markup import evaluate_markup
from a11y_scanner.evaluators.prepass import run_prepass
from a11y_scanner.evaluators.script import evaluate_script
from a11y_scanner.evaluators.stylesheet import evaluate_stylesheet
from a11y_scanner.evaluators.templating import evaluate_templating
from a11y_scanner.models import (
    FILE_KINDS,
    MARKUP,
    SCRIPT,
    STYLESHEET,
    TEMPLATING,
    AnalyzerSettings,
    EvaluationRequest,
    Violation,
)

logger = logging.getLogger(__name__)

EXTENSION_KINDS = {
    ".html": MARKUP,
    ".htm": MARKUP,
    ".css": STYLESHEET,
    ".scss": STYLESHEET,
    ".js": SCRIPT,
    ".ts": SCRIPT,
    ".jsx": TEMPLATING,
    ".tsx": TEMPLATING,
}

TEMPLATING_MARKERS = [
    re.compile(r"^\s*import\s+[^;]*?\bfrom\s+['\"]react['\"]", re.MULTILINE),
    re.compile(r"\brequire\(\s*['\"]react['\"]\s*\)"),
    re.compile(r"return\s*\(?\s*<[A-Z]"),
    re.compile(r"=>\s*<[A-Z]"),
]

SYNC_EVALUATORS = {
    MARKUP: evaluate_markup,
    STYLESHEET: evaluate_stylesheet,
    SCRIPT: evaluate_script,
}


def uses_templating_dialect(content: str) -> bool:
    return any(pattern.search(content) for pattern in TEMPLATING_MARKERS)


def classify(request: EvaluationRequest) -> str | None:
    if request.explicit_kind:
        if request.explicit_kind not in FILE_KINDS:
            raise ValueError(f"Unknown file kind: {request.explicit_kind}")
        return request.explicit_kind

    kind = EXTENSION_KINDS.get(request.extension)
    if kind == SCRIPT and uses_templating_dialect(request.content):
        return TEMPLATING
    return kind


async def classify_and_evaluate(
    request: EvaluationRequest,
    settings: AnalyzerSettings | None = None,
) -> list[Violation]:
    settings = settings or AnalyzerSettings()
    try:
        kind = classify(request)
    except ValueError as exc:
        logger.warning("%s: %s", request.path, exc)
        return []
    if kind is None:
        logger.debug("No evaluator for %s", request.path)
        return []

    violations: list[Violation] = []
    try:
        violations.extend(run_prepass(request.content, kind=kind, settings=settings))
    except Exception as exc:
        logger.warning("Pattern pre-pass failed for %s: %s", request.path, exc, exc_info=True)

    try:
        if kind == TEMPLATING:
            violations.extend(await evaluate_templating(request, settings))
        else:
            evaluator = SYNC_EVALUATORS[kind]
            violations.extend(await asyncio.to_thread(evaluator, request, settings))
    except Exception as exc:
        logger.warning("%s evaluator failed for %s: %s", kind, request.path, exc, exc_info=True)

    return apply_rule_settings(violations, settings)


def apply_rule_settings(violations: list[Violation], settings: AnalyzerSettings) -> list[Violation]:
    overrides = dict(settings.severity_overrides)
    adjusted: list[Violation] = []
    for violation in violations:
        if violation.rule_id in settings.disabled_rules:
            continue
        severity = overrides.get(violation.rule_id)
        if severity and severity != violation.severity:
            violation = replace(violation, severity=severity)
        adjusted.append(violation)
    return adjusted


def evaluate_file(
    path: str,
    content: str,
    *,
    explicit_kind: str | None = None,
    settings: AnalyzerSettings | None = None,
) -> list[Violation]:
    request = EvaluationRequest(path=path, content=content, explicit_kind=explicit_kind)
    return asyncio.run(classify_and_evaluate(request, settings))
