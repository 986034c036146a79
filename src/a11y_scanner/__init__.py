from a11y_scanner.batch import evaluate_batch, run_batch
from a11y_scanner.catalog import RULE_CATALOG, remediation_for
from a11y_scanner.dispatcher import classify, classify_and_evaluate, evaluate_file
from a11y_scanner.models import EvaluationRequest, Violation

__all__ = [
    "RULE_CATALOG",
    "EvaluationRequest",
    "Violation",
    "classify",
    "classify_and_evaluate",
    "evaluate_batch",
    "evaluate_file",
    "remediation_for",
    "run_batch",
]
