from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import PurePath
from typing import Any

SEVERITIES = ("error", "warning", "info")

MARKUP = "markup"
STYLESHEET = "stylesheet"
SCRIPT = "script"
TEMPLATING = "templating"
FILE_KINDS = (MARKUP, STYLESHEET, SCRIPT, TEMPLATING)


@dataclass(frozen=True)
class Violation:
    rule_id: str
    severity: str
    message: str
    line: int
    column: int
    standard_refs: tuple[str, ...] = ()
    remediation: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity {self.severity!r} for {self.rule_id}")
        if not self.remediation:
            raise ValueError(f"Violation {self.rule_id} needs at least one remediation entry")
        object.__setattr__(self, "line", max(1, int(self.line or 1)))
        object.__setattr__(self, "column", max(1, int(self.column or 1)))
        object.__setattr__(self, "standard_refs", tuple(dict.fromkeys(self.standard_refs)))
        object.__setattr__(self, "remediation", tuple(self.remediation))

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["standard_refs"] = list(self.standard_refs)
        payload["remediation"] = list(self.remediation)
        return payload


@dataclass(frozen=True)
class EvaluationRequest:
    path: str
    content: str
    explicit_kind: str | None = None

    @property
    def extension(self) -> str:
        return PurePath(self.path).suffix.lower()


@dataclass(frozen=True)
class RuleDefinition:
    rule_id: str
    formats: frozenset[str]
    severity: str
    standard_refs: tuple[str, ...]
    remediation: tuple[str, ...]
    summary: str


@dataclass(frozen=True)
class ParseOutcome:
    tree: Any
    diagnostics: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.tree is not None


@dataclass(frozen=True)
class Thresholds:
    contrast_normal: float = 4.5
    contrast_large: float = 3.0
    large_text_px: float = 24.0
    large_bold_text_px: float = 18.66
    min_font_size_px: float = 12.0
    min_touch_target_px: float = 44.0
    max_fixed_width_px: float = 600.0
    max_important_declarations: int = 5


@dataclass(frozen=True)
class DelegateSettings:
    command: tuple[str, ...] = ("npx", "--no-install", "eslint")
    cwd: str | None = None
    resolve_plugins_relative_to: str | None = None
    typescript_parser: str | None = "@typescript-eslint/parser"
    components: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class AnalyzerSettings:
    disabled_rules: frozenset[str] = frozenset()
    severity_overrides: tuple[tuple[str, str], ...] = ()
    thresholds: Thresholds = field(default_factory=Thresholds)
    delegate: DelegateSettings = field(default_factory=DelegateSettings)


@dataclass(frozen=True)
class ScanSettings:
    max_file_size_bytes: int = 500_000
    max_files: int = 40_000
    ignore_patterns: tuple[str, ...] = ("node_modules/**", "dist/**", "build/**", "*.min.js")
    concurrency: int = 8
    file_timeout_seconds: float | None = 30.0


@dataclass(frozen=True)
class FailureThresholds:
    error: int = 0
    warning: int = 10


@dataclass(frozen=True)
class SourceSettings:
    type: str
    name: str
    root_dir: str | None = None
    base_url: str | None = None
    token_env: str | None = None
    repo: str | None = None
    pull_number: int | None = None


@dataclass(frozen=True)
class AppConfig:
    analyzer: AnalyzerSettings
    scan: ScanSettings
    failure_thresholds: FailureThresholds
    sources: tuple[SourceSettings, ...] = ()


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str


@dataclass(frozen=True)
class FileResult:
    path: str
    kind: str | None
    violations: tuple[Violation, ...]
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind,
            "error": self.error,
            "violations": [item.to_dict() for item in self.violations],
        }


@dataclass(frozen=True)
class BatchSummary:
    total_files: int
    files_with_violations: int
    total_violations: int
    errors: int
    warnings: int
    infos: int
    standard_refs: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["standard_refs"] = list(self.standard_refs)
        return payload


@dataclass(frozen=True)
class BatchResult:
    files: tuple[FileResult, ...]
    summary: BatchSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "files": [item.to_dict() for item in self.files],
        }
