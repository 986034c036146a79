from __future__ import annotations

from a11y_scanner.models import ScanSettings, SourceSettings
from a11y_scanner.sources.base import FileSource
from a11y_scanner.sources.github import GitHubPullRequestSource
from a11y_scanner.sources.local import LocalSource


def build_source(settings: SourceSettings, scan: ScanSettings | None = None) -> FileSource:
    scan = scan or ScanSettings()
    source_type = settings.type.strip().lower()
    if source_type == "local":
        return LocalSource(settings, scan)
    if source_type == "github_pull":
        return GitHubPullRequestSource(settings, scan)
    raise ValueError(f"Unsupported source type: {settings.type}")
