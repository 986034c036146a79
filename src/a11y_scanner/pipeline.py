from __future__ import annotations

import logging
import re
from pathlib import Path

from a11y_scanner.batch import exceeds_thresholds, run_batch
from a11y_scanner.models import AppConfig, SourceFile
from a11y_scanner.reporting import write_reports
from a11y_scanner.sources import build_source

logger = logging.getLogger(__name__)


def run_scan(
    config: AppConfig,
    *,
    output_dir: str | Path,
    source_regex: str | None = None,
) -> dict:
    selected = [
        item for item in config.sources if not source_regex or re.search(source_regex, item.name)
    ]
    if not selected:
        raise RuntimeError("No sources configured. Add entries under 'sources' in the config.")

    files: list[SourceFile] = []
    scanned_sources: list[str] = []
    source_errors = 0
    for settings in selected:
        try:
            source_files = build_source(settings, config.scan).list_files()
        except (RuntimeError, ValueError) as exc:
            logger.warning("Source %s failed: %s", settings.name, exc)
            source_errors += 1
            continue

        logger.info("Source %s yielded %d files", settings.name, len(source_files))
        scanned_sources.append(settings.name)
        prefix = settings.name if len(selected) > 1 else ""
        files.extend(
            SourceFile(path=f"{prefix}:{item.path}" if prefix else item.path, content=item.content)
            for item in source_files
        )

    batch = run_batch(
        files,
        settings=config.analyzer,
        concurrency=config.scan.concurrency,
        timeout=config.scan.file_timeout_seconds,
    )
    summary = write_reports(batch, output_dir=output_dir, sources=scanned_sources)
    summary["source_errors"] = source_errors
    summary["failed"] = exceeds_thresholds(batch.summary, config.failure_thresholds)
    return summary
