from __future__ import annotations

import logging
from fnmatch import fnmatch
from pathlib import Path

from a11y_scanner.dispatcher import EXTENSION_KINDS
from a11y_scanner.models import ScanSettings, SourceFile, SourceSettings
from a11y_scanner.sources.base import FileSource

logger = logging.getLogger(__name__)


class LocalSource(FileSource):
    def __init__(self, settings: SourceSettings, scan: ScanSettings | None = None):
        self.settings = settings
        self.scan = scan or ScanSettings()
        if not settings.root_dir:
            raise ValueError("Local source requires 'root_dir'")

    def list_files(self) -> list[SourceFile]:
        root = Path(self.settings.root_dir).resolve()
        if not root.exists():
            raise RuntimeError(f"Local source root_dir does not exist: {root}")
        return collect_files(root, self.scan)


def collect_files(root: Path, scan: ScanSettings) -> list[SourceFile]:
    if root.is_file():
        candidates = [root]
        base = root.parent
    else:
        candidates = sorted(root.rglob("*"))
        base = root

    files: list[SourceFile] = []
    for file_path in candidates:
        if len(files) >= scan.max_files:
            logger.warning("Reached max_files=%s under %s; remaining files skipped", scan.max_files, root)
            break
        if not file_path.is_file() or file_path.suffix.lower() not in EXTENSION_KINDS:
            continue

        rel_path = file_path.relative_to(base).as_posix()
        if "/.git/" in f"/{rel_path}" or is_ignored(rel_path, scan.ignore_patterns):
            continue

        try:
            if file_path.stat().st_size > scan.max_file_size_bytes:
                logger.debug("Skipping %s: larger than %s bytes", rel_path, scan.max_file_size_bytes)
                continue
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", file_path, exc)
            continue

        files.append(SourceFile(path=rel_path, content=content))
    return files


def is_ignored(rel_path: str, patterns: tuple[str, ...] | list[str]) -> bool:
    parts = rel_path.split("/")
    for pattern in patterns:
        if fnmatch(rel_path, pattern) or fnmatch(parts[-1], pattern):
            return True
        # "dir/**" matches that directory at any depth.
        if pattern.endswith("/**") and pattern[:-3] in parts[:-1]:
            return True
    return False
