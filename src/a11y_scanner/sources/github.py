from __future__ import annotations

import logging
import os
from pathlib import PurePosixPath
from urllib.parse import urlencode

from a11y_scanner.dispatcher import EXTENSION_KINDS
from a11y_scanner.http import get_json, get_text
from a11y_scanner.models import ScanSettings, SourceFile, SourceSettings
from a11y_scanner.sources.base import FileSource
from a11y_scanner.sources.local import is_ignored

logger = logging.getLogger(__name__)


class GitHubPullRequestSource(FileSource):
    def __init__(self, settings: SourceSettings, scan: ScanSettings | None = None):
        self.settings = settings
        self.scan = scan or ScanSettings()
        if not settings.repo or "/" not in settings.repo:
            raise ValueError("GitHub pull request source requires 'repo' as owner/name")
        if not settings.pull_number:
            raise ValueError("GitHub pull request source requires 'pull_number'")
        self.base_url = (settings.base_url or "https://api.github.com").rstrip("/")

    def list_files(self) -> list[SourceFile]:
        headers = _headers(_token_from_env(self.settings.token_env))
        files: list[SourceFile] = []
        for item in self._changed_files(headers):
            if len(files) >= self.scan.max_files:
                logger.warning("Reached max_files=%s for %s", self.scan.max_files, self.settings.repo)
                break

            filename = str(item.get("filename") or "").strip()
            if not filename or item.get("status") == "removed":
                continue
            if PurePosixPath(filename).suffix.lower() not in EXTENSION_KINDS:
                continue
            if is_ignored(filename, self.scan.ignore_patterns):
                continue
            if int(item.get("size") or 0) > self.scan.max_file_size_bytes:
                continue

            raw_url = str(item.get("raw_url") or "")
            if not raw_url:
                logger.warning("No raw_url for %s in %s", filename, self.settings.repo)
                continue
            response = get_text(raw_url, headers=headers)
            if len(response.data.encode("utf-8")) > self.scan.max_file_size_bytes:
                continue
            files.append(SourceFile(path=filename, content=response.data))

        return files

    def _changed_files(self, headers: dict[str, str]) -> list[dict]:
        items: list[dict] = []
        per_page = 100
        page = 1
        while True:
            query = urlencode({"per_page": per_page, "page": page})
            url = f"{self.base_url}/repos/{self.settings.repo}/pulls/{self.settings.pull_number}/files?{query}"
            response = get_json(url, headers=headers)
            page_data = response.data
            if not isinstance(page_data, list):
                raise RuntimeError("GitHub API returned invalid pull request files payload")

            items.extend(item for item in page_data if isinstance(item, dict))
            if len(page_data) < per_page:
                break
            page += 1
        return items


def _headers(token: str | None) -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": "a11y-scanner/0.1",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _token_from_env(token_env: str | None) -> str | None:
    if not token_env:
        return None
    token = os.getenv(token_env)
    if token:
        return token.strip()
    return None
