import pytest

from a11y_scanner.http import HttpResponse
from a11y_scanner.models import ScanSettings, SourceSettings
from a11y_scanner.sources.github import GitHubPullRequestSource


def _settings(**overrides) -> SourceSettings:
    values = {"type": "github_pull", "name": "pr", "repo": "acme/storefront", "pull_number": 7}
    values.update(overrides)
    return SourceSettings(**values)


def test_pull_request_files_are_downloaded(monkeypatch):
    listed: list[str] = []
    fetched: list[str] = []

    def fake_get_json(url, headers=None, timeout=30):
        listed.append(url)
        assert "/repos/acme/storefront/pulls/7/files" in url
        data = [
            {"filename": "web/index.html", "status": "modified", "size": 40, "raw_url": "https://raw/index.html"},
            {"filename": "web/old.css", "status": "removed", "size": 10, "raw_url": "https://raw/old.css"},
            {"filename": "README.md", "status": "added", "size": 10, "raw_url": "https://raw/README.md"},
            {"filename": "web/App.tsx", "status": "added", "size": 30, "raw_url": "https://raw/App.tsx"},
        ]
        return HttpResponse(status=200, headers={}, data=data)

    def fake_get_text(url, headers=None, timeout=30):
        fetched.append(url)
        assert headers["Authorization"] == "Bearer secret"
        return HttpResponse(status=200, headers={}, data=f"<!-- {url} -->")

    monkeypatch.setenv("PR_TOKEN", "secret")
    monkeypatch.setattr("a11y_scanner.sources.github.get_json", fake_get_json)
    monkeypatch.setattr("a11y_scanner.sources.github.get_text", fake_get_text)

    files = GitHubPullRequestSource(_settings(token_env="PR_TOKEN")).list_files()

    assert [item.path for item in files] == ["web/index.html", "web/App.tsx"]
    assert fetched == ["https://raw/index.html", "https://raw/App.tsx"]
    assert len(listed) == 1
    assert listed[0].startswith("https://api.github.com/")


def test_pull_request_listing_is_paginated(monkeypatch):
    pages: list[str] = []

    def fake_get_json(url, headers=None, timeout=30):
        pages.append(url)
        if url.endswith("&page=1"):
            data = [
                {"filename": f"assets/s{index}.css", "status": "added", "size": 5, "raw_url": f"https://raw/{index}"}
                for index in range(100)
            ]
        else:
            data = [{"filename": "assets/last.css", "status": "added", "size": 5, "raw_url": "https://raw/last"}]
        return HttpResponse(status=200, headers={}, data=data)

    monkeypatch.setattr("a11y_scanner.sources.github.get_json", fake_get_json)
    monkeypatch.setattr(
        "a11y_scanner.sources.github.get_text",
        lambda url, headers=None, timeout=30: HttpResponse(status=200, headers={}, data="a {}"),
    )

    source = GitHubPullRequestSource(
        _settings(base_url="https://ghe.example.com/api/v3/"),
        ScanSettings(max_files=1000),
    )
    files = source.list_files()

    assert len(files) == 101
    assert len(pages) == 2
    assert all(url.startswith("https://ghe.example.com/api/v3/repos/") for url in pages)


def test_pull_request_source_validates_settings():
    with pytest.raises(ValueError):
        GitHubPullRequestSource(_settings(repo="storefront"))
    with pytest.raises(ValueError):
        GitHubPullRequestSource(_settings(pull_number=None))


def test_invalid_payload_raises(monkeypatch):
    monkeypatch.setattr(
        "a11y_scanner.sources.github.get_json",
        lambda url, headers=None, timeout=30: HttpResponse(status=200, headers={}, data={"message": "Not Found"}),
    )

    with pytest.raises(RuntimeError):
        GitHubPullRequestSource(_settings()).list_files()
