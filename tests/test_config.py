import json
from pathlib import Path

import pytest

from a11y_scanner.config import ConfigError, load_config
from a11y_scanner.models import ScanSettings, Thresholds


def _write(tmp_path: Path, payload) -> Path:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_example_config_loads():
    root = Path(__file__).resolve().parents[1]
    config = load_config(root / "configs" / "settings.example.json")

    assert [source.type for source in config.sources] == ["local", "github_pull"]
    assert config.sources[1].pull_number == 42
    assert dict(config.analyzer.severity_overrides)["text-justified"] == "info"
    assert dict(config.analyzer.delegate.components) == {"Button": "button", "Link": "a"}
    assert config.failure_thresholds.warning == 10


def test_missing_sections_use_defaults(tmp_path: Path):
    config = load_config(_write(tmp_path, {}))

    assert config.analyzer.thresholds == Thresholds()
    assert config.scan == ScanSettings()
    assert config.analyzer.disabled_rules == frozenset()
    assert config.sources == ()


def test_partial_sections_merge_with_defaults(tmp_path: Path):
    config = load_config(
        _write(
            tmp_path,
            {
                "rules": {"disabled": ["text-justified"]},
                "thresholds": {"contrast_normal": 7},
                "scan": {"concurrency": 2, "ignore_patterns": ["vendor/**"]},
            },
        )
    )

    assert config.analyzer.disabled_rules == frozenset({"text-justified"})
    assert config.analyzer.thresholds.contrast_normal == 7.0
    assert config.analyzer.thresholds.contrast_large == 3.0
    assert config.scan.concurrency == 2
    assert config.scan.ignore_patterns == ("vendor/**",)
    assert config.scan.max_files == 40_000


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"rules": {"severity_overrides": {"text-justified": "fatal"}}}, "must be one of"),
        ({"thresholds": []}, "'thresholds' must be an object"),
        ({"sources": [{"name": "x"}]}, "missing 'type'"),
        ({"sources": {"type": "local"}}, "'sources' must be a list"),
        ({"delegate": {"command": []}}, "must not be empty"),
    ],
)
def test_invalid_config_raises(tmp_path: Path, payload, message):
    with pytest.raises(ConfigError, match=message):
        load_config(_write(tmp_path, payload))


def test_missing_or_malformed_file(tmp_path: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="not valid JSON"):
        load_config(broken)
