from __future__ import annotations

import json
from pathlib import Path

from a11y_scanner.models import (
    SEVERITIES,
    AnalyzerSettings,
    AppConfig,
    DelegateSettings,
    FailureThresholds,
    ScanSettings,
    SourceSettings,
    Thresholds,
)


class ConfigError(ValueError):
    pass


def load_config(path: str | Path) -> AppConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        try:
            raw = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Config must be a JSON object")

    return AppConfig(
        analyzer=parse_analyzer_settings(raw),
        scan=_parse_scan(_section(raw, "scan")),
        failure_thresholds=_parse_failure_thresholds(_section(raw, "failure_thresholds")),
        sources=_parse_sources(raw.get("sources", [])),
    )


def parse_analyzer_settings(raw: dict) -> AnalyzerSettings:
    rules_raw = _section(raw, "rules")
    overrides_raw = rules_raw.get("severity_overrides", {})
    if not isinstance(overrides_raw, dict):
        raise ConfigError("'rules.severity_overrides' must be an object")

    overrides: list[tuple[str, str]] = []
    for rule_id, severity in overrides_raw.items():
        severity = str(severity).strip().lower()
        if severity not in SEVERITIES:
            raise ConfigError(f"Severity for {rule_id} must be one of: {', '.join(SEVERITIES)}")
        overrides.append((str(rule_id), severity))

    defaults = Thresholds()
    thresholds_raw = _section(raw, "thresholds")
    thresholds = Thresholds(
        contrast_normal=float(thresholds_raw.get("contrast_normal", defaults.contrast_normal)),
        contrast_large=float(thresholds_raw.get("contrast_large", defaults.contrast_large)),
        large_text_px=float(thresholds_raw.get("large_text_px", defaults.large_text_px)),
        large_bold_text_px=float(thresholds_raw.get("large_bold_text_px", defaults.large_bold_text_px)),
        min_font_size_px=float(thresholds_raw.get("min_font_size_px", defaults.min_font_size_px)),
        min_touch_target_px=float(thresholds_raw.get("min_touch_target_px", defaults.min_touch_target_px)),
        max_fixed_width_px=float(thresholds_raw.get("max_fixed_width_px", defaults.max_fixed_width_px)),
        max_important_declarations=int(
            thresholds_raw.get("max_important_declarations", defaults.max_important_declarations)
        ),
    )

    return AnalyzerSettings(
        disabled_rules=frozenset(_ensure_string_list(rules_raw.get("disabled", []))),
        severity_overrides=tuple(overrides),
        thresholds=thresholds,
        delegate=_parse_delegate(_section(raw, "delegate")),
    )


def _parse_delegate(raw: dict) -> DelegateSettings:
    defaults = DelegateSettings()
    components = raw.get("components", {})
    if not isinstance(components, dict):
        raise ConfigError("'delegate.components' must be an object")

    command = tuple(_ensure_string_list(raw.get("command", list(defaults.command))))
    if not command:
        raise ConfigError("'delegate.command' must not be empty")

    return DelegateSettings(
        command=command,
        cwd=_optional_str(raw.get("cwd")),
        resolve_plugins_relative_to=_optional_str(raw.get("resolve_plugins_relative_to")),
        typescript_parser=_optional_str(raw.get("typescript_parser", defaults.typescript_parser)),
        components=tuple((str(name), str(element)) for name, element in components.items()),
    )


def _parse_scan(raw: dict) -> ScanSettings:
    defaults = ScanSettings()
    timeout = raw.get("file_timeout_seconds", defaults.file_timeout_seconds)
    return ScanSettings(
        max_file_size_bytes=int(raw.get("max_file_size_bytes", defaults.max_file_size_bytes)),
        max_files=int(raw.get("max_files", defaults.max_files)),
        ignore_patterns=tuple(_ensure_string_list(raw.get("ignore_patterns", list(defaults.ignore_patterns)))),
        concurrency=int(raw.get("concurrency", defaults.concurrency)),
        file_timeout_seconds=float(timeout) if timeout is not None else None,
    )


def _parse_failure_thresholds(raw: dict) -> FailureThresholds:
    defaults = FailureThresholds()
    return FailureThresholds(
        error=int(raw.get("error", defaults.error)),
        warning=int(raw.get("warning", defaults.warning)),
    )


def _parse_sources(raw: object) -> tuple[SourceSettings, ...]:
    if not isinstance(raw, list):
        raise ConfigError("'sources' must be a list")

    sources: list[SourceSettings] = []
    for item in raw:
        if not isinstance(item, dict):
            raise ConfigError("Each source entry must be an object")
        source_type = str(item.get("type", "")).strip()
        name = str(item.get("name", "")).strip()
        if not source_type:
            raise ConfigError("Source entry is missing 'type'")
        if not name:
            raise ConfigError("Source entry is missing 'name'")

        pull_number = item.get("pull_number")
        sources.append(
            SourceSettings(
                type=source_type,
                name=name,
                root_dir=_optional_str(item.get("root_dir")),
                base_url=_optional_str(item.get("base_url")),
                token_env=_optional_str(item.get("token_env")),
                repo=_optional_str(item.get("repo")),
                pull_number=int(pull_number) if pull_number is not None else None,
            )
        )
    return tuple(sources)


def _section(raw: dict, key: str) -> dict:
    value = raw.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be an object")
    return value


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _ensure_string_list(value: object) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError("Expected a list of strings")
    return [str(item) for item in value]
