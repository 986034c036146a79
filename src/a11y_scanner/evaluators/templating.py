from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from shutil import which
from types import MappingProxyType
from typing import Any, Mapping

from a11y_scanner.models import (
    TEMPLATING,
    AnalyzerSettings,
    DelegateSettings,
    EvaluationRequest,
    RuleDefinition,
    Violation,
)

logger = logging.getLogger(__name__)

RULE_PREFIX = "jsx-a11y/"
FALLBACK_FIX = ("Review WCAG 2.2 documentation", "Consult accessibility team for guidance")

# rule -> (WCAG criteria, fix description, example suggestions)
_DELEGATE_TABLE: dict[str, tuple[tuple[str, ...], str, tuple[str, ...]]] = {
    "alt-text": (
        ("1.1.1",),
        "Add alt attribute with meaningful description",
        (
            '<img src="/logo.png" alt="Company logo" />',
            '<img src="/divider.png" alt="" /> for decorative images',
        ),
    ),
    "anchor-has-content": (
        ("2.4.4",),
        "Add text content or aria-label to link",
        ('<a href="/about">About us</a>', '<a href="/contact" aria-label="Contact page"><MailIcon /></a>'),
    ),
    "anchor-is-valid": (
        ("2.4.4",),
        "Provide valid href or use button element",
        ('<a href="/page">Go to page</a>', "<button onClick={handler}>Do action</button> for actions"),
    ),
    "aria-activedescendant-has-tabindex": (
        ("4.1.2",),
        "Add tabIndex when using aria-activedescendant",
        ('<div role="combobox" aria-activedescendant={activeId} tabIndex={0}>',),
    ),
    "aria-props": (
        ("4.1.2",),
        "Fix ARIA property name",
        ("Check spelling: aria-labelledby, not aria-labeledby",),
    ),
    "aria-proptypes": (
        ("4.1.2",),
        "Use correct value type for ARIA property",
        ('aria-hidden="true" rather than "yes"', 'aria-expanded="true" or "false"'),
    ),
    "aria-role": (
        ("4.1.2",),
        "Use valid ARIA role from specification",
        ("Valid roles include button, link, menuitem, tab, checkbox, radio, dialog",),
    ),
    "aria-unsupported-elements": (
        ("4.1.2",),
        "Remove ARIA from unsupported elements",
        ("<meta>, <html>, <script> and <style> do not take ARIA attributes",),
    ),
    "autocomplete-valid": (
        ("1.3.5",),
        "Use valid autocomplete value",
        ('<input type="email" autoComplete="email" />', '<input type="tel" autoComplete="tel" />'),
    ),
    "click-events-have-key-events": (
        ("2.1.1",),
        "Add keyboard event handlers (onKeyDown)",
        (
            "<div onClick={handler} onKeyDown={onKey} tabIndex={0} role=\"button\">",
            "Or better: <button onClick={handler}>Click me</button>",
        ),
    ),
    "control-has-associated-label": (
        ("4.1.2",),
        "Add accessible label to form control",
        ('<input aria-label="Search" type="search" />', '<button aria-label="Close">x</button>'),
    ),
    "heading-has-content": (
        ("2.4.6",),
        "Add text content to heading element",
        ("<h1>Page title</h1>", "<h2>{sectionTitle}</h2>"),
    ),
    "html-has-lang": (
        ("3.1.1",),
        "Add lang attribute to <html> element",
        ('<html lang="en">',),
    ),
    "iframe-has-title": (
        ("4.1.2",),
        "Add title attribute to iframe",
        ('<iframe src="..." title="Embedded video player" />',),
    ),
    "img-redundant-alt": (
        ("1.1.1",),
        'Remove redundant words like "image" or "picture" from alt text',
        ('alt="Acme company logo" rather than alt="image of logo"',),
    ),
    "interactive-supports-focus": (
        ("2.1.1",),
        "Make interactive element keyboard focusable",
        ('<div role="button" tabIndex={0} onClick={handler}>', "Or use <button>"),
    ),
    "label-has-associated-control": (
        ("3.3.2",),
        "Associate label with form control",
        (
            '<label htmlFor="email">Email</label><input id="email" type="email" />',
            '<label>Email <input type="email" /></label>',
        ),
    ),
    "media-has-caption": (
        ("1.2.2",),
        "Add captions to video/audio elements",
        ('<video controls><track kind="captions" src="captions.vtt" /></video>',),
    ),
    "mouse-events-have-key-events": (
        ("2.1.1",),
        "Add keyboard equivalents for mouse events",
        ("Pair onMouseOver with onFocus and onMouseOut with onBlur",),
    ),
    "no-access-key": (
        ("2.4.1",),
        "Remove accessKey attribute",
        ("accessKey conflicts with screen reader and browser shortcuts",),
    ),
    "no-autofocus": (
        ("2.4.3",),
        "Remove autoFocus attribute",
        ("Let users control where focus starts",),
    ),
    "no-distracting-elements": (
        ("2.2.2",),
        "Remove <marquee> or <blink> elements",
        ("Use CSS animation that respects prefers-reduced-motion",),
    ),
    "no-interactive-element-to-noninteractive-role": (
        ("4.1.2",),
        "Do not override interactive element semantics",
        ('Avoid <button role="article">',),
    ),
    "no-noninteractive-element-interactions": (
        ("4.1.2",),
        "Add proper role to non-interactive element with handlers",
        ('<li role="button" tabIndex={0} onClick={handler} onKeyDown={onKey}>',),
    ),
    "no-noninteractive-element-to-interactive-role": (
        ("4.1.2",),
        "Use semantic interactive elements instead",
        ('Avoid <h1 role="button">; use <button>',),
    ),
    "no-noninteractive-tabindex": (
        ("2.1.1",),
        "Remove tabIndex from non-interactive elements",
        ('Remove tabIndex from <div>, or give it role="button"',),
    ),
    "no-redundant-roles": (
        ("4.1.2",),
        "Remove redundant role that matches implicit semantics",
        ('<nav role="navigation"> should be <nav>',),
    ),
    "no-static-element-interactions": (
        ("4.1.2",),
        "Replace with semantic button or add role and keyboard support",
        (
            "<button onClick={handler}>Click me</button>",
            '<div role="button" tabIndex={0} onClick={handler} onKeyDown={onKey}>',
        ),
    ),
    "role-has-required-aria-props": (
        ("4.1.2",),
        "Add required ARIA properties for this role",
        ('role="checkbox" requires aria-checked', 'role="slider" requires aria-valuemin, aria-valuemax and aria-valuenow'),
    ),
    "role-supports-aria-props": (
        ("4.1.2",),
        "Remove ARIA properties not supported by role",
        ("Each role supports only certain aria-* attributes",),
    ),
    "scope": (
        ("1.3.1",),
        "Use scope attribute only on <th> elements",
        ('<th scope="col">Name</th>',),
    ),
    "tabindex-no-positive": (
        ("2.4.3",),
        "Remove positive tabIndex values",
        ("Use tabIndex={0} for natural order", "Use tabIndex={-1} for programmatic focus only"),
    ),
}

DELEGATE_RULES: Mapping[str, RuleDefinition] = MappingProxyType(
    {
        f"{RULE_PREFIX}{name}": RuleDefinition(
            rule_id=f"{RULE_PREFIX}{name}",
            formats=frozenset({TEMPLATING}),
            severity="error",
            standard_refs=refs,
            remediation=(fix, *examples),
            summary=fix,
        )
        for name, (refs, fix, examples) in _DELEGATE_TABLE.items()
    }
)

def build_linter_config(extension: str, delegate: DelegateSettings) -> dict[str, Any]:
    config: dict[str, Any] = {
        "root": True,
        "env": {"browser": True, "es2022": True, "node": True},
        "parserOptions": {
            "ecmaVersion": "latest",
            "sourceType": "module",
            "ecmaFeatures": {"jsx": True},
        },
        "plugins": ["jsx-a11y"],
        "rules": {rule_id: "error" for rule_id in DELEGATE_RULES},
    }
    if extension in {".ts", ".tsx"} and delegate.typescript_parser:
        config["parser"] = delegate.typescript_parser
    config["settings"] = {
        "react": {"version": "detect"},
        "jsx-a11y": {"components": dict(delegate.components)},
    }
    return config


def build_command(delegate: DelegateSettings, config_path: str, filename: str) -> list[str]:
    command = [
        *delegate.command,
        "--no-eslintrc",
        "--config",
        config_path,
        "--format",
        "json",
        "--stdin",
        "--stdin-filename",
        filename,
    ]
    if delegate.resolve_plugins_relative_to:
        command.extend(["--resolve-plugins-relative-to", delegate.resolve_plugins_relative_to])
    return command


async def evaluate_templating(
    request: EvaluationRequest,
    settings: AnalyzerSettings | None = None,
) -> list[Violation]:
    delegate = (settings or AnalyzerSettings()).delegate
    if not delegate.command or which(delegate.command[0]) is None:
        logger.info("Lint delegate %r is not installed; skipping %s", delegate.command[:1], request.path)
        return []

    try:
        payload = await _run_linter(request, delegate)
        return to_violations(payload)
    except Exception as exc:
        logger.warning("Lint delegate failed for %s: %s", request.path, exc)
        return []


async def _run_linter(request: EvaluationRequest, delegate: DelegateSettings) -> Any:
    with tempfile.TemporaryDirectory(prefix="a11y-eslint-") as workdir:
        config_path = Path(workdir) / "eslintrc.json"
        config_path.write_text(json.dumps(build_linter_config(request.extension, delegate)), encoding="utf-8")

        process = await asyncio.create_subprocess_exec(
            *build_command(delegate, str(config_path), request.path),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=delegate.cwd,
            env={**os.environ, "ESLINT_USE_FLAT_CONFIG": "false"},
        )
        try:
            stdout, stderr = await process.communicate(request.content.encode("utf-8"))
        finally:
            # Cancelled by the batch timeout: stop eslint before its config goes away.
            if process.returncode is None:
                process.kill()
                await process.wait()

    # eslint exits 1 when it reports problems; anything else is a failed run.
    if process.returncode not in {0, 1}:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise RuntimeError(f"eslint exited with {process.returncode}: {detail[:400]}")
    return json.loads(stdout.decode("utf-8") or "[]")


def to_violations(payload: Any) -> list[Violation]:
    if not isinstance(payload, list):
        raise ValueError("eslint JSON output must be a list of file results")

    violations: list[Violation] = []
    for result in payload:
        for message in result.get("messages", []):
            rule_id = message.get("ruleId")
            if not rule_id:
                if message.get("fatal"):
                    logger.warning(
                        "Delegate could not parse %s: %s",
                        result.get("filePath"),
                        message.get("message"),
                    )
                continue
            if not rule_id.startswith(RULE_PREFIX):
                continue

            rule = DELEGATE_RULES.get(rule_id)
            violations.append(
                Violation(
                    rule_id=rule_id,
                    severity="error" if message.get("severity") == 2 else "warning",
                    message=str(message.get("message", "")),
                    line=int(message.get("line") or 1),
                    column=int(message.get("column") or 1),
                    standard_refs=rule.standard_refs if rule else (),
                    remediation=rule.remediation if rule else FALLBACK_FIX,
                )
            )
    return violations
