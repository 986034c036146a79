from __future__ import annotations

import re

from a11y_scanner.catalog import make_violation
from a11y_scanner.evaluators.common import (
    INTERACTIVE_ROLES,
    NON_DESCRIPTIVE_LINK_TEXT,
    UNLABELED_INPUT_TYPES,
    line_and_column,
    looks_interactive,
    run_isolated,
)
from a11y_scanner.models import STYLESHEET, AnalyzerSettings, Violation

# Attribute run inside a start tag. Brace groups cover JSX expressions such as
# onClick={() => open()} whose arrow would otherwise end the tag early.
_ATTRS = r"""(?:[^<>{}"']|"[^"]*"|'[^']*'|\{(?:[^{}]|\{(?:[^{}]|\{[^{}]*\})*\})*\})*"""

TAG_PATTERN = re.compile(r"<(?P<tag>[A-Za-z][\w.:-]*)(?P<attrs>" + _ATTRS + r")>", re.DOTALL)
BUTTON_PATTERN = re.compile(r"<button\b(?P<attrs>" + _ATTRS + r")>(?P<inner>.*?)</button\s*>", re.DOTALL | re.IGNORECASE)
LINK_PATTERN = re.compile(r"<a\b(?P<attrs>" + _ATTRS + r")>(?P<inner>.*?)</a\s*>", re.DOTALL | re.IGNORECASE)
HEADING_PATTERN = re.compile(r"<h([1-6])(?=[\s>/])", re.IGNORECASE)
ID_PATTERN = re.compile(r"(?<![\w-])id\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")
ARIA_REFERENCE_PATTERN = re.compile(
    r"(?<![\w-])aria-(labelledby|describedby)\s*=\s*(?:\"([^\"]*)\"|'([^']*)')",
    re.IGNORECASE,
)
LABEL_FOR_PATTERN = re.compile(
    r"<label\b[^>]*?\b(?:for|htmlFor)\s*=\s*(?:\"([^\"]+)\"|'([^']+)'|\{\s*[\"']([^\"']+)[\"']\s*\})",
    re.IGNORECASE,
)
STYLE_BLOCK_PATTERN = re.compile(r"(<style\b[^>]*>)(.*?)</style\s*>", re.DOTALL | re.IGNORECASE)
CSS_COMMENT_PATTERN = re.compile(r"/\*.*?\*/", re.DOTALL)
CSS_RULE_PATTERN = re.compile(r"(?P<selector>[^{}]+)\{(?P<body>[^{}]*)\}")
INNER_TAG_PATTERN = re.compile(r"<[^>]*>")

OUTLINE_REMOVED = re.compile(
    r"(?<![\w-])outline(?:-style)?\s*:\s*(?:none|0(?:px)?)\s*(?:!important)?\s*(?:;|$)"
    r"|(?<![\w-])outline-width\s*:\s*0(?:px)?\s*(?:!important)?\s*(?:;|$)",
    re.IGNORECASE,
)
FOCUS_ALTERNATIVE = re.compile(
    r"(?<![\w-])box-shadow\s*:\s*(?!none)"
    r"|(?<![\w-])border(?:-(?!radius)[a-z-]+)?\s*:"
    r"|(?<![\w-])outline\s*:\s*(?!none|0(?:px)?\s*(?:;|$))\S*\d"
    r"|(?<![\w-])outline-width\s*:\s*[1-9]"
    r"|(?<![\w-])background(?:-color)?\s*:"
    r"|(?<![\w-])text-decoration(?:-line)?\s*:\s*underline",
    re.IGNORECASE,
)
FONT_SIZE = re.compile(r"(?<![\w-])font-size\s*:\s*(\d*\.?\d+)(px|pt)\b", re.IGNORECASE)
DIMENSION = re.compile(r"(?<![\w-])(?:min-)?(width|height)\s*:\s*(\d*\.?\d+)px\b", re.IGNORECASE)
TRANSPARENT_TEXT = re.compile(
    r"(?<![\w-])color\s*:\s*(?:transparent|rgba\([^)]*,\s*0(?:\.0+)?\s*\)|hsla\([^)]*,\s*0(?:\.0+)?\s*\))",
    re.IGNORECASE,
)
DISPLAY_NONE = re.compile(r"(?<![\w-])display\s*:\s*none\b", re.IGNORECASE)
POINTER_EVENTS_NONE = re.compile(r"(?<![\w-])pointer-events\s*:\s*none\b", re.IGNORECASE)

NATIVE_INTERACTIVE_TAGS = frozenset({"a", "button", "input", "select", "textarea", "summary", "option"})
MIN_PREPASS_FONT_PX = 10.0


def run_prepass(content: str, *, kind: str, settings: AnalyzerSettings | None = None) -> list[Violation]:
    settings = settings or AnalyzerSettings()
    if kind == STYLESHEET:
        return _stylesheet_checks(content, 0, content, settings)

    violations = run_isolated(
        (
            _check_images,
            _check_click_handlers,
            _check_buttons,
            _check_form_controls,
            _check_links,
            _check_html_lang,
            _check_headings,
            _check_duplicate_ids,
            _check_aria_references,
            _check_iframes,
        ),
        content,
    )
    for match in STYLE_BLOCK_PATTERN.finditer(content):
        violations.extend(_stylesheet_checks(match.group(2), match.start(2), content, settings))
    return violations


def _attr_value(attrs: str, name: str) -> str | None:
    match = re.search(
        r"(?:^|\s)" + name + r"\s*=\s*(?:\"([^\"]*)\"|'([^']*)'|\{([^}]*)\}|([^\s>\"'{}]+))",
        attrs,
        re.IGNORECASE,
    )
    if match is None:
        if re.search(r"(?:^|\s)" + name + r"(?=[\s/]|$)", attrs, re.IGNORECASE):
            return ""
        return None
    return next(group for group in match.groups() if group is not None)


def _has_attr(attrs: str, *names: str) -> bool:
    return any(_attr_value(attrs, name) is not None for name in names)


def _has_key_handler(attrs: str) -> bool:
    return bool(re.search(r"(?:^|\s)on[kK]ey(?:[dD]own|[uU]p|[pP]ress)\s*=", attrs))


def _violation(content: str, offset: int, rule_id: str, message: str) -> Violation:
    line, column = line_and_column(content, offset)
    return make_violation(rule_id, message, line=line, column=column)


def _check_images(content: str) -> list[Violation]:
    violations: list[Violation] = []
    for match in TAG_PATTERN.finditer(content):
        if match.group("tag").lower() != "img":
            continue
        if not _has_attr(match.group("attrs"), "alt"):
            violations.append(_violation(content, match.start(), "img-missing-alt", "Image is missing an alt attribute"))
    return violations


def _check_click_handlers(content: str) -> list[Violation]:
    violations: list[Violation] = []
    for match in TAG_PATTERN.finditer(content):
        tag = match.group("tag")
        attrs = match.group("attrs")
        if tag.lower() in NATIVE_INTERACTIVE_TAGS or tag[:1].isupper():
            continue
        role = (_attr_value(attrs, "role") or "").strip().lower()
        focusable = _has_attr(attrs, "tabindex", "tabIndex")
        keyboard = _has_key_handler(attrs)

        if tag.lower() in {"div", "span"} and re.search(r"(?:^|\s)on[cC]lick\s*=", attrs):
            missing = [
                name
                for name, present in (("role", bool(role)), ("tabindex", focusable), ("keyboard handler", keyboard))
                if not present
            ]
            if missing:
                violations.append(
                    _violation(
                        content,
                        match.start(),
                        "div-button",
                        f"<{tag}> with a click handler is missing {', '.join(missing)}",
                    )
                )
            continue

        if role in INTERACTIVE_ROLES and not (focusable and keyboard):
            violations.append(
                _violation(
                    content,
                    match.start(),
                    "custom-interactive-missing-keyboard",
                    f'<{tag} role="{role}"> is not focusable or has no keyboard handler',
                )
            )
    return violations


def _check_buttons(content: str) -> list[Violation]:
    violations: list[Violation] = []
    for match in BUTTON_PATTERN.finditer(content):
        attrs = match.group("attrs")
        inner = match.group("inner")
        if _has_attr(attrs, "aria-label", "aria-labelledby", "title"):
            continue
        if "{" in inner or INNER_TAG_PATTERN.sub("", inner).strip():
            continue
        if re.search(r"<img\b[^>]*\balt\s*=\s*[\"'][^\"']+[\"']", inner, re.IGNORECASE):
            continue
        violations.append(
            _violation(content, match.start(), "button-missing-accessible-name", "Button has no accessible name")
        )
    return violations


def _label_targets(content: str) -> set[str]:
    return {next(group for group in match.groups() if group) for match in LABEL_FOR_PATTERN.finditer(content)}


def _inside_label(content: str, offset: int) -> bool:
    opened = content.lower().rfind("<label", 0, offset)
    closed = content.lower().rfind("</label", 0, offset)
    return opened > closed


def _check_form_controls(content: str) -> list[Violation]:
    violations: list[Violation] = []
    targets = _label_targets(content)
    for match in TAG_PATTERN.finditer(content):
        tag = match.group("tag").lower()
        attrs = match.group("attrs")
        if tag not in {"input", "select", "textarea"}:
            continue
        if tag == "input" and (_attr_value(attrs, "type") or "text").lower() in UNLABELED_INPUT_TYPES:
            continue
        if _has_attr(attrs, "aria-label", "aria-labelledby") or _inside_label(content, match.start()):
            continue

        control_id = _attr_value(attrs, "id")
        if control_id and control_id in targets:
            continue
        if control_id:
            violations.append(
                _violation(
                    content,
                    match.start(),
                    "input-missing-label",
                    f'<{tag} id="{control_id}"> has no <label for="{control_id}">',
                )
            )
        else:
            violations.append(
                _violation(content, match.start(), "input-no-id-or-label", f"<{tag}> has no id, label or aria-label")
            )
        if _has_attr(attrs, "placeholder"):
            violations.append(
                _violation(content, match.start(), "placeholder-as-label", f"<{tag}> relies on its placeholder as a label")
            )
    return violations


def _check_links(content: str) -> list[Violation]:
    violations: list[Violation] = []
    for match in LINK_PATTERN.finditer(content):
        text = " ".join(INNER_TAG_PATTERN.sub(" ", match.group("inner")).split()).lower()
        if text in NON_DESCRIPTIVE_LINK_TEXT:
            violations.append(
                _violation(content, match.start(), "link-non-descriptive", f'Link text "{text}" is not descriptive')
            )
    return violations


def _check_html_lang(content: str) -> list[Violation]:
    violations: list[Violation] = []
    for match in TAG_PATTERN.finditer(content):
        if match.group("tag").lower() == "html" and not _attr_value(match.group("attrs"), "lang"):
            violations.append(
                _violation(content, match.start(), "html-missing-lang", "<html> element has no lang attribute")
            )
    return violations


def _check_headings(content: str) -> list[Violation]:
    headings = [(int(match.group(1)), match.start()) for match in HEADING_PATTERN.finditer(content)]
    if not headings:
        return []

    violations: list[Violation] = []
    if all(level != 1 for level, _ in headings):
        violations.append(_violation(content, headings[0][1], "missing-h1", "Document has headings but no <h1>"))
    for (previous, _), (level, offset) in zip(headings, headings[1:]):
        if level > previous + 1:
            violations.append(
                _violation(content, offset, "heading-level-skip", f"Heading jumps from h{previous} to h{level}")
            )
    return violations


def _check_duplicate_ids(content: str) -> list[Violation]:
    seen: set[str] = set()
    violations: list[Violation] = []
    for match in ID_PATTERN.finditer(content):
        value = match.group(1) if match.group(1) is not None else match.group(2)
        if not value:
            continue
        if value in seen:
            violations.append(_violation(content, match.start(), "duplicate-id", f'id "{value}" is used more than once'))
        seen.add(value)
    return violations


def _check_aria_references(content: str) -> list[Violation]:
    declared = {
        match.group(1) if match.group(1) is not None else match.group(2) for match in ID_PATTERN.finditer(content)
    }
    violations: list[Violation] = []
    for match in ARIA_REFERENCE_PATTERN.finditer(content):
        kind = match.group(1).lower()
        refs = (match.group(2) if match.group(2) is not None else match.group(3)).split()
        missing = [ref for ref in refs if ref not in declared]
        if missing:
            violations.append(
                _violation(
                    content,
                    match.start(),
                    f"aria-{kind}-invalid",
                    f"aria-{kind} references missing id(s): {', '.join(missing)}",
                )
            )
    return violations


def _check_iframes(content: str) -> list[Violation]:
    violations: list[Violation] = []
    for match in TAG_PATTERN.finditer(content):
        if match.group("tag").lower() != "iframe":
            continue
        if not (_attr_value(match.group("attrs"), "title") or "").strip():
            violations.append(_violation(content, match.start(), "iframe-missing-title", "iframe has no title"))
    return violations


def _stylesheet_checks(css: str, base: int, content: str, settings: AnalyzerSettings) -> list[Violation]:
    # Comments are blanked rather than removed so offsets still map onto content.
    stripped = CSS_COMMENT_PATTERN.sub(lambda match: re.sub(r"[^\n]", " ", match.group(0)), css)
    blocks = [
        (match.group("selector").strip(), match.group("body"), base + match.start("body"))
        for match in CSS_RULE_PATTERN.finditer(stripped)
    ]
    return run_isolated(
        (
            _check_outline_removal,
            _check_small_fonts,
            _check_touch_targets,
            _check_transparent_text,
            _check_hidden_interactive,
        ),
        blocks,
        content,
        settings,
    )


def _check_outline_removal(blocks, content: str, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for index, (selector, body, offset) in enumerate(blocks):
        removal = OUTLINE_REMOVED.search(body)
        if removal is None:
            continue
        if FOCUS_ALTERNATIVE.search(OUTLINE_REMOVED.sub("", body)):
            continue
        nearby = blocks[max(0, index - 2): index] + blocks[index + 1: index + 3]
        if any(":focus" in other and FOCUS_ALTERNATIVE.search(other_body) for other, other_body, _ in nearby):
            continue
        violations.append(
            _violation(
                content,
                offset + removal.start(),
                "outline-none-no-alternative",
                f"'{selector}' removes the outline without an alternative focus style",
            )
        )
    return violations


def _check_small_fonts(blocks, content: str, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for selector, body, offset in blocks:
        for match in FONT_SIZE.finditer(body):
            size = float(match.group(1))
            pixels = size * 4 / 3 if match.group(2).lower() == "pt" else size
            if pixels < MIN_PREPASS_FONT_PX:
                violations.append(
                    _violation(
                        content,
                        offset + match.start(),
                        "font-size-too-small",
                        f"'{selector}' sets font-size {match.group(1)}{match.group(2)}",
                    )
                )
    return violations


def _check_touch_targets(blocks, content: str, settings: AnalyzerSettings) -> list[Violation]:
    minimum = settings.thresholds.min_touch_target_px
    violations: list[Violation] = []
    for selector, body, offset in blocks:
        if not looks_interactive(selector):
            continue
        for match in DIMENSION.finditer(body):
            size = float(match.group(2))
            if 0 < size < minimum:
                violations.append(
                    _violation(
                        content,
                        offset + match.start(),
                        "touch-target-too-small",
                        f"'{selector}' {match.group(1)} is {match.group(2)}px, below {minimum:g}px",
                    )
                )
                break
    return violations


def _check_transparent_text(blocks, content: str, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for selector, body, offset in blocks:
        match = TRANSPARENT_TEXT.search(body)
        if match:
            violations.append(
                _violation(content, offset + match.start(), "text-transparent", f"'{selector}' makes text transparent")
            )
    return violations


def _check_hidden_interactive(blocks, content: str, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for selector, body, offset in blocks:
        if not looks_interactive(selector):
            continue
        for pattern, rule_id, label in (
            (DISPLAY_NONE, "display-none-interactive", "display: none"),
            (POINTER_EVENTS_NONE, "pointer-events-none-interactive", "pointer-events: none"),
        ):
            match = pattern.search(body)
            if match:
                violations.append(
                    _violation(content, offset + match.start(), rule_id, f"'{selector}' sets {label}")
                )
    return violations
