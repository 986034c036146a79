from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from a11y_scanner.catalog import make_violation
from a11y_scanner.evaluators.common import (
    INTERACTIVE_ROLES,
    NON_DESCRIPTIVE_LINK_TEXT,
    ROLE_REQUIRED_PROPS,
    UNLABELED_INPUT_TYPES,
    VALID_ARIA_ROLES,
    line_and_column,
    run_isolated,
)
from a11y_scanner.models import AnalyzerSettings, EvaluationRequest, ParseOutcome, Violation

logger = logging.getLogger(__name__)

REDUNDANT_ALT = re.compile(r"\b(image|picture|photo|graphic)\s+(of|depicting)\b", re.IGNORECASE)
NEW_WINDOW_HINT = re.compile(r"new (window|tab)|opens in", re.IGNORECASE)
INLINE_OUTLINE_REMOVED = re.compile(r"style\s*=\s*[\"'][^\"']*outline\s*:\s*(none|0)\b", re.IGNORECASE)
DEPRECATED_ELEMENT = re.compile(r"<(marquee|blink)\b", re.IGNORECASE)
HTML_START = re.compile(r"<html\b[^>]*>", re.IGNORECASE)
FULL_DOCUMENT = re.compile(r"<(html|body|!doctype)\b", re.IGNORECASE)
TITLE = re.compile(r"<title\b[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)
MAIN_LANDMARK = re.compile(r"<main\b|role\s*=\s*[\"']main[\"']", re.IGNORECASE)
TABINDEX_NUMBER = re.compile(r"[+-]?\d+(?:\.0+)?")

PERSONAL_INPUT_TYPES = frozenset({"email", "tel"})
PERSONAL_NAME_HINTS = (
    "email", "name", "tel", "phone", "address", "postal", "zip", "country", "card", "cc-", "birthday",
)
KEY_HANDLERS = ("onkeydown", "onkeyup", "onkeypress")
NAV_TEXT_CONTAINERS = frozenset({"p", "li", "td", "th", "dd", "dt", "blockquote", "figcaption", "caption", "span"})

IMPLICIT_ROLES = {
    "button": "button",
    "a": "link",
    "nav": "navigation",
    "main": "main",
    "header": "banner",
    "footer": "contentinfo",
    "aside": "complementary",
    "section": "region",
    "article": "article",
    "form": "form",
    "table": "table",
    "ul": "list",
    "ol": "list",
    "li": "listitem",
    "h1": "heading",
    "h2": "heading",
    "h3": "heading",
    "h4": "heading",
    "h5": "heading",
    "h6": "heading",
    "img": "img",
    "select": "combobox",
    "textarea": "textbox",
}
IMPLICIT_INPUT_ROLES = {"checkbox": "checkbox", "radio": "radio"}


@dataclass(frozen=True)
class MarkupContext:
    label_targets: frozenset[str]
    ids: frozenset[str]


@dataclass
class DocumentFacts:
    elements: list[Tag] = field(default_factory=list)
    headings: list[tuple[int, Tag]] = field(default_factory=list)
    ids: list[tuple[str, Tag]] = field(default_factory=list)
    radios: dict[str, list[Tag]] = field(default_factory=dict)
    anchor_parents: list[Tag] = field(default_factory=list)


def parse_markup(content: str) -> ParseOutcome:
    try:
        soup = BeautifulSoup(content, "html.parser")
    except Exception as exc:
        logger.warning("Markup parse failed: %s", exc)
        return ParseOutcome(tree=None, diagnostics=(str(exc),))
    return ParseOutcome(tree=soup)


def evaluate_markup(request: EvaluationRequest, settings: AnalyzerSettings | None = None) -> list[Violation]:
    violations = run_isolated(
        (_check_root_lang, _check_title, _check_main_landmark, _check_deprecated_elements, _check_inline_outline),
        request.content,
    )

    outcome = parse_markup(request.content)
    if not outcome.ok:
        logger.warning("Skipping tree checks for %s: %s", request.path, "; ".join(outcome.diagnostics))
        return violations

    soup = outcome.tree
    context = MarkupContext(
        label_targets=frozenset(str(tag["for"]) for tag in soup.find_all("label", attrs={"for": True})),
        ids=frozenset(str(tag["id"]) for tag in soup.find_all(attrs={"id": True})),
    )
    facts = DocumentFacts()
    for element in soup.find_all(True):
        violations.extend(run_isolated(NODE_CHECKS, element, context))
        _collect(element, facts)

    violations.extend(
        run_isolated(
            (_check_duplicate_ids, _check_heading_hierarchy, _check_radio_groups, _check_navigation_groups),
            facts,
        )
    )
    return violations


def _collect(element: Tag, facts: DocumentFacts) -> None:
    facts.elements.append(element)
    name = element.name.lower()
    if re.fullmatch(r"h[1-6]", name):
        facts.headings.append((int(name[1]), element))
    element_id = element.get("id")
    if element_id:
        facts.ids.append((str(element_id), element))
    if name == "input" and _attr(element, "type").lower() == "radio" and _attr(element, "name"):
        facts.radios.setdefault(_attr(element, "name"), []).append(element)
    anchors = [child for child in element.find_all("a", recursive=False) if child.has_attr("href")]
    if len(anchors) >= 3:
        facts.anchor_parents.append(element)


def _attr(element: Tag, name: str) -> str:
    value = element.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _location(element: Tag) -> tuple[int, int]:
    line = element.sourceline or 1
    column = (element.sourcepos or 0) + 1
    return line, column


def _violation(element: Tag, rule_id: str, message: str) -> Violation:
    line, column = _location(element)
    return make_violation(rule_id, message, line=line, column=column)


def _text(element: Tag) -> str:
    return " ".join(element.get_text(" ", strip=True).split())


def _has_name(element: Tag) -> bool:
    if _attr(element, "aria-label").strip() or _attr(element, "aria-labelledby").strip():
        return True
    if _attr(element, "title").strip():
        return True
    if _text(element):
        return True
    return any(_attr(image, "alt").strip() for image in element.find_all("img"))


def _is_labelled(element: Tag, context: MarkupContext) -> bool:
    if _attr(element, "aria-label").strip():
        return True
    labelledby = _attr(element, "aria-labelledby").split()
    if any(ref in context.ids for ref in labelledby):
        return True
    element_id = _attr(element, "id")
    if element_id and element_id in context.label_targets:
        return True
    return element.find_parent("label") is not None


def _check_image(element: Tag, context: MarkupContext) -> list[Violation]:
    if element.name != "img":
        return []
    if not element.has_attr("alt"):
        return [_violation(element, "img-missing-alt", "Image is missing an alt attribute")]
    if REDUNDANT_ALT.search(_attr(element, "alt")):
        return [_violation(element, "img-redundant-alt", f'Alt text "{_attr(element, "alt")}" repeats that this is an image')]
    return []


def _check_form_control(element: Tag, context: MarkupContext) -> list[Violation]:
    if element.name not in {"input", "select", "textarea"}:
        return []
    input_type = _attr(element, "type").lower() or "text"
    if element.name == "input" and input_type in UNLABELED_INPUT_TYPES:
        return []

    violations: list[Violation] = []
    if not _is_labelled(element, context):
        violations.append(
            _violation(element, "form-input-missing-label", f"<{element.name}> has no associated label")
        )
        if element.has_attr("placeholder"):
            violations.append(
                _violation(element, "placeholder-as-label", f"<{element.name}> uses its placeholder as the label")
            )

    hints = f"{_attr(element, 'name')} {_attr(element, 'id')}".lower()
    personal = input_type in PERSONAL_INPUT_TYPES or any(hint in hints for hint in PERSONAL_NAME_HINTS)
    if element.name == "input" and personal and not element.has_attr("autocomplete"):
        violations.append(
            _violation(element, "missing-autocomplete", "Personal-data field has no autocomplete attribute")
        )
    if element.has_attr("required") and not element.has_attr("aria-required"):
        violations.append(
            _violation(element, "required-not-indicated", "Required field has no aria-required attribute")
        )
    return violations


def _check_empty_controls(element: Tag, context: MarkupContext) -> list[Violation]:
    if element.name == "button" and not _has_name(element):
        return [_violation(element, "button-empty", "Button has no text or accessible name")]
    if element.name == "a" and element.has_attr("href") and not _has_name(element):
        return [_violation(element, "link-empty", "Link has no text or accessible name")]
    if re.fullmatch(r"h[1-6]", element.name) and not _has_name(element):
        return [_violation(element, "heading-empty", f"<{element.name}> has no text content")]
    return []


def _check_link_text(element: Tag, context: MarkupContext) -> list[Violation]:
    if element.name != "a":
        return []
    violations: list[Violation] = []
    text = _text(element).lower()
    if text in NON_DESCRIPTIVE_LINK_TEXT:
        violations.append(_violation(element, "link-non-descriptive", f'Link text "{text}" is not descriptive'))
    if _attr(element, "target").lower() == "_blank":
        name = f"{_attr(element, 'aria-label')} {_text(element)} {_attr(element, 'title')}"
        if not NEW_WINDOW_HINT.search(name):
            violations.append(
                _violation(element, "link-new-window-no-warning", "Link opens a new window without warning")
            )
    return violations


def _check_iframe(element: Tag, context: MarkupContext) -> list[Violation]:
    if element.name == "iframe" and not _attr(element, "title").strip():
        return [_violation(element, "iframe-missing-title", "iframe has no title")]
    return []


def _check_click_target(element: Tag, context: MarkupContext) -> list[Violation]:
    if element.name not in {"div", "span"} or not element.has_attr("onclick"):
        return []
    missing = []
    if _attr(element, "role").lower() not in INTERACTIVE_ROLES:
        missing.append("interactive role")
    if not element.has_attr("tabindex"):
        missing.append("tabindex")
    if not any(element.has_attr(handler) for handler in KEY_HANDLERS):
        missing.append("keyboard handler")
    if not missing:
        return []
    return [
        _violation(
            element,
            "div-as-button",
            f"<{element.name}> with onclick is missing {', '.join(missing)}",
        )
    ]


def _check_tabindex(element: Tag, context: MarkupContext) -> list[Violation]:
    value = _attr(element, "tabindex").strip()
    if TABINDEX_NUMBER.fullmatch(value) and float(value) > 0:
        return [_violation(element, "positive-tabindex", f'tabindex="{value}" changes the natural focus order')]
    return []


def _check_table(element: Tag, context: MarkupContext) -> list[Violation]:
    if element.name != "table" or _attr(element, "role").lower() in {"presentation", "none"}:
        return []
    if element.find("th") is None and element.find("thead") is None:
        return [_violation(element, "table-missing-headers", "Table has no <th> or <thead>")]
    return []


def _check_media(element: Tag, context: MarkupContext) -> list[Violation]:
    if element.name not in {"video", "audio"}:
        return []
    violations: list[Violation] = []
    if element.has_attr("autoplay") and not (element.has_attr("muted") or element.has_attr("controls")):
        violations.append(
            _violation(element, "autoplay-media", f"<{element.name}> autoplays without muted or controls")
        )
    tracks = element.find_all("track")
    if not any(_attr(track, "kind").lower() in {"captions", "subtitles"} for track in tracks):
        violations.append(_violation(element, "media-no-captions", f"<{element.name}> has no captions track"))
    return violations


def _check_roles(element: Tag, context: MarkupContext) -> list[Violation]:
    roles = _attr(element, "role").lower().split()
    if not roles:
        return []

    violations: list[Violation] = []
    role = roles[0]
    implicit = IMPLICIT_ROLES.get(element.name)
    if element.name == "input":
        implicit = IMPLICIT_INPUT_ROLES.get(_attr(element, "type").lower())
    if implicit and role == implicit:
        violations.append(_violation(element, "redundant-role", f'role="{role}" is implicit on <{element.name}>'))

    invalid = [token for token in roles if token not in VALID_ARIA_ROLES]
    if invalid:
        violations.append(
            _violation(element, "invalid-aria-role", f"Invalid ARIA role(s): {', '.join(invalid)}")
        )

    native_checked = element.name == "input" and _attr(element, "type").lower() in {"checkbox", "radio"}
    for prop in ROLE_REQUIRED_PROPS.get(role, ()):
        if prop == "aria-checked" and native_checked:
            continue
        if not element.has_attr(prop):
            violations.append(
                _violation(element, "missing-aria-required", f'role="{role}" requires {prop}')
            )
    return violations


NODE_CHECKS = (
    _check_image,
    _check_form_control,
    _check_empty_controls,
    _check_link_text,
    _check_iframe,
    _check_click_target,
    _check_tabindex,
    _check_table,
    _check_media,
    _check_roles,
)


def _check_duplicate_ids(facts: DocumentFacts) -> list[Violation]:
    seen: set[str] = set()
    violations: list[Violation] = []
    for value, element in facts.ids:
        if value in seen:
            violations.append(_violation(element, "duplicate-id", f'id "{value}" is used more than once'))
        seen.add(value)
    return violations


def _check_heading_hierarchy(facts: DocumentFacts) -> list[Violation]:
    violations: list[Violation] = []
    for (previous, _), (level, element) in zip(facts.headings, facts.headings[1:]):
        if level > previous + 1:
            violations.append(
                _violation(element, "heading-hierarchy", f"Heading jumps from h{previous} to h{level}")
            )
    return violations


def _grouped(radio: Tag) -> bool:
    fieldset = radio.find_parent("fieldset")
    if fieldset is not None and fieldset.find("legend") is not None:
        return True
    group = radio.find_parent(attrs={"role": "radiogroup"})
    return group is not None and bool(_attr(group, "aria-label") or _attr(group, "aria-labelledby"))


def _check_radio_groups(facts: DocumentFacts) -> list[Violation]:
    violations: list[Violation] = []
    for name, radios in facts.radios.items():
        if len(radios) < 2:
            continue
        if not all(_grouped(radio) for radio in radios):
            violations.append(
                _violation(
                    radios[0],
                    "radio-missing-fieldset",
                    f'Radio group "{name}" is not wrapped in a fieldset with a legend',
                )
            )
    return violations


def _in_navigation(element: Tag) -> bool:
    for node in [element, *element.parents]:
        if not isinstance(node, Tag):
            continue
        if node.name == "nav" or _attr(node, "role").lower() == "navigation":
            return True
    return False


def _check_navigation_groups(facts: DocumentFacts) -> list[Violation]:
    violations: list[Violation] = []
    for parent in facts.anchor_parents:
        if parent.name in NAV_TEXT_CONTAINERS or _in_navigation(parent):
            continue
        violations.append(
            _violation(parent, "non-semantic-navigation", "Group of links is not inside a <nav> landmark")
        )
    return violations


def _document_violation(content: str, offset: int, rule_id: str, message: str) -> Violation:
    line, column = line_and_column(content, offset)
    return make_violation(rule_id, message, line=line, column=column)


def _check_root_lang(content: str) -> list[Violation]:
    match = HTML_START.search(content)
    if match is None:
        if FULL_DOCUMENT.search(content):
            return [_document_violation(content, 0, "missing-lang", "Document has no <html lang> declaration")]
        return []
    if not re.search(r"\slang\s*=\s*[\"']?[\w-]+", match.group(0), re.IGNORECASE):
        return [_document_violation(content, match.start(), "missing-lang", "<html> element has no lang attribute")]
    return []


def _check_title(content: str) -> list[Violation]:
    if not FULL_DOCUMENT.search(content):
        return []
    match = TITLE.search(content)
    if match is None:
        return [_document_violation(content, 0, "title-empty", "Document has no <title>")]
    if not match.group(1).strip():
        return [_document_violation(content, match.start(), "title-empty", "Document <title> is empty")]
    return []


def _check_main_landmark(content: str) -> list[Violation]:
    if FULL_DOCUMENT.search(content) and not MAIN_LANDMARK.search(content):
        return [_document_violation(content, 0, "missing-main-landmark", "Document has no <main> landmark")]
    return []


def _check_deprecated_elements(content: str) -> list[Violation]:
    return [
        _document_violation(
            content,
            match.start(),
            "marquee-element",
            f"<{match.group(1).lower()}> is deprecated and distracting",
        )
        for match in DEPRECATED_ELEMENT.finditer(content)
    ]


def _check_inline_outline(content: str) -> list[Violation]:
    return [
        _document_violation(content, match.start(), "focus-outline-removed", "Inline style removes the focus outline")
        for match in INLINE_OUTLINE_REMOVED.finditer(content)
    ]
