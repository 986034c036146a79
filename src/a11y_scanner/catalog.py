from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping

from a11y_scanner.evaluators.templating import DELEGATE_RULES
from a11y_scanner.models import MARKUP, SCRIPT, STYLESHEET, TEMPLATING, RuleDefinition, Violation

PAGE_FORMATS = frozenset({MARKUP, TEMPLATING})

DEFAULT_REMEDIATION = (
    "Review WCAG 2.2 documentation for this violation",
    "Consult with accessibility team for specific guidance",
)

_RULES: dict[str, RuleDefinition] = {}


def _rule(
    rule_id: str,
    formats: frozenset[str],
    severity: str,
    refs: tuple[str, ...],
    summary: str,
    *remediation: str,
) -> None:
    _RULES[rule_id] = RuleDefinition(
        rule_id=rule_id,
        formats=formats,
        severity=severity,
        standard_refs=refs,
        remediation=tuple(remediation),
        summary=summary,
    )


# Pattern pre-pass and markup rules.
_rule(
    "img-missing-alt", PAGE_FORMATS, "error", ("1.1.1",),
    "Image has no alt attribute",
    'Add alt text: <img src="logo.png" alt="Company logo">',
    'Mark decorative images with an empty alt: <img src="divider.png" alt="">',
    "Describe what the image conveys rather than that it is an image",
)
_rule(
    "img-redundant-alt", frozenset({MARKUP}), "warning", ("1.1.1",),
    "Alt text repeats that the element is an image",
    'Drop words such as "image", "picture" or "photo" from the alt text',
    "Describe the content or purpose of the image instead",
)
_rule(
    "div-button", PAGE_FORMATS, "error", ("2.1.1", "4.1.2"),
    "Click handler on a non-interactive element without role, tabindex and key handler",
    "Use a native <button> for clickable controls",
    'Or add role="button", tabindex="0" and a keydown handler for Enter and Space',
)
_rule(
    "div-as-button", frozenset({MARKUP}), "error", ("4.1.2",),
    "div or span used as a button without the full interactive triad",
    'Use a <button> element: <button onclick="save()">Save</button>',
    'Or add role="button", tabindex="0" and an onkeydown handler',
)
_rule(
    "custom-interactive-missing-keyboard", PAGE_FORMATS, "error", ("2.1.1",),
    "Element with an interactive role is not keyboard operable",
    'Add tabindex="0" so the element can receive focus',
    "Handle Enter and Space in a keydown handler",
    "Prefer the native element that carries this role",
)
_rule(
    "button-missing-accessible-name", PAGE_FORMATS, "error", ("4.1.2",),
    "Button has no text and no accessible name",
    "Put visible text inside the button",
    'Or name it with aria-label: <button aria-label="Close dialog">x</button>',
)
_rule(
    "button-empty", frozenset({MARKUP}), "error", ("4.1.2",),
    "Button has no text content or accessible name",
    "Add text content: <button>Submit</button>",
    'Or add aria-label: <button aria-label="Close dialog">x</button>',
)
_rule(
    "link-empty", frozenset({MARKUP}), "error", ("2.4.4",),
    "Link has no text content or accessible name",
    'Add link text: <a href="/pricing">Pricing plans</a>',
    'Or add aria-label: <a href="/next" aria-label="Next page">&rarr;</a>',
)
_rule(
    "link-non-descriptive", PAGE_FORMATS, "warning", ("2.4.4",),
    "Link text does not describe its destination",
    'Replace phrases like "click here" or "read more" with the destination',
    'Example: "Read the accessibility guide" instead of "Click here"',
)
_rule(
    "link-new-window-no-warning", frozenset({MARKUP}), "warning", ("3.2.5",),
    "Link opens a new window without telling the user",
    'Add warning text: <a href="..." target="_blank">Docs (opens in new window)</a>',
    'Or include it in the accessible name: aria-label="Docs, opens in new window"',
)
_rule(
    "input-missing-label", PAGE_FORMATS, "error", ("1.3.1", "3.3.2", "4.1.2"),
    "Form control has an id but no label pointing at it",
    '<label for="email">Email</label><input id="email" type="email">',
    'Or use aria-label: <input type="email" aria-label="Email">',
)
_rule(
    "input-no-id-or-label", PAGE_FORMATS, "error", ("1.3.1", "3.3.2", "4.1.2"),
    "Form control has neither an id nor an accessible label",
    "Give the control an id and a matching <label for>",
    "Or wrap it: <label>Email <input type=\"email\"></label>",
    "Or add aria-label or aria-labelledby",
)
_rule(
    "form-input-missing-label", frozenset({MARKUP}), "error", ("3.3.2", "4.1.2"),
    "Form control has no resolvable label",
    '<label for="username">Username</label><input id="username" type="text">',
    'Or use aria-label: <input type="text" aria-label="Username">',
    'Or aria-labelledby: <span id="user-label">Username</span><input aria-labelledby="user-label">',
)
_rule(
    "placeholder-as-label", PAGE_FORMATS, "warning", ("3.3.2",),
    "Placeholder is the only label for this control",
    '<label for="name">Name</label><input id="name" placeholder="e.g. Ada">',
    "Placeholders vanish while typing and are not announced consistently",
)
_rule(
    "missing-autocomplete", frozenset({MARKUP}), "warning", ("1.3.5",),
    "Personal-data field has no autocomplete token",
    'Add autocomplete: <input type="text" name="name" autocomplete="name">',
    'Use tokens such as autocomplete="email", "tel" or "cc-number"',
)
_rule(
    "required-not-indicated", frozenset({MARKUP}), "info", ("3.3.2",),
    "Required field is not marked as required for assistive technology",
    'Add aria-required="true" next to the required attribute',
    'Show the requirement in the label: <label>Email <span aria-hidden="true">*</span></label>',
)
_rule(
    "iframe-missing-title", PAGE_FORMATS, "error", ("4.1.2",),
    "iframe has no title",
    'Add a title: <iframe src="..." title="Embedded video player"></iframe>',
    "The title should describe what the frame contains",
)
_rule(
    "positive-tabindex", frozenset({MARKUP}), "error", ("2.4.3",),
    "Positive tabindex overrides the natural focus order",
    "Remove positive tabindex values",
    'Use tabindex="0" for custom interactive elements',
    "Let the document order define the tab sequence",
)
_rule(
    "heading-empty", frozenset({MARKUP}), "error", ("2.4.6",),
    "Heading has no text content",
    "Add text content: <h2>Billing</h2>",
    'Or an accessible name: <h2 aria-label="Billing"><span class="icon"></span></h2>',
)
_rule(
    "table-missing-headers", frozenset({MARKUP}), "error", ("1.3.1",),
    "Data table has no header cells",
    "Use <thead> and <th>: <thead><tr><th>Name</th><th>Role</th></tr></thead>",
    'Add scope to header cells: <th scope="col">Name</th>',
)
_rule(
    "autoplay-media", frozenset({MARKUP}), "error", ("1.4.2", "2.2.2"),
    "Media autoplays without muted or controls",
    'Remove autoplay: <video src="..." controls></video>',
    "Or mute background media: <video autoplay muted loop></video>",
)
_rule(
    "media-no-captions", frozenset({MARKUP}), "error", ("1.2.2", "1.2.3"),
    "Media has no captions track",
    '<video><track kind="captions" src="captions.vtt" srclang="en"></video>',
    "Or link a transcript next to the media",
)
_rule(
    "redundant-role", frozenset({MARKUP}), "warning", ("4.1.2",),
    "Explicit role duplicates the implicit role of the element",
    "Remove the role attribute",
    'Example: <button role="button"> should be <button>',
)
_rule(
    "invalid-aria-role", frozenset({MARKUP}), "error", ("4.1.2",),
    "Role is not part of the WAI-ARIA vocabulary",
    "Use a role from the WAI-ARIA specification",
    "See https://www.w3.org/TR/wai-aria/#role_definitions",
)
_rule(
    "missing-aria-required", frozenset({MARKUP}), "error", ("4.1.2",),
    "Role is missing a required ARIA property",
    "Add the properties this role requires",
    'Example: role="checkbox" requires aria-checked',
)
_rule(
    "duplicate-id", PAGE_FORMATS, "error", ("4.1.1",),
    "id value is used more than once",
    "Make every id attribute unique",
    "Duplicate ids break label and ARIA relationships",
)
_rule(
    "heading-hierarchy", frozenset({MARKUP}), "warning", ("2.4.6",),
    "Heading level skips one or more levels",
    "Step through heading levels in order: h1, h2, h3",
    "Do not jump from h1 straight to h3",
)
_rule(
    "heading-level-skip", PAGE_FORMATS, "warning", ("1.3.1", "2.4.6"),
    "Heading level skips one or more levels",
    "Use consecutive heading levels",
    "Style headings with CSS instead of picking levels for their size",
)
_rule(
    "missing-h1", PAGE_FORMATS, "warning", ("1.3.1", "2.4.6"),
    "Document has headings but no top-level heading",
    "Add one <h1> describing the page",
)
_rule(
    "radio-missing-fieldset", frozenset({MARKUP}), "warning", ("1.3.1", "3.3.2"),
    "Radio group is not wrapped in a fieldset with a legend",
    "<fieldset><legend>Shipping speed</legend><input type=\"radio\" ...></fieldset>",
    'Or use role="radiogroup" with aria-labelledby',
)
_rule(
    "non-semantic-navigation", frozenset({MARKUP}), "warning", ("1.3.1",),
    "Group of links is not inside a navigation landmark",
    '<nav aria-label="Main"><a href="/">Home</a> ...</nav>',
    'Or add role="navigation" to the container',
)
_rule(
    "missing-lang", frozenset({MARKUP}), "error", ("3.1.1",),
    "Document root has no lang attribute",
    'Add lang to the root element: <html lang="en">',
    "Use the language code of the page content",
)
_rule(
    "html-missing-lang", PAGE_FORMATS, "error", ("3.1.1",),
    "html element has no lang attribute",
    'Add lang: <html lang="en">',
)
_rule(
    "title-empty", frozenset({MARKUP}), "error", ("2.4.2",),
    "Document has no title or an empty one",
    "Add a descriptive title: <title>Billing - Acme</title>",
)
_rule(
    "missing-main-landmark", frozenset({MARKUP}), "warning", ("1.3.1",),
    "Document has no main landmark",
    "Wrap the primary content in a <main> element",
    "Keep exactly one <main> per page",
)
_rule(
    "marquee-element", frozenset({MARKUP}), "error", ("2.2.2",),
    "Deprecated marquee or blink element",
    "Remove <marquee> and <blink> elements",
    "Use CSS animation guarded by prefers-reduced-motion instead",
)
_rule(
    "focus-outline-removed", frozenset({MARKUP}), "error", ("2.4.7",),
    "Inline style removes the focus outline",
    "Do not remove focus outlines inline",
    "Provide a visible :focus-visible style in the stylesheet instead",
)
_rule(
    "aria-labelledby-invalid", PAGE_FORMATS, "error", ("1.3.1", "4.1.2"),
    "aria-labelledby references an id that does not exist",
    "Point aria-labelledby at the id of an element in the same document",
    "Check for typos in the referenced ids",
)
_rule(
    "aria-describedby-invalid", PAGE_FORMATS, "error", ("1.3.1", "4.1.2"),
    "aria-describedby references an id that does not exist",
    "Point aria-describedby at the id of an element in the same document",
    "Check for typos in the referenced ids",
)

# Stylesheet rules. The pattern pre-pass shares a few of these ids.
_rule(
    "outline-none-no-alternative", frozenset({STYLESHEET, MARKUP}), "error", ("2.4.7",),
    "Outline removed without an alternative focus indicator nearby",
    "Keep the outline or replace it in the same rule",
    "button:focus-visible { outline: 2px solid #1a73e8; outline-offset: 2px; }",
)
_rule(
    "focus-indicator-removed", frozenset({STYLESHEET}), "error", ("2.4.7",),
    "Focus outline removed and no replacement indicator exists in the stylesheet",
    ":focus-visible { outline: 2px solid currentColor; outline-offset: 2px; }",
    "Or provide a box-shadow, border or background change on :focus-visible",
)
_rule(
    "font-size-too-small", frozenset({STYLESHEET, MARKUP}), "warning", ("1.4.4",),
    "Font size is below the readable minimum",
    "Use at least 12px (0.75rem) for text, 16px for body copy",
    "Prefer rem units so text follows the user's font size",
)
_rule(
    "touch-target-too-small", frozenset({STYLESHEET, MARKUP}), "warning", ("2.5.8",),
    "Interactive target is smaller than 44 by 44 pixels",
    "Give controls min-width: 44px and min-height: 44px",
    "Or enlarge the hit area with padding",
)
_rule(
    "text-transparent", frozenset({STYLESHEET, MARKUP}), "warning", ("1.4.3",),
    "Text colour is fully transparent",
    "Use a visible text colour",
    "Use a visually-hidden utility class for screen-reader-only text",
)
_rule(
    "display-none-interactive", frozenset({STYLESHEET, MARKUP}), "warning", ("2.1.1",),
    "Interactive-looking element is hidden with display:none",
    "Make sure the control is reachable another way when hidden",
    "Hide with a visually-hidden utility class when it must stay focusable",
)
_rule(
    "pointer-events-none-interactive", frozenset({STYLESHEET, MARKUP}), "warning", ("2.1.1",),
    "Interactive-looking element ignores pointer events",
    "Use the disabled attribute or aria-disabled for inactive controls",
    "Do not rely on pointer-events: none to disable controls",
)
_rule(
    "low-contrast-text", frozenset({STYLESHEET}), "error", ("1.4.3",),
    "Text and background colours do not reach the contrast minimum",
    "Use at least 4.5:1 for normal text and 3:1 for large text",
    "Check colour pairs with a contrast checker",
)
_rule(
    "animation-no-reduced-motion", frozenset({STYLESHEET}), "warning", ("2.3.3",),
    "Animation has no prefers-reduced-motion guard",
    "@media (prefers-reduced-motion: reduce) { .spinner { animation: none; } }",
    "Keep essential motion short and subtle",
)
_rule(
    "viewport-font-size", frozenset({STYLESHEET}), "warning", ("1.4.4",),
    "Font size uses only viewport units and ignores text zoom",
    "Combine viewport units with rem: font-size: clamp(1rem, 2vw + 0.5rem, 2rem)",
)
_rule(
    "text-indent-hiding", frozenset({STYLESHEET}), "warning", ("1.3.1",),
    "Text hidden with a large negative text-indent",
    "Use a visually-hidden utility class instead",
    "Provide an accessible name with aria-label for icon-only content",
)
_rule(
    "zero-size-hiding", frozenset({STYLESHEET}), "warning", ("1.3.1", "4.1.2"),
    "Content collapsed to zero size instead of a visually-hidden pattern",
    ".sr-only { position: absolute; width: 1px; height: 1px; overflow: hidden; clip: rect(0 0 0 0); }",
    "Use display: none only for content that should be hidden from everyone",
)
_rule(
    "restrictive-text-spacing", frozenset({STYLESHEET}), "warning", ("1.4.12",),
    "Line height or letter spacing is tighter than text-spacing overrides allow",
    "Use line-height of at least 1.5 for body text",
    "Avoid negative letter-spacing and word-spacing",
)
_rule(
    "overflow-hidden-text", frozenset({STYLESHEET}), "warning", ("1.4.4", "1.4.10"),
    "Text container clips overflow and may cut off zoomed text",
    "Let text containers grow: remove fixed heights or use overflow: auto",
)
_rule(
    "horizontal-scroll-forced", frozenset({STYLESHEET}), "warning", ("1.4.10",),
    "Layout forces horizontal scrolling",
    "Let content reflow at 320 CSS pixels wide",
    "Use overflow-x: auto only on data tables and code blocks",
)
_rule(
    "fixed-width-no-fallback", frozenset({STYLESHEET}), "warning", ("1.4.10",),
    "Large fixed pixel width without a responsive fallback",
    "Add max-width: 100% next to the width",
    "Or redefine the width inside a media query for narrow viewports",
)
_rule(
    "text-uppercase-forced", frozenset({STYLESHEET}), "info", ("1.4.8",),
    "Text is forced to uppercase",
    "Write capitals in the content when needed instead of transforming long text",
)
_rule(
    "text-justified", frozenset({STYLESHEET}), "info", ("1.4.8",),
    "Text is fully justified",
    "Use text-align: left (or start) for body text",
)
_rule(
    "important-overuse", frozenset({STYLESHEET}), "warning", ("1.4.12",),
    "Too many !important overrides on typography or colour",
    "Drop !important so user style sheets can adjust text",
    "Fix specificity conflicts in the selectors instead",
)
_rule(
    "forced-colors-unsupported", frozenset({STYLESHEET}), "info", ("1.4.11",),
    "Custom indicators disappear in forced-colors mode",
    "@media (forced-colors: active) { :focus-visible { outline: 2px solid CanvasText; } }",
    "Box shadows and background images are removed in forced-colors mode",
)

# Script rules.
_rule(
    "dom-interactive-no-a11y", frozenset({SCRIPT}), "error", ("2.1.1", "4.1.2"),
    "Created element gets a click handler without role, tabindex and keyboard handler",
    "Create a <button> instead: document.createElement('button')",
    "Or set role='button', tabIndex = 0 and handle keydown for Enter and Space",
)
_rule(
    "dom-focus-outline-removed", frozenset({SCRIPT}), "error", ("2.4.7",),
    "Script removes the focus outline",
    "Do not set style.outline to none from scripts",
    "Toggle a class that provides a visible :focus-visible style instead",
)
_rule(
    "dom-positive-tabindex", frozenset({SCRIPT}), "error", ("2.4.3",),
    "Script assigns a positive tabIndex",
    "Use tabIndex = 0 to join the natural order",
    "Use tabIndex = -1 for programmatic focus only",
)
_rule(
    "dom-autoplay-media", frozenset({SCRIPT}), "error", ("1.2.2", "1.4.2"),
    "Created media autoplays without controls or captions",
    "Set controls = true or avoid autoplay",
    "Append a <track kind=\"captions\"> element to the media",
)
_rule(
    "dom-input-missing-label", frozenset({SCRIPT}), "error", ("1.3.1", "3.3.2", "4.1.2"),
    "Created form control has no label",
    "input.setAttribute('aria-label', 'Search')",
    "Or create a <label> with htmlFor set to the input id",
)
_rule(
    "dom-placeholder-as-label", frozenset({SCRIPT}), "warning", ("3.3.2",),
    "Created form control relies on its placeholder as the label",
    "Add a real label in addition to the placeholder",
)
_rule(
    "dom-timer-no-pause", frozenset({SCRIPT}), "warning", ("2.2.2", "4.1.3"),
    "Timer drives visual changes without a pause control or live region",
    "Offer a pause button that calls clearInterval",
    "Announce updates with aria-live when content changes",
)
_rule(
    "dom-unsafe-html", frozenset({SCRIPT}), "warning", ("4.1.1",),
    "Dynamic content assigned to innerHTML without sanitizing",
    "Use textContent for text",
    "Sanitize markup (for example with DOMPurify) before inserting it",
)
_rule(
    "dom-drag-no-keyboard", frozenset({SCRIPT}), "warning", ("2.1.1", "2.5.7"),
    "Drag and drop has no keyboard alternative",
    "Provide buttons or arrow-key handling that perform the same move",
)
_rule(
    "dom-mouse-only-events", frozenset({SCRIPT}), "warning", ("2.1.1",),
    "Mouse hover handlers without focus and blur equivalents",
    "Pair mouseenter with focus and mouseleave with blur",
    "el.addEventListener('focus', show); el.addEventListener('blur', hide);",
)

RULE_CATALOG: Mapping[str, RuleDefinition] = MappingProxyType(_RULES)


def get_rule(rule_id: str) -> RuleDefinition:
    try:
        return RULE_CATALOG[rule_id]
    except KeyError as exc:
        raise KeyError(f"Unknown rule id: {rule_id}") from exc


def make_violation(
    rule_id: str,
    message: str,
    *,
    line: int,
    column: int = 1,
    severity: str | None = None,
) -> Violation:
    rule = get_rule(rule_id)
    return Violation(
        rule_id=rule_id,
        severity=severity or rule.severity,
        message=message,
        line=line,
        column=column,
        standard_refs=rule.standard_refs,
        remediation=rule.remediation or DEFAULT_REMEDIATION,
    )


def remediation_for(rule_id: str, code: str | None = None) -> list[str]:
    rule = RULE_CATALOG.get(rule_id) or DELEGATE_RULES.get(rule_id)
    suggestions = list(rule.remediation) if rule else list(DEFAULT_REMEDIATION)
    if code:
        rewrite = _snippet_rewrite(rule_id, code)
        if rewrite:
            suggestions.insert(0, rewrite)
    return suggestions


def _snippet_rewrite(rule_id: str, code: str) -> str | None:
    base = rule_id.split("/")[-1]
    if base in {"img-missing-alt", "alt-text"}:
        fixed = re.sub(r"<img\b", '<img alt="Describe the image"', code, count=1, flags=re.IGNORECASE)
        return f"Suggested change: {fixed.strip()}" if fixed != code else None
    if base in {"positive-tabindex", "dom-positive-tabindex", "tabindex-no-positive"}:
        fixed = re.sub(
            r"(tabindex\s*=\s*[\"'{]?\s*)[1-9]\d*",
            r"\g<1>0",
            code,
            flags=re.IGNORECASE,
        )
        return f"Suggested change: {fixed.strip()}" if fixed != code else None
    if base in {"div-as-button", "div-button", "no-static-element-interactions"}:
        fixed = re.sub(r"<(div|span)\b", "<button type=\"button\"", code, count=1, flags=re.IGNORECASE)
        fixed = re.sub(r"</(div|span)>\s*$", "</button>", fixed.rstrip(), flags=re.IGNORECASE)
        return f"Suggested change: {fixed.strip()}" if fixed != code.rstrip() else None
    if base in {"outline-none-no-alternative", "focus-indicator-removed", "focus-outline-removed"}:
        if re.search(r"outline\s*:\s*(none|0)", code, flags=re.IGNORECASE):
            return "Replace the removal with: outline: 2px solid currentColor; outline-offset: 2px;"
        return None
    if base in {"iframe-missing-title", "iframe-has-title"}:
        fixed = re.sub(r"<iframe\b", '<iframe title="Describe the embedded content"', code, count=1, flags=re.IGNORECASE)
        return f"Suggested change: {fixed.strip()}" if fixed != code else None
    return None
