from __future__ import annotations

import logging
import re
from typing import Callable, Iterable

from a11y_scanner.models import Violation

logger = logging.getLogger(__name__)

NON_DESCRIPTIVE_LINK_TEXT = frozenset(
    {"click here", "read more", "more", "here", "link", "learn more", "click", "this"}
)

INTERACTIVE_ROLES = frozenset(
    {
        "button", "link", "checkbox", "menuitem", "menuitemcheckbox", "menuitemradio",
        "option", "radio", "slider", "spinbutton", "switch", "tab", "textbox", "combobox",
        "searchbox", "treeitem", "gridcell",
    }
)

VALID_ARIA_ROLES = frozenset(
    {
        "alert", "alertdialog", "application", "article", "banner", "button",
        "cell", "checkbox", "columnheader", "combobox", "complementary",
        "contentinfo", "definition", "dialog", "directory", "document",
        "feed", "figure", "form", "grid", "gridcell", "group", "heading",
        "img", "link", "list", "listbox", "listitem", "log", "main",
        "marquee", "math", "menu", "menubar", "menuitem", "menuitemcheckbox",
        "menuitemradio", "navigation", "none", "note", "option", "presentation",
        "progressbar", "radio", "radiogroup", "region", "row", "rowgroup",
        "rowheader", "scrollbar", "search", "searchbox", "separator", "slider",
        "spinbutton", "status", "switch", "tab", "table", "tablist", "tabpanel",
        "term", "textbox", "timer", "toolbar", "tooltip", "tree", "treegrid",
        "treeitem",
    }
)

ROLE_REQUIRED_PROPS = {
    "checkbox": ("aria-checked",),
    "combobox": ("aria-expanded", "aria-controls"),
    "radio": ("aria-checked",),
    "scrollbar": ("aria-controls", "aria-valuenow", "aria-valuemin", "aria-valuemax"),
    "slider": ("aria-valuenow", "aria-valuemin", "aria-valuemax"),
    "spinbutton": ("aria-valuenow",),
    "switch": ("aria-checked",),
    "tab": ("aria-selected",),
    "progressbar": ("aria-valuenow",),
}

UNLABELED_INPUT_TYPES = frozenset({"hidden", "submit", "button", "reset", "image"})

INTERACTIVE_SELECTOR_RE = re.compile(
    r"(^|[\s>+~,(])(button|a|input|select|textarea|summary)(?=$|[\s.:#\[>+~,)])"
    r"|\[role=[\"']?(button|link|tab|menuitem|checkbox|switch)"
    r"|[.#](?:[\w-]*[-_])?(btn|button|link|toggle|tab|menu-item|nav-item|checkbox|radio|close|icon-button)(?:[-_][\w-]*)?(?![\w])",
    re.IGNORECASE,
)

TEXT_SELECTOR_RE = re.compile(
    r"(^|[\s>+~,])(p|h[1-6]|label|li|td|th|blockquote|figcaption|dd|dt)(?=$|[\s.:#\[>+~,])"
    r"|[.#](?:[\w-]*[-_])?(text|title|description|content|copy|caption|summary|excerpt|body|message)(?:[-_][\w-]*)?(?![\w])",
    re.IGNORECASE,
)

Check = Callable[..., Iterable[Violation]]


def line_and_column(text: str, offset: int) -> tuple[int, int]:
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def looks_interactive(selector: str) -> bool:
    return bool(INTERACTIVE_SELECTOR_RE.search(selector.strip()))


def run_isolated(checks: Iterable[Check], *args: object) -> list[Violation]:
    violations: list[Violation] = []
    for check in checks:
        try:
            violations.extend(check(*args))
        except Exception as exc:
            logger.warning("Check %s failed: %s", getattr(check, "__name__", check), exc, exc_info=True)
    return violations
