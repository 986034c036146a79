from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from a11y_scanner.catalog import make_violation
from a11y_scanner.evaluators.common import UNLABELED_INPUT_TYPES, run_isolated
from a11y_scanner.models import AnalyzerSettings, EvaluationRequest, ParseOutcome, Violation

logger = logging.getLogger(__name__)

JAVASCRIPT = Language(tree_sitter_javascript.language())
TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
TSX = Language(tree_sitter_typescript.language_tsx())

SCOPE_NODES = frozenset(
    {
        "function_declaration", "function_expression", "function", "arrow_function",
        "method_definition", "generator_function_declaration", "generator_function",
    }
)
WRAPPER_NODES = frozenset(
    {"parenthesized_expression", "as_expression", "non_null_expression", "satisfies_expression", "type_assertion"}
)
CLICKABLE_CONTAINERS = frozenset({"div", "span", "li", "p", "img", "section", "article", "td", "i", "svg"})
FORM_CONTROLS = frozenset({"input", "select", "textarea"})
MEDIA_TAGS = frozenset({"video", "audio"})
KEY_EVENTS = frozenset({"keydown", "keyup", "keypress"})
DRAG_EVENTS = frozenset({"dragstart", "drag", "dragend", "dragover", "dragenter", "drop"})
HOVER_PAIRS = (
    (("mouseenter", "mouseover"), ("focus", "focusin"), "focus"),
    (("mouseleave", "mouseout"), ("blur", "focusout"), "blur"),
)
OUTLINE_PROPERTIES = frozenset({"outline", "outlinestyle", "outline-style"})
OUTLINE_WIDTH_PROPERTIES = frozenset({"outlinewidth", "outline-width"})
HTML_PROPERTIES = frozenset({"innerHTML", "outerHTML"})
LIVE_ROLES = frozenset({"status", "alert", "log", "marquee", "timer"})
VISUAL_MEMBERS = frozenset(
    {
        "style", "classList", "className", "textContent", "innerHTML", "innerText", "src",
        "scrollLeft", "scrollTop", "scrollTo", "scrollBy", "scrollIntoView", "hidden", "reload",
    }
)
SANITIZER_NAME = re.compile(r"sanitize|purify|escape", re.IGNORECASE)
CSS_OUTLINE_REMOVED = re.compile(r"outline\s*:\s*(none|0)\b", re.IGNORECASE)


@dataclass(frozen=True)
class CreatedElement:
    name: str
    tag: str
    node: Node


@dataclass
class ScopeFacts:
    elements: dict[str, CreatedElement] = field(default_factory=dict)
    props: dict[str, dict[str, Node]] = field(default_factory=dict)
    attributes: dict[str, dict[str, Node | None]] = field(default_factory=dict)
    listeners: dict[str, dict[str, Node]] = field(default_factory=dict)
    parents: dict[str, set[str]] = field(default_factory=dict)
    created_tags: set[str] = field(default_factory=set)

    def has_keyboard_handler(self) -> bool:
        return any(KEY_EVENTS & events.keys() for events in self.listeners.values())


@dataclass
class ScriptFacts:
    scopes: list[ScopeFacts] = field(default_factory=list)
    style_writes: list[tuple[str, Node | None, Node]] = field(default_factory=list)
    tabindex_writes: list[tuple[Node | None, Node]] = field(default_factory=list)
    html_sinks: list[tuple[Node | None, Node]] = field(default_factory=list)
    timers: list[tuple[str, Node | None, Node]] = field(default_factory=list)
    functions: dict[str, Node] = field(default_factory=dict)
    calls: set[str] = field(default_factory=set)
    live_region: bool = False


def _language_for(extension: str) -> Language:
    if extension in {".ts", ".mts", ".cts"}:
        return TYPESCRIPT
    if extension == ".tsx":
        return TSX
    return JAVASCRIPT


def parse_script(content: str, *, extension: str = ".js") -> ParseOutcome:
    try:
        tree = Parser(_language_for(extension)).parse(content.encode("utf-8"))
    except Exception as exc:
        logger.warning("Script parse failed: %s", exc)
        return ParseOutcome(tree=None, diagnostics=(str(exc),))
    diagnostics = ()
    if tree.root_node.has_error:
        diagnostics = ("syntax errors present; continuing with a partial tree",)
    return ParseOutcome(tree=tree, diagnostics=diagnostics)


def evaluate_script(request: EvaluationRequest, settings: AnalyzerSettings | None = None) -> list[Violation]:
    outcome = parse_script(request.content, extension=request.extension)
    for diagnostic in outcome.diagnostics:
        logger.debug("%s: %s", request.path, diagnostic)
    if not outcome.ok:
        return []
    facts = collect_script_facts(outcome.tree.root_node)
    return run_isolated(SCRIPT_CHECKS, facts)


def _unwrap(node: Node | None) -> Node | None:
    while node is not None and node.type in WRAPPER_NODES and node.named_children:
        node = node.named_children[0]
    return node


def _text(node: Node | None) -> str:
    node = _unwrap(node)
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _literal(node: Node | None) -> str | None:
    node = _unwrap(node)
    if node is None:
        return None
    if node.type == "string":
        return _text(node)[1:-1]
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.named_children):
            return None
        return _text(node)[1:-1]
    if node.type in {"number", "true", "false"}:
        return _text(node)
    return None


def _arguments(call: Node) -> list[Node]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [child for child in arguments.named_children if child.type != "comment"]


def _created_tag(node: Node | None) -> str | None:
    node = _unwrap(node)
    if node is None or node.type != "call_expression":
        return None
    function = _unwrap(node.child_by_field_name("function"))
    if function is None or function.type != "member_expression":
        return None
    if _text(function.child_by_field_name("property")) != "createElement":
        return None
    arguments = _arguments(node)
    tag = _literal(arguments[0]) if arguments else None
    return tag.lower() if tag else None


def collect_script_facts(root: Node) -> ScriptFacts:
    facts = ScriptFacts()
    module_scope = ScopeFacts()
    facts.scopes.append(module_scope)
    stack: list[tuple[Node, ScopeFacts]] = [(root, module_scope)]
    while stack:
        node, scope = stack.pop()
        if node.type in SCOPE_NODES and node is not root:
            if node.type == "function_declaration":
                name = node.child_by_field_name("name")
                body = node.child_by_field_name("body")
                if name is not None and body is not None:
                    facts.functions[_text(name)] = body
            scope = ScopeFacts()
            facts.scopes.append(scope)

        if node.type == "variable_declarator":
            _record_creation(scope, node.child_by_field_name("name"), node.child_by_field_name("value"))
        elif node.type == "assignment_expression":
            _record_assignment(facts, scope, node)
        elif node.type == "call_expression":
            _record_call(facts, scope, node)

        for child in reversed(node.children):
            stack.append((child, scope))
    return facts


def _record_creation(scope: ScopeFacts, target: Node | None, value: Node | None) -> None:
    tag = _created_tag(value)
    if target is not None and tag:
        name = _text(target)
        scope.elements[name] = CreatedElement(name=name, tag=tag, node=_unwrap(value))
        scope.created_tags.add(tag)


def _record_assignment(facts: ScriptFacts, scope: ScopeFacts, node: Node) -> None:
    left = _unwrap(node.child_by_field_name("left"))
    right = node.child_by_field_name("right")
    _record_creation(scope, left, right)
    if left is None or left.type != "member_expression":
        return

    target = _unwrap(left.child_by_field_name("object"))
    prop = _text(left.child_by_field_name("property"))
    if target is not None and target.type == "member_expression" and _text(target.child_by_field_name("property")) == "style":
        facts.style_writes.append((prop.lower(), right, node))
        return
    if prop in HTML_PROPERTIES:
        facts.html_sinks.append((right, node))
        return

    owner = _text(target)
    key = prop.lower()
    scope.props.setdefault(owner, {})[key] = right
    if key.startswith("on") and len(key) > 2:
        scope.listeners.setdefault(owner, {})[key[2:]] = node
    if key == "tabindex":
        facts.tabindex_writes.append((right, node))
    if key == "arialive" or (key == "role" and (_literal(right) or "").lower() in LIVE_ROLES):
        facts.live_region = True


def _record_call(facts: ScriptFacts, scope: ScopeFacts, node: Node) -> None:
    function = _unwrap(node.child_by_field_name("function"))
    if function is None:
        return
    arguments = _arguments(node)

    if function.type == "identifier":
        name = _text(function)
        facts.calls.add(name)
        if name in {"setInterval", "setTimeout"}:
            facts.timers.append((name, arguments[0] if arguments else None, node))
        return
    if function.type != "member_expression":
        return

    owner_node = _unwrap(function.child_by_field_name("object"))
    owner = _text(owner_node)
    method = _text(function.child_by_field_name("property"))
    facts.calls.add(method)
    first = _literal(arguments[0]) if arguments else None
    second = arguments[1] if len(arguments) > 1 else None

    if method in {"setInterval", "setTimeout"}:
        facts.timers.append((method, arguments[0] if arguments else None, node))
    elif method == "setAttribute" and first is not None:
        attribute = first.lower()
        scope.attributes.setdefault(owner, {})[attribute] = second
        if attribute == "tabindex":
            facts.tabindex_writes.append((second, node))
        elif attribute == "aria-live" or (attribute == "role" and (_literal(second) or "").lower() in LIVE_ROLES):
            facts.live_region = True
        elif attribute == "style":
            facts.style_writes.append(("csstext", second, node))
    elif method == "addEventListener" and first is not None:
        scope.listeners.setdefault(owner, {})[first.lower()] = node
    elif method in {"appendChild", "append", "prepend", "insertBefore"}:
        for argument in arguments:
            scope.parents.setdefault(_text(argument), set()).add(owner)
    elif method == "setProperty" and owner_node is not None and owner_node.type == "member_expression":
        if _text(owner_node.child_by_field_name("property")) == "style" and first is not None:
            facts.style_writes.append((first.lower(), second, node))
    elif method == "insertAdjacentHTML":
        facts.html_sinks.append((second, node))
    elif method in {"write", "writeln"} and owner == "document":
        facts.html_sinks.append((arguments[0] if arguments else None, node))
    elif method == "createElement" and first:
        scope.created_tags.add(first.lower())


def _violation(node: Node, rule_id: str, message: str) -> Violation:
    row, column = node.start_point
    return make_violation(rule_id, message, line=row + 1, column=column + 1)


def _has(scope: ScopeFacts, name: str, *keys: str) -> bool:
    props = scope.props.get(name, {})
    attributes = scope.attributes.get(name, {})
    return any(key in props or key in attributes for key in keys)


def _flag(scope: ScopeFacts, name: str, key: str) -> bool:
    props = scope.props.get(name, {})
    if key in props and _literal(props[key]) not in (None, "false", "0"):
        return True
    return key in scope.attributes.get(name, {})


def _check_interactive_elements(facts: ScriptFacts) -> list[Violation]:
    violations: list[Violation] = []
    for scope in facts.scopes:
        for name, element in scope.elements.items():
            events = scope.listeners.get(name, {})
            if element.tag not in CLICKABLE_CONTAINERS or "click" not in events:
                continue
            missing = []
            if not _has(scope, name, "role"):
                missing.append("role")
            if not _has(scope, name, "tabindex"):
                missing.append("tabindex")
            if not KEY_EVENTS & events.keys():
                missing.append("keyboard handler")
            if missing:
                violations.append(
                    _violation(
                        element.node,
                        "dom-interactive-no-a11y",
                        f"Created <{element.tag}> '{name}' has a click handler but no {', '.join(missing)}",
                    )
                )
    return violations


def _check_outline_writes(facts: ScriptFacts) -> list[Violation]:
    violations: list[Violation] = []
    for prop, value, node in facts.style_writes:
        literal = (_literal(value) or "").strip().lower()
        removed = (
            (prop in OUTLINE_PROPERTIES and literal in {"none", "0", "0px"})
            or (prop in OUTLINE_WIDTH_PROPERTIES and literal in {"0", "0px"})
            or (prop == "csstext" and CSS_OUTLINE_REMOVED.search(literal))
        )
        if removed:
            violations.append(_violation(node, "dom-focus-outline-removed", "Script removes the focus outline"))
    return violations


def _positive(node: Node | None) -> bool:
    node = _unwrap(node)
    if node is None:
        return False
    literal = _literal(node)
    if literal is not None:
        return bool(re.fullmatch(r"\s*\d+\s*", literal)) and int(literal) > 0
    if node.type == "binary_expression" and _text(node.child_by_field_name("operator")) == "+":
        return _positive(node.child_by_field_name("left")) or _positive(node.child_by_field_name("right"))
    return False


def _check_tabindex_writes(facts: ScriptFacts) -> list[Violation]:
    return [
        _violation(node, "dom-positive-tabindex", f"tabIndex set to {_text(value)}")
        for value, node in facts.tabindex_writes
        if _positive(value)
    ]


def _check_autoplay_media(facts: ScriptFacts) -> list[Violation]:
    violations: list[Violation] = []
    for scope in facts.scopes:
        for name, element in scope.elements.items():
            if element.tag not in MEDIA_TAGS or not _flag(scope, name, "autoplay") or _flag(scope, name, "muted"):
                continue
            missing = []
            if not _flag(scope, name, "controls"):
                missing.append("controls")
            if "track" not in scope.created_tags:
                missing.append("captions track")
            if missing:
                violations.append(
                    _violation(
                        element.node,
                        "dom-autoplay-media",
                        f"Autoplaying <{element.tag}> '{name}' has no {' or '.join(missing)}",
                    )
                )
    return violations


def _labelled(scope: ScopeFacts, name: str) -> bool:
    if _has(scope, name, "aria-label", "aria-labelledby", "arialabel", "arialabelledby"):
        return True
    labels = {key for key, element in scope.elements.items() if element.tag == "label"}
    if labels & scope.parents.get(name, set()):
        return True
    return any(_has(scope, label, "htmlfor", "for") for label in labels)


def _check_form_controls(facts: ScriptFacts) -> list[Violation]:
    violations: list[Violation] = []
    for scope in facts.scopes:
        for name, element in scope.elements.items():
            if element.tag not in FORM_CONTROLS:
                continue
            type_node = scope.props.get(name, {}).get("type") or scope.attributes.get(name, {}).get("type")
            if (_literal(type_node) or "text").lower() in UNLABELED_INPUT_TYPES:
                continue
            if _labelled(scope, name):
                continue
            violations.append(
                _violation(element.node, "dom-input-missing-label", f"Created <{element.tag}> '{name}' has no label")
            )
            if _has(scope, name, "placeholder"):
                violations.append(
                    _violation(
                        element.node,
                        "dom-placeholder-as-label",
                        f"Created <{element.tag}> '{name}' relies on its placeholder as the label",
                    )
                )
    return violations


def _descendants(node: Node):
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(current.children)


def _callback_body(facts: ScriptFacts, callback: Node | None) -> Node | None:
    callback = _unwrap(callback)
    if callback is None:
        return None
    if callback.type == "identifier":
        return facts.functions.get(_text(callback))
    return callback


def _changes_visuals(body: Node | None) -> bool:
    if body is None:
        return True
    return any(
        node.type == "member_expression" and _text(node.child_by_field_name("property")) in VISUAL_MEMBERS
        for node in _descendants(body)
    )


def _reloads(body: Node | None) -> bool:
    if body is None:
        return False
    for node in _descendants(body):
        if node.type != "member_expression":
            continue
        prop = _text(node.child_by_field_name("property"))
        owner = _text(node.child_by_field_name("object"))
        if prop == "reload" or (prop == "href" and owner.endswith("location")):
            return True
    return False


def _check_timers(facts: ScriptFacts) -> list[Violation]:
    violations: list[Violation] = []
    for name, callback, node in facts.timers:
        body = _callback_body(facts, callback)
        if name == "setInterval":
            if _changes_visuals(body) and "clearInterval" not in facts.calls and not facts.live_region:
                violations.append(
                    _violation(node, "dom-timer-no-pause", "setInterval updates the page with no pause control or live region")
                )
        elif _reloads(body) and "clearTimeout" not in facts.calls:
            violations.append(
                _violation(node, "dom-timer-no-pause", "setTimeout reloads the page with no way to stop it")
            )
    return violations


def _check_html_sinks(facts: ScriptFacts) -> list[Violation]:
    violations: list[Violation] = []
    for value, node in facts.html_sinks:
        value = _unwrap(value)
        if value is None or _literal(value) is not None:
            continue
        if value.type == "call_expression" and SANITIZER_NAME.search(_text(value.child_by_field_name("function"))):
            continue
        violations.append(
            _violation(node, "dom-unsafe-html", f"Unsanitized value '{_text(value)[:60]}' inserted as markup")
        )
    return violations


def _check_drag_and_drop(facts: ScriptFacts) -> list[Violation]:
    violations: list[Violation] = []
    for scope in facts.scopes:
        if scope.has_keyboard_handler():
            continue
        names = set(scope.listeners) | set(scope.props) | set(scope.attributes)
        for name in sorted(names):
            drag_events = [event for event in scope.listeners.get(name, {}) if event in DRAG_EVENTS]
            draggable = _flag(scope, name, "draggable")
            if not drag_events and not draggable:
                continue
            if drag_events:
                node = scope.listeners[name][drag_events[0]]
            elif "draggable" in scope.props.get(name, {}):
                node = scope.props[name]["draggable"]
            else:
                node = scope.attributes[name]["draggable"]
            if node is None and name in scope.elements:
                node = scope.elements[name].node
            if node is None:
                continue
            violations.append(
                _violation(node, "dom-drag-no-keyboard", f"'{name}' supports drag and drop without a keyboard alternative")
            )
    return violations


def _check_mouse_only(facts: ScriptFacts) -> list[Violation]:
    violations: list[Violation] = []
    for scope in facts.scopes:
        for name, events in scope.listeners.items():
            for mouse_events, keyboard_events, label in HOVER_PAIRS:
                wired = [event for event in mouse_events if event in events]
                if wired and not any(event in events for event in keyboard_events):
                    violations.append(
                        _violation(
                            events[wired[0]],
                            "dom-mouse-only-events",
                            f"'{name}' handles {wired[0]} without a matching {label} handler",
                        )
                    )
    return violations


SCRIPT_CHECKS = (
    _check_interactive_elements,
    _check_outline_writes,
    _check_tabindex_writes,
    _check_autoplay_media,
    _check_form_controls,
    _check_timers,
    _check_html_sinks,
    _check_drag_and_drop,
    _check_mouse_only,
)
