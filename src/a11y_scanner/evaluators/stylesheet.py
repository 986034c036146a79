from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import tinycss2

from a11y_scanner.catalog import make_violation
from a11y_scanner.evaluators.colors import contrast_ratio, first_color
from a11y_scanner.evaluators.common import TEXT_SELECTOR_RE, looks_interactive, run_isolated
from a11y_scanner.models import AnalyzerSettings, EvaluationRequest, ParseOutcome, Violation

logger = logging.getLogger(__name__)

SCSS_LINE_COMMENT = re.compile(r"(?<![:\"'(\\])//[^\n]*")
SCSS_VARIABLE = re.compile(r"^[ \t]*\$[\w-]+\s*:[^;\n]*;?", re.MULTILINE)
LENGTH = re.compile(r"^(-?\d*\.?\d+)(px|pt|rem|em|%)?$", re.IGNORECASE)
VIEWPORT_UNIT = re.compile(r"\d(vw|vh|vmin|vmax)\b", re.IGNORECASE)
RELATIVE_UNIT = re.compile(r"\d(rem|em|px|%|pt)\b", re.IGNORECASE)
VISUALLY_HIDDEN_SELECTOR = re.compile(
    r"sr-only|visually-hidden|visuallyhidden|screen-reader|screenreader|a11y|offscreen|assistive",
    re.IGNORECASE,
)
LAYOUT_ROOT_SELECTOR = re.compile(
    r"^(html|body|main|:root|#root|#app|\.(container|wrapper|page|layout|app))$",
    re.IGNORECASE,
)

NESTING_AT_RULES = frozenset({"media", "supports", "layer", "container", "document"})
TYPOGRAPHY_PROPERTIES = frozenset(
    {
        "font-size", "line-height", "letter-spacing", "word-spacing", "font-family",
        "color", "background-color", "background",
    }
)
REMOVAL_VALUES = frozenset({"none", "0", "0px", "hidden"})
EMPTY_BACKGROUNDS = frozenset({"none", "transparent", "initial", "inherit", "unset", "0"})
FOCUS_PSEUDO = re.compile(r":focus(-visible|-within)?\b")


@dataclass(frozen=True)
class Declaration:
    name: str
    value: str
    important: bool
    line: int
    column: int


@dataclass(frozen=True)
class StyleRule:
    selector: str
    declarations: tuple[Declaration, ...]
    media: tuple[str, ...]
    line: int
    column: int

    def get(self, name: str) -> Declaration | None:
        for declaration in reversed(self.declarations):
            if declaration.name == name:
                return declaration
        return None

    @property
    def is_focus(self) -> bool:
        return ":focus" in self.selector


@dataclass(frozen=True)
class StyleSheet:
    rules: tuple[StyleRule, ...]
    conditions: tuple[str, ...]

    def has_condition(self, *fragments: str) -> bool:
        return any(fragment in condition for condition in self.conditions for fragment in fragments)


@dataclass
class FocusState:
    removals: list[tuple[StyleRule, Declaration]] = field(default_factory=list)
    indicators: list[StyleRule] = field(default_factory=list)


def parse_stylesheet(content: str, *, scss: bool = False) -> ParseOutcome:
    source = content
    if scss:
        # Blank SCSS-only syntax in place so tinycss2 positions still match the file.
        source = SCSS_LINE_COMMENT.sub(_blank, source)
        source = SCSS_VARIABLE.sub(_blank, source)
    try:
        nodes = tinycss2.parse_stylesheet(source, skip_comments=True, skip_whitespace=True)
    except Exception as exc:
        logger.warning("Stylesheet parse failed: %s", exc)
        return ParseOutcome(tree=None, diagnostics=(str(exc),))

    rules: list[StyleRule] = []
    conditions: list[str] = []
    diagnostics: list[str] = []
    _walk(nodes, "", (), rules, conditions, diagnostics)
    return ParseOutcome(
        tree=StyleSheet(rules=tuple(rules), conditions=tuple(conditions)),
        diagnostics=tuple(diagnostics),
    )


def _blank(match: re.Match) -> str:
    return re.sub(r"[^\n]", " ", match.group(0))


def _nest(parent: str, child: str) -> str:
    if not parent:
        return child
    selectors = []
    for outer in parent.split(","):
        for inner in child.split(","):
            if "&" in inner:
                selectors.append(inner.strip().replace("&", outer.strip()))
            else:
                selectors.append(f"{outer.strip()} {inner.strip()}")
    return ", ".join(selectors)


def _declarations(items) -> tuple[Declaration, ...]:
    return tuple(
        Declaration(
            name=item.lower_name,
            value=tinycss2.serialize(item.value).strip(),
            important=bool(item.important),
            line=item.source_line,
            column=item.source_column,
        )
        for item in items
        if item.type == "declaration"
    )


def _walk(nodes, parent: str, media: tuple[str, ...], rules, conditions, diagnostics) -> None:
    for node in nodes:
        if node.type == "error":
            diagnostics.append(f"{node.source_line}:{node.source_column} {node.message}")
        elif node.type == "qualified-rule":
            selector = _nest(parent, tinycss2.serialize(node.prelude).strip())
            items = tinycss2.parse_blocks_contents(node.content, skip_comments=True, skip_whitespace=True)
            rules.append(
                StyleRule(
                    selector=selector,
                    declarations=_declarations(items),
                    media=media,
                    line=node.source_line,
                    column=node.source_column,
                )
            )
            _walk(
                [item for item in items if item.type != "declaration"],
                selector,
                media,
                rules,
                conditions,
                diagnostics,
            )
        elif node.type == "at-rule":
            prelude = " ".join(tinycss2.serialize(node.prelude).split())
            conditions.append(f"@{node.lower_at_keyword} {prelude}".lower())
            if node.content is None or node.lower_at_keyword not in NESTING_AT_RULES:
                continue
            scope = media + (prelude.lower(),)
            if parent:
                items = tinycss2.parse_blocks_contents(node.content, skip_comments=True, skip_whitespace=True)
                declarations = _declarations(items)
                if declarations:
                    rules.append(
                        StyleRule(
                            selector=parent,
                            declarations=declarations,
                            media=scope,
                            line=node.source_line,
                            column=node.source_column,
                        )
                    )
                children = [item for item in items if item.type != "declaration"]
            else:
                children = tinycss2.parse_rule_list(node.content, skip_comments=True, skip_whitespace=True)
            _walk(children, parent, scope, rules, conditions, diagnostics)


def evaluate_stylesheet(request: EvaluationRequest, settings: AnalyzerSettings | None = None) -> list[Violation]:
    settings = settings or AnalyzerSettings()
    outcome = parse_stylesheet(request.content, scss=request.extension == ".scss")
    for diagnostic in outcome.diagnostics:
        logger.debug("%s: %s", request.path, diagnostic)
    if not outcome.ok:
        return []
    return run_isolated(STYLESHEET_CHECKS, outcome.tree, settings)


def _length_px(value: str) -> float | None:
    match = LENGTH.match(value.strip())
    if match is None:
        return None
    number = float(match.group(1))
    unit = (match.group(2) or "").lower()
    if unit == "px":
        return number
    if unit == "pt":
        return number * 4 / 3
    if unit in {"rem", "em"}:
        return number * 16
    if unit == "" and number == 0:
        return 0.0
    return None


def _violation(declaration: Declaration | StyleRule, rule_id: str, message: str) -> Violation:
    return make_violation(rule_id, message, line=declaration.line, column=declaration.column)


def _removes_outline(declaration: Declaration) -> bool:
    value = declaration.value.lower().replace("!important", "").split()
    if declaration.name in {"outline", "outline-style"}:
        return bool(value) and all(word in REMOVAL_VALUES for word in value)
    if declaration.name == "outline-width":
        return value in (["0"], ["0px"])
    return False


def _is_indicator(declaration: Declaration) -> bool:
    value = declaration.value.lower()
    if declaration.name == "box-shadow":
        return value != "none"
    if declaration.name.startswith("border") and declaration.name != "border-radius":
        return value not in {"none", "0", "0px"}
    if declaration.name == "outline":
        return not _removes_outline(declaration) and bool(re.search(r"[1-9]|thin|medium|thick", value))
    if declaration.name == "outline-width":
        return not _removes_outline(declaration)
    if declaration.name in {"background", "background-color"}:
        return value.replace("!important", "").strip() not in EMPTY_BACKGROUNDS
    if declaration.name in {"text-decoration", "text-decoration-line"}:
        return "underline" in value
    return False


def focus_targets(selector: str) -> set[str]:
    """Base selectors a focus rule applies to, with the focus pseudo-classes stripped.

    A bare ``:focus-visible`` or ``*:focus`` yields ``"*"``.
    """
    targets = set()
    for part in selector.split(","):
        if not FOCUS_PSEUDO.search(part):
            continue
        base = " ".join(FOCUS_PSEUDO.sub("", part).split())
        targets.add(base if base and base != "*" else "*")
    return targets


def collect_focus_state(sheet: StyleSheet) -> FocusState:
    state = FocusState()
    for rule in sheet.rules:
        if not rule.is_focus:
            continue
        for declaration in rule.declarations:
            if _removes_outline(declaration):
                state.removals.append((rule, declaration))
        if any(_is_indicator(declaration) for declaration in rule.declarations):
            state.indicators.append(rule)
    return state


def check_focus_state(state: FocusState) -> list[Violation]:
    replaced: set[str] = set()
    for rule in state.indicators:
        replaced |= focus_targets(rule.selector)

    violations = []
    for rule, declaration in state.removals:
        if "*" in replaced or focus_targets(rule.selector) <= replaced:
            continue
        violations.append(
            _violation(
                declaration,
                "focus-indicator-removed",
                f"'{rule.selector}' removes the outline and no focus style replaces it",
            )
        )
    return violations


def _check_focus_indicators(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    return check_focus_state(collect_focus_state(sheet))


def _font_size_px(rule: StyleRule) -> float | None:
    declaration = rule.get("font-size")
    return _length_px(declaration.value) if declaration else None


def _is_large_text(rule: StyleRule, settings: AnalyzerSettings) -> bool:
    size = _font_size_px(rule)
    if size is None:
        return False
    weight = rule.get("font-weight")
    bold = weight is not None and (weight.value in {"bold", "bolder"} or weight.value.isdigit() and int(weight.value) >= 700)
    if bold:
        return size >= settings.thresholds.large_bold_text_px
    return size >= settings.thresholds.large_text_px


def _check_contrast(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for rule in sheet.rules:
        color = rule.get("color")
        background = rule.get("background-color") or rule.get("background")
        if color is None or background is None:
            continue
        foreground_rgba = first_color(color.value)
        background_rgba = first_color(background.value)
        if foreground_rgba is None or background_rgba is None:
            continue
        if foreground_rgba[3] < 1 or background_rgba[3] < 1:
            continue
        ratio = contrast_ratio(foreground_rgba, background_rgba)
        large = _is_large_text(rule, settings)
        minimum = settings.thresholds.contrast_large if large else settings.thresholds.contrast_normal
        if ratio < minimum:
            violations.append(
                _violation(
                    color,
                    "low-contrast-text",
                    f"'{rule.selector}' contrast {ratio:.2f}:1 is below {minimum:g}:1"
                    f" for {'large' if large else 'normal'} text",
                )
            )
    return violations


def _check_reduced_motion(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    if sheet.has_condition("prefers-reduced-motion"):
        return []
    violations: list[Violation] = []
    for rule in sheet.rules:
        animation = rule.get("animation") or rule.get("animation-name")
        if animation is not None and animation.value.lower() not in {"none", "initial", "unset"}:
            violations.append(
                _violation(animation, "animation-no-reduced-motion", f"'{rule.selector}' animates without a reduced-motion guard")
            )
    return violations


def _check_font_sizes(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    minimum = settings.thresholds.min_font_size_px
    violations: list[Violation] = []
    for rule in sheet.rules:
        declaration = rule.get("font-size")
        if declaration is None:
            continue
        size = _length_px(declaration.value)
        if size is not None and 0 < size < minimum:
            violations.append(
                _violation(declaration, "font-size-too-small", f"'{rule.selector}' font-size {declaration.value} is below {minimum:g}px")
            )
        elif VIEWPORT_UNIT.search(declaration.value) and not RELATIVE_UNIT.search(declaration.value):
            violations.append(
                _violation(declaration, "viewport-font-size", f"'{rule.selector}' font-size {declaration.value} ignores text zoom")
            )
    return violations


def _axis_px(rule: StyleRule, axis: str) -> float | None:
    sizes: list[float] = []
    for name in (axis, f"min-{axis}"):
        declaration = rule.get(name)
        size = _length_px(declaration.value) if declaration else None
        if size is not None:
            sizes.append(size)
    return max(sizes) if sizes else None


def _check_touch_targets(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    minimum = settings.thresholds.min_touch_target_px
    violations: list[Violation] = []
    for rule in sheet.rules:
        if not looks_interactive(rule.selector):
            continue
        for axis in ("width", "height"):
            size = _axis_px(rule, axis)
            if size is not None and 0 < size < minimum:
                violations.append(
                    _violation(rule, "touch-target-too-small", f"'{rule.selector}' {axis} is {size:g}px, below {minimum:g}px")
                )
                break
    return violations


def _check_hiding_patterns(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for rule in sheet.rules:
        indent = rule.get("text-indent")
        indent_px = _length_px(indent.value) if indent else None
        if indent_px is not None and indent_px <= -999:
            violations.append(
                _violation(indent, "text-indent-hiding", f"'{rule.selector}' hides text with text-indent {indent.value}")
            )

        if VISUALLY_HIDDEN_SELECTOR.search(rule.selector):
            continue
        position = rule.get("position")
        clipped = rule.get("clip") is not None or rule.get("clip-path") is not None
        if position is not None and position.value.lower() == "absolute" and clipped:
            continue
        collapsed = _axis_px(rule, "width") == 0 and _axis_px(rule, "height") == 0
        if collapsed or _font_size_px(rule) == 0:
            violations.append(
                _violation(rule, "zero-size-hiding", f"'{rule.selector}' collapses content to zero size")
            )
    return violations


def _check_text_spacing(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for rule in sheet.rules:
        line_height = rule.get("line-height")
        if line_height is not None:
            value = line_height.value.lower()
            ratio = None
            if re.fullmatch(r"\d*\.?\d+", value):
                ratio = float(value)
            elif value.endswith("%") and re.fullmatch(r"\d*\.?\d+%", value):
                ratio = float(value[:-1]) / 100
            elif value.endswith("px"):
                font_size = _font_size_px(rule)
                height = _length_px(value)
                if font_size and height is not None:
                    ratio = height / font_size
            if ratio is not None and ratio < 1.2:
                violations.append(
                    _violation(line_height, "restrictive-text-spacing", f"'{rule.selector}' line-height {line_height.value} is too tight")
                )
        for name in ("letter-spacing", "word-spacing"):
            declaration = rule.get(name)
            if declaration is not None and declaration.value.strip().startswith("-"):
                violations.append(
                    _violation(declaration, "restrictive-text-spacing", f"'{rule.selector}' uses negative {name}")
                )
    return violations


def _check_overflow(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for rule in sheet.rules:
        for name in ("overflow", "overflow-x", "overflow-y"):
            declaration = rule.get(name)
            if declaration is None:
                continue
            value = declaration.value.lower().split()
            if "hidden" in value and name != "overflow-x" and TEXT_SELECTOR_RE.search(rule.selector):
                violations.append(
                    _violation(declaration, "overflow-hidden-text", f"'{rule.selector}' clips text with {name}: hidden")
                )
            if "scroll" in value and name in {"overflow", "overflow-x"}:
                violations.append(
                    _violation(declaration, "horizontal-scroll-forced", f"'{rule.selector}' forces a scrollbar with {name}: scroll")
                )

        minimum = rule.get("min-width")
        min_px = _length_px(minimum.value) if minimum else None
        roots = [part.strip() for part in rule.selector.split(",")]
        if min_px is not None and min_px > 320 and any(LAYOUT_ROOT_SELECTOR.match(part) for part in roots):
            violations.append(
                _violation(minimum, "horizontal-scroll-forced", f"'{rule.selector}' min-width {minimum.value} prevents reflow")
            )
    return violations


def _check_fixed_widths(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    limit = settings.thresholds.max_fixed_width_px
    responsive = {rule.selector for rule in sheet.rules if rule.media}
    violations: list[Violation] = []
    for rule in sheet.rules:
        width = rule.get("width")
        if width is None or rule.media or rule.get("max-width") is not None:
            continue
        size = _length_px(width.value)
        if size is None or size < limit or not width.value.lower().endswith("px"):
            continue
        if rule.selector in responsive:
            continue
        violations.append(
            _violation(width, "fixed-width-no-fallback", f"'{rule.selector}' width {width.value} has no responsive fallback")
        )
    return violations


def _check_text_formatting(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for rule in sheet.rules:
        transform = rule.get("text-transform")
        if transform is not None and transform.value.lower() == "uppercase":
            violations.append(
                _violation(transform, "text-uppercase-forced", f"'{rule.selector}' forces uppercase text")
            )
        align = rule.get("text-align")
        if align is not None and align.value.lower() == "justify":
            violations.append(_violation(align, "text-justified", f"'{rule.selector}' justifies text"))
    return violations


def _check_pointer_events(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    violations: list[Violation] = []
    for rule in sheet.rules:
        declaration = rule.get("pointer-events")
        if declaration is not None and declaration.value.lower() == "none" and looks_interactive(rule.selector):
            violations.append(
                _violation(declaration, "pointer-events-none-interactive", f"'{rule.selector}' ignores pointer events")
            )
    return violations


def _check_important(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    limit = settings.thresholds.max_important_declarations
    overrides = [
        declaration
        for rule in sheet.rules
        for declaration in rule.declarations
        if declaration.important and declaration.name in TYPOGRAPHY_PROPERTIES
    ]
    if len(overrides) <= limit:
        return []
    return [
        _violation(
            overrides[limit],
            "important-overuse",
            f"{len(overrides)} !important overrides on typography or colour (limit {limit})",
        )
    ]


def _check_forced_colors(sheet: StyleSheet, settings: AnalyzerSettings) -> list[Violation]:
    if sheet.has_condition("forced-colors", "-ms-high-contrast"):
        return []
    for rule in sheet.rules:
        shadow = rule.get("box-shadow")
        if rule.is_focus and shadow is not None and shadow.value.lower() != "none":
            return [
                _violation(shadow, "forced-colors-unsupported", f"'{rule.selector}' focus box-shadow vanishes in forced-colors mode")
            ]
        image = rule.get("background-image")
        if looks_interactive(rule.selector) and image is not None and "url(" in image.value.lower():
            return [
                _violation(image, "forced-colors-unsupported", f"'{rule.selector}' background image vanishes in forced-colors mode")
            ]
    return []


STYLESHEET_CHECKS = (
    _check_focus_indicators,
    _check_contrast,
    _check_reduced_motion,
    _check_font_sizes,
    _check_touch_targets,
    _check_hiding_patterns,
    _check_text_spacing,
    _check_overflow,
    _check_fixed_widths,
    _check_text_formatting,
    _check_pointer_events,
    _check_important,
    _check_forced_colors,
)
