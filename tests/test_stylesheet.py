from a11y_scanner.evaluators.colors import contrast_ratio, first_color
from a11y_scanner.evaluators.stylesheet import (
    collect_focus_state,
    evaluate_stylesheet,
    focus_targets,
    parse_stylesheet,
)
from a11y_scanner.models import AnalyzerSettings, EvaluationRequest, Thresholds


def _evaluate(css: str, path: str = "site.css", settings: AnalyzerSettings | None = None):
    return evaluate_stylesheet(EvaluationRequest(path=path, content=css), settings)


def _ids(violations):
    return [item.rule_id for item in violations]


def test_outline_removal_without_any_focus_indicator():
    violations = _evaluate("button:focus {\n  outline: none;\n}\n")

    removed = [item for item in violations if item.rule_id == "focus-indicator-removed"]
    assert len(removed) == 1
    assert removed[0].line == 2


def test_outline_removal_with_separate_focus_visible_rule():
    css = (
        "button:focus { outline: none; }\n"
        "\n"
        ".card { padding: 1rem; }\n"
        "\n"
        "button:focus-visible { box-shadow: 0 0 0 3px #005fcc; }\n"
    )

    assert "focus-indicator-removed" not in _ids(_evaluate(css))


def test_focus_state_is_collected_before_checking():
    sheet = parse_stylesheet(
        "a { outline: 0; }\na:focus { outline: 0; }\na:focus-visible { outline: 2px solid blue; }"
    ).tree

    state = collect_focus_state(sheet)

    assert [rule.selector for rule, _ in state.removals] == ["a:focus"]
    assert [rule.selector for rule in state.indicators] == ["a:focus-visible"]


def test_focus_style_on_unrelated_selector_does_not_replace_outline():
    css = ".btn:focus { outline: none; }\n.card-title:focus { box-shadow: 0 0 0 2px #000; }\n"

    removed = [item for item in _evaluate(css) if item.rule_id == "focus-indicator-removed"]

    assert len(removed) == 1
    assert removed[0].line == 1


def test_transparent_background_is_not_a_focus_indicator():
    css = ".btn:focus { outline: none; background: transparent; }\n"

    assert "focus-indicator-removed" in _ids(_evaluate(css))


def test_global_focus_visible_rule_covers_every_removal():
    css = (
        ".btn:focus { outline: none; }\n"
        "a:focus { outline: 0; }\n"
        ":focus-visible { outline: 3px solid #005fcc; }\n"
    )

    assert "focus-indicator-removed" not in _ids(_evaluate(css))


def test_focus_targets_strip_focus_pseudo_classes():
    assert focus_targets(".nav a:focus-visible, button:focus") == {".nav a", "button"}
    assert focus_targets("*:focus") == {"*"}
    assert focus_targets(".card") == set()


def test_contrast_ratio_matches_reference_values():
    black = first_color("#000")
    white = first_color("white")

    assert round(contrast_ratio(black, white), 1) == 21.0
    assert first_color("var(--brand)") is None


def test_low_contrast_distinguishes_large_text():
    css = (
        ".note { color: #999999; background-color: #ffffff; }\n"
        ".hero { color: #888888; background-color: #ffffff; font-size: 32px; }\n"
        ".body { color: #222222; background: #ffffff; }\n"
    )

    violations = _evaluate(css)

    low = [item for item in violations if item.rule_id == "low-contrast-text"]
    assert [item.line for item in low] == [1]


def test_animation_requires_reduced_motion_guard():
    animated = ".spinner { animation: spin 1s linear infinite; }"
    guarded = animated + "\n@media (prefers-reduced-motion: reduce) { .spinner { animation: none; } }"

    assert "animation-no-reduced-motion" in _ids(_evaluate(animated))
    assert "animation-no-reduced-motion" not in _ids(_evaluate(guarded))


def test_font_size_touch_target_and_hiding_patterns():
    css = (
        ".fine-print { font-size: 10px; }\n"
        "h1 { font-size: 5vw; }\n"
        "h2 { font-size: calc(1rem + 2vw); }\n"
        ".icon-btn { width: 32px; min-width: 30px; height: 48px; }\n"
        ".logo-text { text-indent: -9999px; }\n"
        ".collapsed { width: 0; height: 0; }\n"
        ".sr-only { position: absolute; width: 1px; height: 1px; clip: rect(0 0 0 0); }\n"
    )

    ids = _ids(_evaluate(css))

    assert ids.count("font-size-too-small") == 1
    assert ids.count("viewport-font-size") == 1
    assert ids.count("touch-target-too-small") == 1
    assert "text-indent-hiding" in ids
    assert ids.count("zero-size-hiding") == 1


def test_thresholds_come_from_settings():
    css = ".tab-button { width: 40px; height: 40px; }"
    relaxed = AnalyzerSettings(thresholds=Thresholds(min_touch_target_px=24))

    assert "touch-target-too-small" in _ids(_evaluate(css))
    assert "touch-target-too-small" not in _ids(_evaluate(css, settings=relaxed))


def test_spacing_overflow_width_and_formatting():
    css = (
        "p { line-height: 1; letter-spacing: -0.5px; overflow: hidden; }\n"
        "body { min-width: 1024px; }\n"
        ".panel { width: 960px; }\n"
        ".sidebar { width: 720px; max-width: 100%; }\n"
        ".label { text-transform: uppercase; }\n"
        "article { text-align: justify; }\n"
        ".btn-disabled { pointer-events: none; }\n"
    )

    ids = _ids(_evaluate(css))

    assert ids.count("restrictive-text-spacing") == 2
    assert "overflow-hidden-text" in ids
    assert "horizontal-scroll-forced" in ids
    assert ids.count("fixed-width-no-fallback") == 1
    assert "text-uppercase-forced" in ids
    assert "text-justified" in ids
    assert "pointer-events-none-interactive" in ids


def test_important_overuse_and_forced_colors():
    overrides = "\n".join(f".c{index} {{ color: #111 !important; }}" for index in range(6))
    focus = "a:focus-visible { box-shadow: 0 0 0 2px #000; }"
    supported = focus + "\n@media (forced-colors: active) { a:focus-visible { outline: 2px solid; } }"

    assert _ids(_evaluate(overrides)).count("important-overuse") == 1
    assert "forced-colors-unsupported" in _ids(_evaluate(focus))
    assert "forced-colors-unsupported" not in _ids(_evaluate(supported))


def test_scss_nesting_and_comments():
    scss = (
        "$brand: #005fcc;\n"
        "// focus styles\n"
        ".menu {\n"
        "  a {\n"
        "    &:focus { outline: none; }\n"
        "  }\n"
        "}\n"
    )

    outcome = parse_stylesheet(scss, scss=True)
    selectors = [rule.selector for rule in outcome.tree.rules]
    violations = _evaluate(scss, path="menu.scss")

    assert ".menu a:focus" in selectors
    assert "focus-indicator-removed" in _ids(violations)


def test_scss_syntax_is_blanked_without_shifting_columns():
    rule = "a:focus { outline: none; }\n"
    scss = "$gap: 4px; " + rule
    padded = " " * len("$gap: 4px; ") + rule

    def removed(content, path):
        return [item for item in _evaluate(content, path=path) if item.rule_id == "focus-indicator-removed"]

    from_scss = removed(scss, "gap.scss")
    from_css = removed(padded, "gap.css")

    assert len(from_scss) == 1
    assert from_scss[0].column == from_css[0].column
    assert from_scss[0].column > len("$gap: 4px; ")


def test_truncated_stylesheet_does_not_raise():
    violations = _evaluate(".broken { color: red; background: #fff")

    assert isinstance(violations, list)
