from a11y_scanner.evaluators.prepass import run_prepass
from a11y_scanner.models import MARKUP, STYLESHEET, TEMPLATING


def _ids(violations):
    return [item.rule_id for item in violations]


def test_prepass_flags_images_without_alt():
    html = '<img src="hero.png">\n<img src="logo.png" alt="">\n'

    violations = run_prepass(html, kind=MARKUP)

    missing = [item for item in violations if item.rule_id == "img-missing-alt"]
    assert len(missing) == 1
    assert missing[0].line == 1


def test_prepass_div_button_needs_role_tabindex_and_key_handler():
    bare = "<div onClick={() => open()}>Open</div>"
    complete = '<div role="button" tabIndex={0} onClick={() => open()} onKeyDown={onKey}>Open</div>'

    assert "div-button" in _ids(run_prepass(bare, kind=TEMPLATING))
    assert "div-button" not in _ids(run_prepass(complete, kind=TEMPLATING))


def test_prepass_heading_skip_reported_on_later_heading():
    html = "<h1>Title</h1>\n<h2>Section</h2>\n<h4>Detail</h4>\n"

    violations = run_prepass(html, kind=MARKUP)

    skips = [item for item in violations if item.rule_id == "heading-level-skip"]
    assert len(skips) == 1
    assert skips[0].line == 3
    assert "missing-h1" not in _ids(violations)


def test_prepass_missing_h1():
    violations = run_prepass("<h2>Section</h2>", kind=MARKUP)

    assert "missing-h1" in _ids(violations)


def test_prepass_duplicate_ids_and_dangling_aria_reference():
    html = (
        '<span id="hint">Hint</span>\n'
        '<span id="hint">Again</span>\n'
        '<input type="text" aria-describedby="hint" aria-labelledby="nowhere">\n'
    )

    violations = run_prepass(html, kind=MARKUP)
    ids = _ids(violations)

    assert ids.count("duplicate-id") == 1
    assert "aria-labelledby-invalid" in ids
    assert "aria-describedby-invalid" not in ids


def test_prepass_form_controls_and_links():
    html = (
        '<input type="text" placeholder="Email">\n'
        '<label for="name">Name</label><input id="name" type="text">\n'
        '<input type="hidden" name="token">\n'
        '<a href="/docs">Read more</a>\n'
    )

    ids = _ids(run_prepass(html, kind=MARKUP))

    assert ids.count("input-no-id-or-label") == 1
    assert "placeholder-as-label" in ids
    assert "input-missing-label" not in ids
    assert "link-non-descriptive" in ids


def test_prepass_stylesheet_outline_pairing_uses_nearby_focus_rule():
    alone = "button:focus { outline: none; }"
    paired = ".btn { outline: none; }\n.btn:focus-visible { box-shadow: 0 0 0 3px #005fcc; }"

    assert "outline-none-no-alternative" in _ids(run_prepass(alone, kind=STYLESHEET))
    assert "outline-none-no-alternative" not in _ids(run_prepass(paired, kind=STYLESHEET))


def test_prepass_stylesheet_size_and_visibility_checks():
    css = (
        ".legal { font-size: 8px; }\n"
        ".icon-button { width: 24px; height: 24px; }\n"
        ".ghost { color: transparent; }\n"
        ".close-btn { display: none; }\n"
        ".table { display: none; }\n"
    )

    violations = run_prepass(css, kind=STYLESHEET)
    ids = _ids(violations)

    assert "font-size-too-small" in ids
    assert ids.count("touch-target-too-small") == 1
    assert "text-transparent" in ids
    assert ids.count("display-none-interactive") == 1
    small = next(item for item in violations if item.rule_id == "font-size-too-small")
    assert small.line == 1


def test_prepass_scans_style_blocks_inside_markup():
    html = '<html lang="en">\n<style>\na:focus { outline: 0; }\n</style>\n</html>'

    violations = run_prepass(html, kind=MARKUP)

    outline = [item for item in violations if item.rule_id == "outline-none-no-alternative"]
    assert len(outline) == 1
    assert outline[0].line == 3
    assert "html-missing-lang" not in _ids(violations)
