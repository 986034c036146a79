from a11y_scanner.evaluators.markup import evaluate_markup, parse_markup
from a11y_scanner.models import EvaluationRequest


def _evaluate(html: str):
    return evaluate_markup(EvaluationRequest(path="page.html", content=html))


def _ids(violations):
    return [item.rule_id for item in violations]


def test_alt_text_round_trip():
    missing = _ids(_evaluate('<img src="logo.png">'))
    described = _ids(_evaluate('<img src="logo.png" alt="Logo">'))
    redundant = _ids(_evaluate('<img src="logo.png" alt="image of logo">'))

    assert "img-missing-alt" in missing
    assert "img-missing-alt" not in described
    assert "img-redundant-alt" not in described
    assert "img-missing-alt" not in redundant
    assert "img-redundant-alt" in redundant


def test_heading_hierarchy_attached_to_skipping_heading():
    skipped = _evaluate("<h1>Shop</h1>\n<h2>Deals</h2>\n<h4>Today</h4>\n")
    continuous = _evaluate("<h1>Shop</h1>\n<h2>Deals</h2>\n<h3>Today</h3>\n")

    hierarchy = [item for item in skipped if item.rule_id == "heading-hierarchy"]
    assert len(hierarchy) == 1
    assert hierarchy[0].line == 3
    assert "heading-hierarchy" not in _ids(continuous)


def test_duplicate_ids_reported_per_extra_occurrence():
    two = _evaluate('<div id="x"></div>\n<p id="x"></p>\n')
    three = _evaluate('<div id="x"></div>\n<p id="x"></p>\n<span id="x"></span>\n')

    first = [item for item in two if item.rule_id == "duplicate-id"]
    assert len(first) == 1
    assert first[0].line == 2
    assert _ids(three).count("duplicate-id") == 2


def test_form_controls_label_resolution():
    html = (
        '<label for="email">Email</label>\n'
        '<input id="email" type="email" autocomplete="email">\n'
        '<input type="text" name="city" placeholder="City">\n'
        '<input type="search" aria-label="Search">\n'
        '<label>Phone <input type="tel" name="phone"></label>\n'
    )

    violations = _evaluate(html)
    ids = _ids(violations)

    unlabeled = [item for item in violations if item.rule_id == "form-input-missing-label"]
    assert len(unlabeled) == 1
    assert unlabeled[0].line == 3
    assert "placeholder-as-label" in ids
    autocomplete = [item for item in violations if item.rule_id == "missing-autocomplete"]
    assert [item.line for item in autocomplete] == [5]


def test_empty_controls_and_link_text():
    html = (
        "<button></button>\n"
        '<button aria-label="Close"></button>\n'
        '<a href="/more">click here</a>\n'
        '<a href="/report" target="_blank">Annual report</a>\n'
        '<a href="/terms" target="_blank">Terms (opens in new tab)</a>\n'
        "<h2></h2>\n"
    )

    ids = _ids(_evaluate(html))

    assert ids.count("button-empty") == 1
    assert "link-non-descriptive" in ids
    assert ids.count("link-new-window-no-warning") == 1
    assert "heading-empty" in ids


def test_click_handlers_tabindex_and_iframes():
    html = (
        '<div onclick="go()">Go</div>\n'
        '<div role="button" tabindex="0" onclick="go()" onkeydown="key(event)">Go</div>\n'
        '<span tabindex="3">Jump</span>\n'
        '<iframe src="/map"></iframe>\n'
    )

    violations = _evaluate(html)
    ids = _ids(violations)

    assert ids.count("div-as-button") == 1
    assert "positive-tabindex" in ids
    assert "iframe-missing-title" in ids


def test_tabindex_values_are_parsed_leniently():
    html = (
        '<span tabindex="2.0">Decimal</span>\n'
        '<span tabindex="-1">Programmatic</span>\n'
        '<span tabindex="auto">Bogus</span>\n'
    )

    positive = [item for item in _evaluate(html) if item.rule_id == "positive-tabindex"]

    assert [item.line for item in positive] == [1]


def test_tables_media_and_roles():
    html = (
        "<table><tr><td>1</td></tr></table>\n"
        '<video src="intro.mp4" autoplay></video>\n'
        '<video src="clip.mp4" controls><track kind="captions" src="clip.vtt"></video>\n'
        '<nav role="navigation"><a href="/">Home</a></nav>\n'
        '<div role="buton">x</div>\n'
        '<div role="checkbox" tabindex="0">Agree</div>\n'
    )

    ids = _ids(_evaluate(html))

    assert "table-missing-headers" in ids
    assert "autoplay-media" in ids
    assert ids.count("media-no-captions") == 1
    assert "redundant-role" in ids
    assert "invalid-aria-role" in ids
    assert "missing-aria-required" in ids


def test_radio_groups_need_fieldset_with_legend():
    loose = (
        '<input type="radio" name="size" value="s" aria-label="Small">\n'
        '<input type="radio" name="size" value="l" aria-label="Large">\n'
    )
    grouped = (
        "<fieldset><legend>Size</legend>\n"
        '<input type="radio" name="size" value="s" aria-label="Small">\n'
        '<input type="radio" name="size" value="l" aria-label="Large">\n'
        "</fieldset>\n"
    )

    assert _ids(_evaluate(loose)).count("radio-missing-fieldset") == 1
    assert "radio-missing-fieldset" not in _ids(_evaluate(grouped))


def test_link_groups_outside_navigation():
    links = '<a href="/a">Alpha</a><a href="/b">Beta</a><a href="/c">Gamma</a>'

    assert "non-semantic-navigation" in _ids(_evaluate(f"<div>{links}</div>"))
    assert "non-semantic-navigation" not in _ids(_evaluate(f"<nav><div>{links}</div></nav>"))
    assert "non-semantic-navigation" not in _ids(_evaluate(f"<p>{links}</p>"))


def test_document_level_checks_only_for_full_documents():
    document = (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head><title> </title></head>\n"
        '<body><marquee>Sale</marquee><a href="/" style="outline: none">Home</a></body>\n'
        "</html>\n"
    )

    ids = _ids(_evaluate(document))
    fragment_ids = _ids(_evaluate('<section><p>Hello</p></section>'))

    assert "missing-lang" in ids
    assert "title-empty" in ids
    assert "missing-main-landmark" in ids
    assert "marquee-element" in ids
    assert "focus-outline-removed" in ids
    assert not {"missing-lang", "title-empty", "missing-main-landmark"} & set(fragment_ids)


def test_malformed_markup_does_not_raise():
    outcome = parse_markup("<div><p>unclosed <img src=x")
    violations = _evaluate('<div><img src="a.png"<<p>>')

    assert outcome.ok or outcome.diagnostics
    assert isinstance(violations, list)
