from a11y_scanner.evaluators.script import evaluate_script, parse_script
from a11y_scanner.models import EvaluationRequest


def _evaluate(source: str, path: str = "widget.js"):
    return evaluate_script(EvaluationRequest(path=path, content=source))


def _ids(violations):
    return [item.rule_id for item in violations]


def test_created_div_with_click_handler_needs_role_tabindex_and_keyboard():
    bare = (
        "function buildCard() {\n"
        "  const card = document.createElement('div');\n"
        "  card.addEventListener('click', openCard);\n"
        "  document.body.appendChild(card);\n"
        "}\n"
    )
    complete = (
        "function buildCard() {\n"
        "  const card = document.createElement('div');\n"
        "  card.addEventListener('click', openCard);\n"
        "  card.setAttribute('role', 'button');\n"
        "  card.tabIndex = 0;\n"
        "  card.addEventListener('keydown', onCardKey);\n"
        "  document.body.appendChild(card);\n"
        "}\n"
    )

    flagged = [item for item in _evaluate(bare) if item.rule_id == "dom-interactive-no-a11y"]
    assert len(flagged) == 1
    assert flagged[0].line == 2
    assert "dom-interactive-no-a11y" not in _ids(_evaluate(complete))


def test_handlers_in_another_function_are_not_tracked():
    source = (
        "function create() {\n"
        "  const tile = document.createElement('div');\n"
        "  tile.onclick = select;\n"
        "  return tile;\n"
        "}\n"
        "function enhance(tile) {\n"
        "  tile.setAttribute('role', 'button');\n"
        "  tile.tabIndex = 0;\n"
        "  tile.onkeydown = select;\n"
        "}\n"
    )

    assert "dom-interactive-no-a11y" in _ids(_evaluate(source))


def test_outline_and_tabindex_writes():
    source = (
        "const link = document.querySelector('a');\n"
        "link.style.outline = 'none';\n"
        "link.style.setProperty('outline-width', '0');\n"
        "link.tabIndex = 3;\n"
        "link.setAttribute('tabindex', '-1');\n"
    )

    ids = _ids(_evaluate(source))

    assert ids.count("dom-focus-outline-removed") == 2
    assert ids.count("dom-positive-tabindex") == 1


def test_unsafe_html_sinks():
    source = (
        "panel.innerHTML = userComment;\n"
        "panel.innerHTML = '<p>Saved</p>';\n"
        "panel.innerHTML = DOMPurify.sanitize(userComment);\n"
        "panel.insertAdjacentHTML('beforeend', response.body);\n"
    )

    violations = [item for item in _evaluate(source) if item.rule_id == "dom-unsafe-html"]

    assert [item.line for item in violations] == [1, 4]


def test_created_inputs_and_media():
    source = (
        "function form() {\n"
        "  const query = document.createElement('input');\n"
        "  query.placeholder = 'Search';\n"
        "  const email = document.createElement('input');\n"
        "  email.setAttribute('aria-label', 'Email');\n"
        "  const clip = document.createElement('video');\n"
        "  clip.autoplay = true;\n"
        "}\n"
    )

    ids = _ids(_evaluate(source))

    assert ids.count("dom-input-missing-label") == 1
    assert "dom-placeholder-as-label" in ids
    assert "dom-autoplay-media" in ids


def test_timers_without_pause():
    carousel = (
        "setInterval(() => {\n"
        "  slides.style.transform = `translateX(${offset}px)`;\n"
        "}, 5000);\n"
    )
    pausable = carousel.replace("setInterval(", "const timer = setInterval(") + (
        "pause.addEventListener('click', () => clearInterval(timer));\n"
    )
    reload = "setTimeout(() => location.reload(), 30000);\n"

    assert "dom-timer-no-pause" in _ids(_evaluate(carousel))
    assert "dom-timer-no-pause" not in _ids(_evaluate(pausable))
    assert "dom-timer-no-pause" in _ids(_evaluate(reload))


def test_drag_and_mouse_only_events():
    source = (
        "item.draggable = true;\n"
        "item.addEventListener('dragstart', onDrag);\n"
        "tip.addEventListener('mouseenter', show);\n"
        "tip.addEventListener('mouseleave', hide);\n"
        "menu.addEventListener('mouseover', open);\n"
        "menu.addEventListener('focus', open);\n"
    )

    ids = _ids(_evaluate(source))

    assert ids.count("dom-drag-no-keyboard") == 1
    assert ids.count("dom-mouse-only-events") == 2


def test_typescript_sources_parse():
    source = (
        "const button = document.createElement('span') as HTMLSpanElement;\n"
        "button.addEventListener('click', (event: MouseEvent) => go(event));\n"
    )

    assert "dom-interactive-no-a11y" in _ids(_evaluate(source, path="widget.ts"))


def test_truncated_script_returns_partial_results():
    outcome = parse_script("function broken( {\n  el.tabIndex = 5;\n", extension=".js")
    violations = _evaluate("function broken( {\n  el.innerHTML = data\n")

    assert outcome.ok
    assert outcome.diagnostics
    assert isinstance(violations, list)
