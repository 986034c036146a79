import pytest

from a11y_scanner.catalog import DEFAULT_REMEDIATION, RULE_CATALOG, get_rule, make_violation, remediation_for
from a11y_scanner.models import SEVERITIES


def test_catalog_entries_are_complete():
    assert RULE_CATALOG
    for rule_id, rule in RULE_CATALOG.items():
        assert rule.rule_id == rule_id
        assert rule.severity in SEVERITIES
        assert rule.remediation
        assert rule.formats


def test_catalog_is_read_only():
    with pytest.raises(TypeError):
        RULE_CATALOG["new-rule"] = RULE_CATALOG["img-missing-alt"]


def test_unknown_rule_is_rejected_when_building_violations():
    with pytest.raises(KeyError):
        get_rule("not-a-rule")
    with pytest.raises(KeyError):
        make_violation("not-a-rule", "message", line=1)


def test_remediation_lookup_covers_catalog_delegate_and_default():
    assert remediation_for("img-missing-alt") == list(RULE_CATALOG["img-missing-alt"].remediation)
    assert remediation_for("jsx-a11y/alt-text")[0] == "Add alt attribute with meaningful description"
    assert remediation_for("made-up-rule") == list(DEFAULT_REMEDIATION)


def test_remediation_lookup_rewrites_snippets():
    alt = remediation_for("img-missing-alt", '<img src="logo.png">')
    tabindex = remediation_for("positive-tabindex", '<span tabindex="4">Skip</span>')
    div = remediation_for("div-as-button", '<div onclick="save()">Save</div>')

    assert alt[0] == 'Suggested change: <img alt="Describe the image" src="logo.png">'
    assert tabindex[0] == 'Suggested change: <span tabindex="0">Skip</span>'
    assert div[0] == 'Suggested change: <button type="button" onclick="save()">Save</button>'
    assert len(alt) == len(RULE_CATALOG["img-missing-alt"].remediation) + 1


def test_snippet_without_a_known_rewrite_falls_back_to_plain_lookup():
    assert remediation_for("table-missing-headers", "<table></table>") == list(
        RULE_CATALOG["table-missing-headers"].remediation
    )
