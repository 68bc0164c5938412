import pytest

from tabwright.errors import AmbiguousTarget, TargetNotFound
from tabwright.target_resolution import resolve_target_id_from_tabs

from fakes import make_tab


TABS = [make_tab("abcd1234"), make_tab("abce9999"), make_tab("ffff0000")]


def test_exact_id_wins_over_prefix():
    tabs = [make_tab("abc"), make_tab("abcd")]
    result = resolve_target_id_from_tabs("abc", tabs)
    assert result.ok
    assert result.target_id == "abc"


def test_unique_prefix_resolves():
    result = resolve_target_id_from_tabs("abcd", TABS)
    assert result.ok
    assert result.target_id == "abcd1234"


def test_shared_prefix_is_ambiguous():
    result = resolve_target_id_from_tabs("abc", TABS)
    assert not result.ok
    assert result.reason == "ambiguous"
    with pytest.raises(AmbiguousTarget):
        result.raise_for_reason()


def test_unmatched_prefix_is_not_found():
    result = resolve_target_id_from_tabs("zzz", TABS)
    assert result.reason == "not_found"
    with pytest.raises(TargetNotFound):
        result.raise_for_reason()


def test_empty_identifier_selects_first_tab():
    assert resolve_target_id_from_tabs("  ", TABS).target_id == "abcd1234"
    assert resolve_target_id_from_tabs(None, []).reason == "not_found"


def test_identifier_is_trimmed():
    assert resolve_target_id_from_tabs("  ffff ", TABS).target_id == "ffff0000"
