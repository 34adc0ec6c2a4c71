"""Tests for the list preprocessor and CompiledList storage form."""
import pytest

from tabshield.engine.compiled import CompiledList, normalize_rule, preprocess

from tests.conftest import LIST_A, LIST_B


def test_preprocess_keeps_network_rules_only():
    compiled = preprocess(0, "https://lists.test/a.txt", LIST_A)
    assert compiled.rule_lines() == ["||ads.example.com^", "@@||ads.example.com/ok/"]
    assert compiled.rule_count == 2


def test_source_map_points_at_raw_lines():
    compiled = preprocess(0, "https://lists.test/a.txt", LIST_A)
    assert compiled.source_map == (3, 4)
    assert compiled.raw_line_of(1) == 4


def test_hosts_lines_become_domain_rules():
    compiled = preprocess(1, "https://lists.test/b.txt", LIST_B)
    assert compiled.rule_lines() == ["||tracker.example.net^"]


@pytest.mark.parametrize("line", [
    "",
    "   ",
    "! comment",
    "# hosts comment",
    "[Adblock Plus 2.0]",
    "example.org##.ad",
    "example.org#@#.ad",
    "0.0.0.0 localhost",
])
def test_dropped_lines(line):
    assert normalize_rule(line) is None


def test_empty_list():
    compiled = preprocess(2, "https://lists.test/empty.txt", "")
    assert compiled.rule_lines() == []
    assert compiled.rule_count == 0


def test_storage_form_round_trip():
    compiled = preprocess(4, "https://lists.test/a.txt", LIST_A)
    restored = CompiledList.from_dict(compiled.to_dict())
    assert restored == compiled


def test_from_dict_rejects_mismatched_source_map():
    data = preprocess(0, "https://lists.test/a.txt", LIST_A).to_dict()
    data["sourceMap"] = [1]
    with pytest.raises(ValueError):
        CompiledList.from_dict(data)


def test_from_dict_rejects_missing_keys():
    with pytest.raises(KeyError):
        CompiledList.from_dict({"sourceIndex": 0})


def test_empty_compiled_list():
    empty = CompiledList.empty(3, "https://lists.test/x.txt")
    assert empty.rule_count == 0
    assert CompiledList.from_dict(empty.to_dict()) == empty
