"""Tests for TabStats records and MatchVerdict."""
from tabshield.domain.decisions import DecisionReason, MatchVerdict
from tabshield.domain.tab_stats import TabStats


def test_empty_record():
    stats = TabStats.empty()
    assert stats.is_empty()
    assert stats.to_dict() == {
        "requestCount": 0,
        "blockedCount": 0,
        "thirdPartyBlockedCount": 0,
        "blockedDomains": [],
        "requestedDomains": [],
    }


def test_copy_is_detached():
    stats = TabStats(request_count=1, requested_domains={"a.test"})
    clone = stats.copy()
    clone.requested_domains.add("b.test")
    clone.request_count += 1
    assert stats.requested_domains == {"a.test"}
    assert stats.request_count == 1


def test_to_dict_sorts_domains():
    stats = TabStats(blocked_domains={"z.test", "a.test"})
    assert stats.to_dict()["blockedDomains"] == ["a.test", "z.test"]


def test_verdict_response_only_exposes_cancel():
    verdict = MatchVerdict(cancel=True, reason=DecisionReason.RULE_MATCHED)
    assert verdict.to_response() == {"cancel": True}
