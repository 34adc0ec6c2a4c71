"""Tests for NotificationBus."""
from tabshield.messaging.bus import RULES_COUNT_UPDATE, TAB_STATS_UPDATE, NotificationBus


def test_publish_reaches_subscribers_of_kind():
    bus = NotificationBus()
    rules, tabs = [], []
    bus.subscribe(RULES_COUNT_UPDATE, rules.append)
    bus.subscribe(TAB_STATS_UPDATE, tabs.append)

    assert bus.publish(RULES_COUNT_UPDATE, {"rulesCount": 5}) == 1
    assert rules == [{"rulesCount": 5}]
    assert tabs == []


def test_publish_without_subscribers():
    bus = NotificationBus()
    assert bus.publish(TAB_STATS_UPDATE, {}) == 0
    assert bus.published == 1


def test_unsubscribe():
    bus = NotificationBus()
    seen = []
    unsubscribe = bus.subscribe(RULES_COUNT_UPDATE, seen.append)
    unsubscribe()
    unsubscribe()
    bus.publish(RULES_COUNT_UPDATE, {"rulesCount": 1})
    assert seen == []
    assert bus.subscriber_count(RULES_COUNT_UPDATE) == 0


def test_failing_observer_does_not_block_others():
    bus = NotificationBus()
    seen = []

    def _broken(payload):
        raise RuntimeError("observer bug")

    bus.subscribe(RULES_COUNT_UPDATE, _broken)
    bus.subscribe(RULES_COUNT_UPDATE, seen.append)
    assert bus.publish(RULES_COUNT_UPDATE, {"rulesCount": 2}) == 1
    assert seen == [{"rulesCount": 2}]


def test_observer_may_unsubscribe_itself():
    bus = NotificationBus()
    calls = []

    def _once(payload):
        calls.append(payload)
        unsubscribe()

    unsubscribe = bus.subscribe(TAB_STATS_UPDATE, _once)
    bus.publish(TAB_STATS_UPDATE, {"n": 1})
    bus.publish(TAB_STATS_UPDATE, {"n": 2})
    assert calls == [{"n": 1}]
