"""
Unit tests for strategy selection and trigger matching
"""

import asyncio

from core.domain.config import (
    Condition, Offer, Strategy, Trigger, TriggerCondition, UpsellConfiguration,
)
from core.domain.defaults import VIP_STRATEGY_ID, default_configuration
from core.domain.enums import ConditionType, DeviceType, StrategyCategory, TriggerEventType
from core.rules.strategy_selector import StrategySelector
from fakes import FakeGuestDataClient


def _strategy(strategy_id: str, priority: int = 0, conditions=None, active: bool = True) -> Strategy:
    return Strategy(
        id=strategy_id,
        category=StrategyCategory.SPA,
        priority=priority,
        active=active,
        conditions=conditions or [],
        offers=[Offer(id=f"{strategy_id}-offer", title="Offer")],
    )


def _config(strategies, triggers) -> UpsellConfiguration:
    return UpsellConfiguration(property_id="hotel-1", strategies=strategies, triggers=triggers)


def _select(config, resolver):
    return asyncio.run(StrategySelector().select_strategies(config, resolver))


class TestTriggers:
    """Test trigger event matching and trigger-level conditions"""

    def test_trigger_fires_on_exact_event(self, make_resolver):
        selected = _select(default_configuration("hotel-1"), make_resolver())
        assert [s.id for s in selected] == [VIP_STRATEGY_ID]

    def test_other_event_does_not_fire(self, make_resolver):
        resolver = make_resolver(event=TriggerEventType.CHECK_OUT)
        assert _select(default_configuration("hotel-1"), resolver) == []

    def test_no_event_fires_nothing(self, make_resolver):
        resolver = make_resolver(event=None)
        assert _select(default_configuration("hotel-1"), resolver) == []

    def test_inactive_trigger_ignored(self, make_resolver):
        config = _config(
            [_strategy("a")],
            [Trigger(id="t", event=TriggerEventType.BOOKING_CREATED, strategies=["a"], active=False)],
        )
        assert _select(config, make_resolver()) == []

    def test_trigger_conditions_resolve_from_request(self, make_resolver):
        """Trigger conditions see request fields such as device"""
        trigger = Trigger(
            id="t",
            event=TriggerEventType.BOOKING_CREATED,
            strategies=["a"],
            conditions=[TriggerCondition(field="device", operator="equals", value="mobile")],
        )
        config = _config([_strategy("a")], [trigger])
        assert _select(config, make_resolver()) == []

        assert [s.id for s in _select(config, make_resolver(device=DeviceType.MOBILE))] == ["a"]

    def test_unknown_trigger_field_never_matches(self, make_resolver):
        trigger = Trigger(
            id="t",
            event=TriggerEventType.BOOKING_CREATED,
            strategies=["a"],
            conditions=[TriggerCondition(field="moon_phase", operator="equals", value="full")],
        )
        assert _select(_config([_strategy("a")], [trigger]), make_resolver()) == []


class TestStrategyConditions:
    """Test strategy condition evaluation and ordering"""

    def test_silver_guest_excluded_from_vip(self, make_resolver):
        resolver = make_resolver(client=FakeGuestDataClient(tier="silver"))
        assert _select(default_configuration("hotel-1"), resolver) == []

    def test_gold_guest_included(self, make_resolver):
        resolver = make_resolver(client=FakeGuestDataClient(tier="gold"))
        assert [s.id for s in _select(default_configuration("hotel-1"), resolver)] == [VIP_STRATEGY_ID]

    def test_failed_loyalty_lookup_defaults_to_standard(self, make_resolver):
        """Lookup failure degrades to the 'standard' tier instead of aborting"""
        resolver = make_resolver(client=FakeGuestDataClient(tier=None))
        assert _select(default_configuration("hotel-1"), resolver) == []

    def test_no_conditions_always_match(self, make_resolver):
        config = _config(
            [_strategy("a")],
            [Trigger(id="t", event=TriggerEventType.BOOKING_CREATED, strategies=["a"])],
        )
        assert [s.id for s in _select(config, make_resolver())] == ["a"]

    def test_inactive_and_untriggered_strategies_skipped(self, make_resolver):
        config = _config(
            [_strategy("a", active=False), _strategy("b"), _strategy("c")],
            [Trigger(id="t", event=TriggerEventType.BOOKING_CREATED, strategies=["a", "b"])],
        )
        assert [s.id for s in _select(config, make_resolver())] == ["b"]

    def test_priority_descending_and_stable(self, make_resolver):
        config = _config(
            [_strategy("low", 1), _strategy("first-high", 50), _strategy("second-high", 50)],
            [Trigger(id="t", event=TriggerEventType.BOOKING_CREATED,
                     strategies=["low", "first-high", "second-high"])],
        )
        assert [s.id for s in _select(config, make_resolver())] == ["first-high", "second-high", "low"]

    def test_all_conditions_must_hold(self, make_resolver):
        conditions = [
            Condition(type=ConditionType.LOYALTY_TIER, operator="equals", value="platinum"),
            Condition(type=ConditionType.BOOKING_VALUE, operator="greater_than", value=1000),
        ]
        config = _config(
            [_strategy("a", conditions=conditions)],
            [Trigger(id="t", event=TriggerEventType.BOOKING_CREATED, strategies=["a"])],
        )
        assert _select(config, make_resolver()) == []
