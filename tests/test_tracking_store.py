"""
Unit tests for the shared tracking store
"""

import asyncio
import threading

from core.domain.defaults import VIP_STRATEGY_ID, default_configuration
from core.domain.enums import InteractionType, OfferResponse
from core.domain.request import ConversionRecord, InteractionRecord
from services.recommendation_builder import RecommendationBuilder
from services.tracking_store import TrackingStore
from fakes import FIXED_NOW


def _recommendation(make_resolver):
    config = default_configuration("hotel-1")
    strategy = config.strategies[0]
    builder = RecommendationBuilder(clock=lambda: FIXED_NOW)
    return asyncio.run(builder.build(strategy, strategy.offers[0], config, make_resolver()))


class TestConfigurations:
    """Test copy-on-write configuration storage"""

    def test_put_and_get(self):
        store = TrackingStore()
        assert store.get_configuration("hotel-1") is None
        store.put_configuration("hotel-1", default_configuration("hotel-1"))
        assert store.get_configuration("hotel-1").property_id == "hotel-1"
        assert store.property_ids() == ["hotel-1"]

    def test_toggle_is_global_and_counted(self):
        store = TrackingStore()
        store.put_configuration("a", default_configuration("a"))
        store.put_configuration("b", default_configuration("b"))
        store.put_configuration("c", default_configuration("c").model_copy(update={"strategies": []}))

        assert store.set_strategy_active(VIP_STRATEGY_ID, False) == 2
        assert not store.get_configuration("a").strategies[0].active
        assert not store.get_configuration("b").strategies[0].active

        assert store.set_strategy_active(VIP_STRATEGY_ID, True) == 2
        assert store.get_configuration("a").strategies[0].active

    def test_toggle_unknown_strategy(self):
        store = TrackingStore()
        store.put_configuration("a", default_configuration("a"))
        assert store.set_strategy_active("missing", False) == 0

    def test_readers_keep_their_snapshot(self):
        """A configuration already handed out does not change when a strategy is paused"""
        store = TrackingStore()
        store.put_configuration("a", default_configuration("a"))
        held = store.get_configuration("a")
        store.set_strategy_active(VIP_STRATEGY_ID, False)
        assert held.strategies[0].active
        assert not store.get_configuration("a").strategies[0].active


class TestLogs:
    """Test append-only history logs"""

    def test_concurrent_appends_all_kept(self):
        store = TrackingStore()

        def worker(n):
            for i in range(100):
                store.append_interaction(f"guest-{n % 2}", InteractionRecord(type=InteractionType.VIEW, offer_id=str(i)))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.interactions()) == 800
        assert len(store.interactions("guest-0")) == 400

    def test_recommendations_filtered(self, make_resolver):
        store = TrackingStore()
        recommendation = _recommendation(make_resolver)
        store.append_recommendations("hotel-1", "guest-1", "booking-1", "VIP Guests", [recommendation])
        store.append_recommendations("hotel-2", "guest-2", "booking-2", "default", [recommendation])

        assert len(store.recommendations()) == 2
        assert [e.guest_id for e in store.recommendations(property_id="hotel-1")] == ["guest-1"]
        assert [e.property_id for e in store.recommendations(guest_id="guest-2")] == ["hotel-2"]

    def test_history_snapshot(self, make_resolver):
        store = TrackingStore()
        assert store.history_snapshot("guest-1") is None

        recommendation = _recommendation(make_resolver)
        store.append_recommendations("hotel-1", "guest-1", "booking-1", "VIP Guests", [recommendation])
        store.append_conversion("guest-1", ConversionRecord(offer_id="deluxe-upgrade", value=100))

        history = store.history_snapshot("guest-1")
        assert len(history.previous_offers) == 1
        assert history.previous_offers[0].response == OfferResponse.CONVERTED
        assert history.previous_offers[0].channel == "email"
        assert [c.value for c in history.conversions] == [100]

    def test_guest_lookup_uses_its_own_entries(self, make_resolver):
        store = TrackingStore()
        recommendation = _recommendation(make_resolver)
        for i in range(500):
            store.append_recommendations("hotel-2", f"other-{i}", f"booking-{i}", "default", [recommendation])
        store.append_recommendations("hotel-1", "guest-1", "booking-1", "VIP Guests", [recommendation])
        store.append_recommendations("hotel-2", "guest-1", "booking-2", "default", [recommendation])

        assert [e.booking_id for e in store.recommendations(guest_id="guest-1")] == ["booking-1", "booking-2"]
        assert [e.booking_id for e in store.recommendations(property_id="hotel-1", guest_id="guest-1")] == ["booking-1"]
        assert len(store.recommendations(property_id="hotel-2")) == 501
        assert [e.guest_id for e in store.booking_recommendations("guest-1", "booking-2")] == ["guest-1"]
        assert store.recommendations(guest_id="missing") == []
        assert store.history_snapshot("missing") is None
        assert len(store.history_snapshot("guest-1").previous_offers) == 2

    def test_lookups_return_copies(self, make_resolver):
        store = TrackingStore()
        store.append_recommendations("hotel-1", "guest-1", "booking-1", "VIP Guests", [_recommendation(make_resolver)])
        store.recommendations(guest_id="guest-1").clear()
        store.recommendations(property_id="hotel-1").clear()
        assert len(store.recommendations(guest_id="guest-1")) == 1
        assert len(store.recommendations(property_id="hotel-1")) == 1
