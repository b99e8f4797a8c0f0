"""
Unit tests for segment targeting and context resolution
"""

import asyncio
from datetime import datetime, timezone

from adapters.external.guest_data_client import BookingRecord
from core.domain.config import SegmentCriteria, SegmentationRule, TargetingConfig, UpsellConfiguration
from core.domain.defaults import default_configuration
from core.domain.enums import ConditionType, SegmentDimension
from core.domain.request import ConversionRecord, LocationData, UpsellHistory
from core.rules.targeting import evaluate_targeting
from services.context_resolver import day_of_week_for, season_for
from fakes import FakeGuestDataClient


def _segment(name: str, *criteria: SegmentCriteria) -> SegmentationRule:
    return SegmentationRule(id=name.lower(), name=name, criteria=list(criteria))


def _targeting(segments, resolver):
    config = UpsellConfiguration(property_id="hotel-1", targeting=TargetingConfig(segmentation=segments))
    return asyncio.run(evaluate_targeting(config, resolver))


class TestTargeting:
    """Test segment scoring"""

    def test_vip_segment_matched(self, make_resolver):
        info = asyncio.run(evaluate_targeting(default_configuration("hotel-1"), make_resolver()))
        assert info.segment == "VIP Guests"
        assert info.score == 10
        assert info.reasons == ["Matched segment: VIP Guests"]
        assert info.rules == ["tier in ['gold', 'platinum']"]

    def test_no_match_falls_back_to_default(self, make_resolver):
        resolver = make_resolver(client=FakeGuestDataClient(tier="silver"))
        info = asyncio.run(evaluate_targeting(default_configuration("hotel-1"), resolver))
        assert info.segment == "default"
        assert info.score == 0
        assert info.reasons

    def test_higher_score_wins(self, make_resolver):
        one = _segment("One", SegmentCriteria(dimension=SegmentDimension.LOYALTY, attribute="tier",
                                              operator="equals", value="platinum"))
        two = _segment(
            "Two",
            SegmentCriteria(dimension=SegmentDimension.LOYALTY, attribute="tier", operator="equals", value="platinum"),
            SegmentCriteria(dimension=SegmentDimension.LOYALTY, attribute="points", operator="greater_than", value=1000),
        )
        info = _targeting([one, two], make_resolver())
        assert info.segment == "Two"
        assert info.score == 20

    def test_tie_keeps_first_segment(self, make_resolver):
        criteria = SegmentCriteria(dimension=SegmentDimension.LOYALTY, attribute="tier",
                                   operator="equals", value="platinum")
        info = _targeting([_segment("First", criteria), _segment("Second", criteria)], make_resolver())
        assert info.segment == "First"

    def test_demographics_use_request_location(self, make_resolver):
        segment = _segment("Locals", SegmentCriteria(dimension=SegmentDimension.DEMOGRAPHICS,
                                                     attribute="country", operator="equals", value="IN"))
        resolver = make_resolver(location=LocationData(country="IN", city="Goa"))
        assert _targeting([segment], resolver).segment == "Locals"

    def test_value_dimension_sums_history(self, make_resolver):
        segment = _segment("Spenders", SegmentCriteria(dimension=SegmentDimension.VALUE,
                                                       attribute="lifetime_value", operator="greater_than", value=250))
        history = UpsellHistory(conversions=[
            ConversionRecord(offer_id="a", value=200),
            ConversionRecord(offer_id="b", value=100),
        ])
        assert _targeting([segment], make_resolver(history=history)).segment == "Spenders"
        assert _targeting([segment], make_resolver()).segment == "default"


class TestContextResolver:
    """Test attribute resolution, defaults and memoized lookups"""

    def test_lookups_memoized_per_request(self, make_resolver):
        client = FakeGuestDataClient()
        resolver = make_resolver(client=client)

        async def resolve_many():
            await resolver.resolve(ConditionType.BOOKING_VALUE)
            await resolver.resolve(ConditionType.ROOM_TYPE)
            await resolver.resolve(ConditionType.PARTY_SIZE)
            await resolver.resolve(ConditionType.LOYALTY_TIER)
            await resolver.resolve(ConditionType.LOYALTY_TIER)

        asyncio.run(resolve_many())
        assert client.calls["booking"] == 1
        assert client.calls["loyalty"] == 1

    def test_failed_lookups_use_defaults(self, make_resolver):
        resolver = make_resolver(client=FakeGuestDataClient(fail=True))

        async def resolve_all():
            return {attr: await resolver.resolve(attr) for attr in ConditionType}

        values = asyncio.run(resolve_all())
        assert values[ConditionType.BOOKING_VALUE] == 0
        assert values[ConditionType.ROOM_TYPE] == "standard"
        assert values[ConditionType.GUEST_TYPE] == "leisure"
        assert values[ConditionType.LOYALTY_TIER] == "standard"
        assert values[ConditionType.LENGTH_OF_STAY] == 1
        assert values[ConditionType.PARTY_SIZE] == 1
        assert values[ConditionType.LEAD_TIME] == 0
        assert asyncio.run(resolver.guest_name()) == "Valued Guest"

    def test_slow_lookup_times_out_to_default(self, make_resolver):
        resolver = make_resolver(client=FakeGuestDataClient(delay=0.5))
        resolver.lookup_timeout = 0.05
        assert asyncio.run(resolver.resolve(ConditionType.LOYALTY_TIER)) == "standard"

    def test_stay_and_lead_time_round_up(self, make_resolver):
        booking = BookingRecord(
            total_amount=800,
            check_in=datetime(2024, 7, 20, 15, 0, tzinfo=timezone.utc),
            check_out=datetime(2024, 7, 23, 11, 0, tzinfo=timezone.utc),
        )
        resolver = make_resolver(client=FakeGuestDataClient(booking=booking))
        assert asyncio.run(resolver.resolve(ConditionType.LENGTH_OF_STAY)) == 3
        # request timestamp is 2024-07-10 12:00 UTC
        assert asyncio.run(resolver.resolve(ConditionType.LEAD_TIME)) == 11

    def test_season_and_day_from_request_time(self, make_resolver):
        resolver = make_resolver()
        assert asyncio.run(resolver.resolve(ConditionType.SEASON)) == "summer"
        # 2024-07-10 is a Wednesday
        assert asyncio.run(resolver.resolve(ConditionType.DAY_OF_WEEK)) == 3

    def test_season_boundaries(self):
        assert season_for(datetime(2024, 3, 1)) == "spring"
        assert season_for(datetime(2024, 9, 1)) == "fall"
        assert season_for(datetime(2024, 12, 1)) == "winter"
        assert season_for(datetime(2024, 2, 29)) == "winter"

    def test_sunday_is_zero(self):
        assert day_of_week_for(datetime(2024, 7, 14)) == 0

    def test_guest_name_joined(self, make_resolver):
        assert asyncio.run(make_resolver().guest_name()) == "Ada Lovelace"
