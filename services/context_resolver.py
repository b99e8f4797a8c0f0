import asyncio
import logging
import math
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from adapters.external.guest_data_client import (
    BookingRecord, GuestDataClient, GuestRecord, LoyaltyRecord,
)
from core.domain.clock import as_utc
from core.domain.config import SegmentCriteria
from core.domain.enums import ConditionType, SegmentDimension
from core.domain.request import GuestPreferences, UpsellHistory, UpsellRequest

logger = logging.getLogger(__name__)

_UNSET = object()

SECONDS_PER_DAY = 24 * 60 * 60

# Substituted whenever a lookup fails or the record lacks the field
ATTRIBUTE_DEFAULTS: dict[ConditionType, Any] = {
    ConditionType.BOOKING_VALUE: 0,
    ConditionType.ROOM_TYPE: "standard",
    ConditionType.GUEST_TYPE: "leisure",
    ConditionType.LOYALTY_TIER: "standard",
    ConditionType.LENGTH_OF_STAY: 1,
    ConditionType.PARTY_SIZE: 1,
    ConditionType.LEAD_TIME: 0,
}
DEFAULT_GUEST_NAME = "Valued Guest"


def season_for(moment: datetime) -> str:
    month = moment.month
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "fall"
    return "winter"


def day_of_week_for(moment: datetime) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return moment.isoweekday() % 7


class ContextResolver:
    """Resolves runtime attribute values for one request.

    Each external record (booking, guest, loyalty) is fetched at most once per
    request. Any failure, including a lookup timeout, is logged and replaced by
    the documented default; it never aborts the request.
    """

    def __init__(self,
                 client: GuestDataClient,
                 request: UpsellRequest,
                 history: Optional[UpsellHistory] = None,
                 lookup_timeout: Optional[float] = 2.0):
        self.client = client
        self.request = request
        self.history = history
        self.lookup_timeout = lookup_timeout
        self._booking: Any = _UNSET
        self._guest: Any = _UNSET
        self._loyalty: Any = _UNSET

    @property
    def now(self) -> datetime:
        return as_utc(self.request.context.timestamp)

    async def _lookup(self, what: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await asyncio.wait_for(fetch(), timeout=self.lookup_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{what} lookup timed out after {self.lookup_timeout}s, using defaults")
        except Exception as e:
            logger.warning(f"{what} lookup failed, using defaults: {e}")
        return None

    async def booking(self) -> Optional[BookingRecord]:
        if self._booking is _UNSET:
            booking_id = self.request.booking_id
            self._booking = await self._lookup(f"Booking {booking_id}", lambda: self.client.get_booking(booking_id))
        return self._booking

    async def guest(self) -> Optional[GuestRecord]:
        if self._guest is _UNSET:
            guest_id = self.request.guest_id
            self._guest = await self._lookup(f"Guest {guest_id}", lambda: self.client.get_guest(guest_id))
        return self._guest

    async def loyalty(self) -> Optional[LoyaltyRecord]:
        if self._loyalty is _UNSET:
            guest_id = self.request.guest_id
            self._loyalty = await self._lookup(f"Loyalty for {guest_id}", lambda: self.client.get_loyalty(guest_id))
        return self._loyalty

    async def resolve(self, attribute: ConditionType) -> Any:
        """Value of a condition attribute, or its default"""
        default = ATTRIBUTE_DEFAULTS.get(attribute)
        match attribute:
            case ConditionType.BOOKING_VALUE:
                booking = await self.booking()
                return booking.total_amount if booking and booking.total_amount else default
            case ConditionType.ROOM_TYPE:
                booking = await self.booking()
                return booking.room_type if booking and booking.room_type else default
            case ConditionType.GUEST_TYPE:
                guest = await self.guest()
                return guest.type if guest and guest.type else default
            case ConditionType.LOYALTY_TIER:
                loyalty = await self.loyalty()
                return loyalty.tier if loyalty and loyalty.tier else default
            case ConditionType.LENGTH_OF_STAY:
                booking = await self.booking()
                if not booking or not booking.check_in or not booking.check_out:
                    return default
                nights = (as_utc(booking.check_out) - as_utc(booking.check_in)).total_seconds() / SECONDS_PER_DAY
                return math.ceil(nights)
            case ConditionType.PARTY_SIZE:
                booking = await self.booking()
                return booking.guests if booking and booking.guests else default
            case ConditionType.LEAD_TIME:
                booking = await self.booking()
                if not booking or not booking.check_in:
                    return default
                days = (as_utc(booking.check_in) - self.now).total_seconds() / SECONDS_PER_DAY
                return math.ceil(days)
            case ConditionType.SEASON:
                return season_for(self.now)
            case ConditionType.DAY_OF_WEEK:
                return day_of_week_for(self.now)

    async def guest_name(self) -> str:
        guest = await self.guest()
        if guest is None:
            return DEFAULT_GUEST_NAME
        name = " ".join(part for part in (guest.first_name, guest.last_name) if part)
        return name or DEFAULT_GUEST_NAME

    async def resolve_trigger_field(self, field: str) -> Any:
        """Value for a trigger-level condition field"""
        context = self.request.context
        request_fields = {
            "booking_id": self.request.booking_id,
            "guest_id": self.request.guest_id,
            "property_id": self.request.property_id,
            "device": context.device.value,
            "channel": context.channel,
            "current_page": context.current_page,
        }
        if field in request_fields:
            return request_fields[field]
        if field == "guest_type":
            return self.request.preferences.categories if self.request.preferences else []
        try:
            return await self.resolve(ConditionType(field))
        except ValueError:
            return None

    async def resolve_segment_value(self, criteria: SegmentCriteria) -> Any:
        """Value a segment criterion is compared against"""
        attribute = criteria.attribute
        try:
            return await self.resolve(ConditionType(attribute))
        except ValueError:
            pass

        match criteria.dimension:
            case SegmentDimension.LOYALTY:
                if attribute == "tier":
                    return await self.resolve(ConditionType.LOYALTY_TIER)
                if attribute == "points":
                    loyalty = await self.loyalty()
                    return loyalty.points if loyalty and loyalty.points is not None else 0
                return None
            case SegmentDimension.VALUE:
                if attribute == "lifetime_value":
                    history = self.history
                    return sum(c.value for c in history.conversions) if history else 0
                return None
            case SegmentDimension.DEMOGRAPHICS:
                location = self.request.context.location
                if attribute in ("country", "region", "city"):
                    return getattr(location, attribute) if location else None
                return None
            case SegmentDimension.BEHAVIOR:
                return self._behavior(attribute)
            case SegmentDimension.PREFERENCES:
                preferences = self.request.preferences
                if preferences is None or attribute not in GuestPreferences.model_fields:
                    return None
                return getattr(preferences, attribute)

    def _behavior(self, attribute: str) -> Any:
        context = self.request.context
        if attribute == "device":
            return context.device.value
        if attribute == "channel":
            return context.channel
        if attribute == "current_page":
            return context.current_page
        history = self.history or UpsellHistory()
        counts = {
            "interaction_count": len(history.interactions),
            "conversion_count": len(history.conversions),
            "previous_offer_count": len(history.previous_offers),
        }
        if attribute in counts:
            return counts[attribute]
        if attribute == "converted_categories":
            return sorted({c.category for c in history.conversions if c.category})
        return None
