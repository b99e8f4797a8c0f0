import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.domain.errors import GuestDataUnavailable

logger = logging.getLogger(__name__)


class BookingRecord(BaseModel):
    """Booking as returned by the bookings API"""
    model_config = ConfigDict(populate_by_name=True)

    total_amount: Optional[float] = Field(None, alias="totalAmount")
    room_type: Optional[str] = Field(None, alias="roomType")
    check_in: Optional[datetime] = Field(None, alias="checkIn")
    check_out: Optional[datetime] = Field(None, alias="checkOut")
    guests: Optional[int] = None


class GuestRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    type: Optional[str] = None


class LoyaltyRecord(BaseModel):
    tier: Optional[str] = None
    points: Optional[int] = None


class GuestDataClient(ABC):
    """Read-only, best-effort access to booking, guest and loyalty data.

    Implementations raise GuestDataUnavailable on any failure or
    non-success response; they never substitute defaults themselves.
    """

    @abstractmethod
    async def get_booking(self, booking_id: str) -> BookingRecord:
        pass

    @abstractmethod
    async def get_guest(self, guest_id: str) -> GuestRecord:
        pass

    @abstractmethod
    async def get_loyalty(self, guest_id: str) -> LoyaltyRecord:
        pass

    def close(self) -> None:
        """Release any held connections"""


class HttpGuestDataClient(GuestDataClient):
    """Talks to the property-management REST API"""

    def __init__(self, base_url: str, timeout: float = 2.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_json(self, path: str) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise GuestDataUnavailable(f"GET {path} failed: {e}") from e
        if not response.ok:
            raise GuestDataUnavailable(f"GET {path} returned {response.status_code}")
        try:
            payload = response.json()
        except ValueError as e:
            raise GuestDataUnavailable(f"GET {path} returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise GuestDataUnavailable(f"GET {path} returned {type(payload).__name__}, expected object")
        return payload

    async def _fetch(self, path: str, model: type[BaseModel]):
        # requests is blocking; keep it off the event loop
        payload = await asyncio.to_thread(self._get_json, path)
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise GuestDataUnavailable(f"GET {path} returned an unexpected payload: {e}") from e

    async def get_booking(self, booking_id: str) -> BookingRecord:
        return await self._fetch(f"/api/os/bookings/{booking_id}", BookingRecord)

    async def get_guest(self, guest_id: str) -> GuestRecord:
        return await self._fetch(f"/api/os/guests/{guest_id}", GuestRecord)

    async def get_loyalty(self, guest_id: str) -> LoyaltyRecord:
        return await self._fetch(f"/api/os/guests/{guest_id}/loyalty", LoyaltyRecord)

    def close(self) -> None:
        self.session.close()


class StaticGuestDataClient(GuestDataClient):
    """In-memory records, for replays and local demos. Unknown ids are unavailable."""

    def __init__(self,
                 bookings: Optional[dict[str, BookingRecord]] = None,
                 guests: Optional[dict[str, GuestRecord]] = None,
                 loyalty: Optional[dict[str, LoyaltyRecord]] = None):
        self.bookings = bookings if bookings is not None else {}
        self.guests = guests if guests is not None else {}
        self.loyalty = loyalty if loyalty is not None else {}

    @staticmethod
    def _lookup(records: dict, key: str, kind: str):
        if key not in records:
            raise GuestDataUnavailable(f"{kind} {key} not found")
        return records[key]

    async def get_booking(self, booking_id: str) -> BookingRecord:
        return self._lookup(self.bookings, booking_id, "booking")

    async def get_guest(self, guest_id: str) -> GuestRecord:
        return self._lookup(self.guests, guest_id, "guest")

    async def get_loyalty(self, guest_id: str) -> LoyaltyRecord:
        return self._lookup(self.loyalty, guest_id, "loyalty record for guest")
