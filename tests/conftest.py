"""
Shared fixtures for the upsell engine tests
"""

from typing import Optional

import pytest

from adapters.external.guest_data_client import GuestDataClient
from core.domain.defaults import default_configuration
from core.domain.enums import DeviceType, TriggerEventType
from core.domain.request import UpsellContext, UpsellHistory, UpsellRequest
from orchestration.upsell_engine import UpsellEngine
from services.context_resolver import ContextResolver
from services.tracking_store import TrackingStore

from fakes import FIXED_NOW, FakeGuestDataClient


@pytest.fixture
def make_request():
    def _make(guest_id: str = "guest-1",
              booking_id: str = "booking-1",
              property_id: str = "hotel-1",
              event: Optional[TriggerEventType] = TriggerEventType.BOOKING_CREATED,
              device: DeviceType = DeviceType.DESKTOP,
              history: Optional[UpsellHistory] = None,
              session_id: Optional[str] = "session-1",
              **context) -> UpsellRequest:
        return UpsellRequest(
            guest_id=guest_id,
            booking_id=booking_id,
            property_id=property_id,
            session_id=session_id,
            context=UpsellContext(event=event, device=device, timestamp=FIXED_NOW, **context),
            history=history,
        )
    return _make


@pytest.fixture
def make_engine():
    def _make(client: Optional[GuestDataClient] = None,
              config=None,
              property_id: str = "hotel-1",
              **kwargs) -> UpsellEngine:
        engine = UpsellEngine(
            client=client or FakeGuestDataClient(),
            store=TrackingStore(),
            clock=lambda: FIXED_NOW,
            **kwargs,
        )
        if config is not False:
            engine.update_configuration(property_id, config or default_configuration(property_id))
        return engine
    return _make


@pytest.fixture
def make_resolver(make_request):
    def _make(client: Optional[GuestDataClient] = None,
              history: Optional[UpsellHistory] = None,
              **request_kwargs) -> ContextResolver:
        request = make_request(**request_kwargs)
        return ContextResolver(client or FakeGuestDataClient(), request, history=history, lookup_timeout=1.0)
    return _make
