from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from .clock import utcnow
from .enums import DeviceType, InteractionType, OfferResponse, TriggerEventType

class LocationData(BaseModel):
    country: str = ""
    region: str = ""
    city: str = ""
    timezone: str = "UTC"

class UpsellContext(BaseModel):
    """Where and when the guest is when the upsell decision is requested"""
    event: Optional[TriggerEventType] = Field(None, description="Journey event; triggers fire on exact match")
    device: DeviceType = DeviceType.DESKTOP
    channel: str = "web"
    current_page: str = ""
    user_agent: str = ""
    referrer: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    location: Optional[LocationData] = None

class PriceRange(BaseModel):
    min: float = 0.0
    max: float = 0.0
    currency: str = "USD"

class GuestPreferences(BaseModel):
    communication_channels: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    price_range: Optional[PriceRange] = None
    opt_outs: list[str] = Field(default_factory=list)
    language: str = "en"
    currency: str = "USD"

class PreviousOffer(BaseModel):
    offer_id: str
    strategy: str
    presented_at: datetime
    channel: str
    response: OfferResponse

class ConversionRecord(BaseModel):
    """One purchased offer, as reported by the booking flow"""
    offer_id: str
    converted_at: datetime = Field(default_factory=utcnow)
    value: float = 0.0
    category: str = ""
    satisfaction: Optional[float] = None
    property_id: Optional[str] = None

class InteractionRecord(BaseModel):
    """A guest action on a shown offer; property_id is filled in from the guest's tracked recommendations when omitted"""
    type: InteractionType
    offer_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    duration: Optional[float] = None
    property_id: Optional[str] = None

class PreferenceRecord(BaseModel):
    category: str
    preference: str
    timestamp: datetime
    source: str = ""

class UpsellHistory(BaseModel):
    """History snapshot supplied by the caller"""
    previous_offers: list[PreviousOffer] = Field(default_factory=list)
    conversions: list[ConversionRecord] = Field(default_factory=list)
    interactions: list[InteractionRecord] = Field(default_factory=list)
    preferences: list[PreferenceRecord] = Field(default_factory=list)

class UpsellRequest(BaseModel):
    """Input to generate_upsells. Not stored."""
    guest_id: str
    booking_id: str
    property_id: str
    session_id: Optional[str] = None
    context: UpsellContext = Field(default_factory=UpsellContext)
    preferences: Optional[GuestPreferences] = None
    history: Optional[UpsellHistory] = None

    class Config:
        json_schema_extra = {
            "example": {
                "guest_id": "G-1001",
                "booking_id": "B-2002",
                "property_id": "default",
                "session_id": "sess_789",
                "context": {
                    "event": "booking_created",
                    "device": "mobile",
                    "channel": "web",
                    "current_page": "/booking/confirmation"
                }
            }
        }
