from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Literal, Optional
from .clock import utcnow
from .config import Offer, UTMParameters
from .enums import NextActionType, UrgencyType

class CallToAction(BaseModel):
    text: str
    style: Literal["primary", "secondary", "accent"] = "primary"
    action: str = "purchase"
    url: str
    tracking: str

    class Config:
        frozen = True

class LayoutConfig(BaseModel):
    position: Literal["top", "bottom", "sidebar", "overlay", "inline"] = "inline"
    size: Literal["small", "medium", "large", "fullscreen"] = "medium"
    animation: Literal["none", "fade", "slide", "zoom"] = "fade"

    class Config:
        frozen = True

class PresentationDetails(BaseModel):
    channel: str
    template: str
    content: str
    subject: Optional[str] = None
    images: tuple[str, ...] = ()
    cta: CallToAction
    layout: LayoutConfig

    class Config:
        frozen = True

class CountdownConfig(BaseModel):
    end_time: datetime
    format: Literal["hours", "minutes", "seconds"] = "hours"
    show_days: bool = False

    class Config:
        frozen = True

class AvailabilityConfig(BaseModel):
    remaining: int
    total: int
    update_frequency: int = 300

    class Config:
        frozen = True

class UrgencyDetails(BaseModel):
    type: UrgencyType
    message: str
    countdown: Optional[CountdownConfig] = None
    availability: Optional[AvailabilityConfig] = None

    class Config:
        frozen = True

class PersonalizationDetails(BaseModel):
    guest_name: str
    custom_message: str
    relevance_score: float = Field(ge=0.0, le=1.0)
    recommendations: tuple[str, ...] = ()

    class Config:
        frozen = True

class RecommendationTracking(BaseModel):
    impression_id: str
    session_id: str = ""
    experiment_id: Optional[str] = None
    variant: Optional[str] = None
    timestamp: datetime

    class Config:
        frozen = True

class UpsellRecommendation(BaseModel):
    """One rendered, trackable offer presentation. Never mutated once returned."""
    id: str
    strategy_id: str
    offer: Offer
    presentation: PresentationDetails
    urgency: UrgencyDetails
    personalization: PersonalizationDetails
    tracking: RecommendationTracking

    class Config:
        frozen = True

class TargetingInfo(BaseModel):
    segment: str
    rules: list[str] = Field(default_factory=list)
    score: int = 0
    reasons: list[str] = Field(default_factory=list)

class TrackingEvent(BaseModel):
    name: str
    properties: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)

class TrackingInfo(BaseModel):
    session_id: str
    visitor_id: str
    experiment_id: Optional[str] = None
    utm: UTMParameters
    events: list[TrackingEvent] = Field(default_factory=list)

class NextAction(BaseModel):
    """Declarative follow-up; sending it is the delivery layer's job"""
    type: NextActionType
    delay: int = Field(description="Minutes after the response")
    conditions: list[str] = Field(default_factory=list)
    parameters: dict[str, Any] = Field(default_factory=dict)

class ResponseAnalytics(BaseModel):
    conversion_probability: float = 0.0
    value_score: float = 0.0
    engagement_score: float = 0.0
    risk_score: float = 0.0
    insights: list[str] = Field(default_factory=list)

class UpsellResponse(BaseModel):
    recommendations: list[UpsellRecommendation] = Field(default_factory=list)
    targeting: TargetingInfo
    tracking: TrackingInfo
    next_actions: list[NextAction] = Field(default_factory=list)
    analytics: ResponseAnalytics = Field(default_factory=ResponseAnalytics)

# --- Metrics ------------------------------------------------------------------

class MetricsPeriod(BaseModel):
    start: datetime
    end: datetime

class MetricsSummary(BaseModel):
    total_offers: int = 0
    total_conversions: int = 0
    conversion_rate: float = 0.0
    total_revenue: float = 0.0
    avg_order_value: float = 0.0

class StrategyMetrics(BaseModel):
    offers: int = 0
    conversions: int = 0
    revenue: float = 0.0
    conversion_rate: float = 0.0
    avg_value: float = 0.0

class ChannelMetrics(BaseModel):
    sent: int = 0
    converted: int = 0
    revenue: float = 0.0
    conversion_rate: float = 0.0

class SegmentMetrics(BaseModel):
    offers: int = 0
    conversions: int = 0
    revenue: float = 0.0

class OfferMetrics(BaseModel):
    impressions: int = 0
    clicks: int = 0
    conversions: int = 0
    revenue: float = 0.0
    ctr: float = 0.0
    conversion_rate: float = 0.0
    avg_value: float = 0.0

class MetricsBreakdown(BaseModel):
    by_strategy: dict[str, StrategyMetrics] = Field(default_factory=dict)
    by_channel: dict[str, ChannelMetrics] = Field(default_factory=dict)
    by_segment: dict[str, SegmentMetrics] = Field(default_factory=dict)
    by_offer: dict[str, OfferMetrics] = Field(default_factory=dict)

class MetricTrend(BaseModel):
    date: datetime
    offers: int = 0
    conversions: int = 0
    revenue: float = 0.0
    conversion_rate: float = 0.0

class UpsellMetrics(BaseModel):
    period: MetricsPeriod
    summary: MetricsSummary = Field(default_factory=MetricsSummary)
    breakdown: MetricsBreakdown = Field(default_factory=MetricsBreakdown)
    trends: list[MetricTrend] = Field(default_factory=list)
