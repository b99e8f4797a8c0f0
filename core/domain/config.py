from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union
from .enums import (
    ChannelType, ConditionType, DisplayType, SegmentDimension,
    StrategyCategory, TimeUnit, TriggerEventType,
)

# --- Strategies ---------------------------------------------------------------

class Condition(BaseModel):
    """Strategy condition. All conditions of a strategy must hold."""
    type: ConditionType
    operator: str = Field(description="equals, not_equals, greater_than, less_than, in, between, contains")
    value: Any = None
    weight: float = Field(1.0, description="Advisory only, not applied to scoring")

class BundleItem(BaseModel):
    type: Literal["room", "service", "dining", "spa", "activity"]
    name: str
    description: str = ""
    value: float = 0.0
    included: bool = True

class BundleDetails(BaseModel):
    items: list[BundleItem] = Field(default_factory=list)
    bundle_discount: float = 0.0
    total_value: float = 0.0
    bundle_price: float = 0.0

class Offer(BaseModel):
    """Priced proposition. sale_price <= original_price is the producer's job."""
    id: str
    title: str
    description: str = ""
    original_price: float = 0.0
    sale_price: float = 0.0
    discount_percentage: float = 0.0
    value: float = 0.0
    savings: float = 0.0
    currency: str = "USD"
    valid_until: Optional[datetime] = None
    max_quantity: Optional[int] = Field(None, ge=0)
    bundle: Optional[BundleDetails] = None
    restrictions: Optional[list[str]] = None

class FrequencyConfig(BaseModel):
    max_per_day: int = 1
    max_per_stay: int = 1
    cooldown_period: int = 24
    respect_opt_out: bool = True

class UrgencyConfig(BaseModel):
    show_countdown: bool = False
    show_limited_availability: bool = False
    show_limited_time: bool = False
    urgency_messages: list[str] = Field(default_factory=list)

class PresentationConfig(BaseModel):
    display_type: DisplayType = DisplayType.INLINE
    template: str = ""
    images: list[str] = Field(default_factory=list)
    priority: int = 1
    frequency: FrequencyConfig = Field(default_factory=FrequencyConfig)
    urgency: UrgencyConfig = Field(default_factory=UrgencyConfig)

class ConversionIncentive(BaseModel):
    type: Literal["discount", "freebie", "points", "upgrade"]
    trigger: Literal["immediate", "delayed", "conditional"] = "immediate"
    value: float = 0.0
    description: str = ""
    conditions: Optional[list[str]] = None

class FollowUpConfig(BaseModel):
    enabled: bool = False
    delays: list[int] = Field(default_factory=list)
    channels: list[str] = Field(default_factory=list)
    templates: list[str] = Field(default_factory=list)
    max_follow_ups: int = 0

class AbandonmentConfig(BaseModel):
    track_abandonment: bool = False
    retargeting_delay: int = 0
    incentive_increase: float = 0.0
    max_retarget_attempts: int = 0

class ConversionConfig(BaseModel):
    conversion_goal: Literal["click", "view", "purchase"] = "click"
    incentives: list[ConversionIncentive] = Field(default_factory=list)
    follow_up: FollowUpConfig = Field(default_factory=FollowUpConfig)
    abandonment: AbandonmentConfig = Field(default_factory=AbandonmentConfig)

class Strategy(BaseModel):
    """Prioritized bundle of conditions and candidate offers for one category"""
    id: str
    name: str = ""
    description: str = ""
    category: StrategyCategory
    priority: int = 0
    active: bool = True
    conditions: list[Condition] = Field(default_factory=list)
    offers: list[Offer] = Field(default_factory=list)
    presentation: PresentationConfig = Field(default_factory=PresentationConfig)
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)

# --- Triggers -----------------------------------------------------------------

class TriggerTiming(BaseModel):
    delay: int = 0
    time_unit: TimeUnit = TimeUnit.MINUTES
    specific_time: Optional[str] = None
    timezone: str = "UTC"
    respect_quiet_hours: bool = True

class TriggerCondition(BaseModel):
    field: str
    operator: str
    value: Any = None
    required: bool = True

class Trigger(BaseModel):
    id: str
    name: str = ""
    event: TriggerEventType
    timing: TriggerTiming = Field(default_factory=TriggerTiming)
    conditions: list[TriggerCondition] = Field(default_factory=list)
    strategies: list[str] = Field(default_factory=list)
    active: bool = True

# --- Channels -----------------------------------------------------------------

class EmailSettings(BaseModel):
    type: Literal["email"] = "email"
    from_address: Optional[str] = None
    from_name: Optional[str] = None

class SmsSettings(BaseModel):
    type: Literal["sms"] = "sms"
    phone_number: Optional[str] = None
    max_length: int = Field(160, ge=1)

class PushSettings(BaseModel):
    type: Literal["push"] = "push"
    app_id: Optional[str] = None

class WebSettings(BaseModel):
    type: Literal["web"] = "web"
    webhook_url: Optional[str] = None

class MobileAppSettings(BaseModel):
    type: Literal["mobile_app"] = "mobile_app"
    app_id: Optional[str] = None

class VoiceSettings(BaseModel):
    type: Literal["voice"] = "voice"
    phone_number: Optional[str] = None

class ChatbotSettings(BaseModel):
    type: Literal["chatbot"] = "chatbot"
    webhook_url: Optional[str] = None

ChannelSettings = Annotated[
    Union[EmailSettings, SmsSettings, PushSettings, WebSettings,
          MobileAppSettings, VoiceSettings, ChatbotSettings],
    Field(discriminator="type"),
]

class RateLimit(BaseModel):
    max_per_hour: int = 10
    max_per_day: int = 50
    backoff_strategy: Literal["linear", "exponential"] = "exponential"

class ChannelTemplate(BaseModel):
    id: str
    name: str
    subject: Optional[str] = None
    content: str

class UTMParameters(BaseModel):
    source: str
    medium: str
    campaign: str
    term: Optional[str] = None
    content: Optional[str] = None

class ChannelTracking(BaseModel):
    track_opens: bool = True
    track_clicks: bool = True
    track_conversions: bool = True
    utm_parameters: Optional[UTMParameters] = None
    custom_events: list[str] = Field(default_factory=list)

class Channel(BaseModel):
    type: ChannelType
    enabled: bool = True
    priority: int = 0
    settings: Optional[ChannelSettings] = None
    rate_limit: Optional[RateLimit] = None
    templates: list[ChannelTemplate] = Field(default_factory=list)
    tracking: ChannelTracking = Field(default_factory=ChannelTracking)

    @model_validator(mode="after")
    def settings_match_type(self):
        """Channel settings case must be the one for the channel's own type"""
        if self.settings is not None and self.settings.type != self.type.value:
            raise ValueError(
                f"settings of type '{self.settings.type}' given for a '{self.type.value}' channel"
            )
        return self

# --- Targeting ----------------------------------------------------------------

class SegmentCriteria(BaseModel):
    dimension: SegmentDimension
    attribute: str
    operator: str
    value: Any = None

class SegmentationRule(BaseModel):
    id: str
    name: str
    criteria: list[SegmentCriteria] = Field(default_factory=list)
    strategies: list[str] = Field(default_factory=list)
    priority: int = 0

class ExclusionCriteria(BaseModel):
    type: Literal["opt_out", "frequency_cap", "recent_purchase", "complaint", "dnc_list"]
    value: Any = None
    expiry: Optional[datetime] = None

class ExclusionRule(BaseModel):
    id: str
    name: str
    criteria: list[ExclusionCriteria] = Field(default_factory=list)
    reason: str = ""
    duration: Optional[int] = None

class ExperimentVariant(BaseModel):
    id: str
    name: str
    changes: list[dict[str, Any]] = Field(default_factory=list)
    allocation: float = 0.0

class ExperimentConfig(BaseModel):
    ab_test_enabled: bool = False
    test_variants: list[ExperimentVariant] = Field(default_factory=list)
    split_ratio: list[float] = Field(default_factory=list)
    success_metric: Literal["conversion_rate", "revenue", "engagement"] = "conversion_rate"
    test_duration: int = 14

class TargetingConfig(BaseModel):
    segmentation: list[SegmentationRule] = Field(default_factory=list)
    exclusions: list[ExclusionRule] = Field(default_factory=list)
    frequency: FrequencyConfig = Field(default_factory=FrequencyConfig)
    testing: ExperimentConfig = Field(default_factory=ExperimentConfig)
    default_behavior: str = Field(
        "Show highest priority strategies to all guests",
        description="Applied when no segment matches",
    )

# --- Timing / content / analytics policy ---------------------------------------

class OptimalTime(BaseModel):
    channel: str
    day_of_week: int = Field(ge=0, le=6)
    hour: int = Field(ge=0, le=23)
    conversion_rate: float = 0.0
    engagement: float = 0.0

class BusinessHours(BaseModel):
    start: str = "09:00"
    end: str = "18:00"
    days_of_week: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])

class QuietHours(BaseModel):
    start: str
    end: str
    channels: list[str] = Field(default_factory=list)

class TimingConfig(BaseModel):
    optimal_times: list[OptimalTime] = Field(default_factory=list)
    timezone: str = "UTC"
    respect_preferences: bool = True
    business_hours: BusinessHours = Field(default_factory=BusinessHours)
    quiet_hours: list[QuietHours] = Field(default_factory=list)

class PersonalizationConfig(BaseModel):
    use_guest_name: bool = True
    use_booking_details: bool = True
    use_past_behavior: bool = True
    use_preferences: bool = True

class LocalizationConfig(BaseModel):
    enabled: bool = False
    languages: list[str] = Field(default_factory=lambda: ["en"])
    auto_detect: bool = False
    fallback_language: str = "en"
    currency_conversion: bool = False

class BrandingConfig(BaseModel):
    logo: str = ""
    colors: dict[str, str] = Field(default_factory=dict)
    fonts: dict[str, str] = Field(default_factory=dict)
    tone: Literal["professional", "friendly", "luxury", "casual"] = "friendly"

class ComplianceConfig(BaseModel):
    gdpr_compliant: bool = True
    ccpa_compliant: bool = True
    can_spam_compliant: bool = True
    opt_in_required: bool = False
    unsubscribe_link: bool = True

class ContentConfig(BaseModel):
    personalization: PersonalizationConfig = Field(default_factory=PersonalizationConfig)
    localization: LocalizationConfig = Field(default_factory=LocalizationConfig)
    branding: BrandingConfig = Field(default_factory=BrandingConfig)
    compliance: ComplianceConfig = Field(default_factory=ComplianceConfig)

class ReportingConfig(BaseModel):
    frequency: Literal["daily", "weekly", "monthly"] = "weekly"
    recipients: list[str] = Field(default_factory=list)
    format: Literal["email", "dashboard", "api"] = "dashboard"

class AnalyticsConfig(BaseModel):
    tracking_enabled: bool = True
    metrics: list[str] = Field(default_factory=lambda: ["impressions", "clicks", "conversions", "revenue"])
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)

# --- Property configuration ---------------------------------------------------

class UpsellConfiguration(BaseModel):
    """Everything the engine needs to decide upsells for one property"""
    property_id: str = Field("", description="Set from the storage key; may be omitted in request bodies")
    enabled: bool = True
    strategies: list[Strategy] = Field(default_factory=list)
    triggers: list[Trigger] = Field(default_factory=list)
    channels: list[Channel] = Field(default_factory=list)
    targeting: TargetingConfig = Field(default_factory=TargetingConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)

    class Config:
        json_schema_extra = {
            "example": {
                "property_id": "hotel-42",
                "enabled": True,
                "strategies": [
                    {
                        "id": "room-upgrade-vip",
                        "category": "room_upgrade",
                        "priority": 100,
                        "conditions": [
                            {"type": "loyalty_tier", "operator": "in", "value": ["gold", "platinum"]}
                        ],
                        "offers": [
                            {"id": "deluxe-upgrade", "title": "Complimentary Deluxe Upgrade",
                             "original_price": 100, "sale_price": 0, "discount_percentage": 100}
                        ]
                    }
                ],
                "triggers": [
                    {"id": "booking-confirmation", "event": "booking_created",
                     "strategies": ["room-upgrade-vip"]}
                ],
                "channels": [
                    {"type": "email", "priority": 1,
                     "templates": [{"id": "upgrade-offer-email", "name": "Room Upgrade Email",
                                    "content": "Dear {{guest_name}}, ..."}]}
                ]
            }
        }
