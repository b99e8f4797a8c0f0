import logging
import math
import re
import uuid
from datetime import datetime
from typing import Callable, Optional

from core.domain.clock import as_utc, utcnow
from core.domain.config import (
    Channel, ChannelTemplate, ChatbotSettings, EmailSettings, MobileAppSettings,
    Offer, PushSettings, SmsSettings, Strategy, UpsellConfiguration,
    VoiceSettings, WebSettings,
)
from core.domain.enums import (
    ChannelType, ConditionType, DeviceType, DisplayType, LoyaltyTier,
    StrategyCategory, UrgencyType,
)
from core.domain.recommendation import (
    AvailabilityConfig, CallToAction, CountdownConfig, LayoutConfig,
    PersonalizationDetails, PresentationDetails, RecommendationTracking,
    UpsellRecommendation, UrgencyDetails,
)
from services.context_resolver import ContextResolver

logger = logging.getLogger(__name__)

CTA_TEXT = {
    StrategyCategory.ROOM_UPGRADE: "Upgrade Now",
    StrategyCategory.SERVICE_ADDON: "Add Service",
    StrategyCategory.DINING: "Book Table",
    StrategyCategory.SPA: "Book Spa",
    StrategyCategory.ACTIVITIES: "Book Activity",
    StrategyCategory.TRANSPORTATION: "Book Transfer",
    StrategyCategory.PACKAGE: "Get Package",
}
DEFAULT_CTA_TEXT = "Get Offer"

# Device -> channel type that renders best on it
DEVICE_CHANNELS = {
    DeviceType.MOBILE: ChannelType.MOBILE_APP,
    DeviceType.DESKTOP: ChannelType.WEB,
}

DEFAULT_SETTINGS = {
    ChannelType.EMAIL: EmailSettings,
    ChannelType.SMS: SmsSettings,
    ChannelType.PUSH: PushSettings,
    ChannelType.WEB: WebSettings,
    ChannelType.MOBILE_APP: MobileAppSettings,
    ChannelType.VOICE: VoiceSettings,
    ChannelType.CHATBOT: ChatbotSettings,
}

FALLBACK_TEMPLATE = ChannelTemplate(
    id="default",
    name="Default Offer",
    content="{{offer_title}} - {{offer_description}}",
)

RELATED_SUGGESTIONS = (
    "Consider our spa package for ultimate relaxation",
    "Add airport transfer for convenience",
    "Book dinner at our award-winning restaurant",
)

HIGH_VALUE_BOOKING = 500
PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def _normalize(text: str) -> str:
    return re.sub(r"[\s_\-]+", " ", text).strip().lower()


def select_channel(channels: list[Channel], device: DeviceType) -> Optional[Channel]:
    """Device-aligned enabled channel first, then any enabled channel, by priority"""
    enabled = [c for c in channels if c.enabled]
    preferred = DEVICE_CHANNELS.get(device)
    aligned = [c for c in enabled if c.type == preferred]
    # max() keeps the first of equal priorities
    if aligned:
        return max(aligned, key=lambda c: c.priority)
    if enabled:
        return max(enabled, key=lambda c: c.priority)
    return channels[0] if channels else None


def select_template(channel: Channel, category: StrategyCategory) -> ChannelTemplate:
    wanted = _normalize(category.value)
    for template in channel.templates:
        if wanted in _normalize(template.name):
            return template
    if channel.templates:
        return channel.templates[0]
    return FALLBACK_TEMPLATE


def render(text: str, variables: dict[str, object]) -> str:
    """Replace {{name}} placeholders; unknown placeholders are left as they are"""
    def substitute(match: re.Match) -> str:
        key = match.group(1)
        return str(variables[key]) if key in variables else match.group(0)
    return PLACEHOLDER.sub(substitute, text)


def cta_text(category: StrategyCategory) -> str:
    return CTA_TEXT.get(category, DEFAULT_CTA_TEXT)


def build_urgency(offer: Offer, now: datetime) -> UrgencyDetails:
    availability = None
    if offer.max_quantity:
        availability = AvailabilityConfig(remaining=offer.max_quantity, total=offer.max_quantity)

    if offer.valid_until:
        end_time = as_utc(offer.valid_until)
        hours_left = math.ceil((end_time - now).total_seconds() / 3600)
        return UrgencyDetails(
            type=UrgencyType.TIME,
            message=f"Limited time offer - {hours_left} hours remaining!",
            countdown=CountdownConfig(end_time=end_time),
            availability=availability,
        )

    if offer.max_quantity and offer.max_quantity <= 5:
        return UrgencyDetails(
            type=UrgencyType.DEMAND,
            message=f"Only {offer.max_quantity} left available!",
            availability=availability,
        )

    return UrgencyDetails(type=UrgencyType.DEMAND, message="Popular choice - book now!", availability=availability)


class RecommendationBuilder:
    """Turns a (strategy, offer) pair into a rendered, trackable recommendation"""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    async def build(self,
                    strategy: Strategy,
                    offer: Offer,
                    config: UpsellConfiguration,
                    resolver: ContextResolver) -> Optional[UpsellRecommendation]:
        """None when the configuration has no channel to deliver through"""
        request = resolver.request
        channel = select_channel(config.channels, request.context.device)
        if channel is None:
            logger.warning(f"Property {config.property_id} has no channels, skipping offer {offer.id}")
            return None

        now = as_utc(self.clock())
        template = select_template(channel, strategy.category)
        guest_name = await resolver.guest_name()
        content, subject = self.personalize(channel, template, offer, guest_name)

        return UpsellRecommendation(
            id=f"{strategy.id}-{offer.id}-{uuid.uuid4().hex[:12]}",
            strategy_id=strategy.id,
            offer=offer.model_copy(deep=True),
            presentation=PresentationDetails(
                channel=channel.type.value,
                template=template.id,
                content=content,
                subject=subject,
                images=tuple(strategy.presentation.images),
                cta=CallToAction(
                    text=cta_text(strategy.category),
                    url=f"/upsell/{offer.id}?booking={request.booking_id}",
                    tracking=f"upsell_{strategy.id}_{offer.id}",
                ),
                layout=LayoutConfig(
                    position="overlay" if strategy.presentation.display_type == DisplayType.POPUP else "inline",
                ),
            ),
            urgency=build_urgency(offer, now),
            personalization=PersonalizationDetails(
                guest_name=guest_name,
                custom_message=await self.personalized_message(strategy, guest_name, resolver),
                relevance_score=await self.relevance_score(strategy, resolver),
                recommendations=RELATED_SUGGESTIONS,
            ),
            tracking=RecommendationTracking(
                impression_id=f"imp_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}",
                session_id=request.session_id or "",
                timestamp=now,
            ),
        )

    def personalize(self,
                    channel: Channel,
                    template: ChannelTemplate,
                    offer: Offer,
                    guest_name: str) -> tuple[str, Optional[str]]:
        """Rendered content and, for email, the rendered subject"""
        variables = {
            "guest_name": guest_name,
            "offer_title": offer.title,
            "offer_description": offer.description,
            "original_price": offer.original_price,
            "sale_price": offer.sale_price,
            "discount_percentage": offer.discount_percentage,
            "savings": offer.savings,
            "currency": offer.currency,
        }
        content = render(template.content, variables)
        subject = None

        settings = channel.settings or DEFAULT_SETTINGS[channel.type]()
        match settings:
            case EmailSettings():
                subject = render(template.subject, variables) if template.subject else offer.title
            case SmsSettings(max_length=limit):
                content = content[:limit]
            case PushSettings() | WebSettings() | MobileAppSettings() | VoiceSettings() | ChatbotSettings():
                pass

        return content, subject

    async def personalized_message(self, strategy: Strategy, guest_name: str, resolver: ContextResolver) -> str:
        tier = await resolver.resolve(ConditionType.LOYALTY_TIER)
        if tier == LoyaltyTier.PLATINUM.value:
            return (f"{guest_name}, as our Platinum member, enjoy exclusive access "
                    f"to this premium {strategy.category.value} offer.")
        if strategy.category == StrategyCategory.ROOM_UPGRADE:
            return f"{guest_name}, enhance your stay with a complimentary upgrade to our premium rooms."
        return f"{guest_name}, we've selected this special offer just for you based on your preferences."

    async def relevance_score(self, strategy: Strategy, resolver: ContextResolver) -> float:
        """Fixed weighted heuristic, clamped to [0, 1]:

        0.5 base
        + 0.1 per past interaction with an offer of this category (max 0.3)
        + 0.15 per past conversion in this category (max 0.2)
        + 0.10 platinum / 0.05 gold
        + 0.10 when the booking is worth more than 500
        """
        score = 0.5
        category = strategy.category.value

        history = resolver.history
        if history:
            interested = sum(1 for i in history.interactions if category in i.offer_id)
            score += min(interested * 0.1, 0.3)
            converted = sum(1 for c in history.conversions if c.category == category)
            score += min(converted * 0.15, 0.2)

        tier = await resolver.resolve(ConditionType.LOYALTY_TIER)
        if tier == LoyaltyTier.PLATINUM.value:
            score += 0.1
        elif tier == LoyaltyTier.GOLD.value:
            score += 0.05

        booking_value = await resolver.resolve(ConditionType.BOOKING_VALUE)
        if booking_value > HIGH_VALUE_BOOKING:
            score += 0.1

        return round(max(0.0, min(1.0, score)), 4)
