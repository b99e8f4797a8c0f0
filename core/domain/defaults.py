from .config import (
    Channel, ChannelTemplate, ChannelTracking, Condition, EmailSettings,
    FrequencyConfig, Offer, PresentationConfig, QuietHours, RateLimit,
    SegmentCriteria, SegmentationRule, Strategy, TargetingConfig, TimingConfig,
    Trigger, TriggerTiming, UpsellConfiguration, UrgencyConfig, UTMParameters,
)
from .enums import (
    ChannelType, ConditionType, DisplayType, Operator, SegmentDimension,
    StrategyCategory, TimeUnit, TriggerEventType,
)

VIP_STRATEGY_ID = "room-upgrade-vip"

def default_configuration(property_id: str = "default") -> UpsellConfiguration:
    """Reference configuration: free deluxe upgrade for gold/platinum guests after booking."""
    vip_upgrade = Strategy(
        id=VIP_STRATEGY_ID,
        name="VIP Room Upgrade",
        description="Automatic room upgrades for VIP guests",
        category=StrategyCategory.ROOM_UPGRADE,
        priority=100,
        conditions=[
            Condition(
                type=ConditionType.LOYALTY_TIER,
                operator=Operator.IN.value,
                value=["gold", "platinum"],
                weight=1.0,
            )
        ],
        offers=[
            Offer(
                id="deluxe-upgrade",
                title="Complimentary Deluxe Upgrade",
                description="Enjoy our premium deluxe room with ocean view",
                original_price=100,
                sale_price=0,
                discount_percentage=100,
                value=100,
                savings=100,
                currency="USD",
            )
        ],
        presentation=PresentationConfig(
            display_type=DisplayType.POPUP,
            template="upgrade-offer",
            frequency=FrequencyConfig(max_per_day=1, max_per_stay=1, cooldown_period=24),
            urgency=UrgencyConfig(
                show_limited_availability=True,
                urgency_messages=["Limited availability"],
            ),
        ),
    )

    return UpsellConfiguration(
        property_id=property_id,
        enabled=True,
        strategies=[vip_upgrade],
        triggers=[
            Trigger(
                id="booking-confirmation",
                name="Post Booking Confirmation",
                event=TriggerEventType.BOOKING_CREATED,
                timing=TriggerTiming(delay=30, time_unit=TimeUnit.MINUTES),
                strategies=[VIP_STRATEGY_ID],
            )
        ],
        channels=[
            Channel(
                type=ChannelType.EMAIL,
                priority=1,
                settings=EmailSettings(from_address="noreply@baithakaghar.com", from_name="Baithaka GHAR"),
                rate_limit=RateLimit(max_per_hour=10, max_per_day=50),
                templates=[
                    ChannelTemplate(
                        id="upgrade-offer-email",
                        name="Room Upgrade Email",
                        subject="Exclusive Upgrade Available",
                        content="Dear {{guest_name}}, we have a special upgrade available for your stay...",
                    )
                ],
                tracking=ChannelTracking(
                    utm_parameters=UTMParameters(source="email", medium="upsell", campaign="upgrade"),
                ),
            )
        ],
        targeting=TargetingConfig(
            segmentation=[
                SegmentationRule(
                    id="vip-guests",
                    name="VIP Guests",
                    criteria=[
                        SegmentCriteria(
                            dimension=SegmentDimension.LOYALTY,
                            attribute="tier",
                            operator=Operator.IN.value,
                            value=["gold", "platinum"],
                        )
                    ],
                    strategies=[VIP_STRATEGY_ID],
                    priority=1,
                )
            ],
            frequency=FrequencyConfig(max_per_day=3, max_per_stay=5, cooldown_period=4),
        ),
        timing=TimingConfig(
            quiet_hours=[QuietHours(start="22:00", end="08:00", channels=["sms", "push"])],
        ),
    )
