from core.domain.enums import ChannelType, NextActionType
from core.domain.recommendation import NextAction, UpsellRecommendation
from core.domain.request import UpsellRequest

FOLLOW_UP_DELAY_MINUTES = 24 * 60
RETARGET_DELAY_MINUTES = 3 * 24 * 60


def plan_next_actions(request: UpsellRequest, recommendations: list[UpsellRecommendation]) -> list[NextAction]:
    """Follow-up and retarget descriptors for a non-empty response, nothing otherwise"""
    if not recommendations:
        return []

    return [
        NextAction(
            type=NextActionType.FOLLOW_UP,
            delay=FOLLOW_UP_DELAY_MINUTES,
            conditions=["no_interaction"],
            parameters={
                "channel": ChannelType.EMAIL.value,
                "template": "follow_up",
                "incentive": 5,
                "guest_id": request.guest_id,
            },
        ),
        NextAction(
            type=NextActionType.RETARGET,
            delay=RETARGET_DELAY_MINUTES,
            conditions=["viewed_but_not_converted"],
            parameters={
                "channels": [ChannelType.WEB.value, ChannelType.MOBILE_APP.value],
                "incentive": 10,
                "offer_ids": [r.offer.id for r in recommendations],
            },
        ),
    ]
