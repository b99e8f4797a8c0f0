from core.domain.config import UpsellConfiguration
from core.domain.recommendation import TargetingInfo
from core.rules.conditions import compare
from services.context_resolver import ContextResolver

DEFAULT_SEGMENT = "default"
CRITERION_SCORE = 10


async def evaluate_targeting(config: UpsellConfiguration, resolver: ContextResolver) -> TargetingInfo:
    """Pick the audience segment with the most matching criteria.

    Each matching criterion is worth 10 points. Only a strictly higher score
    replaces the current best, so ties keep the segment listed first. When
    nothing matches the request falls into the default segment.
    """
    best = TargetingInfo(
        segment=DEFAULT_SEGMENT,
        score=0,
        reasons=[f"No segment matched: {config.targeting.default_behavior}"],
    )

    for segment in config.targeting.segmentation:
        score = 0
        rules = []
        for criteria in segment.criteria:
            value = await resolver.resolve_segment_value(criteria)
            if compare(value, criteria.operator, criteria.value):
                score += CRITERION_SCORE
                rules.append(f"{criteria.attribute} {criteria.operator} {criteria.value}")

        if score > best.score:
            best = TargetingInfo(
                segment=segment.name,
                rules=rules,
                score=score,
                reasons=[f"Matched segment: {segment.name}"],
            )

    return best
