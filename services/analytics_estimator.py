from typing import Optional
from core.domain.recommendation import ResponseAnalytics, UpsellRecommendation
from core.domain.request import UpsellHistory

HISTORY_WEIGHT = 0.7
RELEVANCE_WEIGHT = 0.3


class AnalyticsEstimator:
    """Conversion-probability estimate and insights for one response.

    value/engagement/risk scores are placeholders until they can be derived
    from data; they come from settings rather than per-request tuning.
    """

    def __init__(self, value_score: float = 0.7, engagement_score: float = 0.6, risk_score: float = 0.2):
        self.value_score = value_score
        self.engagement_score = engagement_score
        self.risk_score = risk_score

    @staticmethod
    def historical_rate(history: Optional[UpsellHistory]) -> float:
        if not history or not history.previous_offers:
            return 0.0
        return min(1.0, len(history.conversions) / len(history.previous_offers))

    def estimate(self,
                 history: Optional[UpsellHistory],
                 recommendations: list[UpsellRecommendation]) -> ResponseAnalytics:
        baseline = self.historical_rate(history)

        if recommendations:
            avg_relevance = sum(r.personalization.relevance_score for r in recommendations) / len(recommendations)
        else:
            avg_relevance = 0.0

        probability = HISTORY_WEIGHT * baseline + RELEVANCE_WEIGHT * avg_relevance

        return ResponseAnalytics(
            conversion_probability=probability,
            value_score=self.value_score,
            engagement_score=self.engagement_score,
            risk_score=self.risk_score,
            insights=[
                f"{len(recommendations)} personalized offers generated",
                f"Average relevance score: {avg_relevance:.2f}",
                f"Estimated conversion probability: {probability * 100:.1f}%",
            ],
        )
