import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from adapters.external.guest_data_client import GuestDataClient, HttpGuestDataClient
from core.domain.clock import as_utc, utcnow
from core.domain.config import UpsellConfiguration, UTMParameters
from core.domain.defaults import default_configuration
from core.domain.errors import InvalidUpsellRequest, UpsellDeadlineExceeded
from core.domain.recommendation import (
    TargetingInfo, TrackingEvent, TrackingInfo, UpsellMetrics, UpsellRecommendation,
    UpsellResponse,
)
from core.domain.request import ConversionRecord, InteractionRecord, UpsellRequest
from core.rules.strategy_selector import StrategySelector
from core.rules.targeting import evaluate_targeting
from services.action_planner import plan_next_actions
from services.analytics_estimator import AnalyticsEstimator
from services.context_resolver import ContextResolver
from services.metrics_report import build_metrics
from services.recommendation_builder import RecommendationBuilder
from services.tracking_store import TrackingStore

logger = logging.getLogger(__name__)

DISABLED_SEGMENT = "none"


class UpsellEngine:
    """Orchestrates the upsell pipeline for a single request.

    select strategies -> targeting -> build recommendations -> sort ->
    next actions -> analytics -> record in the tracking store.
    """

    def __init__(self,
                 client: GuestDataClient,
                 store: Optional[TrackingStore] = None,
                 selector: Optional[StrategySelector] = None,
                 builder: Optional[RecommendationBuilder] = None,
                 estimator: Optional[AnalyticsEstimator] = None,
                 lookup_timeout: Optional[float] = 2.0,
                 request_deadline: Optional[float] = 10.0,
                 max_strategies: int = 3,
                 clock: Callable[[], datetime] = utcnow):
        """
        Args:
            client: Booking/guest/loyalty lookups
            store: Shared configuration and tracking state
            lookup_timeout: Seconds allowed per external lookup
            request_deadline: Seconds allowed per request when the caller gives none
            max_strategies: Top-N selected strategies turned into recommendations
            clock: Time source for tracking timestamps
        """
        self.client = client
        self.store = store or TrackingStore()
        self.selector = selector or StrategySelector()
        self.builder = builder or RecommendationBuilder(clock=clock)
        self.estimator = estimator or AnalyticsEstimator()
        self.lookup_timeout = lookup_timeout
        self.request_deadline = request_deadline
        self.max_strategies = max_strategies
        self.clock = clock

    @classmethod
    def from_settings(cls, settings, client: Optional[GuestDataClient] = None) -> "UpsellEngine":
        """Engine wired from application settings; seeds the default configuration when enabled"""
        client = client or HttpGuestDataClient(
            settings.GUEST_API_BASE_URL,
            timeout=settings.LOOKUP_TIMEOUT_SECONDS,
        )
        engine = cls(
            client=client,
            estimator=AnalyticsEstimator(
                value_score=settings.VALUE_SCORE,
                engagement_score=settings.ENGAGEMENT_SCORE,
                risk_score=settings.RISK_SCORE,
            ),
            lookup_timeout=settings.LOOKUP_TIMEOUT_SECONDS,
            request_deadline=settings.REQUEST_DEADLINE_SECONDS,
            max_strategies=settings.MAX_STRATEGIES_PER_REQUEST,
        )
        if settings.SEED_DEFAULT_CONFIG:
            engine.update_configuration("default", default_configuration())
        return engine

    # --- recommendations ---

    async def generate_upsells(self, request: UpsellRequest, timeout: Optional[float] = None) -> UpsellResponse:
        """
        Main pipeline for one request

        Args:
            request: Guest, booking, context and optional history snapshot
            timeout: Deadline in seconds; falls back to the engine's request deadline

        Returns:
            UpsellResponse with recommendations sorted by relevance

        Raises:
            InvalidUpsellRequest: blank guest or booking id
            UpsellDeadlineExceeded: the deadline expired; nothing was recorded
        """
        if not request.guest_id.strip():
            raise InvalidUpsellRequest("guest_id must not be blank")
        if not request.booking_id.strip():
            raise InvalidUpsellRequest("booking_id must not be blank")

        config = self.store.get_configuration(request.property_id)
        if config is None:
            logger.info(f"No upsell configuration for property {request.property_id}")
            return self._empty_response(request, f"No upsell configuration for property {request.property_id}")
        if not config.enabled:
            return self._empty_response(request, f"Upselling disabled for property {request.property_id}")

        deadline = timeout if timeout is not None else self.request_deadline
        try:
            response, targeting = await asyncio.wait_for(self._run_pipeline(request, config), timeout=deadline)
        except asyncio.TimeoutError as e:
            logger.warning(f"Upsell request for booking {request.booking_id} exceeded {deadline}s deadline")
            raise UpsellDeadlineExceeded(f"Upsell generation exceeded {deadline}s") from e

        self.store.append_recommendations(
            property_id=request.property_id,
            guest_id=request.guest_id,
            booking_id=request.booking_id,
            segment=targeting.segment,
            recommendations=response.recommendations,
            events=response.tracking.events,
        )
        logger.info(f"Generated {len(response.recommendations)} upsells for booking {request.booking_id} "
                    f"(segment {targeting.segment})")
        return response

    async def _run_pipeline(self,
                            request: UpsellRequest,
                            config: UpsellConfiguration) -> tuple[UpsellResponse, TargetingInfo]:
        history = request.history or self.store.history_snapshot(request.guest_id)
        resolver = ContextResolver(self.client, request, history=history, lookup_timeout=self.lookup_timeout)

        strategies = await self.selector.select_strategies(config, resolver)
        logger.debug(f"{len(strategies)} strategies selected for booking {request.booking_id}")

        targeting = await evaluate_targeting(config, resolver)

        recommendations: list[UpsellRecommendation] = []
        for strategy in strategies[:self.max_strategies]:
            for offer in strategy.offers:
                recommendation = await self.builder.build(strategy, offer, config, resolver)
                if recommendation is None:
                    targeting.reasons.append(f"Offer {offer.id} skipped: no delivery channel configured")
                    continue
                recommendations.append(recommendation)

        # sorted() is stable: equal scores keep strategy priority order
        recommendations = sorted(recommendations, key=lambda r: r.personalization.relevance_score, reverse=True)

        response = UpsellResponse(
            recommendations=recommendations,
            targeting=targeting,
            tracking=self._tracking_info(request, len(recommendations)),
            next_actions=plan_next_actions(request, recommendations),
            analytics=self.estimator.estimate(history, recommendations),
        )
        return response, targeting

    def _session_id(self, request: UpsellRequest) -> str:
        return request.session_id or f"session_{int(as_utc(self.clock()).timestamp() * 1000)}"

    def _tracking_info(self, request: UpsellRequest, count: int) -> TrackingInfo:
        return TrackingInfo(
            session_id=self._session_id(request),
            visitor_id=request.guest_id,
            utm=UTMParameters(source="website", medium="upsell", campaign="automated"),
            events=[
                TrackingEvent(
                    name="upsell_request",
                    properties={
                        "booking_id": request.booking_id,
                        "property_id": request.property_id,
                        "recommendations": count,
                    },
                    timestamp=as_utc(self.clock()),
                )
            ],
        )

    def _empty_response(self, request: UpsellRequest, reason: str) -> UpsellResponse:
        return UpsellResponse(
            recommendations=[],
            targeting=TargetingInfo(segment=DISABLED_SEGMENT, score=0, reasons=[reason]),
            tracking=TrackingInfo(
                session_id=self._session_id(request),
                visitor_id=request.guest_id,
                utm=UTMParameters(source="direct", medium="none", campaign="none"),
            ),
        )

    # --- configuration ---

    def update_configuration(self, property_id: str, config: UpsellConfiguration) -> UpsellConfiguration:
        """Store a private copy keyed by property_id; later caller mutations don't leak in"""
        stored = config.model_copy(deep=True, update={"property_id": property_id})
        self.store.put_configuration(property_id, stored)
        logger.info(f"Configuration updated for property {property_id}: "
                    f"{len(stored.strategies)} strategies, {len(stored.triggers)} triggers")
        return stored.model_copy(deep=True)

    def get_configuration(self, property_id: str) -> Optional[UpsellConfiguration]:
        config = self.store.get_configuration(property_id)
        return config.model_copy(deep=True) if config else None

    def pause_strategy(self, strategy_id: str) -> int:
        """Deactivate the strategy in every property that has it"""
        changed = self.store.set_strategy_active(strategy_id, False)
        logger.info(f"Strategy {strategy_id} paused in {changed} configurations")
        return changed

    def resume_strategy(self, strategy_id: str) -> int:
        changed = self.store.set_strategy_active(strategy_id, True)
        logger.info(f"Strategy {strategy_id} resumed in {changed} configurations")
        return changed

    # --- tracking & metrics ---

    def track_interaction(self, guest_id: str, interaction: InteractionRecord) -> None:
        """Record a guest action, tying it to the property that last showed the guest this offer"""
        if interaction.property_id is None:
            shown = [
                e for e in self.store.recommendations(guest_id=guest_id)
                if e.recommendation.offer.id == interaction.offer_id
            ]
            if shown:
                interaction = interaction.model_copy(update={"property_id": shown[-1].property_id})
        self.store.append_interaction(guest_id, interaction)
        logger.debug(f"Interaction {interaction.type.value} on {interaction.offer_id} by {guest_id}")

    def track_conversion(self, guest_id: str, conversion: ConversionRecord) -> None:
        self.store.append_conversion(guest_id, conversion)
        logger.info(f"Conversion of {conversion.offer_id} by {guest_id} worth {conversion.value}")

    def get_metrics(self, property_id: str, start: datetime, end: datetime) -> UpsellMetrics:
        return build_metrics(
            property_id,
            start,
            end,
            recommendations=self.store.recommendations(property_id=property_id),
            conversions=self.store.conversions(),
            interactions=self.store.interactions(),
        )

    def close(self) -> None:
        self.client.close()
