import logging
from datetime import datetime

import pandas as pd

from core.domain.clock import as_utc
from core.domain.enums import InteractionType
from core.domain.recommendation import (
    ChannelMetrics, MetricTrend, MetricsBreakdown, MetricsPeriod,
    MetricsSummary, OfferMetrics, SegmentMetrics, StrategyMetrics, UpsellMetrics,
)
from core.domain.request import ConversionRecord, InteractionRecord
from services.tracking_store import StoredRecommendation

logger = logging.getLogger(__name__)

REC_COLUMNS = ["strategy_id", "offer_id", "channel", "segment", "timestamp"]
CONV_COLUMNS = ["offer_id", "value", "converted_at"]


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def _counts(df: pd.DataFrame, key: str) -> dict:
    if df.empty:
        return {}
    return {k: int(v) for k, v in df.groupby(key).size().items()}


def _sums(df: pd.DataFrame, key: str, column: str = "value") -> dict:
    if df.empty:
        return {}
    return {k: float(v) for k, v in df.groupby(key)[column].sum().items()}


def _frames(property_id: str,
            start: datetime,
            end: datetime,
            recommendations: list[StoredRecommendation],
            conversions: list[ConversionRecord]) -> tuple[pd.DataFrame, pd.DataFrame]:
    recs = pd.DataFrame(
        [
            {
                "strategy_id": e.recommendation.strategy_id,
                "offer_id": e.recommendation.offer.id,
                "channel": e.recommendation.presentation.channel,
                "segment": e.segment,
                "timestamp": as_utc(e.recommendation.tracking.timestamp),
            }
            for e in recommendations
            if e.property_id == property_id
        ],
        columns=REC_COLUMNS,
    )
    convs = pd.DataFrame(
        [
            {"offer_id": c.offer_id, "value": float(c.value), "converted_at": as_utc(c.converted_at)}
            for c in conversions
            if c.property_id in (None, property_id)
        ],
        columns=CONV_COLUMNS,
    )

    recs["timestamp"] = pd.to_datetime(recs["timestamp"], utc=True)
    convs["converted_at"] = pd.to_datetime(convs["converted_at"], utc=True)
    convs["value"] = pd.to_numeric(convs["value"]).astype(float)

    window_start, window_end = pd.Timestamp(start), pd.Timestamp(end)
    recs = recs[(recs["timestamp"] >= window_start) & (recs["timestamp"] <= window_end)]
    convs = convs[(convs["converted_at"] >= window_start) & (convs["converted_at"] <= window_end)]
    return recs, convs


def build_metrics(property_id: str,
                  start: datetime,
                  end: datetime,
                  recommendations: list[StoredRecommendation],
                  conversions: list[ConversionRecord],
                  interactions: list[InteractionRecord]) -> UpsellMetrics:
    """Aggregate shown recommendations and conversions over an inclusive time window.

    Conversions are attributed to a strategy/channel/segment through the first
    recommendation in the window that presented the same offer.
    Clicks count only when they carry this property_id; a click that could not
    be tied to a property is left out of every property's CTR.
    """
    start, end = as_utc(start), as_utc(end)
    recs, convs = _frames(property_id, start, end, recommendations, conversions)

    total_offers = len(recs)
    total_conversions = len(convs)
    total_revenue = float(convs["value"].sum()) if total_conversions else 0.0

    summary = MetricsSummary(
        total_offers=total_offers,
        total_conversions=total_conversions,
        conversion_rate=_ratio(total_conversions, total_offers),
        total_revenue=total_revenue,
        avg_order_value=_ratio(total_revenue, total_conversions),
    )

    first_shown = recs.sort_values("timestamp", kind="stable").drop_duplicates("offer_id")[["offer_id", "strategy_id", "channel", "segment"]]
    attributed = convs.merge(first_shown, on="offer_id", how="inner")

    clicks = pd.DataFrame(
        [
            {"offer_id": i.offer_id}
            for i in interactions
            if i.type == InteractionType.CLICK
            and i.property_id == property_id
            and start <= as_utc(i.timestamp) <= end
        ],
        columns=["offer_id"],
    )

    logger.debug(f"Metrics for {property_id}: {total_offers} offers, {total_conversions} conversions, "
                 f"{len(attributed)} attributed")

    return UpsellMetrics(
        period=MetricsPeriod(start=start, end=end),
        summary=summary,
        breakdown=MetricsBreakdown(
            by_strategy=_by_strategy(recs, attributed),
            by_channel=_by_channel(recs, attributed),
            by_segment=_by_segment(recs, attributed),
            by_offer=_by_offer(recs, convs, clicks),
        ),
        trends=_daily_trends(recs, convs),
    )


def _by_strategy(recs: pd.DataFrame, attributed: pd.DataFrame) -> dict[str, StrategyMetrics]:
    offers = _counts(recs, "strategy_id")
    conversions = _counts(attributed, "strategy_id")
    revenue = _sums(attributed, "strategy_id")
    return {
        key: StrategyMetrics(
            offers=offers.get(key, 0),
            conversions=conversions.get(key, 0),
            revenue=revenue.get(key, 0.0),
            conversion_rate=_ratio(conversions.get(key, 0), offers.get(key, 0)),
            avg_value=_ratio(revenue.get(key, 0.0), conversions.get(key, 0)),
        )
        for key in sorted(set(offers) | set(conversions))
    }


def _by_channel(recs: pd.DataFrame, attributed: pd.DataFrame) -> dict[str, ChannelMetrics]:
    sent = _counts(recs, "channel")
    converted = _counts(attributed, "channel")
    revenue = _sums(attributed, "channel")
    return {
        key: ChannelMetrics(
            sent=sent.get(key, 0),
            converted=converted.get(key, 0),
            revenue=revenue.get(key, 0.0),
            conversion_rate=_ratio(converted.get(key, 0), sent.get(key, 0)),
        )
        for key in sorted(set(sent) | set(converted))
    }


def _by_segment(recs: pd.DataFrame, attributed: pd.DataFrame) -> dict[str, SegmentMetrics]:
    offers = _counts(recs, "segment")
    conversions = _counts(attributed, "segment")
    revenue = _sums(attributed, "segment")
    return {
        key: SegmentMetrics(
            offers=offers.get(key, 0),
            conversions=conversions.get(key, 0),
            revenue=revenue.get(key, 0.0),
        )
        for key in sorted(set(offers) | set(conversions))
    }


def _by_offer(recs: pd.DataFrame, convs: pd.DataFrame, clicks: pd.DataFrame) -> dict[str, OfferMetrics]:
    impressions = _counts(recs, "offer_id")
    click_counts = _counts(clicks, "offer_id")
    conversions = _counts(convs, "offer_id")
    revenue = _sums(convs, "offer_id")
    return {
        key: OfferMetrics(
            impressions=impressions.get(key, 0),
            clicks=click_counts.get(key, 0),
            conversions=conversions.get(key, 0),
            revenue=revenue.get(key, 0.0),
            ctr=_ratio(click_counts.get(key, 0), impressions.get(key, 0)),
            conversion_rate=_ratio(conversions.get(key, 0), impressions.get(key, 0)),
            avg_value=_ratio(revenue.get(key, 0.0), conversions.get(key, 0)),
        )
        for key in sorted(set(impressions) | set(conversions))
    }


def _daily_trends(recs: pd.DataFrame, convs: pd.DataFrame) -> list[MetricTrend]:
    recs = recs.assign(date=recs["timestamp"].dt.floor("D"))
    convs = convs.assign(date=convs["converted_at"].dt.floor("D"))
    offers = _counts(recs, "date")
    conversions = _counts(convs, "date")
    revenue = _sums(convs, "date")
    return [
        MetricTrend(
            date=day.to_pydatetime(),
            offers=offers.get(day, 0),
            conversions=conversions.get(day, 0),
            revenue=revenue.get(day, 0.0),
            conversion_rate=_ratio(conversions.get(day, 0), offers.get(day, 0)),
        )
        for day in sorted(set(offers) | set(conversions))
    ]
