import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from core.domain.config import UpsellConfiguration
from core.domain.enums import OfferResponse
from core.domain.recommendation import TrackingEvent, UpsellRecommendation
from core.domain.request import (
    ConversionRecord, InteractionRecord, PreviousOffer, UpsellHistory,
)


@dataclass(frozen=True)
class StoredRecommendation:
    """A recommendation as it was returned, plus where it was shown"""
    property_id: str
    guest_id: str
    booking_id: str
    segment: str
    recommendation: UpsellRecommendation


class TrackingStore:
    """Process-wide state shared by concurrent callers (in production: use database).

    Configurations are copy-on-write: readers take the current map without
    locking and writers publish a new map under a lock, so a configuration a
    reader already holds never changes underneath it. History logs are
    append-only; every append is kept. Shown recommendations are also
    indexed by guest and by property so per-guest history reads stay small.
    """

    def __init__(self):
        self._configs: dict[str, UpsellConfiguration] = {}
        self._config_lock = threading.Lock()

        self._log_lock = threading.Lock()
        self._recommendations: dict[str, list[StoredRecommendation]] = defaultdict(list)
        self._recommendations_by_guest: dict[str, list[StoredRecommendation]] = defaultdict(list)
        self._recommendations_by_property: dict[str, list[StoredRecommendation]] = defaultdict(list)
        self._interactions: dict[str, list[InteractionRecord]] = defaultdict(list)
        self._conversions: dict[str, list[ConversionRecord]] = defaultdict(list)
        self._events: dict[str, list[TrackingEvent]] = defaultdict(list)

    # --- configurations ---

    def get_configuration(self, property_id: str) -> Optional[UpsellConfiguration]:
        return self._configs.get(property_id)

    def property_ids(self) -> list[str]:
        return list(self._configs)

    def put_configuration(self, property_id: str, config: UpsellConfiguration) -> None:
        with self._config_lock:
            configs = dict(self._configs)
            configs[property_id] = config
            self._configs = configs

    def set_strategy_active(self, strategy_id: str, active: bool) -> int:
        """Toggle the strategy in every configuration that has it. Returns how many did."""
        with self._config_lock:
            configs = dict(self._configs)
            touched = 0
            for property_id, config in self._configs.items():
                if not any(s.id == strategy_id for s in config.strategies):
                    continue
                strategies = [
                    s.model_copy(update={"active": active}) if s.id == strategy_id else s
                    for s in config.strategies
                ]
                configs[property_id] = config.model_copy(update={"strategies": strategies})
                touched += 1
            self._configs = configs
        return touched

    # --- append-only logs ---

    @staticmethod
    def _booking_key(guest_id: str, booking_id: str) -> str:
        return f"{guest_id}:{booking_id}"

    def append_recommendations(self,
                               property_id: str,
                               guest_id: str,
                               booking_id: str,
                               segment: str,
                               recommendations: list[UpsellRecommendation],
                               events: Optional[list[TrackingEvent]] = None) -> None:
        stored = [
            StoredRecommendation(property_id, guest_id, booking_id, segment, r)
            for r in recommendations
        ]
        with self._log_lock:
            self._recommendations[self._booking_key(guest_id, booking_id)].extend(stored)
            self._recommendations_by_guest[guest_id].extend(stored)
            self._recommendations_by_property[property_id].extend(stored)
            if events:
                self._events[guest_id].extend(events)

    def append_interaction(self, guest_id: str, interaction: InteractionRecord) -> None:
        with self._log_lock:
            self._interactions[guest_id].append(interaction)

    def append_conversion(self, guest_id: str, conversion: ConversionRecord) -> None:
        with self._log_lock:
            self._conversions[guest_id].append(conversion)

    # --- reads (snapshots) ---

    def recommendations(self, property_id: Optional[str] = None, guest_id: Optional[str] = None) -> list[StoredRecommendation]:
        """Shown recommendations. A guest or property lookup copies only the matching index entry, in the order shown."""
        with self._log_lock:
            if guest_id is not None:
                entries = list(self._recommendations_by_guest.get(guest_id, []))
            elif property_id is not None:
                return list(self._recommendations_by_property.get(property_id, []))
            else:
                return [e for log in self._recommendations.values() for e in log]
        if property_id is not None:
            entries = [e for e in entries if e.property_id == property_id]
        return entries

    def booking_recommendations(self, guest_id: str, booking_id: str) -> list[StoredRecommendation]:
        with self._log_lock:
            return list(self._recommendations.get(self._booking_key(guest_id, booking_id), []))

    def interactions(self, guest_id: Optional[str] = None) -> list[InteractionRecord]:
        with self._log_lock:
            if guest_id is not None:
                return list(self._interactions.get(guest_id, []))
            return [i for log in self._interactions.values() for i in log]

    def conversions(self, guest_id: Optional[str] = None) -> list[ConversionRecord]:
        with self._log_lock:
            if guest_id is not None:
                return list(self._conversions.get(guest_id, []))
            return [c for log in self._conversions.values() for c in log]

    def events(self, guest_id: str) -> list[TrackingEvent]:
        with self._log_lock:
            return list(self._events.get(guest_id, []))

    def history_snapshot(self, guest_id: str) -> Optional[UpsellHistory]:
        """Tracked history of a guest in the shape callers send, or None if there is none"""
        shown = self.recommendations(guest_id=guest_id)
        interactions = self.interactions(guest_id)
        conversions = self.conversions(guest_id)
        if not (shown or interactions or conversions):
            return None

        converted_offers = {c.offer_id for c in conversions}
        previous_offers = [
            PreviousOffer(
                offer_id=e.recommendation.offer.id,
                strategy=e.recommendation.strategy_id,
                presented_at=e.recommendation.tracking.timestamp,
                channel=e.recommendation.presentation.channel,
                response=OfferResponse.CONVERTED if e.recommendation.offer.id in converted_offers else OfferResponse.IGNORED,
            )
            for e in shown
        ]
        return UpsellHistory(previous_offers=previous_offers, conversions=conversions, interactions=interactions)
