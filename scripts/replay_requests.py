#!/usr/bin/env python3
"""
Request Replay Script for the Upsell Engine

Replays booking rows from a CSV through the engine against in-memory guest
data, records conversions where the row carries a conversion value and
prints the resulting metrics.

Expected columns: guest_id, booking_id. Optional: property_id, event, device,
session_id, timestamp, loyalty_tier, loyalty_points, booking_value,
room_type, check_in, check_out, party_size, first_name, last_name,
guest_type, conversion_value.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from tqdm import tqdm

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from adapters.external.guest_data_client import (
    BookingRecord, GuestRecord, LoyaltyRecord, StaticGuestDataClient,
)
from core.domain.clock import as_utc, utcnow
from core.domain.defaults import default_configuration
from core.domain.enums import DeviceType, TriggerEventType
from core.domain.errors import UpsellEngineError
from core.domain.recommendation import UpsellMetrics, UpsellResponse
from core.domain.request import ConversionRecord, UpsellContext, UpsellRequest
from orchestration.upsell_engine import UpsellEngine

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["guest_id", "booking_id"]


def _value(row: dict, key: str) -> Optional[Any]:
    """Cell value, None for missing columns and NaN/empty cells"""
    value = row.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if pd.isna(value):
        return None
    # numpy scalars -> plain Python values
    return value.item() if hasattr(value, "item") else value


def _timestamp(row: dict, key: str) -> Optional[datetime]:
    value = _value(row, key)
    return as_utc(pd.Timestamp(value).to_pydatetime()) if value is not None else None


def load_requests(csv_path: str) -> pd.DataFrame:
    """Load replay rows; ids are kept as strings"""
    df = pd.read_csv(csv_path, dtype={"guest_id": str, "booking_id": str, "property_id": str})
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV is missing required columns: {missing}")
    logger.info(f"Loaded {len(df):,} request rows from {csv_path}")
    return df


def row_to_request(row: dict, default_property: str = "default") -> UpsellRequest:
    event = _value(row, "event") or TriggerEventType.BOOKING_CREATED.value
    device = _value(row, "device") or DeviceType.DESKTOP.value
    context = UpsellContext(event=TriggerEventType(event), device=DeviceType(device))
    timestamp = _timestamp(row, "timestamp")
    if timestamp is not None:
        context.timestamp = timestamp

    return UpsellRequest(
        guest_id=str(row["guest_id"]),
        booking_id=str(row["booking_id"]),
        property_id=_value(row, "property_id") or default_property,
        session_id=_value(row, "session_id"),
        context=context,
    )


def build_client(df: pd.DataFrame) -> StaticGuestDataClient:
    """In-memory booking/guest/loyalty records from the replay rows"""
    bookings, guests, loyalty = {}, {}, {}
    for row in df.to_dict(orient="records"):
        booking_id, guest_id = str(row["booking_id"]), str(row["guest_id"])
        bookings[booking_id] = BookingRecord(
            total_amount=_value(row, "booking_value"),
            room_type=_value(row, "room_type"),
            check_in=_timestamp(row, "check_in"),
            check_out=_timestamp(row, "check_out"),
            guests=_value(row, "party_size"),
        )
        if _value(row, "first_name") or _value(row, "last_name") or _value(row, "guest_type"):
            guests[guest_id] = GuestRecord(
                first_name=_value(row, "first_name"),
                last_name=_value(row, "last_name"),
                type=_value(row, "guest_type"),
            )
        if _value(row, "loyalty_tier"):
            points = _value(row, "loyalty_points")
            loyalty[guest_id] = LoyaltyRecord(
                tier=_value(row, "loyalty_tier"),
                points=int(points) if points is not None else None,
            )
    return StaticGuestDataClient(bookings=bookings, guests=guests, loyalty=loyalty)


async def replay(engine: UpsellEngine, df: pd.DataFrame, default_property: str = "default") -> list[UpsellResponse]:
    """Run every row through the engine; failed rows are logged and skipped"""
    responses = []
    for row in tqdm(df.to_dict(orient="records"), desc="Replaying requests", unit="request"):
        try:
            request = row_to_request(row, default_property)
            response = await engine.generate_upsells(request)
        except (ValueError, UpsellEngineError) as e:
            logger.error(f"Skipping booking {row.get('booking_id')}: {e}")
            continue
        responses.append(response)

        conversion_value = _value(row, "conversion_value")
        if conversion_value and response.recommendations:
            top = response.recommendations[0]
            engine.track_conversion(request.guest_id, ConversionRecord(
                offer_id=top.offer.id,
                value=float(conversion_value),
                property_id=request.property_id,
            ))
    return responses


def print_summary(metrics: UpsellMetrics, responses: list[UpsellResponse]):
    summary = metrics.summary
    print("\n" + "="*60)
    print("Upsell Replay Complete")
    print("="*60)
    print(f"Requests replayed: {len(responses)}")
    print(f"Offers shown: {summary.total_offers}")
    print(f"Conversions: {summary.total_conversions} ({summary.conversion_rate:.1%})")
    print(f"Revenue: {summary.total_revenue:,.2f} (avg order {summary.avg_order_value:,.2f})")
    for strategy_id, stats in metrics.breakdown.by_strategy.items():
        print(f"   {strategy_id}: {stats.offers} offers, {stats.conversions} conversions")
    print("="*60)


def main():
    parser = argparse.ArgumentParser(description='Replay booking requests through the Upsell Engine')
    parser.add_argument('--csv', required=True, help='CSV file with one request per row')
    parser.add_argument('--property', default='default', help='Property id for rows without one')
    parser.add_argument('--max-strategies', type=int, default=3, help='Strategies turned into offers per request')
    args = parser.parse_args()

    try:
        df = load_requests(args.csv)
        engine = UpsellEngine(build_client(df), max_strategies=args.max_strategies)
        properties = set(df["property_id"].dropna()) if "property_id" in df.columns else set()
        for property_id in properties | {args.property}:
            engine.update_configuration(property_id, default_configuration(property_id))

        started = utcnow()
        responses = asyncio.run(replay(engine, df, args.property))
        metrics = engine.get_metrics(args.property, started - timedelta(days=1), utcnow())
        print_summary(metrics, responses)
    except Exception as e:
        logger.error(f"Replay failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
