"""
FastAPI router for upsell endpoints

Recommendations, configuration management, strategy pause/resume,
interaction/conversion tracking and metrics.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from core.domain.clock import as_utc, utcnow
from core.domain.config import UpsellConfiguration
from core.domain.errors import InvalidUpsellRequest, UpsellDeadlineExceeded
from core.domain.recommendation import UpsellMetrics, UpsellResponse
from core.domain.request import ConversionRecord, InteractionRecord, UpsellRequest
from orchestration.upsell_engine import UpsellEngine

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_METRICS_WINDOW_DAYS = 30

# Create router
router = APIRouter(
    tags=["Upsell"],
    responses={
        422: {"description": "Invalid request"},
        504: {"description": "Request deadline exceeded"},
    }
)

def _engine(request: Request) -> UpsellEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="System not initialized")
    return engine

@router.post("/upsells", response_model=UpsellResponse)
async def generate_upsells(body: UpsellRequest, request: Request):
    """
    Generate upsell recommendations for a guest booking

    Returns recommendations sorted by relevance, targeting, next actions and analytics
    """
    engine = _engine(request)
    try:
        return await engine.generate_upsells(body)
    except InvalidUpsellRequest as e:
        raise HTTPException(status_code=422, detail=str(e))
    except UpsellDeadlineExceeded as e:
        raise HTTPException(status_code=504, detail=str(e))

@router.get("/configurations/{property_id}", response_model=UpsellConfiguration)
async def get_configuration(property_id: str, request: Request):
    config = _engine(request).get_configuration(property_id)
    if config is None:
        raise HTTPException(status_code=404, detail=f"No configuration for property {property_id}")
    return config

@router.put("/configurations/{property_id}", response_model=UpsellConfiguration)
async def update_configuration(property_id: str, config: UpsellConfiguration, request: Request):
    """Replace the property's configuration (the path's property_id wins)"""
    return _engine(request).update_configuration(property_id, config)

@router.post("/strategies/{strategy_id}/pause")
async def pause_strategy(strategy_id: str, request: Request):
    """Pause the strategy in every configured property"""
    changed = _engine(request).pause_strategy(strategy_id)
    return {"strategy_id": strategy_id, "active": False, "configurations_changed": changed}

@router.post("/strategies/{strategy_id}/resume")
async def resume_strategy(strategy_id: str, request: Request):
    changed = _engine(request).resume_strategy(strategy_id)
    return {"strategy_id": strategy_id, "active": True, "configurations_changed": changed}

@router.post("/guests/{guest_id}/interactions", status_code=202)
async def track_interaction(guest_id: str, interaction: InteractionRecord, request: Request):
    _engine(request).track_interaction(guest_id, interaction)
    return {"status": "accepted"}

@router.post("/guests/{guest_id}/conversions", status_code=202)
async def track_conversion(guest_id: str, conversion: ConversionRecord, request: Request):
    _engine(request).track_conversion(guest_id, conversion)
    return {"status": "accepted"}

@router.get("/metrics/{property_id}", response_model=UpsellMetrics)
async def get_metrics(property_id: str,
                      request: Request,
                      start: Optional[datetime] = Query(None, description="Window start (inclusive)"),
                      end: Optional[datetime] = Query(None, description="Window end (inclusive)")):
    """Upsell performance for a property; defaults to the last 30 days"""
    end = as_utc(end) if end else utcnow()
    start = as_utc(start) if start else end - timedelta(days=DEFAULT_METRICS_WINDOW_DAYS)
    if start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")
    return _engine(request).get_metrics(property_id, start, end)
