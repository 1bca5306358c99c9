"""Analytics API endpoints.

GET /analytics serves the caller's cached snapshot (computed on first
access). POST /analytics:recalc schedules a background recomputation and
answers 202 immediately; the new snapshot shows up on a later GET.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from src.app.analytics.schemas import AnalyticsSnapshot, RecalculationAccepted
from src.app.api.deps import get_analytics, get_current_principal
from src.app.core.security import Principal

router = APIRouter(tags=["analytics"])


@router.get("/analytics", response_model=AnalyticsSnapshot)
async def get_analytics_snapshot(
    principal: Principal = Depends(get_current_principal),
    aggregator: Any = Depends(get_analytics),
):
    return await aggregator.get(principal.user_id)


@router.post(
    "/analytics:recalc",
    response_model=RecalculationAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def recalculate_analytics(
    principal: Principal = Depends(get_current_principal),
    aggregator: Any = Depends(get_analytics),
):
    aggregator.recalculate(principal.user_id)
    return RecalculationAccepted()
