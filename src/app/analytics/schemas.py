"""Pydantic schemas for the per-user analytics snapshot."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from src.app.crm.schemas import CamelModel


class StageBucket(CamelModel):
    stage: str
    count: int = 0
    amount: float = 0.0


class MonthBucket(CamelModel):
    month: str = Field(..., description="Calendar month as YYYY-MM")
    count: int = 0
    amount: float = 0.0


class AnalyticsSnapshot(CamelModel):
    """Rollup of one user's deals at ``updated_at``.

    Derived data: recomputable from deals at any time. Bucket order is the
    order in which each key was first seen, not sorted.
    """

    owner_id: int
    updated_at: datetime
    deals_by_stage: list[StageBucket] = Field(default_factory=list)
    deals_by_month: list[MonthBucket] = Field(default_factory=list)


class RecalculationAccepted(CamelModel):
    message: str = "Recalculation started"
