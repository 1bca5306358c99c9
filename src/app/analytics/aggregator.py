"""Per-user deal analytics with an in-process snapshot cache.

AnalyticsAggregator owns a ``{user_id: AnalyticsSnapshot}`` map. It is
created once per application (see ``main.lifespan``), lives for the whole
process, and never evicts entries. Per user the cache only moves forward:
absent -> cached -> replaced by a newer snapshot.

- get() computes synchronously on first access, then serves the cached
  snapshot unchanged until a recalculation replaces it (no TTL).
- recalculate() schedules a background asyncio task and returns at once.
  Overlapping tasks for the same user are not serialized; whichever
  finishes last wins. Failures are logged and counted, never raised.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Protocol

import structlog

from src.app.analytics.schemas import AnalyticsSnapshot, MonthBucket, StageBucket
from src.app.core.monitoring import (
    analytics_compute_duration_seconds,
    analytics_recalculations_total,
)
from src.app.crm.schemas import DealRead

logger = structlog.get_logger(__name__)

UNSPECIFIED_STAGE = "Unspecified"


class DealSource(Protocol):
    async def list_for_analytics(self, owner_id: int) -> list[DealRead]: ...


# ── Pure rollup ──────────────────────────────────────────────────────────────


def _month_key(created_at: datetime) -> str:
    """YYYY-MM of a timestamp in UTC; naive timestamps are taken as UTC."""
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc)
    return created_at.strftime("%Y-%m")


def build_snapshot(
    owner_id: int, deals: Iterable[DealRead], now: datetime
) -> AnalyticsSnapshot:
    """Group deals by stage and by creation month, summing count and amount.

    Empty or missing stages are reported as "Unspecified". Buckets keep the
    order in which their key first appeared in ``deals``.
    """
    by_stage: dict[str, StageBucket] = {}
    by_month: dict[str, MonthBucket] = {}

    for deal in deals:
        stage = deal.stage or UNSPECIFIED_STAGE
        amount = float(deal.amount or 0)

        stage_bucket = by_stage.setdefault(stage, StageBucket(stage=stage))
        stage_bucket.count += 1
        stage_bucket.amount += amount

        if deal.created_at is None:
            continue
        month = _month_key(deal.created_at)
        month_bucket = by_month.setdefault(month, MonthBucket(month=month))
        month_bucket.count += 1
        month_bucket.amount += amount

    return AnalyticsSnapshot(
        owner_id=owner_id,
        updated_at=now,
        deals_by_stage=list(by_stage.values()),
        deals_by_month=list(by_month.values()),
    )


# ── Aggregator ───────────────────────────────────────────────────────────────


class AnalyticsAggregator:
    """Computes and caches analytics snapshots per user.

    Args:
        deal_source: Anything with ``list_for_analytics(owner_id)``
            (normally the DealRepository).
        recalc_delay: Seconds a background recalculation waits before it
            starts computing.
    """

    def __init__(self, deal_source: DealSource, recalc_delay: float = 0.1) -> None:
        self._deals = deal_source
        self._recalc_delay = recalc_delay
        self._snapshots: dict[int, AnalyticsSnapshot] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of background recalculations still running."""
        return len(self._tasks)

    async def compute(self, owner_id: int) -> AnalyticsSnapshot:
        """Build a fresh snapshot from the user's deals (does not cache)."""
        start = time.perf_counter()
        deals = await self._deals.list_for_analytics(owner_id)
        snapshot = build_snapshot(owner_id, deals, datetime.now(timezone.utc))
        analytics_compute_duration_seconds.observe(time.perf_counter() - start)
        return snapshot

    async def get(self, owner_id: int) -> AnalyticsSnapshot:
        """Return the cached snapshot, computing it first if absent."""
        snapshot = self._snapshots.get(owner_id)
        if snapshot is None:
            snapshot = await self.compute(owner_id)
            self._snapshots[owner_id] = snapshot
            logger.info("analytics.computed", user_id=owner_id)
        return snapshot

    def recalculate(self, owner_id: int) -> asyncio.Task:
        """Schedule a background recomputation and return immediately.

        The returned task is also tracked internally until it finishes.
        """
        task = asyncio.create_task(
            self._recalculate(owner_id), name=f"analytics_recalc_{owner_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("analytics.recalculate_scheduled", user_id=owner_id)
        return task

    async def _recalculate(self, owner_id: int) -> None:
        try:
            if self._recalc_delay > 0:
                await asyncio.sleep(self._recalc_delay)
            snapshot = await self.compute(owner_id)
        except asyncio.CancelledError:
            logger.info("analytics.recalculate_cancelled", user_id=owner_id)
            raise
        except Exception:
            analytics_recalculations_total.labels(status="error").inc()
            logger.error("analytics.recalculate_failed", user_id=owner_id, exc_info=True)
            return

        self._snapshots[owner_id] = snapshot
        analytics_recalculations_total.labels(status="ok").inc()
        logger.info(
            "analytics.recalculated",
            user_id=owner_id,
            stages=len(snapshot.deals_by_stage),
            months=len(snapshot.deals_by_month),
        )

    async def wait_idle(self) -> None:
        """Wait for every background recalculation scheduled so far."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding recalculations (application shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
