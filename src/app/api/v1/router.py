"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.app.api.v1 import analytics, auth, contacts, deals, health

router = APIRouter()

router.include_router(health.router)
router.include_router(auth.router)
router.include_router(contacts.router)
router.include_router(deals.router)
router.include_router(analytics.router)
