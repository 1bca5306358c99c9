"""REST API endpoints for deals.

Deals carry no owner column: they belong to whoever owns their contact.
Listing joins through contact ownership; every other endpoint resolves the
deal's contact first and answers 403 when the caller does not own it.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from src.app.api.deps import get_current_principal, get_deal_repository, parse_id
from src.app.core.security import Principal
from src.app.crm.schemas import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    DealCreate,
    DealRead,
    DealUpdate,
    OkResponse,
    Page,
)

router = APIRouter(prefix="/deals", tags=["deals"])


@router.get("", response_model=Page[DealRead])
async def list_deals(
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, alias="pageSize"),
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_deal_repository),
):
    """List the caller's deals, newest first, each with its contact."""
    return await repo.list(principal.user_id, page=page, page_size=page_size)


@router.post("", response_model=DealRead, status_code=status.HTTP_201_CREATED)
async def create_deal(
    body: DealCreate,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_deal_repository),
):
    """Create a deal under one of the caller's contacts (403 otherwise)."""
    return await repo.create(principal.user_id, body)


@router.get("/{deal_id}", response_model=DealRead)
async def get_deal(
    deal_id: str,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_deal_repository),
):
    return await repo.get(principal.user_id, parse_id(deal_id))


@router.patch("/{deal_id}", response_model=DealRead)
async def update_deal(
    deal_id: str,
    body: DealUpdate,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_deal_repository),
):
    return await repo.update(principal.user_id, parse_id(deal_id), body)


@router.delete("/{deal_id}", response_model=OkResponse)
async def delete_deal(
    deal_id: str,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_deal_repository),
):
    await repo.delete(principal.user_id, parse_id(deal_id))
    return OkResponse()
