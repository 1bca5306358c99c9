"""REST API endpoints for contacts and their notes.

Every endpoint requires a bearer token. Listing is scoped to the caller's
own contacts; single-contact endpoints and notes go through the ownership
guard inside the repositories and answer 403 for missing or foreign ids.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from src.app.api.deps import (
    get_contact_repository,
    get_current_principal,
    get_note_repository,
    parse_id,
)
from src.app.core.security import Principal
from src.app.crm.schemas import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ContactCreate,
    ContactRead,
    ContactUpdate,
    NoteCreate,
    NoteList,
    NoteRead,
    OkResponse,
    Page,
)

router = APIRouter(prefix="/contacts", tags=["contacts"])


# ── Contact Endpoints ────────────────────────────────────────────────────────


@router.get("", response_model=Page[ContactRead])
async def list_contacts(
    search: str = Query("", description="Substring of name, email or company"),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, alias="pageSize"),
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_contact_repository),
):
    """List the caller's contacts, newest first."""
    return await repo.list(principal.user_id, search=search, page=page, page_size=page_size)


@router.post("", response_model=ContactRead, status_code=status.HTTP_201_CREATED)
async def create_contact(
    body: ContactCreate,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_contact_repository),
):
    return await repo.create(principal.user_id, body)


@router.get("/{contact_id}", response_model=ContactRead)
async def get_contact(
    contact_id: str,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_contact_repository),
):
    return await repo.get(principal.user_id, parse_id(contact_id))


@router.patch("/{contact_id}", response_model=ContactRead)
async def update_contact(
    contact_id: str,
    body: ContactUpdate,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_contact_repository),
):
    """Update only the supplied fields of a contact."""
    return await repo.update(principal.user_id, parse_id(contact_id), body)


@router.delete("/{contact_id}", response_model=OkResponse)
async def delete_contact(
    contact_id: str,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_contact_repository),
):
    """Delete a contact together with its notes and deals."""
    await repo.delete(principal.user_id, parse_id(contact_id))
    return OkResponse()


# ── Note Endpoints ───────────────────────────────────────────────────────────


@router.get("/{contact_id}/notes", response_model=NoteList)
async def list_notes(
    contact_id: str,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_note_repository),
):
    return await repo.list(principal.user_id, parse_id(contact_id))


@router.post(
    "/{contact_id}/notes",
    response_model=NoteRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_note(
    contact_id: str,
    body: NoteCreate,
    principal: Principal = Depends(get_current_principal),
    repo: Any = Depends(get_note_repository),
):
    return await repo.create(principal.user_id, parse_id(contact_id), body)
