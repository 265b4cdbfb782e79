"""
Murmur Backend — Notes Route Handlers
======================================

What:  Handles GET/POST /api/notes and PUT/DELETE /api/notes/{id}.
Why:   Private notes for the authenticated user; nobody else can read or
       change them.
How:   Extracts the user id from the bearer token, delegates to NoteService,
       returns JSON.

Caching Strategy:
    - GET /api/notes: `Cache-Control: private, no-store`. Notes are personal
      and change on every edit, so no shared or local cache may keep them.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from murmur.database import get_db_session
from murmur.dependencies import get_current_user_id, parse_id
from murmur.schemas.common import ErrorResponse, MessageResponse
from murmur.schemas.note import NoteRequest, NoteResponse
from murmur.services.note_service import note_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/notes", tags=["Notes"])

_OWNER_ERRORS = {
    400: {"description": "Invalid fields or malformed id", "model": ErrorResponse},
    403: {"description": "Note belongs to another user", "model": ErrorResponse},
    404: {"description": "Note not found", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=List[NoteResponse],
    summary="List my notes",
    description="Pinned notes first, then newest first.",
)
async def list_notes(
    response: Response,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> List[NoteResponse]:
    notes = await note_service.list_notes(db, owner_id=user_id)
    response.headers["Cache-Control"] = "private, no-store"
    return [NoteResponse.from_note(note) for note in notes]


@router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid fields", "model": ErrorResponse}},
    summary="Create a note",
)
async def create_note(
    body: NoteRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> NoteResponse:
    note = await note_service.create(
        db,
        owner_id=user_id,
        title=body.title,
        content=body.content,
        tags=body.tags,
        is_pinned=body.is_pinned,
    )
    return NoteResponse.from_note(note)


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    responses=_OWNER_ERRORS,
    summary="Replace a note",
    description=(
        "Title and content are required. Omitting `isPinned` keeps the current "
        "pin state; omitting `tags` clears them."
    ),
)
async def update_note(
    note_id: str,
    body: NoteRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> NoteResponse:
    note = await note_service.update(
        db,
        parse_id(note_id, field="note id"),
        actor_id=user_id,
        title=body.title,
        content=body.content,
        tags=body.tags,
        is_pinned=body.is_pinned,
    )
    return NoteResponse.from_note(note)


@router.delete(
    "/{note_id}",
    response_model=MessageResponse,
    responses=_OWNER_ERRORS,
    summary="Delete a note",
)
async def delete_note(
    note_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> MessageResponse:
    await note_service.delete(db, parse_id(note_id, field="note id"), actor_id=user_id)
    return MessageResponse(message="Note deleted")
