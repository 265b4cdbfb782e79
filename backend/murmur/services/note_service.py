"""
Murmur Backend — Note Service
==============================

What:  Private notes: list, create, update, delete.
Why:   Notes are visible and mutable only by their owner; that check and the
       field rules live here so every route path applies them identically.
How:   Stateless service; each call receives the request's AsyncSession.

Update semantics (PUT /api/notes/{id}):
    title, content   required on every update
    is_pinned        omitted → previous value kept
    tags             omitted → reset to []
    The two defaults intentionally differ; clients that want to keep tags
    send them back with every update.

Listing order:
    Pinned notes first, then newest first within each group.
"""

import logging
import uuid
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from murmur.exceptions import NotAuthorizedError, NotFoundError, ValidationError
from murmur.models.note import Note
from murmur.services.store import store_operation

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 5000
MAX_TAG_LENGTH = 50
MAX_TAGS = 20


def _validate_fields(title: Optional[str], content: Optional[str]) -> None:
    if not title:
        raise ValidationError(message="Title is required", field="title")
    if not content:
        raise ValidationError(message="Content is required", field="content")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            message=f"Title must be at most {MAX_TITLE_LENGTH} characters", field="title"
        )
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            message=f"Content must be at most {MAX_CONTENT_LENGTH} characters", field="content"
        )


def _validate_tags(tags: Optional[Sequence[str]]) -> List[str]:
    if not tags:
        return []
    if len(tags) > MAX_TAGS:
        raise ValidationError(message=f"At most {MAX_TAGS} tags are allowed", field="tags")
    for tag in tags:
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError(
                message=f"Tags must be at most {MAX_TAG_LENGTH} characters", field="tags"
            )
    return list(tags)


class NoteService:
    """
    Business logic for private notes.

    Responsibilities:
        - list_notes(): the owner's notes, pinned first
        - create() / update() / delete(): owner-scoped mutations
    """

    async def _load_owned(self, db: AsyncSession, note_id: uuid.UUID, actor_id: uuid.UUID) -> Note:
        note = await db.get(Note, note_id)
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        if note.user_id != actor_id:
            raise NotAuthorizedError(
                context={"note_id": str(note_id), "actor_id": str(actor_id)},
            )
        return note

    @store_operation("list notes")
    async def list_notes(self, db: AsyncSession, owner_id: uuid.UUID) -> List[Note]:
        result = await db.execute(
            select(Note)
            .where(Note.user_id == owner_id)
            .order_by(Note.is_pinned.desc(), Note.created_at.desc())
        )
        return list(result.scalars().all())

    @store_operation("create note")
    async def create(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        title: str,
        content: str,
        tags: Optional[Sequence[str]] = None,
        is_pinned: Optional[bool] = None,
    ) -> Note:
        _validate_fields(title, content)
        note = Note(
            user_id=owner_id,
            title=title,
            content=content,
            tags=_validate_tags(tags),
            is_pinned=bool(is_pinned),
        )
        db.add(note)
        await db.flush()
        logger.info("Note %s created for user %s", note.id, owner_id)
        return note

    @store_operation("update note")
    async def update(
        self,
        db: AsyncSession,
        note_id: uuid.UUID,
        actor_id: uuid.UUID,
        title: str,
        content: str,
        tags: Optional[Sequence[str]] = None,
        is_pinned: Optional[bool] = None,
    ) -> Note:
        """
        Replace a note's title and content.

        Raises:
            NotFoundError: no such note
            NotAuthorizedError: the note belongs to someone else
            ValidationError: empty or oversized title/content/tags
        """
        note = await self._load_owned(db, note_id, actor_id)
        _validate_fields(title, content)

        note.title = title
        note.content = content
        note.tags = _validate_tags(tags)
        if is_pinned is not None:
            note.is_pinned = is_pinned

        await db.flush()
        logger.info("Note %s updated", note.id)
        return note

    @store_operation("delete note")
    async def delete(self, db: AsyncSession, note_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        note = await self._load_owned(db, note_id, actor_id)
        await db.delete(note)
        await db.flush()
        logger.info("Note %s deleted by %s", note_id, actor_id)


note_service = NoteService()
