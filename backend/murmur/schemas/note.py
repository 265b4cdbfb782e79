"""
Murmur Backend — Note Schemas
==============================

What:  Request/response bodies for private notes.
Why:   `tags` and `isPinned` are Optional on purpose: the service needs to
       tell "omitted" (None) apart from an explicit value on update.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from murmur.models.note import Note
from murmur.schemas.common import CamelModel


class NoteRequest(CamelModel):
    """Body for POST /api/notes and PUT /api/notes/{id}."""
    title: str = Field(min_length=1, max_length=200, description="Note title (1-200 chars)")
    content: str = Field(min_length=1, max_length=5000, description="Note body (1-5000 chars)")
    tags: Optional[List[str]] = Field(
        default=None,
        max_length=20,
        description="Ordered tags (each up to 50 chars). Omitted on update resets to []",
    )
    is_pinned: Optional[bool] = Field(
        default=None,
        description="Pin state. Omitted on update keeps the current value",
    )


class NoteResponse(CamelModel):
    id: uuid.UUID
    user: uuid.UUID = Field(description="Owner id")
    title: str
    content: str
    tags: List[str]
    is_pinned: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_note(cls, note: Note) -> "NoteResponse":
        return cls(
            id=note.id,
            user=note.user_id,
            title=note.title,
            content=note.content,
            tags=list(note.tags or []),
            is_pinned=note.is_pinned,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )
