"""
Murmur Backend — Note SQLAlchemy Model
=======================================

What:  ORM model representing the `notes` table.
Why:   Private per-user notes; visible and mutable only by their owner.

Table Design Rationale:
    - user_id: owner, immutable after creation
    - title VARCHAR(200) / content TEXT (service caps content at 5000 chars)
    - tags: JSON array of short strings, order preserved as given
    - is_pinned: pinned notes list before unpinned ones

    Index on (user_id, is_pinned, created_at):
        Matches the only listing query: one owner's notes, pinned first,
        newest first.
"""

import uuid
from datetime import datetime
from typing import List

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from murmur.database import Base
from murmur.models.user import utcnow


class Note(Base):
    """A private note owned by a single user."""

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owner of the note",
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("idx_notes_owner_listing", "user_id", "is_pinned", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, user_id={self.user_id}, "
            f"pinned={self.is_pinned}, created_at='{self.created_at}')>"
        )
