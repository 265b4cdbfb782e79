"""
Murmur Backend — User & Follow SQLAlchemy Models
=================================================

What:  ORM models for the `users` and `follows` tables.
Why:   Users own posts and notes; follows form the relationship graph that
       gates who may like or comment on whose posts.

Table Design Rationale:
    - UUID primary keys: opaque ids, safe to expose in URLs
    - username / email: unique indexes enforce identity uniqueness even when
      two registrations race past the service-level existence check
    - password_hash: bcrypt output; the plaintext is never stored

    Follow edge as ONE row:
        The relation "A follows B" is a single `follows` row
        (follower_id=A, followee_id=B). A's `following` set and B's `followers`
        set are both read from it, so the two sides can never disagree and a
        follow/unfollow is a single atomic write.
        The CHECK constraint rejects self-edges at the storage level.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from murmur.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A registered account.

    Lifecycle:
        1. Created at registration
        2. Mutated by profile updates (bio, avatar, username)
        3. Never hard-deleted
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    username: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        index=True,
        nullable=False,
        comment="Public handle; unique, case-sensitive as stored",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="Login identifier; unique, case-sensitive as stored",
    )

    password_hash: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="bcrypt hash of the password",
    )

    bio: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default="")
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default="")

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

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"


class Follow(Base):
    """
    One directed follow edge: `follower_id` follows `followee_id`.

    Query Patterns:
        - Followers of X:  WHERE followee_id = :x
        - Following of X:  WHERE follower_id = :x
        - Connected(A, B): WHERE (follower_id = A AND followee_id = B)
                              OR (follower_id = B AND followee_id = A)
    """

    __tablename__ = "follows"

    follower_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    followee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        CheckConstraint("follower_id <> followee_id", name="ck_follows_no_self_follow"),
    )

    def __repr__(self) -> str:
        return f"<Follow({self.follower_id} -> {self.followee_id})>"
