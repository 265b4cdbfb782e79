"""
Murmur Backend — Post Aggregate SQLAlchemy Models
==================================================

What:  ORM models for `posts`, `post_likes` and `comments`.
Why:   A post together with its likes and comments is one aggregate: it is
       only ever mutated through PostService, which loads the whole thing,
       locks the post row, and writes back.

Table Design Rationale:
    - post_likes has a composite primary key (post_id, user_id): a user can
      appear in a post's like set at most once, enforced by the database
    - comments carry a per-post `position`; the aggregate orders by it, so
      insertion order survives identical timestamps
    - likes and comments are loaded eagerly (selectin) because async sessions
      cannot lazy-load on attribute access
"""

import uuid
from datetime import datetime
from typing import List

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from murmur.database import Base
from murmur.models.user import utcnow


class Post(Base):
    """
    A user's post.

    Invariants:
        - author_id and created_at never change after creation
        - likes holds each user id at most once
        - comments are ordered by position (append-only order)
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

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

    likes: Mapped[List["PostLike"]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PostLike.created_at",
    )
    comments: Mapped[List["Comment"]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Comment.position",
    )

    __table_args__ = (
        Index("idx_posts_created_at", text("created_at DESC")),
    )

    @property
    def like_user_ids(self) -> List[uuid.UUID]:
        return [like.user_id for like in self.likes]

    def find_like(self, user_id: uuid.UUID):
        for like in self.likes:
            if like.user_id == user_id:
                return like
        return None

    def find_comment(self, comment_id: uuid.UUID):
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None

    def __repr__(self) -> str:
        return (
            f"<Post(id={self.id}, author_id={self.author_id}, "
            f"likes={len(self.likes)}, comments={len(self.comments)})>"
        )


class PostLike(Base):
    """Membership of one user in one post's like set."""

    __tablename__ = "post_likes"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    post: Mapped[Post] = relationship(back_populates="likes")


class Comment(Base):
    """A comment on a post. Only its own author may delete it."""

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Monotonic per post; assigned as max(position) + 1 under the post row lock
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    post: Mapped[Post] = relationship(back_populates="comments")

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, post_id={self.post_id}, position={self.position})>"
