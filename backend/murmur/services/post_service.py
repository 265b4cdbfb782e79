"""
Murmur Backend — Post Service (Post Aggregate)
===============================================

What:  Creates, edits and deletes posts; manages their like set and comments.
Why:   Every rule about who may touch a post lives here:
       - only the author edits or deletes the post
       - only a connected user likes or comments (see RelationshipService)
       - only a comment's own author deletes the comment
How:   Stateless service; each call receives the request's AsyncSession.
       Mutations lock the post row (SELECT ... FOR UPDATE) so concurrent
       likes/comments on the same post are applied one after another.

Like/comment gate:
    ┌──────────────┐    ┌─────────────────┐    ┌──────────────────────┐
    │ Load post    │───▶│ Actor & author  │───▶│ is_connected(actor,  │──▶ mutate
    │ (locked)     │    │ exist?          │    │ author)?             │
    └──────────────┘    └─────────────────┘    └──────────────────────┘
         404                  404                      403
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from murmur.exceptions import (
    NotAuthorizedError,
    NotConnectedError,
    NotFoundError,
    ValidationError,
)
from murmur.models.post import Comment, Post, PostLike
from murmur.models.user import User
from murmur.services.relationship_service import RelationshipService, relationship_service
from murmur.services.store import conflict_retrying, store_operation

logger = logging.getLogger(__name__)

MAX_POST_LENGTH = 5000
MAX_COMMENT_LENGTH = 1000


def _require_content(content: Optional[str], field: str, max_length: int, label: str) -> str:
    """Reject missing or whitespace-only text; the stored value is not trimmed."""
    if content is None or not content.strip():
        raise ValidationError(message=f"{label} is required", field=field)
    if len(content) > max_length:
        raise ValidationError(
            message=f"{label} must be at most {max_length} characters",
            field=field,
        )
    return content


class PostService:
    """
    Business logic for the post aggregate.

    Responsibilities:
        - create() / update() / delete(): author-owned content
        - toggle_like(): like set membership behind the connectivity gate
        - add_comment() / delete_comment(): ordered comment list
        - list_all() / list_by_author(): newest first
    """

    def __init__(self, relationships: RelationshipService):
        self.relationships = relationships

    async def _load(self, db: AsyncSession, post_id: uuid.UUID, lock: bool = False) -> Post:
        query = select(Post).where(Post.id == post_id)
        if lock:
            # populate_existing: the locked read must win over anything the
            # session cached before the lock was taken
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    async def _require_user(self, db: AsyncSession, user_id: uuid.UUID, resource: str = "user") -> None:
        result = await db.execute(select(User.id).where(User.id == user_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError(resource=resource, resource_id=str(user_id))

    async def _require_connected(
        self, db: AsyncSession, post: Post, actor_id: uuid.UUID, action: str
    ) -> None:
        await self._require_user(db, actor_id)
        await self._require_user(db, post.author_id, resource="post author")
        if not await self.relationships.is_connected(db, actor_id, post.author_id):
            raise NotConnectedError(
                action=action,
                context={"actor_id": str(actor_id), "author_id": str(post.author_id)},
            )

    @staticmethod
    def _require_author(post: Post, actor_id: uuid.UUID) -> None:
        if post.author_id != actor_id:
            raise NotAuthorizedError(
                context={"post_id": str(post.id), "actor_id": str(actor_id)},
            )

    # ── Reads ─────────────────────────────────────────────────────────────

    @store_operation("get post")
    async def get(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        return await self._load(db, post_id)

    @store_operation("list posts")
    async def list_all(self, db: AsyncSession) -> List[Post]:
        result = await db.execute(select(Post).order_by(Post.created_at.desc()))
        return list(result.scalars().all())

    @store_operation("list posts by author")
    async def list_by_author(self, db: AsyncSession, author_id: uuid.UUID) -> List[Post]:
        result = await db.execute(
            select(Post)
            .where(Post.author_id == author_id)
            .order_by(Post.created_at.desc())
        )
        return list(result.scalars().all())

    # ── Author-owned content ──────────────────────────────────────────────

    @store_operation("create post")
    async def create(self, db: AsyncSession, author_id: uuid.UUID, content: str) -> Post:
        content = _require_content(content, "content", MAX_POST_LENGTH, "Content")
        await self._require_user(db, author_id)

        post = Post(author_id=author_id, content=content, likes=[], comments=[])
        db.add(post)
        await db.flush()
        logger.info("Post %s created by %s", post.id, author_id)
        return post

    @store_operation("update post")
    async def update(
        self, db: AsyncSession, post_id: uuid.UUID, actor_id: uuid.UUID, content: str
    ) -> Post:
        post = await self._load(db, post_id, lock=True)
        self._require_author(post, actor_id)
        post.content = _require_content(content, "content", MAX_POST_LENGTH, "Content")
        await db.flush()
        logger.info("Post %s updated", post.id)
        return post

    @store_operation("delete post")
    async def delete(self, db: AsyncSession, post_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        post = await self._load(db, post_id, lock=True)
        self._require_author(post, actor_id)
        # cascade="all, delete-orphan" removes the likes and comments with it
        await db.delete(post)
        await db.flush()
        logger.info("Post %s deleted by %s", post_id, actor_id)

    # ── Likes ─────────────────────────────────────────────────────────────

    @store_operation("toggle like")
    async def toggle_like(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        actor_id: uuid.UUID,
        desired: Optional[bool] = None,
    ) -> Post:
        """
        Add or remove the actor from the post's like set.

        Args:
            desired: None toggles. True/False sets membership explicitly,
                which makes a retry after an uncertain outcome harmless.

        Raises:
            NotFoundError: post, actor or post author missing
            NotConnectedError: no follow edge between actor and author
        """
        async for attempt in conflict_retrying():
            with attempt:
                try:
                    return await self._apply_like(db, post_id, actor_id, desired)
                except IntegrityError:
                    await db.rollback()
                    raise

    async def _apply_like(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        actor_id: uuid.UUID,
        desired: Optional[bool],
    ) -> Post:
        post = await self._load(db, post_id, lock=True)
        await self._require_connected(db, post, actor_id, action="like")

        existing = post.find_like(actor_id)
        want = (existing is None) if desired is None else desired

        if want and existing is None:
            post.likes.append(PostLike(user_id=actor_id))
            logger.info("User %s liked post %s", actor_id, post.id)
        elif not want and existing is not None:
            post.likes.remove(existing)
            logger.info("User %s unliked post %s", actor_id, post.id)

        await db.flush()
        return post

    # ── Comments ──────────────────────────────────────────────────────────

    @store_operation("add comment")
    async def add_comment(
        self, db: AsyncSession, post_id: uuid.UUID, actor_id: uuid.UUID, content: str
    ) -> Post:
        """Append a comment; existing comments are never reordered."""
        post = await self._load(db, post_id, lock=True)
        await self._require_connected(db, post, actor_id, action="comment on")
        content = _require_content(content, "content", MAX_COMMENT_LENGTH, "Comment content")

        next_position = max((c.position for c in post.comments), default=0) + 1
        post.comments.append(
            Comment(user_id=actor_id, content=content, position=next_position)
        )
        await db.flush()
        logger.info("User %s commented on post %s", actor_id, post.id)
        return post

    @store_operation("delete comment")
    async def delete_comment(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        comment_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        """
        Remove a comment.

        Only the comment's author may do this; the post's author has no
        special right over other people's comments.
        """
        post = await self._load(db, post_id, lock=True)
        comment = post.find_comment(comment_id)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))
        if comment.user_id != actor_id:
            raise NotAuthorizedError(
                message="Not authorized to delete this comment",
                context={"comment_id": str(comment_id), "actor_id": str(actor_id)},
            )
        post.comments.remove(comment)
        await db.flush()
        logger.info("Comment %s deleted from post %s", comment_id, post_id)


post_service = PostService(relationship_service)
