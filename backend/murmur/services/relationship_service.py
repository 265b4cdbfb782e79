"""
Murmur Backend — Relationship Service
======================================

What:  The follow graph: toggling follow edges and answering connectivity.
Why:   The connectivity predicate is the single gate PostService uses before
       any like or comment, so its definition lives in exactly one place.

Connectivity:
    is_connected(A, B) is true iff
        A == B, or A follows B, or B follows A.
    Either direction counts: a post author's followers AND the people the
    author follows may both interact with the author's posts.

Toggle flow (toggle_follow):
    ┌────────────┐   ┌──────────────┐   ┌───────────────┐   ┌─────────────┐
    │ Validate   │──▶│ Lock both    │──▶│ Read edge row │──▶│ Insert or   │
    │ target/self│   │ user rows    │   │ (current)     │   │ delete edge │
    └────────────┘   └──────────────┘   └───────────────┘   └─────────────┘

    The edge is one row, so "actor.following" and "target.followers" change
    together in a single write. Row locks serialize concurrent toggles on
    the same pair (PostgreSQL); a racing duplicate insert is retried.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from murmur.exceptions import NotFoundError, SelfFollowError
from murmur.models.user import Follow, User
from murmur.services.store import conflict_retrying, store_operation

logger = logging.getLogger(__name__)


@dataclass
class FollowResult:
    now_following: bool
    target_follower_count: int
    changed: bool = True


class RelationshipService:
    """
    Business logic for follow edges.

    Responsibilities:
        - toggle_follow(): follow/unfollow (or set an explicit state)
        - is_connected(): the like/comment gate
        - followers_of() / following_of() / follower_count(): edge reads
    """

    @store_operation("toggle follow")
    async def toggle_follow(
        self,
        db: AsyncSession,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        desired: Optional[bool] = None,
    ) -> FollowResult:
        """
        Follow or unfollow `target_id` on behalf of `actor_id`.

        Args:
            desired: None toggles the current state. True/False sets the edge
                to that state; such a call is idempotent and safe to retry
                after an uncertain outcome.

        Raises:
            NotFoundError: target (or actor) does not exist
            SelfFollowError: actor and target are the same user
        """
        async for attempt in conflict_retrying():
            with attempt:
                try:
                    return await self._apply_follow(db, actor_id, target_id, desired)
                except IntegrityError:
                    await db.rollback()
                    raise

    async def _apply_follow(
        self,
        db: AsyncSession,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        desired: Optional[bool],
    ) -> FollowResult:
        # Lock in a stable order so two users following each other at the
        # same moment cannot deadlock
        locked = await db.execute(
            select(User.id)
            .where(User.id.in_([actor_id, target_id]))
            .order_by(User.id)
            .with_for_update()
        )
        found = set(locked.scalars().all())

        if target_id not in found:
            raise NotFoundError(resource="user", resource_id=str(target_id))
        if actor_id == target_id:
            raise SelfFollowError(context={"user_id": str(actor_id)})
        if actor_id not in found:
            raise NotFoundError(resource="user", resource_id=str(actor_id))

        currently_following = await self.follows(db, actor_id, target_id)
        want = (not currently_following) if desired is None else desired
        changed = want != currently_following

        if changed and want:
            db.add(Follow(follower_id=actor_id, followee_id=target_id))
            await db.flush()
            logger.info("User %s followed %s", actor_id, target_id)
        elif changed:
            await db.execute(
                delete(Follow).where(
                    Follow.follower_id == actor_id,
                    Follow.followee_id == target_id,
                )
            )
            logger.info("User %s unfollowed %s", actor_id, target_id)

        return FollowResult(
            now_following=want,
            target_follower_count=await self.follower_count(db, target_id),
            changed=changed,
        )

    async def follows(self, db: AsyncSession, follower_id: uuid.UUID, followee_id: uuid.UUID) -> bool:
        result = await db.execute(
            select(Follow.follower_id).where(
                Follow.follower_id == follower_id,
                Follow.followee_id == followee_id,
            )
        )
        return result.first() is not None

    @store_operation("check connectivity")
    async def is_connected(self, db: AsyncSession, user_a: uuid.UUID, user_b: uuid.UUID) -> bool:
        """True iff the users are the same, or a follow edge joins them in either direction."""
        if user_a == user_b:
            return True
        result = await db.execute(
            select(Follow.follower_id)
            .where(
                or_(
                    and_(Follow.follower_id == user_a, Follow.followee_id == user_b),
                    and_(Follow.follower_id == user_b, Follow.followee_id == user_a),
                )
            )
            .limit(1)
        )
        return result.first() is not None

    async def follower_count(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count()).select_from(Follow).where(Follow.followee_id == user_id)
        )
        return result.scalar() or 0

    async def followers_of(self, db: AsyncSession, user_id: uuid.UUID) -> List[uuid.UUID]:
        result = await db.execute(
            select(Follow.follower_id)
            .where(Follow.followee_id == user_id)
            .order_by(Follow.created_at)
        )
        return list(result.scalars().all())

    async def following_of(self, db: AsyncSession, user_id: uuid.UUID) -> List[uuid.UUID]:
        result = await db.execute(
            select(Follow.followee_id)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at)
        )
        return list(result.scalars().all())

    async def followers_by_user(
        self, db: AsyncSession, user_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, List[uuid.UUID]]:
        """Batch form of followers_of() for listings."""
        ids = list(user_ids)
        mapping: Dict[uuid.UUID, List[uuid.UUID]] = defaultdict(list)
        if not ids:
            return mapping
        result = await db.execute(
            select(Follow.followee_id, Follow.follower_id)
            .where(Follow.followee_id.in_(ids))
            .order_by(Follow.created_at)
        )
        for followee_id, follower_id in result.all():
            mapping[followee_id].append(follower_id)
        return mapping

    async def following_by_user(
        self, db: AsyncSession, user_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, List[uuid.UUID]]:
        """Batch form of following_of() for listings."""
        ids = list(user_ids)
        mapping: Dict[uuid.UUID, List[uuid.UUID]] = defaultdict(list)
        if not ids:
            return mapping
        result = await db.execute(
            select(Follow.follower_id, Follow.followee_id)
            .where(Follow.follower_id.in_(ids))
            .order_by(Follow.created_at)
        )
        for follower_id, followee_id in result.all():
            mapping[follower_id].append(followee_id)
        return mapping


relationship_service = RelationshipService()
