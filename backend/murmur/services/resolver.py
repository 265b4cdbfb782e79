"""
Murmur Backend — User Reference Resolver
=========================================

What:  Turns a set of user ids into lightweight references
       {id, username, avatar}.
Why:   Responses show who wrote a post, who commented, who follows whom,
       but never embed full user records (and never a password hash).
       Resolution is a separate read used by the presentation layer only;
       mutation logic works with plain ids.
How:   One `SELECT id, username, avatar FROM users WHERE id IN (...)` per
       response, regardless of how many posts/comments reference users.
"""

import uuid
from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from murmur.models.user import User
from murmur.schemas.common import UserRef
from murmur.services.store import store_operation


class UserResolver:
    """Resolve user ids to UserRef objects in a single batched query."""

    @store_operation("resolve user references")
    async def resolve(
        self, db: AsyncSession, user_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, UserRef]:
        ids = {uid for uid in user_ids if uid is not None}
        if not ids:
            return {}
        result = await db.execute(
            select(User.id, User.username, User.avatar).where(User.id.in_(list(ids)))
        )
        return {
            row.id: UserRef(id=row.id, username=row.username, avatar=row.avatar or "")
            for row in result.all()
        }


user_resolver = UserResolver()
