"""
Murmur Backend — Identity Service
==================================

What:  User accounts: registration, login, profiles, search.
Why:   Owns every rule about who a user is (unique username/email, how
       credentials are checked) so routes only translate HTTP.
How:   Stateless service; each call receives the request's AsyncSession.
Who:   Called by the auth and users route modules.

Store predicates:
    exists_by_username_or_email()  — duplicate check at registration
    find_by_username_contains()    — user search
    Both are plain methods so a different backing store only has to
    reimplement them, not the rules around them.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from murmur.config import settings
from murmur.exceptions import (
    DuplicateIdentityError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from murmur.models.user import User
from murmur.security import hash_password, issue_token, verify_password
from murmur.services.relationship_service import RelationshipService, relationship_service
from murmur.services.store import store_operation

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2
MIN_USERNAME_LENGTH = 3


@dataclass
class Profile:
    """A user plus the ids on both sides of their follow edges."""

    user: User
    follower_ids: List[uuid.UUID] = field(default_factory=list)
    following_ids: List[uuid.UUID] = field(default_factory=list)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class IdentityService:
    """
    Business logic for user identity.

    Responsibilities:
        - register() / authenticate(): account creation and login
        - get_profile() / list_users(): read models with follow edges
        - update_profile(): partial profile edits
        - search(): username substring search
    """

    def __init__(self, relationships: RelationshipService):
        self.relationships = relationships

    # ── Store predicates ──────────────────────────────────────────────────

    async def exists_by_username_or_email(
        self, db: AsyncSession, username: str, email: str
    ) -> bool:
        result = await db.execute(
            select(User.id).where(or_(User.username == username, User.email == email)).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def find_by_username_contains(
        self, db: AsyncSession, term: str, exclude_user_id: uuid.UUID, limit: int
    ) -> List[User]:
        pattern = f"%{_escape_like(term.lower())}%"
        result = await db.execute(
            select(User)
            .where(User.username.ilike(pattern, escape="\\"))
            .where(User.id != exclude_user_id)
            .order_by(User.username)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    # ── Operations ────────────────────────────────────────────────────────

    @store_operation("register user")
    async def register(
        self, db: AsyncSession, username: str, email: str, password: str
    ) -> Tuple[str, User]:
        """
        Create an account and issue its first token.

        Raises:
            DuplicateIdentityError: username or email already registered
                (including a concurrent registration winning the race)
        """
        if await self.exists_by_username_or_email(db, username, email):
            raise DuplicateIdentityError()

        user = User(
            username=username,
            email=email,
            password_hash=await hash_password(password),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Unique index caught a registration that slipped past the check
            await db.rollback()
            raise DuplicateIdentityError()

        logger.info("User registered: %s (%s)", user.username, user.id)
        return issue_token(user.id), user

    @store_operation("authenticate")
    async def authenticate(
        self, db: AsyncSession, email: str, password: str
    ) -> Tuple[str, User]:
        """
        Verify credentials and issue a token.

        Unknown email and wrong password both raise the same
        InvalidCredentialsError; only the server log tells them apart.
        """
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError()

        if not await verify_password(password, user.password_hash):
            logger.info("Login failed: wrong password for user %s", user.id)
            raise InvalidCredentialsError()

        return issue_token(user.id), user

    @store_operation("get profile")
    async def get_profile(self, db: AsyncSession, user_id: uuid.UUID) -> Profile:
        user = await self.get_user(db, user_id)
        return Profile(
            user=user,
            follower_ids=await self.relationships.followers_of(db, user.id),
            following_ids=await self.relationships.following_of(db, user.id),
        )

    @store_operation("list users")
    async def list_users(self, db: AsyncSession, exclude_user_id: uuid.UUID) -> List[Profile]:
        """Every user except the requester, with their follow edges."""
        result = await db.execute(
            select(User).where(User.id != exclude_user_id).order_by(User.username)
        )
        users = list(result.scalars().all())
        followers = await self.relationships.followers_by_user(db, [u.id for u in users])
        following = await self.relationships.following_by_user(db, [u.id for u in users])
        return [
            Profile(
                user=u,
                follower_ids=followers.get(u.id, []),
                following_ids=following.get(u.id, []),
            )
            for u in users
        ]

    @store_operation("update profile")
    async def update_profile(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        bio: Optional[str] = None,
        avatar: Optional[str] = None,
        username: Optional[str] = None,
    ) -> Profile:
        """
        Apply the provided profile fields.

        Empty strings count as "not provided", the same as None: a client
        cannot clear its bio by sending "".

        Raises:
            ValidationError: no field carries a value, or the username is
                shorter than 3 characters once surrounding whitespace is removed
            DuplicateIdentityError: username belongs to another user
            NotFoundError: the user no longer exists
        """
        if not bio and not avatar and not username:
            raise ValidationError(message="No fields to update")

        if username and len(username.strip()) < MIN_USERNAME_LENGTH:
            raise ValidationError(
                message=f"Username must be at least {MIN_USERNAME_LENGTH} characters",
                field="username",
            )

        if username:
            result = await db.execute(select(User.id).where(User.username == username))
            owner_id = result.scalar_one_or_none()
            if owner_id is not None and owner_id != user_id:
                raise DuplicateIdentityError(message="Username already taken", field="username")

        user = await self.get_user(db, user_id)
        if bio:
            user.bio = bio
        if avatar:
            user.avatar = avatar
        if username:
            user.username = username

        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise DuplicateIdentityError(message="Username already taken", field="username")

        logger.info("Profile updated for user %s", user.id)
        return Profile(
            user=user,
            follower_ids=await self.relationships.followers_of(db, user.id),
            following_ids=await self.relationships.following_of(db, user.id),
        )

    @store_operation("search users")
    async def search(
        self, db: AsyncSession, query: str, exclude_user_id: uuid.UUID
    ) -> List[User]:
        """
        Case-insensitive substring search on usernames.

        The query is matched literally: `%` and `_` carry no wildcard meaning.
        """
        term = (query or "").strip()
        if len(term) < MIN_SEARCH_LENGTH:
            raise ValidationError(
                message=f"Search query must be at least {MIN_SEARCH_LENGTH} characters",
                field="query",
            )
        return await self.find_by_username_contains(
            db, term, exclude_user_id, settings.search_result_limit
        )


identity_service = IdentityService(relationship_service)
