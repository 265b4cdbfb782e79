"""
Murmur Backend — User & Auth Schemas
=====================================

What:  Request bodies for register/login/profile updates and the user
       representations returned by the auth and users endpoints.
Why:   Field rules (username length, email format, password length) are
       enforced at the edge; the password hash never appears in any response
       model, so it cannot leak through serialization.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import EmailStr, Field

from murmur.models.user import User
from murmur.schemas.common import CamelModel, UserRef
from murmur.schemas.post import PostResponse


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(CamelModel):
    username: str = Field(min_length=3, max_length=30, description="At least 3 characters")
    email: EmailStr = Field(description="Valid email address")
    password: str = Field(min_length=6, max_length=72, description="At least 6 characters")


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdateRequest(CamelModel):
    """
    Every field is optional; empty strings are treated as absent by the
    service, and at least one non-empty field is required. A non-empty
    username still needs 3 characters after stripping (checked by the service).
    """
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar: Optional[str] = Field(default=None, max_length=500)
    username: Optional[str] = Field(default=None, max_length=30)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(CamelModel):
    """User fields without follow edges (auth responses, search results)."""
    id: uuid.UUID
    username: str
    email: str
    bio: str = ""
    avatar: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            bio=user.bio or "",
            avatar=user.avatar or "",
            created_at=user.created_at,
        )


class UserProfile(UserSummary):
    """A user with both sides of their follow edges resolved to references."""
    followers: List[UserRef] = Field(default_factory=list)
    following: List[UserRef] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        user: User,
        follower_ids: List[uuid.UUID],
        following_ids: List[uuid.UUID],
        refs: Dict[uuid.UUID, UserRef],
    ) -> "UserProfile":
        summary = UserSummary.from_user(user)
        return cls(
            **summary.model_dump(),
            followers=[refs[uid] for uid in follower_ids if uid in refs],
            following=[refs[uid] for uid in following_ids if uid in refs],
        )


class AuthResponse(CamelModel):
    token: str = Field(description="Bearer token for the Authorization header")
    user: UserSummary


class FollowListsResponse(CamelModel):
    followers: List[UserRef]
    following: List[UserRef]


class FollowResponse(CamelModel):
    message: str
    is_following: bool = Field(description="Edge state after the call")
    followers_count: int = Field(description="Target's follower count after the call")


class UserDetailResponse(CamelModel):
    user: UserProfile
    posts: List[PostResponse]
