"""
Murmur Backend — Users Route Handlers
======================================

What:  User directory, profiles, search, follow/unfollow and profile edits.
How:   Thin handlers; identity rules live in IdentityService, follow edges in
       RelationshipService.

Route order matters: the literal paths (/me/follow, /search/{query},
/profile) are declared before /{user_id} so they are not captured by it.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from murmur.database import get_db_session
from murmur.dependencies import get_current_user_id, parse_id
from murmur.routes.presenters import render_posts, render_profile, render_profiles
from murmur.schemas.common import ErrorResponse
from murmur.schemas.user import (
    FollowListsResponse,
    FollowResponse,
    ProfileUpdateRequest,
    UserDetailResponse,
    UserProfile,
    UserSummary,
)
from murmur.services.identity_service import identity_service
from murmur.services.post_service import post_service
from murmur.services.relationship_service import relationship_service
from murmur.services.resolver import user_resolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("", response_model=List[UserProfile], summary="All other users")
async def list_users(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> List[UserProfile]:
    profiles = await identity_service.list_users(db, exclude_user_id=user_id)
    return await render_profiles(db, profiles)


@router.get(
    "/me/follow",
    response_model=FollowListsResponse,
    summary="Who follows me and whom I follow",
)
async def my_follow_lists(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> FollowListsResponse:
    profile = await identity_service.get_profile(db, user_id)
    refs = await user_resolver.resolve(db, profile.follower_ids + profile.following_ids)
    return FollowListsResponse(
        followers=[refs[uid] for uid in profile.follower_ids if uid in refs],
        following=[refs[uid] for uid in profile.following_ids if uid in refs],
    )


@router.get(
    "/search/{query}",
    response_model=List[UserSummary],
    responses={400: {"description": "Query shorter than 2 characters", "model": ErrorResponse}},
    summary="Case-insensitive username search",
)
async def search_users(
    query: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> List[UserSummary]:
    users = await identity_service.search(db, query, exclude_user_id=user_id)
    return [UserSummary.from_user(u) for u in users]


@router.put(
    "/profile",
    response_model=UserProfile,
    responses={400: {"description": "No fields, or username taken", "model": ErrorResponse}},
    summary="Edit the authenticated user's profile",
)
async def update_profile(
    body: ProfileUpdateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> UserProfile:
    profile = await identity_service.update_profile(
        db, user_id, bio=body.bio, avatar=body.avatar, username=body.username
    )
    return await render_profile(db, profile)


@router.get(
    "/{user_id}",
    response_model=UserDetailResponse,
    responses={
        400: {"description": "Malformed user id", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="A user's profile and posts",
)
async def get_user(
    user_id: str,
    _: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> UserDetailResponse:
    target_id = parse_id(user_id, field="user id")
    profile = await identity_service.get_profile(db, target_id)
    posts = await post_service.list_by_author(db, target_id)
    return UserDetailResponse(
        user=await render_profile(db, profile),
        posts=await render_posts(db, posts),
    )


@router.post(
    "/{user_id}/follow",
    response_model=FollowResponse,
    responses={
        400: {"description": "Self-follow or malformed id", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Follow or unfollow a user",
    description=(
        "Without `state` the call toggles. With `state=true|false` it sets the "
        "edge explicitly and can be retried safely."
    ),
)
async def toggle_follow(
    user_id: str,
    state: Optional[bool] = Query(default=None, description="Desired follow state"),
    actor_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> FollowResponse:
    target_id = parse_id(user_id, field="user id")
    result = await relationship_service.toggle_follow(db, actor_id, target_id, desired=state)
    return FollowResponse(
        message="Followed successfully" if result.now_following else "Unfollowed successfully",
        is_following=result.now_following,
        followers_count=result.target_follower_count,
    )
