"""
Murmur Backend — Response Presenters
=====================================

What:  Build response models from domain objects, resolving every user id
       they reference with one resolver call.
Who:   Shared by the auth, users and posts routers.
"""

from typing import List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from murmur.models.post import Post
from murmur.schemas.post import PostResponse
from murmur.schemas.user import UserProfile
from murmur.services.identity_service import Profile
from murmur.services.resolver import user_resolver


async def render_posts(db: AsyncSession, posts: Sequence[Post]) -> List[PostResponse]:
    refs = await user_resolver.resolve(db, PostResponse.referenced_user_ids(posts))
    return [PostResponse.build(post, refs) for post in posts]


async def render_post(db: AsyncSession, post: Post) -> PostResponse:
    rendered = await render_posts(db, [post])
    return rendered[0]


async def render_profiles(db: AsyncSession, profiles: Sequence[Profile]) -> List[UserProfile]:
    ids = set()
    for profile in profiles:
        ids.update(profile.follower_ids)
        ids.update(profile.following_ids)
    refs = await user_resolver.resolve(db, ids)
    return [
        UserProfile.build(p.user, p.follower_ids, p.following_ids, refs)
        for p in profiles
    ]


async def render_profile(db: AsyncSession, profile: Profile) -> UserProfile:
    rendered = await render_profiles(db, [profile])
    return rendered[0]
