"""
Murmur Backend — Posts Route Handlers
======================================

What:  Feed listing, post CRUD, likes and comments.
Why:   The feed is the main read path of the app; likes and comments are
       gated by the follow graph inside PostService, not here.
How:   Every handler returns the post with author, commenters and likers
       rendered through one resolver call (see presenters.py).

Route Inventory:
    GET    /api/posts                                 newest first
    POST   /api/posts                                 create
    PUT    /api/posts/{post_id}                       author only
    DELETE /api/posts/{post_id}                       author only
    POST   /api/posts/{post_id}/like[?state=bool]     connected users
    POST   /api/posts/{post_id}/comment               connected users
    DELETE /api/posts/{post_id}/comments/{comment_id} comment author only
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from murmur.database import get_db_session
from murmur.dependencies import get_current_user_id, parse_id
from murmur.routes.presenters import render_post, render_posts
from murmur.schemas.common import ErrorResponse, MessageResponse
from murmur.schemas.post import CommentRequest, PostContentRequest, PostResponse
from murmur.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

_NOT_FOUND = {"description": "Post not found", "model": ErrorResponse}
_FORBIDDEN = {"description": "Not allowed for this user", "model": ErrorResponse}


@router.get("", response_model=List[PostResponse], summary="All posts, newest first")
async def list_posts(
    _: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> List[PostResponse]:
    posts = await post_service.list_all(db)
    return await render_posts(db, posts)


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a post",
)
async def create_post(
    body: PostContentRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostResponse:
    post = await post_service.create(db, author_id=user_id, content=body.content)
    return await render_post(db, post)


@router.put(
    "/{post_id}",
    response_model=PostResponse,
    responses={403: _FORBIDDEN, 404: _NOT_FOUND},
    summary="Edit a post's content",
)
async def update_post(
    post_id: str,
    body: PostContentRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostResponse:
    post = await post_service.update(
        db, parse_id(post_id, field="post id"), actor_id=user_id, content=body.content
    )
    return await render_post(db, post)


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={403: _FORBIDDEN, 404: _NOT_FOUND},
    summary="Delete a post with its likes and comments",
)
async def delete_post(
    post_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> MessageResponse:
    await post_service.delete(db, parse_id(post_id, field="post id"), actor_id=user_id)
    return MessageResponse(message="Post deleted")


@router.post(
    "/{post_id}/like",
    response_model=PostResponse,
    responses={403: _FORBIDDEN, 404: _NOT_FOUND},
    summary="Like or unlike a post",
    description=(
        "Without `state` the call toggles. With `state=true|false` it sets the "
        "like explicitly and can be retried safely."
    ),
)
async def toggle_like(
    post_id: str,
    state: Optional[bool] = Query(default=None, description="Desired like state"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostResponse:
    post = await post_service.toggle_like(
        db, parse_id(post_id, field="post id"), actor_id=user_id, desired=state
    )
    return await render_post(db, post)


@router.post(
    "/{post_id}/comment",
    response_model=PostResponse,
    responses={403: _FORBIDDEN, 404: _NOT_FOUND},
    summary="Comment on a post",
)
async def add_comment(
    post_id: str,
    body: CommentRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostResponse:
    post = await post_service.add_comment(
        db, parse_id(post_id, field="post id"), actor_id=user_id, content=body.content
    )
    return await render_post(db, post)


@router.delete(
    "/{post_id}/comments/{comment_id}",
    response_model=MessageResponse,
    responses={403: _FORBIDDEN, 404: {"description": "Post or comment not found", "model": ErrorResponse}},
    summary="Delete one of your comments",
)
async def delete_comment(
    post_id: str,
    comment_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> MessageResponse:
    await post_service.delete_comment(
        db,
        parse_id(post_id, field="post id"),
        parse_id(comment_id, field="comment id"),
        actor_id=user_id,
    )
    return MessageResponse(message="Comment deleted")
