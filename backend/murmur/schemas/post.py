"""
Murmur Backend — Post Schemas
==============================

What:  Request bodies for posts/comments and the post representation with
       author, likes and commenters resolved to user references.
Why:   Responses embed `{id, username, avatar}` for every referenced user;
       `PostResponse.build()` takes the resolver's mapping so building a
       response never triggers extra queries per post.
"""

import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from pydantic import Field

from murmur.models.post import Post
from murmur.schemas.common import CamelModel, UserRef


class PostContentRequest(CamelModel):
    """Body for POST /api/posts and PUT /api/posts/{id}."""
    content: str = Field(min_length=1, max_length=5000, description="Post text")


class CommentRequest(CamelModel):
    content: str = Field(min_length=1, max_length=1000, description="Comment text")


def _missing_ref(user_id: uuid.UUID) -> UserRef:
    # A referenced user that no longer resolves still renders with its id
    return UserRef(id=user_id, username="", avatar="")


class CommentResponse(CamelModel):
    id: uuid.UUID
    user: UserRef
    content: str
    created_at: datetime


class PostResponse(CamelModel):
    id: uuid.UUID
    author: UserRef
    content: str
    likes: List[uuid.UUID] = Field(description="Ids of users who liked the post")
    likes_count: int
    comments: List[CommentResponse]
    created_at: datetime
    updated_at: Optional[datetime] = None

    @staticmethod
    def referenced_user_ids(posts: Iterable[Post]) -> Set[uuid.UUID]:
        """Ids the resolver must look up to render these posts."""
        ids: Set[uuid.UUID] = set()
        for post in posts:
            ids.add(post.author_id)
            ids.update(comment.user_id for comment in post.comments)
        return ids

    @classmethod
    def build(cls, post: Post, refs: Dict[uuid.UUID, UserRef]) -> "PostResponse":
        return cls(
            id=post.id,
            author=refs.get(post.author_id) or _missing_ref(post.author_id),
            content=post.content,
            likes=post.like_user_ids,
            likes_count=len(post.likes),
            comments=[
                CommentResponse(
                    id=comment.id,
                    user=refs.get(comment.user_id) or _missing_ref(comment.user_id),
                    content=comment.content,
                    created_at=comment.created_at,
                )
                for comment in post.comments
            ],
            created_at=post.created_at,
            updated_at=post.updated_at,
        )
