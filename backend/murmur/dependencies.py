"""
Murmur Backend — Route Dependencies
====================================

What:  FastAPI dependencies shared by the route modules: the authenticated
       user id, and strict parsing of path identifiers.
Why:   Every protected route needs the same "bearer token → user id" step,
       and every path id must be rejected with a 400 before any lookup.
"""

import uuid

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from murmur.exceptions import AuthenticationError, ValidationError
from murmur.security import verify_token

# auto_error=False: a missing header reaches our own AuthenticationError
# (401 with the standard error body) instead of FastAPI's 403 default
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> uuid.UUID:
    """
    Resolve the `Authorization: Bearer <token>` header to a user id.

    Raises:
        AuthenticationError: header missing, not a bearer token, or token invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="No token, authorization denied")
    return verify_token(credentials.credentials)


def parse_id(value: str, field: str = "id") -> uuid.UUID:
    """
    Parse an opaque identifier from the wire.

    Why not type the path parameter as UUID: FastAPI would answer malformed
    ids with its own 422 shape; callers expect a 400 with our error body.
    """
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError, AttributeError):
        label = field.replace("_", " ")
        raise ValidationError(message=f"Invalid {label}", field=field)
