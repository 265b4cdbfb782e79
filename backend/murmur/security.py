"""
Murmur Backend — Password Hashing & Access Tokens
==================================================

What:  The four credential capabilities the services rely on:
       hash_password, verify_password, issue_token, verify_token.
Why:   Keeps bcrypt and JWT details out of business logic; services only see
       "a hash" and "a token".
How:   bcrypt for hashing (work factor from settings), PyJWT for HS256 tokens
       carrying `sub` (user id), `iat` and `exp`.

Why bcrypt runs in the threadpool:
    A bcrypt round at cost 12 takes ~250ms of pure CPU. Running it directly in
    an async handler would stall every other request on the event loop.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from starlette.concurrency import run_in_threadpool

from murmur.config import settings
from murmur.exceptions import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def _encode_password(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValidationError(
            message=f"Password must be at most {BCRYPT_MAX_BYTES} bytes",
            field="password",
        )
    return encoded


async def hash_password(password: str) -> str:
    encoded = _encode_password(password)
    hashed = await run_in_threadpool(
        bcrypt.hashpw, encoded, bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    )
    return hashed.decode("utf-8")


async def verify_password(password: str, password_hash: str) -> bool:
    """Returns False (never raises) for a wrong, oversized or malformed input."""
    try:
        encoded = _encode_password(password)
    except ValidationError:
        return False
    try:
        return await run_in_threadpool(
            bcrypt.checkpw, encoded, password_hash.encode("utf-8")
        )
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def issue_token(user_id: uuid.UUID) -> str:
    """
    Create a signed access token for a user.

    Claims:
        sub: user id (string, as required by RFC 7519)
        iat: issued-at
        exp: issued-at + jwt_expire_minutes
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> uuid.UUID:
    """
    Resolve a token to the user id it was issued for.

    Raises:
        AuthenticationError: expired, tampered, malformed, or missing `sub`
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired")
    except jwt.PyJWTError as e:
        logger.debug("Rejected token: %s", str(e))
        raise AuthenticationError(message="Token is not valid")

    try:
        return uuid.UUID(payload["sub"])
    except (TypeError, ValueError):
        raise AuthenticationError(message="Token is not valid")
