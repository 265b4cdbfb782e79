"""
Murmur Backend — Security Helper Tests
=======================================

What:  Password hashing and token issue/verify.
Why:   Every protected route trusts verify_token(); a token that survives
       tampering or expiry would be an authentication bypass.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from murmur.config import settings
from murmur.exceptions import AuthenticationError, ValidationError
from murmur.security import hash_password, issue_token, verify_password, verify_token


class TestPasswords:

    @pytest.mark.asyncio
    async def test_hash_then_verify(self):
        hashed = await hash_password("correct horse")

        assert hashed != "correct horse"
        assert await verify_password("correct horse", hashed) is True
        assert await verify_password("wrong horse", hashed) is False

    @pytest.mark.asyncio
    async def test_same_password_gets_different_salts(self):
        assert await hash_password("secret1") != await hash_password("secret1")

    @pytest.mark.asyncio
    async def test_password_over_72_bytes_rejected(self):
        with pytest.raises(ValidationError):
            await hash_password("é" * 40)  # 80 bytes in UTF-8

    @pytest.mark.asyncio
    async def test_malformed_stored_hash_fails_closed(self):
        assert await verify_password("secret1", "not-a-bcrypt-hash") is False


class TestTokens:

    def test_round_trip(self):
        user_id = uuid.uuid4()

        assert verify_token(issue_token(user_id)) == user_id

    def test_tampered_token_rejected(self):
        token = issue_token(uuid.uuid4())
        header, payload, signature = token.split(".")
        forged = ".".join([header, payload, signature[::-1]])

        with pytest.raises(AuthenticationError, match="not valid"):
            verify_token(forged)

    def test_token_signed_with_other_secret_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "some-other-secret-that-is-long-enough-0000",
            algorithm="HS256",
        )

        with pytest.raises(AuthenticationError):
            verify_token(token)

    def test_expired_token_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "exp": datetime.now(timezone.utc) - timedelta(seconds=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(AuthenticationError, match="expired"):
            verify_token(token)

    def test_token_without_subject_rejected(self):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(AuthenticationError):
            verify_token(token)

    def test_non_uuid_subject_rejected(self):
        token = jwt.encode(
            {"sub": "admin", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(AuthenticationError):
            verify_token(token)
