"""
Murmur Backend — Identity Service Tests
========================================

What:  Registration, login, profile reads/updates and username search.
How:   Real in-memory SQLite (see conftest.py); bcrypt runs at 4 rounds.

Test Strategy:
    ✅ Duplicate username OR email is rejected
    ✅ Only the hash is stored, never the plaintext
    ✅ Wrong email and wrong password fail the same way
    ✅ Empty profile fields count as "not provided"
    ✅ Search is case-insensitive, literal, capped and excludes the caller
"""

import uuid

import pytest

from murmur.exceptions import (
    DuplicateIdentityError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from murmur.security import verify_token
from murmur.services.identity_service import IdentityService
from murmur.services.relationship_service import RelationshipService


class TestRegistration:

    def setup_method(self):
        self.service = IdentityService(RelationshipService())

    @pytest.mark.asyncio
    async def test_register_stores_hash_and_issues_token(self, db_session):
        token, user = await self.service.register(
            db_session, username="alice", email="alice@example.com", password="secret1"
        )

        assert user.id is not None
        assert user.password_hash != "secret1"
        assert user.password_hash.startswith("$2")
        assert verify_token(token) == user.id

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, db_session, make_user):
        await make_user("alice", email="first@example.com")

        with pytest.raises(DuplicateIdentityError):
            await self.service.register(
                db_session, username="alice", email="other@example.com", password="secret1"
            )

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, db_session, make_user):
        await make_user("alice", email="taken@example.com")

        with pytest.raises(DuplicateIdentityError):
            await self.service.register(
                db_session, username="bob", email="taken@example.com", password="secret1"
            )

    @pytest.mark.asyncio
    async def test_uniqueness_is_case_sensitive_as_stored(self, db_session, make_user):
        await make_user("alice")

        _, user = await self.service.register(
            db_session, username="Alice", email="Alice@example.com", password="secret1"
        )
        assert user.username == "Alice"


class TestAuthentication:

    def setup_method(self):
        self.service = IdentityService(RelationshipService())

    @pytest.mark.asyncio
    async def test_login_with_correct_password(self, db_session):
        _, registered = await self.service.register(
            db_session, username="alice", email="alice@example.com", password="secret1"
        )

        token, user = await self.service.authenticate(db_session, "alice@example.com", "secret1")

        assert user.id == registered.id
        assert verify_token(token) == registered.id

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, db_session):
        await self.service.register(
            db_session, username="alice", email="alice@example.com", password="secret1"
        )

        with pytest.raises(InvalidCredentialsError) as wrong_password:
            await self.service.authenticate(db_session, "alice@example.com", "nope123")
        with pytest.raises(InvalidCredentialsError) as unknown_email:
            await self.service.authenticate(db_session, "ghost@example.com", "secret1")

        assert wrong_password.value.message == unknown_email.value.message == "Invalid credentials"


class TestProfiles:

    def setup_method(self):
        self.service = IdentityService(RelationshipService())

    @pytest.mark.asyncio
    async def test_get_profile_includes_both_edge_sides(self, db_session, make_user, follow):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        await follow(bob, alice)
        await follow(alice, carol)

        profile = await self.service.get_profile(db_session, alice.id)

        assert profile.user.id == alice.id
        assert profile.follower_ids == [bob.id]
        assert profile.following_ids == [carol.id]

    @pytest.mark.asyncio
    async def test_get_profile_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_profile(db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_list_users_excludes_requester(self, db_session, make_user, follow):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        await follow(alice, bob)

        profiles = await self.service.list_users(db_session, exclude_user_id=alice.id)

        assert [p.user.username for p in profiles] == ["bob", "carol"]
        assert profiles[0].follower_ids == [alice.id]
        assert profiles[1].follower_ids == []

    @pytest.mark.asyncio
    async def test_update_requires_some_field(self, db_session, make_user):
        alice = await make_user("alice")

        with pytest.raises(ValidationError, match="No fields"):
            await self.service.update_profile(db_session, alice.id)
        with pytest.raises(ValidationError, match="No fields"):
            await self.service.update_profile(db_session, alice.id, bio="", avatar="", username="")

    @pytest.mark.asyncio
    async def test_update_skips_empty_strings(self, db_session, make_user):
        alice = await make_user("alice", bio="old bio")

        profile = await self.service.update_profile(
            db_session, alice.id, bio="", avatar="https://img.example/a.png"
        )

        assert profile.user.bio == "old bio"
        assert profile.user.avatar == "https://img.example/a.png"

    @pytest.mark.asyncio
    async def test_update_username_taken_by_someone_else(self, db_session, make_user):
        alice = await make_user("alice")
        await make_user("bob")

        with pytest.raises(DuplicateIdentityError, match="Username already taken"):
            await self.service.update_profile(db_session, alice.id, username="bob")

    @pytest.mark.asyncio
    async def test_update_to_own_username_is_allowed(self, db_session, make_user):
        alice = await make_user("alice")

        profile = await self.service.update_profile(
            db_session, alice.id, username="alice", bio="hi"
        )
        assert profile.user.username == "alice"
        assert profile.user.bio == "hi"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username", ["ab", "   ", "  ab  "])
    async def test_update_username_too_short(self, db_session, make_user, username):
        alice = await make_user("alice")

        with pytest.raises(ValidationError, match="at least 3 characters") as exc_info:
            await self.service.update_profile(db_session, alice.id, username=username)

        assert exc_info.value.field == "username"
        assert alice.username == "alice"


class TestSearch:

    def setup_method(self):
        self.service = IdentityService(RelationshipService())

    @pytest.mark.asyncio
    async def test_query_too_short(self, db_session, make_user):
        alice = await make_user("alice")

        with pytest.raises(ValidationError):
            await self.service.search(db_session, " a ", exclude_user_id=alice.id)

    @pytest.mark.asyncio
    async def test_case_insensitive_substring_excluding_self(self, db_session, make_user):
        alice = await make_user("alice")
        await make_user("MALICE")
        await make_user("bob")

        results = await self.service.search(db_session, "LIC", exclude_user_id=alice.id)

        assert [u.username for u in results] == ["MALICE"]

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, db_session, make_user):
        me = await make_user("me_myself")
        await make_user("a_b")
        await make_user("axb")

        results = await self.service.search(db_session, "a_b", exclude_user_id=me.id)

        assert [u.username for u in results] == ["a_b"]

    @pytest.mark.asyncio
    async def test_results_capped_at_ten(self, db_session, make_user):
        me = await make_user("searcher")
        for i in range(12):
            await make_user(f"match{i:02d}")

        results = await self.service.search(db_session, "match", exclude_user_id=me.id)

        assert len(results) == 10
