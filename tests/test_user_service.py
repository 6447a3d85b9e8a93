"""Unit tests for UserService (accounts, emails, credentials, deletion)."""

import pytest
from datetime import datetime, timezone

from common.utils.exceptions import (
    ConflictException,
    NotFoundException,
    TransportException,
    UnauthorizedException,
    ValidationException,
)
from toople.database import BY_EVENT_CIRCLES


ADMIN = ["post", "invite", "admin"]
PASSWORD = "Str0ng!pass"


# ─────────────────────────────────────────────────────────────────
# create_user and authenticate
# ─────────────────────────────────────────────────────────────────


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_stores_normalized_email_and_hashed_password(self, user_service, store):
        user = await user_service.create_user("Alice", "  Alice@Example.COM ", PASSWORD)

        assert user.emails == ["alice@example.com"]
        assert user.primaryEmail == "alice@example.com"
        stored = store.docs[user.id]
        assert stored["password"] != PASSWORD
        assert stored["password"].startswith("$2")

    @pytest.mark.asyncio
    async def test_email_must_be_unique(self, user_service):
        await user_service.create_user("Alice", "alice@example.com", PASSWORD)

        with pytest.raises(ConflictException) as exc_info:
            await user_service.create_user("Other Alice", "ALICE@example.com", PASSWORD)
        assert exc_info.value.code == "EMAIL_TAKEN"

    @pytest.mark.parametrize(
        "name,email,password,code",
        [
            ("", "a@example.com", PASSWORD, "NAME_REQUIRED"),
            ("Alice", "not-an-email", PASSWORD, "INVALID_EMAIL"),
            ("Alice", "a@example.com", "weak", "WEAK_PASSWORD"),
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_input_rejected_before_store(self, user_service, store, name, email, password, code):
        with pytest.raises(ValidationException) as exc_info:
            await user_service.create_user(name, email, password)
        assert exc_info.value.code == code
        assert store.docs == {}

    @pytest.mark.asyncio
    async def test_authenticate(self, user_service):
        created = await user_service.create_user("Alice", "alice@example.com", PASSWORD)

        user = await user_service.authenticate("ALICE@example.com", PASSWORD)

        assert user.id == created.id

    @pytest.mark.asyncio
    async def test_authenticate_wrong_password(self, user_service):
        await user_service.create_user("Alice", "alice@example.com", PASSWORD)

        with pytest.raises(UnauthorizedException) as exc_info:
            await user_service.authenticate("alice@example.com", "Wr0ng!pass")
        assert exc_info.value.code == "INVALID_CREDENTIALS"

    @pytest.mark.asyncio
    async def test_authenticate_unknown_email(self, user_service):
        with pytest.raises(UnauthorizedException):
            await user_service.authenticate("nobody@example.com", PASSWORD)


# ─────────────────────────────────────────────────────────────────
# Emails and profile
# ─────────────────────────────────────────────────────────────────


class TestEmails:
    @pytest.mark.asyncio
    async def test_remove_primary_promotes_next(self, user_service):
        user = await user_service.create_user("Alice", "alice@example.com", PASSWORD)
        await user_service.add_email(user.id, "alice@work.example.com")

        user = await user_service.remove_email(user.id, "alice@example.com")

        assert user.primaryEmail == "alice@work.example.com"

    @pytest.mark.asyncio
    async def test_last_email_cannot_be_removed(self, user_service):
        user = await user_service.create_user("Alice", "alice@example.com", PASSWORD)

        with pytest.raises(ValidationException) as exc_info:
            await user_service.remove_email(user.id, "alice@example.com")
        assert exc_info.value.code == "LAST_EMAIL"

    @pytest.mark.asyncio
    async def test_add_email_taken_by_someone_else(self, user_service):
        alice = await user_service.create_user("Alice", "alice@example.com", PASSWORD)
        await user_service.create_user("Bob", "bob@example.com", PASSWORD)

        with pytest.raises(ConflictException) as exc_info:
            await user_service.add_email(alice.id, "bob@example.com")
        assert exc_info.value.code == "EMAIL_TAKEN"

    @pytest.mark.asyncio
    async def test_set_primary_email(self, user_service):
        user = await user_service.create_user("Alice", "alice@example.com", PASSWORD)
        await user_service.add_email(user.id, "alice@work.example.com")

        user = await user_service.set_primary_email(user.id, "alice@work.example.com")

        assert user.emails == ["alice@work.example.com", "alice@example.com"]

    @pytest.mark.asyncio
    async def test_change_password(self, user_service):
        user = await user_service.create_user("Alice", "alice@example.com", PASSWORD)

        with pytest.raises(UnauthorizedException):
            await user_service.change_password(user.id, "Wr0ng!pass", "N3w!password")

        await user_service.change_password(user.id, PASSWORD, "N3w!password")
        assert (await user_service.authenticate("alice@example.com", "N3w!password")).id == user.id


# ─────────────────────────────────────────────────────────────────
# delete_user
# ─────────────────────────────────────────────────────────────────


class TestDeleteUser:
    @pytest.mark.asyncio
    async def test_sole_admin_blocks_deletion_without_mutation(
        self, user_service, store, seed_user, seed_circle,
    ):
        alice, bob = seed_user("Alice"), seed_user("Bob")
        # Alice can leave this circle, but not the second one
        shared = seed_circle("Climbers", {alice: ADMIN, bob: ADMIN})
        blocked = seed_circle("Chess", {alice: ADMIN, bob: ["post"]})
        docs_before = {k: dict(v) for k, v in store.docs.items()}

        with pytest.raises(ConflictException) as exc_info:
            await user_service.delete_user(alice)

        assert exc_info.value.code == "SOLE_ADMIN"
        assert store.docs[shared]["_rev"] == docs_before[shared]["_rev"]
        assert store.docs[blocked]["_rev"] == docs_before[blocked]["_rev"]
        assert alice in store.docs

    @pytest.mark.asyncio
    async def test_interrupted_deletion_completes_on_rerun(
        self, user_service, event_service, store, seed_user, seed_circle, monkeypatch,
    ):
        alice = seed_user("Alice")
        solo = seed_circle("Solo", {alice: ADMIN}, slug="solo")
        event = await event_service.create_event(
            alice, datetime(2024, 6, 1, tzinfo=timezone.utc), "Crag", "Climb", 1, [solo],
        )

        query = store.query
        failures = []

        async def fail_once(index, key, **kwargs):
            if index == BY_EVENT_CIRCLES and not failures:
                failures.append(key)
                raise TransportException()
            return await query(index, key, **kwargs)

        monkeypatch.setattr(store, "query", fail_once)

        with pytest.raises(TransportException):
            await user_service.delete_user(alice)
        assert alice in store.docs[solo]["members"]

        await user_service.delete_user(alice)

        assert alice not in store.docs
        assert solo not in store.docs
        assert event.id not in store.docs

    @pytest.mark.asyncio
    async def test_deletion_removes_memberships_and_dismissals(
        self, user_service, event_service, feed_service, store, seed_user, seed_circle,
    ):
        alice, bob = seed_user("Alice"), seed_user("Bob")
        shared = seed_circle("Climbers", {alice: ADMIN, bob: ["post"]})
        solo = seed_circle("Solo", {bob: ADMIN})
        event = await event_service.create_event(
            alice, datetime(2024, 6, 1, tzinfo=timezone.utc), "Crag", "Climb", 2, [shared],
        )
        await event_service.join_event(event.id, bob)
        await feed_service.dismiss(bob, "whatever")

        await user_service.delete_user(bob)

        assert bob not in store.docs
        assert bob not in store.docs[shared]["members"]
        # Last member gone, circle removed
        assert solo not in store.docs
        assert store.of_type("dismissal") == []
        # Participation kept so the event status cannot regress
        participants = await event_service.get_participants(event.id)
        assert [p.id for p in participants] == [bob, alice]
        assert participants[0].name is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, user_service):
        with pytest.raises(NotFoundException):
            await user_service.delete_user("ghost")
