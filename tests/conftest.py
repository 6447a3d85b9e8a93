"""Shared test fixtures for Toople backend tests."""

import asyncio
import copy
import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

from common.auth import CredentialHasher
from common.database import DocumentStore, Row, emit_rows
from common.database.document_store import first_revision, new_document_id, next_revision
from common.utils.exceptions import ConflictException, NotFoundException
from toople.database import VIEWS
from toople.services.circles.circle_service import CircleService
from toople.services.events.event_service import EventService
from toople.services.identity.user_service import UserService
from toople.services.notifications.feed_service import FeedService


# ─────────────────────────────────────────────────────────────────
# In-memory document store
# ─────────────────────────────────────────────────────────────────


def _sort_key(entry: Tuple[Dict[str, Any], str]):
    emitted, doc_id = entry
    sort = emitted["sort"]
    return (0, "") if sort is None else (1, sort), doc_id


class InMemoryDocumentStore(DocumentStore):
    """
    DocumentStore kept in a dict, with the same revision and index rules
    as MongoDocumentStore. Every call yields to the event loop once so
    concurrent callers interleave.
    """

    def __init__(self, views=VIEWS):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self._views = dict(views)

    def seed(self, doc: Dict[str, Any]) -> str:
        """Insert a document synchronously; returns its id."""
        doc_id = doc.get("_id") or new_document_id()
        body = copy.deepcopy(doc)
        body["_id"] = doc_id
        body["_rev"] = first_revision()
        self.docs[doc_id] = body
        return doc_id

    def of_type(self, doc_type: str) -> List[Dict[str, Any]]:
        return [doc for doc in self.docs.values() if doc.get("type") == doc_type]

    def _check_revision(self, doc_id: str, rev: str) -> None:
        current = self.docs.get(doc_id)
        if current is None:
            raise NotFoundException(message="Document not found", code="DOCUMENT_NOT_FOUND")
        if current["_rev"] != rev:
            raise ConflictException(
                message="Document was modified concurrently",
                code="REVISION_CONFLICT",
                retryable=True,
            )

    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        await asyncio.sleep(0)
        doc = self.docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def create(self, doc: Dict[str, Any]) -> Tuple[str, str]:
        await asyncio.sleep(0)
        doc_id = doc.get("_id") or new_document_id()
        if doc_id in self.docs:
            raise ConflictException(message="Document already exists", code="DOCUMENT_EXISTS")
        rev = first_revision()
        body = {k: copy.deepcopy(v) for k, v in doc.items() if k != "_rev"}
        body["_id"] = doc_id
        body["_rev"] = rev
        self.docs[doc_id] = body
        return doc_id, rev

    async def put(self, doc_id: str, rev: str, doc: Dict[str, Any]) -> str:
        await asyncio.sleep(0)
        self._check_revision(doc_id, rev)
        new_rev = next_revision(rev)
        body = copy.deepcopy(doc)
        body["_id"] = doc_id
        body["_rev"] = new_rev
        self.docs[doc_id] = body
        return new_rev

    async def delete(self, doc_id: str, rev: str) -> None:
        await asyncio.sleep(0)
        self._check_revision(doc_id, rev)
        del self.docs[doc_id]

    async def query(
        self,
        index: str,
        key: Any,
        include_docs: bool = False,
        descending: bool = False,
    ) -> List[Row]:
        await asyncio.sleep(0)
        if index not in self._views:
            raise ValueError(f"Unknown index: {index}")

        matches = []
        for doc_id, doc in self.docs.items():
            for emitted in emit_rows({index: self._views[index]}, doc):
                if emitted["key"] == key:
                    matches.append((emitted, doc_id))
        matches.sort(key=_sort_key, reverse=descending)

        rows = []
        for emitted, doc_id in matches:
            row = Row(id=doc_id, key=[emitted["key"], emitted["sort"]], value=copy.deepcopy(emitted["value"]))
            if include_docs:
                target = self.docs.get(row.linked_id)
                row.doc = copy.deepcopy(target) if target is not None else None
            rows.append(row)
        return rows


class SlowDocumentStore(InMemoryDocumentStore):
    """Store whose queries never answer in time."""

    async def query(self, *args, **kwargs):
        await asyncio.sleep(1)
        return await super().query(*args, **kwargs)


class FakeClock:
    """Clock that moves forward one second per reading."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def slow_store():
    return SlowDocumentStore()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def hasher():
    # Minimum bcrypt cost keeps the suite fast
    return CredentialHasher(rounds=4)


@pytest.fixture
def event_service(store, clock):
    return EventService(store, min_threshold=1, clock=clock)


@pytest.fixture
def circle_service(store, event_service, clock):
    return CircleService(store, event_service, clock=clock)


@pytest.fixture
def user_service(store, circle_service, hasher):
    return UserService(store, circle_service, hasher=hasher)


@pytest.fixture
def feed_service(store, event_service, clock):
    return FeedService(store, event_service, timeout_seconds=5.0, clock=clock)


@pytest.fixture
def seed_user(store):
    """Factory inserting a user document directly."""
    def _seed(name: str, email: Optional[str] = None) -> str:
        return store.seed({
            "type": "user",
            "name": name,
            "emails": [email or f"{name.lower()}@example.com"],
            "password": "",
        })
    return _seed


@pytest.fixture
def seed_circle(store, clock):
    """Factory inserting a circle document; members maps user id -> rights."""
    def _seed(name: str, members: Dict[str, List[str]], slug: Optional[str] = None) -> str:
        return store.seed({
            "type": "circle",
            "name": name,
            "slug": slug or name.lower(),
            "members": {
                user_id: {"rights": list(rights), "joined": clock()}
                for user_id, rights in members.items()
            },
        })
    return _seed


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    # Motor's find() and aggregate() return cursors synchronously (not
    # coroutines), so use MagicMock for them.
    collection.find = MagicMock()
    collection.aggregate = MagicMock()
    collection.name = "documents"
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db
