"""Unit tests for MongoDocumentStore (Motor collection mocked)."""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from pymongo.errors import ConnectionFailure, DuplicateKeyError, ExecutionTimeout

from common.database import MongoDB, MongoDocumentStore
from common.utils.exceptions import ConflictException, NotFoundException, TransportException
from toople.database import BY_CIRCLE_MEMBERS, BY_SLUG, VIEWS


JOINED = datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.fixture
def mongo_store(mock_db):
    return MongoDocumentStore(mock_db, views=VIEWS, max_time_ms=2000)


def cursor_returning(items):
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=items)
    return cursor


# ─────────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────────


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_embeds_index_rows(self, mongo_store, mock_collection):
        doc_id, rev = await mongo_store.create({
            "type": "circle",
            "name": "Climbers",
            "slug": "climbers",
            "members": {"alice": {"rights": ["admin"], "joined": JOINED}},
        })

        assert rev.startswith("1-")
        body = mock_collection.insert_one.call_args[0][0]
        assert body["_id"] == doc_id
        assert body["_rev"] == rev
        views = {entry["view"] for entry in body["_index"]}
        assert views == {"by-slug", "by-user-circles", "by-circle-members"}
        member_row = next(e for e in body["_index"] if e["view"] == BY_CIRCLE_MEMBERS)
        assert member_row == {
            "view": BY_CIRCLE_MEMBERS,
            "key": doc_id,
            "sort": JOINED,
            "value": {"_id": "alice", "rights": ["admin"]},
        }

    @pytest.mark.asyncio
    async def test_create_duplicate_id_conflicts(self, mongo_store, mock_collection):
        mock_collection.insert_one.side_effect = DuplicateKeyError("dup")

        with pytest.raises(ConflictException) as exc_info:
            await mongo_store.create({"_id": "fixed", "type": "user", "emails": []})
        assert exc_info.value.code == "DOCUMENT_EXISTS"

    @pytest.mark.asyncio
    async def test_put_filters_on_revision(self, mongo_store, mock_collection):
        mock_collection.replace_one.return_value = MagicMock(matched_count=1)

        new_rev = await mongo_store.put("c1", "3-abc", {"_id": "c1", "_rev": "3-abc", "type": "user", "emails": []})

        assert new_rev.startswith("4-")
        flt, body = mock_collection.replace_one.call_args[0]
        assert flt == {"_id": "c1", "_rev": "3-abc"}
        assert body["_rev"] == new_rev

    @pytest.mark.asyncio
    async def test_put_stale_revision_is_retryable_conflict(self, mongo_store, mock_collection):
        mock_collection.replace_one.return_value = MagicMock(matched_count=0)
        mock_collection.find_one.return_value = {"_id": "c1", "_rev": "4-newer"}

        with pytest.raises(ConflictException) as exc_info:
            await mongo_store.put("c1", "3-abc", {"type": "user"})

        assert exc_info.value.code == "REVISION_CONFLICT"
        assert exc_info.value.retryable is True
        assert exc_info.value.details == {"retryable": True}

    @pytest.mark.asyncio
    async def test_delete_missing_document(self, mongo_store, mock_collection):
        mock_collection.delete_one.return_value = MagicMock(deleted_count=0)
        mock_collection.find_one.return_value = None

        with pytest.raises(NotFoundException):
            await mongo_store.delete("gone", "1-abc")


# ─────────────────────────────────────────────────────────────────
# Reads
# ─────────────────────────────────────────────────────────────────


class TestReads:
    @pytest.mark.asyncio
    async def test_query_builds_pipeline_and_rows(self, mongo_store, mock_collection):
        mock_collection.aggregate.return_value = cursor_returning([
            {"_id": "c1", "_index": {"view": BY_SLUG, "key": "climbers", "sort": None, "value": None}},
        ])

        rows = await mongo_store.query(BY_SLUG, "climbers")

        assert len(rows) == 1
        assert rows[0].id == "c1"
        assert rows[0].key == ["climbers", None]
        assert rows[0].doc is None
        pipeline = mock_collection.aggregate.call_args[0][0]
        assert pipeline[0] == {"$match": {"_index": {"$elemMatch": {"view": BY_SLUG, "key": "climbers"}}}}
        assert pipeline[3] == {"$sort": {"_index.sort": 1, "_id": 1}}
        assert mock_collection.aggregate.call_args[1] == {"maxTimeMS": 2000}

    @pytest.mark.asyncio
    async def test_query_resolves_linked_docs(self, mongo_store, mock_collection):
        mock_collection.aggregate.return_value = cursor_returning([
            {
                "_id": "c1",
                "type": "circle",
                "_index": {
                    "view": BY_CIRCLE_MEMBERS,
                    "key": "c1",
                    "sort": JOINED,
                    "value": {"_id": "alice", "rights": ["admin"]},
                },
            },
            {
                "_id": "c1",
                "type": "circle",
                "_index": {
                    "view": BY_CIRCLE_MEMBERS,
                    "key": "c1",
                    "sort": JOINED,
                    "value": {"_id": "deleted-user", "rights": ["post"]},
                },
            },
        ])
        mock_collection.find.return_value = cursor_returning([{"_id": "alice", "name": "Alice"}])

        rows = await mongo_store.query(BY_CIRCLE_MEMBERS, "c1", include_docs=True, descending=True)

        assert rows[0].doc == {"_id": "alice", "name": "Alice"}
        # Missing link targets resolve to None
        assert rows[1].doc is None
        pipeline = mock_collection.aggregate.call_args[0][0]
        assert pipeline[3] == {"$sort": {"_index.sort": -1, "_id": -1}}

    @pytest.mark.asyncio
    async def test_unknown_index(self, mongo_store):
        with pytest.raises(ValueError):
            await mongo_store.query("by-nothing", "x")

    @pytest.mark.asyncio
    async def test_get_returns_none_when_absent(self, mongo_store, mock_collection):
        mock_collection.find_one.return_value = None

        assert await mongo_store.get("missing") is None


# ─────────────────────────────────────────────────────────────────
# Transport failures
# ─────────────────────────────────────────────────────────────────


class TestTransportErrors:
    @pytest.mark.asyncio
    async def test_deadline_exceeded(self, mongo_store, mock_collection):
        mock_collection.find_one.side_effect = ExecutionTimeout("operation exceeded time limit")

        with pytest.raises(TransportException) as exc_info:
            await mongo_store.get("c1")
        assert exc_info.value.code == "STORE_TIMEOUT"

    @pytest.mark.asyncio
    async def test_store_unreachable(self, mongo_store, mock_collection):
        mock_collection.aggregate.side_effect = ConnectionFailure("connection refused")

        with pytest.raises(TransportException) as exc_info:
            await mongo_store.query(BY_SLUG, "climbers")
        assert exc_info.value.code == "STORE_UNAVAILABLE"
        assert exc_info.value.status_code == 503


# ─────────────────────────────────────────────────────────────────
# Connection lifecycle
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def motor_client():
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    with patch("common.database.mongodb.AsyncIOMotorClient", return_value=client) as factory:
        yield factory, client


class TestConnection:
    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self, motor_client):
        factory, client = motor_client
        mongo = MongoDB()

        await mongo.connect(uri="mongodb://user:pw@db:27017", database_name="toople")

        assert factory.call_args.kwargs["tz_aware"] is True
        assert mongo.is_connected
        assert await mongo.ping() is True
        mongo.db
        client.__getitem__.assert_called_with("toople")

        await mongo.disconnect()

        client.close.assert_called_once()
        assert not mongo.is_connected
        assert await mongo.ping() is False

    @pytest.mark.asyncio
    async def test_unreachable_server_closes_client(self, motor_client):
        _, client = motor_client
        client.admin.command = AsyncMock(side_effect=ConnectionFailure("no server"))
        mongo = MongoDB()

        with pytest.raises(ConnectionFailure):
            await mongo.connect(uri="mongodb://db:27017", database_name="toople")

        client.close.assert_called_once()
        assert not mongo.is_connected
        with pytest.raises(RuntimeError):
            mongo.db
