"""
MongoDB implementation of the document store gateway.

All documents share one collection. Index rows produced by the map
functions are written into the document itself under `_index`, so an index
entry is always updated atomically with the document it belongs to. A
compound index on `_index.view/_index.key/_index.sort` serves queries.

Example:
    store = MongoDocumentStore(main_db.db, views=VIEWS, max_time_ms=2000)
    await store.ensure_indexes()
    doc_id, rev = await store.create({"type": "circle", "name": "Climbers"})
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Mapping, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, DuplicateKeyError, ExecutionTimeout

from common.database.document_store import (
    DocumentStore,
    MapFunction,
    Row,
    emit_rows,
    first_revision,
    new_document_id,
    next_revision,
)
from common.utils.exceptions import (
    ConflictException,
    NotFoundException,
    TransportException,
)

logger = logging.getLogger(__name__)

INDEX_FIELD = "_index"


@contextmanager
def _store_errors(operation: str):
    """Translate driver failures into TransportException."""
    try:
        yield
    except ExecutionTimeout as e:
        logger.error(f"Store {operation} exceeded its deadline: {e}")
        raise TransportException("Document store call timed out", code="STORE_TIMEOUT") from e
    except ConnectionFailure as e:
        logger.error(f"Store {operation} failed, store unreachable: {e}")
        raise TransportException() from e


class MongoDocumentStore(DocumentStore):
    """Document store backed by a single Motor collection."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        views: Mapping[str, MapFunction],
        collection_name: str = "documents",
        max_time_ms: Optional[int] = None,
    ):
        """
        Initialize MongoDocumentStore.

        Args:
            db: MongoDB database connection
            views: Index name -> map function
            collection_name: Collection holding every document
            max_time_ms: Server-side time limit applied to every read
        """
        self._collection = db[collection_name]
        self._views = dict(views)
        self._max_time_ms = max_time_ms

    async def ensure_indexes(self) -> None:
        """Create the compound index used by query()."""
        with _store_errors("ensure_indexes"):
            await self._collection.create_index(
                [
                    (f"{INDEX_FIELD}.view", ASCENDING),
                    (f"{INDEX_FIELD}.key", ASCENDING),
                    (f"{INDEX_FIELD}.sort", ASCENDING),
                ],
                name="views",
            )
        logger.info(f"Ensured view index on collection {self._collection.name}")

    def _read_options(self) -> Dict[str, Any]:
        if self._max_time_ms:
            return {"max_time_ms": self._max_time_ms}
        return {}

    def _prepare(self, doc: Dict[str, Any], doc_id: str, rev: str) -> Dict[str, Any]:
        body = {k: v for k, v in doc.items() if k not in ("_id", "_rev", INDEX_FIELD)}
        body["_id"] = doc_id
        body["_rev"] = rev
        body[INDEX_FIELD] = emit_rows(self._views, body)
        return body

    @staticmethod
    def _strip(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if doc is not None:
            doc.pop(INDEX_FIELD, None)
        return doc

    async def _raise_missing_or_conflict(self, doc_id: str, rev: str) -> None:
        current = await self._collection.find_one({"_id": doc_id}, {"_rev": 1})
        if current is None:
            raise NotFoundException(message="Document not found", code="DOCUMENT_NOT_FOUND")
        logger.warning(f"Revision conflict on {doc_id}: have {rev}, store has {current.get('_rev')}")
        raise ConflictException(
            message="Document was modified concurrently, fetch a fresh revision and try again",
            code="REVISION_CONFLICT",
            retryable=True,
        )

    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        with _store_errors("get"):
            doc = await self._collection.find_one(
                {"_id": doc_id}, {INDEX_FIELD: 0}, **self._read_options()
            )
        return doc

    async def create(self, doc: Dict[str, Any]) -> Tuple[str, str]:
        doc_id = doc.get("_id") or new_document_id()
        rev = first_revision()
        body = self._prepare(doc, doc_id, rev)
        with _store_errors("create"):
            try:
                await self._collection.insert_one(body)
            except DuplicateKeyError as e:
                raise ConflictException(
                    message="Document already exists", code="DOCUMENT_EXISTS"
                ) from e
        logger.debug(f"Created {doc.get('type')} document {doc_id}")
        return doc_id, rev

    async def put(self, doc_id: str, rev: str, doc: Dict[str, Any]) -> str:
        new_rev = next_revision(rev)
        body = self._prepare(doc, doc_id, new_rev)
        with _store_errors("put"):
            result = await self._collection.replace_one({"_id": doc_id, "_rev": rev}, body)
            if result.matched_count == 0:
                await self._raise_missing_or_conflict(doc_id, rev)
        logger.debug(f"Updated document {doc_id} to revision {new_rev}")
        return new_rev

    async def delete(self, doc_id: str, rev: str) -> None:
        with _store_errors("delete"):
            result = await self._collection.delete_one({"_id": doc_id, "_rev": rev})
            if result.deleted_count == 0:
                await self._raise_missing_or_conflict(doc_id, rev)
        logger.debug(f"Deleted document {doc_id}")

    async def query(
        self,
        index: str,
        key: Any,
        include_docs: bool = False,
        descending: bool = False,
    ) -> List[Row]:
        if index not in self._views:
            raise ValueError(f"Unknown index: {index}")

        direction = DESCENDING if descending else ASCENDING
        pipeline: List[Dict[str, Any]] = [
            {"$match": {INDEX_FIELD: {"$elemMatch": {"view": index, "key": key}}}},
            {"$unwind": f"${INDEX_FIELD}"},
            {"$match": {f"{INDEX_FIELD}.view": index, f"{INDEX_FIELD}.key": key}},
            {"$sort": {f"{INDEX_FIELD}.sort": direction, "_id": direction}},
        ]
        if not include_docs:
            pipeline.append({"$project": {"_id": 1, INDEX_FIELD: 1}})

        options = {}
        if self._max_time_ms:
            options["maxTimeMS"] = self._max_time_ms

        with _store_errors("query"):
            cursor = self._collection.aggregate(pipeline, **options)
            entries = await cursor.to_list(length=None)

            rows = []
            for entry in entries:
                emitted = entry.pop(INDEX_FIELD)
                rows.append(Row(
                    id=entry["_id"],
                    key=[emitted["key"], emitted["sort"]],
                    value=emitted.get("value"),
                    doc=entry if include_docs else None,
                ))

            if include_docs:
                await self._attach_linked_docs(rows)

        logger.debug(f"Query {index}={key!r} returned {len(rows)} rows")
        return rows

    async def _attach_linked_docs(self, rows: List[Row]) -> None:
        linked_ids = list({row.linked_id for row in rows if row.linked_id != row.id})
        if not linked_ids:
            return
        cursor = self._collection.find(
            {"_id": {"$in": linked_ids}}, {INDEX_FIELD: 0}, **self._read_options()
        )
        linked = {doc["_id"]: doc for doc in await cursor.to_list(length=None)}
        for row in rows:
            if row.linked_id != row.id:
                # Missing targets resolve to None, as in CouchDB
                row.doc = linked.get(row.linked_id)
