"""
Database module - Async MongoDB connection and document store gateway.

Usage:
    from common.database import MongoDB, MongoDocumentStore

    db = MongoDB()
    await db.connect(uri, database_name)
    store = MongoDocumentStore(db.db, views=VIEWS)
    doc = await store.get(doc_id)
"""

from common.database.mongodb import MongoDB
from common.database.document_store import DocumentStore, Row, MapFunction, emit_rows
from common.database.mongo_store import MongoDocumentStore

__all__ = [
    "MongoDB",
    "DocumentStore",
    "MongoDocumentStore",
    "Row",
    "MapFunction",
    "emit_rows",
]
