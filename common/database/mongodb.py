"""
MongoDB connection lifecycle (Motor).

Owns the client for the app's lifetime. Documents are read and written by
MongoDocumentStore on top of the database handle exposed here.

Example:
    from common.database import MongoDB, MongoDocumentStore

    mongo = MongoDB()
    await mongo.connect(uri="mongodb://localhost:27017", database_name="toople")
    store = MongoDocumentStore(mongo.db, views=VIEWS)
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


def _redact(uri: str) -> str:
    scheme, sep, rest = uri.partition("://")
    if "@" not in rest:
        return uri
    return f"{scheme}{sep}***@{rest.rsplit('@', 1)[-1]}"


class MongoDB:
    """Holds one Motor client bound to one database."""

    def __init__(self):
        self._client: Optional[AsyncIOMotorClient] = None
        self._database_name: Optional[str] = None

    async def connect(
        self,
        uri: str,
        database_name: str,
        server_selection_timeout_ms: int = 5000,
        app_name: str = "toople",
    ) -> None:
        """
        Open the client and make sure a server answers before returning.

        Raises:
            PyMongoError: If no server can be reached; the client is closed again
        """
        logger.info(f"Connecting to MongoDB at {_redact(uri)} (database {database_name})")

        # tz_aware: stored datetimes come back as UTC-aware values
        client = AsyncIOMotorClient(
            uri,
            tz_aware=True,
            appname=app_name,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
        )
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"MongoDB unreachable: {e}")
            client.close()
            raise

        self._client = client
        self._database_name = database_name
        logger.info("MongoDB connection ready")

    async def disconnect(self) -> None:
        if self._client is None:
            return
        logger.info(f"Closing MongoDB connection ({self._database_name})")
        self._client.close()
        self._client = None
        self._database_name = None

    async def ping(self) -> bool:
        """True when connected and the server answers right now."""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False
        return True

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._client is None:
            raise RuntimeError("Database not connected")
        return self._client[self._database_name]
