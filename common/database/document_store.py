"""
Document store gateway contract.

A schemaless collection of JSON-like documents, each carrying an `_id` and a
`_rev`. Writes are atomic per document only; there are no joins and no
multi-document transactions. Updates use optimistic concurrency: the caller
passes the revision it last read and the write fails with a
ConflictException if the stored revision has moved on.

Secondary indexes are named map functions in the CouchDB style. A map
function receives a document and yields `(key, sort, value)` tuples:

    def by_slug(doc):
        if doc.get("type") == "circle":
            yield doc["slug"], None, None

`query(index, key)` returns every row emitted under that index with an equal
key, ordered by `sort`. When a row's value is a dict with an `_id`,
`include_docs=True` resolves that id to the linked document; otherwise the
emitting document is returned.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

MapFunction = Callable[[Dict[str, Any]], Iterable[Tuple[Any, Any, Any]]]


@dataclass
class Row:
    """A single index row."""

    id: str
    key: List[Any]  # [key, sort]
    value: Any = None
    doc: Optional[Dict[str, Any]] = None

    @property
    def sort(self) -> Any:
        return self.key[1]

    @property
    def linked_id(self) -> str:
        """Id of the document this row points to (itself if unlinked)."""
        if isinstance(self.value, dict) and "_id" in self.value:
            return self.value["_id"]
        return self.id


def new_document_id() -> str:
    return uuid.uuid4().hex


def first_revision() -> str:
    return f"1-{uuid.uuid4().hex}"


def next_revision(rev: str) -> str:
    """Bump a `<n>-<hash>` revision string."""
    try:
        generation = int(rev.split("-", 1)[0])
    except (AttributeError, ValueError):
        generation = 0
    return f"{generation + 1}-{uuid.uuid4().hex}"


def emit_rows(views: Mapping[str, MapFunction], doc: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Run every map function over a document and collect its index entries."""
    entries = []
    for name, map_fn in views.items():
        for key, sort, value in map_fn(doc):
            entries.append({"view": name, "key": key, "sort": sort, "value": value})
    return entries


class DocumentStore(ABC):
    """
    Abstract document store.

    Implementations raise:
        NotFoundException: put/delete of a missing document
        ConflictException: revision mismatch (retryable)
        TransportException: store unreachable or deadline exceeded
    """

    @abstractmethod
    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document by id, or None if absent."""
        pass

    @abstractmethod
    async def create(self, doc: Dict[str, Any]) -> Tuple[str, str]:
        """
        Create a document.

        Returns:
            Tuple of (id, revision)
        """
        pass

    @abstractmethod
    async def put(self, doc_id: str, rev: str, doc: Dict[str, Any]) -> str:
        """
        Replace a document if its stored revision equals `rev`.

        Returns:
            The new revision
        """
        pass

    @abstractmethod
    async def delete(self, doc_id: str, rev: str) -> None:
        """Delete a document if its stored revision equals `rev`."""
        pass

    @abstractmethod
    async def query(
        self,
        index: str,
        key: Any,
        include_docs: bool = False,
        descending: bool = False,
    ) -> List[Row]:
        """Query a named index for rows with an equal key."""
        pass
