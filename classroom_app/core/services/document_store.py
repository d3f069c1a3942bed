"""Document-store abstraction and the in-memory backend.

Every service in the application reads and writes plain ``dict`` documents
through this interface, so the concrete backend stays interchangeable. Reads
always return copies that carry their identifier under the ``"id"`` key;
mutating a returned document never changes what is stored.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import copy
from dataclasses import dataclass
from threading import Lock
from typing import Any, Iterable
from uuid import uuid4

from classroom_app.core.errors import NotFoundError

Document = dict[str, Any]

_OPERATORS = {
    "==": lambda left, right: left == right,
    "!=": lambda left, right: left != right,
    "<": lambda left, right: left is not None and left < right,
    "<=": lambda left, right: left is not None and left <= right,
    ">": lambda left, right: left is not None and left > right,
    ">=": lambda left, right: left is not None and left >= right,
    "in": lambda left, right: left in right,
}


@dataclass(frozen=True, slots=True)
class Where:
    """Single field predicate used by :meth:`DocumentStore.query`."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported query operator '{self.op}'.")

    def matches(self, document: Document) -> bool:
        return _OPERATORS[self.op](document.get(self.field), self.value)


@dataclass(frozen=True, slots=True)
class BatchUpdate:
    collection: str
    document_id: str
    fields: Document


class DocumentStore(ABC):
    """Logical document operations the application depends on."""

    @abstractmethod
    def get_document(self, collection: str, document_id: str) -> Document | None:
        """Return the document or ``None`` when it does not exist."""

    @abstractmethod
    def query(
        self,
        collection: str,
        predicates: Iterable[Where] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        """Return every document matching all predicates."""

    @abstractmethod
    def set_document(self, collection: str, document_id: str, fields: Document) -> None:
        """Create or replace a document under a caller-chosen identifier."""

    @abstractmethod
    def add_document(self, collection: str, fields: Document) -> str:
        """Insert a document under a generated identifier and return it."""

    @abstractmethod
    def update_document(self, collection: str, document_id: str, fields: Document) -> None:
        """Merge ``fields`` into an existing document."""

    @abstractmethod
    def increment(
        self, collection: str, document_id: str, field: str, amount: float
    ) -> None:
        """Atomically add ``amount`` to a numeric field; a missing field counts as 0."""

    @abstractmethod
    def delete_document(self, collection: str, document_id: str) -> None:
        """Remove a document; deleting a missing document is a no-op."""

    @abstractmethod
    def batch_update(self, updates: Iterable[BatchUpdate]) -> None:
        """Apply several partial updates together."""


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe dictionary backend used by default and in tests."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._collections: dict[str, dict[str, Document]] = {}

    def get_document(self, collection: str, document_id: str) -> Document | None:
        with self._lock:
            stored = self._collections.get(collection, {}).get(document_id)
            return _with_id(document_id, stored) if stored is not None else None

    def query(
        self,
        collection: str,
        predicates: Iterable[Where] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        predicates = list(predicates)
        with self._lock:
            candidates = [
                _with_id(document_id, stored)
                for document_id, stored in self._collections.get(collection, {}).items()
            ]
        matches = [
            document
            for document in candidates
            if all(predicate.matches(document) for predicate in predicates)
        ]
        if order_by is not None:
            matches.sort(key=lambda doc: _sort_key(doc.get(order_by)), reverse=descending)
        return matches

    def set_document(self, collection: str, document_id: str, fields: Document) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[document_id] = _strip_id(fields)

    def add_document(self, collection: str, fields: Document) -> str:
        document_id = uuid4().hex
        self.set_document(collection, document_id, fields)
        return document_id

    def update_document(self, collection: str, document_id: str, fields: Document) -> None:
        with self._lock:
            stored = self._collections.get(collection, {}).get(document_id)
            if stored is None:
                raise NotFoundError(collection, document_id)
            stored.update(_strip_id(fields))

    def increment(
        self, collection: str, document_id: str, field: str, amount: float
    ) -> None:
        with self._lock:
            stored = self._collections.get(collection, {}).get(document_id)
            if stored is None:
                raise NotFoundError(collection, document_id)
            stored[field] = (stored.get(field) or 0) + amount

    def delete_document(self, collection: str, document_id: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(document_id, None)

    def batch_update(self, updates: Iterable[BatchUpdate]) -> None:
        updates = list(updates)
        with self._lock:
            for update in updates:
                if update.document_id not in self._collections.get(update.collection, {}):
                    raise NotFoundError(update.collection, update.document_id)
            for update in updates:
                self._collections[update.collection][update.document_id].update(
                    _strip_id(update.fields)
                )


def _with_id(document_id: str, stored: Document) -> Document:
    document = copy.deepcopy(stored)
    document["id"] = document_id
    return document


def _strip_id(fields: Document) -> Document:
    return {key: copy.deepcopy(value) for key, value in fields.items() if key != "id"}


def _sort_key(value: Any) -> tuple[bool, Any]:
    # Missing values sort first, like an absent field in a document database.
    return (value is not None, value)
