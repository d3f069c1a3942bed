"""MongoDB backend for the document-store interface."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Iterable, Iterator
from uuid import uuid4

from pymongo import ASCENDING, DESCENDING, MongoClient, UpdateOne
from pymongo.errors import PyMongoError

from classroom_app.core.errors import CollaboratorFailure, NotFoundError
from classroom_app.core.services.document_store import (
    BatchUpdate,
    Document,
    DocumentStore,
    Where,
)

logger = logging.getLogger(__name__)

_MONGO_OPERATORS = {
    "!=": "$ne",
    "<": "$lt",
    "<=": "$lte",
    ">": "$gt",
    ">=": "$gte",
    "in": "$in",
}

_INDEXES = {
    "quizzes": ["class_id"],
    "quiz_results": ["quiz_id", "user_id"],
    "assignments": ["class_id"],
    "submissions": ["class_id", "assignment_id"],
    "attendances": ["class_id", "student_id"],
    "class_enrollments": ["class_id"],
}


def build_filter(predicates: Iterable[Where]) -> dict[str, Any]:
    """Translate predicates into a MongoDB filter document."""
    mongo_filter: dict[str, dict[str, Any]] = {}
    for predicate in predicates:
        field = "_id" if predicate.field == "id" else predicate.field
        value = list(predicate.value) if predicate.op == "in" else predicate.value
        if predicate.op == "==":
            mongo_filter.setdefault(field, {})["$eq"] = value
        else:
            mongo_filter.setdefault(field, {})[_MONGO_OPERATORS[predicate.op]] = value
    return mongo_filter


class MongoDocumentStore(DocumentStore):
    """Stores each collection in a MongoDB collection keyed by string ``_id``."""

    def __init__(self, client: MongoClient, database: str) -> None:
        self._client = client
        self._db = client[database]

    @classmethod
    def connect(cls, url: str, database: str) -> "MongoDocumentStore":
        client = MongoClient(url, serverSelectionTimeoutMS=5000, maxPoolSize=50)
        try:
            client.admin.command("ping")
        except PyMongoError as exc:
            logger.error("MongoDB connection failed: %s", exc)
            raise CollaboratorFailure("Unable to reach the document store.") from exc
        store = cls(client, database)
        store.ensure_indexes()
        logger.info("MongoDB initialised: %s", database)
        return store

    def ensure_indexes(self) -> None:
        for collection, fields in _INDEXES.items():
            for field in fields:
                self._db[collection].create_index(field)

    def close(self) -> None:
        self._client.close()

    def get_document(self, collection: str, document_id: str) -> Document | None:
        with _translate_errors():
            stored = self._db[collection].find_one({"_id": document_id})
        return _from_mongo(stored) if stored is not None else None

    def query(
        self,
        collection: str,
        predicates: Iterable[Where] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        with _translate_errors():
            cursor = self._db[collection].find(build_filter(predicates))
            if order_by is not None:
                cursor = cursor.sort(order_by, DESCENDING if descending else ASCENDING)
            return [_from_mongo(stored) for stored in cursor]

    def set_document(self, collection: str, document_id: str, fields: Document) -> None:
        with _translate_errors():
            self._db[collection].replace_one(
                {"_id": document_id}, _to_mongo(fields), upsert=True
            )

    def add_document(self, collection: str, fields: Document) -> str:
        document_id = uuid4().hex
        with _translate_errors():
            self._db[collection].insert_one({"_id": document_id, **_to_mongo(fields)})
        return document_id

    def update_document(self, collection: str, document_id: str, fields: Document) -> None:
        with _translate_errors():
            outcome = self._db[collection].update_one(
                {"_id": document_id}, {"$set": _to_mongo(fields)}
            )
        if outcome.matched_count == 0:
            raise NotFoundError(collection, document_id)

    def increment(
        self, collection: str, document_id: str, field: str, amount: float
    ) -> None:
        with _translate_errors():
            outcome = self._db[collection].update_one(
                {"_id": document_id}, {"$inc": {field: amount}}
            )
        if outcome.matched_count == 0:
            raise NotFoundError(collection, document_id)

    def delete_document(self, collection: str, document_id: str) -> None:
        with _translate_errors():
            self._db[collection].delete_one({"_id": document_id})

    def batch_update(self, updates: Iterable[BatchUpdate]) -> None:
        grouped: dict[str, list[UpdateOne]] = {}
        for update in updates:
            grouped.setdefault(update.collection, []).append(
                UpdateOne({"_id": update.document_id}, {"$set": _to_mongo(update.fields)})
            )
        with _translate_errors():
            for collection, operations in grouped.items():
                self._db[collection].bulk_write(operations, ordered=True)


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Turn driver errors into ``CollaboratorFailure``."""
    try:
        yield
    except PyMongoError as exc:
        logger.error("Document store operation failed: %s", exc)
        raise CollaboratorFailure("The document store request failed.") from exc


def _to_mongo(fields: Document) -> Document:
    return {key: value for key, value in fields.items() if key not in ("id", "_id")}


def _from_mongo(stored: Document) -> Document:
    document = dict(stored)
    document["id"] = str(document.pop("_id"))
    return document
