"""
MongoDB access for the storefront.

A single `Database` is built at process start and handed to the services that
need it. Document ids are exposed as strings; ids that look like ObjectIds are
converted on the way in so both generated and hand-picked ids work.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import structlog
from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient

logger = structlog.get_logger(component="database")


def to_object_id(value: Any) -> Any:
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def serialize_document(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    doc = {**doc}
    if doc.get("_id") is not None:
        doc["id"] = str(doc.pop("_id"))
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    def __init__(self, client: MongoClient, name: str, max_time_ms: int = 5000):
        self.client = client
        self.db = client[name]
        self.name = name
        self.max_time_ms = max_time_ms

    @classmethod
    def connect(cls, url: str, name: str, timeout_ms: int = 5000) -> "Database":
        client = MongoClient(
            url,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
            tz_aware=True,
        )
        return cls(client, name, max_time_ms=timeout_ms)

    # -----------------------------
    # Reads
    # -----------------------------
    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = self.db[collection].find_one({"_id": to_object_id(doc_id)})
        return serialize_document(doc)

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> Dict[str, dict]:
        """Fetch several documents in one round trip, keyed by string id."""
        ids = list(dict.fromkeys(doc_ids))
        if not ids:
            return {}
        cursor = (
            self.db[collection]
            .find({"_id": {"$in": [to_object_id(i) for i in ids]}})
            .max_time_ms(self.max_time_ms)
        )
        found = {}
        for doc in cursor:
            doc = serialize_document(doc)
            found[doc["id"]] = doc
        return found

    def find(self, collection: str, filters: Optional[dict] = None, limit: int = 0) -> List[dict]:
        cursor = self.db[collection].find(filters or {}).max_time_ms(self.max_time_ms)
        if limit:
            cursor = cursor.limit(limit)
        return [serialize_document(d) for d in cursor]

    # -----------------------------
    # Writes
    # -----------------------------
    def create(self, collection: str, data: Union[BaseModel, dict], session=None) -> str:
        if isinstance(data, BaseModel):
            data = data.model_dump()
        result = self.db[collection].insert_one(dict(data), session=session)
        return str(result.inserted_id)

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: dict,
        expect: Optional[dict] = None,
        session=None,
    ) -> bool:
        """Set `fields` on a document; `expect` adds preconditions to the match.

        Returns False when no document matched (missing, or preconditions failed).
        """
        query = {"_id": to_object_id(doc_id), **(expect or {})}
        result = self.db[collection].update_one(query, {"$set": fields}, session=session)
        return result.matched_count == 1

    def increment(self, collection: str, doc_id: str, field: str, amount: int, session=None) -> bool:
        """Add `amount` to a numeric field. Documents without the field are left alone."""
        query = {"_id": to_object_id(doc_id), field: {"$type": "number"}}
        result = self.db[collection].update_one(query, {"$inc": {field: amount}}, session=session)
        return result.matched_count == 1

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Group writes so they commit together or not at all.

        Pass the yielded session to every write inside the block. Any exception
        raised inside aborts the transaction and propagates.
        """
        with self.client.start_session() as session:
            try:
                with session.start_transaction():
                    yield session
            except Exception as e:
                logger.warning("transaction_aborted", error=type(e).__name__)
                raise

    # -----------------------------
    # Health
    # -----------------------------
    def ping(self) -> bool:
        self.client.admin.command("ping")
        return True

    def list_collection_names(self) -> List[str]:
        return self.db.list_collection_names()
