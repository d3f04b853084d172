"""Simple JSON-backed document store."""

from __future__ import annotations

import copy
import datetime
import json
import logging
import os
import uuid
from datetime import UTC
from pathlib import Path
from typing import Any

from ..errors import NotFoundError, UpstreamError
from .base import SERVER_TIMESTAMP, DocumentStore, Query

log = logging.getLogger("orgdash.store")


class JSONDocumentStore(DocumentStore):
    """Persist named collections of documents to one JSON file.

    Every insert, update and delete rewrites the whole file through a
    temporary file that then replaces the original, so readers never see a
    half-written store. Creation timestamps are filled in here.
    Concurrent writers are not coordinated; the last write wins.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialise storage using JSON file at ``path``."""
        self.path = Path(path)
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        if self.path.exists():
            self._load()

    # ------------------------------------------------------------------
    # Persistence helpers
    def _load(self) -> None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            log.exception("Failed to read %s", self.path)
            raise UpstreamError(f"Could not read document store {self.path}") from exc
        self._collections = {
            name: {str(doc_id): dict(doc) for doc_id, doc in docs.items()}
            for name, docs in data.get("collections", {}).items()
        }

    def save(self) -> None:
        """Persist the current state atomically."""
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(
                    {"collections": self._collections}, f, indent=2, ensure_ascii=False
                )
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as exc:
            log.exception("Failed to write %s", self.path)
            raise UpstreamError(f"Could not write document store {self.path}") from exc

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    @staticmethod
    def _now() -> str:
        return datetime.datetime.now(tz=UTC).isoformat()

    def _resolve(self, data: dict[str, Any]) -> dict[str, Any]:
        stamp = self._now()
        return {
            key: stamp if value is SERVER_TIMESTAMP else copy.deepcopy(value)
            for key, value in data.items()
            if key != "id"
        }

    # ------------------------------------------------------------------
    # DocumentStore API
    async def fetch(
        self, collection: str, query: Query | None = None
    ) -> list[dict[str, Any]]:
        query = query or Query()
        docs = [
            {"id": doc_id, **copy.deepcopy(doc)}
            for doc_id, doc in self._collection(collection).items()
        ]
        if query.where is not None:
            field_name, expected = query.where
            docs = [d for d in docs if d.get(field_name) == expected]
        if query.order_by is not None:
            docs = _ordered(docs, query.order_by, query.descending)
        if query.limit is not None:
            docs = docs[: max(query.limit, 0)]
        return docs

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            return None
        return {"id": doc_id, **copy.deepcopy(doc)}

    async def insert(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self._collection(collection)[doc_id] = self._resolve(data)
        self.save()
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            raise NotFoundError(collection.rstrip("s"), doc_id)
        doc.update(self._resolve(fields))
        self.save()

    async def delete(self, collection: str, doc_id: str) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise NotFoundError(collection.rstrip("s"), doc_id)
        del docs[doc_id]
        self.save()


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    return (2, json.dumps(value, sort_keys=True, default=str))


def _ordered(docs: list[dict[str, Any]], field_name: str, descending: bool) -> list[dict[str, Any]]:
    # documents missing the field sort after the others in either direction
    present = [d for d in docs if d.get(field_name) is not None]
    missing = [d for d in docs if d.get(field_name) is None]
    present.sort(key=lambda d: _sort_key(d[field_name]), reverse=descending)
    return present + missing
