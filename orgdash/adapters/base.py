"""Base interfaces for the external document store and auth provider."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


class _ServerTimestamp:
    """Sentinel replaced by the store with its own creation time."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

USERS = "users"
TEAMS = "teams"
PROJECTS = "projects"
TASKS = "tasks"
ACTIVITY_LOGS = "activity_logs"


@dataclass(frozen=True)
class Query:
    """Filter for :meth:`DocumentStore.fetch`.

    Supports one equality condition, ordering by one field and a result
    limit, which is all the directory needs.
    """

    where: tuple[str, Any] | None = None
    order_by: str | None = None
    descending: bool = False
    limit: int | None = None


class DocumentStore(ABC):
    """Abstract asynchronous document store.

    Documents are plain dictionaries; every returned document carries its
    identifier under ``"id"``. Failures of the underlying service are raised
    as :class:`~orgdash.errors.UpstreamError`.
    """

    @abstractmethod
    async def fetch(self, collection: str, query: Query | None = None) -> list[dict[str, Any]]:
        """Return the documents of ``collection`` matching ``query``."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return one document or ``None`` when it does not exist."""

    @abstractmethod
    async def insert(self, collection: str, data: dict[str, Any]) -> str:
        """Store ``data`` as a new document and return its identifier."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Overwrite ``fields`` on an existing document."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document."""


class AuthProvider(ABC):
    """Abstract authentication collaborator."""

    @abstractmethod
    async def provision_identity(self, email: str, password: str) -> str:
        """Create a sign-in identity and return its opaque uid."""

    @abstractmethod
    async def remove_identity(self, uid: str) -> None:
        """Delete the sign-in identity ``uid``."""
