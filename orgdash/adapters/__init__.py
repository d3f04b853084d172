"""Collaborator interfaces and their implementations."""

from .base import SERVER_TIMESTAMP, AuthProvider, DocumentStore, Query

__all__ = ["SERVER_TIMESTAMP", "AuthProvider", "DocumentStore", "Query"]
