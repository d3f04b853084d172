"""Reporting-hierarchy validation and mutation.

The ``reports_to`` field of every :class:`~orgdash.core.models.User` induces a
directed graph whose edges point from subordinate to superior. The manager
keeps that graph acyclic: no user may, transitively, become their own
superior.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..errors import CycleError, NotFoundError
from .directory import Directory
from .models import User

log = logging.getLogger("orgdash.hierarchy")


@dataclass
class BulkReassignResult:
    """Outcome of a bulk reassignment, reported per user id."""

    applied: set[str] = field(default_factory=set)
    rejected: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.rejected


class HierarchyManager:
    """Single and bulk ``reports_to`` assignment over a :class:`Directory`."""

    def __init__(self, directory: Directory) -> None:
        self.directory = directory

    @property
    def bound(self) -> int:
        # the longest simple chain visits every user once
        return len(self.directory)

    def ancestors(self, user_id: str) -> list[str]:
        """Ids above ``user_id``, nearest first, including unresolved ones."""
        chain: list[str] = []
        current = self.directory.find_user(user_id)
        for _ in range(self.bound):
            if current is None or current.reports_to is None:
                break
            chain.append(current.reports_to)
            current = self.directory.find_user(current.reports_to)
        return chain

    def would_cycle(self, user_id: str, superior_id: str) -> bool:
        if user_id == superior_id:
            return True
        walked = superior_id
        for _ in range(self.bound):
            if walked == user_id:
                return True
            superior = self.directory.find_user(walked)
            if superior is None or superior.reports_to is None:
                return False
            walked = superior.reports_to
        return walked == user_id

    def check(self, user_id: str, superior_id: str | None) -> User:
        """Validate an assignment without applying it; return the user."""
        user = self.directory.find_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        if superior_id is None:
            return user
        if superior_id != user_id and self.directory.find_user(superior_id) is None:
            raise NotFoundError("user", superior_id)
        if self.would_cycle(user_id, superior_id):
            raise CycleError(user_id, superior_id)
        return user

    def set_reports_to(self, user_id: str, superior_id: str | None) -> User:
        """Point ``user_id`` at ``superior_id`` (``None`` detaches).

        Raises :class:`CycleError` when the new superior already reports,
        directly or transitively, to ``user_id`` (or is ``user_id``), and
        :class:`NotFoundError` when either id does not resolve. The directory
        is left unchanged on failure.
        """
        user = self.check(user_id, superior_id)
        user.reports_to = superior_id
        return user

    def bulk_reassign(
        self, user_ids: Iterable[str], superior_id: str | None
    ) -> BulkReassignResult:
        """Apply :meth:`set_reports_to` to each id independently."""
        result = BulkReassignResult()
        for user_id in dict.fromkeys(user_ids):
            try:
                self.set_reports_to(user_id, superior_id)
            except (CycleError, NotFoundError) as exc:
                log.warning("Rejected reassignment of %s: %s", user_id, exc)
                result.rejected[user_id] = str(exc)
            else:
                result.applied.add(user_id)
        return result

    def superior_chain(self, user_id: str) -> list[User]:
        """Superiors of ``user_id``, nearest first.

        Stops at the first user without a superior, at a reference that does
        not resolve, or after visiting as many users as the directory holds.
        """
        chain: list[User] = []
        for ident in self.ancestors(user_id):
            superior = self.directory.find_user(ident)
            if superior is None:
                break
            chain.append(superior)
        return chain

    def descendants(self, user_id: str) -> set[str]:
        """Every id that reports, directly or transitively, to ``user_id``."""
        found: set[str] = set()
        frontier = [user_id]
        while frontier:
            current = frontier.pop()
            for sub in self.directory.subordinates(current):
                if sub.id not in found and sub.id != user_id:
                    found.add(sub.id)
                    frontier.append(sub.id)
        return found
