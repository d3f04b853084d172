"""Caller identity and session-change notifications.

Operations that need to know who is acting take an explicit :class:`Session`
rather than reading ambient state. When the authentication collaborator signs
someone in or out it publishes a :class:`SessionChanged` event on a
:class:`SessionChannel`; :class:`ActiveProfile` consumes those events and
reloads the directory profile (roles and permissions) of the active caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .core.models import User
from .core.roles import has_permission

if TYPE_CHECKING:  # pragma: no cover
    from .service import OrgService

log = logging.getLogger("orgdash.session")


@dataclass(frozen=True)
class Session:
    """The authenticated caller: opaque auth uid and email."""

    user_id: str
    email: str | None = None


@dataclass(frozen=True)
class SessionChanged:
    """Published on sign-in (``session`` set) and sign-out (``None``)."""

    session: Session | None


class SessionChannel:
    """Single-consumer queue of :class:`SessionChanged` events."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[SessionChanged | None] = asyncio.Queue()

    def publish(self, session: Session | None) -> None:
        self._queue.put_nowait(SessionChanged(session))

    def close(self) -> None:
        """Stop consumers once the events already published are drained."""
        self._queue.put_nowait(None)

    async def events(self) -> AsyncIterator[SessionChanged]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event


class ActiveProfile:
    """Directory profile of whoever is currently signed in."""

    def __init__(self, service: OrgService) -> None:
        self.service = service
        self.session: Session | None = None
        self.user: User | None = None

    @property
    def permissions(self) -> list[str]:
        return list(self.user.permissions) if self.user is not None else []

    def can(self, token: str) -> bool:
        return has_permission(self.permissions, token)

    async def refresh(self, session: Session | None) -> None:
        self.session = session
        if session is None:
            self.user = None
            log.info("Session cleared")
            return
        self.user = await self.service.get_user_by_uid(session.user_id)
        if self.user is None:
            log.warning("No directory profile for signed-in uid %s", session.user_id)
        else:
            log.info(
                "Loaded profile for %s with roles %s",
                session.user_id,
                ", ".join(self.user.roles),
            )

    async def follow(self, channel: SessionChannel) -> None:
        """Refresh on every event until the channel is closed."""
        async for event in channel.events():
            await self.refresh(event.session)
