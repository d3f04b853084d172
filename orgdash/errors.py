"""Exception taxonomy shared by every directory operation."""

from __future__ import annotations


class OrgDashError(Exception):
    """Base class for all errors raised by :mod:`orgdash`."""


class ValidationError(OrgDashError):
    """A payload violates an eligibility or required-field rule."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class CycleError(OrgDashError):
    """Assigning ``superior_id`` above ``user_id`` would close a loop."""

    def __init__(self, user_id: str, superior_id: str) -> None:
        if user_id == superior_id:
            message = f"User {user_id} cannot report to themselves."
        else:
            message = (
                f"User {user_id} cannot report to {superior_id}: "
                f"{superior_id} already reports up to {user_id}."
            )
        super().__init__(message)
        self.user_id = user_id
        self.superior_id = superior_id


class NotFoundError(OrgDashError):
    """A referenced id does not resolve."""

    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind.capitalize()} {ident!r} not found.")
        self.kind = kind
        self.ident = ident


class UpstreamError(OrgDashError):
    """The document store or the auth collaborator failed."""
