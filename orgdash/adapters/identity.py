"""Identity Toolkit adapter implementing :class:`~orgdash.adapters.base.AuthProvider`.

The adapter only covers what the directory needs: provisioning a password
identity when a user is created and removing it again when the user is
deleted. It uses :mod:`httpx` to talk to the REST API, which keeps the
implementation dependency light while remaining fully asynchronous.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import UpstreamError
from .base import AuthProvider

log = logging.getLogger("orgdash.identity")


class IdentityToolkitAuth(AuthProvider):
    """Adapter that sends requests directly to the Identity Toolkit API."""

    api_base = "https://identitytoolkit.googleapis.com/v1"

    def __init__(
        self,
        api_key: str,
        project_id: str = "",
        access_token: str = "",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Store credentials and optional HTTP ``client``.

        ``api_key`` authorises sign-up requests. Deleting an arbitrary
        account is an administrative call and needs ``project_id`` plus an
        OAuth ``access_token``.
        """
        self.api_key = api_key
        self.project_id = project_id
        self.access_token = access_token
        self.client = client or httpx.AsyncClient()

    async def _post(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.client.post(
                url, json=payload, params=params, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log.error(
                "Identity request to %s failed with %s", url, exc.response.status_code
            )
            raise UpstreamError(_error_message(exc.response)) from exc
        except httpx.HTTPError as exc:
            log.exception("Identity request to %s failed", url)
            raise UpstreamError(f"Authentication service unavailable: {exc}") from exc
        return response.json() if response.content else {}

    # ------------------------------------------------------------------
    async def provision_identity(self, email: str, password: str) -> str:
        """Create an email/password identity.

        Returns the uid (``localId``) of the new identity.
        """
        data = await self._post(
            f"{self.api_base}/accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": False},
            params={"key": self.api_key},
        )
        try:
            return str(data["localId"])
        except KeyError as exc:
            raise UpstreamError("Authentication service returned no uid.") from exc

    async def remove_identity(self, uid: str) -> None:
        """Delete the identity ``uid`` using administrative credentials."""
        if not self.project_id or not self.access_token:
            raise UpstreamError(
                "Removing identities requires a project id and access token."
            )
        await self._post(
            f"{self.api_base}/projects/{self.project_id}/accounts:delete",
            {"localId": uid},
            headers={"Authorization": f"Bearer {self.access_token}"},
        )

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        message = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        message = response.text or response.reason_phrase
    return f"Authentication service error: {message}"
