"""Fetches ephemeral realtime credentials from the tutor server."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..core.errors import HTTPError
from .base import ApiClient

logger = logging.getLogger("CredentialClient")


@dataclass(frozen=True)
class RealtimeCredential:
    session_id: Optional[str]
    client_secret: str


class CredentialClient(ApiClient):
    async def create_session(self, instructions: Optional[str] = None) -> RealtimeCredential:
        """Ask the server for a realtime session and its ephemeral client secret."""
        body = {"instructions": instructions} if instructions else {}
        response = await asyncio.to_thread(
            self.session.post, self._url("/api/realtime-session"), json=body, headers=self._headers()
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not response.ok:
            message = data.get("error") or f"HTTP {response.status_code}: {response.reason}"
            logger.error("Realtime session request failed: %s", message)
            raise HTTPError(message, response.status_code, data.get("details") or data)

        secret = data.get("client_secret")
        if isinstance(secret, dict):
            secret = secret.get("value")
        if not secret:
            raise HTTPError("Realtime session response has no client_secret", response.status_code, data)

        logger.info("Realtime session created: %s", data.get("session_id"))
        return RealtimeCredential(session_id=data.get("session_id"), client_secret=secret)
