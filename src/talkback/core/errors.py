"""Exception hierarchy shared by the realtime client, the HTTP clients and the server."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union


class TalkbackError(Exception):
    """Base exception for all talkback errors."""


class ConfigurationError(TalkbackError):
    """Raised when configuration is missing or invalid."""


class InvalidCredential(TalkbackError):
    """Raised when the ephemeral realtime credential is empty or not a string."""


class RealtimeConnectionError(TalkbackError):
    """Raised when the realtime socket fails before it is open."""


class ConnectTimeout(RealtimeConnectionError):
    """Raised when the realtime socket does not open within the handshake timeout."""

    def __init__(self, timeout: float):
        super().__init__(f"Realtime connection timed out after {timeout:g}s")
        self.timeout = timeout


class ConnectionClosed(RealtimeConnectionError):
    """Raised when the socket closes before the session reached CONNECTED."""

    def __init__(self, code: Optional[int], reason: str = ""):
        super().__init__(f"Realtime connection closed: {code} {reason or 'unknown reason'}")
        self.code = code
        self.reason = reason


class RemoteProtocolError(TalkbackError):
    """Server-sent ``error`` event. Delivered to ``error`` handlers, never raised by the client."""

    def __init__(
        self,
        message: str,
        error_type: Optional[str] = None,
        code: Optional[Union[str, int]] = None,
        event_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.code = code
        self.event_id = event_id


class NoAudioError(TalkbackError):
    """Raised when there is no recorded audio to send."""

    def __init__(self, message: str = "No recorded audio to send."):
        super().__init__(message)


class HTTPError(TalkbackError):
    """Non-2xx response from a talkback HTTP endpoint."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status = status
        self.details = details or {}

    @property
    def message(self) -> str:
        return str(self)


class EventParseError(TalkbackError):
    """Raised when an inbound realtime frame is not a well-formed event."""
