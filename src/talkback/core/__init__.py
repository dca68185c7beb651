"""Core module."""

from .errors import (
    TalkbackError,
    ConfigurationError,
    InvalidCredential,
    RealtimeConnectionError,
    ConnectTimeout,
    ConnectionClosed,
    RemoteProtocolError,
    EventParseError,
    NoAudioError,
    HTTPError,
)
from .shutdown import GracefulShutdown, StopSignal

__all__ = [
    "TalkbackError",
    "ConfigurationError",
    "InvalidCredential",
    "RealtimeConnectionError",
    "ConnectTimeout",
    "ConnectionClosed",
    "RemoteProtocolError",
    "EventParseError",
    "NoAudioError",
    "HTTPError",
    "GracefulShutdown",
    "StopSignal",
]
