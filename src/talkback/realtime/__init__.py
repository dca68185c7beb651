"""Realtime voice session client."""

from .client import RealtimeClient, ConnectionState
from .registry import EventHandlerRegistry
from .schemas import parse_event, ServerEvent

__all__ = ["RealtimeClient", "ConnectionState", "EventHandlerRegistry", "parse_event", "ServerEvent"]
