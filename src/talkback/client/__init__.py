"""HTTP clients for the tutor server."""

from .chat import ChatClient, ChatReply, DebugInfo
from .credentials import CredentialClient, RealtimeCredential

__all__ = ["ChatClient", "ChatReply", "DebugInfo", "CredentialClient", "RealtimeCredential"]
