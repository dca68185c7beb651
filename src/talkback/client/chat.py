"""Round-trip client: one recorded utterance in, transcript + reply text + reply audio out."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..audio.codec import base64_to_bytes, bytes_to_base64
from ..core.errors import HTTPError, NoAudioError
from .base import ApiClient

logger = logging.getLogger("ChatClient")

CHAT_PATH = "/api/chat"

# Longest error detail copied into a debug log line.
MAX_DETAIL_CHARS = 500


@dataclass
class DebugInfo:
    """Everything recorded about one request, handed to the caller after each stage."""
    request: Optional[Dict[str, Any]] = None
    response: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None
    logs: List[Dict[str, str]] = field(default_factory=list)

    def snapshot(self) -> "DebugInfo":
        return copy.deepcopy(self)


@dataclass(frozen=True)
class ChatReply:
    user_text: str
    text: str
    audio: Optional[bytes]
    format: str


DebugCallback = Callable[[DebugInfo], None]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _truncate(text: str, limit: int = MAX_DETAIL_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class ChatClient(ApiClient):
    async def send_audio_to_ai(
        self,
        audio: Optional[bytes],
        fmt: str = "wav",
        on_debug: Optional[DebugCallback] = None,
        custom_prompt: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> ChatReply:
        """
        POST one recording to the chat endpoint and return the tutor's reply.

        Args:
            audio: encoded recording (e.g. WAV bytes).
            fmt: container format name sent alongside the audio.
            on_debug: called with a DebugInfo snapshot after every stage.
            custom_prompt: system prompt override, sent as ``instructions``.
            session_id: optional practice session id, sent as ``session_id``.

        Raises:
            NoAudioError: audio is empty; raised before any network call.
            HTTPError: the server answered with a non-2xx status.
        """
        started = time.monotonic()
        debug = DebugInfo()

        def add_log(message: str) -> None:
            entry = {"time": datetime.now().strftime("%H:%M:%S"), "message": message}
            debug.logs.append(entry)
            logger.info("[%s] %s", entry["time"], message)
            if on_debug is not None:
                on_debug(debug.snapshot())

        try:
            if not audio:
                raise NoAudioError()

            add_log(f"Encoding audio ({len(audio)} bytes)")
            audio_b64 = bytes_to_base64(audio)
            add_log(f"Base64 encoding done ({len(audio_b64)} chars)")

            url = self._url(CHAT_PATH)
            debug.request = {
                "url": url,
                "method": "POST",
                "timestamp": _now_iso(),
                "audio_size": len(audio),
                "format": fmt,
            }

            body: Dict[str, Any] = {"audioData": audio_b64, "format": fmt}
            if custom_prompt:
                body["instructions"] = custom_prompt
            if session_id:
                body["session_id"] = session_id

            add_log("Sending request...")
            response = await asyncio.to_thread(self.session.post, url, json=body, headers=self._headers())
            duration_ms = int((time.monotonic() - started) * 1000)

            debug.response = {
                "status": response.status_code,
                "status_text": response.reason,
                "timestamp": _now_iso(),
                "duration_ms": duration_ms,
            }
            add_log(f"Response received (status {response.status_code}, {duration_ms}ms)")

            if not response.ok:
                try:
                    error_data = response.json()
                    if not isinstance(error_data, dict):
                        raise ValueError(f"Expected a JSON object, got {type(error_data).__name__}")
                except ValueError as e:
                    error_data = {
                        "error": f"HTTP {response.status_code}: {response.reason}",
                        "details": {"parseError": str(e)},
                    }

                message = error_data.get("error") or "API request failed"
                details = error_data.get("details") or error_data
                debug.error = {
                    "message": message,
                    "status": response.status_code,
                    "status_text": response.reason,
                    "details": details,
                    "type": details.get("type", "HTTPError") if isinstance(details, dict) else "HTTPError",
                }
                add_log(f"Request failed: {message} (status {response.status_code})")
                if error_data.get("details"):
                    add_log(f"Error details: {_truncate(json.dumps(error_data['details'], default=str))}")
                raise HTTPError(message, response.status_code, details)

            add_log("Parsing response...")
            data = response.json()
            add_log(
                f"Response parsed (text: {'yes' if data.get('text') else 'no'}, "
                f"audio: {'yes' if data.get('audio') else 'no'})"
            )

            reply_audio = None
            if data.get("audio"):
                reply_audio = base64_to_bytes(data["audio"])
                add_log(f"Decoded reply audio ({len(reply_audio)} bytes)")

            add_log("Request succeeded")
            return ChatReply(
                user_text=data.get("userText") or "",
                text=data.get("text") or "",
                audio=reply_audio,
                format=data.get("format") or "wav",
            )
        except Exception as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            if debug.error is None:
                debug.error = {"message": str(e) or "Unknown error", "name": type(e).__name__}
            debug.error["duration_ms"] = duration_ms
            add_log(f"Error: {e}")
            raise
