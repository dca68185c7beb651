"""Message schemas for the realtime voice WebSocket."""

from __future__ import annotations

import json
from typing import Any, Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.errors import EventParseError


class ClientEvent(BaseModel):
    """Base schema for messages sent to the server."""
    type: str


class InputAudioBufferAppend(ClientEvent):
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str  # base64 PCM16


class InputAudioBufferCommit(ClientEvent):
    type: Literal["input_audio_buffer.commit"] = "input_audio_buffer.commit"


class ServerEvent(BaseModel):
    """Base schema for all server events; unknown types parse to this."""
    model_config = ConfigDict(extra="allow")

    type: str
    event_id: Optional[str] = None


class SessionCreated(ServerEvent):
    type: Literal["session.created"]
    session: Dict[str, Any] = Field(default_factory=dict)


class SessionUpdated(ServerEvent):
    type: Literal["session.updated"]
    session: Dict[str, Any] = Field(default_factory=dict)


class AudioTranscriptDelta(ServerEvent):
    type: Literal["response.audio_transcript.delta"]
    delta: str


class AudioDelta(ServerEvent):
    type: Literal["response.audio.delta"]
    delta: str  # base64 PCM16


class ResponseDone(ServerEvent):
    type: Literal["response.done"]
    response: Dict[str, Any] = Field(default_factory=dict)


class ErrorDetail(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    message: Optional[str] = None
    code: Optional[Union[str, int]] = None
    param: Optional[str] = None


class ErrorEvent(ServerEvent):
    type: Literal["error"]
    error: ErrorDetail = Field(default_factory=ErrorDetail)


# Dispatch table: event type -> schema.
EVENT_MODELS: Dict[str, Type[ServerEvent]] = {
    "session.created": SessionCreated,
    "session.updated": SessionUpdated,
    "response.audio_transcript.delta": AudioTranscriptDelta,
    "response.audio.delta": AudioDelta,
    "response.done": ResponseDone,
    "error": ErrorEvent,
}

AnyServerEvent = Union[
    SessionCreated,
    SessionUpdated,
    AudioTranscriptDelta,
    AudioDelta,
    ResponseDone,
    ErrorEvent,
    ServerEvent,
]


def parse_event(raw: Union[str, bytes]) -> AnyServerEvent:
    """Parse one inbound frame into its typed event. Raises EventParseError."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise EventParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise EventParseError("Event is not an object with a string 'type'")

    model = EVENT_MODELS.get(data["type"], ServerEvent)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise EventParseError(f"Malformed {data['type']} event: {e}") from e
