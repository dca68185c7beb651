"""Request/response schemas for the tutor HTTP API."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    audioData: Optional[str] = None  # base64
    format: str = "webm"
    instructions: Optional[str] = None
    session_id: Optional[str] = None


class ChatResponse(BaseModel):
    userText: str
    text: str
    audio: Optional[str] = None  # base64
    format: str = "mp3"


class RealtimeSessionRequest(BaseModel):
    instructions: Optional[str] = None


class RealtimeSessionResponse(BaseModel):
    session_id: Optional[str] = None
    client_secret: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Dict[str, Any]] = Field(default=None)
