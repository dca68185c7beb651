"""HTTP routes for the tutor API."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config.settings import load_config, require_api_key
from .schemas import ChatRequest, ChatResponse, ErrorResponse, RealtimeSessionRequest, RealtimeSessionResponse
from .tutor import Tutor, TutorError

logger = logging.getLogger("ApiRouter")

router = APIRouter(prefix="/api")


@lru_cache(maxsize=1)
def get_tutor() -> Tutor:
    """Tutor built from the environment; raises ConfigurationError without an API key."""
    config = load_config()
    return Tutor(
        api_key=require_api_key(config),
        voice=config.realtime_voice,
        realtime_model=config.realtime_model,
    )


def _error(status: int, message: str, details=None) -> JSONResponse:
    return JSONResponse(status_code=status, content=ErrorResponse(error=message, details=details).model_dump())


ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.post("/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
async def chat(request: ChatRequest, tutor: Tutor = Depends(get_tutor)):
    if not request.audioData:
        return _error(400, "Audio data is required")
    try:
        return await tutor.respond(request.audioData, request.format, request.instructions)
    except TutorError as e:
        return _error(e.status, str(e), e.details)


@router.post("/realtime-session", response_model=RealtimeSessionResponse, responses=ERROR_RESPONSES)
async def realtime_session(request: RealtimeSessionRequest, tutor: Tutor = Depends(get_tutor)):
    try:
        return await tutor.create_realtime_session(request.instructions)
    except TutorError as e:
        return _error(500, str(e) or "Failed to create realtime session", e.details or None)
    except Exception as e:
        logger.error("Realtime session error: %s", e, exc_info=True)
        return _error(500, str(e) or "Failed to create realtime session")
