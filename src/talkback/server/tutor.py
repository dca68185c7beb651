"""Provider calls behind the tutor API: transcription, reply, speech, realtime sessions."""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Dict, Optional

import openai
import requests
from openai import AsyncOpenAI

from ..core.errors import TalkbackError
from ..prompts import DEFAULT_INSTRUCTIONS

logger = logging.getLogger("Tutor")

REALTIME_SESSIONS_URL = "https://api.openai.com/v1/realtime/sessions"


class TutorError(TalkbackError):
    """Provider failure, carrying the HTTP status to return and a details body."""

    def __init__(self, message: str, status: int = 500, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status = status
        self.details = details or {}


def _is_quota_error(status: int, body: Dict[str, Any]) -> bool:
    error = body.get("error") if isinstance(body.get("error"), dict) else {}
    return status == 429 or "insufficient_quota" in (error.get("type"), error.get("code"))


class Tutor:
    def __init__(
        self,
        api_key: str,
        chat_model: str = "gpt-4o-mini",
        transcription_model: str = "whisper-1",
        speech_model: str = "tts-1",
        voice: str = "alloy",
        realtime_model: str = "gpt-4o-realtime-preview",
    ):
        self.api_key = api_key
        self.chat_model = chat_model
        self.transcription_model = transcription_model
        self.speech_model = speech_model
        self.voice = voice
        self.realtime_model = realtime_model
        self.client = AsyncOpenAI(api_key=api_key)
        self.http = requests.Session()

    async def transcribe(self, audio: bytes, fmt: str) -> str:
        transcription = await self.client.audio.transcriptions.create(
            file=(f"audio.{fmt}", audio),
            model=self.transcription_model,
            language="en",
        )
        return transcription.text

    async def reply(self, user_text: str, instructions: Optional[str] = None) -> str:
        completion = await self.client.chat.completions.create(
            model=self.chat_model,
            messages=[
                {"role": "system", "content": instructions or DEFAULT_INSTRUCTIONS},
                {"role": "user", "content": user_text},
            ],
            max_tokens=150,
        )
        return completion.choices[0].message.content or ""

    async def speak(self, text: str) -> bytes:
        speech = await self.client.audio.speech.create(
            model=self.speech_model,
            voice=self.voice,
            input=text,
        )
        return speech.content

    async def respond(self, audio_b64: str, fmt: str = "webm", instructions: Optional[str] = None) -> Dict[str, Any]:
        """Transcribe a recording, answer it, and synthesize the answer as mp3."""
        logger.info("Chat round trip: %d base64 chars, format=%s", len(audio_b64), fmt)
        try:
            audio = base64.b64decode(audio_b64)

            logger.info("Step 1: transcribing")
            user_text = await self.transcribe(audio, fmt)
            logger.info("Transcript: %s", user_text)

            logger.info("Step 2: generating reply")
            text = await self.reply(user_text, instructions)
            logger.info("Reply: %s", text)

            logger.info("Step 3: synthesizing speech")
            speech = await self.speak(text)
        except openai.APIStatusError as e:
            logger.error("Provider error: %s", e)
            body = e.body if isinstance(e.body, dict) else {}
            raise TutorError(
                e.message,
                e.status_code,
                {
                    "message": e.message,
                    "type": type(e).__name__,
                    "status": e.status_code,
                    "openaiError": {
                        "message": body.get("message", e.message),
                        "type": body.get("type"),
                        "code": body.get("code"),
                        "param": body.get("param"),
                    },
                    "requestInfo": {"hasAudioData": True, "audioDataLength": len(audio_b64), "format": fmt},
                },
            ) from e
        except (openai.OpenAIError, ValueError) as e:
            logger.error("Chat round trip failed: %s", e, exc_info=True)
            raise TutorError(
                str(e) or "Failed to process audio",
                500,
                {
                    "message": str(e),
                    "type": type(e).__name__,
                    "status": 500,
                    "requestInfo": {"hasAudioData": True, "audioDataLength": len(audio_b64), "format": fmt},
                },
            ) from e

        return {
            "userText": user_text,
            "text": text,
            "audio": base64.b64encode(speech).decode("ascii"),
            "format": "mp3",
        }

    async def create_realtime_session(self, instructions: Optional[str] = None) -> Dict[str, Any]:
        """Create a realtime session and return its id and ephemeral client secret."""
        session_config = {
            "model": self.realtime_model,
            "voice": self.voice,
            "instructions": instructions or DEFAULT_INSTRUCTIONS,
            "modalities": ["audio", "text"],
            "input_audio_format": "pcm16",
            "output_audio_format": "pcm16",
            "temperature": 0.8,
            "max_response_output_tokens": 4096,
        }
        logger.info("Requesting realtime session: model=%s voice=%s", self.realtime_model, self.voice)

        response = await asyncio.to_thread(
            self.http.post,
            REALTIME_SESSIONS_URL,
            json=session_config,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "OpenAI-Beta": "realtime=v1",
            },
        )

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}
        if not isinstance(body, dict):
            body = {"message": str(body)}

        if not response.ok:
            quota = _is_quota_error(response.status_code, body)
            logger.error(
                "Realtime session request failed: status=%s quota_exceeded=%s body=%s",
                response.status_code, quota, body,
            )
            if quota:
                raise TutorError("API usage limit exceeded. Check the usage of your OpenAI account.", 500, body)
            error = body.get("error") if isinstance(body.get("error"), dict) else {}
            raise TutorError(error.get("message") or body.get("message") or "Failed to create session", 500, body)

        secret = body.get("client_secret")
        if isinstance(secret, dict):
            secret = secret.get("value")
        if not secret:
            logger.error("Realtime session response has no client_secret (keys: %s)", sorted(body))
            raise TutorError("No client_secret in realtime session response", 500)

        logger.info("Realtime session created: id=%s secret_length=%d", body.get("id"), len(secret))
        return {"session_id": body.get("id"), "client_secret": secret}
