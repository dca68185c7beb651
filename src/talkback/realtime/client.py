"""WebSocket client for the realtime voice API."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Callable, Optional
from urllib.parse import quote

import numpy as np
import websockets

from ..audio.codec import SAMPLE_RATE, encode_audio, resample, waveform_levels
from ..audio.input.capture import MicrophoneCapture
from ..audio.input.types import AudioFormat, AudioFrame, CaptureConstraints, FrameConfig
from ..audio.output.playback import AudioPlayback
from ..config.settings import DEFAULT_REALTIME_MODEL, DEFAULT_REALTIME_URL
from ..core.errors import (
    ConnectionClosed,
    ConnectTimeout,
    EventParseError,
    InvalidCredential,
    RealtimeConnectionError,
    RemoteProtocolError,
)
from .registry import EventHandlerRegistry, Handler
from .schemas import (
    AudioDelta,
    AudioTranscriptDelta,
    ErrorEvent,
    InputAudioBufferAppend,
    InputAudioBufferCommit,
    ResponseDone,
    SessionCreated,
    SessionUpdated,
    parse_event,
)

logger = logging.getLogger("RealtimeClient")

# Samples per microphone callback.
CAPTURE_BLOCK_SAMPLES = 4096

CaptureFactory = Callable[..., MicrophoneCapture]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


class RealtimeClient:
    """
    One full-duplex session with the realtime voice API.

    Streams microphone PCM16 up, plays audio deltas back, and fans server
    events out to handlers registered with on(). Besides the raw server event
    types, handlers can subscribe to:

    - ``transcript``: text of each ``response.audio_transcript.delta``
    - ``audio``: base64 payload of each ``response.audio.delta``
    - ``done``: the ``response.done`` event
    - ``error``: a RemoteProtocolError built from a server ``error`` event

    Always call disconnect() (or use ``async with``) so the microphone and
    output device are released.
    """

    def __init__(
        self,
        client_secret: str,
        *,
        url: str = DEFAULT_REALTIME_URL,
        model: str = DEFAULT_REALTIME_MODEL,
        connect_timeout: float = 10.0,
        capture_rate: int = SAMPLE_RATE,
        playback: Optional[AudioPlayback] = None,
        capture_factory: CaptureFactory = MicrophoneCapture,
    ):
        self._client_secret = client_secret
        self._base_url = url
        self._model = model
        self._connect_timeout = connect_timeout
        self._capture_rate = capture_rate
        # The session speaks 24 kHz PCM16 both ways; only the microphone rate varies.
        self._playback = playback if playback is not None else AudioPlayback(sample_rate=SAMPLE_RATE)
        self._capture_factory = capture_factory

        self._state = ConnectionState.DISCONNECTED
        self._ws: Optional[websockets.ClientConnection] = None
        self._pending: Optional[asyncio.Future] = None
        self._open_task: Optional[asyncio.Task] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._capture: Optional[MicrophoneCapture] = None
        self._capture_task: Optional[asyncio.Task] = None
        self._handlers = EventHandlerRegistry()
        self._waveform_callback: Optional[Callable[[np.ndarray], None]] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED and self._ws is not None

    @property
    def playback(self) -> AudioPlayback:
        return self._playback

    @property
    def url(self) -> str:
        secret = quote(self._client_secret, safe="")
        return f"{self._base_url}?model={quote(self._model, safe='')}&client_secret={secret}"

    def _masked_url(self) -> str:
        return f"{self._base_url}?model={self._model}&client_secret=***"

    async def __aenter__(self) -> "RealtimeClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    # -- connection lifecycle -------------------------------------------------

    async def connect(self) -> None:
        """Open the socket. Returns once the server accepts the connection.

        Raises InvalidCredential, ConnectTimeout, ConnectionClosed or
        RealtimeConnectionError. The outcome is settled exactly once even if
        open, error, close and the timeout race each other.
        """
        if not self._client_secret or not isinstance(self._client_secret, str):
            raise InvalidCredential("client_secret is missing or not a string")
        if self._state != ConnectionState.DISCONNECTED:
            raise RealtimeConnectionError(f"Cannot connect while {self._state.value}")

        logger.info(
            "Connecting to %s (secret length %d)",
            self._masked_url(), len(self._client_secret),
        )
        loop = asyncio.get_running_loop()
        self._state = ConnectionState.CONNECTING
        self._pending = loop.create_future()
        self._open_task = asyncio.create_task(self._open())
        timer = loop.call_later(self._connect_timeout, self._on_timeout)
        try:
            await self._pending
        finally:
            timer.cancel()
            self._pending = None

    def _settle(self, error: Optional[BaseException] = None) -> bool:
        pending = self._pending
        if pending is None or pending.done():
            return False
        if error is None:
            pending.set_result(None)
        else:
            pending.set_exception(error)
        return True

    async def _open(self) -> None:
        try:
            ws = await websockets.connect(self.url, open_timeout=None, max_size=None)
        except asyncio.CancelledError:
            raise
        except websockets.ConnectionClosed as e:
            code = e.rcvd.code if e.rcvd is not None else 1006
            reason = e.rcvd.reason if e.rcvd is not None else ""
            self._on_close(code, reason)
            return
        except Exception as e:
            self._on_error(e)
            self._on_close(1006, str(e))
            return

        if self._pending is None or self._pending.done():
            # Lost the race against timeout/close: this socket is unwanted.
            logger.warning("Socket opened after connect was settled, closing it")
            await ws.close()
            return
        self._on_open(ws)

    def _on_open(self, ws: websockets.ClientConnection) -> None:
        logger.info("Realtime WebSocket connected")
        self._ws = ws
        self._setup_event_handlers()
        self._state = ConnectionState.CONNECTED
        self._receive_task = asyncio.create_task(self._receive_loop(ws))
        self._settle()

    def _on_error(self, error: BaseException) -> None:
        logger.error("WebSocket error: %s", error)
        self._settle(RealtimeConnectionError(f"WebSocket connection error: {error}"))

    def _on_close(self, code: Optional[int], reason: str = "") -> None:
        logger.info("WebSocket closed: %s %s", code, reason)
        self._state = ConnectionState.DISCONNECTED
        self._ws = None
        self.cleanup()
        self._settle(ConnectionClosed(code, reason))

    def _on_timeout(self) -> None:
        if not self._settle(ConnectTimeout(self._connect_timeout)):
            return
        logger.error("WebSocket connection timed out after %ss", self._connect_timeout)
        if self._open_task is not None and not self._open_task.done():
            self._open_task.cancel()
        ws, self._ws = self._ws, None
        if ws is not None:
            asyncio.ensure_future(ws.close())
        self._state = ConnectionState.DISCONNECTED
        self.cleanup()

    async def disconnect(self) -> None:
        """Close the socket and release audio resources. Idempotent."""
        if self._state == ConnectionState.CONNECTING:
            self._settle(ConnectionClosed(None, "disconnect requested"))
            if self._open_task is not None and not self._open_task.done():
                self._open_task.cancel()
        self._state = ConnectionState.CLOSING
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.warning("Error closing WebSocket: %s", e)
        task, self._receive_task = self._receive_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._state = ConnectionState.DISCONNECTED
        self.cleanup()
        logger.info("Disconnected")

    def cleanup(self) -> None:
        """Release microphone and playback resources. Idempotent."""
        capture, self._capture = self._capture, None
        if capture is not None:
            capture.stop()
        task, self._capture_task = self._capture_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._playback.close()

    # -- event dispatch -------------------------------------------------------

    def on(self, event_type: str, handler: Handler) -> None:
        self._handlers.on(event_type, handler)

    def off(self, event_type: str, handler: Handler) -> None:
        self._handlers.off(event_type, handler)

    def _setup_event_handlers(self) -> None:
        self.on("session.created", self._log_session_created)
        self.on("session.updated", self._log_session_updated)
        self.on("response.audio_transcript.delta", self._emit_transcript)
        self.on("response.audio.delta", self._play_audio_delta)
        self.on("response.done", self._finish_response)

    def _log_session_created(self, event: SessionCreated) -> None:
        logger.info("Session created: %s", event.session.get("id", "?"))

    def _log_session_updated(self, event: SessionUpdated) -> None:
        logger.info("Session updated")

    def _emit_transcript(self, event: AudioTranscriptDelta) -> None:
        self._handlers.dispatch("transcript", event.delta)

    def _play_audio_delta(self, event: AudioDelta) -> None:
        self._playback.on_audio_delta(event.delta)
        self._handlers.dispatch("audio", event.delta)

    def _finish_response(self, event: ResponseDone) -> None:
        logger.info("Response done")
        self._playback.on_response_done()
        self._handlers.dispatch("done", event)

    async def _receive_loop(self, ws: websockets.ClientConnection) -> None:
        """Main receive loop, run as an asyncio task while connected."""
        try:
            async for message in ws:
                self._handle_message(message)
        except websockets.ConnectionClosed:
            pass
        except Exception as e:
            logger.error("WebSocket receive error: %s", e)
        finally:
            if self._ws is ws:
                self._on_close(getattr(ws, "close_code", None), getattr(ws, "close_reason", "") or "")

    def _handle_message(self, message) -> None:
        if isinstance(message, bytes):
            logger.warning("Ignoring unexpected binary frame (%d bytes)", len(message))
            return
        try:
            event = parse_event(message)
        except EventParseError as e:
            logger.error("Failed to parse message: %s", e)
            return
        logger.debug("Received %s", event.type)

        if isinstance(event, ErrorEvent):
            error = RemoteProtocolError(
                event.error.message or event.error.type or "Realtime API error",
                error_type=event.error.type,
                code=event.error.code,
                event_id=event.event_id,
            )
            logger.error(
                "Realtime API error: type=%s code=%s message=%s event_id=%s",
                event.error.type, event.error.code, event.error.message, event.event_id,
            )
            self._handlers.dispatch("error", error)
            return

        self._handlers.dispatch(event.type, event)

    # -- microphone -----------------------------------------------------------

    def set_waveform_callback(self, callback: Optional[Callable[[np.ndarray], None]]) -> None:
        self._waveform_callback = callback

    async def start_microphone(self, device: Optional[int] = None) -> int:
        """Start streaming the microphone. Returns the capture rate; raises MicrophoneError."""
        if self._capture is not None:
            return self._capture_rate
        capture = self._capture_factory(
            audio_format=AudioFormat(sample_rate=self._capture_rate),
            frame_cfg=FrameConfig(frame_samples=CAPTURE_BLOCK_SAMPLES),
            constraints=CaptureConstraints(),
            device=device,
        )
        rate = await capture.start()
        if rate != SAMPLE_RATE:
            logger.warning("Microphone runs at %s Hz, resampling to %s Hz", rate, SAMPLE_RATE)
        self._capture = capture
        self._capture_task = asyncio.create_task(capture.drain(self._on_frame))
        logger.info("Microphone streaming started")
        return rate

    async def _on_frame(self, frame: AudioFrame) -> None:
        if not self.is_connected:
            return
        if self._waveform_callback is not None:
            try:
                self._waveform_callback(waveform_levels(frame.pcm))
            except Exception:
                logger.exception("Waveform callback failed")
        pcm = frame.pcm
        if frame.sample_rate != SAMPLE_RATE:
            pcm = resample(pcm, frame.sample_rate, SAMPLE_RATE)
        await self.send_audio(encode_audio(pcm))

    async def send_audio(self, base64_audio: str) -> None:
        """Send one ``input_audio_buffer.append`` event; a no-op when not connected."""
        if not self.is_connected:
            return
        try:
            await self._ws.send(InputAudioBufferAppend(audio=base64_audio).model_dump_json())
        except Exception as e:
            logger.error("Failed to send audio: %s", e)

    async def commit_audio(self) -> None:
        """Commit the server-side input buffer so the model responds."""
        if not self.is_connected:
            logger.warning("Cannot commit audio: WebSocket is not connected")
            return
        try:
            await self._ws.send(InputAudioBufferCommit().model_dump_json())
            logger.info("Input audio buffer committed")
        except Exception as e:
            logger.error("Failed to commit audio: %s", e)
