"""Streaming capture: Mic thread -> asyncio consumer."""

from __future__ import annotations

import asyncio
import logging
import queue
from typing import Awaitable, Callable, Optional

from ...core.shutdown import GracefulShutdown
from .mic import Mic
from .types import AudioFormat, AudioFrame, CaptureConstraints, FrameConfig

logger = logging.getLogger("AudioCapture")


class MicrophoneCapture:
    """
    Owns one Mic thread and hands its frames to an async consumer.

    A capture is single-use: stop() ends the Mic thread for good.
    """

    def __init__(
        self,
        audio_format: AudioFormat = AudioFormat(),
        frame_cfg: FrameConfig = FrameConfig(),
        constraints: CaptureConstraints = CaptureConstraints(),
        device: Optional[int] = None,
    ):
        self._shutdown = GracefulShutdown()
        self._frames_queue: queue.Queue[AudioFrame] = queue.Queue(maxsize=frame_cfg.max_frames_queue)
        self._mic = Mic(
            stop_signal=self._shutdown,
            audio_format=audio_format,
            frame_cfg=frame_cfg,
            frames_queue=self._frames_queue,
            constraints=constraints,
            device=device,
        )

    @property
    def is_running(self) -> bool:
        return not self._shutdown.is_set()

    async def start(self) -> int:
        """Start the Mic thread and wait for the device. Raises MicrophoneError."""
        self._mic.start()
        try:
            return await asyncio.to_thread(self._mic.wait_ready)
        except Exception:
            self._shutdown.stop()
            raise

    async def drain(self, on_frame: Callable[[AudioFrame], Awaitable[None]]) -> None:
        """
        Async loop: hand every captured frame to on_frame until stopped.

        Args:
            on_frame: async callable invoked once per frame, in capture order.
        """
        while not self._shutdown.is_set():
            try:
                frame = self._frames_queue.get_nowait()
            except queue.Empty:
                await asyncio.sleep(0.01)
                continue
            await on_frame(frame)

    def stop(self) -> None:
        """Stop capture and wait for the Mic thread."""
        self._shutdown.stop()
        if self._mic.is_alive():
            self._mic.join(timeout=2)
