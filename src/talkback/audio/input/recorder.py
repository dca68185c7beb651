"""Discrete recording: capture one utterance and hand it back as a WAV file."""

from __future__ import annotations

import logging
import queue
from typing import List, Optional

import numpy as np

from ...core.errors import NoAudioError
from ...core.shutdown import GracefulShutdown
from ..codec import float32_to_wav, waveform_levels
from .mic import Mic
from .types import AudioFormat, AudioFrame, CaptureConstraints, FrameConfig

logger = logging.getLogger("Recorder")


class Recorder:
    """
    Records from the default input until stop() and returns 16-bit mono WAV bytes.

    Frames are collected as they arrive so that the latest one can drive a
    waveform display while recording.
    """

    def __init__(
        self,
        audio_format: AudioFormat = AudioFormat(),
        frame_cfg: FrameConfig = FrameConfig(frame_samples=2400),
        device: Optional[int] = None,
    ):
        self._audio_format = audio_format
        self._frame_cfg = frame_cfg
        self._device = device
        self._shutdown: Optional[GracefulShutdown] = None
        self._mic: Optional[Mic] = None
        self._frames_queue: queue.Queue[AudioFrame] = queue.Queue(maxsize=frame_cfg.max_frames_queue)
        self._frames: List[AudioFrame] = []

    @property
    def is_recording(self) -> bool:
        return self._mic is not None

    def start(self) -> None:
        """Begin recording. Raises MicrophoneError if the device cannot be opened."""
        if self._mic is not None:
            return
        self._frames = []
        self._shutdown = GracefulShutdown()
        self._mic = Mic(
            stop_signal=self._shutdown,
            audio_format=self._audio_format,
            frame_cfg=self._frame_cfg,
            frames_queue=self._frames_queue,
            constraints=CaptureConstraints(),
            device=self._device,
        )
        self._mic.start()
        try:
            self._mic.wait_ready()
        except Exception:
            self._release()
            raise
        logger.info("Recording started")

    def _collect(self) -> None:
        while True:
            try:
                self._frames.append(self._frames_queue.get_nowait())
            except queue.Empty:
                return

    def levels(self) -> Optional[np.ndarray]:
        """Waveform levels of the most recent frame, or None before the first one."""
        self._collect()
        if not self._frames:
            return None
        return waveform_levels(self._frames[-1].pcm)

    def stop(self) -> bytes:
        """Stop recording and return the captured audio as WAV bytes."""
        if self._mic is None:
            raise NoAudioError("Recording was not started.")
        sample_rate = self._mic.sample_rate or self._audio_format.sample_rate
        self._release()
        self._collect()
        if not self._frames:
            raise NoAudioError("No audio was recorded.")
        samples = np.concatenate([f.pcm for f in self._frames])
        self._frames = []
        logger.info("Recording stopped: %d samples at %d Hz", len(samples), sample_rate)
        return float32_to_wav(samples, sample_rate)

    def _release(self) -> None:
        if self._shutdown is not None:
            self._shutdown.stop()
        if self._mic is not None and self._mic.is_alive():
            self._mic.join(timeout=2)
        self._mic = None
        self._shutdown = None

    def cleanup(self) -> None:
        self._release()
        self._frames = []
