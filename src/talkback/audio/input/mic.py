"""Microphone audio capture."""

from __future__ import annotations

import threading
import queue
import time
import logging
from typing import Optional

import numpy as np
import sounddevice as sd

from ...core.shutdown import StopSignal
from .errors import MicrophoneError, MicrophoneErrorKind, microphone_error
from .types import AudioFormat, AudioFrame, CaptureConstraints, FrameConfig

logger = logging.getLogger("Mic")


class Mic(threading.Thread):
    """
    Continuously captures microphone audio and pushes AudioFrame into frames_queue.

    The stream is opened on this thread; callers use wait_ready() to learn whether
    the device was acquired. Keep the callback lightweight: no encoding here.
    """

    def __init__(
        self,
        stop_signal: StopSignal,
        audio_format: AudioFormat,
        frame_cfg: FrameConfig,
        frames_queue: queue.Queue[AudioFrame],
        constraints: CaptureConstraints = CaptureConstraints(),
        device: Optional[int] = None,
    ):
        super().__init__(name="MicThread", daemon=True)
        self._stop_signal = stop_signal
        self._audio_format = audio_format
        self._frame_cfg = frame_cfg
        self._frames_queue = frames_queue
        self._constraints = constraints
        self._device = device
        self._ready = threading.Event()
        self._error: Optional[MicrophoneError] = None
        self.sample_rate: Optional[int] = None

    def wait_ready(self, timeout: float = 5.0) -> int:
        """Block until the input stream is open. Returns the actual sample rate."""
        if not self._ready.wait(timeout):
            raise MicrophoneError(
                MicrophoneErrorKind.UNKNOWN,
                f"Microphone did not start within {timeout:g}s",
            )
        if self._error is not None:
            raise self._error
        return self.sample_rate

    def _audio_callback(self, indata, frames, time_info, status):
        if status:
            logger.warning(f"Audio callback status: {status}")

        # indata shape is (frames, channels), we take first channel
        if indata.ndim > 1 and indata.shape[1] > 0:
            pcm = indata[:, 0].astype(np.float32)
        else:
            pcm = indata.flatten().astype(np.float32)

        frame = AudioFrame(
            pcm=pcm,
            sample_rate=self.sample_rate,
            timestamp_s=time.time()
        )

        try:
            self._frames_queue.put_nowait(frame)
        except queue.Full:
            logger.warning("Frames queue is full, dropping audio frame")

    def _open_stream(self, samplerate: Optional[int]) -> sd.InputStream:
        stream = sd.InputStream(
            callback=self._audio_callback,
            samplerate=samplerate,
            channels=self._audio_format.channels,
            blocksize=self._frame_cfg.frame_samples,
            dtype=self._audio_format.dtype,
            device=self._device,
        )
        self.sample_rate = int(stream.samplerate)
        return stream

    def run(self) -> None:
        """Open the input stream and keep it alive until the stop signal is set."""
        logger.info(
            "Requesting microphone: rate=%s echo_cancellation=%s noise_suppression=%s auto_gain_control=%s",
            self._audio_format.sample_rate,
            self._constraints.echo_cancellation,
            self._constraints.noise_suppression,
            self._constraints.auto_gain_control,
        )
        try:
            try:
                stream = self._open_stream(self._audio_format.sample_rate)
            except sd.PortAudioError as e:
                if "sample rate" not in str(e).lower():
                    raise
                logger.warning(
                    "Device rejected %d Hz, falling back to its default rate: %s",
                    self._audio_format.sample_rate, e,
                )
                stream = self._open_stream(None)
            stream.start()
        except Exception as e:
            self._error = microphone_error(e, constraint="sampleRate")
            logger.error(f"Failed to open microphone: {e}", exc_info=True)
            self._ready.set()
            return

        logger.info("Microphone stream open, sample_rate=%s", self.sample_rate)
        self._ready.set()
        try:
            while not self._stop_signal.is_set():
                time.sleep(0.1)
        finally:
            try:
                stream.stop()
                stream.close()
            except Exception as e:
                logger.warning("Error closing microphone stream: %s", e)
            logger.info("Microphone capture stopped")
