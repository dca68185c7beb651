"""Playback worker: AudioChunk queue -> sounddevice output."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional

import numpy as np
import sounddevice as sd

from ...core.shutdown import StopSignal
from .types import AudioChunk

logger = logging.getLogger("Speaker")


class PlaybackWorker(threading.Thread):
    """
    Consumes AudioChunk from queue and writes it to one sounddevice OutputStream.

    Chunks play back to back in queue order; a chunk that arrives while the
    previous one is still sounding waits for it instead of overlapping it.
    """

    def __init__(
        self,
        *,
        name: str,
        stop_signal: StopSignal,
        audio_chunk_queue: "queue.Queue[AudioChunk]",
        daemon: bool = True,
    ):
        super().__init__(name=name, daemon=daemon)
        self._stop_signal = stop_signal
        self._audio_chunk_queue = audio_chunk_queue
        self._stream: Optional[sd.OutputStream] = None

    def _ensure_stream(self, chunk: AudioChunk) -> sd.OutputStream:
        if self._stream is not None and int(self._stream.samplerate) != chunk.sample_rate:
            self._close_stream()
        if self._stream is None:
            logger.info("PlaybackWorker: opening OutputStream sr=%s ch=%s", chunk.sample_rate, chunk.channels)
            self._stream = sd.OutputStream(
                samplerate=chunk.sample_rate,
                channels=chunk.channels,
                dtype="float32",
            )
            self._stream.start()
        return self._stream

    def _close_stream(self) -> None:
        if self._stream is None:
            return
        try:
            if self._stream.active:
                self._stream.stop()
            self._stream.close()
        except Exception as e:
            logger.warning("Error closing playback stream: %s", e)
        self._stream = None

    def run(self) -> None:
        logger.info("PlaybackWorker started")
        try:
            while not self._stop_signal.is_set():
                try:
                    chunk = self._audio_chunk_queue.get(timeout=0.5)
                except queue.Empty:
                    continue
                try:
                    stream = self._ensure_stream(chunk)
                    stream.write(np.asarray(chunk.samples, dtype=np.float32).reshape(-1, chunk.channels))
                except Exception as e:
                    logger.warning("PlaybackWorker: stream error: %s", e, exc_info=True)
                    self._close_stream()
        finally:
            self._close_stream()
            logger.info("PlaybackWorker stopped")
