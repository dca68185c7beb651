"""Inbound audio: base64 PCM16 deltas -> PlaybackBuffer -> PlaybackWorker."""

from __future__ import annotations

import logging
import queue
from typing import List, Optional

import numpy as np

from ...core.shutdown import GracefulShutdown
from ..codec import SAMPLE_RATE, decode_audio
from .playback_worker import PlaybackWorker
from .types import AudioChunk

logger = logging.getLogger("AudioPlayback")

# Buffered deltas that trigger a flush before the response is complete.
FLUSH_THRESHOLD = 2


class PlaybackBuffer:
    """Ordered list of decoded chunks waiting to be concatenated and played."""

    def __init__(self, flush_threshold: int = FLUSH_THRESHOLD):
        self._flush_threshold = flush_threshold
        self._chunks: List[np.ndarray] = []

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def pending_samples(self) -> int:
        return sum(len(c) for c in self._chunks)

    def append(self, samples: np.ndarray) -> Optional[np.ndarray]:
        """Add a chunk; returns the flushed samples once the threshold is reached."""
        self._chunks.append(samples)
        if len(self._chunks) >= self._flush_threshold:
            return self.flush()
        return None

    def flush(self) -> Optional[np.ndarray]:
        """Concatenate buffered chunks in arrival order and clear. None when empty."""
        if not self._chunks:
            return None
        combined = np.concatenate(self._chunks).astype(np.float32, copy=False)
        self._chunks = []
        return combined

    def clear(self) -> None:
        self._chunks = []


class AudioPlayback:
    """
    Decodes realtime audio deltas and plays them through a PlaybackWorker.

    The worker thread and its output stream are created on first use and
    released by close(); a closed playback can be reopened.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE, flush_threshold: int = FLUSH_THRESHOLD):
        self._sample_rate = sample_rate
        self._buffer = PlaybackBuffer(flush_threshold)
        self._chunk_queue: queue.Queue[AudioChunk] = queue.Queue()
        self._shutdown: Optional[GracefulShutdown] = None
        self._worker: Optional[PlaybackWorker] = None

    @property
    def buffer(self) -> PlaybackBuffer:
        return self._buffer

    @property
    def is_open(self) -> bool:
        return self._worker is not None

    def _ensure_worker(self) -> None:
        if self._worker is not None:
            return
        self._shutdown = GracefulShutdown()
        self._worker = PlaybackWorker(
            name="PlaybackThread",
            stop_signal=self._shutdown,
            audio_chunk_queue=self._chunk_queue,
        )
        self._worker.start()

    def on_audio_delta(self, delta: str) -> None:
        """Decode one base64 PCM16 delta and buffer it, flushing at the threshold."""
        samples = decode_audio(delta)
        flushed = self._buffer.append(samples)
        if flushed is not None:
            self.play(flushed)

    def on_response_done(self) -> None:
        """Play whatever is left of the current response."""
        flushed = self._buffer.flush()
        if flushed is not None:
            self.play(flushed)

    def play(self, samples: np.ndarray) -> None:
        self._ensure_worker()
        chunk = AudioChunk(samples=samples, sample_rate=self._sample_rate)
        logger.debug("Queueing %d samples (%.2fs) for playback", len(samples), chunk.duration_s)
        self._chunk_queue.put_nowait(chunk)

    def close(self) -> None:
        """Stop the worker, drop pending audio. Safe to call repeatedly."""
        self._buffer.clear()
        with self._chunk_queue.mutex:
            self._chunk_queue.queue.clear()
        if self._worker is None:
            return
        self._shutdown.stop()
        self._worker.join(timeout=2)
        self._worker = None
        self._shutdown = None
