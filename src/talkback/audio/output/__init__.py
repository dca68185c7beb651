"""Audio output module."""

from .playback import AudioPlayback, PlaybackBuffer, FLUSH_THRESHOLD
from .playback_worker import PlaybackWorker
from .types import AudioChunk

__all__ = ["AudioPlayback", "PlaybackBuffer", "FLUSH_THRESHOLD", "PlaybackWorker", "AudioChunk"]
