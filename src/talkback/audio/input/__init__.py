"""Audio input module."""

from .capture import MicrophoneCapture
from .errors import MicrophoneError, MicrophoneErrorKind
from .mic import Mic
from .recorder import Recorder
from .types import AudioFrame, AudioFormat, CaptureConstraints, FrameConfig

__all__ = [
    "MicrophoneCapture",
    "MicrophoneError",
    "MicrophoneErrorKind",
    "Mic",
    "Recorder",
    "AudioFrame",
    "AudioFormat",
    "CaptureConstraints",
    "FrameConfig",
]
