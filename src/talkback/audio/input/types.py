"""Audio input data types and configuration."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class AudioFrame:
    """Single audio frame from the microphone."""
    pcm: np.ndarray          # shape: (n_samples,) float32
    sample_rate: int
    timestamp_s: float


@dataclass(frozen=True)
class AudioFormat:
    """Audio format specification."""
    sample_rate: int = 24000
    channels: int = 1
    dtype: str = "float32"  # sounddevice dtype name


@dataclass(frozen=True)
class FrameConfig:
    """Capture block configuration."""
    frame_samples: int = 4096
    max_frames_queue: int = 400


@dataclass(frozen=True)
class CaptureConstraints:
    """Processing requested from the input device.

    PortAudio has no portable switch for these; they are honored when the
    host's default input already applies them (e.g. an echo-cancel source)
    and otherwise only logged.
    """
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True
