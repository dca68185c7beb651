"""Audio output data types."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class AudioChunk:
    """One flushed block of float32 mono samples ready for the output device."""

    samples: np.ndarray
    sample_rate: int = 24000
    channels: int = 1

    @property
    def duration_s(self) -> float:
        return len(self.samples) / self.sample_rate
