"""PCM16 codec helpers for the realtime voice API.

The wire format is signed 16-bit little-endian mono PCM, base64 encoded inside
JSON events. Locally audio is handled as float32 numpy arrays in [-1.0, 1.0].
"""

from __future__ import annotations

import base64
import io
import wave

import numpy as np

# Wire dtype: explicit little-endian regardless of host byte order.
PCM16_DTYPE = np.dtype("<i2")

# Realtime API sample rate for both directions.
SAMPLE_RATE = 24000


def float32_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Convert float samples to int16 with symmetric clipping.

    Positive values scale by 0x7FFF and negative values by 0x8000, so both
    full-scale ends map exactly onto the int16 range.
    """
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
    # Round to nearest so quantization error stays within half a step.
    return np.round(scaled).astype(PCM16_DTYPE)


def pcm16_to_float32(pcm: np.ndarray) -> np.ndarray:
    """Normalize int16 samples to float32 by dividing by 32768."""
    return np.asarray(pcm, dtype=PCM16_DTYPE).astype(np.float32) / 32768.0


def pcm16_bytes_to_float32(data: bytes) -> np.ndarray:
    """Reinterpret raw little-endian PCM16 bytes as normalized float32 samples.

    A trailing odd byte cannot form a sample and is ignored.
    """
    usable = len(data) - (len(data) % 2)
    return pcm16_to_float32(np.frombuffer(data[:usable], dtype=PCM16_DTYPE))


def encode_audio(samples: np.ndarray) -> str:
    """Float32 samples -> base64 PCM16 string for ``input_audio_buffer.append``."""
    return bytes_to_base64(float32_to_pcm16(samples).tobytes())


def decode_audio(data: str) -> np.ndarray:
    """Base64 PCM16 string from ``response.audio.delta`` -> float32 samples."""
    return pcm16_bytes_to_float32(base64_to_bytes(data))


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def base64_to_bytes(data: str) -> bytes:
    return base64.b64decode(data)


def waveform_levels(samples: np.ndarray) -> np.ndarray:
    """Magnitude of each sample as uint8 (``|x| * 255``) for the waveform display."""
    magnitude = np.abs(np.asarray(samples, dtype=np.float32)) * 255
    return np.clip(magnitude, 0, 255).astype(np.uint8)


def float32_to_wav(samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Pack mono float32 samples into a 16-bit PCM WAV file in memory."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(float32_to_pcm16(samples).tobytes())
    return buf.getvalue()


def resample(samples: np.ndarray, src_rate: int, dst_rate: int) -> np.ndarray:
    """Linear-interpolation resample of mono float32 audio."""
    if src_rate == dst_rate or len(samples) == 0:
        return samples
    dst_length = int(round(len(samples) * dst_rate / src_rate))
    src_idx = np.arange(len(samples), dtype=np.float64)
    dst_idx = np.linspace(0, len(samples) - 1, dst_length)
    return np.interp(dst_idx, src_idx, samples).astype(np.float32)
