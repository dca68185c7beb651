"""Audio capture, playback and PCM16 codec helpers."""
