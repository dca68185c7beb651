"""Waveform renderer: amplitude bars from uint8 level data."""

from __future__ import annotations

from typing import List, Optional

import numpy as np
from textual.widget import Widget

# Eighth-block glyphs, index 0 is an empty cell.
BLOCKS = " ▁▂▃▄▅▆▇█"


def waveform_bars(levels: Optional[np.ndarray], width: int, height: int) -> List[float]:
    """
    Heights (in rows, 0..height) of `width` bars drawn from levels in [0, 255].

    Levels are split into `width` equal buckets and each bar takes its bucket's
    peak, so short frames stretch and long frames compress to the strip.
    """
    if width <= 0 or height <= 0:
        return []
    if levels is None or len(levels) == 0:
        return [0.0] * width
    data = np.asarray(levels, dtype=np.float32)
    edges = np.linspace(0, len(data), width + 1).astype(int)
    bars = []
    for start, end in zip(edges[:-1], edges[1:]):
        # A bucket can be empty when there are fewer levels than columns.
        peak = data[start:end].max() if end > start else data[min(start, len(data) - 1)]
        bars.append(float(peak) / 255.0 * height)
    return bars


def render_waveform(levels: Optional[np.ndarray], width: int, height: int) -> str:
    """Render bars bottom-up as rows of block characters."""
    bars = waveform_bars(levels, width, height)
    rows = []
    for row in range(height):
        floor = height - row - 1
        line = []
        for bar in bars:
            fill = min(max(bar - floor, 0.0), 1.0)
            line.append(BLOCKS[int(round(fill * (len(BLOCKS) - 1)))])
        rows.append("".join(line))
    return "\n".join(rows)


class Waveform(Widget):
    DEFAULT_CSS = """
    Waveform {
        height: 4;
        margin: 0 1;
        color: $accent;
        background: $surface;
    }
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._levels: Optional[np.ndarray] = None

    def update_levels(self, levels: Optional[np.ndarray]) -> None:
        self._levels = levels
        self.refresh()

    def clear(self) -> None:
        self.update_levels(None)

    def render(self) -> str:
        return render_waveform(self._levels, self.size.width, self.size.height)
