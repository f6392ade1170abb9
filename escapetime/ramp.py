"""Color lookup for escape counts."""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np
from matplotlib import colormaps

from .kernels import TILE_EVEN, TILE_ODD, TILE_OUTSIDE

RGB = tuple[int, int, int]

INSIDE_COLOR: RGB = (0, 0, 0)

TILE_COLORS: dict[int, RGB] = {
    TILE_EVEN: (255, 255, 255),
    TILE_ODD: (0, 0, 0),
    TILE_OUTSIDE: (128, 128, 128),
}

# (fraction of the iteration cap, color)
_DEFAULT_STOPS = (
    (0.0, (0, 7, 100)),
    (0.08, (32, 107, 203)),
    (0.25, (237, 255, 255)),
    (0.5, (255, 170, 0)),
    (0.85, (0, 2, 0)),
)


class ColorRamp:
    """Piecewise-linear map from iteration count to color.

    Points are appended in strictly increasing threshold order; the ramp does
    not sort or validate them. Counts below the first threshold take the first
    color and counts above the last threshold take the last color.
    """

    def __init__(self, points: Iterable[tuple[float, Sequence[int]]] = ()) -> None:
        self._thresholds: list[float] = []
        self._colors: list[RGB] = []
        for threshold, color in points:
            self.add_point(threshold, color)

    def __len__(self) -> int:
        return len(self._thresholds)

    @property
    def points(self) -> list[tuple[float, RGB]]:
        return list(zip(self._thresholds, self._colors))

    def add_point(self, threshold: float, color: Sequence[int]) -> "ColorRamp":
        self._thresholds.append(float(threshold))
        self._colors.append(tuple(int(c) for c in color))
        return self

    def colors_for(self, counts) -> np.ndarray:
        """Vectorised lookup; returns a ``(..., 3)`` uint8 array."""

        counts = np.asarray(counts, dtype=np.float64)
        thresholds = np.asarray(self._thresholds, dtype=np.float64)
        colors = np.asarray(self._colors, dtype=np.float64)
        channels = [np.interp(counts, thresholds, colors[:, k]) for k in (0, 1, 2)]
        rgb = np.stack(channels, axis=-1)
        return np.uint8(np.clip(np.rint(rgb), 0, 255))

    def color_for(self, count: float) -> RGB:
        r, g, b = self.colors_for(count)
        return int(r), int(g), int(b)

    @classmethod
    def from_colormap(cls, name: str, thresholds: Sequence[float]) -> "ColorRamp":
        """Sample a matplotlib colormap at evenly spaced positions."""

        cmap = colormaps[name]
        if len(thresholds) > 1:
            positions = np.linspace(0.0, 1.0, len(thresholds))
        else:
            positions = np.zeros(len(thresholds))
        rgba = np.array(cmap(positions), copy=True)
        rgb = np.uint8(np.clip(rgba[:, :3] * 255, 0, 255))
        return cls(zip(thresholds, rgb))


def default_ramp(max_iterations: int) -> ColorRamp:
    """Stock ramp spanning ``[0, max_iterations]``, inside points black."""

    if max_iterations < 1:
        return ColorRamp([(0, INSIDE_COLOR)])
    ramp = ColorRamp((fraction * max_iterations, color) for fraction, color in _DEFAULT_STOPS)
    ramp.add_point(max_iterations, INSIDE_COLOR)
    return ramp


def colormap_ramp(name: str, max_iterations: int, stops: int = 8) -> ColorRamp:
    """Ramp from a matplotlib colormap, with the inside color at the cap."""

    if max_iterations < 1:
        return ColorRamp([(0, INSIDE_COLOR)])
    thresholds = list(np.linspace(0.0, max_iterations, stops + 1)[:-1])
    ramp = ColorRamp.from_colormap(name, thresholds)
    ramp.add_point(max_iterations, INSIDE_COLOR)
    return ramp


def tile_colors(tiles) -> np.ndarray:
    """Two-color (plus outside) palette for the tiling variants."""

    palette = np.array([TILE_COLORS[k] for k in sorted(TILE_COLORS)], dtype=np.uint8)
    return palette[np.asarray(tiles, dtype=np.int64)]
