"""Raster targets the renderer paints on."""

from __future__ import annotations

from typing import Protocol, Sequence

import numpy as np
import PIL.Image


class Surface(Protocol):
    def clip_width(self) -> int: ...

    def clip_height(self) -> int: ...

    def fill_rect(self, x: int, y: int, width: int, height: int, color: Sequence[int]) -> None: ...


class ImageSurface:
    """Surface backed by an RGB Pillow image."""

    def __init__(self, width: int, height: int, background: Sequence[int] = (0, 0, 0)) -> None:
        self.image = PIL.Image.new("RGB", (max(width, 0), max(height, 0)), tuple(background))

    def clip_width(self) -> int:
        return self.image.width

    def clip_height(self) -> int:
        return self.image.height

    def fill_rect(self, x: int, y: int, width: int, height: int, color: Sequence[int]) -> None:
        if width <= 0 or height <= 0:
            return
        self.image.paste(tuple(int(c) for c in color), (x, y, x + width, y + height))

    def to_array(self) -> np.ndarray:
        return np.asarray(self.image)
