"""Progressive, time-sliced painting of escape-time fractals."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

import numpy as np

from .kernels import FractalParams, escape_counts, iteration_cap, kernel_for, orbit
from .ramp import ColorRamp, default_ramp, tile_colors
from .surface import Surface
from .transform import ViewTransform

BUDGET_SECONDS = 0.3
CHUNK_DIVISOR = 20

BACKGROUND = (0, 0, 0)
AXIS_COLOR = (255, 255, 255)
PROBE_COLOR = (255, 0, 0)
PROBE_MARKER = 3


@dataclass(frozen=True)
class RenderProgress:
    """Resumable state of a progressive render.

    ``chunk_size`` is -1 until the first frame of a cycle picks the coarsest
    size; it halves after every completed pass. ``resume_row`` is the next
    chunk-row to paint in the current pass.
    """

    chunk_size: int = -1
    resume_row: int = 0
    done: bool = False
    passes: int = 0

    @property
    def unset(self) -> bool:
        return self.chunk_size < 0 and not self.done


class ProgressiveRenderer:
    """Paint coarse chunks first, then refine in place within a time budget."""

    def __init__(
        self,
        params: FractalParams,
        ramp: Optional[ColorRamp] = None,
        *,
        budget: float = BUDGET_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        show_axes: bool = True,
        device: Optional[str] = None,
    ) -> None:
        self.params = params
        self.ramp = ramp if ramp is not None else default_ramp(iteration_cap(params))
        self.budget = budget
        self.clock = clock
        self.show_axes = show_axes
        self.device = device
        self.probe_orbit = np.empty((0, 2), dtype=np.float64)
        if kernel_for(params).iterative:
            self._colorize = self.ramp.colors_for
        else:
            self._colorize = tile_colors

    def set_probe(self, world_x: float, world_y: float) -> np.ndarray:
        self.probe_orbit = orbit(world_x, world_y, self.params)
        return self.probe_orbit

    def clear_probe(self) -> None:
        self.probe_orbit = np.empty((0, 2), dtype=np.float64)

    def render_frame(
        self,
        surface: Surface,
        transform: ViewTransform,
        progress: Optional[RenderProgress] = None,
    ) -> RenderProgress:
        """Paint until the image is complete or the budget is spent.

        Returns the progress to hand back on the next call. The surface is
        cleared only when a new cycle starts.
        """

        started = self.clock()
        if progress is None:
            progress = RenderProgress()
        if progress.done:
            return progress

        width = surface.clip_width()
        height = surface.clip_height()

        if progress.unset:
            surface.fill_rect(0, 0, width, height, BACKGROUND)
            # Surfaces shorter than the divisor get a single full-resolution pass.
            progress = RenderProgress(chunk_size=max(height // CHUNK_DIVISOR, 1))

        while not progress.done:
            chunk_size = progress.chunk_size
            nb_rows = height // chunk_size
            row = progress.resume_row
            if row < nb_rows:
                self._paint_row(surface, transform, width, height, row, chunk_size)
                row += 1
            if row >= nb_rows:
                progress = self._next_pass(progress, surface, transform)
            else:
                progress = replace(progress, resume_row=row)
            if self.clock() - started > self.budget:
                break

        return progress

    def _paint_row(
        self,
        surface: Surface,
        transform: ViewTransform,
        width: int,
        height: int,
        row: int,
        chunk_size: int,
    ) -> None:
        nb_cols = width // chunk_size
        if nb_cols == 0:
            return
        screen_x = (np.arange(nb_cols, dtype=np.float64) + 0.5) * chunk_size
        screen_y = np.full(nb_cols, (row + 0.5) * chunk_size, dtype=np.float64)
        world_x, world_y = transform.to_world(screen_x, screen_y, height)
        counts = escape_counts(world_x, world_y, self.params, device=self.device)
        colors = self._colorize(counts)

        top = row * chunk_size
        for col in range(nb_cols):
            r, g, b = colors[col]
            surface.fill_rect(col * chunk_size, top, chunk_size, chunk_size, (int(r), int(g), int(b)))

    def _next_pass(self, progress: RenderProgress, surface: Surface, transform: ViewTransform) -> RenderProgress:
        chunk_size = progress.chunk_size // 2
        done = chunk_size < 1
        if done:
            self._paint_overlays(surface, transform)
        return RenderProgress(chunk_size=chunk_size, resume_row=0, done=done, passes=progress.passes + 1)

    def _paint_overlays(self, surface: Surface, transform: ViewTransform) -> None:
        height = surface.clip_height()
        if self.show_axes:
            origin_x, origin_y = transform.to_screen(0.0, 0.0, height)
            unit_x, unit_y = transform.to_screen(1.0, 1.0, height)
            _fill_clipped(surface, origin_x, origin_y, unit_x, origin_y + 1, AXIS_COLOR)
            _fill_clipped(surface, origin_x, unit_y, origin_x + 1, origin_y, AXIS_COLOR)

        half = PROBE_MARKER // 2
        for world_x, world_y in self.probe_orbit:
            screen_x, screen_y = transform.to_screen(world_x, world_y, height)
            if not (np.isfinite(screen_x) and np.isfinite(screen_y)):
                continue
            left = int(np.floor(screen_x)) - half
            top = int(np.floor(screen_y)) - half
            _fill_clipped(surface, left, top, left + PROBE_MARKER, top + PROBE_MARKER, PROBE_COLOR)


def _fill_clipped(surface: Surface, x0: float, y0: float, x1: float, y1: float, color) -> None:
    width = surface.clip_width()
    height = surface.clip_height()
    left = max(int(np.floor(min(x0, x1))), 0)
    right = min(int(np.floor(max(x0, x1))), width)
    top = max(int(np.floor(min(y0, y1))), 0)
    bottom = min(int(np.floor(max(y0, y1))), height)
    if right > left and bottom > top:
        surface.fill_rect(left, top, right - left, bottom - top, color)
