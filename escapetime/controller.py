"""View state owner: turns input events into transform updates and resets."""

from __future__ import annotations

import time
from typing import Callable, Optional

import numpy as np

from .kernels import FractalParams, Variant
from .ramp import ColorRamp
from .renderer import BUDGET_SECONDS, ProgressiveRenderer, RenderProgress
from .surface import Surface
from .transform import ViewTransform

WHEEL_ZOOM = 1.1
MANDELBROT_VIEW = ViewTransform(pan_x=684.0, pan_y=453.0, zoom=304.48)


def default_transform(variant: Variant) -> ViewTransform:
    if variant is Variant.MANDELBROT:
        return MANDELBROT_VIEW
    return ViewTransform()


class ViewController:
    """Own the view of one surface and drive its progressive renderer.

    Every view or parameter change discards the in-progress pass; the next
    ``tick`` starts again from the coarsest chunk size.
    """

    def __init__(
        self,
        width: int,
        height: int,
        params: Optional[FractalParams] = None,
        transform: Optional[ViewTransform] = None,
        ramp: Optional[ColorRamp] = None,
        *,
        budget: float = BUDGET_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        show_axes: bool = True,
        device: Optional[str] = None,
    ) -> None:
        _check_size(width, height)
        self.width = width
        self.height = height
        self.params = params if params is not None else FractalParams()
        self.transform = transform if transform is not None else default_transform(self.params.variant)
        self.probe: Optional[tuple[float, float]] = None
        self._ramp = ramp
        self._renderer_options = dict(budget=budget, clock=clock, show_axes=show_axes, device=device)
        self.renderer = ProgressiveRenderer(self.params, ramp, **self._renderer_options)
        self.progress = RenderProgress()

    def reset(self) -> None:
        self.progress = RenderProgress()

    def on_pan(self, dx: float, dy: float) -> None:
        self.transform = self.transform.panned(dx, dy)
        self.reset()

    def on_zoom(self, factor: float, pivot_x: float, pivot_y: float) -> None:
        if not factor > 0:
            raise ValueError(f"zoom factor must be positive, got {factor!r}.")
        self.transform = self.transform.zoomed(factor, pivot_x, pivot_y, self.height)
        self.reset()

    def on_wheel(self, rotation: int, pivot_x: float, pivot_y: float) -> None:
        """One notch toward the user (negative rotation) zooms in by 10%."""

        self.on_zoom(WHEEL_ZOOM ** -rotation, pivot_x, pivot_y)

    def on_resize(self, width: int, height: int) -> None:
        _check_size(width, height)
        self.width = width
        self.height = height
        self.reset()

    def on_probe(self, world_x: float, world_y: float) -> np.ndarray:
        self.probe = (world_x, world_y)
        path = self.renderer.set_probe(world_x, world_y)
        self.reset()
        return path

    def on_probe_screen(self, screen_x: float, screen_y: float) -> np.ndarray:
        world_x, world_y = self.transform.to_world(screen_x, screen_y, self.height)
        return self.on_probe(world_x, world_y)

    def set_params(self, params: FractalParams) -> None:
        self.params = params
        self.renderer = ProgressiveRenderer(params, self._ramp, **self._renderer_options)
        if self.probe is not None:
            self.renderer.set_probe(*self.probe)
        self.reset()

    def tick(self, surface: Surface) -> RenderProgress:
        transform, progress = self.transform, self.progress
        self.progress = self.renderer.render_frame(surface, transform, progress)
        return self.progress

    def status(self) -> str:
        center_x, center_y = self.transform.center(self.width, self.height)
        return "x: {0}, y: {1}, zoom: {2}".format(center_x, center_y, self.transform.zoom)


def _check_size(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"surface size must be positive, got {width}x{height}.")
