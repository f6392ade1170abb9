"""Mapping between screen pixels and world coordinates."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class ViewTransform:
    """Pan offset and zoom factor of a view.

    Screen Y grows downward and world Y grows upward, so the surface height
    takes part in every conversion. Coordinates may be floats or numpy arrays.
    """

    pan_x: float = 0.0
    pan_y: float = 0.0
    zoom: float = 1.0

    def __post_init__(self) -> None:
        if not self.zoom > 0:
            raise ValueError(f"zoom must be positive, got {self.zoom!r}.")

    def to_world(self, screen_x, screen_y, height):
        world_x = (screen_x - self.pan_x) / self.zoom
        world_y = (height - screen_y - self.pan_y) / self.zoom
        return world_x, world_y

    def to_screen(self, world_x, world_y, height):
        screen_x = world_x * self.zoom + self.pan_x
        screen_y = height - world_y * self.zoom - self.pan_y
        return screen_x, screen_y

    def zoomed(self, factor: float, pivot_x: float, pivot_y: float, height: float) -> "ViewTransform":
        """Rescale by ``factor`` keeping the world point under the pivot fixed."""

        if not factor > 0:
            raise ValueError(f"zoom factor must be positive, got {factor!r}.")
        return replace(
            self,
            pan_x=factor * (self.pan_x - pivot_x) + pivot_x,
            pan_y=height - pivot_y - factor * (height - self.pan_y - pivot_y),
            zoom=self.zoom * factor,
        )

    def panned(self, dx: float, dy: float) -> "ViewTransform":
        return replace(self, pan_x=self.pan_x + dx, pan_y=self.pan_y - dy)

    def center(self, width: float, height: float) -> tuple[float, float]:
        return self.to_world(width / 2.0, height / 2.0, height)
