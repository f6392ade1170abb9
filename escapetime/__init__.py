"""Public API for progressive escape-time rendering."""

from .controller import ViewController, default_transform
from .kernels import (
    FractalParams,
    TILE_EVEN,
    TILE_ODD,
    TILE_OUTSIDE,
    Variant,
    escape_count,
    escape_counts,
    iteration_cap,
    orbit,
)
from .ramp import ColorRamp, colormap_ramp, default_ramp, tile_colors
from .renderer import ProgressiveRenderer, RenderProgress
from .surface import ImageSurface, Surface
from .transform import ViewTransform

__all__ = [
    "ColorRamp",
    "FractalParams",
    "ImageSurface",
    "ProgressiveRenderer",
    "RenderProgress",
    "Surface",
    "TILE_EVEN",
    "TILE_ODD",
    "TILE_OUTSIDE",
    "Variant",
    "ViewController",
    "ViewTransform",
    "colormap_ramp",
    "default_ramp",
    "default_transform",
    "escape_count",
    "escape_counts",
    "iteration_cap",
    "orbit",
    "tile_colors",
]
