"""Escape-time kernels for the supported fractal variants."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
import tensorflow as tf

TILE_EVEN = 0
TILE_ODD = 1
TILE_OUTSIDE = 2

TETRATION_CAP = 16
TETRATION_BASE = math.sqrt(2.0)
HEART_ESCAPE_LIMIT = 10 ** 7
HORIZON_SQUARED = 4.0

_POINTS = tf.TensorSpec(shape=[None], dtype=tf.float64)
_CAP = tf.TensorSpec(shape=[], dtype=tf.int32)
_RADIUS = tf.TensorSpec(shape=[], dtype=tf.float64)


class Variant(enum.Enum):
    FLAT = "flat"
    HYPERBOLIC = "hyperbolic"
    MANDELBROT = "mandelbrot"
    TETRATION = "tetration"
    HEART = "heart"


@dataclass(frozen=True)
class FractalParams:
    """Parameters shared by every point of a render session."""

    variant: Variant = Variant.MANDELBROT
    max_iterations: int = 50
    escape_radius_squared: float = HORIZON_SQUARED

    def __post_init__(self) -> None:
        if self.max_iterations < 0:
            raise ValueError("max_iterations must be non-negative.")

    @classmethod
    def for_variant(cls, variant: Variant, max_iterations: int = 50) -> "FractalParams":
        if variant is Variant.HEART:
            radius_squared = float(HEART_ESCAPE_LIMIT) * float(HEART_ESCAPE_LIMIT)
        else:
            radius_squared = HORIZON_SQUARED
        return cls(variant=variant, max_iterations=max_iterations, escape_radius_squared=radius_squared)


# Start states, step rules and escape metrics of the iterating variants.

def _start_at_zero(cx: tf.Tensor, cy: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor]:
    return tf.zeros_like(cx), tf.zeros_like(cy)


def _start_at_point(cx: tf.Tensor, cy: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor]:
    return tf.identity(cx), tf.identity(cy)


def _mandelbrot_step(xs: tf.Tensor, ys: tf.Tensor, cx: tf.Tensor, cy: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor]:
    return xs * xs - ys * ys + cx, 2.0 * xs * ys + cy


def _heart_step(xs: tf.Tensor, ys: tf.Tensor, cx: tf.Tensor, cy: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor]:
    xs_new = xs * xs - ys * ys + cx
    return xs_new * xs_new, 2.0 * xs * ys + cy


def _tetration_step(xs: tf.Tensor, ys: tf.Tensor, cx: tf.Tensor, cy: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor]:
    base = tf.constant(TETRATION_BASE, dtype=xs.dtype)
    magnitude = tf.pow(base, xs)
    angle = ys * tf.math.log(base)
    return magnitude * tf.cos(angle), magnitude * tf.sin(angle)


def _modulus_squared(xs: tf.Tensor, ys: tf.Tensor) -> tf.Tensor:
    return xs * xs + ys * ys


def _absolute_sum(xs: tf.Tensor, ys: tf.Tensor) -> tf.Tensor:
    # |x + y|, not the modulus; the rendered shape depends on it.
    return tf.abs(xs + ys)


def _bounded(metric: tf.Tensor, radius_squared: tf.Tensor) -> tf.Tensor:
    """True while a point has not escaped. NaN stays bounded; graph rewriting
    turns ``not(a >= b)`` into ``a < b``, so the NaN test must stay explicit.
    """

    return tf.logical_or(metric < radius_squared, tf.math.is_nan(metric))


def _checkerboard(us: tf.Tensor, vs: tf.Tensor) -> tf.Tensor:
    parity = tf.math.floormod(tf.floor(us) + tf.floor(vs), 2.0)
    return tf.cast(tf.equal(parity, 1.0), tf.int32) * TILE_ODD


class IterationKernel:
    """Iterate a step rule until the escape metric reaches the radius or the cap is hit."""

    iterative = True

    def __init__(
        self,
        start: Callable,
        step: Callable,
        metric: Callable,
        fixed_cap: Optional[int] = None,
    ) -> None:
        self.start = start
        self.step = step
        self.metric = metric
        self.fixed_cap = fixed_cap
        self.run = tf.function(self._run, input_signature=[_POINTS, _POINTS, _CAP, _RADIUS])

    def cap(self, params: FractalParams) -> int:
        return self.fixed_cap if self.fixed_cap is not None else int(params.max_iterations)

    def _run(self, cx: tf.Tensor, cy: tf.Tensor, cap: tf.Tensor, radius_squared: tf.Tensor) -> tf.Tensor:
        xs, ys = self.start(cx, cy)
        ns = tf.zeros_like(cx, dtype=tf.int32)
        active = _bounded(self.metric(xs, ys), radius_squared)
        i = tf.constant(0, dtype=tf.int32)

        def cond(i, xs, ys, ns, active):
            return tf.logical_and(tf.less(i, cap), tf.reduce_any(active))

        def body(i, xs, ys, ns, active):
            xs_new, ys_new = self.step(xs, ys, cx, cy)
            xs = tf.where(active, xs_new, xs)
            ys = tf.where(active, ys_new, ys)
            ns = ns + tf.cast(active, tf.int32)
            active = tf.logical_and(active, _bounded(self.metric(xs, ys), radius_squared))
            return i + 1, xs, ys, ns, active

        _, _, _, ns, _ = tf.while_loop(cond, body, (i, xs, ys, ns, active))
        return ns

    def evaluate(self, cx: tf.Tensor, cy: tf.Tensor, params: FractalParams) -> tf.Tensor:
        cap = tf.constant(self.cap(params), dtype=tf.int32)
        radius_squared = tf.constant(params.escape_radius_squared, dtype=tf.float64)
        return self.run(cx, cy, cap, radius_squared)

    def orbit(self, x: float, y: float, params: FractalParams) -> np.ndarray:
        cx = tf.constant([x], dtype=tf.float64)
        cy = tf.constant([y], dtype=tf.float64)
        radius_squared = tf.constant(params.escape_radius_squared, dtype=tf.float64)
        xs, ys = self.start(cx, cy)
        points = []
        for _ in range(self.cap(params)):
            if not bool(_bounded(self.metric(xs, ys), radius_squared).numpy()[0]):
                break
            xs, ys = self.step(xs, ys, cx, cy)
            points.append((float(xs.numpy()[0]), float(ys.numpy()[0])))
        return np.array(points, dtype=np.float64).reshape(-1, 2)


class TilingKernel:
    """Classify points into checkerboard tiles; no iteration."""

    iterative = False

    def __init__(self, classify: Callable) -> None:
        self.run = tf.function(classify, input_signature=[_POINTS, _POINTS])

    def cap(self, params: FractalParams) -> int:
        return TILE_OUTSIDE

    def evaluate(self, cx: tf.Tensor, cy: tf.Tensor, params: FractalParams) -> tf.Tensor:
        return self.run(cx, cy)

    def orbit(self, x: float, y: float, params: FractalParams) -> np.ndarray:
        return np.empty((0, 2), dtype=np.float64)


def _flat_tiles(cx: tf.Tensor, cy: tf.Tensor) -> tf.Tensor:
    return _checkerboard(cx, cy)


def _hyperbolic_tiles(cx: tf.Tensor, cy: tf.Tensor) -> tf.Tensor:
    r = tf.sqrt(cx * cx + cy * cy)
    scale = 5.0 / (r - 1.0)
    tiles = _checkerboard(cx * scale, cy * scale)
    return tf.where(r > 1.0, tf.ones_like(tiles) * TILE_OUTSIDE, tiles)


KERNELS = {
    Variant.FLAT: TilingKernel(_flat_tiles),
    Variant.HYPERBOLIC: TilingKernel(_hyperbolic_tiles),
    Variant.MANDELBROT: IterationKernel(_start_at_zero, _mandelbrot_step, _absolute_sum),
    Variant.TETRATION: IterationKernel(_start_at_point, _tetration_step, _modulus_squared, fixed_cap=TETRATION_CAP),
    Variant.HEART: IterationKernel(_start_at_zero, _heart_step, _modulus_squared),
}


def kernel_for(params: FractalParams):
    return KERNELS[params.variant]


def iteration_cap(params: FractalParams) -> int:
    """Largest count ``escape_counts`` can return for ``params``."""

    return kernel_for(params).cap(params)


def escape_counts(xs, ys, params: FractalParams, *, device: Optional[str] = None) -> np.ndarray:
    """Compute escape counts for arrays of world coordinates."""

    x, y = np.broadcast_arrays(np.asarray(xs, dtype=np.float64), np.asarray(ys, dtype=np.float64))
    if x.size == 0:
        return np.zeros(x.shape, dtype=np.int32)

    kernel = kernel_for(params)

    with tf.device(device if device is not None else "/CPU:0"):
        x_tf = tf.convert_to_tensor(x.ravel(), dtype=tf.float64)
        y_tf = tf.convert_to_tensor(y.ravel(), dtype=tf.float64)
        ns = kernel.evaluate(x_tf, y_tf, params)

    return ns.numpy().astype(np.int32).reshape(x.shape)


def escape_count(x: float, y: float, params: FractalParams) -> int:
    """Escape count of a single world point."""

    return int(escape_counts(np.array([x]), np.array([y]), params)[0])


def orbit(x: float, y: float, params: FractalParams) -> np.ndarray:
    """Return the iterates visited from ``(x, y)`` as an ``(n, 2)`` array."""

    return kernel_for(params).orbit(float(x), float(y), params)
