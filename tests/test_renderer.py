import math
from collections import Counter

import numpy as np
import pytest

from escapetime import (
    FractalParams,
    ImageSurface,
    ProgressiveRenderer,
    RenderProgress,
    Variant,
    ViewTransform,
    escape_count,
    tile_colors,
)
from escapetime.renderer import AXIS_COLOR, BACKGROUND, PROBE_COLOR
from escapetime.ramp import TILE_COLORS

MANDELBROT = FractalParams(Variant.MANDELBROT, max_iterations=20)
FLAT = FractalParams.for_variant(Variant.FLAT)
VIEW = ViewTransform(pan_x=60.0, pan_y=50.0, zoom=40.0)


def render_to_completion(renderer, surface, transform, limit=50):
    progress = RenderProgress()
    for _ in range(limit):
        progress = renderer.render_frame(surface, transform, progress)
        if progress.done:
            return progress
    raise AssertionError("render did not converge")


def test_first_frame_picks_coarsest_chunk(make_surface, make_clock):
    surface = make_surface(100, 100)
    renderer = ProgressiveRenderer(FLAT, budget=0.05, clock=make_clock(0.1), show_axes=False)
    progress = renderer.render_frame(surface, VIEW)
    assert progress.chunk_size == 5
    assert progress.resume_row == 1
    assert not progress.done
    assert surface.clears == 1
    assert {(w, h) for _, _, w, h, _ in surface.rects} == {(5, 5)}
    assert len(surface.rects) == 20


def test_progressive_convergence(make_surface):
    surface = make_surface(100, 100)
    renderer = ProgressiveRenderer(MANDELBROT, budget=math.inf, show_axes=False)
    progress = render_to_completion(renderer, surface, VIEW)

    assert progress.done
    assert progress.chunk_size == 0
    # 5 -> 2 -> 1 -> 0
    assert progress.passes == 3
    sizes = [w for _, _, w, _, _ in surface.rects]
    assert Counter(sizes) == {5: 400, 2: 2500, 1: 10000}
    assert sizes == sorted(sizes, reverse=True)

    final = {(x, y) for x, y, w, h, _ in surface.rects if w == h == 1}
    assert final == {(x, y) for x in range(100) for y in range(100)}


def test_resume_continues_the_same_pass(make_surface, make_clock):
    surface = make_surface(100, 100)
    renderer = ProgressiveRenderer(FLAT, budget=0.25, clock=make_clock(0.1), show_axes=False)

    progress = renderer.render_frame(surface, VIEW)
    assert (progress.chunk_size, progress.resume_row) == (5, 3)
    painted = len(surface.rects)
    assert {y for _, y, _, _, _ in surface.rects} == {0, 5, 10}

    progress = renderer.render_frame(surface, VIEW, progress)
    assert (progress.chunk_size, progress.resume_row) == (5, 6)
    resumed = surface.rects[painted:]
    assert resumed[0][:4] == (0, 15, 5, 5)
    assert {y for _, y, _, _, _ in resumed} == {15, 20, 25}
    assert surface.clears == 1


def test_pass_completion_halves_chunk_and_restarts_rows(make_surface, make_clock):
    surface = make_surface(100, 100)
    renderer = ProgressiveRenderer(FLAT, budget=0.25, clock=make_clock(0.1), show_axes=False)
    progress = RenderProgress(chunk_size=5, resume_row=19)
    progress = renderer.render_frame(surface, VIEW, progress)
    assert progress.chunk_size == 2
    assert progress.passes == 1
    assert surface.rects[20][:4] == (0, 0, 2, 2)
    assert surface.clears == 0


def test_done_is_terminal(make_surface):
    surface = make_surface(40, 40)
    renderer = ProgressiveRenderer(FLAT, budget=math.inf)
    progress = render_to_completion(renderer, surface, VIEW)
    painted = len(surface.rects)
    again = renderer.render_frame(surface, VIEW, progress)
    assert again == progress
    assert len(surface.rects) == painted


def test_short_surface_gets_a_single_pixel_pass(make_surface):
    surface = make_surface(30, 10)
    renderer = ProgressiveRenderer(FLAT, budget=math.inf, show_axes=False)
    progress = renderer.render_frame(surface, VIEW)
    assert progress.done
    assert progress.passes == 1
    assert len(surface.rects) == 300
    assert {(w, h) for _, _, w, h, _ in surface.rects} == {(1, 1)}


def test_empty_width_completes_without_painting(make_surface):
    surface = make_surface(0, 50)
    renderer = ProgressiveRenderer(FLAT, budget=math.inf, show_axes=False)
    progress = renderer.render_frame(surface, VIEW)
    assert progress.done
    assert surface.rects == []


def test_chunks_are_sampled_at_their_center(make_surface):
    surface = make_surface(100, 100)
    renderer = ProgressiveRenderer(MANDELBROT, budget=0.0, show_axes=False)
    renderer.render_frame(surface, VIEW)
    for x, y, size, _, color in surface.rects:
        wx, wy = VIEW.to_world(x + 0.5 * size, y + 0.5 * size, 100)
        assert color == renderer.ramp.color_for(escape_count(wx, wy, MANDELBROT))


def test_tiling_variants_bypass_the_ramp(make_surface):
    surface = make_surface(40, 40)
    renderer = ProgressiveRenderer(FLAT, budget=math.inf, show_axes=False)
    render_to_completion(renderer, surface, ViewTransform(zoom=10.0))
    assert {color for *_, color in surface.rects} <= set(TILE_COLORS.values())


def test_image_surface_holds_the_final_image():
    surface = ImageSurface(40, 40)
    renderer = ProgressiveRenderer(FLAT, budget=math.inf, show_axes=False)
    render_to_completion(renderer, surface, ViewTransform(zoom=10.0))
    pixels = surface.to_array()
    assert pixels.shape == (40, 40, 3)
    # pixel (5, 5) samples world (0.55, 3.45): odd tile
    assert tuple(pixels[5, 5]) == tuple(tile_colors([1])[0])
    assert tuple(pixels[5, 15]) == tuple(tile_colors([0])[0])


def test_axes_are_painted_once_when_done(make_surface):
    surface = make_surface(40, 40)
    renderer = ProgressiveRenderer(FLAT, budget=math.inf)
    render_to_completion(renderer, surface, ViewTransform(pan_x=10.0, pan_y=10.0, zoom=10.0))
    assert surface.rects[-2:] == [
        (10, 30, 10, 1, AXIS_COLOR),
        (10, 20, 1, 10, AXIS_COLOR),
    ]


def test_probe_orbit_is_marked(make_surface):
    params = FractalParams(Variant.MANDELBROT, max_iterations=20, escape_radius_squared=4.0)
    surface = make_surface(100, 100)
    renderer = ProgressiveRenderer(params, budget=math.inf, show_axes=False)
    path = renderer.set_probe(2.0, 2.0)
    np.testing.assert_allclose(path, [[2.0, 2.0]])
    render_to_completion(renderer, surface, ViewTransform(pan_x=50.0, pan_y=50.0, zoom=10.0))
    assert surface.rects[-1] == (69, 29, 3, 3, PROBE_COLOR)

    renderer.clear_probe()
    assert renderer.probe_orbit.shape == (0, 2)


@pytest.mark.parametrize("variant", list(Variant))
def test_every_variant_renders(variant, make_surface):
    surface = make_surface(40, 40)
    params = FractalParams.for_variant(variant, max_iterations=10)
    renderer = ProgressiveRenderer(params, budget=math.inf)
    progress = render_to_completion(renderer, surface, ViewTransform(pan_x=20.0, pan_y=20.0, zoom=15.0))
    assert progress.done


class FillOnlySurface:
    def __init__(self, width, height):
        self.width = width
        self.height = height
        self.fills = []

    def clip_width(self):
        return self.width

    def clip_height(self):
        return self.height

    def fill_rect(self, x, y, width, height, color):
        self.fills.append((x, y, width, height, tuple(color)))


def test_surface_needs_only_fill_and_clip():
    surface = FillOnlySurface(40, 40)
    renderer = ProgressiveRenderer(FLAT, budget=math.inf)
    progress = render_to_completion(renderer, surface, VIEW)
    assert progress.done
    assert surface.fills[0] == (0, 0, 40, 40, BACKGROUND)


def test_new_cycle_blanks_a_reused_image():
    surface = ImageSurface(40, 40, background=(255, 255, 255))
    renderer = ProgressiveRenderer(FLAT, budget=0.0, show_axes=False)
    progress = renderer.render_frame(surface, VIEW)
    assert (progress.chunk_size, progress.resume_row) == (2, 1)
    pixels = surface.to_array()
    # only the first chunk-row is painted; the rest is background
    assert (pixels[2:] == BACKGROUND).all()
