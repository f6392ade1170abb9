import os
import sys
import time
from dataclasses import dataclass
from typing import Optional

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")

from escapetime import (
    ColorRamp,
    FractalParams,
    ImageSurface,
    Variant,
    ViewController,
    ViewTransform,
    colormap_ramp,
    default_transform,
    iteration_cap,
)

from argparse import ArgumentParser


@dataclass
class DriverConfig:
    width: int
    height: int
    params: FractalParams
    transform: ViewTransform
    ramp: Optional[ColorRamp]
    budget: float
    tick: float
    max_ticks: Optional[int]
    probe: Optional[tuple[float, float]]
    show: bool


def select_device():
    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


def build_parser():
    parser = ArgumentParser(description='Progressively render an escape-time fractal, the way an interactive view would.')

    parser.add_argument('--variant', type=str, choices=[v.value for v in Variant],
                        dest='variant', help='fractal variant to render',
                        default=Variant.MANDELBROT.value)

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='iteration cap of the escape-time loop',
                        metavar='MAX_ITERATIONS', default=50)

    parser.add_argument('--escape-radius-squared', type=float,
                        dest='escape_radius_squared', help='escape threshold; defaults to the variant\'s own',
                        metavar='RADIUS_SQUARED', default=None)

    parser.add_argument('--width', type=int,
                        dest='width', help='surface width in pixels',
                        metavar='WIDTH', default=1000)

    parser.add_argument('--height', type=int,
                        dest='height', help='surface height in pixels',
                        metavar='HEIGHT', default=1000)

    parser.add_argument('--pan-x', type=float, dest='pan_x', default=None,
                        help='screen x of the world origin; defaults to the variant\'s view')
    parser.add_argument('--pan-y', type=float, dest='pan_y', default=None,
                        help='screen y of the world origin, measured from the bottom edge')
    parser.add_argument('--zoom', type=float, dest='zoom', default=None,
                        help='pixels per world unit')

    parser.add_argument('--budget-ms', type=float, dest='budget_ms', default=300.0,
                        help='wall-clock budget of one render call, in milliseconds')
    parser.add_argument('--tick-ms', type=float, dest='tick_ms', default=100.0,
                        help='period of the repaint timer, in milliseconds')
    parser.add_argument('--max-ticks', type=int, dest='max_ticks', default=None,
                        help='stop after this many render calls even if the image is not complete')

    parser.add_argument('--colormap', type=str, dest='colormap', default=None,
                        help='matplotlib colormap for the ramp (e.g. "viridis"); the stock ramp is used otherwise',
                        metavar='COLORMAP')

    parser.add_argument('--probe', type=float, nargs=2, dest='probe', default=None,
                        metavar=('X', 'Y'), help='world point whose orbit is traced over the image')

    parser.add_argument('--show', action='store_true',
                        help='open the finished image in the platform image viewer')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_config(opt, parser: ArgumentParser) -> DriverConfig:
    if opt.width <= 0 or opt.height <= 0:
        parser.error("--width and --height must be positive.")
    if opt.max_iterations < 0:
        parser.error("--max-iterations must be non-negative.")
    if opt.budget_ms <= 0:
        parser.error("--budget-ms must be positive.")
    if opt.tick_ms < 0:
        parser.error("--tick-ms must not be negative.")
    if opt.max_ticks is not None and opt.max_ticks <= 0:
        parser.error("--max-ticks must be positive.")

    variant = Variant(opt.variant)
    params = FractalParams.for_variant(variant, max_iterations=opt.max_iterations)
    if opt.escape_radius_squared is not None:
        if opt.escape_radius_squared <= 0:
            parser.error("--escape-radius-squared must be positive.")
        params = FractalParams(variant, opt.max_iterations, opt.escape_radius_squared)

    view = default_transform(variant)
    zoom = view.zoom if opt.zoom is None else opt.zoom
    if not zoom > 0:
        parser.error("--zoom must be positive.")
    transform = ViewTransform(
        pan_x=view.pan_x if opt.pan_x is None else opt.pan_x,
        pan_y=view.pan_y if opt.pan_y is None else opt.pan_y,
        zoom=zoom,
    )

    ramp = None
    if opt.colormap is not None:
        try:
            ramp = colormap_ramp(opt.colormap, iteration_cap(params))
        except KeyError:
            parser.error(f"Unknown colormap '{opt.colormap}'.")

    return DriverConfig(
        width=opt.width,
        height=opt.height,
        params=params,
        transform=transform,
        ramp=ramp,
        budget=opt.budget_ms / 1000.0,
        tick=opt.tick_ms / 1000.0,
        max_ticks=opt.max_ticks,
        probe=tuple(opt.probe) if opt.probe is not None else None,
        show=bool(opt.show),
    )


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    config = resolve_config(opt, parser)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    log("TensorFlow version: %s" % tf.__version__)
    device = select_device()

    controller = ViewController(
        config.width,
        config.height,
        config.params,
        config.transform,
        config.ramp,
        budget=config.budget,
        device=device,
    )
    surface = ImageSurface(config.width, config.height)

    if config.probe is not None:
        path = controller.on_probe(*config.probe)
        log("probe ({0}, {1}): {2} iterates".format(config.probe[0], config.probe[1], len(path)))

    ticks = 0
    started = time.monotonic()
    while not controller.progress.done:
        if config.max_ticks is not None and ticks >= config.max_ticks:
            break
        tick_started = time.monotonic()
        progress = controller.tick(surface)
        ticks += 1
        print("tick {0}: chunk {1}, row {2}, passes {3}".format(
            ticks, progress.chunk_size, progress.resume_row, progress.passes), end='\r')
        log("tick {0} took {1:.3f}s".format(ticks, time.monotonic() - tick_started))
        remaining = config.tick - (time.monotonic() - tick_started)
        if remaining > 0 and not progress.done:
            time.sleep(remaining)
    print()

    state = "complete" if controller.progress.done else "partial"
    log("{0} image after {1} ticks in {2:.2f}s".format(state, ticks, time.monotonic() - started))
    print(controller.status())

    if config.show:
        surface.image.show(title=controller.status())

    return surface


if __name__ == '__main__':
    main()
