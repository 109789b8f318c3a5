"""Command-line driver.

Renders a preset or a JSON scene file and writes the image as PPM or PNG.
Progress is a scanline counter on stderr; the image itself can go to stdout
as PPM so the tool composes with other programs.

Usage:
    prismtrace [options]

Example:
    prismtrace --scene random --width 600 --samples 50 --output random.png
    prismtrace --scene single_sphere --shading normals --output - > sphere.ppm
"""

from __future__ import annotations

import argparse
import contextlib
import dataclasses
import logging
import os
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

from tqdm import tqdm

if TYPE_CHECKING:
    from prismtrace.core.config import RenderSettings
    from prismtrace.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)

PRESET_NAMES = ("single_sphere", "showcase", "random", "classic")

# Matches the ShadingMode member names
SHADING_NAMES = ("path", "normals")

# Taichi backends by their ti attribute name
ARCH_NAMES = ("cpu", "gpu")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="prismtrace",
        description="Render a scene of spheres by Monte Carlo path tracing.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--scene",
        choices=PRESET_NAMES,
        default="showcase",
        help="Preset scene to render",
    )
    source.add_argument(
        "--scene-file",
        type=Path,
        default=None,
        help="JSON scene file to render instead of a preset",
    )

    parser.add_argument("--width", type=int, default=400, help="Image width in pixels")
    parser.add_argument(
        "--aspect-ratio",
        type=float,
        default=16.0 / 9.0,
        help="Image width divided by height",
    )
    parser.add_argument("--samples", type=int, default=100, help="Samples per pixel")
    parser.add_argument("--max-depth", type=int, default=50, help="Maximum bounces per sample")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument(
        "--shading",
        choices=SHADING_NAMES,
        default="path",
        help="Full path tracing or surface normals",
    )
    parser.add_argument(
        "--no-antialias",
        action="store_true",
        help="Sample every pixel at its corner instead of jittering",
    )

    parser.add_argument("--vfov", type=float, default=None, help="Override the vertical field of view")
    parser.add_argument("--aperture", type=float, default=None, help="Override the lens diameter")
    parser.add_argument(
        "--focus-dist",
        type=float,
        default=None,
        help="Override the focus distance",
    )

    parser.add_argument(
        "--output",
        "-o",
        default="image.ppm",
        help="Output path (.ppm or .png); '-' writes PPM to stdout",
    )
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress progress output")
    parser.add_argument("--show", action="store_true", help="Open a preview window when done")
    parser.add_argument("--arch", choices=ARCH_NAMES, default="cpu", help="Taichi backend")
    return parser


def settings_from_args(args: argparse.Namespace) -> RenderSettings:
    """Build render settings from parsed arguments.

    Raises:
        ValueError: If a setting is out of range.
    """
    from prismtrace.core.config import RenderSettings, ShadingMode

    return RenderSettings(
        image_width=args.width,
        aspect_ratio=args.aspect_ratio,
        samples_per_pixel=args.samples,
        max_depth=args.max_depth,
        seed=args.seed,
        shading=ShadingMode[args.shading.upper()],
        antialias=not args.no_antialias,
    )


def build_camera(camera, args: argparse.Namespace):
    """Apply the command-line camera overrides to a scene camera.

    A lens override turns a pinhole camera into a thin-lens camera.

    Raises:
        ValueError: If an overridden parameter is invalid.
    """
    from prismtrace.camera.thin_lens import ThinLensCamera
    from prismtrace.scene.presets import default_focus_distance

    if args.vfov is not None:
        camera = dataclasses.replace(camera, vfov=args.vfov)

    if args.aperture is None and args.focus_dist is None:
        return camera

    if isinstance(camera, ThinLensCamera):
        aperture = camera.aperture if args.aperture is None else args.aperture
        focus_dist = camera.focus_dist if args.focus_dist is None else args.focus_dist
    else:
        aperture = 0.0 if args.aperture is None else args.aperture
        focus_dist = default_focus_distance(camera) if args.focus_dist is None else args.focus_dist

    return ThinLensCamera(
        lookfrom=camera.lookfrom,
        lookat=camera.lookat,
        vup=camera.vup,
        vfov=camera.vfov,
        aspect_ratio=camera.aspect_ratio,
        aperture=aperture,
        focus_dist=focus_dist,
    )


def load_scene(args: argparse.Namespace, aspect_ratio: float):
    """Build the active scene from a preset or a scene file."""
    from prismtrace.scene.presets import create_preset, load_scene_file

    if args.scene_file is not None:
        return load_scene_file(args.scene_file, aspect_ratio)
    return create_preset(args.scene, aspect_ratio)


def run(args: argparse.Namespace, settings: RenderSettings) -> ProgressiveRenderer:
    """Render according to parsed arguments. Taichi must already be initialized.

    Returns:
        The ProgressiveRenderer holding the finished image.

    Raises:
        ValueError: If the scene or camera description is invalid.
        OSError: If the scene file cannot be read or the image cannot be written.
    """
    # Lazy imports to allow Taichi initialization first
    from prismtrace.camera.pinhole import setup_camera
    from prismtrace.core.progressive import ProgressiveRenderer
    from prismtrace.preview.export import write_ppm

    scene, camera = load_scene(args, settings.aspect_ratio)
    camera = build_camera(camera, args)
    setup_camera(camera)
    logger.info("Scene has %d spheres and %d materials", scene.get_sphere_count(), scene.get_material_count())

    renderer = ProgressiveRenderer(settings)

    start_time = time.time()
    with tqdm(
        total=renderer.height,
        unit="line",
        desc="Scanlines",
        file=sys.stderr,
        disable=args.quiet,
    ) as bar:

        def progress_callback(rows_remaining: int) -> None:
            bar.update(renderer.height - rows_remaining - bar.n)

        renderer.render_frame(progress=progress_callback)

    logger.info("Rendered in %.2fs", time.time() - start_time)

    if args.output == "-":
        write_ppm(renderer.get_image_uint8(), sys.stdout)
        sys.stdout.flush()
    else:
        output_file = Path(args.output)
        if output_file.suffix.lower() == ".ppm":
            renderer.save_ppm(output_file)
        else:
            renderer.save_png(output_file)
        logger.info("Saved to: %s", output_file.absolute())

    if args.show:
        from prismtrace.preview.display import show_preview

        show_preview(renderer)

    return renderer


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    # Taichi prints its banners to stdout, which would corrupt a PPM written there
    to_stdout = args.output == "-"
    if to_stdout:
        os.environ["ENABLE_TAICHI_HEADER_PRINT"] = "0"
    with contextlib.redirect_stdout(sys.stderr):
        import taichi as ti

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    with contextlib.redirect_stdout(sys.stderr):
        ti.init(
            arch=getattr(ti, args.arch),
            default_fp=ti.f64,
            log_level=ti.WARN if args.quiet or to_stdout else ti.INFO,
        )

    try:
        run(args, settings)
    except ValueError as e:
        parser.error(str(e))
    except OSError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
