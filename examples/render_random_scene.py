#!/usr/bin/env python3
"""Render the "many spheres" scene progressively.

This script builds the random sphere field, renders it in batches of
samples and shows a running samples-per-second figure. It is a scripted
counterpart to the ``prismtrace`` command that reports progress per batch
of samples instead of per scanline.

Usage:
    python examples/render_random_scene.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 600)
    --samples SAMPLES   Number of samples per pixel (default: 50)
    --scene-seed SEED   Seed for the sphere layout (default: 0)
    --seed SEED         Seed for the render (default: 0)
    --output OUTPUT     Output file path (default: random_scene.png)
    --batch-size SIZE   Samples per progress update (default: 5)
    --quiet             Suppress progress output

Example:
    python examples/render_random_scene.py --width 300 --samples 20
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti
from tqdm import tqdm


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the random sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=600, help="Image width in pixels (default: 600)")
    parser.add_argument("--samples", type=int, default=50, help="Samples per pixel (default: 50)")
    parser.add_argument("--scene-seed", type=int, default=0, help="Sphere layout seed (default: 0)")
    parser.add_argument("--seed", type=int, default=0, help="Render seed (default: 0)")
    parser.add_argument(
        "--output",
        type=str,
        default="random_scene.png",
        help="Output file path (default: random_scene.png)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=5,
        help="Samples per progress update (default: 5)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_random_scene(
    width: int = 600,
    num_samples: int = 50,
    scene_seed: int = 0,
    seed: int = 0,
    output_path: str = "random_scene.png",
    batch_size: int = 5,
    quiet: bool = False,
) -> Path:
    """Render the random sphere scene and save to file.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from prismtrace.camera.pinhole import setup_camera
    from prismtrace.core.config import RenderSettings
    from prismtrace.core.progressive import ProgressiveRenderer
    from prismtrace.scene.presets import create_random_scene

    aspect_ratio = 3.0 / 2.0
    scene, camera = create_random_scene(seed=scene_seed, aspect_ratio=aspect_ratio)
    setup_camera(camera)

    settings = RenderSettings(
        image_width=width,
        aspect_ratio=aspect_ratio,
        samples_per_pixel=num_samples,
        seed=seed,
    )
    renderer = ProgressiveRenderer(settings)

    if not quiet:
        print(f"Rendering {scene.get_sphere_count()} spheres at {renderer.width}x{renderer.height}")

    start_time = time.time()
    with tqdm(total=num_samples, unit="spp", disable=quiet) as bar:
        for current, _ in renderer.render_progressive(num_samples, batch_size):
            bar.update(current - bar.n)

    output_file = Path(output_path)
    if output_file.suffix.lower() == ".ppm":
        renderer.save_ppm(output_file)
    else:
        renderer.save_png(output_file)

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    ti.init(arch=ti.cpu, default_fp=ti.f64)

    try:
        render_random_scene(
            width=args.width,
            num_samples=args.samples,
            scene_seed=args.scene_seed,
            seed=args.seed,
            output_path=args.output,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
