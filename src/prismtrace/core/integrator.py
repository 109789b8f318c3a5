"""Path tracing integrator for Monte Carlo light transport.

This module implements the main rendering kernel: material-based scattering
over the sphere scene, a sky gradient for escaped rays, and sample
accumulation into a preallocated render target.

A camera sample is traced through an explicit loop that carries the product
of the attenuations seen so far (the throughput). Each step has three
outcomes:
    - the depth budget is exhausted: the sample contributes black
    - the ray escapes: throughput * background gradient
    - the ray hits a surface: the material scatters it (throughput is
      multiplied by the attenuation) or absorbs it (black)

Every pixel sample draws from its own random stream keyed by
(seed, pixel, sample number), so images are reproducible for a fixed seed
and independent of how Taichi schedules the parallel pixel loop.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from prismtrace.core.integrator import render_image, setup_render_target
    >>> from prismtrace.scene.presets import create_material_showcase_scene
    >>> from prismtrace.camera import setup_camera
    >>>
    >>> scene, camera = create_material_showcase_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(400, 225)
    >>> render_image(num_samples=100, seed=7)
"""

import logging
from collections.abc import Callable
from pathlib import Path

import numpy as np
import taichi as ti

from prismtrace.camera.pinhole import get_ray
from prismtrace.core.config import ShadingMode
from prismtrace.core.ray import real, unit_vector, vec3
from prismtrace.core.sampler import random_real, rng_init
from prismtrace.materials.dielectric import scatter_dielectric_by_id
from prismtrace.materials.lambertian import scatter_lambertian_by_id
from prismtrace.materials.metal import scatter_metal_by_id
from prismtrace.preview.export import image_to_uint8, save_png_from_array, save_ppm
from prismtrace.scene.intersection import intersect_scene
from prismtrace.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Rendering Constants
# =============================================================================

# Default maximum number of ray segments per sample
MAX_DEPTH = 50

# t_min rejects hits at the ray origin caused by floating point error
# (shadow acne); t_max stands in for infinity
T_MIN = 0.001
T_MAX = 1.0e30

# Background gradient: white at the bottom of the view blending to sky blue
SKY_BOTTOM_COLOR = vec3(1.0, 1.0, 1.0)
SKY_TOP_COLOR = vec3(0.5, 0.7, 1.0)

# Rows rendered per kernel launch by render_image()
DEFAULT_ROWS_PER_BATCH = 16


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Sum of all sample colors per pixel (preallocated to max size)
_color_buffer = ti.Vector.field(3, dtype=ti.f64, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Sample count per pixel (preallocated to max size)
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers.
    The buffers are preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT
    to avoid Taichi kernel recompilation issues.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum
            supported size.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_image() -> "ti.MatrixField":
    """Get the color sum buffer.

    Note: This returns the full preallocated buffer. Use get_image_dimensions()
    to determine the active region.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _color_buffer


def get_sample_count() -> "ti.ScalarField":
    """Get the sample count field.

    Note: This returns the full preallocated buffer. Use get_image_dimensions()
    to determine the active region.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _sample_count


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Dispatch to the appropriate material scattering function.

    Args:
        material_id: The unified material ID.
        incident_direction: The incoming ray direction.
        normal: The unit surface normal, facing the ray.
        front_face: 1 if hit front face, 0 if back face.
        state: Random generator state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
        An unknown material absorbs the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter, state = scatter_lambertian_by_id(
            type_index, normal, state
        )

    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter, state = scatter_metal_by_id(
            type_index, incident_direction, normal, state
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter, state = scatter_dielectric_by_id(
            type_index, incident_direction, normal, front_face, state
        )

    return scattered_direction, attenuation, did_scatter, state


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Vertical sky gradient seen by rays that escape the scene.

    Blends linearly from white when looking straight down to sky blue when
    looking straight up, using t = 0.5 * (unit(direction).y + 1).
    """
    t = 0.5 * (unit_vector(direction).y + 1.0)
    return (1.0 - t) * SKY_BOTTOM_COLOR + t * SKY_TOP_COLOR


@ti.func
def ray_color(
    origin: vec3,
    direction: vec3,
    max_depth: ti.i32,
    shading: ti.i32,
    state: ti.u32,
):
    """Estimate the color seen along a ray.

    Args:
        origin: The ray origin.
        direction: The ray direction (any nonzero length).
        max_depth: Maximum number of ray segments to trace. Running out
            contributes black.
        shading: A ShadingMode value. NORMALS returns the normal color of
            the first hit without scattering.
        state: Random generator state.

    Returns:
        A tuple of (color, state).
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)

    # Active flag for path continuation (Taichi doesn't support break in ti.func loops)
    active = 1

    for _ in range(max_depth):
        if active == 1:
            hit_record = intersect_scene(origin, direction, T_MIN, T_MAX)

            if hit_record.hit == 0:
                color = throughput * background_color(direction)
                active = 0
            elif shading == int(ShadingMode.NORMALS):
                color = throughput * 0.5 * (hit_record.normal + vec3(1.0, 1.0, 1.0))
                active = 0
            else:
                scattered_direction, attenuation, did_scatter, state = _scatter_material(
                    hit_record.material_id,
                    direction,
                    hit_record.normal,
                    hit_record.front_face,
                    state,
                )

                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    origin = hit_record.point
                    direction = scattered_direction

    return color, state


@ti.func
def _viewport_coordinate(index: ti.i32, size: ti.i32, jitter: real, antialias: ti.i32) -> real:
    # Jittered samples cover [index, index + 1) / size; fixed samples
    # put the first and last pixel on the viewport edges
    coord = 0.5
    if antialias == 1:
        coord = (ti.cast(index, real) + jitter) / ti.cast(size, real)
    elif size > 1:
        coord = ti.cast(index, real) / ti.cast(size - 1, real)
    return coord


@ti.func
def render_sample_impl(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sample_index: ti.i32,
    max_depth: ti.i32,
    seed: ti.i32,
    shading: ti.i32,
    antialias: ti.i32,
) -> vec3:
    """Render one sample for a pixel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        sample_index: Global sample number for this pixel.
        max_depth: Maximum number of ray segments.
        seed: Render seed.
        shading: A ShadingMode value.
        antialias: 1 to jitter the sample within the pixel.

    Returns:
        The color estimate (RGB) for this sample.
    """
    state = rng_init(seed, pixel_j * width + pixel_i, sample_index)

    jitter_u, state = random_real(state)
    jitter_v, state = random_real(state)
    s = _viewport_coordinate(pixel_i, width, jitter_u, antialias)
    t = _viewport_coordinate(pixel_j, height, jitter_v, antialias)

    ray, state = get_ray(s, t, state)
    color, state = ray_color(ray.origin, ray.direction, max_depth, shading, state)

    # Replace NaN/Inf from degenerate geometry with black
    for c in ti.static(range(3)):
        if ti.math.isnan(color[c]) or ti.math.isinf(color[c]):
            color[c] = 0.0

    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows(
    width: ti.i32,
    height: ti.i32,
    row_start: ti.i32,
    row_end: ti.i32,
    num_samples: ti.i32,
    max_depth: ti.i32,
    seed: ti.i32,
    shading: ti.i32,
    antialias: ti.i32,
):
    """Render num_samples samples for every pixel in rows [row_start, row_end).

    Each pixel writes only its own cells, so pixels run in parallel.
    """
    for i, j in ti.ndrange(width, (row_start, row_end)):
        base = _sample_count[i, j]
        total = vec3(0.0, 0.0, 0.0)
        for s in range(num_samples):
            total += render_sample_impl(
                i, j, width, height, base + s, max_depth, seed, shading, antialias
            )
        _color_buffer[i, j] += total
        _sample_count[i, j] = base + num_samples


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sample_index: ti.i32,
    max_depth: ti.i32,
    seed: ti.i32,
    shading: ti.i32,
    antialias: ti.i32,
) -> vec3:
    return render_sample_impl(
        pixel_i, pixel_j, width, height, sample_index, max_depth, seed, shading, antialias
    )


@ti.kernel
def _trace_single_ray(
    origin: vec3,
    direction: vec3,
    max_depth: ti.i32,
    seed: ti.i32,
    shading: ti.i32,
) -> vec3:
    state = rng_init(seed, 0, 0)
    color, state = ray_color(origin, direction, max_depth, shading, state)
    return color


# =============================================================================
# Public Rendering API
# =============================================================================


def render_sample(
    pixel_i: int,
    pixel_j: int,
    sample_index: int = 0,
    *,
    max_depth: int = MAX_DEPTH,
    seed: int = 0,
    shading: ShadingMode = ShadingMode.PATH,
    antialias: bool = True,
) -> tuple[float, float, float]:
    """Render a single sample for a specific pixel.

    This is a Python-callable function for testing. The accumulation
    buffers are left untouched.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        sample_index: Sample number, selecting the random stream.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    color = _render_single_pixel(
        pixel_i,
        pixel_j,
        width,
        height,
        sample_index,
        max_depth,
        seed,
        int(shading),
        int(antialias),
    )

    return (float(color[0]), float(color[1]), float(color[2]))


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    *,
    max_depth: int = MAX_DEPTH,
    seed: int = 0,
    shading: ShadingMode = ShadingMode.PATH,
) -> tuple[float, float, float]:
    """Trace one ray through the current scene and return its color.

    No camera or render target is involved.
    """
    color = _trace_single_ray(
        vec3(*origin), vec3(*direction), max_depth, seed, int(shading)
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(
    num_samples: int = 1,
    *,
    max_depth: int = MAX_DEPTH,
    seed: int = 0,
    shading: ShadingMode = ShadingMode.PATH,
    antialias: bool = True,
    progress: Callable[[int], None] | None = None,
    rows_per_batch: int = DEFAULT_ROWS_PER_BATCH,
) -> None:
    """Render the image with the specified number of samples per pixel.

    Accumulates samples into the color buffer. Can be called multiple times
    to add more samples; sample numbering continues per pixel, so two calls
    of n samples produce the same buffer as one call of 2n.

    Rows are rendered in bands from the top of the image (row height - 1)
    down to row 0. After each band progress(rows_remaining) is called.

    Args:
        num_samples: Number of samples to render per pixel.
        max_depth: Maximum number of ray segments per sample.
        seed: Render seed.
        shading: Path tracing or normal shading.
        antialias: Jitter samples within each pixel.
        progress: Optional callback receiving the number of rows left.
        rows_per_batch: Number of rows per kernel launch.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If num_samples or rows_per_batch is not positive.
    """
    _check_render_target_initialized()
    if num_samples < 1:
        raise ValueError(f"num_samples must be >= 1, got {num_samples}")
    if rows_per_batch < 1:
        raise ValueError(f"rows_per_batch must be >= 1, got {rows_per_batch}")

    width, height = get_image_dimensions()
    logger.debug(
        "Rendering %dx%d with %d samples per pixel (max_depth=%d, seed=%d)",
        width,
        height,
        num_samples,
        max_depth,
        seed,
    )

    row_end = height
    while row_end > 0:
        row_start = max(row_end - rows_per_batch, 0)
        _render_rows(
            width,
            height,
            row_start,
            row_end,
            num_samples,
            max_depth,
            seed,
            int(shading),
            int(antialias),
        )
        row_end = row_start
        if progress is not None:
            progress(row_end)


def get_total_samples() -> int:
    """Get the number of samples rendered so far.

    Returns the sample count from pixel (0, 0), which is the same for all
    pixels after calling render_image().

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    return int(_sample_count[0, 0])


def get_normalized_image_numpy() -> np.ndarray:
    """Get the rendered image as a NumPy array.

    Returns the linear per-pixel average (sum / sample count). Pixels with
    no samples are black. The array shape is (height, width, 3) with dtype
    float64, top row first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    color_sum = _color_buffer.to_numpy()[:width, :height, :]
    counts = _sample_count.to_numpy()[:width, :height].astype(np.float64)

    image = np.divide(
        color_sum,
        counts[:, :, None],
        out=np.zeros_like(color_sum),
        where=counts[:, :, None] > 0,
    )

    # Transpose from (width, height, 3) to (height, width, 3) for standard image format
    image = np.transpose(image, (1, 0, 2))

    # Flip vertically (Taichi uses bottom-left origin, images use top-left)
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float64)


def get_image_uint8() -> np.ndarray:
    """Get the gamma-corrected 8-bit image, shape (height, width, 3)."""
    return image_to_uint8(get_normalized_image_numpy())


def save_image(filepath: str | Path) -> None:
    """Save the rendered image to a file.

    The format follows the extension: .ppm writes plain-text PPM, anything
    else goes through Pillow.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    path = Path(filepath)
    image = get_image_uint8()
    if path.suffix.lower() == ".ppm":
        save_ppm(image, path)
    else:
        save_png_from_array(image, path)
    logger.info("Saved image to %s", path)
