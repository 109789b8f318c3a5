"""Seedable random number generation for Monte Carlo sampling.

Every random decision in the renderer draws from an explicit ``u32`` state
that is threaded through the sampling functions: each function takes the
current state and returns ``(value, new_state)``. A state is derived from
``(seed, pixel_index, sample_index)`` with a PCG hash, so every pixel sample
owns an independent stream. Results are therefore reproducible for a fixed
seed no matter how Taichi schedules pixels across threads, and a render split
over several progressive passes matches a single-pass render exactly.

Example:
    >>> @ti.kernel
    ... def draw() -> ti.f64:
    ...     state = rng_init(42, 0, 0)
    ...     value, state = random_real(state)
    ...     return value
"""

import taichi as ti

from prismtrace.core.ray import dot, length_squared, real, unit_vector, vec3

# Upper bound on rejection-sampling attempts. The acceptance regions cover at
# least pi/4 of the sampling square, so the bound is never reached in practice.
MAX_REJECTION_TRIES = 64

# 1 / 2^24: scales the top 24 bits of a hash to [0, 1)
_INV_2_24 = 1.0 / 16777216.0


@ti.func
def _u32(x) -> ti.u32:
    return ti.cast(x, ti.u32)


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """PCG RXS-M-XS permutation of a 32-bit integer."""
    state = value * _u32(747796405) + _u32(1013904223)
    word = ti.bit_shr(state, ti.bit_shr(state, _u32(28)) + _u32(4)) ^ state
    word = word * _u32(277803737)
    return ti.bit_shr(word, _u32(22)) ^ word


@ti.func
def rng_init(seed: ti.i32, pixel_index: ti.i32, sample_index: ti.i32) -> ti.u32:
    """Derive the random stream for one pixel sample.

    Args:
        seed: The render seed.
        pixel_index: Linear pixel index (row * width + column).
        sample_index: Global sample number for this pixel.

    Returns:
        The initial generator state.
    """
    h = pcg_hash(_u32(seed))
    h = pcg_hash(_u32(pixel_index) + h)
    return pcg_hash(_u32(sample_index) + h)


@ti.func
def random_real(state: ti.u32):
    """Draw a uniform value in [0, 1).

    Returns:
        A tuple of (value, new_state).
    """
    new_state = pcg_hash(state)
    value = ti.cast(ti.bit_shr(new_state, _u32(8)), real) * _INV_2_24
    return value, new_state


@ti.func
def random_range(state: ti.u32, lo: real, hi: real):
    """Draw a uniform value in [lo, hi).

    Returns:
        A tuple of (value, new_state).
    """
    u, state = random_real(state)
    return lo + (hi - lo) * u, state


@ti.func
def random_vec3(state: ti.u32, lo: real, hi: real):
    """Draw a vector whose components are independently uniform in [lo, hi).

    Returns:
        A tuple of (vector, new_state).
    """
    x, state = random_range(state, lo, hi)
    y, state = random_range(state, lo, hi)
    z, state = random_range(state, lo, hi)
    return vec3(x, y, z), state


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Generate a random point strictly inside the unit ball.

    Uses rejection sampling over the cube [-1, 1)^3.

    Returns:
        A tuple of (point, new_state) with length_squared(point) < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    for _ in range(MAX_REJECTION_TRIES):
        if found == 0:
            candidate, state = random_vec3(state, -1.0, 1.0)
            if length_squared(candidate) < 1.0:
                p = candidate
                found = 1
    return p, state


@ti.func
def random_unit_vector(state: ti.u32):
    """Generate a random unit vector by normalizing a unit-ball sample.

    A sample at the exact origin is replaced with +z so the result never
    carries NaN components.

    Returns:
        A tuple of (unit_vector, new_state).
    """
    p, state = random_in_unit_sphere(state)
    result = vec3(0.0, 0.0, 1.0)
    if length_squared(p) > 0.0:
        result = unit_vector(p)
    return result, state


@ti.func
def random_in_hemisphere(state: ti.u32, normal: vec3):
    """Generate a random unit-ball vector in the hemisphere around a normal.

    The sample is reflected through the origin if it points away from the
    normal.

    Args:
        state: Generator state.
        normal: The surface normal defining the hemisphere orientation.

    Returns:
        A tuple of (vector, new_state).
    """
    p, state = random_in_unit_sphere(state)
    if dot(p, normal) < 0.0:
        p = -p
    return p, state


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Generate a random point inside the unit disk in the xy-plane.

    Used for lens sampling in the thin-lens camera.

    Returns:
        A tuple of (point, new_state), where point is (x, y, 0) with
        x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    for _ in range(MAX_REJECTION_TRIES):
        if found == 0:
            x, state = random_range(state, -1.0, 1.0)
            y, state = random_range(state, -1.0, 1.0)
            if x * x + y * y < 1.0:
                p = vec3(x, y, 0.0)
                found = 1
    return p, state
