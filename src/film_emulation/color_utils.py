"""
Color-space utilities: sRGB transfer, clamping, interpolation and
chromatic adaptation. All functions are pure and work on scalars or arrays.
"""

from typing import Optional, Tuple, Union

import numpy as np

from film_emulation.constants import (
    BRADFORD,
    BRADFORD_INV,
    CCT_MAX,
    CCT_MIN,
    LUMA_WEIGHTS,
    RGB_TO_XYZ,
    SRGB_ALPHA,
    SRGB_DECODE_THRESHOLD,
    SRGB_ENCODE_THRESHOLD,
    SRGB_GAMMA,
    SRGB_LINEAR_SLOPE,
    XYZ_TO_RGB,
)

ArrayLike = Union[float, np.ndarray]


# ============================================================================
# Clamping and interpolation
# ============================================================================

def clamp_channel(value: ArrayLike) -> ArrayLike:
    """
    Clamp samples to [0, 1].
    NaN maps to 0, +Inf to 1 and -Inf to 0 so nothing non-finite leaks out.
    """
    cleaned = np.nan_to_num(value, nan=0.0, posinf=1.0, neginf=0.0)
    return np.clip(cleaned, 0.0, 1.0)


def lerp_color(a: ArrayLike, b: ArrayLike, t: ArrayLike) -> ArrayLike:
    """Per-channel linear interpolation, a at t=0 and b at t=1."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    return a + (b - a) * t


def luma(rgb: np.ndarray) -> np.ndarray:
    """Rec. 709 luma of an (..., 3) array."""
    return np.asarray(rgb, dtype=np.float64)[..., :3] @ LUMA_WEIGHTS


def smoothstep(edge0: float, edge1: float, x: ArrayLike) -> ArrayLike:
    t = np.clip((np.asarray(x, dtype=np.float64) - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


# ============================================================================
# sRGB transfer curve
# ============================================================================

def to_linear(srgb: ArrayLike) -> ArrayLike:
    """Convert sRGB-encoded samples (0..1) to linear light (0..1)."""
    img = clamp_channel(srgb)
    return np.where(
        img <= SRGB_DECODE_THRESHOLD,
        img / SRGB_LINEAR_SLOPE,
        np.power((img + SRGB_ALPHA) / (1.0 + SRGB_ALPHA), SRGB_GAMMA),
    )


def to_srgb(linear: ArrayLike) -> ArrayLike:
    """Convert linear-light samples (0..1) to sRGB encoding (0..1)."""
    img = clamp_channel(linear)
    return np.where(
        img <= SRGB_ENCODE_THRESHOLD,
        SRGB_LINEAR_SLOPE * img,
        (1.0 + SRGB_ALPHA) * np.power(img, 1.0 / SRGB_GAMMA) - SRGB_ALPHA,
    )


# ============================================================================
# Matrices
# ============================================================================

def apply_color_matrix(rgb: np.ndarray,
                       matrix: np.ndarray,
                       bias: Optional[np.ndarray] = None) -> np.ndarray:
    """Apply a 3x3 matrix (and optional bias) to every pixel WITHOUT clipping."""
    original_shape = rgb.shape
    pixels = rgb.reshape(-1, 3)
    result = pixels @ np.asarray(matrix, dtype=np.float64).T
    if bias is not None:
        result = result + np.asarray(bias, dtype=np.float64)
    return result.reshape(original_shape)


def cct_to_xy(kelvin: float) -> Tuple[float, float]:
    """
    CIE 1931 chromaticity of a correlated color temperature.

    Uses the Kim et al. cubic fit of the Planckian locus below 4000 K and
    the CIE daylight locus from 4000 K to 25000 K.

    Raises:
        ValueError: temperature outside 1667..25000 K
    """
    t = float(kelvin)
    if not CCT_MIN <= t <= CCT_MAX:
        raise ValueError(f"Temperature {t:.0f}K outside supported range "
                         f"{CCT_MIN:.0f}..{CCT_MAX:.0f}K")

    if t < 4000.0:
        x = -0.2661239e9 / t**3 - 0.2343589e6 / t**2 + 0.8776956e3 / t + 0.179910
        if t <= 2222.0:
            y = -1.1063814 * x**3 - 1.34811020 * x**2 + 2.18555832 * x - 0.20219683
        else:
            y = -0.9549476 * x**3 - 1.37418593 * x**2 + 2.09137015 * x - 0.16748867
    else:
        if t <= 7000.0:
            x = -4.6070e9 / t**3 + 2.9678e6 / t**2 + 0.09911e3 / t + 0.244063
        else:
            x = -2.0064e9 / t**3 + 1.9018e6 / t**2 + 0.24748e3 / t + 0.237040
        y = -3.000 * x * x + 2.870 * x - 0.275
    return x, y


def white_point_xyz(kelvin: float) -> np.ndarray:
    """XYZ of the white at a given temperature, normalized to Y = 1."""
    x, y = cct_to_xy(kelvin)
    return np.array([x / y, 1.0, (1.0 - x - y) / y])


def temperature_adaptation_matrix(neutral_k: float, target_k: float) -> np.ndarray:
    """
    Linear-sRGB Bradford matrix mapping the neutral white onto the target white.
    A target cooler (lower K) than the neutral warms the image.
    """
    if neutral_k == target_k:
        return np.eye(3)

    src_cone = BRADFORD @ white_point_xyz(neutral_k)
    dst_cone = BRADFORD @ white_point_xyz(target_k)
    adapt_xyz = BRADFORD_INV @ np.diag(dst_cone / src_cone) @ BRADFORD
    return XYZ_TO_RGB @ adapt_xyz @ RGB_TO_XYZ
