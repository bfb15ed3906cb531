"""
Blend compositor: per-pixel blend-mode math over same-size buffers.
Alpha of the bottom/base layer is always kept.
"""

from typing import Union

import numpy as np
from numba import jit

from film_emulation.color_utils import clamp_channel
from film_emulation.data import PixelBuffer
from film_emulation.errors import DimensionMismatchError


def _check_same_size(a: PixelBuffer, b: PixelBuffer, what: str):
    if a.size != b.size:
        raise DimensionMismatchError(
            f"{what}: {a.width}x{a.height} vs {b.width}x{b.height}")


@jit(nopython=True)
def _soft_light_numba(top: np.ndarray, bottom: np.ndarray, result: np.ndarray):
    """W3C soft-light over flat sample arrays."""
    for i in range(top.shape[0]):
        s = top[i]
        b = bottom[i]
        if s <= 0.5:
            result[i] = b - (1.0 - 2.0 * s) * b * (1.0 - b)
        else:
            if b <= 0.25:
                d = ((16.0 * b - 12.0) * b + 4.0) * b
            else:
                d = np.sqrt(b)
            result[i] = b + (2.0 * s - 1.0) * (d - b)


def soft_light(top: PixelBuffer, bottom: PixelBuffer) -> PixelBuffer:
    """
    Soft-light blend of top over bottom, per RGB channel (W3C compositing).

    Parameters:
        top: Blend layer (source)
        bottom: Backdrop; its alpha is carried to the result

    Returns:
        New buffer, RGB clamped to [0, 1]
    """
    _check_same_size(top, bottom, "soft_light")
    s = np.ascontiguousarray(clamp_channel(top.rgb), dtype=np.float64).ravel()
    b = np.ascontiguousarray(clamp_channel(bottom.rgb), dtype=np.float64).ravel()
    result = np.empty_like(b)
    _soft_light_numba(s, b, result)
    return bottom.with_rgb(clamp_channel(result.reshape(bottom.rgb.shape)))


def alpha_mask_lerp(overlay: PixelBuffer,
                    base: PixelBuffer,
                    mask: Union[float, np.ndarray, PixelBuffer]) -> PixelBuffer:
    """
    Composite overlay over base: base * (1 - mask) + overlay * mask.

    Parameters:
        overlay: Layer faded in by the mask
        base: Background; its alpha is carried to the result
        mask: Scalar, (H, W) array or single-channel buffer in [0, 1]
    """
    _check_same_size(overlay, base, "alpha_mask_lerp")

    if isinstance(mask, PixelBuffer):
        _check_same_size(mask, base, "alpha_mask_lerp mask")
        m = mask.data[:, :, :1]
    elif np.ndim(mask) == 0:
        m = float(mask)
    else:
        m = np.asarray(mask, dtype=np.float64)
        if m.shape[:2] != (base.height, base.width):
            raise DimensionMismatchError(
                f"alpha_mask_lerp mask: {m.shape[1]}x{m.shape[0]} vs {base.width}x{base.height}")
        if m.ndim == 2:
            m = m[:, :, np.newaxis]
    m = clamp_channel(m)

    rgb = base.rgb * (1.0 - m) + overlay.rgb * m
    return base.with_rgb(rgb)


def add_blend(top: PixelBuffer, bottom: PixelBuffer, intensity: float = 1.0) -> PixelBuffer:
    """Additive blend: bottom + intensity * top, clamped."""
    _check_same_size(top, bottom, "add_blend")
    return bottom.with_rgb(clamp_channel(bottom.rgb + intensity * top.rgb))
