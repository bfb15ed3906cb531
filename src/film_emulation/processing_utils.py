"""
Film emulation operator stages.

Every stage has the signature (buffer, preset, context) -> buffer, transforms
RGB only, carries alpha through and clamps its output to [0, 1]. A stage that
cannot produce output raises StageDegradedError and the pipeline passes its
input through unchanged.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

import cv2
import numpy as np

from film_emulation.blend import add_blend, alpha_mask_lerp, soft_light
from film_emulation.color_utils import (
    apply_color_matrix,
    clamp_channel,
    lerp_color,
    luma,
    smoothstep,
    temperature_adaptation_matrix,
    to_linear,
    to_srgb,
)
from film_emulation.constants import GRAIN_BIAS, GRAIN_SCALE
from film_emulation.curves import ToneCurve
from film_emulation.data import FilterPreset, PixelBuffer, ToneCurvePoint
from film_emulation.errors import StageDegradedError
from film_emulation.noise import generate_noise

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageContext:
    """Per-call values a stage may need besides the preset."""
    seed: Optional[int] = None


@lru_cache(maxsize=32)
def _tone_curve(points: Tuple[ToneCurvePoint, ...]) -> ToneCurve:
    return ToneCurve(points)


# ============================================================================
# Color stages
# ============================================================================

def apply_temperature(buffer: PixelBuffer, preset: FilterPreset,
                      context: StageContext) -> PixelBuffer:
    """
    Shift the white point from temperature_neutral to temperature_target.
    Adaptation happens in linear light; a cooler target warms the image.
    """
    try:
        matrix = temperature_adaptation_matrix(preset.temperature_neutral,
                                               preset.temperature_target)
    except ValueError as e:
        raise StageDegradedError(str(e)) from e

    linear = to_linear(buffer.rgb)
    adapted = apply_color_matrix(linear, matrix)
    return buffer.with_rgb(to_srgb(adapted))


def apply_color_controls(buffer: PixelBuffer, preset: FilterPreset,
                         context: StageContext) -> PixelBuffer:
    """
    Saturation, brightness, contrast, in that order.

    saturation: lerp each pixel toward its luma (1.0 = unchanged)
    brightness: additive offset (0.0 = unchanged)
    contrast: scale around the 0.5 pivot (1.0 = unchanged)
    """
    rgb = buffer.rgb
    gray = luma(rgb)[:, :, np.newaxis]
    rgb = lerp_color(gray, rgb, preset.saturation)
    rgb = rgb + preset.brightness
    rgb = (rgb - 0.5) * preset.contrast + 0.5
    return buffer.with_rgb(clamp_channel(rgb))


def apply_tone_curve(buffer: PixelBuffer, preset: FilterPreset,
                     context: StageContext) -> PixelBuffer:
    """Remap each RGB channel independently through the preset tone curve."""
    try:
        curve = _tone_curve(preset.tone_curve_points)
    except ValueError as e:
        raise StageDegradedError(str(e)) from e
    return buffer.with_rgb(curve(buffer.rgb))


def apply_color_matrix_tint(buffer: PixelBuffer, preset: FilterPreset,
                            context: StageContext) -> PixelBuffer:
    """
    Per-channel scale by the preset's diagonal tint matrix.
    The pipeline skips this stage when the preset has no matrix.
    """
    matrix = np.diag(preset.color_matrix_tint)
    return buffer.with_rgb(clamp_channel(apply_color_matrix(buffer.rgb, matrix)))


def apply_split_toning(buffer: PixelBuffer, preset: FilterPreset,
                       context: StageContext) -> PixelBuffer:
    """
    Tint shadows and highlights.

    A false-color map (shadows_color at luma 0, highlights_color at luma 1)
    is soft-light blended over the image, then faded in by
    split_toning_intensity.
    """
    gray = luma(buffer.rgb)[:, :, np.newaxis]
    false_color = lerp_color(np.asarray(preset.shadows_color),
                             np.asarray(preset.highlights_color),
                             gray)
    toned = soft_light(PixelBuffer(false_color, buffer.color_space), buffer)
    return alpha_mask_lerp(toned, buffer, preset.split_toning_intensity)


# ============================================================================
# Spatial stages
# ============================================================================

def apply_bloom(buffer: PixelBuffer, preset: FilterPreset,
                context: StageContext) -> PixelBuffer:
    """
    Soft glow on bright areas.

    The luma-thresholded bright pass is Gaussian-blurred (sigma = bloom_radius)
    and added back at bloom_intensity.
    """
    if preset.bloom_radius <= 0:
        raise StageDegradedError(f"bloom radius must be positive, got {preset.bloom_radius}")

    rgb = buffer.rgb
    threshold = preset.bloom_threshold
    weight = clamp_channel((luma(rgb) - threshold) / (1.0 - threshold))
    bright = np.ascontiguousarray(rgb * weight[:, :, np.newaxis])

    glow = cv2.GaussianBlur(bright, (0, 0),
                            sigmaX=preset.bloom_radius,
                            borderType=cv2.BORDER_REFLECT)
    if glow.ndim == 2:
        glow = glow[:, :, np.newaxis]
    return add_blend(PixelBuffer(glow, buffer.color_space), buffer, preset.bloom_intensity)


def apply_grain(buffer: PixelBuffer, preset: FilterPreset,
                context: StageContext) -> PixelBuffer:
    """
    Procedural film grain.

    RGBA noise is desaturated, scaled to a low amplitude around mid-gray,
    soft-light blended over the image and faded in by noise alpha * grain_alpha.
    """
    noise = generate_noise(buffer.width, buffer.height, seed=context.seed, channels=4)

    gray = luma(noise.rgb)[:, :, np.newaxis]
    grain_rgb = gray * GRAIN_SCALE + GRAIN_BIAS
    grain = PixelBuffer(grain_rgb, buffer.color_space)

    mask = noise.data[:, :, 3] * preset.grain_alpha
    grained = soft_light(grain, buffer)
    return alpha_mask_lerp(grained, buffer, mask)


def vignette_falloff(width: int, height: int, intensity: float, radius: float,
                     inner_radius: float = 0.0) -> np.ndarray:
    """
    Multiplicative (height, width) falloff, 1.0 at the image centre.

    Distance is measured from each pixel centre to the image centre, in units
    of half the smaller image side. Pixels within `inner_radius` are untouched,
    beyond `radius` the full intensity applies.
    """
    ys = np.arange(height, dtype=np.float64) + 0.5 - height / 2.0
    xs = np.arange(width, dtype=np.float64) + 0.5 - width / 2.0
    dist = np.sqrt(ys[:, np.newaxis] ** 2 + xs[np.newaxis, :] ** 2)
    dist /= min(width, height) / 2.0
    return 1.0 - intensity * smoothstep(inner_radius, radius, dist)


def apply_vignette(buffer: PixelBuffer, preset: FilterPreset,
                   context: StageContext) -> PixelBuffer:
    """Radial darkening toward the edges; the centre pixel is untouched."""
    falloff = vignette_falloff(buffer.width, buffer.height,
                               preset.vignette_intensity, preset.vignette_radius,
                               preset.vignette_inner_radius)
    return buffer.with_rgb(clamp_channel(buffer.rgb * falloff[:, :, np.newaxis]))
