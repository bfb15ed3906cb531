# film_emulation/constants.py
from __future__ import annotations

from typing import Tuple
import numpy as np

# ============================================================================
# COLOR SPACE
# ============================================================================
COLOR_SPACE_SRGB: str = "sRGB"
SUPPORTED_COLOR_SPACES: Tuple[str, ...] = (COLOR_SPACE_SRGB,)

IMAGE_CHANNELS: Tuple[int, ...] = (3, 4)  # RGB, RGBA

# Rec. 709 luma weights
LUMA_WEIGHTS: np.ndarray = np.array([0.2126, 0.7152, 0.0722])

# IEC 61966-2-1 transfer curve
SRGB_ALPHA: float = 0.055
SRGB_GAMMA: float = 2.4
SRGB_LINEAR_SLOPE: float = 12.92
SRGB_ENCODE_THRESHOLD: float = 0.0031308  # linear -> sRGB
SRGB_DECODE_THRESHOLD: float = 0.04045    # sRGB -> linear

# Linear sRGB (D65) <-> CIE XYZ
RGB_TO_XYZ: np.ndarray = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])
XYZ_TO_RGB: np.ndarray = np.linalg.inv(RGB_TO_XYZ)

# Bradford cone response
BRADFORD: np.ndarray = np.array([
    [0.8951, 0.2664, -0.1614],
    [-0.7502, 1.7135, 0.0367],
    [0.0389, -0.0685, 1.0296],
])
BRADFORD_INV: np.ndarray = np.linalg.inv(BRADFORD)

# Correlated color temperature range covered by cct_to_xy (K)
CCT_MIN: float = 1667.0
CCT_MAX: float = 25000.0

# ============================================================================
# CPM35 PRESET - warm tones, lifted blacks, soft highlights, subtle grain
# ============================================================================
PRESET_NAME: str = "cpm35"

TEMPERATURE_NEUTRAL: float = 6500.0
TEMPERATURE_TARGET: float = 5200.0

SATURATION: float = 0.95
BRIGHTNESS: float = -0.02
CONTRAST: float = 0.90

TONE_CURVE_POINTS: Tuple[Tuple[float, float], ...] = (
    (0.00, 0.05),
    (0.25, 0.23),
    (0.50, 0.50),
    (0.75, 0.78),
    (1.00, 0.95),
)
NUMBER_OF_CURVE_POINTS: int = len(TONE_CURVE_POINTS)

# Diagonal of the subtle green cast matrix (R, G, B)
COLOR_MATRIX_TINT: Tuple[float, float, float] = (0.99, 1.01, 0.99)

SHADOWS_COLOR: Tuple[float, float, float] = (0.12, 0.18, 0.18)
HIGHLIGHTS_COLOR: Tuple[float, float, float] = (1.04, 0.93, 0.83)
SPLIT_TONING_INTENSITY: float = 0.25

BLOOM_RADIUS: float = 2.5
BLOOM_INTENSITY: float = 0.25
BLOOM_THRESHOLD: float = 0.6

GRAIN_ALPHA: float = 0.50

VIGNETTE_INTENSITY: float = 0.2
VIGNETTE_RADIUS: float = 1.2
VIGNETTE_INNER_RADIUS: float = 0.5  # falloff starts here

# ============================================================================
# GRAIN SHAPING - gray noise g -> scale * g + bias, per channel
# ============================================================================
GRAIN_SCALE: np.ndarray = np.array([0.35, 0.28, 0.28])
GRAIN_BIAS: float = 0.32
