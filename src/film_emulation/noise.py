"""
Seeded noise fields for procedural grain.
"""

import logging
from typing import Optional

import numpy as np

from film_emulation.data import PixelBuffer
from film_emulation.errors import InvalidInputError

log = logging.getLogger(__name__)


def draw_seed() -> int:
    """Fresh random seed from OS entropy. Each call draws independently."""
    return int(np.random.SeedSequence().entropy)


def generate_noise(width: int,
                   height: int,
                   seed: Optional[int] = None,
                   channels: int = 1) -> PixelBuffer:
    """
    Uniform noise in [0, 1), independent per pixel and per channel.

    Parameters:
        width, height: Field size in pixels
        seed: Same seed and size give a bit-identical field; None draws a fresh one
        channels: 1 for a grayscale field, 4 for RGBA noise

    Returns:
        PixelBuffer of shape (height, width, channels)
    """
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"noise field {width}x{height}")
    if seed is None:
        seed = draw_seed()

    rng = np.random.default_rng(seed)
    log.debug(f"Generating {width}x{height}x{channels} noise (seed={seed})")
    return PixelBuffer(rng.random((height, width, channels), dtype=np.float64))
