import numpy as np
import pytest

from film_emulation import PixelBuffer, FilterPreset
from film_emulation.processing_utils import StageContext


def make_uniform(width, height, value=0.5, alpha=1.0):
    data = np.empty((height, width, 4))
    data[:, :, :3] = value
    data[:, :, 3] = alpha
    return PixelBuffer(data)


@pytest.fixture
def mid_gray() -> PixelBuffer:
    """4x4 RGBA (0.5, 0.5, 0.5, 1.0)."""
    return make_uniform(4, 4, 0.5)


@pytest.fixture
def random_image() -> PixelBuffer:
    """Reproducible 24x16 RGBA image with varied alpha."""
    rng = np.random.default_rng(1234)
    return PixelBuffer(rng.random((16, 24, 4)))


@pytest.fixture
def gradient_image() -> PixelBuffer:
    """Horizontal black-to-white ramp, 32x8 RGB."""
    ramp = np.linspace(0.0, 1.0, 32)
    data = np.repeat(ramp[np.newaxis, :, np.newaxis], 8, axis=0)
    return PixelBuffer(np.repeat(data, 3, axis=2))


@pytest.fixture
def preset() -> FilterPreset:
    return FilterPreset()


@pytest.fixture
def context() -> StageContext:
    return StageContext(seed=42)
