# Standard library
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

# Third-party
import numpy as np

# Local application imports
from film_emulation.constants import (
    BLOOM_INTENSITY,
    BLOOM_RADIUS,
    BLOOM_THRESHOLD,
    BRIGHTNESS,
    COLOR_MATRIX_TINT,
    COLOR_SPACE_SRGB,
    CONTRAST,
    GRAIN_ALPHA,
    HIGHLIGHTS_COLOR,
    IMAGE_CHANNELS,
    NUMBER_OF_CURVE_POINTS,
    PRESET_NAME,
    SATURATION,
    SHADOWS_COLOR,
    SPLIT_TONING_INTENSITY,
    SUPPORTED_COLOR_SPACES,
    TEMPERATURE_NEUTRAL,
    TEMPERATURE_TARGET,
    TONE_CURVE_POINTS,
    VIGNETTE_INNER_RADIUS,
    VIGNETTE_INTENSITY,
    VIGNETTE_RADIUS,
)
from film_emulation.errors import FilmEmulationError, InvalidInputError


@dataclass
class PixelBuffer:
    """
    Interleaved raster image, shape (height, width, channels), float64 in [0, 1].

    Images are RGB or RGBA; single-channel buffers are used for noise fields.
    """
    data: np.ndarray
    color_space: str = COLOR_SPACE_SRGB

    def __post_init__(self):
        data = np.asarray(self.data, dtype=np.float64)
        if data.ndim == 2:
            data = data[:, :, np.newaxis]
        self.data = data

    @classmethod
    def from_flat(cls,
                  samples: Iterable[float],
                  width: int,
                  height: int,
                  channels: int = 4,
                  color_space: str = COLOR_SPACE_SRGB) -> "PixelBuffer":
        """
        Build a buffer from flat interleaved samples (any iterable of numbers).
        Dimensions are checked before the samples are read.
        """
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"{width}x{height} image")
        if channels not in IMAGE_CHANNELS:
            raise InvalidInputError(f"unsupported channel count {channels}")
        try:
            flat = np.fromiter(samples, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"samples are not a flat run of numbers: {e}") from e
        if flat.size != width * height * channels:
            raise InvalidInputError(
                f"expected {width * height * channels} samples, got {flat.size}")
        data = flat.reshape(height, width, channels)
        return cls(data, color_space)

    @classmethod
    def from_array(cls, array: np.ndarray, color_space: str = COLOR_SPACE_SRGB) -> "PixelBuffer":
        """Wrap an array; integer samples are normalized by their dtype maximum."""
        array = np.asarray(array)
        if np.issubdtype(array.dtype, np.integer):
            scale = float(np.iinfo(array.dtype).max)
            return cls(array.astype(np.float64) / scale, color_space)
        return cls(array.astype(np.float64), color_space)

    # ------------------------------------------------------------------
    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def channels(self) -> int:
        return self.data.shape[2]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)"""
        return self.width, self.height

    @property
    def rgb(self) -> np.ndarray:
        return self.data[:, :, :3]

    @property
    def alpha(self) -> Optional[np.ndarray]:
        if self.channels == 4:
            return self.data[:, :, 3]
        return None

    def validate(self, channels: Tuple[int, ...] = IMAGE_CHANNELS) -> None:
        """Raise InvalidInputError if the buffer cannot be read as an image."""
        if self.data.ndim != 3:
            raise InvalidInputError(f"expected 3 dimensions, got {self.data.ndim}")
        if self.width <= 0 or self.height <= 0:
            raise InvalidInputError(f"{self.width}x{self.height} image")
        if self.channels not in channels:
            raise InvalidInputError(f"unsupported channel count {self.channels}")
        if self.color_space not in SUPPORTED_COLOR_SPACES:
            raise InvalidInputError(f"unsupported color space {self.color_space!r}")

    def with_rgb(self, rgb: np.ndarray) -> "PixelBuffer":
        """New buffer with the RGB planes replaced and alpha carried over."""
        if self.channels == 4:
            data = np.concatenate([rgb, self.data[:, :, 3:4]], axis=2)
        else:
            data = np.array(rgb, dtype=np.float64, copy=True)
        return PixelBuffer(data, self.color_space)

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.data.copy(), self.color_space)

    def flatten(self) -> np.ndarray:
        """Interleaved samples, row-major."""
        return self.data.reshape(-1).copy()

    def to_uint8(self) -> np.ndarray:
        return (np.clip(self.data, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)

    def to_uint16(self) -> np.ndarray:
        return (np.clip(self.data, 0.0, 1.0) * 65535.0 + 0.5).astype(np.uint16)


class ToneCurvePoint(NamedTuple):
    """Tone curve control point, both coordinates in [0, 1]."""
    x: float
    y: float


def _as_rgb(name: str, value) -> Tuple[float, float, float]:
    color = tuple(float(v) for v in value)
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    return color


@dataclass(frozen=True)
class FilterPreset:
    """Constants controlling every stage for one filter look. Never mutated."""
    name: str = PRESET_NAME

    # Temperature (Kelvin)
    temperature_neutral: float = TEMPERATURE_NEUTRAL
    temperature_target: float = TEMPERATURE_TARGET

    # Color controls
    saturation: float = SATURATION
    brightness: float = BRIGHTNESS
    contrast: float = CONTRAST

    # Tone curve
    tone_curve_points: Tuple[ToneCurvePoint, ...] = TONE_CURVE_POINTS

    # Diagonal color matrix, None disables the tint stage
    color_matrix_tint: Optional[Tuple[float, float, float]] = COLOR_MATRIX_TINT

    # Split toning
    shadows_color: Tuple[float, float, float] = SHADOWS_COLOR
    highlights_color: Tuple[float, float, float] = HIGHLIGHTS_COLOR
    split_toning_intensity: float = SPLIT_TONING_INTENSITY

    # Bloom
    bloom_radius: float = BLOOM_RADIUS
    bloom_intensity: float = BLOOM_INTENSITY
    bloom_threshold: float = BLOOM_THRESHOLD

    # Grain
    grain_alpha: float = GRAIN_ALPHA

    # Vignette
    vignette_intensity: float = VIGNETTE_INTENSITY
    vignette_radius: float = VIGNETTE_RADIUS
    vignette_inner_radius: float = VIGNETTE_INNER_RADIUS

    def __post_init__(self):
        points = tuple(ToneCurvePoint(float(x), float(y)) for x, y in self.tone_curve_points)
        object.__setattr__(self, "tone_curve_points", points)
        object.__setattr__(self, "shadows_color", _as_rgb("shadows_color", self.shadows_color))
        object.__setattr__(self, "highlights_color", _as_rgb("highlights_color", self.highlights_color))
        if self.color_matrix_tint is not None:
            object.__setattr__(self, "color_matrix_tint",
                               _as_rgb("color_matrix_tint", self.color_matrix_tint))
        self._validate()

    def _validate(self):
        if self.temperature_neutral <= 0 or self.temperature_target <= 0:
            raise ValueError("Temperatures must be positive (Kelvin)")

        points = self.tone_curve_points
        if len(points) != NUMBER_OF_CURVE_POINTS:
            raise ValueError(f"Tone curve needs exactly {NUMBER_OF_CURVE_POINTS} points, got {len(points)}")
        for p in points:
            if not (0.0 <= p.x <= 1.0 and 0.0 <= p.y <= 1.0):
                raise ValueError(f"Tone curve point {tuple(p)} outside [0, 1]")
        if any(b.x <= a.x for a, b in zip(points, points[1:])):
            raise ValueError("Tone curve x values must be strictly increasing")
        if points[0].x != 0.0 or points[-1].x != 1.0:
            raise ValueError("Tone curve must start at x=0 and end at x=1")

        for name in ("split_toning_intensity", "grain_alpha", "vignette_intensity"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.bloom_intensity < 0:
            raise ValueError(f"bloom_intensity must be >= 0, got {self.bloom_intensity}")
        if not 0.0 <= self.bloom_threshold < 1.0:
            raise ValueError(f"bloom_threshold must be in [0, 1), got {self.bloom_threshold}")
        if self.vignette_radius <= 0:
            raise ValueError(f"vignette_radius must be positive, got {self.vignette_radius}")
        if not 0.0 <= self.vignette_inner_radius < self.vignette_radius:
            raise ValueError(f"vignette_inner_radius must be in [0, vignette_radius), "
                             f"got {self.vignette_inner_radius}")

    def replace(self, **changes) -> "FilterPreset":
        """Copy with some constants changed."""
        return replace(self, **changes)

    def to_dict(self) -> Dict:
        """Plain dict, tuples as lists."""
        d = asdict(self)
        d["tone_curve_points"] = [list(p) for p in self.tone_curve_points]
        for key in ("shadows_color", "highlights_color", "color_matrix_tint"):
            if d[key] is not None:
                d[key] = list(d[key])
        return d


# ============================================================================
# PIPELINE RESULTS
# ============================================================================

STAGE_APPLIED = "applied"
STAGE_DEGRADED = "degraded"
STAGE_SKIPPED = "skipped"


@dataclass
class StageReport:
    """Outcome of one stage in one pipeline call."""
    stage: str
    status: str  # 'applied', 'degraded' or 'skipped'
    message: Optional[str] = None


class PipelineState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Typed result of a pipeline call. Failed calls never carry a buffer."""
    state: PipelineState
    buffer: Optional[PixelBuffer] = None
    error: Optional[FilmEmulationError] = None
    reports: List[StageReport] = field(default_factory=list)
    seed: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.SUCCEEDED

    @property
    def degraded_stages(self) -> List[str]:
        return [r.stage for r in self.reports if r.status == STAGE_DEGRADED]

    def unwrap(self) -> PixelBuffer:
        """Return the output buffer or raise the error."""
        if self.error is not None:
            raise self.error
        return self.buffer


@dataclass
class ProcessingResult:
    """Results from processing an image file."""
    input_path: str
    output_path: str
    status: str  # 'success' or 'error'
    error: Optional[str] = None
    degraded_stages: List[str] = field(default_factory=list)

    def __repr__(self):
        if self.status == 'success':
            return f"ProcessingResult(✓ {Path(self.output_path).name})"
        else:
            return f"ProcessingResult(✗ {Path(self.input_path).name}: {self.error})"


@dataclass
class BatchResult:
    """Results from batch processing."""
    total: int
    successful: int
    failed: int
    results: List[ProcessingResult]
    output_dir: str

    def print_summary(self):
        """Print a nice summary."""
        print("\n" + "="*70)
        print("BATCH PROCESSING COMPLETE")
        print("="*70)
        print(f"Total: {self.total}")
        print(f"Successful: {self.successful}")
        print(f"Failed: {self.failed}")
        print(f"Output directory: {self.output_dir}")
        print("="*70)
