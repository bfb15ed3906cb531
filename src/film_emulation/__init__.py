"""
Film Emulation Pipeline

A deterministic image-filter pipeline that gives an RGB(A) image a
"CPM35-like" film look: temperature shift, color controls, tone curve,
split-toning, bloom, procedural grain and vignette, applied in a fixed
order over in-memory pixel buffers.
"""

# Version
__version__ = "1.0.0"

# Core configuration
from .constants import (
    COLOR_SPACE_SRGB,
    LUMA_WEIGHTS,
    PRESET_NAME,
    TONE_CURVE_POINTS,
)

# Data structures
from .data import (
    PixelBuffer,
    ToneCurvePoint,
    FilterPreset,
    StageReport,
    PipelineState,
    PipelineResult,
    ProcessingResult,
    BatchResult,
)

# Errors
from .errors import (
    FilmEmulationError,
    InvalidInputError,
    DimensionMismatchError,
    StageDegradedError,
    StageFailedError,
    RenderingFailedError,
    PipelineCancelledError,
)

# Building blocks
from .color_utils import (
    clamp_channel,
    to_linear,
    to_srgb,
    lerp_color,
    luma,
    apply_color_matrix,
    temperature_adaptation_matrix,
)
from .curves import ToneCurve
from .noise import generate_noise, draw_seed
from .blend import soft_light, alpha_mask_lerp, add_blend

# Stages
from .processing_utils import (
    StageContext,
    apply_temperature,
    apply_color_controls,
    apply_tone_curve,
    apply_color_matrix_tint,
    apply_split_toning,
    apply_bloom,
    apply_grain,
    apply_vignette,
)

# Presets
from .config import (
    CPM35_PRESET,
    NEUTRAL_PRESET,
    PRESETS,
    get_preset,
    load_preset,
    save_preset,
)

# Image files
from .image_io import load_image, save_image

# Main API
from .pipeline import Stage, DEFAULT_STAGES, STAGE_ORDER, FilmPipeline, FilmProcessor

__all__ = [
    # Version
    '__version__',

    # Constants
    'COLOR_SPACE_SRGB',
    'LUMA_WEIGHTS',
    'PRESET_NAME',
    'TONE_CURVE_POINTS',

    # Data structures
    'PixelBuffer',
    'ToneCurvePoint',
    'FilterPreset',
    'StageReport',
    'PipelineState',
    'PipelineResult',
    'ProcessingResult',
    'BatchResult',

    # Errors
    'FilmEmulationError',
    'InvalidInputError',
    'DimensionMismatchError',
    'StageDegradedError',
    'StageFailedError',
    'RenderingFailedError',
    'PipelineCancelledError',

    # Building blocks
    'clamp_channel',
    'to_linear',
    'to_srgb',
    'lerp_color',
    'luma',
    'apply_color_matrix',
    'temperature_adaptation_matrix',
    'ToneCurve',
    'generate_noise',
    'draw_seed',
    'soft_light',
    'alpha_mask_lerp',
    'add_blend',

    # Stages
    'StageContext',
    'apply_temperature',
    'apply_color_controls',
    'apply_tone_curve',
    'apply_color_matrix_tint',
    'apply_split_toning',
    'apply_bloom',
    'apply_grain',
    'apply_vignette',

    # Presets
    'CPM35_PRESET',
    'NEUTRAL_PRESET',
    'PRESETS',
    'get_preset',
    'load_preset',
    'save_preset',

    # Image files
    'load_image',
    'save_image',

    # Main API
    'Stage',
    'DEFAULT_STAGES',
    'STAGE_ORDER',
    'FilmPipeline',
    'FilmProcessor',
]
