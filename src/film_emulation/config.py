"""
Preset configuration.

Presets are FilterPreset values; on disk and on the command line they are
omegaconf structured configs, so YAML files and `key=value` overrides are
type-checked against PresetConfig before a FilterPreset is built.
"""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from film_emulation.constants import (
    BLOOM_INTENSITY,
    BLOOM_RADIUS,
    BLOOM_THRESHOLD,
    BRIGHTNESS,
    COLOR_MATRIX_TINT,
    CONTRAST,
    GRAIN_ALPHA,
    HIGHLIGHTS_COLOR,
    PRESET_NAME,
    SATURATION,
    SHADOWS_COLOR,
    SPLIT_TONING_INTENSITY,
    TEMPERATURE_NEUTRAL,
    TEMPERATURE_TARGET,
    TONE_CURVE_POINTS,
    VIGNETTE_INNER_RADIUS,
    VIGNETTE_INTENSITY,
    VIGNETTE_RADIUS,
)
from film_emulation.data import FilterPreset

log = logging.getLogger(__name__)


@dataclass
class PresetConfig:
    """Schema for preset files and overrides. Mirrors FilterPreset."""
    name: str = PRESET_NAME
    temperature_neutral: float = TEMPERATURE_NEUTRAL
    temperature_target: float = TEMPERATURE_TARGET
    saturation: float = SATURATION
    brightness: float = BRIGHTNESS
    contrast: float = CONTRAST
    tone_curve_points: List[List[float]] = field(
        default_factory=lambda: [list(p) for p in TONE_CURVE_POINTS])
    color_matrix_tint: Optional[List[float]] = field(
        default_factory=lambda: list(COLOR_MATRIX_TINT))
    shadows_color: List[float] = field(default_factory=lambda: list(SHADOWS_COLOR))
    highlights_color: List[float] = field(default_factory=lambda: list(HIGHLIGHTS_COLOR))
    split_toning_intensity: float = SPLIT_TONING_INTENSITY
    bloom_radius: float = BLOOM_RADIUS
    bloom_intensity: float = BLOOM_INTENSITY
    bloom_threshold: float = BLOOM_THRESHOLD
    grain_alpha: float = GRAIN_ALPHA
    vignette_intensity: float = VIGNETTE_INTENSITY
    vignette_radius: float = VIGNETTE_RADIUS
    vignette_inner_radius: float = VIGNETTE_INNER_RADIUS


CPM35_PRESET = FilterPreset()

# Every stage is an identity with these constants.
NEUTRAL_PRESET = FilterPreset(
    name="neutral",
    temperature_neutral=TEMPERATURE_NEUTRAL,
    temperature_target=TEMPERATURE_NEUTRAL,
    saturation=1.0,
    brightness=0.0,
    contrast=1.0,
    tone_curve_points=((0.0, 0.0), (0.25, 0.25), (0.5, 0.5), (0.75, 0.75), (1.0, 1.0)),
    color_matrix_tint=None,
    split_toning_intensity=0.0,
    bloom_intensity=0.0,
    grain_alpha=0.0,
    vignette_intensity=0.0,
)

PRESETS: Dict[str, FilterPreset] = {
    CPM35_PRESET.name: CPM35_PRESET,
    NEUTRAL_PRESET.name: NEUTRAL_PRESET,
}

DEFAULT_PRESET_NAME = CPM35_PRESET.name


def get_preset(name: str) -> FilterPreset:
    """Look up a named preset."""
    try:
        return PRESETS[name]
    except KeyError:
        raise ValueError(f"Unknown preset {name!r}. Available: {sorted(PRESETS)}") from None


def preset_to_config(preset: FilterPreset) -> DictConfig:
    return OmegaConf.structured(PresetConfig(**preset.to_dict()))


def config_to_preset(cfg: DictConfig) -> FilterPreset:
    obj = OmegaConf.to_object(cfg)
    return FilterPreset(**asdict(obj))


def load_preset(source: Union[None, str, Path, Dict, DictConfig] = None,
                overrides: Optional[Union[Sequence[str], Dict]] = None) -> FilterPreset:
    """
    Build a validated preset.

    Args:
        source: None (default preset), a preset name, a YAML file path,
                or a mapping of preset fields merged over the default preset
        overrides: `key=value` strings or a mapping applied last

    Raises:
        ValueError: unknown preset, unreadable file or invalid values
    """
    base = CPM35_PRESET
    update = None

    if isinstance(source, (dict, DictConfig)):
        update = OmegaConf.create(source)
    elif source is not None:
        if str(source) in PRESETS:
            base = PRESETS[str(source)]
        else:
            path = Path(source)
            if not path.is_file():
                raise ValueError(f"Preset {str(source)!r} is neither a known name nor a file")
            log.info(f"Loading preset from {path}")
            update = OmegaConf.load(path)

    try:
        cfg = preset_to_config(base)
        if update is not None:
            cfg = OmegaConf.merge(cfg, update)
        if overrides:
            if isinstance(overrides, dict):
                cfg = OmegaConf.merge(cfg, OmegaConf.create(overrides))
            else:
                cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
        preset = config_to_preset(cfg)
    except OmegaConfBaseException as e:
        raise ValueError(f"Invalid preset configuration: {e}") from e

    log.debug(f"Loaded preset {preset.name!r}")
    return preset


def save_preset(preset: FilterPreset, path: Union[str, Path]) -> Path:
    """Write a preset as YAML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    OmegaConf.save(preset_to_config(preset), path)
    return path
