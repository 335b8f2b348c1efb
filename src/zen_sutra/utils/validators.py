"""YAML schema validation and config loading.

Provides centralized validation for configuration files using pydantic:
    - Tracer schema (sutra_tracer.v1.yaml): corpus, thresholds, ink, guide,
      scoring classification limits, progress keys, feedback texts
    - Stroke log schema (stroke_log.v1.yaml): recorded pointer input that the
      CLI replays through a session

All loaders fail fast with the offending file path in the message.

Units:
    - Lengths: logical (CSS) pixels; rasters scale them by pixel_ratio
    - Colors: 8-bit RGB tuples
    - Alpha fractions: [0.0, 1.0]; alpha thresholds: 8-bit [0, 255]
    - Delays: milliseconds

Usage:
    from zen_sutra.utils import validators

    cfg = validators.load_tracer_config("configs/sutra_tracer.v1.yaml")
    log = validators.load_stroke_log("session.yaml")
"""

from pathlib import Path
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


HEART_SUTRA = (
    "观自在菩萨行深般若波罗蜜多时照见五蕴皆空度一切苦厄"
    "舍利子色不异空空不异色色即是空空即是色受想行识亦复如是"
    "舍利子是诸法空相不生不灭不垢不净不增不减"
)
"""Default corpus: the opening of the Heart Sutra."""

RGB = Tuple[int, int, int]


def _check_rgb(v: RGB) -> RGB:
    if any(not 0 <= c <= 255 for c in v):
        raise ValueError(f"RGB components must be in [0, 255], got {v}")
    return v


# ============================================================================
# TRACER SCHEMA V1
# ============================================================================

class ThresholdsConfig(BaseModel):
    """Coverage ratios that accept a character."""
    auto: float = Field(0.25, gt=0.0, le=1.0, description="Checked silently after every stroke")
    manual: float = Field(0.12, gt=0.0, le=1.0, description="Checked on explicit validate")

    @model_validator(mode='after')
    def validate_manual_not_stricter(self) -> 'ThresholdsConfig':
        if self.manual > self.auto:
            raise ValueError(
                f"Manual threshold {self.manual} must not exceed automatic threshold {self.auto}"
            )
        return self


class InkConfig(BaseModel):
    """User brush."""
    width_px: float = Field(12.0, gt=0.0, le=200.0, description="Line width in logical px")
    color: RGB = Field((44, 44, 44), description="#2c2c2c")
    antialias: bool = Field(True, description="Antialiased stroke edges")

    @field_validator('color')
    @classmethod
    def validate_color(cls, v: RGB) -> RGB:
        return _check_rgb(v)


class GuideConfig(BaseModel):
    """Glyph placement and guide-layer appearance."""
    box_fraction: float = Field(0.75, gt=0.0, le=1.0, description="Glyph box / shorter surface side")
    glyph_fraction: float = Field(0.8, gt=0.0, le=1.0, description="Font size / glyph box")
    ghost_alpha: float = Field(0.15, ge=0.0, le=1.0, description="Opacity of the guide glyph")
    grid_color: RGB = Field((229, 229, 229), description="#e5e5e5")
    grid_width_px: float = Field(1.0, gt=0.0, le=10.0)
    font_path: Optional[str] = Field(None, description="TrueType/OpenType font; None uses Pillow's bundled font")

    @field_validator('grid_color')
    @classmethod
    def validate_grid_color(cls, v: RGB) -> RGB:
        return _check_rgb(v)


class ScoringConfig(BaseModel):
    """Pixel classification limits used by the overlap scorer."""
    reference_alpha_min: int = Field(128, ge=0, le=254, description="Reference ink: alpha above this")
    ink_alpha_min: int = Field(180, ge=0, le=254, description="User ink: alpha above this")
    ink_red_max: int = Field(80, ge=1, le=255, description="User ink: red channel below this")


class ProgressConfig(BaseModel):
    """Keys of the shared key-value store and credit per character."""
    index_key: str = Field("zen_sutra_index", min_length=1)
    profile_key: str = Field("zen_profile", min_length=1)
    xp_per_character: int = Field(1, ge=0)


class FeedbackConfig(BaseModel):
    """Texts shown for the success and retry states."""
    success_badge: str = "善"
    retry_message: str = "笔墨不足，请再临摹"


class TracerConfigV1(BaseModel):
    """Complete tracer configuration (sutra_tracer.v1.yaml schema)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("sutra_tracer.v1", alias="schema")
    title: str = "般若波罗蜜多心经"
    corpus: str = Field(HEART_SUTRA, min_length=1)
    advance_delay_ms: int = Field(1500, ge=0, le=60_000)
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)
    ink: InkConfig = Field(default_factory=InkConfig)
    guide: GuideConfig = Field(default_factory=GuideConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    feedback: FeedbackConfig = Field(default_factory=FeedbackConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "sutra_tracer.v1":
            raise ValueError(f"Expected schema 'sutra_tracer.v1', got '{v}'")
        return v

    @field_validator('corpus')
    @classmethod
    def validate_corpus(cls, v: str) -> str:
        if any(ch.isspace() for ch in v):
            raise ValueError("Corpus must not contain whitespace characters")
        return v

    @model_validator(mode='after')
    def validate_layer_separation(self) -> 'TracerConfigV1':
        """Guide and grid pixels must never classify as user ink."""
        scoring = self.scoring
        if self.ink.color[0] >= scoring.ink_red_max:
            raise ValueError(
                f"Ink red channel {self.ink.color[0]} must be below ink_red_max {scoring.ink_red_max}"
            )
        ghost_alpha_8bit = round(self.guide.ghost_alpha * 255)
        if ghost_alpha_8bit > scoring.ink_alpha_min:
            raise ValueError(
                f"Ghost alpha {ghost_alpha_8bit}/255 would classify as ink "
                f"(ink_alpha_min {scoring.ink_alpha_min})"
            )
        # Darkest guide pixel: black ghost composited over an opaque grid line
        grid_red = self.guide.grid_color[0]
        guide_red_min = grid_red * (255 - ghost_alpha_8bit) // 255
        if guide_red_min < scoring.ink_red_max:
            raise ValueError(
                f"Grid red channel {grid_red} darkens to {guide_red_min} under the "
                f"ghost glyph and would classify as ink (ink_red_max {scoring.ink_red_max})"
            )
        return self


# ============================================================================
# STROKE LOG SCHEMA V1
# ============================================================================

class SurfaceSpec(BaseModel):
    """Drawing surface in logical px."""
    width: float = Field(..., gt=0.0)
    height: float = Field(..., gt=0.0)
    pixel_ratio: float = Field(1.0, gt=0.0, le=8.0)


class StrokeAction(BaseModel):
    """One recorded user action.

    ``stroke`` needs at least one point; ``wait`` needs ``ms``.
    """
    action: Literal["stroke", "validate", "clear", "skip", "wait"]
    points: List[Tuple[float, float]] = Field(default_factory=list)
    ms: Optional[int] = Field(None, ge=0)

    @model_validator(mode='after')
    def validate_payload(self) -> 'StrokeAction':
        if self.action == "stroke" and not self.points:
            raise ValueError("stroke action requires at least one point")
        if self.action == "wait" and self.ms is None:
            raise ValueError("wait action requires 'ms'")
        return self


class StrokeLogV1(BaseModel):
    """Recorded session input (stroke_log.v1.yaml schema)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("stroke_log.v1", alias="schema")
    surface: SurfaceSpec
    actions: List[StrokeAction] = Field(default_factory=list)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "stroke_log.v1":
            raise ValueError(f"Expected schema 'stroke_log.v1', got '{v}'")
        return v


# ============================================================================
# LOADERS
# ============================================================================

def load_tracer_config(path: Optional[Union[str, Path]] = None) -> TracerConfigV1:
    """Load and validate tracer config from YAML.

    Parameters
    ----------
    path : Union[str, Path], optional
        Path to sutra_tracer.v1.yaml; None returns the built-in defaults

    Returns
    -------
    TracerConfigV1
        Validated configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    if path is None:
        return TracerConfigV1()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Tracer config not found: {path}")

    data = fs.load_yaml(path) or {}
    try:
        return TracerConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Tracer config validation failed at {path}: {e}") from e


def load_stroke_log(path: Union[str, Path]) -> StrokeLogV1:
    """Load and validate a recorded stroke log from YAML.

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Stroke log not found: {path}")

    data = fs.load_yaml(path) or {}
    try:
        return StrokeLogV1(**data)
    except Exception as e:
        raise ValueError(f"Stroke log validation failed at {path}: {e}") from e
