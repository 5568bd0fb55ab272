"""
Quality Gate Criteria

Pydantic model for capture quality normalization constants and accept-gate thresholds.
"""

from pydantic import BaseModel, Field


class QualityWeights(BaseModel):
    """
    Overall quality score weights.

    overall = Σ weight·metric + bonus for each absent problem flag, clamped to [0, 1].
    """

    sharpness: float = Field(default=0.40, ge=0.0, le=1.0)
    brightness: float = Field(default=0.15, ge=0.0, le=1.0)
    contrast: float = Field(default=0.10, ge=0.0, le=1.0)
    iris_size: float = Field(default=0.10, ge=0.0, le=1.0)
    center_alignment: float = Field(default=0.10, ge=0.0, le=1.0)
    no_glare_bonus: float = Field(default=0.05, ge=0.0, le=1.0)
    no_motion_blur_bonus: float = Field(default=0.05, ge=0.0, le=1.0)
    well_lit_bonus: float = Field(default=0.05, ge=0.0, le=1.0)


class QualityCriteria(BaseModel):
    """
    Capture quality criteria

    Empirical normalization constants come from handheld phone captures.
    """

    # Normalization
    sharpness_norm: float = Field(default=500.0, description="Laplacian variance mapped to sharpness 1.0", gt=0.0)
    contrast_norm: float = Field(default=70.0, description="Luma std mapped to contrast 1.0", gt=0.0)
    iris_size_gain: float = Field(default=2.5, description="Multiplier on diameter / frame diagonal", gt=0.0)
    center_alignment_gain: float = Field(default=4.0, description="Penalty per unit of offset / diagonal", gt=0.0)

    # Flags
    glare_pixel_level: int = Field(default=240, description="Channel level treated as overexposed", ge=0, le=255)
    max_glare_fraction: float = Field(default=0.10, description="Overexposed fraction that flags glare", ge=0.0, le=1.0)
    motion_blur_sharpness: float = Field(default=0.30, description="Sharpness below this flags motion blur", ge=0.0, le=1.0)
    min_well_lit_brightness: float = Field(default=0.3, ge=0.0, le=1.0)
    max_well_lit_brightness: float = Field(default=0.8, ge=0.0, le=1.0)
    min_well_lit_contrast: float = Field(default=0.4, ge=0.0, le=1.0)

    # Framing guidance
    min_iris_diameter_ratio: float = Field(default=0.10, description="Iris diameter / frame width lower bound", ge=0.0, le=1.0)
    max_iris_diameter_ratio: float = Field(default=0.40, description="Iris diameter / frame width upper bound", ge=0.0, le=1.0)
    max_center_offset_ratio: float = Field(default=0.15, description="Per-axis offset from frame center", ge=0.0, le=1.0)
    max_tilt_ratio: float = Field(default=0.3, description="Eye height difference / iris radius", ge=0.0)
    require_both_eyes: bool = Field(default=True, description="Reject captures where only one eye is detected")

    # Gate
    min_overall_score: float = Field(default=0.6, description="Overall score must exceed this to accept", ge=0.0, le=1.0)
    weights: QualityWeights = Field(default_factory=QualityWeights)
