"""
Export Schemas

Pydantic models giving a JSON-safe view of an analysis aggregate for the
presentation/history layer. The aggregate itself is never modified.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from iris_mapper.schemas.analysis import (
    ColorProfile,
    IridologyAnalysis,
    InsightCategory,
    IrisColorType,
    PatternType,
    WellnessInsight,
    ZoneAnalysis,
)


class ColorProfileExport(BaseModel):
    red: float = Field(..., ge=0.0, le=1.0)
    green: float = Field(..., ge=0.0, le=1.0)
    blue: float = Field(..., ge=0.0, le=1.0)
    hue: float = Field(..., ge=0.0, lt=360.0)
    saturation: float = Field(..., ge=0.0, le=1.0)
    brightness: float = Field(..., ge=0.0, le=1.0)
    dominant_color: IrisColorType
    secondary_colors: List[IrisColorType] = Field(default_factory=list)

    @classmethod
    def from_profile(cls, profile: ColorProfile) -> "ColorProfileExport":
        return cls(
            red=profile.red,
            green=profile.green,
            blue=profile.blue,
            hue=profile.hue,
            saturation=profile.saturation,
            brightness=profile.brightness,
            dominant_color=profile.dominant_color,
            secondary_colors=list(profile.secondary_colors),
        )


class ZoneAnalysisExport(BaseModel):
    zone_id: str
    zone_name: str
    body_system: str
    color: ColorProfileExport
    uniformity: float = Field(..., ge=0.0, le=1.0)
    density: float = Field(..., ge=0.0, le=1.0)
    patterns: List[PatternType] = Field(default_factory=list)
    pattern_strength: float = Field(..., ge=0.0, le=1.0)
    observations: List[str] = Field(default_factory=list)
    significance_score: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def from_zone_analysis(cls, analysis: ZoneAnalysis) -> "ZoneAnalysisExport":
        texture = analysis.texture_features
        return cls(
            zone_id=analysis.zone.id,
            zone_name=analysis.zone.name,
            body_system=analysis.zone.body_system,
            color=ColorProfileExport.from_profile(analysis.color_profile),
            uniformity=texture.uniformity,
            density=texture.density,
            patterns=list(texture.patterns),
            pattern_strength=texture.pattern_strength,
            observations=list(analysis.observations),
            significance_score=analysis.significance_score,
        )


class InsightExport(BaseModel):
    id: str
    body_system: str
    title: str
    description: str
    reflection_prompts: List[str] = Field(default_factory=list)
    category: InsightCategory
    confidence: float = Field(..., ge=0.0, le=1.0)
    confidence_level: str
    related_zones: List[str] = Field(default_factory=list)

    @classmethod
    def from_insight(cls, insight: WellnessInsight) -> "InsightExport":
        return cls(
            id=insight.id,
            body_system=insight.body_system,
            title=insight.title,
            description=insight.description,
            reflection_prompts=list(insight.reflection_prompts),
            category=insight.category,
            confidence=insight.confidence,
            confidence_level=insight.confidence_level,
            related_zones=list(insight.related_zones),
        )


class QualityExport(BaseModel):
    """Quality gate summary attached to an exported capture"""

    overall_score: float = Field(..., ge=0.0, le=1.0)
    rating: str
    metrics: Dict[str, float] = Field(default_factory=dict)
    issues: List[str] = Field(default_factory=list)
    guidance: str


class AnalysisExport(BaseModel):
    """
    JSON-safe analysis aggregate

    Example:
        >>> export = AnalysisExport.from_analysis(analysis)
        >>> payload = export.model_dump_json(indent=2)
    """

    id: str
    eye_side: str
    timestamp: datetime
    analysis_confidence: float = Field(..., ge=0.0, le=1.0)
    primary_color: IrisColorType
    secondary_colors: List[IrisColorType] = Field(default_factory=list)
    color_variation: float = Field(..., ge=0.0, le=1.0)
    has_distinct_zones: bool
    color_description: str
    zones: List[ZoneAnalysisExport] = Field(default_factory=list)
    insights: List[InsightExport] = Field(default_factory=list)
    summary: str
    disclaimer: str
    quality: Optional[QualityExport] = None

    @classmethod
    def from_analysis(cls, analysis: IridologyAnalysis, quality=None) -> "AnalysisExport":
        """
        Args:
            analysis: IridologyAnalysis aggregate
            quality: optional QualityReport from the capture gate
        """
        overall = analysis.overall_color_profile
        quality_export = None
        if quality is not None and quality.metrics is not None:
            m = quality.metrics
            quality_export = QualityExport(
                overall_score=m.overall_score,
                rating=m.quality_rating,
                metrics={
                    "sharpness": m.sharpness,
                    "brightness": m.brightness,
                    "contrast": m.contrast,
                    "iris_size": m.iris_size,
                    "center_alignment": m.center_alignment,
                },
                issues=m.issues,
                guidance=quality.guidance.message,
            )

        return cls(
            id=analysis.id,
            eye_side=analysis.eye_side,
            timestamp=analysis.timestamp,
            analysis_confidence=analysis.analysis_confidence,
            primary_color=overall.primary_color,
            secondary_colors=list(overall.secondary_colors),
            color_variation=overall.color_variation,
            has_distinct_zones=overall.has_distinct_zones,
            color_description=overall.description,
            zones=[ZoneAnalysisExport.from_zone_analysis(z) for z in analysis.zone_analyses],
            insights=[InsightExport.from_insight(i) for i in analysis.insights],
            summary=analysis.summary,
            disclaimer=analysis.disclaimer,
            quality=quality_export,
        )
