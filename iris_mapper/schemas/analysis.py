"""
Shared Analysis Data Schemas

Core data structures for color profiles, texture features, zone analyses,
wellness insights and the per-capture analysis aggregate.
All records are frozen; an IridologyAnalysis is never mutated after creation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from iris_mapper.core.zone_atlas import Zone


class IrisColorType(str, Enum):
    """홍채 색상 분류"""

    BLUE = "blue"
    GREEN = "green"
    BROWN = "brown"
    HAZEL = "hazel"
    GRAY = "gray"
    AMBER = "amber"
    MIXED = "mixed"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class PatternType(str, Enum):
    """홍채 텍스처 패턴 분류"""

    RADIAL = "radial"
    CIRCULAR = "circular"
    CRYPTS = "crypts"
    FURROWS = "furrows"
    SPOTS = "spots"
    UNIFORM = "uniform"

    @property
    def display_name(self) -> str:
        return {
            PatternType.RADIAL: "Radial fibers",
            PatternType.CIRCULAR: "Circular rings",
            PatternType.CRYPTS: "Crypts",
            PatternType.FURROWS: "Furrows",
            PatternType.SPOTS: "Pigmentation spots",
            PatternType.UNIFORM: "Uniform texture",
        }[self]


class InsightCategory(str, Enum):
    """웰니스 인사이트 카테고리"""

    GENERAL = "general"
    LIFESTYLE = "lifestyle"
    NUTRITION = "nutrition"
    STRESS = "stress"
    ACTIVITY = "activity"
    ENVIRONMENTAL = "environmental"

    @property
    def display_name(self) -> str:
        return {
            InsightCategory.GENERAL: "General Wellness",
            InsightCategory.LIFESTYLE: "Lifestyle",
            InsightCategory.NUTRITION: "Nutrition",
            InsightCategory.STRESS: "Stress & Rest",
            InsightCategory.ACTIVITY: "Physical Activity",
            InsightCategory.ENVIRONMENTAL: "Environment",
        }[self]


@dataclass(frozen=True)
class ColorProfile:
    """
    영역 색상 프로파일.

    Attributes:
        red, green, blue: 평균 RGB (0~1 정규화)
        hue: HSV hue (0~360)
        saturation: HSV saturation (0~1)
        brightness: HSV value (0~1)
        dominant_color: 평균 색상의 분류 결과
        secondary_colors: 10% 이상 출현한 보조 색상 (최대 2개, dominant 제외)
        pixel_count: 분석에 사용된 픽셀 수
    """

    red: float
    green: float
    blue: float
    hue: float
    saturation: float
    brightness: float
    dominant_color: IrisColorType
    secondary_colors: Tuple[IrisColorType, ...] = ()
    pixel_count: int = 0

    @property
    def rgb(self) -> Tuple[float, float, float]:
        return (self.red, self.green, self.blue)

    @property
    def color_description(self) -> str:
        return f"{self.dominant_color.display_name} tones"


EMPTY_COLOR_PROFILE = ColorProfile(
    red=0.0,
    green=0.0,
    blue=0.0,
    hue=0.0,
    saturation=0.0,
    brightness=0.0,
    dominant_color=IrisColorType.MIXED,
)


@dataclass(frozen=True)
class IrisColorProfile:
    """홍채 전체 색상 프로파일 (zone 비교 기준선 포함)"""

    primary_color: IrisColorType
    secondary_colors: Tuple[IrisColorType, ...]
    color_variation: float  # 0~1
    has_distinct_zones: bool
    baseline: ColorProfile = EMPTY_COLOR_PROFILE

    @property
    def description(self) -> str:
        primary = self.primary_color.display_name
        if not self.secondary_colors:
            return f"Predominantly {primary}"
        secondary = ", ".join(c.display_name for c in self.secondary_colors)
        return f"{primary} with {secondary} accents"


@dataclass(frozen=True)
class TextureFeatures:
    """텍스처 특징 (균일도, 밀도, 패턴)"""

    uniformity: float  # 0~1, local variance의 역수 개념
    density: float  # 0~1, edge pixel 비율 기반
    patterns: Tuple[PatternType, ...]
    pattern_strength: float  # 0~1

    @property
    def is_uniform(self) -> bool:
        return self.uniformity > 0.7

    @property
    def primary_pattern(self) -> Optional[PatternType]:
        return self.patterns[0] if self.patterns else None


EMPTY_TEXTURE = TextureFeatures(uniformity=0.0, density=0.0, patterns=(), pattern_strength=0.0)


@dataclass(frozen=True)
class ZoneAnalysis:
    """단일 zone 분석 결과"""

    zone: Zone
    color_profile: ColorProfile
    texture_features: TextureFeatures
    observations: Tuple[str, ...]
    significance_score: float  # 0~1

    @property
    def is_notable(self) -> bool:
        return self.significance_score > 0.6

    @property
    def primary_observation(self) -> Optional[str]:
        return self.observations[0] if self.observations else None


@dataclass(frozen=True)
class WellnessInsight:
    """
    템플릿 기반 웰니스 인사이트 (의학적 판단 아님).

    Attributes:
        id: 인사이트 ID
        body_system: 신체 계통 라벨
        title: 제목 (zone 이름 또는 '<system> System')
        description: 설명
        reflection_prompts: 성찰 문구
        category: 인사이트 카테고리
        confidence: 0~1 (significance 기반)
        related_zones: 관련 zone ID
    """

    id: str
    body_system: str
    title: str
    description: str
    reflection_prompts: Tuple[str, ...]
    category: InsightCategory
    confidence: float
    related_zones: Tuple[str, ...] = ()

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence > 0.7

    @property
    def confidence_level(self) -> str:
        if self.confidence > 0.8:
            return "Strong"
        if self.confidence > 0.6:
            return "Moderate"
        return "Subtle"


@dataclass(frozen=True)
class IridologyAnalysis:
    """
    캡처 1건당 1개 생성되는 분석 집계 (불변).

    사용자 메타데이터(태그/메모)는 이력 저장소가 별도 레코드로 관리하며
    이 객체를 수정하지 않는다.
    """

    id: str
    is_left_eye: bool
    zone_analyses: Tuple[ZoneAnalysis, ...]
    insights: Tuple[WellnessInsight, ...]
    overall_color_profile: IrisColorProfile
    analysis_confidence: float
    timestamp: datetime = field(default_factory=datetime.now)
    disclaimer: str = ""

    @property
    def eye_side(self) -> str:
        return "left" if self.is_left_eye else "right"

    def insights_for_system(self, body_system: str) -> List[WellnessInsight]:
        return [i for i in self.insights if i.body_system == body_system]

    def zone_analysis(self, zone_id: str) -> Optional[ZoneAnalysis]:
        for analysis in self.zone_analyses:
            if analysis.zone.id == zone_id:
                return analysis
        return None

    @property
    def body_systems(self) -> List[str]:
        return sorted({i.body_system for i in self.insights})

    @property
    def summary(self) -> str:
        return f"{len(self.insights)} wellness insights across {len(self.body_systems)} body systems"
