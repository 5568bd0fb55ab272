"""
Zone Analysis Orchestrator

정규화된 홍채 이미지에 대해:
1. 이미지 단위 맵(극좌표 그리드, 텍스처 맵, 전체 색상 기준선)을 한 번 계산
2. zone별 색상/텍스처 분석을 worker thread로 병렬 실행 (결과는 차트 선언 순서 유지)
3. 관찰 문구와 significance 점수 계산
4. 인사이트를 생성하여 불변 분석 집계(IridologyAnalysis)로 묶는다
"""

import logging
import math
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from iris_mapper.core import color_analyzer, insight_generator, pixel_stats
from iris_mapper.core.errors import AnalysisCancelledError
from iris_mapper.core.texture_analyzer import TextureAnalyzer, TextureConfig, TextureContext
from iris_mapper.core.zone_atlas import Zone, zones_for_eye
from iris_mapper.core.zone_mapper import PolarGrid, zone_mask
from iris_mapper.schemas.analysis import (
    EMPTY_COLOR_PROFILE,
    EMPTY_TEXTURE,
    ColorProfile,
    IridologyAnalysis,
    IrisColorProfile,
    PatternType,
    TextureFeatures,
    ZoneAnalysis,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA = "Insufficient data for this zone"


@dataclass
class ZoneAnalyzerConfig:
    """Zone 분석 설정"""

    max_workers: int = 4
    radius_scale: float = 1.0  # 반경 1.0 = 이미지 너비의 절반 × radius_scale
    overall_sample_ratio: float = 0.8
    color_weight: float = 0.7
    texture_weight: float = 0.3
    color_gain: float = 4.0  # RGB 거리 (0~1 정규화) → color deviation
    dark_brightness: float = 0.3
    light_brightness: float = 0.7
    intense_saturation: float = 0.6
    texture: Optional[TextureConfig] = None


@dataclass(frozen=True)
class ImageAnalysisContext:
    """이미지 1장 분석 동안 zone 작업들이 공유하는 읽기 전용 데이터"""

    image: np.ndarray
    grid: PolarGrid
    texture: TextureContext
    overall_color: IrisColorProfile
    baseline_texture: TextureFeatures


def color_deviation(profile: ColorProfile, baseline: ColorProfile, gain: float = 4.0) -> float:
    """기준선과의 정규화 RGB 유클리드 거리 (0~1)."""
    distance = math.sqrt(
        (profile.red - baseline.red) ** 2
        + (profile.green - baseline.green) ** 2
        + (profile.blue - baseline.blue) ** 2
    )
    return min(1.0, gain * distance / math.sqrt(3.0))


def texture_deviation(features: TextureFeatures, baseline: TextureFeatures) -> float:
    """균일도/밀도 차이의 합 (0~1)."""
    return min(
        1.0,
        abs(features.uniformity - baseline.uniformity) + abs(features.density - baseline.density),
    )


def significance_score(
    color_dev: float,
    texture_dev: float,
    color_weight: float = 0.7,
    texture_weight: float = 0.3,
) -> float:
    """
    Significance = clamp(color_weight·color_dev + texture_weight·texture_dev).

    두 편차 모두에 대해 단조 증가한다.
    """
    return float(min(1.0, max(0.0, color_weight * color_dev + texture_weight * texture_dev)))


class ZoneAnalyzer:
    """
    Zone 분석 orchestrator.

    Example:
        >>> analyzer = ZoneAnalyzer()
        >>> analysis = analyzer.analyze(normalized_bgr, is_left=False)
        >>> [za.zone.id for za in analysis.zone_analyses][:2]
        ['re_stomach', 're_liver']
    """

    def __init__(self, config: Optional[ZoneAnalyzerConfig] = None):
        self.config = config or ZoneAnalyzerConfig()
        self.texture_analyzer = TextureAnalyzer(self.config.texture)

    def build_context(self, image_bgr: np.ndarray) -> ImageAnalysisContext:
        cfg = self.config
        grid = PolarGrid.for_image(image_bgr.shape, cfg.radius_scale)
        texture = TextureContext.build(image_bgr, grid, self.texture_analyzer.config)
        overall = color_analyzer.analyze_overall_color(
            image_bgr, radius=grid.radius, sample_ratio=cfg.overall_sample_ratio
        )
        baseline_texture = self.texture_analyzer.analyze(grid.radii < cfg.overall_sample_ratio, texture)
        return ImageAnalysisContext(
            image=image_bgr,
            grid=grid,
            texture=texture,
            overall_color=overall,
            baseline_texture=baseline_texture,
        )

    def generate_observations(
        self,
        zone: Zone,
        profile: ColorProfile,
        texture: TextureFeatures,
        overall: IrisColorProfile,
    ) -> List[str]:
        cfg = self.config
        observations = []

        if profile.brightness < cfg.dark_brightness:
            observations.append(f"Darker pigmentation in {zone.name} zone")
        elif profile.brightness > cfg.light_brightness:
            observations.append(f"Lighter coloration in {zone.name} zone")

        if profile.saturation > cfg.intense_saturation:
            observations.append(f"Notable color intensity in {zone.name}")

        if profile.dominant_color != overall.primary_color:
            observations.append(f"Color variation in {zone.name} area")

        if color_analyzer.detect_unusual_pigmentation(profile, overall):
            observations.append(f"Unusual pigmentation in {zone.name}")

        for pattern in texture.patterns:
            if pattern == PatternType.UNIFORM:
                continue
            observations.append(f"{pattern.display_name} observed in {zone.name}")

        if not observations:
            observations.append(f"{zone.name} shows typical characteristics")

        return observations

    def analyze_zone(
        self,
        zone: Zone,
        context: ImageAnalysisContext,
        cancel_event: Optional[threading.Event] = None,
    ) -> ZoneAnalysis:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelledError(f"Zone analysis cancelled before {zone.id}")

        cfg = self.config
        mask = zone_mask(zone, context.grid)
        pixels = pixel_stats.rgb_pixels(context.image, mask)

        if len(pixels) == 0:
            logger.debug(f"Zone {zone.id}: no pixels")
            return ZoneAnalysis(
                zone=zone,
                color_profile=EMPTY_COLOR_PROFILE,
                texture_features=EMPTY_TEXTURE,
                observations=(INSUFFICIENT_DATA,),
                significance_score=0.0,
            )

        profile = color_analyzer.analyze_pixels(pixels)
        texture = self.texture_analyzer.analyze(mask, context.texture)
        observations = self.generate_observations(zone, profile, texture, context.overall_color)

        significance = significance_score(
            color_deviation(profile, context.overall_color.baseline, cfg.color_gain),
            texture_deviation(texture, context.baseline_texture),
            cfg.color_weight,
            cfg.texture_weight,
        )

        logger.debug(
            f"Zone {zone.id}: {len(pixels)} px, color={profile.dominant_color.value}, "
            f"patterns={[p.value for p in texture.patterns]}, significance={significance:.3f}"
        )

        return ZoneAnalysis(
            zone=zone,
            color_profile=profile,
            texture_features=texture,
            observations=tuple(observations),
            significance_score=significance,
        )

    def analyze_zones(
        self,
        image_bgr: np.ndarray,
        zones: Sequence[Zone],
        cancel_event: Optional[threading.Event] = None,
        context: Optional[ImageAnalysisContext] = None,
    ) -> List[ZoneAnalysis]:
        """
        zone 목록을 병렬 분석.

        executor.map은 입력 순서대로 결과를 돌려주므로 완료 순서와 무관하게
        출력은 zones 순서를 따른다.
        """
        if context is None:
            context = self.build_context(image_bgr)

        workers = max(1, min(self.config.max_workers, len(zones)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda z: self.analyze_zone(z, context, cancel_event), zones))
        return results

    def analyze(
        self,
        image_bgr: np.ndarray,
        is_left: bool,
        cancel_event: Optional[threading.Event] = None,
    ) -> IridologyAnalysis:
        """
        정규화된 홍채 이미지 → 분석 집계.

        Args:
            image_bgr: 정규화된 홍채 이미지 (BGR uint8)
            is_left: 왼쪽 눈 여부
            cancel_event: 설정되면 남은 zone 작업을 중단 (AnalysisCancelledError)

        Returns:
            IridologyAnalysis
        """
        zones = zones_for_eye(is_left)
        context = self.build_context(image_bgr)
        zone_analyses = self.analyze_zones(image_bgr, zones, cancel_event, context)

        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelledError("Analysis cancelled after zone pass")

        insights = insight_generator.generate_insights(zone_analyses)
        confidence = insight_generator.analysis_confidence(zone_analyses)

        logger.info(
            f"Analyzed {len(zone_analyses)} zones ({'left' if is_left else 'right'} eye): "
            f"{len(insights)} insights, confidence={confidence:.3f}"
        )

        return IridologyAnalysis(
            id=str(uuid.uuid4()),
            is_left_eye=is_left,
            zone_analyses=tuple(zone_analyses),
            insights=tuple(insights),
            overall_color_profile=context.overall_color,
            analysis_confidence=confidence,
            disclaimer=insight_generator.WELLNESS_DISCLAIMER,
        )
