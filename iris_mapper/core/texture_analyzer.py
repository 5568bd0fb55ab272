"""
Texture Analyzer Module

zone 단위 텍스처 특징 추출:
- uniformity: 1 - (평균 local variance / variance_norm)
- density: Canny edge 픽셀 비율 × density_gain
- patterns: 고정 분류 (radial/circular/crypts/furrows/spots/uniform)

이미지 전체에 대한 맵(휘도, local variance, edge, gradient 방향)은
TextureContext.build()로 한 번만 계산하고 zone 분석 호출에 명시적으로 넘긴다.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np

from iris_mapper.core import pixel_stats
from iris_mapper.core.zone_mapper import PolarGrid
from iris_mapper.schemas.analysis import EMPTY_TEXTURE, PatternType, TextureFeatures

logger = logging.getLogger(__name__)


@dataclass
class TextureConfig:
    """텍스처 분석 설정"""

    variance_window: int = 5
    variance_norm: float = 500.0
    canny_low: int = 50
    canny_high: int = 150
    density_gain: float = 3.0
    gradient_min_magnitude: float = 20.0  # 방향 판정에 사용할 최소 gradient 크기
    min_oriented_pixels: int = 20
    radial_max_alignment: float = 0.35  # mean cos² 이하이면 radial fiber
    circular_min_alignment: float = 0.65  # mean cos² 이상이면 circular ring
    outlier_sigma: float = 2.5
    outlier_min_std: float = 2.0
    outlier_fraction: float = 0.03
    furrow_min_density: float = 0.5
    uniform_max_density: float = 0.1
    uniform_min_uniformity: float = 0.7


@dataclass(frozen=True)
class TextureContext:
    """
    이미지 1장에 대한 텍스처 맵 모음 (zone 분석 간 공유, 읽기 전용).

    Attributes:
        luma: 휘도 (float64)
        local_var: sliding-window 분산
        edges: Canny edge 여부 (bool)
        alignment: gradient와 반경 방향 사이 cos² (gradient가 약한 픽셀은 NaN)
    """

    luma: np.ndarray
    local_var: np.ndarray
    edges: np.ndarray
    alignment: np.ndarray

    @classmethod
    def build(cls, image_bgr: np.ndarray, grid: PolarGrid, config: Optional[TextureConfig] = None) -> "TextureContext":
        cfg = config or TextureConfig()
        gray = pixel_stats.luma(image_bgr)
        local_var = pixel_stats.local_variance(gray, cfg.variance_window)

        gray_u8 = np.clip(gray, 0, 255).astype(np.uint8)
        edges = cv2.Canny(gray_u8, cfg.canny_low, cfg.canny_high) > 0

        gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
        gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
        h, w = gray.shape
        yy, xx = np.indices((h, w), dtype=np.float64)
        rx = xx - grid.center_x
        ry = yy - grid.center_y

        grad_sq = gx * gx + gy * gy
        radial_sq = rx * rx + ry * ry
        dot = gx * rx + gy * ry
        valid = (grad_sq >= cfg.gradient_min_magnitude**2) & (radial_sq > 0)
        alignment = np.full((h, w), np.nan)
        alignment[valid] = (dot[valid] ** 2) / (grad_sq[valid] * radial_sq[valid])

        return cls(luma=gray, local_var=local_var, edges=edges, alignment=alignment)


class TextureAnalyzer:
    """zone 마스크 단위 텍스처 분석기 (상태 없음)"""

    def __init__(self, config: Optional[TextureConfig] = None):
        self.config = config or TextureConfig()

    def analyze(self, mask: np.ndarray, context: TextureContext) -> TextureFeatures:
        """
        Args:
            mask: zone boolean 마스크
            context: 이미지 텍스처 맵

        Returns:
            TextureFeatures (빈 마스크면 EMPTY_TEXTURE)
        """
        cfg = self.config
        count = int(mask.sum())
        if count == 0:
            return EMPTY_TEXTURE

        uniformity = float(np.clip(1.0 - context.local_var[mask].mean() / cfg.variance_norm, 0.0, 1.0))
        density = float(np.clip(context.edges[mask].mean() * cfg.density_gain, 0.0, 1.0))

        patterns: List[PatternType] = []
        scores: List[float] = []

        alignment = context.alignment[mask]
        alignment = alignment[~np.isnan(alignment)]
        if alignment.size >= cfg.min_oriented_pixels:
            mean_alignment = float(alignment.mean())
            if mean_alignment <= cfg.radial_max_alignment:
                patterns.append(PatternType.RADIAL)
                scores.append((0.5 - mean_alignment) / 0.5)
            elif mean_alignment >= cfg.circular_min_alignment:
                patterns.append(PatternType.CIRCULAR)
                scores.append((mean_alignment - 0.5) / 0.5)
                if density > cfg.furrow_min_density:
                    patterns.append(PatternType.FURROWS)
                    scores.append(density)

        values = context.luma[mask]
        std = float(values.std())
        if std > cfg.outlier_min_std:
            mean = float(values.mean())
            dark = float((values < mean - cfg.outlier_sigma * std).mean())
            bright = float((values > mean + cfg.outlier_sigma * std).mean())
            if dark > cfg.outlier_fraction:
                patterns.append(PatternType.CRYPTS)
                scores.append(dark / (cfg.outlier_fraction * 4.0))
            if bright > cfg.outlier_fraction:
                patterns.append(PatternType.SPOTS)
                scores.append(bright / (cfg.outlier_fraction * 4.0))

        if density < cfg.uniform_max_density and uniformity > cfg.uniform_min_uniformity:
            patterns.append(PatternType.UNIFORM)
            scores.append(uniformity)

        strength = float(np.clip(max(scores), 0.0, 1.0)) if scores else 0.0

        return TextureFeatures(
            uniformity=uniformity,
            density=density,
            patterns=tuple(patterns),
            pattern_strength=strength,
        )
