"""
Zone Mapper Module

Zone Atlas의 (각도 × 반경) 영역을 정규화된 홍채 이미지의 픽셀 그리드에 매핑한다.
이미지 중심을 원점으로, 이미지 너비의 절반을 반경 1.0으로 본다 (radius_scale로 조정 가능).

극좌표 그리드는 이미지마다 한 번 계산한 PolarGrid 객체로 전달한다 (모듈 캐시 없음).
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from iris_mapper.core import pixel_stats
from iris_mapper.core.iris_detector import IrisPoint
from iris_mapper.core.zone_atlas import TWO_PI, Zone, normalize_angle

logger = logging.getLogger(__name__)

# Body system overlay colors (RGB)
SYSTEM_COLORS: Dict[str, Tuple[int, int, int]] = {
    "Digestive": (255, 100, 100),
    "Respiratory": (100, 150, 255),
    "Cardiovascular": (255, 50, 50),
    "Nervous": (200, 100, 255),
    "Urinary": (100, 200, 255),
    "Immune": (100, 255, 100),
    "Endocrine": (255, 200, 100),
}
DEFAULT_SYSTEM_COLOR = (200, 200, 200)


@dataclass(frozen=True)
class PolarGrid:
    """
    이미지 1장에 대한 극좌표 그리드.

    Attributes:
        angles: 픽셀별 각도 [0, 2π), y축 위쪽 기준
        radii: 픽셀별 정규화 반경 (1.0 = 홍채 가장자리)
        center_x, center_y: 원점 (px)
        radius: 반경 1.0에 해당하는 픽셀 길이
    """

    angles: np.ndarray
    radii: np.ndarray
    center_x: float
    center_y: float
    radius: float

    @property
    def shape(self) -> Tuple[int, int]:
        return self.angles.shape

    @classmethod
    def for_image(cls, shape: Tuple[int, ...], radius_scale: float = 1.0) -> "PolarGrid":
        h, w = shape[:2]
        cx, cy = w / 2.0, h / 2.0
        radius = (w / 2.0) * radius_scale
        angles, radii = pixel_stats.polar_grid((h, w), cx, cy, radius)
        # np.mod of a tiny negative angle can round up to exactly 2π
        angles[angles >= TWO_PI] = 0.0
        return cls(angles=angles, radii=radii, center_x=cx, center_y=cy, radius=radius)


def zone_mask(zone: Zone, grid: PolarGrid) -> np.ndarray:
    """
    zone에 속하는 픽셀의 boolean 마스크.

    zone_contains()와 동일한 규칙 (반개구간, wrap arc, full ring)을 벡터화한 것.
    """
    r = grid.radii
    in_band = (r >= zone.inner_radius) & (r < zone.outer_radius)
    if zone.outer_radius >= 1.0:
        in_band |= r == zone.outer_radius
    if zone.is_full_ring:
        return in_band

    a = grid.angles
    s = normalize_angle(zone.start_angle)
    e = normalize_angle(zone.end_angle)
    if s <= e:
        in_arc = (a >= s) & (a < e)
    else:
        in_arc = (a >= s) | (a < e)
    return in_band & in_arc


def zone_pixels(image_bgr: np.ndarray, zone: Zone, grid: PolarGrid) -> np.ndarray:
    """zone 내부 픽셀 (N, 3) RGB uint8."""
    return pixel_stats.rgb_pixels(image_bgr, zone_mask(zone, grid))


def zone_mask_image(zone: Zone, grid: PolarGrid) -> np.ndarray:
    """zone 마스크를 uint8 (255/0) 이미지로 반환."""
    return zone_mask(zone, grid).astype(np.uint8) * 255


def zone_bounds(zone: Zone, grid: PolarGrid) -> Optional[Tuple[int, int, int, int]]:
    """zone 픽셀의 bounding box (x, y, w, h). 픽셀이 없으면 None."""
    mask = zone_mask(zone, grid)
    if not mask.any():
        return None
    ys, xs = np.nonzero(mask)
    x0, x1 = int(xs.min()), int(xs.max())
    y0, y1 = int(ys.min()), int(ys.max())
    return x0, y0, x1 - x0 + 1, y1 - y0 + 1


def zone_center(zone: Zone, grid: PolarGrid) -> IrisPoint:
    """
    zone의 대표 위치 (각도/반경 중간점, 픽셀 좌표).

    full ring은 이미지 중심을 반환한다.
    """
    if zone.is_full_ring:
        return IrisPoint(grid.center_x, grid.center_y)
    s = normalize_angle(zone.start_angle)
    span = normalize_angle(zone.end_angle - zone.start_angle)
    mid_angle = s + span / 2.0
    mid_radius = (zone.inner_radius + zone.outer_radius) / 2.0 * grid.radius
    return IrisPoint(
        grid.center_x + mid_radius * np.cos(mid_angle),
        grid.center_y - mid_radius * np.sin(mid_angle),
    )


def system_color_bgr(body_system: str) -> Tuple[int, int, int]:
    r, g, b = SYSTEM_COLORS.get(body_system, DEFAULT_SYSTEM_COLOR)
    return b, g, r


def visualize_zones(
    image_bgr: np.ndarray,
    zones: Sequence[Zone],
    grid: Optional[PolarGrid] = None,
    alpha: float = 0.5,
    highlight: Optional[str] = None,
) -> np.ndarray:
    """
    신체 계통별 색상으로 zone을 칠한 오버레이 이미지.

    Args:
        image_bgr: 정규화된 홍채 이미지
        zones: 표시할 zone (뒤쪽 zone이 앞쪽 zone을 덮음)
        grid: 극좌표 그리드 (None이면 이미지 기준으로 생성)
        alpha: 오버레이 색상 비율
        highlight: 경계선을 그릴 zone ID

    Returns:
        BGR uint8 이미지
    """
    if grid is None:
        grid = PolarGrid.for_image(image_bgr.shape)

    base = image_bgr[:, :, :3].astype(np.float64)
    overlay = base.copy()
    for zone in zones:
        mask = zone_mask(zone, grid)
        overlay[mask] = np.array(system_color_bgr(zone.body_system), dtype=np.float64)

    out = np.clip(base * (1.0 - alpha) + overlay * alpha, 0, 255).astype(np.uint8)

    if highlight is not None:
        for zone in zones:
            if zone.id != highlight:
                continue
            contours, _ = cv2.findContours(
                zone_mask_image(zone, grid), cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
            )
            cv2.drawContours(out, contours, -1, (255, 255, 255), 2)

    logger.debug(f"Rendered overlay for {len(zones)} zones")
    return out


def zone_pixel_counts(zones: Sequence[Zone], grid: PolarGrid) -> List[int]:
    return [int(zone_mask(zone, grid).sum()) for zone in zones]
