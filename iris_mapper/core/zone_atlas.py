"""
Zone Atlas Module

홍채 차트(iridology chart)의 영역을 극좌표(각도 × 반경) 사각형으로 정의한다.
Right/Left eye 영역은 불변(frozen) 레코드의 튜플이며, 포함 판정은 순수 함수로 수행한다.

좌표계:
- 각도는 라디안, 0 = +x 축(3시 방향), 반시계 방향 증가 (y축 위쪽)
- 시계 위치 h → π/2 − h·π/6 (12시 = π/2)
- 반경은 홍채 반경 대비 비율 (0.0 = 중심, 1.0 = 가장자리)
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Tuple

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi


def clock_to_radians(hour: float) -> float:
    """시계 위치를 라디안으로 변환 (12시 = π/2, 시계 방향으로 감소)."""
    return (math.pi / 2.0) - (hour * math.pi / 6.0)


def normalize_angle(angle: float) -> float:
    """Wrap an angle into [0, 2π)."""
    wrapped = math.fmod(angle, TWO_PI)
    if wrapped < 0:
        wrapped += TWO_PI
    # fmod of a tiny negative value can round up to exactly 2π
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


@dataclass(frozen=True)
class Zone:
    """
    홍채 차트 영역 (불변).

    Attributes:
        id: 영역 ID (예: 're_liver')
        name: 표시 이름
        body_system: 연관 신체 계통 라벨 (예: 'Digestive')
        start_angle: 시작 각도 (라디안, 정규화 전 값 허용)
        end_angle: 끝 각도 (라디안)
        inner_radius: 안쪽 반경 (0~1)
        outer_radius: 바깥 반경 (0~1)
        description: 영역 설명
        reflections: 웰니스 성찰 문구 템플릿
    """

    id: str
    name: str
    body_system: str
    start_angle: float
    end_angle: float
    inner_radius: float
    outer_radius: float
    description: str
    reflections: Tuple[str, ...] = ()

    def __post_init__(self):
        if not (0.0 <= self.inner_radius <= self.outer_radius <= 1.0):
            raise ValueError(
                f"Zone {self.id}: radii must satisfy 0 <= inner <= outer <= 1, "
                f"got inner={self.inner_radius}, outer={self.outer_radius}"
            )

    @property
    def is_full_ring(self) -> bool:
        return (self.end_angle - self.start_angle) >= TWO_PI - 1e-9

    def contains(self, angle: float, radius: float) -> bool:
        return zone_contains(self, angle, radius)


def angle_in_arc(angle: float, start: float, end: float) -> bool:
    """
    반개구간 [start, end) 각도 포함 판정.

    start > end (정규화 후)인 경우 0/2π 경계를 가로지르는 호로 보고
    ``angle >= start or angle < end`` 로 판정한다.

    끝 각도는 포함하지 않는다 (``angle <= end`` 가 아님). 인접한 두 sector가
    경계 각도를 공유해도 한 픽셀이 두 zone에 동시에 속하지 않는다.
    """
    a = normalize_angle(angle)
    s = normalize_angle(start)
    e = normalize_angle(end)
    if s <= e:
        return s <= a < e
    return a >= s or a < e


def radius_in_band(radius: float, inner: float, outer: float) -> bool:
    """반개구간 [inner, outer) 반경 포함 판정. outer ≥ 1이면 가장자리(r == outer)도 포함."""
    if radius < inner:
        return False
    if radius < outer:
        return True
    return outer >= 1.0 and radius <= outer


def zone_contains(zone: Zone, angle: float, radius: float) -> bool:
    """(angle, normalized radius) 점이 zone 안에 있는지 판정."""
    if not radius_in_band(radius, zone.inner_radius, zone.outer_radius):
        return False
    if zone.is_full_ring:
        return True
    return angle_in_arc(angle, zone.start_angle, zone.end_angle)


# ================================================================
# Chart definitions (Bernard Jensen style charts)
# ================================================================

RIGHT_EYE_ZONES: Tuple[Zone, ...] = (
    Zone(
        id="re_stomach",
        name="Stomach",
        body_system="Digestive",
        start_angle=0.0,
        end_angle=TWO_PI,
        inner_radius=0.0,
        outer_radius=0.3,
        description="Central digestive area",
        reflections=(
            "How is your digestion after meals?",
            "Consider meal timing and portion sizes",
            "Reflect on your hydration habits",
            "Are you chewing your food thoroughly?",
        ),
    ),
    Zone(
        id="re_liver",
        name="Liver",
        body_system="Digestive",
        start_angle=clock_to_radians(7),
        end_angle=clock_to_radians(5),
        inner_radius=0.3,
        outer_radius=0.6,
        description="Liver and detoxification zone",
        reflections=(
            "How are your energy levels throughout the day?",
            "Consider your body's natural detox processes",
            "Reflect on sleep quality and rest",
            "Are you supporting your liver with nutrition?",
        ),
    ),
    Zone(
        id="re_gallbladder",
        name="Gallbladder",
        body_system="Digestive",
        start_angle=clock_to_radians(6),
        end_angle=clock_to_radians(5),
        inner_radius=0.4,
        outer_radius=0.6,
        description="Gallbladder zone",
        reflections=(
            "How do you feel after fatty meals?",
            "Consider balanced nutrition",
            "Reflect on dietary fat sources",
        ),
    ),
    Zone(
        id="re_lung",
        name="Right Lung",
        body_system="Respiratory",
        start_angle=clock_to_radians(3),
        end_angle=clock_to_radians(2),
        inner_radius=0.4,
        outer_radius=0.7,
        description="Right respiratory zone",
        reflections=(
            "Are you practicing deep breathing?",
            "Consider air quality in your environment",
            "Reflect on your breathing patterns",
            "Do you get adequate fresh air daily?",
        ),
    ),
    Zone(
        id="re_kidney",
        name="Right Kidney",
        body_system="Urinary",
        start_angle=clock_to_radians(8),
        end_angle=clock_to_radians(7),
        inner_radius=0.5,
        outer_radius=0.7,
        description="Right kidney and adrenal zone",
        reflections=(
            "How is your hydration?",
            "Consider your stress levels",
            "Reflect on your body's rest needs",
            "Are you drinking enough water daily?",
        ),
    ),
    Zone(
        id="re_brain",
        name="Right Brain Hemisphere",
        body_system="Nervous",
        start_angle=clock_to_radians(1),
        end_angle=clock_to_radians(11),
        inner_radius=0.6,
        outer_radius=0.8,
        description="Right brain and nervous system",
        reflections=(
            "How are your stress levels?",
            "Consider mental clarity and focus",
            "Reflect on your sleep quality",
            "Are you taking breaks for mental rest?",
        ),
    ),
    Zone(
        id="re_heart",
        name="Heart",
        body_system="Cardiovascular",
        start_angle=clock_to_radians(4),
        end_angle=clock_to_radians(3),
        inner_radius=0.4,
        outer_radius=0.6,
        description="Cardiovascular zone",
        reflections=(
            "How is your cardiovascular activity?",
            "Consider movement and exercise",
            "Reflect on emotional wellness",
            "Are you moving your body regularly?",
        ),
    ),
    Zone(
        id="re_lymphatic",
        name="Lymphatic System",
        body_system="Immune",
        start_angle=0.0,
        end_angle=TWO_PI,
        inner_radius=0.8,
        outer_radius=1.0,
        description="Lymphatic and immune zone",
        reflections=(
            "How is your overall vitality?",
            "Consider immune system support",
            "Reflect on rest and recovery",
            "Are you managing stress effectively?",
        ),
    ),
    Zone(
        id="re_intestines",
        name="Intestines",
        body_system="Digestive",
        start_angle=clock_to_radians(8),
        end_angle=clock_to_radians(4),
        inner_radius=0.3,
        outer_radius=0.5,
        description="Intestinal zone",
        reflections=(
            "How is your digestive regularity?",
            "Consider fiber and water intake",
            "Reflect on gut-friendly foods",
        ),
    ),
    Zone(
        id="re_thyroid",
        name="Thyroid",
        body_system="Endocrine",
        start_angle=clock_to_radians(10),
        end_angle=clock_to_radians(9),
        inner_radius=0.5,
        outer_radius=0.7,
        description="Thyroid and metabolic zone",
        reflections=(
            "How are your energy levels?",
            "Consider metabolic health",
            "Reflect on temperature regulation",
        ),
    ),
)

# 왼쪽 눈은 오른쪽의 거울 배치 (심장 8-9시, 신장 4-5시)
LEFT_EYE_ZONES: Tuple[Zone, ...] = (
    Zone(
        id="le_stomach",
        name="Stomach",
        body_system="Digestive",
        start_angle=0.0,
        end_angle=TWO_PI,
        inner_radius=0.0,
        outer_radius=0.3,
        description="Central digestive area",
        reflections=(
            "How is your digestion after meals?",
            "Consider meal timing and portion sizes",
            "Reflect on your hydration habits",
        ),
    ),
    Zone(
        id="le_heart",
        name="Heart",
        body_system="Cardiovascular",
        start_angle=clock_to_radians(9),
        end_angle=clock_to_radians(8),
        inner_radius=0.4,
        outer_radius=0.6,
        description="Heart zone (left eye)",
        reflections=(
            "How is your cardiovascular wellness?",
            "Consider emotional balance",
            "Reflect on stress management",
            "Are you nurturing your heart health?",
        ),
    ),
    Zone(
        id="le_lung",
        name="Left Lung",
        body_system="Respiratory",
        start_angle=clock_to_radians(10),
        end_angle=clock_to_radians(9),
        inner_radius=0.4,
        outer_radius=0.7,
        description="Left respiratory zone",
        reflections=(
            "Are you practicing deep breathing?",
            "Consider air quality in your environment",
            "Reflect on your breathing patterns",
        ),
    ),
    Zone(
        id="le_kidney",
        name="Left Kidney",
        body_system="Urinary",
        start_angle=clock_to_radians(5),
        end_angle=clock_to_radians(4),
        inner_radius=0.5,
        outer_radius=0.7,
        description="Left kidney and adrenal zone",
        reflections=(
            "How is your hydration?",
            "Consider your stress levels",
            "Reflect on your body's rest needs",
        ),
    ),
    Zone(
        id="le_spleen",
        name="Spleen",
        body_system="Immune",
        start_angle=clock_to_radians(8),
        end_angle=clock_to_radians(7),
        inner_radius=0.4,
        outer_radius=0.6,
        description="Spleen and immune function",
        reflections=(
            "How is your immune resilience?",
            "Consider rest and recovery",
            "Reflect on stress management",
        ),
    ),
    Zone(
        id="le_brain",
        name="Left Brain Hemisphere",
        body_system="Nervous",
        start_angle=clock_to_radians(1),
        end_angle=clock_to_radians(11),
        inner_radius=0.6,
        outer_radius=0.8,
        description="Left brain and nervous system",
        reflections=(
            "How are your stress levels?",
            "Consider mental clarity and focus",
            "Reflect on your sleep quality",
        ),
    ),
    Zone(
        id="le_lymphatic",
        name="Lymphatic System",
        body_system="Immune",
        start_angle=0.0,
        end_angle=TWO_PI,
        inner_radius=0.8,
        outer_radius=1.0,
        description="Lymphatic and immune zone",
        reflections=(
            "How is your overall vitality?",
            "Consider immune system support",
            "Reflect on rest and recovery",
        ),
    ),
    Zone(
        id="le_intestines",
        name="Intestines",
        body_system="Digestive",
        start_angle=clock_to_radians(8),
        end_angle=clock_to_radians(4),
        inner_radius=0.3,
        outer_radius=0.5,
        description="Intestinal zone",
        reflections=(
            "How is your digestive regularity?",
            "Consider fiber and water intake",
            "Reflect on gut-friendly foods",
        ),
    ),
)


def zones_for_eye(is_left: bool) -> List[Zone]:
    """눈 방향별 영역 목록 (차트 선언 순서 유지)."""
    return list(LEFT_EYE_ZONES if is_left else RIGHT_EYE_ZONES)


def all_body_systems() -> List[str]:
    """양쪽 눈 차트에 등장하는 신체 계통 (정렬된 고유값)."""
    systems = {zone.body_system for zone in RIGHT_EYE_ZONES + LEFT_EYE_ZONES}
    return sorted(systems)


def zones_by_system(system: str, is_left: bool) -> List[Zone]:
    return [zone for zone in zones_for_eye(is_left) if zone.body_system == system]


def zones_at(angle: float, radius: float, is_left: bool) -> List[Zone]:
    """주어진 점을 포함하는 모든 영역 (차트가 겹치는 구간이 있으므로 0개 이상)."""
    return [zone for zone in zones_for_eye(is_left) if zone.contains(angle, radius)]
