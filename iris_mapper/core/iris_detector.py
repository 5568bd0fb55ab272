import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IrisPoint:
    x: float
    y: float

    def distance_to(self, other: "IrisPoint") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def angle_to(self, other: "IrisPoint") -> float:
        return math.atan2(other.y - self.y, other.x - self.x)


@dataclass(frozen=True)
class EyeLandmark:
    """단일 눈의 홍채 검출 결과 (프레임 픽셀 좌표)."""

    center: IrisPoint
    radius: float
    boundary: Tuple[IrisPoint, ...] = ()


@dataclass(frozen=True)
class Landmarks:
    """
    얼굴 내 양쪽 눈 홍채 landmark.

    검출 실패한 눈은 None. 좌/우는 피사체 기준 (셀피에서는 화면 좌우가 뒤집힘).
    """

    left: Optional[EyeLandmark] = None
    right: Optional[EyeLandmark] = None

    @property
    def has_both_irises(self) -> bool:
        return self.left is not None and self.right is not None

    @property
    def has_any_iris(self) -> bool:
        return self.left is not None or self.right is not None

    def eye(self, is_left: bool) -> Optional[EyeLandmark]:
        return self.left if is_left else self.right


class IrisDetector(Protocol):
    """Detector collaborator: frame (BGR) → Landmarks or None."""

    def detect(self, frame: np.ndarray) -> Optional[Landmarks]: ...


@dataclass
class DetectorConfig:
    right_eye_x_ratio: float = 0.35  # 셀피 기준 피사체 오른쪽 눈은 화면 왼쪽
    left_eye_x_ratio: float = 0.65
    eye_y_ratio: float = 0.40
    iris_radius_ratio: float = 0.07  # 프레임 너비 대비
    boundary_points: int = 16
    min_iris_radius_px: float = 10.0
    max_iris_radius_px: float = 200.0
    max_height_diff_ratio: float = 0.5
    min_eye_distance_ratio: float = 2.0
    max_eye_distance_ratio: float = 10.0


def circular_points(center: IrisPoint, radius: float, num_points: int) -> Tuple[IrisPoint, ...]:
    points = []
    for i in range(num_points):
        angle = 2.0 * math.pi * i / num_points
        points.append(IrisPoint(center.x + radius * math.cos(angle), center.y + radius * math.sin(angle)))
    return tuple(points)


def center_from_points(points: List[IrisPoint]) -> IrisPoint:
    if not points:
        return IrisPoint(0.0, 0.0)
    return IrisPoint(
        sum(p.x for p in points) / len(points),
        sum(p.y for p in points) / len(points),
    )


def radius_from_points(points: List[IrisPoint]) -> float:
    if len(points) < 2:
        return 0.0
    center = center_from_points(points)
    return sum(p.distance_to(center) for p in points) / len(points)


def landmark_from_points(points: List[IrisPoint]) -> Optional[EyeLandmark]:
    """경계 점 목록으로부터 중심/반경 계산 (실제 ML 검출기 연동용)."""
    if len(points) < 2:
        return None
    return EyeLandmark(
        center=center_from_points(points),
        radius=radius_from_points(points),
        boundary=tuple(points),
    )


class PlaceholderIrisDetector:
    """
    결정론적 placeholder 검출기.

    실제 얼굴/홍채 모델 대신 고정 비율 위치에 양쪽 눈이 있다고 가정한다.
    IrisDetector 프로토콜을 따르므로 실제 검출기로 교체 가능.
    """

    def __init__(self, config: Optional[DetectorConfig] = None) -> None:
        self.config = config or DetectorConfig()

    def detect(self, frame: np.ndarray) -> Optional[Landmarks]:
        if frame is None or frame.size == 0:
            logger.warning("Empty frame passed to detector")
            return None

        h, w = frame.shape[:2]
        cfg = self.config
        radius = w * cfg.iris_radius_ratio
        eye_y = h * cfg.eye_y_ratio

        left_center = IrisPoint(w * cfg.left_eye_x_ratio, eye_y)
        right_center = IrisPoint(w * cfg.right_eye_x_ratio, eye_y)

        landmarks = Landmarks(
            left=EyeLandmark(left_center, radius, circular_points(left_center, radius, cfg.boundary_points)),
            right=EyeLandmark(right_center, radius, circular_points(right_center, radius, cfg.boundary_points)),
        )
        logger.debug(f"Placeholder detection: left={left_center}, right={right_center}, radius={radius:.1f}")
        return landmarks


def is_detection_valid(landmarks: Optional[Landmarks], config: Optional[DetectorConfig] = None) -> bool:
    """검출 결과가 최소 요건(양안, 반경 범위, 기울기, 눈 사이 거리)을 만족하는지."""
    cfg = config or DetectorConfig()
    if landmarks is None or not landmarks.has_both_irises:
        return False

    left, right = landmarks.left, landmarks.right
    for eye in (left, right):
        if eye.radius < cfg.min_iris_radius_px or eye.radius > cfg.max_iris_radius_px:
            return False

    height_diff = abs(left.center.y - right.center.y)
    if height_diff > left.radius * cfg.max_height_diff_ratio:
        return False

    eye_distance = left.center.distance_to(right.center)
    if eye_distance < left.radius * cfg.min_eye_distance_ratio:
        return False
    if eye_distance > left.radius * cfg.max_eye_distance_ratio:
        return False

    return True
