"""
Quality Assessor Module

프레임과 검출된 홍채 중심/반경으로부터 선명도, 밝기, 대비, 반사(glare),
모션 블러, 홍채 크기, 중심 정렬을 계산하고 촬영 수락 여부와
우선순위가 적용된 단일 안내 문구를 생성한다.

재촬영은 호출자(캡처 UI)가 담당하며 이 모듈은 예외를 던지지 않는다.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np

from iris_mapper.core import pixel_stats
from iris_mapper.core.iris_detector import EyeLandmark, Landmarks
from iris_mapper.schemas.criteria import QualityCriteria

logger = logging.getLogger(__name__)


class GuidanceCode(str, Enum):
    """촬영 안내 상태 (우선순위 순)"""

    NO_DETECTION = "no_detection"
    BOTH_EYES_REQUIRED = "both_eyes_required"
    EYE_NOT_VISIBLE = "eye_not_visible"
    TOO_FAR = "too_far"
    TOO_CLOSE = "too_close"
    OFF_CENTER = "off_center"
    HEAD_TILT = "head_tilt"
    LOW_QUALITY = "low_quality"
    READY = "ready"


GUIDANCE_MESSAGES = {
    GuidanceCode.NO_DETECTION: "No face detected. Position your face in the frame.",
    GuidanceCode.BOTH_EYES_REQUIRED: "Both eyes must be visible.",
    GuidanceCode.EYE_NOT_VISIBLE: "The selected eye is not visible.",
    GuidanceCode.TOO_FAR: "Move closer to the camera.",
    GuidanceCode.TOO_CLOSE: "Move back from the camera.",
    GuidanceCode.OFF_CENTER: "Center your eyes in the frame.",
    GuidanceCode.HEAD_TILT: "Keep your head level.",
    GuidanceCode.LOW_QUALITY: "Quality too low. Please adjust.",
    GuidanceCode.READY: "Perfect! Ready to capture.",
}


@dataclass(frozen=True)
class Guidance:
    code: GuidanceCode
    message: str

    @property
    def is_ready(self) -> bool:
        return self.code == GuidanceCode.READY


def _guidance(code: GuidanceCode) -> Guidance:
    return Guidance(code, GUIDANCE_MESSAGES[code])


@dataclass(frozen=True)
class QualityMetrics:
    """
    캡처 품질 지표.

    Attributes:
        sharpness: Laplacian 분산 기반 선명도 (0~1)
        brightness: 평균 휘도 (0~1)
        contrast: 휘도 표준편차 기반 대비 (0~1)
        iris_size: 프레임 대각선 대비 홍채 크기 점수 (0~1)
        center_alignment: 프레임 중심 정렬 점수 (0~1)
        has_glare: 과노출 픽셀 비율 초과 여부
        has_motion_blur: 선명도 부족 여부
        is_well_lit: 밝기/대비 적정 여부
        overall_score: 가중 합산 점수 (0~1)
        is_acceptable: overall_score ≥ 기준 AND glare/motion blur 없음
    """

    sharpness: float
    brightness: float
    contrast: float
    iris_size: float
    center_alignment: float
    has_glare: bool
    has_motion_blur: bool
    is_well_lit: bool
    overall_score: float
    is_acceptable: bool

    @property
    def issues(self) -> List[str]:
        """사람이 읽을 수 있는 품질 문제 목록 (중요도 순)."""
        issues = []
        if self.sharpness < 0.6:
            issues.append("Image is blurry - hold phone steady")
        if self.brightness < 0.4:
            issues.append("Too dark - move to better lighting")
        if self.brightness > 0.9:
            issues.append("Too bright - reduce direct light")
        if self.contrast < 0.5:
            issues.append("Low contrast - adjust lighting")
        if self.iris_size < 0.3:
            issues.append("Move closer to camera")
        if self.iris_size > 0.8:
            issues.append("Move back from camera")
        if self.center_alignment < 0.7:
            issues.append("Center your eye in the guide")
        if self.has_glare:
            issues.append("Glare detected - adjust angle")
        if self.has_motion_blur:
            issues.append("Motion detected - hold still")
        if not self.is_well_lit:
            issues.append("Insufficient lighting")
        return issues

    @property
    def feedback_message(self) -> str:
        if self.overall_score >= 0.8:
            return "Excellent! Ready to capture."
        if self.overall_score >= 0.6:
            return "Good quality. You may proceed."
        issues = self.issues
        if issues:
            return issues[0]
        return GUIDANCE_MESSAGES[GuidanceCode.LOW_QUALITY]

    @property
    def rejection_message(self) -> str:
        """거부된 프레임의 안내 문구. 점수 구간 문구는 수락된 프레임에만 유효하므로 첫 번째 문제 항목을 사용."""
        issues = self.issues
        if issues:
            return issues[0]
        return GUIDANCE_MESSAGES[GuidanceCode.LOW_QUALITY]

    @property
    def quality_rating(self) -> str:
        score = self.overall_score
        if score >= 0.9:
            return "Excellent"
        if score >= 0.8:
            return "Very Good"
        if score >= 0.7:
            return "Good"
        if score >= 0.6:
            return "Fair"
        return "Poor"


@dataclass(frozen=True)
class QualityReport:
    """품질 게이트 결과: 지표 + 안내 + 최종 수락 여부"""

    metrics: Optional[QualityMetrics]
    guidance: Guidance
    accepted: bool

    @property
    def reason(self) -> Optional[str]:
        return None if self.accepted else self.guidance.message


def _clamp01(value: float) -> float:
    return float(min(1.0, max(0.0, value)))


class QualityAssessor:
    """
    캡처 품질 평가 및 수락 게이트.

    동일 프레임 + landmark 입력에 대해 항상 동일한 결과를 반환한다 (내부 상태 없음).
    """

    def __init__(self, criteria: Optional[QualityCriteria] = None):
        self.criteria = criteria or QualityCriteria()

    # ------------------------------------------------------------------
    # Individual metrics
    # ------------------------------------------------------------------

    def calculate_sharpness(self, gray: np.ndarray) -> float:
        return _clamp01(pixel_stats.laplacian_variance(gray) / self.criteria.sharpness_norm)

    def calculate_brightness(self, gray: np.ndarray) -> float:
        return _clamp01(pixel_stats.luma_mean(gray) / 255.0)

    def calculate_contrast(self, gray: np.ndarray) -> float:
        return _clamp01(pixel_stats.luma_std(gray) / self.criteria.contrast_norm)

    def detect_glare(self, frame: np.ndarray) -> bool:
        fraction = pixel_stats.overexposed_fraction(frame, self.criteria.glare_pixel_level)
        return fraction > self.criteria.max_glare_fraction

    def calculate_iris_size(self, iris_radius: float, frame_width: float, frame_height: float) -> float:
        diagonal = math.hypot(frame_width, frame_height)
        if diagonal <= 0:
            return 0.0
        return _clamp01((iris_radius * 2.0) / diagonal * self.criteria.iris_size_gain)

    def calculate_center_alignment(
        self, iris_x: float, iris_y: float, frame_width: float, frame_height: float
    ) -> float:
        diagonal = math.hypot(frame_width, frame_height)
        if diagonal <= 0:
            return 0.0
        distance = math.hypot(iris_x - frame_width / 2.0, iris_y - frame_height / 2.0)
        return _clamp01(1.0 - (distance / diagonal) * self.criteria.center_alignment_gain)

    def overall_score(
        self,
        sharpness: float,
        brightness: float,
        contrast: float,
        iris_size: float,
        center_alignment: float,
        has_glare: bool,
        has_motion_blur: bool,
        is_well_lit: bool,
    ) -> float:
        """
        가중 합산 품질 점수.

        0.40·sharpness + 0.15·brightness + 0.10·contrast + 0.10·iris_size
        + 0.10·center_alignment + 0.05·[no glare] + 0.05·[no motion blur]
        + 0.05·[well lit], [0, 1]로 clamp (가중치는 QualityWeights로 변경 가능).
        """
        w = self.criteria.weights
        score = (
            sharpness * w.sharpness
            + brightness * w.brightness
            + contrast * w.contrast
            + iris_size * w.iris_size
            + center_alignment * w.center_alignment
        )
        if not has_glare:
            score += w.no_glare_bonus
        if not has_motion_blur:
            score += w.no_motion_blur_bonus
        if is_well_lit:
            score += w.well_lit_bonus
        return _clamp01(score)

    def passes_gate(self, overall: float, has_glare: bool, has_motion_blur: bool) -> bool:
        """점수가 최소 기준을 초과(>)하고 glare/모션 블러가 없어야 통과."""
        return overall > self.criteria.min_overall_score and not has_glare and not has_motion_blur

    def compute_metrics(self, frame: np.ndarray, eye: EyeLandmark) -> QualityMetrics:
        """프레임 전체와 대상 눈의 중심/반경으로 품질 지표 계산."""
        c = self.criteria
        h, w = frame.shape[:2]
        gray = pixel_stats.luma(frame)

        sharpness = self.calculate_sharpness(gray)
        brightness = self.calculate_brightness(gray)
        contrast = self.calculate_contrast(gray)
        has_glare = self.detect_glare(frame)
        has_motion_blur = sharpness < c.motion_blur_sharpness
        iris_size = self.calculate_iris_size(eye.radius, w, h)
        center_alignment = self.calculate_center_alignment(eye.center.x, eye.center.y, w, h)
        is_well_lit = (
            c.min_well_lit_brightness <= brightness <= c.max_well_lit_brightness
            and contrast >= c.min_well_lit_contrast
        )

        overall = self.overall_score(
            sharpness, brightness, contrast, iris_size, center_alignment, has_glare, has_motion_blur, is_well_lit
        )
        is_acceptable = self.passes_gate(overall, has_glare, has_motion_blur)

        logger.debug(
            f"Quality metrics: sharp={sharpness:.3f}, bright={brightness:.3f}, contrast={contrast:.3f}, "
            f"size={iris_size:.3f}, align={center_alignment:.3f}, glare={has_glare}, blur={has_motion_blur}, "
            f"overall={overall:.3f}"
        )

        return QualityMetrics(
            sharpness=sharpness,
            brightness=brightness,
            contrast=contrast,
            iris_size=iris_size,
            center_alignment=center_alignment,
            has_glare=has_glare,
            has_motion_blur=has_motion_blur,
            is_well_lit=is_well_lit,
            overall_score=overall,
            is_acceptable=is_acceptable,
        )

    def quick_quality_score(self, frame: np.ndarray) -> float:
        """빠른 품질 점검 (0.7·sharpness + 0.3·brightness)."""
        gray = pixel_stats.luma(frame)
        return _clamp01(self.calculate_sharpness(gray) * 0.7 + self.calculate_brightness(gray) * 0.3)

    # ------------------------------------------------------------------
    # Framing guidance
    # ------------------------------------------------------------------

    def framing_guidance(
        self,
        landmarks: Optional[Landmarks],
        frame_width: float,
        frame_height: float,
        is_left: bool = True,
    ) -> Guidance:
        """
        우선순위 안내 문구.

        no detection > both eyes required > too far / too close > off center > head tilt > ready
        """
        c = self.criteria
        if landmarks is None or not landmarks.has_any_iris:
            return _guidance(GuidanceCode.NO_DETECTION)

        if c.require_both_eyes and not landmarks.has_both_irises:
            return _guidance(GuidanceCode.BOTH_EYES_REQUIRED)

        eye = landmarks.eye(is_left)
        if eye is None:
            return _guidance(GuidanceCode.EYE_NOT_VISIBLE)

        diameter_ratio = (eye.radius * 2.0) / frame_width
        if diameter_ratio <= c.min_iris_diameter_ratio:
            return _guidance(GuidanceCode.TOO_FAR)
        if diameter_ratio > c.max_iris_diameter_ratio:
            return _guidance(GuidanceCode.TOO_CLOSE)

        visible = [e for e in (landmarks.left, landmarks.right) if e is not None]
        avg_x = sum(e.center.x for e in visible) / len(visible)
        avg_y = sum(e.center.y for e in visible) / len(visible)
        offset_x = abs(avg_x - frame_width / 2.0) / frame_width
        offset_y = abs(avg_y - frame_height / 2.0) / frame_height
        if offset_x > c.max_center_offset_ratio or offset_y > c.max_center_offset_ratio:
            return _guidance(GuidanceCode.OFF_CENTER)

        if landmarks.has_both_irises:
            height_diff = abs(landmarks.left.center.y - landmarks.right.center.y)
            if height_diff > eye.radius * c.max_tilt_ratio:
                return _guidance(GuidanceCode.HEAD_TILT)

        return _guidance(GuidanceCode.READY)

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------

    def assess(self, frame: np.ndarray, landmarks: Optional[Landmarks], is_left: bool = True) -> QualityReport:
        """
        품질 게이트 실행.

        Args:
            frame: 디코딩된 BGR 프레임
            landmarks: 검출 결과 (검출 실패 시 None)
            is_left: 평가 대상 눈

        Returns:
            QualityReport (예외를 던지지 않음)
        """
        h, w = frame.shape[:2]
        guidance = self.framing_guidance(landmarks, w, h, is_left)

        eye = landmarks.eye(is_left) if landmarks is not None else None
        if eye is None:
            logger.warning(f"Quality gate rejected capture: {guidance.code.value}")
            return QualityReport(metrics=None, guidance=guidance, accepted=False)

        metrics = self.compute_metrics(frame, eye)
        accepted = guidance.is_ready and metrics.is_acceptable

        if guidance.is_ready and not metrics.is_acceptable:
            guidance = Guidance(GuidanceCode.LOW_QUALITY, metrics.rejection_message)

        if accepted:
            logger.info(f"Quality gate accepted capture (score={metrics.overall_score:.3f})")
        else:
            logger.warning(
                f"Quality gate rejected capture: {guidance.code.value} (score={metrics.overall_score:.3f})"
            )

        return QualityReport(metrics=metrics, guidance=guidance, accepted=accepted)
