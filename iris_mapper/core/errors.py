"""
Capture error kinds and the explicit capture result value.

Stages raise IrisPipelineError subclasses; the pipeline converts every one of
them into a CaptureResult so that callers never see an uncaught failure.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class CaptureErrorKind(str, Enum):
    """재촬영으로 복구 가능한 실패 유형"""

    DECODE_FAILURE = "decode_failure"
    NO_DETECTION = "no_detection"
    PARTIAL_DETECTION = "partial_detection"
    OUT_OF_BOUNDS_CROP = "out_of_bounds_crop"
    LOW_QUALITY = "low_quality"
    PROCESSING_FAILURE = "processing_failure"
    CANCELLED = "cancelled"


class IrisPipelineError(Exception):
    """파이프라인 단계에서 발생하는 예외 (kind로 유형 구분)"""

    kind: CaptureErrorKind = CaptureErrorKind.PROCESSING_FAILURE

    def __init__(self, message: str, kind: Optional[CaptureErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class DecodeError(IrisPipelineError):
    kind = CaptureErrorKind.DECODE_FAILURE


class DetectionError(IrisPipelineError):
    kind = CaptureErrorKind.NO_DETECTION


class OutOfBoundsCropError(IrisPipelineError):
    """패딩된 crop 영역이 프레임 밖으로 나감 (종횡비 왜곡을 막기 위해 clamp하지 않음)"""

    kind = CaptureErrorKind.OUT_OF_BOUNDS_CROP


class AnalysisCancelledError(IrisPipelineError):
    kind = CaptureErrorKind.CANCELLED


# 사용자 안내 문구 (재촬영 유도)
DECODE_FAILURE_MESSAGE = "Could not read the captured image. Please try again."
NO_DETECTION_MESSAGE = "No face detected. Position your face in the frame."
PARTIAL_DETECTION_MESSAGE = "Both eyes must be visible."
OUT_OF_BOUNDS_MESSAGE = "Eye is too close to the frame edge. Center your eye in the guide."


@dataclass(frozen=True)
class CaptureResult:
    """
    캡처 1건의 처리 결과.

    Attributes:
        is_success: 분석 집계 생성 여부
        analysis: IridologyAnalysis (성공 시)
        normalized_image: 정규화된 홍채 이미지 (BGR uint8, 성공 시)
        quality: QualityReport (게이트가 실행된 경우)
        error_kind: 실패 유형
        message: 사용자 안내 문구
        timestamp: 결과 생성 시각
    """

    is_success: bool
    analysis: Optional[Any] = None
    normalized_image: Optional[Any] = None
    quality: Optional[Any] = None
    error_kind: Optional[CaptureErrorKind] = None
    message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def success(cls, analysis, normalized_image, quality) -> "CaptureResult":
        return cls(
            is_success=True,
            analysis=analysis,
            normalized_image=normalized_image,
            quality=quality,
            message=quality.guidance.message if quality is not None else None,
        )

    @classmethod
    def error(
        cls,
        kind: CaptureErrorKind,
        message: str,
        quality=None,
    ) -> "CaptureResult":
        return cls(is_success=False, error_kind=kind, message=message, quality=quality)

    @property
    def quality_score(self) -> float:
        if self.quality is None or self.quality.metrics is None:
            return 0.0
        return self.quality.metrics.overall_score
