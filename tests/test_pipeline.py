"""
IrisAnalysisPipeline / AnalysisSession 테스트

모든 실패는 CaptureResult 값으로 반환되어야 하며 예외가 밖으로 나오지 않는다.
"""

import threading

import cv2
import numpy as np
import pytest

from iris_mapper.core.errors import (
    DECODE_FAILURE_MESSAGE,
    OUT_OF_BOUNDS_MESSAGE,
    CaptureErrorKind,
    CaptureResult,
)
from iris_mapper.core.iris_detector import EyeLandmark, IrisPoint, Landmarks
from iris_mapper.core.zone_analyzer import ZoneAnalyzerConfig
from iris_mapper.pipeline import (
    CANCELLED_MESSAGE,
    PROCESSING_FAILURE_MESSAGE,
    AnalysisSession,
    IrisAnalysisPipeline,
)


class _FixedDetector:
    def __init__(self, landmarks):
        self.landmarks = landmarks

    def detect(self, frame):
        return self.landmarks


class _BrokenDetector:
    def detect(self, frame):
        raise RuntimeError("model crashed")


def _encode(frame):
    ok, buf = cv2.imencode(".png", frame)
    assert ok
    return buf.tobytes()


@pytest.fixture
def pipeline():
    return IrisAnalysisPipeline(analyzer_config=ZoneAnalyzerConfig(max_workers=2))


# Test Case 1: 디코딩 실패
@pytest.mark.parametrize("data", [b"", b"definitely not an image"])
def test_decode_failure(pipeline, data):
    result = pipeline.process(data, is_left=True)
    assert not result.is_success
    assert result.error_kind == CaptureErrorKind.DECODE_FAILURE
    assert result.message == DECODE_FAILURE_MESSAGE
    assert result.analysis is None


# Test Case 2: 검출 실패 / 부분 검출
def test_no_detection(capture_bytes):
    pipeline = IrisAnalysisPipeline(detector=_FixedDetector(None))
    result = pipeline.process(capture_bytes, is_left=True)
    assert result.error_kind == CaptureErrorKind.NO_DETECTION
    assert result.message == "No face detected. Position your face in the frame."
    assert result.quality_score == 0.0


def test_partial_detection(capture_bytes):
    only_right = Landmarks(right=EyeLandmark(IrisPoint(224, 192), 44.8))
    pipeline = IrisAnalysisPipeline(detector=_FixedDetector(only_right))
    result = pipeline.process(capture_bytes, is_left=False)
    assert result.error_kind == CaptureErrorKind.PARTIAL_DETECTION
    assert result.message == "Both eyes must be visible."


# Test Case 3: 품질 게이트 거부
def test_low_quality_rejected_with_guidance():
    flat = _encode(np.full((480, 640, 3), 120, dtype=np.uint8))
    result = IrisAnalysisPipeline().process(flat, is_left=True)
    assert result.error_kind == CaptureErrorKind.LOW_QUALITY
    assert result.message == "Image is blurry - hold phone steady"
    assert result.quality is not None
    assert result.quality.metrics.has_motion_blur


def test_framing_rejection_maps_to_low_quality(capture_bytes):
    tiny = Landmarks(
        left=EyeLandmark(IrisPoint(416, 192), 20),
        right=EyeLandmark(IrisPoint(224, 192), 20),
    )
    result = IrisAnalysisPipeline(detector=_FixedDetector(tiny)).process(capture_bytes, is_left=True)
    assert result.error_kind == CaptureErrorKind.LOW_QUALITY
    assert result.message == "Move closer to the camera."


# Test Case 4: crop 영역이 프레임 밖
def test_out_of_bounds_crop(capture_bytes):
    near_edges = Landmarks(
        left=EyeLandmark(IrisPoint(640 * 0.9, 192), 44.8),
        right=EyeLandmark(IrisPoint(640 * 0.1, 192), 44.8),
    )
    result = IrisAnalysisPipeline(detector=_FixedDetector(near_edges)).process(capture_bytes, is_left=True)
    assert result.error_kind == CaptureErrorKind.OUT_OF_BOUNDS_CROP
    assert result.message == OUT_OF_BOUNDS_MESSAGE
    assert result.quality.accepted


# Test Case 5: 예기치 못한 예외 → PROCESSING_FAILURE
def test_unexpected_error_becomes_processing_failure(capture_bytes):
    result = IrisAnalysisPipeline(detector=_BrokenDetector()).process(capture_bytes, is_left=True)
    assert not result.is_success
    assert result.error_kind == CaptureErrorKind.PROCESSING_FAILURE
    assert result.message == PROCESSING_FAILURE_MESSAGE


def test_glare_rejection_guidance_is_an_issue(capture_frame):
    frame = capture_frame.copy()
    frame[400:480] = 255
    result = IrisAnalysisPipeline().process(_encode(frame), is_left=True)
    assert result.error_kind == CaptureErrorKind.LOW_QUALITY
    metrics = result.quality.metrics
    assert metrics.has_glare
    assert "Glare detected - adjust angle" in metrics.issues
    assert result.message == metrics.issues[0]
    assert result.message not in ("Excellent! Ready to capture.", "Good quality. You may proceed.")


def test_cancelled_before_detection(pipeline, capture_bytes):
    cancel = threading.Event()
    cancel.set()
    result = pipeline.process(capture_bytes, is_left=True, cancel_event=cancel)
    assert result.error_kind == CaptureErrorKind.CANCELLED
    assert result.message == CANCELLED_MESSAGE


# Test Case 6: 정상 처리
def test_successful_capture(pipeline, capture_bytes):
    result = pipeline.process(capture_bytes, is_left=True)
    assert result.is_success, result.message
    assert result.error_kind is None
    assert result.normalized_image.shape == (512, 512, 3)
    assert result.quality_score >= 0.6
    assert result.message == "Perfect! Ready to capture."

    analysis = result.analysis
    assert analysis.is_left_eye
    assert len(analysis.zone_analyses) == 8
    assert analysis.overall_color_profile.primary_color.value == "blue"
    assert 0.3 <= analysis.analysis_confidence <= 1.0


def test_decoded_array_input(pipeline, capture_frame):
    result = pipeline.process(capture_frame, is_left=False)
    assert result.is_success
    assert len(result.analysis.zone_analyses) == 10


# ================================================================
# AnalysisSession
# ================================================================


class _GatedPipeline:
    """b"slow" 요청은 release가 설정될 때까지 블록"""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def process(self, frame_data, is_left, cancel_event=None):
        if frame_data == b"slow":
            self.started.set()
            self.release.wait(5)
        return CaptureResult.error(CaptureErrorKind.LOW_QUALITY, frame_data.decode())


def test_session_discards_stale_results():
    gated = _GatedPipeline()
    published = []

    with AnalysisSession(gated, on_result=lambda r: published.append(r.message)) as session:
        first = session.submit(b"slow", is_left=True)
        assert gated.started.wait(5)

        second = session.submit(b"fast", is_left=True)
        assert second.result(timeout=5).message == "fast"
        assert session.latest_result.message == "fast"

        gated.release.set()
        assert first.result(timeout=5).message == "slow"
        assert session.latest_result.message == "fast"
        assert session.generation == 2

    assert published == ["fast"]


def test_session_cancel_prevents_publication():
    gated = _GatedPipeline()
    published = []

    session = AnalysisSession(gated, on_result=lambda r: published.append(r.message))
    future = session.submit(b"slow", is_left=False)
    assert gated.started.wait(5)
    session.cancel()
    gated.release.set()
    future.result(timeout=5)
    session.close()

    assert published == []
    assert session.latest_result is None


def test_session_wait_returns_latest(capture_bytes):
    with AnalysisSession(IrisAnalysisPipeline()) as session:
        session.submit(capture_bytes, is_left=True)
        result = session.wait(timeout=30)
    assert result is not None
    assert result.is_success


def test_session_callback_may_use_session():
    gated = _GatedPipeline()
    seen = []
    session = AnalysisSession(gated, on_result=lambda r: seen.append(session.latest_result))

    future = session.submit(b"fast", is_left=True)
    assert future.result(timeout=5).message == "fast"
    assert session.latest_result.message == "fast"

    retake = session.submit(b"retake", is_left=True)
    assert retake.result(timeout=5).message == "retake"
    session.close()

    assert [r.message for r in seen] == ["fast", "retake"]
