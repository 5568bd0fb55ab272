import cv2
import numpy as np
import pytest

from iris_mapper.core.iris_detector import EyeLandmark, IrisPoint, Landmarks
from iris_mapper.core.quality_assessor import GuidanceCode, QualityAssessor, QualityMetrics
from iris_mapper.schemas.criteria import QualityCriteria


@pytest.fixture
def assessor():
    return QualityAssessor()


def _textured(size=128, amplitude=8, seed=3):
    rng = np.random.default_rng(seed)
    base = 128 + rng.integers(-amplitude, amplitude + 1, (size, size))
    gray = np.clip(base, 0, 255).astype(np.uint8)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)


# Test Case 1: 블러를 제거할수록 선명도가 감소하지 않는다
def test_sharpness_non_decreasing_as_blur_removed(assessor):
    img = _textured()
    scores = []
    for sigma in (3.0, 2.0, 1.0, 0.5):
        blurred = cv2.GaussianBlur(img, (0, 0), sigma)
        scores.append(assessor.calculate_sharpness(assessor_gray(blurred)))
    scores.append(assessor.calculate_sharpness(assessor_gray(img)))
    assert all(a <= b for a, b in zip(scores, scores[1:]))
    assert scores[0] < scores[-1]


def assessor_gray(img):
    from iris_mapper.core import pixel_stats

    return pixel_stats.luma(img)


# Test Case 2: 동일 입력 → 동일 결과 (idempotent)
def test_assess_is_idempotent(assessor, capture_frame, make_landmarks):
    h, w = capture_frame.shape[:2]
    landmarks = make_landmarks(w, h, w * 0.07)
    first = assessor.assess(capture_frame, landmarks, is_left=True)
    second = assessor.assess(capture_frame.copy(), landmarks, is_left=True)
    assert first == second
    assert first.metrics.overall_score == second.metrics.overall_score


# Test Case 3: 홍채 반경 5% → 가까이 오라는 안내, 거부
def test_iris_too_small_guides_move_closer(assessor, make_frame, make_landmarks):
    frame = make_frame(400, 300)
    landmarks = make_landmarks(400, 300, radius=400 * 0.05)
    report = assessor.assess(frame, landmarks, is_left=True)
    assert report.guidance.code == GuidanceCode.TOO_FAR
    assert report.guidance.message == "Move closer to the camera."
    assert report.accepted is False
    assert report.reason == "Move closer to the camera."


def test_iris_too_large_guides_move_back(assessor, make_frame, make_landmarks):
    frame = make_frame(400, 300)
    landmarks = make_landmarks(400, 300, radius=400 * 0.25)
    report = assessor.assess(frame, landmarks, is_left=True)
    assert report.guidance.code == GuidanceCode.TOO_CLOSE
    assert not report.accepted


def test_no_detection_never_raises(assessor, capture_frame):
    report = assessor.assess(capture_frame, None)
    assert report.metrics is None
    assert report.guidance.code == GuidanceCode.NO_DETECTION
    assert not report.accepted

    empty = assessor.assess(capture_frame, Landmarks())
    assert empty.guidance.code == GuidanceCode.NO_DETECTION


def test_single_eye_requires_both(assessor, capture_frame):
    h, w = capture_frame.shape[:2]
    only_left = Landmarks(left=EyeLandmark(IrisPoint(w * 0.65, h * 0.4), w * 0.07))
    report = assessor.assess(capture_frame, only_left, is_left=True)
    assert report.guidance.code == GuidanceCode.BOTH_EYES_REQUIRED
    assert report.guidance.message == "Both eyes must be visible."
    assert not report.accepted


def test_single_eye_allowed_when_not_required(capture_frame):
    h, w = capture_frame.shape[:2]
    assessor = QualityAssessor(QualityCriteria(require_both_eyes=False, max_center_offset_ratio=0.5))
    only_left = Landmarks(left=EyeLandmark(IrisPoint(w * 0.65, h * 0.4), w * 0.07))
    assert assessor.assess(capture_frame, only_left, is_left=True).guidance.code == GuidanceCode.READY
    assert assessor.assess(capture_frame, only_left, is_left=False).guidance.code == GuidanceCode.EYE_NOT_VISIBLE


def test_off_center_guidance(assessor, capture_frame, make_landmarks):
    h, w = capture_frame.shape[:2]
    landmarks = make_landmarks(w, h, w * 0.07, left_y=h * 0.1, right_y=h * 0.1)
    report = assessor.assess(capture_frame, landmarks, is_left=True)
    assert report.guidance.code == GuidanceCode.OFF_CENTER
    assert report.guidance.message == "Center your eyes in the frame."


def test_head_tilt_guidance(assessor, capture_frame, make_landmarks):
    h, w = capture_frame.shape[:2]
    radius = w * 0.07
    landmarks = make_landmarks(w, h, radius, left_y=h * 0.4 + radius, right_y=h * 0.4 - radius)
    report = assessor.assess(capture_frame, landmarks, is_left=True)
    assert report.guidance.code == GuidanceCode.HEAD_TILT
    assert report.guidance.message == "Keep your head level."


def test_guidance_priority_size_before_centering(assessor, capture_frame, make_landmarks):
    h, w = capture_frame.shape[:2]
    landmarks = make_landmarks(w, h, w * 0.03, left_y=h * 0.05, right_y=h * 0.05)
    assert assessor.assess(capture_frame, landmarks).guidance.code == GuidanceCode.TOO_FAR


def test_well_framed_capture_is_accepted(assessor, capture_frame, make_landmarks):
    h, w = capture_frame.shape[:2]
    report = assessor.assess(capture_frame, make_landmarks(w, h, w * 0.07), is_left=True)
    assert report.accepted
    assert report.guidance.code == GuidanceCode.READY
    assert report.guidance.message == "Perfect! Ready to capture."
    assert report.metrics.overall_score >= 0.6
    assert not report.metrics.has_glare
    assert not report.metrics.has_motion_blur


def test_blurry_frame_rejected_with_feedback(assessor, make_landmarks):
    frame = np.full((480, 640, 3), 120, dtype=np.uint8)
    report = assessor.assess(frame, make_landmarks(640, 480, 640 * 0.07), is_left=True)
    assert report.metrics.has_motion_blur
    assert report.metrics.sharpness == 0.0
    assert not report.accepted
    assert report.guidance.code == GuidanceCode.LOW_QUALITY
    assert report.guidance.message == "Image is blurry - hold phone steady"


def test_glare_detection(assessor):
    frame = np.full((100, 100, 3), 250, dtype=np.uint8)
    assert assessor.detect_glare(frame)
    frame[:95] = 100
    assert not assessor.detect_glare(frame)


def test_overall_score_weights(assessor):
    assert assessor.overall_score(1, 1, 1, 1, 1, False, False, True) == pytest.approx(1.0)
    assert assessor.overall_score(0, 0, 0, 0, 0, True, True, False) == 0.0
    assert assessor.overall_score(1, 0, 0, 0, 0, True, True, False) == pytest.approx(0.40)
    assert assessor.overall_score(0, 0, 0, 0, 0, False, False, True) == pytest.approx(0.15)


def test_iris_size_and_alignment_scores(assessor):
    # 3-4-5 프레임: 대각선 500
    assert assessor.calculate_iris_size(50, 400, 300) == pytest.approx(0.5)
    assert assessor.calculate_iris_size(200, 400, 300) == 1.0
    assert assessor.calculate_center_alignment(200, 150, 400, 300) == 1.0
    assert assessor.calculate_center_alignment(250, 150, 400, 300) == pytest.approx(0.6)
    assert assessor.calculate_center_alignment(0, 0, 400, 300) == 0.0


def _metrics(**overrides):
    values = dict(
        sharpness=0.9,
        brightness=0.5,
        contrast=0.7,
        iris_size=0.5,
        center_alignment=0.9,
        has_glare=False,
        has_motion_blur=False,
        is_well_lit=True,
        overall_score=0.85,
        is_acceptable=True,
    )
    values.update(overrides)
    return QualityMetrics(**values)


def test_metrics_feedback_and_rating():
    assert _metrics().feedback_message == "Excellent! Ready to capture."
    assert _metrics().quality_rating == "Very Good"
    assert _metrics(overall_score=0.65).feedback_message == "Good quality. You may proceed."
    assert _metrics(overall_score=0.65).quality_rating == "Fair"
    low = _metrics(overall_score=0.3, brightness=0.2, has_glare=True)
    assert low.quality_rating == "Poor"
    assert low.issues == ["Too dark - move to better lighting", "Glare detected - adjust angle"]
    assert low.feedback_message == "Too dark - move to better lighting"


def test_quick_quality_score(assessor, capture_frame):
    flat = np.zeros((50, 50, 3), dtype=np.uint8)
    assert assessor.quick_quality_score(flat) == 0.0
    assert 0.7 <= assessor.quick_quality_score(capture_frame) <= 1.0


class _FixedMetricsAssessor(QualityAssessor):
    """compute_metrics 결과를 고정해 게이트 판정만 검증"""

    def __init__(self, metrics):
        super().__init__()
        self.metrics = metrics

    def compute_metrics(self, frame, eye):
        return self.metrics


PROCEED_MESSAGES = ("Excellent! Ready to capture.", "Good quality. You may proceed.")


# Test Case 4: 점수가 높아도 거부된 프레임은 진행하라는 문구를 내지 않는다
def test_glare_rejection_reports_issue_not_proceed(capture_frame, make_landmarks):
    h, w = capture_frame.shape[:2]
    metrics = _metrics(overall_score=0.9, has_glare=True, is_acceptable=False)
    report = _FixedMetricsAssessor(metrics).assess(capture_frame, make_landmarks(w, h, w * 0.07), is_left=True)
    assert not report.accepted
    assert report.guidance.code == GuidanceCode.LOW_QUALITY
    assert report.reason == "Glare detected - adjust angle"
    assert report.reason not in PROCEED_MESSAGES


def test_motion_blur_rejection_reports_issue_not_proceed(capture_frame, make_landmarks):
    h, w = capture_frame.shape[:2]
    metrics = _metrics(overall_score=0.65, has_motion_blur=True, is_acceptable=False)
    report = _FixedMetricsAssessor(metrics).assess(capture_frame, make_landmarks(w, h, w * 0.07), is_left=True)
    assert not report.accepted
    assert report.reason == "Motion detected - hold still"
    assert report.reason not in PROCEED_MESSAGES


def test_rejection_message_without_issues_falls_back():
    assert _metrics().issues == []
    assert _metrics().rejection_message == "Quality too low. Please adjust."


# Test Case 5: 최소 점수는 초과해야 통과 (0.6 자체는 거부)
def test_gate_threshold_is_exclusive(assessor):
    assert not assessor.passes_gate(0.6, False, False)
    assert assessor.passes_gate(0.6001, False, False)
    assert not assessor.passes_gate(0.95, True, False)
    assert not assessor.passes_gate(0.95, False, True)
