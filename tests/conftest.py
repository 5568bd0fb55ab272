import json
from pathlib import Path

import cv2
import numpy as np
import pytest

from iris_mapper.core.iris_detector import EyeLandmark, IrisPoint, Landmarks


def make_capture_frame(width: int = 640, height: int = 480, seed: int = 0) -> np.ndarray:
    """
    합성 캡처 프레임: 노이즈 텍스처 배경 + placeholder 검출 위치에 파란 홍채 원.
    """
    rng = np.random.default_rng(seed)
    frame = rng.integers(40, 200, (height, width, 3), dtype=np.uint8)
    radius = int(width * 0.07)
    eye_y = int(height * 0.40)
    for x_ratio in (0.35, 0.65):
        center = (int(width * x_ratio), eye_y)
        iris = np.zeros_like(frame)
        cv2.circle(iris, center, radius, (200, 80, 50), -1)  # BGR: R=50, G=80, B=200
        mask = iris.any(axis=2)
        noise = rng.integers(-20, 21, (int(mask.sum()), 3))
        frame[mask] = np.clip(iris[mask].astype(np.int32) + noise, 0, 255).astype(np.uint8)
        cv2.circle(frame, center, radius // 3, (20, 20, 20), -1)  # pupil
    return frame


def landmarks_for(width: int, height: int, radius: float, left_y=None, right_y=None) -> Landmarks:
    """Placeholder 비율 위치에 양안 landmark 생성."""
    eye_y = height * 0.40
    return Landmarks(
        left=EyeLandmark(IrisPoint(width * 0.65, eye_y if left_y is None else left_y), radius),
        right=EyeLandmark(IrisPoint(width * 0.35, eye_y if right_y is None else right_y), radius),
    )


@pytest.fixture
def tmp_json(tmp_path: Path):
    def _make(data, name="sample.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        return path

    return _make


@pytest.fixture
def sample_image():
    # 100x100 BGR 검정 바탕
    return np.zeros((100, 100, 3), dtype=np.uint8)


@pytest.fixture
def capture_frame():
    return make_capture_frame()


@pytest.fixture
def capture_bytes(capture_frame):
    ok, buf = cv2.imencode(".png", capture_frame)
    assert ok
    return buf.tobytes()


@pytest.fixture
def uniform_blue_iris():
    """R=50, G=80, B=200 균일 홍채 이미지 (BGR)"""
    img = np.zeros((128, 128, 3), dtype=np.uint8)
    img[:, :] = (200, 80, 50)
    return img


@pytest.fixture
def textured_iris():
    """중심 기준 방사형 섬유 + 노이즈가 있는 정규화 홍채 이미지"""
    rng = np.random.default_rng(7)
    size = 256
    img = np.full((size, size, 3), (150, 110, 70), dtype=np.uint8)
    center = (size // 2, size // 2)
    for i in range(48):
        angle = 2 * np.pi * i / 48
        end = (int(center[0] + size * 0.5 * np.cos(angle)), int(center[1] + size * 0.5 * np.sin(angle)))
        cv2.line(img, center, end, (90, 60, 40), 2, cv2.LINE_AA)
    noise = rng.integers(-10, 11, img.shape)
    return np.clip(img.astype(np.int32) + noise, 0, 255).astype(np.uint8)


@pytest.fixture
def make_frame():
    return make_capture_frame


@pytest.fixture
def make_landmarks():
    return landmarks_for
