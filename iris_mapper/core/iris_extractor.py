"""
Iris Extraction & Normalization Module

검출된 홍채 중심/반경으로 정사각형 영역을 잘라내고, 고정 크기로 리사이즈한 뒤
대비/채도 보정과 unsharp mask 선명화를 적용해 정규화된 홍채 이미지를 만든다.
동일 입력에 대해 결과가 항상 동일하다 (golden image 회귀 테스트 가능).
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from iris_mapper.core import pixel_stats
from iris_mapper.core.errors import OutOfBoundsCropError
from iris_mapper.core.iris_detector import EyeLandmark
from iris_mapper.utils.image_utils import ImageValidationError, validate_image

logger = logging.getLogger(__name__)


@dataclass
class ExtractorConfig:
    """정규화 설정"""

    padding_ratio: float = 0.5  # 반경 대비 여백
    output_size: int = 512
    contrast: float = 1.2
    saturation: float = 1.1
    sharpen_radius: int = 2
    sharpen_amount: float = 0.5
    sharpen_threshold: int = 0
    enhance: bool = True


@dataclass(frozen=True)
class ExtractionResult:
    """
    추출 결과

    Attributes:
        image: 정규화된 홍채 이미지 (BGR uint8, output_size × output_size)
        masked: 홍채 원 밖을 0으로 채운 변형
        crop_box: 원본 프레임 기준 (x, y, side)
        iris_radius: 정규화 이미지 내 홍채 반경 (px)
    """

    image: np.ndarray
    masked: np.ndarray
    crop_box: Tuple[int, int, int]
    iris_radius: float

    @property
    def center(self) -> Tuple[float, float]:
        h, w = self.image.shape[:2]
        return (w / 2.0, h / 2.0)


class IrisExtractor:
    """
    홍채 영역 추출기.

    크롭 영역이 프레임을 벗어나면 clamp하지 않고 OutOfBoundsCropError를 던진다
    (clamp 시 종횡비가 왜곡되기 때문).
    """

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()

    def crop_box(self, center_x: float, center_y: float, radius: float) -> Tuple[int, int, int]:
        """패딩된 정사각형 crop 영역 (x, y, side) 계산."""
        if radius <= 0:
            raise ImageValidationError(f"Iris radius must be positive, got {radius}")
        side = 2.0 * (radius + self.config.padding_ratio * radius)
        size = int(round(side))
        x = int(round(center_x - side / 2.0))
        y = int(round(center_y - side / 2.0))
        return x, y, size

    def crop(self, frame: np.ndarray, center_x: float, center_y: float, radius: float) -> np.ndarray:
        """
        프레임에서 홍채 영역을 잘라낸다.

        Raises:
            OutOfBoundsCropError: crop 영역이 프레임 경계를 벗어남
        """
        h, w = frame.shape[:2]
        x, y, size = self.crop_box(center_x, center_y, radius)
        if x < 0 or y < 0 or x + size > w or y + size > h:
            raise OutOfBoundsCropError(
                f"Crop ({x}, {y}, {size}x{size}) exceeds frame bounds {w}x{h}"
            )
        return frame[y : y + size, x : x + size].copy()

    def extract(self, frame: np.ndarray, eye: EyeLandmark) -> ExtractionResult:
        """
        정규화된 홍채 이미지 생성.

        Args:
            frame: BGR uint8 프레임
            eye: 대상 눈의 landmark

        Returns:
            ExtractionResult
        """
        validate_image(frame, "frame")
        frame = frame[:, :, :3]
        cfg = self.config

        cropped = self.crop(frame, eye.center.x, eye.center.y, eye.radius)
        resized = cv2.resize(cropped, (cfg.output_size, cfg.output_size), interpolation=cv2.INTER_CUBIC)

        normalized = resized
        if cfg.enhance:
            normalized = adjust_color(normalized, contrast=cfg.contrast, saturation=cfg.saturation)
            normalized = unsharp_mask(
                normalized, radius=cfg.sharpen_radius, amount=cfg.sharpen_amount, threshold=cfg.sharpen_threshold
            )

        iris_radius = (cfg.output_size / 2.0) / (1.0 + cfg.padding_ratio)
        masked = create_iris_mask(normalized, iris_radius)

        box = self.crop_box(eye.center.x, eye.center.y, eye.radius)
        logger.debug(f"Extracted iris crop {box} -> {cfg.output_size}px (iris radius {iris_radius:.1f}px)")

        return ExtractionResult(image=normalized, masked=masked, crop_box=box, iris_radius=iris_radius)


def adjust_color(image: np.ndarray, contrast: float = 1.0, saturation: float = 1.0) -> np.ndarray:
    """
    대비/채도 보정.

    contrast: 128 기준 선형 스케일, saturation: 픽셀 휘도 기준 선형 스케일.
    결과는 [0, 255]로 clamp된다.
    """
    img = image[:, :, :3].astype(np.float64)
    if saturation != 1.0:
        gray = pixel_stats.luma(image)[:, :, np.newaxis]
        img = gray + (img - gray) * saturation
    if contrast != 1.0:
        img = (img - 128.0) * contrast + 128.0
    return np.clip(img, 0, 255).astype(np.uint8)


def unsharp_mask(image: np.ndarray, radius: int = 2, amount: float = 0.5, threshold: int = 0) -> np.ndarray:
    """
    Unsharp mask 선명화: original + trunc((original - blurred) · amount), 채널별 [0, 255] clamp.

    |diff| ≤ threshold인 픽셀은 그대로 둔다.
    """
    ksize = 2 * int(radius) + 1
    original = image.astype(np.int32)
    blurred = cv2.GaussianBlur(image, (ksize, ksize), 0).astype(np.int32)
    diff = original - blurred
    boost = np.trunc(diff * amount).astype(np.int32)
    if threshold > 0:
        boost = np.where(np.abs(diff) > threshold, boost, 0)
    return np.clip(original + boost, 0, 255).astype(np.uint8)


def create_iris_mask(image: np.ndarray, radius: Optional[float] = None) -> np.ndarray:
    """
    원형 마스크 적용 (원 밖 픽셀을 0으로).

    Args:
        image: 정규화된 이미지
        radius: 마스크 반경 (px), 기본값은 이미지 너비의 절반
    """
    h, w = image.shape[:2]
    if radius is None:
        radius = w / 2.0
    mask = pixel_stats.circle_mask((h, w), w / 2.0, h / 2.0, radius)
    out = np.zeros_like(image)
    out[mask] = image[mask]
    return out


def normalize_grayscale(image: np.ndarray) -> np.ndarray:
    """Grayscale 변환 후 min-max 대비 stretch (홍채 인식 전처리용)."""
    gray = image if image.ndim == 2 else cv2.cvtColor(image[:, :, :3], cv2.COLOR_BGR2GRAY)
    return cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)


def calculate_histogram(image: np.ndarray) -> Dict[str, List[int]]:
    """BGR 이미지의 채널별 256-bin 히스토그램 (red/green/blue 키)."""
    return pixel_stats.channel_histograms(pixel_stats.rgb_pixels(image[:, :, :3]))
