"""
Pixel Statistics Engine

품질 평가와 색상 분석이 공유하는 픽셀 스캔 기본 연산.
휘도(luma), Laplacian 분산, 히스토그램, 결정론적 샘플링, 극좌표 그리드를 제공한다.

모든 함수는 순수 함수이며 모듈 수준 캐시를 두지 않는다.
이미지는 OpenCV 규약(BGR, uint8)을 따른다.
"""

import logging
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np
from scipy import ndimage

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights (R, G, B)
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

LAPLACIAN_KERNEL = np.array([[0, 1, 0], [1, -4, 1], [0, 1, 0]], dtype=np.float64)


def luma(image: np.ndarray) -> np.ndarray:
    """
    BGR 이미지의 휘도 맵 (float64, 0~255).

    Args:
        image: BGR(A) uint8 이미지 또는 이미 grayscale인 2D 배열

    Returns:
        H × W float64 휘도
    """
    if image.ndim == 2:
        return image.astype(np.float64)
    img = image[:, :, :3].astype(np.float64)
    wr, wg, wb = LUMA_WEIGHTS
    return wr * img[:, :, 2] + wg * img[:, :, 1] + wb * img[:, :, 0]


def laplacian_variance(gray: np.ndarray) -> float:
    """
    Discrete Laplacian [[0,1,0],[1,-4,1],[0,1,0]] 응답의 분산.

    테두리 1px은 이웃이 없으므로 제외한다 (내부 픽셀만 사용).
    """
    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return 0.0
    response = cv2.filter2D(gray.astype(np.float64), cv2.CV_64F, LAPLACIAN_KERNEL)
    return float(response[1:-1, 1:-1].var())


def luma_mean(gray: np.ndarray) -> float:
    return float(gray.mean()) if gray.size else 0.0


def luma_std(gray: np.ndarray) -> float:
    return float(gray.std()) if gray.size else 0.0


def overexposed_fraction(image_bgr: np.ndarray, level: int = 240) -> float:
    """모든 채널이 level을 초과하는 픽셀의 비율."""
    if image_bgr.size == 0:
        return 0.0
    rgb = image_bgr[:, :, :3]
    bright = np.all(rgb > level, axis=2)
    return float(bright.mean())


def channel_histograms(pixels_rgb: np.ndarray, bins: int = 256) -> Dict[str, List[int]]:
    """(N, 3) RGB uint8 픽셀의 채널별 히스토그램."""
    if pixels_rgb.size == 0:
        empty = [0] * bins
        return {"red": list(empty), "green": list(empty), "blue": list(empty)}
    px = pixels_rgb.reshape(-1, 3).astype(np.int64)
    scale = 256 // bins
    return {
        "red": np.bincount(px[:, 0] // scale, minlength=bins).tolist(),
        "green": np.bincount(px[:, 1] // scale, minlength=bins).tolist(),
        "blue": np.bincount(px[:, 2] // scale, minlength=bins).tolist(),
    }


def sample_indices(count: int, max_samples: int) -> np.ndarray:
    """
    결정론적 균등 간격 샘플 인덱스.

    count ≤ max_samples이면 전체 인덱스, 아니면 정확히 max_samples개를 반환한다.
    """
    if count <= 0 or max_samples <= 0:
        return np.zeros(0, dtype=np.int64)
    if count <= max_samples:
        return np.arange(count, dtype=np.int64)
    return np.linspace(0, count - 1, max_samples).astype(np.int64)


def circle_mask(shape: Tuple[int, int], center_x: float, center_y: float, radius: float) -> np.ndarray:
    """Build a boolean circle mask."""
    h, w = shape
    yy, xx = np.indices((h, w))
    rr = np.sqrt((xx - center_x) ** 2 + (yy - center_y) ** 2)
    return rr <= radius


def polar_grid(
    shape: Tuple[int, int],
    center_x: float,
    center_y: float,
    radius: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    픽셀 그리드 → (각도, 정규화 반경).

    y축을 위쪽으로 보고 각도를 계산하므로 12시 방향(이미지 위쪽)이 π/2가 된다.

    Returns:
        (angles, r_norm): 각도 [0, 2π), 반경 / radius
    """
    h, w = shape
    yy, xx = np.indices((h, w), dtype=np.float64)
    dx = xx - center_x
    dy = center_y - yy
    angles = np.mod(np.arctan2(dy, dx), 2.0 * np.pi)
    r_norm = np.sqrt(dx**2 + dy**2) / max(radius, 1e-9)
    return angles, r_norm


def local_variance(gray: np.ndarray, window: int = 5) -> np.ndarray:
    """Sliding-window variance E[x²] − E[x]² (scipy uniform filter)."""
    g = gray.astype(np.float64)
    mean = ndimage.uniform_filter(g, size=window, mode="reflect")
    mean_sq = ndimage.uniform_filter(g * g, size=window, mode="reflect")
    return np.maximum(mean_sq - mean * mean, 0.0)


def rgb_pixels(image_bgr: np.ndarray, mask: Optional[np.ndarray] = None) -> np.ndarray:
    """BGR 이미지에서 (N, 3) RGB uint8 픽셀 배열 추출 (row-major 순서)."""
    rgb = image_bgr[:, :, 2::-1] if image_bgr.shape[2] >= 3 else image_bgr
    if mask is None:
        return rgb.reshape(-1, 3).copy()
    return rgb[mask].reshape(-1, 3).copy()
