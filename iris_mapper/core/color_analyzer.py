"""
Color Analyzer Module

RGB ↔ HSV 변환, 평균 색상 분류, 보조 색상 및 색상 변화도 계산.

분류 규칙은 순서가 있는 결정 테이블이며 처음 일치하는 규칙이 선택된다:
    1. blue   : hue 180~260, B > R, B > G
    2. green  : hue 80~180, G > 0.9·R
    3. brown  : hue 20~40, R > 0.3
    4. hazel  : hue 40~80
    5. amber  : hue 30~60, R > G > B
    6. gray   : 평균 > 0.3, 채널 범위 < 0.15
    7. mixed  : 그 외
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from iris_mapper.core import pixel_stats
from iris_mapper.schemas.analysis import EMPTY_COLOR_PROFILE, ColorProfile, IrisColorProfile, IrisColorType

logger = logging.getLogger(__name__)

SECONDARY_SAMPLE_SIZE = 1000
SECONDARY_MIN_PIXELS = 100
SECONDARY_MIN_FRACTION = 0.10
MAX_SECONDARY_COLORS = 2

VARIATION_SAMPLE_SIZE = 500
VARIATION_MIN_PIXELS = 10
DISTINCT_ZONES_VARIATION = 0.3

TYPICAL_HUES = {
    IrisColorType.BLUE: 220.0,
    IrisColorType.GREEN: 130.0,
    IrisColorType.BROWN: 30.0,
    IrisColorType.HAZEL: 60.0,
    IrisColorType.GRAY: 0.0,
    IrisColorType.AMBER: 45.0,
    IrisColorType.MIXED: 0.0,
}

# np.select 결과 인덱스 → 색상 (결정 테이블 순서와 동일)
_CLASS_ORDER = (
    IrisColorType.BLUE,
    IrisColorType.GREEN,
    IrisColorType.BROWN,
    IrisColorType.HAZEL,
    IrisColorType.AMBER,
    IrisColorType.GRAY,
    IrisColorType.MIXED,
)

ArrayLike = Union[float, np.ndarray]


# ================================================================
# HSV conversion
# ================================================================


def rgb_to_hsv(r: ArrayLike, g: ArrayLike, b: ArrayLike) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
    """
    Convert RGB (0~1) to HSV

    Hue is piecewise by the dominant channel and wrapped into [0, 360).
    Saturation is (max - min) / max (0 when max is 0), value is max.

    Args:
        r, g, b: channel values in [0, 1] (scalars or same-shape arrays)

    Returns:
        (h, s, v): hue 0~360, saturation 0~1, value 0~1

    Example:
        >>> h, s, v = rgb_to_hsv(0.0, 0.0, 1.0)
        >>> print(f"h={h:.0f}, s={s:.1f}, v={v:.1f}")
        h=240, s=1.0, v=1.0
    """
    scalar = np.ndim(r) == 0
    r_arr = np.atleast_1d(np.asarray(r, dtype=np.float64))
    g_arr = np.atleast_1d(np.asarray(g, dtype=np.float64))
    b_arr = np.atleast_1d(np.asarray(b, dtype=np.float64))

    max_c = np.maximum(np.maximum(r_arr, g_arr), b_arr)
    min_c = np.minimum(np.minimum(r_arr, g_arr), b_arr)
    delta = max_c - min_c
    safe_delta = np.where(delta == 0, 1.0, delta)

    hue = np.select(
        [delta == 0, max_c == r_arr, max_c == g_arr],
        [
            0.0,
            60.0 * np.mod((g_arr - b_arr) / safe_delta, 6.0),
            60.0 * ((b_arr - r_arr) / safe_delta + 2.0),
        ],
        default=60.0 * ((r_arr - g_arr) / safe_delta + 4.0),
    )
    hue = np.mod(hue, 360.0)
    hue = np.where(hue >= 360.0, 0.0, hue)
    saturation = np.where(max_c == 0, 0.0, delta / np.where(max_c == 0, 1.0, max_c))
    value = max_c

    if scalar:
        return float(hue[0]), float(saturation[0]), float(value[0])
    return hue, saturation, value


def hsv_to_rgb(h: ArrayLike, s: ArrayLike, v: ArrayLike) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
    """
    Convert HSV to RGB (0~1)

    Args:
        h: hue 0~360 (wrapped)
        s: saturation 0~1
        v: value 0~1

    Returns:
        (r, g, b) in [0, 1]

    Example:
        >>> r, g, b = hsv_to_rgb(120.0, 1.0, 1.0)
        >>> print(f"r={r:.1f}, g={g:.1f}, b={b:.1f}")
        r=0.0, g=1.0, b=0.0
    """
    scalar = np.ndim(h) == 0
    h_arr = np.mod(np.atleast_1d(np.asarray(h, dtype=np.float64)), 360.0)
    s_arr = np.atleast_1d(np.asarray(s, dtype=np.float64))
    v_arr = np.atleast_1d(np.asarray(v, dtype=np.float64))

    c = v_arr * s_arr
    hp = h_arr / 60.0
    x = c * (1.0 - np.abs(np.mod(hp, 2.0) - 1.0))
    m = v_arr - c
    sector = np.floor(hp).astype(np.int64) % 6

    zero = np.zeros_like(c)
    r1 = np.choose(sector, [c, x, zero, zero, x, c])
    g1 = np.choose(sector, [x, c, c, x, zero, zero])
    b1 = np.choose(sector, [zero, zero, x, c, c, x])

    r_out, g_out, b_out = r1 + m, g1 + m, b1 + m
    if scalar:
        return float(r_out[0]), float(g_out[0]), float(b_out[0])
    return r_out, g_out, b_out


# ================================================================
# Classification
# ================================================================


def classify_colors(rgb: np.ndarray, hue: np.ndarray) -> np.ndarray:
    """
    (N, 3) RGB(0~1) + hue 배열을 분류하여 _CLASS_ORDER 인덱스 배열을 반환.
    """
    r, g, b = rgb[:, 0], rgb[:, 1], rgb[:, 2]
    mean = (r + g + b) / 3.0
    spread = np.max(rgb, axis=1) - np.min(rgb, axis=1)

    conditions = [
        (hue >= 180) & (hue <= 260) & (b > r) & (b > g),
        (hue >= 80) & (hue <= 180) & (g > r * 0.9),
        (hue >= 20) & (hue <= 40) & (r > 0.3),
        (hue >= 40) & (hue <= 80),
        (hue >= 30) & (hue <= 60) & (r > g) & (g > b),
        (mean > 0.3) & (spread < 0.15),
    ]
    choices = list(range(len(conditions)))
    return np.select(conditions, choices, default=len(conditions))


def classify_color(r: float, g: float, b: float, hue: Optional[float] = None) -> IrisColorType:
    """단일 RGB(0~1) 색상 분류 (hue 생략 시 계산)."""
    if hue is None:
        hue, _, _ = rgb_to_hsv(r, g, b)
    index = classify_colors(np.array([[r, g, b]], dtype=np.float64), np.array([hue], dtype=np.float64))
    return _CLASS_ORDER[int(index[0])]


def typical_hue(color: IrisColorType) -> float:
    return TYPICAL_HUES[color]


# ================================================================
# Pixel-set analysis
# ================================================================


def _normalized(pixels_rgb: np.ndarray) -> np.ndarray:
    return pixels_rgb.reshape(-1, 3).astype(np.float64) / 255.0


def find_secondary_colors(pixels_rgb: np.ndarray, dominant: IrisColorType) -> Tuple[IrisColorType, ...]:
    """
    보조 색상 탐지.

    최대 1000개 픽셀을 균등 샘플링하여 분류하고, 10%를 초과하는 클래스 중
    dominant를 제외한 상위 2개를 빈도 순으로 반환한다. 픽셀이 100개 미만이면 빈 튜플.
    """
    count = len(pixels_rgb)
    if count < SECONDARY_MIN_PIXELS:
        return ()

    idx = pixel_stats.sample_indices(count, SECONDARY_SAMPLE_SIZE)
    sample = _normalized(pixels_rgb[idx])
    hue, _, _ = rgb_to_hsv(sample[:, 0], sample[:, 1], sample[:, 2])
    classes = classify_colors(sample, hue)

    counts = np.bincount(classes, minlength=len(_CLASS_ORDER))
    threshold = len(idx) * SECONDARY_MIN_FRACTION
    # 빈도 내림차순, 동률이면 결정 테이블 순서
    ranked = sorted(range(len(_CLASS_ORDER)), key=lambda i: (-counts[i], i))
    secondary = [
        _CLASS_ORDER[i] for i in ranked if counts[i] > threshold and _CLASS_ORDER[i] != dominant
    ]
    return tuple(secondary[:MAX_SECONDARY_COLORS])


def calculate_color_variation(pixels_rgb: np.ndarray) -> float:
    """최대 500개 샘플 hue의 표준편차 / 360, [0, 1] clamp. 픽셀 10개 미만이면 0."""
    count = len(pixels_rgb)
    if count < VARIATION_MIN_PIXELS:
        return 0.0
    idx = pixel_stats.sample_indices(count, VARIATION_SAMPLE_SIZE)
    sample = _normalized(pixels_rgb[idx])
    hue, _, _ = rgb_to_hsv(sample[:, 0], sample[:, 1], sample[:, 2])
    return float(np.clip(np.std(hue) / 360.0, 0.0, 1.0))


def analyze_pixels(pixels_rgb: np.ndarray) -> ColorProfile:
    """
    픽셀 집합의 색상 프로파일.

    Args:
        pixels_rgb: (N, 3) RGB uint8 픽셀

    Returns:
        ColorProfile (빈 입력이면 mixed / 0 값 프로파일)
    """
    if pixels_rgb is None or len(pixels_rgb) == 0:
        return EMPTY_COLOR_PROFILE

    rgb = _normalized(pixels_rgb)
    avg_r, avg_g, avg_b = (float(v) for v in rgb.mean(axis=0))
    hue, saturation, value = rgb_to_hsv(avg_r, avg_g, avg_b)
    dominant = classify_color(avg_r, avg_g, avg_b, hue)
    secondary = find_secondary_colors(pixels_rgb, dominant)

    return ColorProfile(
        red=avg_r,
        green=avg_g,
        blue=avg_b,
        hue=hue,
        saturation=saturation,
        brightness=value,
        dominant_color=dominant,
        secondary_colors=secondary,
        pixel_count=len(pixels_rgb),
    )


def analyze_overall_color(
    image_bgr: np.ndarray,
    radius: Optional[float] = None,
    sample_ratio: float = 0.8,
) -> IrisColorProfile:
    """
    홍채 전체 색상 프로파일.

    가장자리를 피하기 위해 중심에서 sample_ratio·radius 이내 픽셀만 사용한다.

    Args:
        image_bgr: 정규화된 홍채 이미지
        radius: 홍채 반경 (px), 기본값 min(cx, cy)
        sample_ratio: 샘플링 반경 비율
    """
    h, w = image_bgr.shape[:2]
    cx, cy = w / 2.0, h / 2.0
    if radius is None:
        radius = min(cx, cy)

    yy, xx = np.indices((h, w))
    distance = np.sqrt((xx - cx) ** 2 + (yy - cy) ** 2)
    pixels = pixel_stats.rgb_pixels(image_bgr, distance < radius * sample_ratio)

    baseline = analyze_pixels(pixels)
    variation = calculate_color_variation(pixels)

    logger.debug(
        f"Overall iris color: {baseline.dominant_color.value} "
        f"(secondary={[c.value for c in baseline.secondary_colors]}, variation={variation:.3f})"
    )

    return IrisColorProfile(
        primary_color=baseline.dominant_color,
        secondary_colors=baseline.secondary_colors,
        color_variation=variation,
        has_distinct_zones=variation > DISTINCT_ZONES_VARIATION,
        baseline=baseline,
    )


def color_histogram(pixels_rgb: np.ndarray) -> Dict[str, List[int]]:
    """Per-channel 256-bin histogram of (N, 3) RGB pixels."""
    return pixel_stats.channel_histograms(pixels_rgb)


def detect_unusual_pigmentation(profile: ColorProfile, overall: IrisColorProfile) -> bool:
    """
    zone 색상이 홍채 전체 대비 특이한지 판정.

    primary 색상의 대표 hue와 60° 초과 차이 (300° 이상은 wrap으로 보고 제외)
    또는 채도가 0.5에서 0.3 넘게 벗어난 경우.
    """
    hue_diff = abs(profile.hue - typical_hue(overall.primary_color))
    if 60.0 < hue_diff < 300.0:
        return True
    return abs(profile.saturation - 0.5) > 0.3
