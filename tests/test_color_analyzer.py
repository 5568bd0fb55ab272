import numpy as np
import pytest

from iris_mapper.core import color_analyzer
from iris_mapper.core.color_analyzer import (
    analyze_overall_color,
    analyze_pixels,
    calculate_color_variation,
    classify_color,
    detect_unusual_pigmentation,
    find_secondary_colors,
    hsv_to_rgb,
    rgb_to_hsv,
)
from iris_mapper.schemas.analysis import IrisColorProfile, IrisColorType


# Test Case 1: 기본 색상 HSV 변환
def test_rgb_to_hsv_primaries():
    assert rgb_to_hsv(1.0, 0.0, 0.0) == pytest.approx((0.0, 1.0, 1.0))
    assert rgb_to_hsv(0.0, 1.0, 0.0) == pytest.approx((120.0, 1.0, 1.0))
    assert rgb_to_hsv(0.0, 0.0, 1.0) == pytest.approx((240.0, 1.0, 1.0))
    assert rgb_to_hsv(0.0, 0.0, 0.0) == (0.0, 0.0, 0.0)
    h, s, v = rgb_to_hsv(0.5, 0.5, 0.5)
    assert h == 0.0 and s == 0.0 and v == pytest.approx(0.5)


def test_rgb_to_hsv_hue_range_for_magenta_side():
    # R 최대이고 G < B 이면 음수 hue를 360 범위로 wrap
    h, _, _ = rgb_to_hsv(1.0, 0.0, 0.5)
    assert 0.0 <= h < 360.0
    assert h == pytest.approx(330.0)


# Test Case 2: HSV → RGB → HSV 왕복 (허용 오차 이내)
@pytest.mark.parametrize(
    "rgb",
    [(0.2, 0.4, 0.8), (0.6, 0.4, 0.2), (0.9, 0.1, 0.3), (0.3, 0.7, 0.5), (0.25, 0.25, 0.25)],
)
def test_hsv_round_trip(rgb):
    h, s, v = rgb_to_hsv(*rgb)
    assert hsv_to_rgb(h, s, v) == pytest.approx(rgb, abs=1e-9)


def test_hsv_vectorized_matches_scalar():
    rng = np.random.default_rng(5)
    rgb = rng.random((50, 3))
    h, s, v = rgb_to_hsv(rgb[:, 0], rgb[:, 1], rgb[:, 2])
    for i in (0, 17, 49):
        assert (h[i], s[i], v[i]) == pytest.approx(rgb_to_hsv(*rgb[i]))


# Test Case 3: 결정 테이블 분류 (첫 번째 일치 규칙)
@pytest.mark.parametrize(
    "rgb, expected",
    [
        ((0.2, 0.4, 0.8), IrisColorType.BLUE),
        ((0.0, 0.5, 0.5), IrisColorType.GREEN),
        ((0.6, 0.4, 0.2), IrisColorType.BROWN),
        ((0.6, 0.5, 0.0), IrisColorType.HAZEL),
        ((0.3, 0.225, 0.1), IrisColorType.AMBER),
        ((0.5, 0.5, 0.5), IrisColorType.GRAY),
        ((0.1, 0.1, 0.1), IrisColorType.MIXED),
    ],
)
def test_classify_color(rgb, expected):
    assert classify_color(*rgb) == expected


def test_classify_color_brown_takes_precedence_over_amber():
    # hue 30~40, R > G > B 이면 amber 조건도 맞지만 brown 규칙이 먼저
    assert classify_color(0.6, 0.4, 0.2) == IrisColorType.BROWN


# Test Case 4: 균일한 파란 홍채
def test_uniform_blue_iris_profile(uniform_blue_iris):
    profile = analyze_overall_color(uniform_blue_iris)
    assert profile.primary_color == IrisColorType.BLUE
    assert profile.secondary_colors == ()
    assert profile.color_variation == 0.0
    assert not profile.has_distinct_zones
    assert profile.baseline.red == pytest.approx(50 / 255)
    assert profile.baseline.blue == pytest.approx(200 / 255)
    assert profile.description == "Predominantly Blue"


def test_analyze_pixels_empty_is_mixed():
    profile = analyze_pixels(np.zeros((0, 3), dtype=np.uint8))
    assert profile.dominant_color == IrisColorType.MIXED
    assert profile.pixel_count == 0
    assert profile.rgb == (0.0, 0.0, 0.0)


def _pixels(counts):
    rows = []
    for rgb, n in counts:
        rows.append(np.tile(np.array(rgb, dtype=np.uint8), (n, 1)))
    return np.concatenate(rows)


# Test Case 5: 보조 색상
def test_secondary_colors_sorted_by_frequency_and_exclude_dominant():
    blue = (51, 102, 204)
    brown = (153, 102, 51)
    gray = (128, 128, 128)
    pixels = _pixels([(blue, 600), (gray, 250), (brown, 150)])
    secondary = find_secondary_colors(pixels, IrisColorType.BLUE)
    assert secondary == (IrisColorType.GRAY, IrisColorType.BROWN)


def test_secondary_colors_require_more_than_ten_percent():
    pixels = _pixels([((51, 102, 204), 950), ((153, 102, 51), 50)])
    assert find_secondary_colors(pixels, IrisColorType.BLUE) == ()


def test_secondary_colors_need_minimum_pixels():
    pixels = _pixels([((51, 102, 204), 50), ((153, 102, 51), 49)])
    assert find_secondary_colors(pixels, IrisColorType.BLUE) == ()


def test_secondary_colors_at_most_two():
    pixels = _pixels(
        [
            ((51, 102, 204), 250),  # blue
            ((153, 102, 51), 250),  # brown
            ((128, 128, 128), 250),  # gray
            ((153, 128, 0), 250),  # hazel
        ]
    )
    secondary = find_secondary_colors(pixels, IrisColorType.MIXED)
    assert len(secondary) == color_analyzer.MAX_SECONDARY_COLORS


# Test Case 6: 색상 변화도
def test_color_variation_bounds():
    assert calculate_color_variation(np.zeros((5, 3), dtype=np.uint8)) == 0.0
    uniform = _pixels([((51, 102, 204), 200)])
    assert calculate_color_variation(uniform) == 0.0
    mixed = _pixels([((255, 0, 0), 100), ((0, 255, 255), 100)])
    variation = calculate_color_variation(mixed)
    assert variation == pytest.approx(0.25)
    assert 0.0 <= variation <= 1.0


def test_unusual_pigmentation():
    overall = IrisColorProfile(
        primary_color=IrisColorType.BLUE,
        secondary_colors=(),
        color_variation=0.0,
        has_distinct_zones=False,
    )
    typical = analyze_pixels(_pixels([((60, 90, 180), 200)]))
    assert not detect_unusual_pigmentation(typical, overall)

    brown = analyze_pixels(_pixels([((153, 102, 51), 200)]))
    assert detect_unusual_pigmentation(brown, overall)

    washed_out = analyze_pixels(_pixels([((110, 115, 125), 200)]))
    assert detect_unusual_pigmentation(washed_out, overall)


def test_color_histogram_shape():
    hist = color_analyzer.color_histogram(_pixels([((10, 20, 30), 7)]))
    assert set(hist) == {"red", "green", "blue"}
    assert len(hist["red"]) == 256
    assert hist["red"][10] == 7
