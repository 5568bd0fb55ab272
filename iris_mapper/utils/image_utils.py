"""
유틸: 이미지 코덱 경계 및 배열 보조 함수 모음.

프레임은 인코딩된 바이트로 들어오고(decode_frame), 정규화된 홍채 이미지는
호출자가 다시 인코딩한다(encode_image).
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np

from iris_mapper.core.errors import DecodeError


class ImageValidationError(ValueError):
    """이미지 유효성 오류"""


def validate_image(image: np.ndarray, name: str = "image") -> None:
    if not isinstance(image, np.ndarray):
        raise ImageValidationError(f"{name} must be numpy.ndarray")
    if image.dtype != np.uint8:
        raise ImageValidationError(f"{name} must have dtype uint8")
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ImageValidationError(f"{name} must have 3 or 4 channels (H, W, C)")


def decode_frame(data: Union[bytes, bytearray, np.ndarray]) -> np.ndarray:
    """
    인코딩된 프레임(JPEG/PNG 등)을 BGR uint8 배열로 디코딩.

    Raises:
        DecodeError: 데이터가 비었거나 디코딩 불가
    """
    if isinstance(data, np.ndarray) and data.ndim == 3:
        validate_image(data, "frame")
        return data[:, :, :3].copy()

    buf = np.frombuffer(bytes(data), dtype=np.uint8) if not isinstance(data, np.ndarray) else data
    if buf.size == 0:
        raise DecodeError("Empty frame data")
    image = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeError("Failed to decode image")
    return image


def encode_image(image: np.ndarray, ext: str = ".png", jpeg_quality: int = 95) -> bytes:
    """BGR 이미지를 인코딩된 바이트로 변환."""
    validate_image(image)
    params = [int(cv2.IMWRITE_JPEG_QUALITY), int(jpeg_quality)] if ext.lower() in (".jpg", ".jpeg") else []
    ok, buf = cv2.imencode(ext, image, params)
    if not ok:
        raise ImageValidationError(f"Failed to encode image as {ext}")
    return buf.tobytes()


def read_image_bytes(filepath: Path) -> bytes:
    # np.fromfile로 비ASCII 경로에서도 안정적으로 읽는다
    return np.fromfile(str(filepath), dtype=np.uint8).tobytes()


def write_image(filepath: Path, image: np.ndarray) -> None:
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_bytes(encode_image(image, filepath.suffix or ".png"))


def bgr_to_rgb(image: np.ndarray) -> np.ndarray:
    """BGR 이미지를 RGB로 변환."""
    validate_image(image)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def draw_circle(
    image: np.ndarray,
    center: Tuple[int, int],
    radius: int,
    color: Tuple[int, int, int] = (0, 255, 0),
    thickness: int = 2,
) -> np.ndarray:
    """이미지 복사본에 원을 그려 반환."""
    validate_image(image)
    out = image.copy()
    cv2.circle(out, center, int(radius), color, thickness=thickness)
    return out
