"""
Image I/O Module
Decoding, encoding and colour-space helpers shared by every stage
"""
from pathlib import Path
from typing import Union

import cv2
import numpy as np
import logging

from ..core.constants import OutputFormat
from ..core.exceptions import ImageProcessingException
from .types import RasterImage

logger = logging.getLogger(__name__)


def to_gray(img: np.ndarray) -> np.ndarray:
    """Return a single-channel view/copy of a BGR, BGRA or gray array."""
    if img.ndim == 2:
        return img
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
    if img.shape[2] == 1:
        return img[:, :, 0]
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def to_bgr(img: np.ndarray) -> np.ndarray:
    """Return a three-channel BGR array."""
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img


def decode_image(data: bytes, source: str = "<bytes>") -> RasterImage:
    """
    Decode an encoded image buffer (BGR).

    Raises:
        ImageProcessingException: If the buffer is empty or not a decodable image
    """
    if not data:
        raise ImageProcessingException(source, "empty buffer")

    buffer = np.frombuffer(bytes(data), dtype=np.uint8)
    img = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if img is None or img.size == 0:
        raise ImageProcessingException(source, "not a decodable image")

    return RasterImage(img)


def load_image(path: Union[str, Path]) -> RasterImage:
    """
    Load an image file from disk (BGR).

    Raises:
        ImageProcessingException: If the file is missing or cannot be decoded
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageProcessingException(str(path), str(e)) from e

    return decode_image(data, str(path))


def _encode_params(fmt: str, quality: int) -> list:
    if fmt == OutputFormat.WEBP.value:
        return [cv2.IMWRITE_WEBP_QUALITY, int(quality)]
    if fmt == OutputFormat.JPEG.value:
        return [cv2.IMWRITE_JPEG_QUALITY, int(quality)]
    # PNG is lossless; quality does not apply
    return [cv2.IMWRITE_PNG_COMPRESSION, 3]


def encode_image(image: RasterImage, fmt: str = "webp", quality: int = 90) -> bytes:
    """
    Encode an image to a raster format.

    Args:
        image: Image to encode
        fmt: One of "webp", "png", "jpg"
        quality: Lossy quality (0-100)

    Returns:
        Encoded bytes

    Raises:
        ImageProcessingException: If the codec rejects the image
    """
    fmt = fmt.lower().lstrip(".")
    if fmt == "jpeg":
        fmt = OutputFormat.JPEG.value

    ok, buffer = cv2.imencode(f".{fmt}", image.pixels, _encode_params(fmt, quality))
    if not ok:
        raise ImageProcessingException(f"<{fmt} encoder>", "encoding failed")

    return buffer.tobytes()


def save_image(
    image: RasterImage,
    path: Union[str, Path],
    fmt: str = None,
    quality: int = 90
) -> Path:
    """Encode and write an image; the format defaults to the path suffix."""
    path = Path(path)
    fmt = fmt or path.suffix.lstrip(".") or OutputFormat.PNG.value
    data = encode_image(image, fmt, quality)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise ImageProcessingException(str(path), str(e)) from e

    logger.debug(f"Wrote {len(data)} bytes to {path}")
    return path
