"""
Marker Detection Module
Finds fiducial marker centroids in a photographed answer sheet
"""
import cv2
import numpy as np
from typing import List, Sequence
import logging

from .config import NormalizerConfig
from .image_io import to_gray
from .types import MarkerPoint, RasterImage

logger = logging.getLogger(__name__)


def detection_factor(image: RasterImage, config: NormalizerConfig) -> float:
    """
    Linear scale at which marker search runs for this image.

    Large photos are searched on a downscaled copy; everything found is
    mapped back to full resolution by the caller-facing functions.
    """
    long_side = max(image.width, image.height)
    if config.detection_scale < 1.0 and long_side > config.detection_downscale_above:
        return config.detection_scale
    return 1.0


def binarize_for_markers(gray: np.ndarray, config: NormalizerConfig) -> np.ndarray:
    """
    Blur and inverse-threshold a grayscale image so dark markers become foreground.

    Args:
        gray: Grayscale image
        config: Normalizer configuration

    Returns:
        Binary image ready for contour detection
    """
    k = config.blur_kernel
    blurred = cv2.GaussianBlur(gray, (k, k), 0)

    if config.use_otsu:
        _, binary = cv2.threshold(
            blurred, 0, 255, cv2.THRESH_BINARY_INV | cv2.THRESH_OTSU
        )
    else:
        _, binary = cv2.threshold(
            blurred, config.binary_threshold, 255, cv2.THRESH_BINARY_INV
        )

    return binary


def markers_from_contours(
    contours: Sequence[np.ndarray],
    config: NormalizerConfig,
    scale: float = 1.0
) -> List[MarkerPoint]:
    """
    Keep contours whose area lies inside the marker band and return their centroids.

    Both band limits are inclusive. Contours with a zero first-moment
    denominator are skipped.

    Args:
        contours: Contours as returned by cv2.findContours
        config: Normalizer configuration (areas in full-resolution pixel^2)
        scale: Linear scale of the image the contours were found in

    Returns:
        Marker points in full-resolution coordinates
    """
    min_area = config.marker_min_area * scale * scale
    max_area = config.marker_max_area * scale * scale

    markers = []
    for cnt in contours:
        area = cv2.contourArea(cnt)
        if area < min_area or area > max_area:
            continue

        M = cv2.moments(cnt)
        if M["m00"] == 0:
            continue

        marker = MarkerPoint(M["m10"] / M["m00"], M["m01"] / M["m00"], area)
        if scale != 1.0:
            marker = marker.scaled(scale)
        markers.append(marker)

    return markers


def detect_markers(image: RasterImage, config: NormalizerConfig) -> List[MarkerPoint]:
    """
    Find candidate marker centroids.

    Args:
        image: Input image (BGR or grayscale)
        config: Normalizer configuration

    Returns:
        Marker points (possibly empty) in full-resolution coordinates
    """
    factor = detection_factor(image, config)

    gray = to_gray(image.pixels)
    if factor < 1.0:
        gray = cv2.resize(gray, None, fx=factor, fy=factor, interpolation=cv2.INTER_AREA)

    binary = binarize_for_markers(gray, config)
    contours, _ = cv2.findContours(binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    markers = markers_from_contours(contours, config, factor)

    logger.debug(
        f"Detected {len(markers)} markers from {len(contours)} contours "
        f"(detection scale {factor:g})"
    )
    return markers
