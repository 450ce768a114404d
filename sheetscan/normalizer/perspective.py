"""
Perspective Module
Maps the ordered page quadrilateral onto the canonical frame
"""
import cv2
import numpy as np
from typing import Optional, Tuple
import logging

from .config import NormalizerConfig
from .types import HomographyTransform, Quadrilateral, RasterImage

logger = logging.getLogger(__name__)


def canonical_corners(width: int, height: int) -> np.ndarray:
    """Destination corners [TL, TR, BR, BL] of a width x height frame."""
    return np.array([
        [0, 0],
        [width - 1, 0],
        [width - 1, height - 1],
        [0, height - 1]
    ], dtype=np.float32)


def is_warpable(quad: Quadrilateral, min_area: float) -> bool:
    """
    Reject quadrilaterals with near-zero or inverted area and bow-ties.

    The [TL, TR, BR, BL] order has positive signed area on screen; a
    negative value means the corners are mirrored.
    """
    area = quad.signed_area()
    if area < min_area:
        logger.debug(f"Quadrilateral rejected: signed area {area:.1f} < {min_area}")
        return False
    if quad.is_self_intersecting():
        logger.debug("Quadrilateral rejected: edges cross")
        return False
    return True


def compute_homography(quad: Quadrilateral, width: int, height: int) -> HomographyTransform:
    """
    Compute the projective transform taking quad onto a width x height rectangle.

    Args:
        quad: Ordered corners [TL, TR, BR, BL]
        width: Destination width
        height: Destination height
    """
    matrix = cv2.getPerspectiveTransform(quad.as_array(), canonical_corners(width, height))
    return HomographyTransform(matrix=matrix, width=width, height=height)


def warp_to_canonical(
    image: RasterImage,
    quad: Quadrilateral,
    config: NormalizerConfig,
    size: Tuple[int, int] = None
) -> Optional[RasterImage]:
    """
    Warp the page so the quadrilateral fills the canonical frame.

    Args:
        image: Full-resolution photo
        quad: Ordered corners [TL, TR, BR, BL]
        config: Normalizer configuration
        size: Optional (width, height) overriding config.canonical_size

    Returns:
        Warped image, or None for degenerate geometry
    """
    if not is_warpable(quad, config.min_quad_area):
        return None

    width, height = size or config.canonical_size
    transform = compute_homography(quad, width, height)

    warped = cv2.warpPerspective(
        image.pixels, transform.matrix, (transform.width, transform.height),
        flags=cv2.INTER_LINEAR
    )
    return RasterImage(warped)
