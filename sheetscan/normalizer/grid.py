"""
Grid Marker Module
Alternative layout: small square scan-area markers arranged in two rows,
plus one smaller orientation marker. Each column between four markers is
cut out, straightened, and the columns are stacked top to bottom.
"""
from typing import List, Optional, Sequence, Tuple
import logging

import cv2
import numpy as np

from ..core.constants import FailureReason, Suggestions
from ..core.exceptions import ImageProcessingException
from .base import DocumentNormalizer, NormalizationResult
from .config import NormalizerConfig
from .enhance import enhance_gentle
from .image_io import to_gray
from .perspective import is_warpable, warp_to_canonical
from .stitching import order_by_extremes
from .types import Quadrilateral, RasterImage

logger = logging.getLogger(__name__)


def detect_grid_markers(
    image: RasterImage,
    config: NormalizerConfig
) -> Tuple[List[np.ndarray], Optional[np.ndarray]]:
    """
    Find 4-vertex marker outlines and split them into the two area bands.

    Args:
        image: Input image
        config: Normalizer configuration

    Returns:
        (scan-area outlines, orientation outline or None); outlines are (4, 2) int arrays
    """
    gray = to_gray(image.pixels)
    edges = cv2.Canny(gray, 50, 150)
    contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    frame_area = float(image.width * image.height)
    scan_lo, scan_hi = (r * frame_area for r in config.grid_scan_area_ratio)
    rot_lo, rot_hi = (r * frame_area for r in config.grid_orientation_area_ratio)

    scan_areas = []
    orientation = None
    orientation_area = 0.0
    for cnt in contours:
        epsilon = config.grid_approx_epsilon * cv2.arcLength(cnt, True)
        approx = cv2.approxPolyDP(cnt, epsilon, True)
        if len(approx) != 4:
            continue

        area = cv2.contourArea(approx)
        if rot_lo < area < rot_hi and area > orientation_area:
            orientation, orientation_area = approx.reshape(4, 2), area
        if scan_lo < area < scan_hi:
            scan_areas.append(approx.reshape(4, 2))

    logger.debug(
        f"Grid markers: {len(scan_areas)} scan areas, "
        f"orientation marker {'found' if orientation is not None else 'missing'}"
    )
    return scan_areas, orientation


def average_spacing(coordinates: Sequence[float], min_gap: float = 50) -> float:
    """
    Mean of consecutive sorted-coordinate gaps that reach min_gap.

    Gaps below the floor come from markers sharing a row/column (or
    duplicate detections) and are ignored. Returns 0 when no gap qualifies.
    """
    ordered = sorted(coordinates)
    gaps = [b - a for a, b in zip(ordered, ordered[1:]) if b - a >= min_gap]
    return sum(gaps) / len(gaps) if gaps else 0.0


def closest_index(point: Tuple[float, float], points: Sequence[Tuple[float, float]]) -> int:
    """Index of the point nearest to point (Euclidean)."""
    pts = np.asarray(points, dtype=np.float64)
    d = np.hypot(pts[:, 0] - point[0], pts[:, 1] - point[1])
    return int(np.argmin(d))


def _index_point(outline: np.ndarray) -> Tuple[float, float]:
    # top-left-most vertex
    v = outline[np.argmin(outline.sum(axis=1))]
    return float(v[0]), float(v[1])


def column_quads(scan_areas: List[np.ndarray], min_gap: float) -> List[Quadrilateral]:
    """
    Predict grid columns and return each column's outer corners.

    The column between predicted positions (x, y), (x + dx, y),
    (x + dx, y + dy), (x, y + dy) is bounded by the outer vertex of the
    nearest scan-area marker at each position.
    """
    index_points = [_index_point(a) for a in scan_areas]
    dx = average_spacing([p[0] for p in index_points], min_gap)
    dy = average_spacing([p[1] for p in index_points], min_gap)
    if dx == 0 or dy == 0:
        return []

    origin = index_points[closest_index((0, 0), index_points)]

    def marker_at(x: float, y: float) -> np.ndarray:
        return scan_areas[closest_index((x, y), index_points)]

    quads = []
    for i in range((len(scan_areas) - 2) // 2):
        x, y = origin[0] + dx * i, origin[1]

        top_left = marker_at(x, y)
        top_right = marker_at(x + dx, y)
        bottom_right = marker_at(x + dx, y + dy)
        bottom_left = marker_at(x, y + dy)

        quads.append(Quadrilateral((
            tuple(top_left[np.argmin(top_left.sum(axis=1))]),
            tuple(top_right[np.argmax(top_right[:, 0] - top_right[:, 1])]),
            tuple(bottom_right[np.argmax(bottom_right.sum(axis=1))]),
            tuple(bottom_left[np.argmin(bottom_left[:, 0] - bottom_left[:, 1])]),
        )))

    return quads


def needs_flip(orientation: Optional[np.ndarray], scan_areas: List[np.ndarray]) -> bool:
    """
    True when the orientation marker sits in the lower half of the grid,
    i.e. the sheet was photographed upside down.
    """
    if orientation is None or not scan_areas:
        return False
    ys = [_index_point(a)[1] for a in scan_areas]
    middle = (min(ys) + max(ys)) / 2.0
    return float(orientation[:, 1].mean()) > middle


def find_page_outline(image: RasterImage) -> Optional[Quadrilateral]:
    """Largest 4-vertex contour covering at least 10% of the frame."""
    gray = to_gray(image.pixels)
    blurred = cv2.GaussianBlur(gray, (5, 5), 0)
    edges = cv2.Canny(blurred, 50, 150)

    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (5, 5))
    edges = cv2.erode(cv2.dilate(edges, kernel), kernel)

    contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    best, best_area = None, image.width * image.height * 0.1
    for cnt in contours:
        approx = cv2.approxPolyDP(cnt, 0.02 * cv2.arcLength(cnt, True), True)
        if len(approx) != 4:
            continue
        area = cv2.contourArea(approx)
        if area > best_area:
            best, best_area = approx, area

    return order_by_extremes(best) if best is not None else None


def _side_lengths(quad: Quadrilateral) -> Tuple[int, int]:
    tl, tr, br, bl = (np.array(p) for p in quad.points)
    width = max(np.linalg.norm(tr - tl), np.linalg.norm(br - bl))
    height = max(np.linalg.norm(bl - tl), np.linalg.norm(br - tr))
    return max(1, int(width)), max(1, int(height))


class GridMarkerNormalizer(DocumentNormalizer):
    """
    Normalizer for the grid-of-scan-areas sheet layout.

    Pipeline:
    1. Optional page-boundary correction and gentle enhancement
    2. Scan-area / orientation marker detection
    3. Per-column straightening and vertical stacking
    4. 180 degree flip for upside-down captures
    """

    def _correct_page(self, image: RasterImage) -> RasterImage:
        outline = find_page_outline(image)
        if outline is None:
            logger.warning("Could not find document boundary for perspective correction")
            return image
        corrected = warp_to_canonical(image, outline, self.config, size=_side_lengths(outline))
        return corrected if corrected is not None else image

    def normalize(self, image: RasterImage, image_name: str = "") -> NormalizationResult:
        """
        Normalize a single grid-layout photo.

        Raises:
            ImageProcessingException: On unexpected OpenCV faults
        """
        try:
            return self._normalize(image, image_name)
        except cv2.error as e:
            logger.exception(f"Unexpected error normalizing {image_name}")
            raise ImageProcessingException(image_name or "<image>", str(e)) from e

    def _normalize(self, image: RasterImage, image_name: str) -> NormalizationResult:
        cfg = self.config
        working = image

        if cfg.grid_page_correction:
            working = self._correct_page(working)
        if cfg.grid_enhance:
            working = enhance_gentle(working)

        scan_areas, orientation = detect_grid_markers(working, cfg)
        if len(scan_areas) < 4:
            logger.info(f"{image_name}: only {len(scan_areas)} scan areas found, at least 4 required")
            return NormalizationResult.failed(
                FailureReason.INSUFFICIENT_MARKERS,
                f"Not enough scan areas found: {len(scan_areas)}, required at least 4",
                Suggestions.RETAKE_MARKERS,
                image_name=image_name,
                marker_count=len(scan_areas),
            )

        quads = column_quads(scan_areas, cfg.grid_min_gap)
        if not quads or not all(is_warpable(q, cfg.min_quad_area) for q in quads):
            return NormalizationResult.failed(
                FailureReason.GEOMETRY_DEGENERATE,
                "Scan areas do not form a usable grid",
                Suggestions.RETAKE_GEOMETRY,
                image_name=image_name,
                marker_count=len(scan_areas),
            )

        columns = []
        for quad in quads:
            column = warp_to_canonical(working, quad, cfg, size=_side_lengths(quad))
            columns.append(column.pixels)

        width, height = columns[0].shape[1], columns[0].shape[0]
        resized = [columns[0]] + [
            cv2.resize(c, (width, height), interpolation=cv2.INTER_LINEAR) for c in columns[1:]
        ]
        stacked = cv2.vconcat(resized)

        if needs_flip(orientation, scan_areas):
            logger.info(f"{image_name}: orientation marker in lower half, rotating 180 degrees")
            stacked = cv2.rotate(stacked, cv2.ROTATE_180)

        logger.info(f"{image_name}: stacked {len(columns)} grid columns into {stacked.shape[1]}x{stacked.shape[0]}")

        return NormalizationResult(
            success=True,
            image=RasterImage(stacked),
            image_name=image_name,
            marker_count=len(scan_areas),
            used_default_orientation=orientation is None,
        )
