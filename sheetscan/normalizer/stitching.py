"""
Stitching Module
Normalizes each photographed segment of a page independently and joins
them left to right into one composite image
"""
from pathlib import Path
from typing import List, Optional, Sequence, Union
import logging

import cv2
import numpy as np

from ..core.exceptions import (
    ImageProcessingException,
    SegmentDecodeException,
    StitchingException,
)
from .config import NormalizerConfig
from .enhance import enhance_for_ocr, sharpen
from .image_io import decode_image, encode_image, load_image, to_bgr, to_gray
from .perspective import is_warpable
from .types import Quadrilateral, RasterImage, Segment, StitchedImage

logger = logging.getLogger(__name__)

SegmentSource = Union[bytes, bytearray, memoryview, np.ndarray, RasterImage, str, Path]


def order_by_extremes(points: np.ndarray) -> Quadrilateral:
    """
    Order 4+ points as [TL, TR, BR, BL] by extreme coordinate sums:
    TL minimises x+y, BR maximises it, TR minimises y-x, BL maximises it.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    s = pts.sum(axis=1)
    d = pts[:, 1] - pts[:, 0]
    return Quadrilateral((
        tuple(pts[np.argmin(s)]),
        tuple(pts[np.argmin(d)]),
        tuple(pts[np.argmax(s)]),
        tuple(pts[np.argmax(d)]),
    ))


def _find_edge_contours(blurred: np.ndarray, min_area: float) -> list:
    edges = cv2.Canny(blurred, 30, 80)
    contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    if not any(cv2.contourArea(c) > min_area for c in contours):
        # Faint paper edges: retry on a morphological gradient
        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
        gradient = cv2.morphologyEx(blurred, cv2.MORPH_GRADIENT, kernel)
        edges = cv2.Canny(gradient, 50, 150)
        contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    return list(contours)


def _best_paper_contour(contours: list, frame_area: float, config: NormalizerConfig) -> Optional[np.ndarray]:
    lo, hi = config.paper_aspect_range
    candidates = []
    for c in contours:
        area = cv2.contourArea(c)
        if not config.paper_min_area_ratio * frame_area < area < config.paper_max_area_ratio * frame_area:
            continue
        _, _, w, h = cv2.boundingRect(c)
        if h == 0 or not lo < w / h < hi:
            continue
        candidates.append((area, c))

    if not candidates:
        return None
    return max(candidates, key=lambda t: t[0])[1]


def find_paper_quad(image: RasterImage, config: NormalizerConfig) -> Optional[Quadrilateral]:
    """
    Detect the physical page boundary.

    Returns:
        Ordered corners in full-resolution coordinates, or None
    """
    scale = 1.0
    long_side = max(image.width, image.height)
    gray = to_gray(image.pixels)
    if long_side > config.stitch_work_max_side:
        scale = config.stitch_work_max_side / long_side
        gray = cv2.resize(gray, None, fx=scale, fy=scale, interpolation=cv2.INTER_AREA)

    blurred = cv2.GaussianBlur(gray, (5, 5), 0)
    frame_area = float(gray.shape[0] * gray.shape[1])

    contours = _find_edge_contours(blurred, frame_area * config.paper_min_area_ratio)
    paper = _best_paper_contour(contours, frame_area, config)
    if paper is None:
        return None

    perimeter = cv2.arcLength(paper, True)
    approx = cv2.approxPolyDP(paper, config.paper_approx_epsilon * perimeter, True).reshape(-1, 2)

    if len(approx) < 4:
        return None
    if len(approx) > 4:
        # Over-segmented outline: fall back to the hull's extreme points
        hull = cv2.convexHull(approx).reshape(-1, 2)
        if len(hull) < 4:
            return None
        approx = hull

    quad = order_by_extremes(approx)
    return quad.scaled(scale) if scale != 1.0 else quad


def correct_paper(image: RasterImage, quad: Quadrilateral, config: NormalizerConfig) -> Optional[RasterImage]:
    """
    Warp the page to its own measured size, portrait preferred.

    A landscape page is turned a quarter clockwise by rotating the corner
    order rather than by squeezing it into portrait dimensions.
    """
    if not is_warpable(quad, config.min_quad_area):
        return None

    tl, tr, br, bl = (np.array(p) for p in quad.points)
    width = max(np.linalg.norm(br - bl), np.linalg.norm(tr - tl))
    height = max(np.linalg.norm(tr - br), np.linalg.norm(tl - bl))

    if width < config.paper_min_side or height < config.paper_min_side:
        return None

    if width > height:
        quad = Quadrilateral((quad.bottom_left, quad.top_left, quad.top_right, quad.bottom_right))
        width, height = height, width

    w, h = int(width), int(height)
    dst = np.array([[0, 0], [w - 1, 0], [w - 1, h - 1], [0, h - 1]], dtype=np.float32)
    matrix = cv2.getPerspectiveTransform(quad.as_array(), dst)
    return RasterImage(cv2.warpPerspective(image.pixels, matrix, (w, h)))


def extract_and_correct_paper(image: RasterImage, config: NormalizerConfig) -> Optional[RasterImage]:
    """Find the page boundary and perspective-correct it; None when not found."""
    quad = find_paper_quad(image, config)
    if quad is None:
        return None
    return correct_paper(image, quad, config)


def fallback_process(image: RasterImage, config: NormalizerConfig) -> RasterImage:
    """Cheap path for segments without a detectable boundary: upright, then sharpen."""
    pixels = image.pixels
    if image.width / image.height > config.fallback_rotate_aspect:
        pixels = cv2.rotate(pixels, cv2.ROTATE_90_CLOCKWISE)
    return sharpen(RasterImage(pixels))


def compose_horizontal(images: Sequence[RasterImage], gutter: int, fill: int = 255) -> RasterImage:
    """
    Pad every image to the tallest height and join them left to right.

    Output width is the sum of widths plus (N - 1) gutters.
    """
    if not images:
        raise ValueError("compose_horizontal needs at least one image")

    color = any(img.channels > 1 for img in images)
    arrays = [to_bgr(img.pixels) if color else to_gray(img.pixels) for img in images]

    height = max(a.shape[0] for a in arrays)
    width = sum(a.shape[1] for a in arrays) + gutter * (len(arrays) - 1)
    shape = (height, width, 3) if color else (height, width)

    canvas = np.full(shape, fill, dtype=np.uint8)
    x = 0
    for a in arrays:
        canvas[:a.shape[0], x:x + a.shape[1]] = a
        x += a.shape[1] + gutter

    return RasterImage(canvas)


class SegmentStitcher:
    """
    Stitches multi-part captures of one page.

    A segment that cannot be decoded or processed is logged and skipped;
    the batch only fails when no segment survives.
    """

    def __init__(self, config: NormalizerConfig = None):
        self.config = config or NormalizerConfig()

    def _decode(self, index: int, source: SegmentSource) -> RasterImage:
        if isinstance(source, RasterImage):
            return source
        try:
            if isinstance(source, (bytes, bytearray, memoryview)):
                return decode_image(bytes(source), f"segment {index}")
            if isinstance(source, (str, Path)):
                return load_image(source)
            if isinstance(source, np.ndarray):
                return RasterImage.from_array(source)
        except (ImageProcessingException, ValueError) as e:
            reason = e.detail if isinstance(e, ImageProcessingException) else str(e)
            raise SegmentDecodeException(index, reason) from e

        raise SegmentDecodeException(index, f"unsupported source type {type(source).__name__}")

    def process_segment(self, index: int, source: SegmentSource) -> Segment:
        """
        Decode, boundary-correct (or fall back) and OCR-enhance one segment.

        Returns:
            Segment; segment.ok is False when it has to be skipped
        """
        try:
            raw = self._decode(index, source)
        except SegmentDecodeException as e:
            logger.warning(e.detail)
            return Segment(index=index, error=e.detail)

        segment = Segment(index=index, raw=raw)
        logger.info(f"Processing segment {index} - original size: {raw.width}x{raw.height}")

        try:
            corrected = extract_and_correct_paper(raw, self.config)
        except cv2.error as e:
            logger.warning(f"Paper extraction raised for segment {index}: {e}")
            corrected = None

        try:
            if corrected is None:
                logger.info(f"Paper detection failed for segment {index}, using fallback processing")
                corrected = fallback_process(raw, self.config)
                segment.used_fallback = True
            else:
                logger.info(f"Extracted paper from segment {index}: {corrected.width}x{corrected.height}")

            segment.normalized = enhance_for_ocr(corrected, self.config)
        except cv2.error as e:
            logger.exception(f"Failed to process segment {index}, skipping")
            segment.error = str(e)

        return segment

    def stitch(self, sources: Sequence[SegmentSource], gutter: int = None) -> StitchedImage:
        """
        Normalize and join segments in the given order.

        Args:
            sources: Encoded bytes, file paths, arrays or RasterImages
            gutter: Pixels between segments (defaults to config.stitch_gutter)

        Returns:
            StitchedImage built from every segment that survived

        Raises:
            StitchingException: If no sources are given or every segment fails
        """
        if not sources:
            raise StitchingException("No image segments provided")

        gutter = self.config.stitch_gutter if gutter is None else gutter

        processed: List[RasterImage] = []
        skipped: List[int] = []
        for index, source in enumerate(sources):
            segment = self.process_segment(index, source)
            # Drop the full-resolution buffer as soon as the segment is done
            segment.raw = None
            if segment.ok:
                processed.append(segment.normalized)
            else:
                skipped.append(index)

        if not processed:
            raise StitchingException(f"None of the {len(sources)} segments could be processed")

        logger.info(f"Processed {len(processed)} of {len(sources)} segments, stitching")

        composite = compose_horizontal(processed, gutter)
        return StitchedImage(
            image=composite,
            segment_widths=tuple(img.width for img in processed),
            gutter=gutter,
            skipped=tuple(skipped),
        )

    def encode(self, stitched: StitchedImage) -> bytes:
        """Encode a composite with the configured format and quality."""
        return encode_image(stitched.image, self.config.output_format, self.config.output_quality)
