"""
Normalizer Processor Module
Main entry point turning a raw answer-sheet photo into a canonical page
"""
from typing import Union
import logging

import cv2
import numpy as np

from ..core.constants import FailureReason, Strategy, Suggestions
from ..core.exceptions import ImageProcessingException
from .base import DocumentNormalizer, NormalizationResult
from .config import NormalizerConfig
from .enhance import enhance_to_scanned_look
from .grid import GridMarkerNormalizer
from .markers import detect_markers
from .orientation import ClusterFinder, create_cluster_finder, resolve_orientation, resolve_page_corners
from .perspective import warp_to_canonical
from .types import RasterImage

logger = logging.getLogger(__name__)


class CornerClusterNormalizer(DocumentNormalizer):
    """
    Normalizer for sheets with four corner markers and a three-marker
    orientation cluster along one short edge.

    Orchestrates the full pipeline:
    1. Marker detection
    2. Page corners (minimum-area rectangle)
    3. Orientation (cluster, or default ordering)
    4. Perspective warp to the canonical frame
    5. Scan-look enhancement
    """

    def __init__(self, config: NormalizerConfig = None, cluster_finder: ClusterFinder = None):
        super().__init__(config)
        self.cluster_finder = cluster_finder or create_cluster_finder(self.config)

    def normalize(self, image: RasterImage, image_name: str = "") -> NormalizationResult:
        """
        Normalize a single photo.

        Args:
            image: Photo (BGR or grayscale)
            image_name: Optional name for logging

        Returns:
            NormalizationResult with the canonical page on success

        Raises:
            ImageProcessingException: On unexpected OpenCV faults
        """
        cfg = self.config
        try:
            # 1. Detect
            markers = detect_markers(image, cfg)
            if len(markers) < 4:
                logger.info(f"{image_name}: fewer than 4 markers found ({len(markers)})")
                return NormalizationResult.failed(
                    FailureReason.INSUFFICIENT_MARKERS,
                    f"Fewer than 4 marker points found: {len(markers)}",
                    Suggestions.RETAKE_MARKERS,
                    image_name=image_name,
                    marker_count=len(markers),
                )

            # 2-3. Resolve corners and orientation
            raw_corners = resolve_page_corners(markers)
            orientation = resolve_orientation(
                raw_corners, markers, (image.width, image.height), cfg, self.cluster_finder
            )

            # 4. Normalize
            warped = warp_to_canonical(image, orientation.corners, cfg)
            if warped is None:
                logger.info(f"{image_name}: degenerate page geometry {orientation.corners.points}")
                return NormalizationResult.failed(
                    FailureReason.GEOMETRY_DEGENERATE,
                    "Resolved page corners have near-zero or inverted area",
                    Suggestions.RETAKE_GEOMETRY,
                    image_name=image_name,
                    corners=orientation.corners,
                    marker_count=len(markers),
                )

            # 5. Enhance
            output = enhance_to_scanned_look(warped, cfg) if cfg.enhance_scan_look else warped

        except cv2.error as e:
            logger.exception(f"Unexpected error normalizing {image_name}")
            raise ImageProcessingException(image_name or "<image>", str(e)) from e

        logger.info(
            f"Normalized {image_name}: markers={len(markers)}, "
            f"default_orientation={orientation.used_default}, "
            f"size={output.width}x{output.height}"
        )

        return NormalizationResult(
            success=True,
            image=output,
            image_name=image_name,
            corners=orientation.corners,
            used_default_orientation=orientation.used_default,
            failure=FailureReason.AMBIGUOUS_ORIENTATION if orientation.used_default else None,
            marker_count=len(markers),
        )


def create_normalizer(config: NormalizerConfig = None, **kwargs) -> DocumentNormalizer:
    """
    Factory function to create the normalizer for the configured layout.

    Args:
        config: Base configuration (defaults to NormalizerConfig())
        **kwargs: Additional NormalizerConfig overrides

    Returns:
        CornerClusterNormalizer or GridMarkerNormalizer
    """
    config = config or NormalizerConfig()
    if kwargs:
        config = config.with_overrides(**kwargs)

    if config.strategy == Strategy.GRID.value:
        return GridMarkerNormalizer(config)
    return CornerClusterNormalizer(config)


def normalize_image(
    image: Union[RasterImage, np.ndarray],
    config: NormalizerConfig = None
) -> NormalizationResult:
    """Convenience wrapper: normalize one in-memory image."""
    if not isinstance(image, RasterImage):
        image = RasterImage.from_array(image)
    return create_normalizer(config).normalize(image)
