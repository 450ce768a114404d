"""
Normalizer Module
Turns photographed answer sheets into canonical, OCR-ready pages

Usage:
    from sheetscan.normalizer import NormalizerConfig, create_normalizer, load_image

    # Create normalizer (corner markers + orientation cluster layout)
    normalizer = create_normalizer(NormalizerConfig())

    # Normalize single image
    result = normalizer.normalize(load_image("path/to/photo.jpg"))
    if result.success:
        data = encode_image(result.image, "webp", 90)

    # Stitch segments of one page
    stitched = SegmentStitcher(config).stitch([open(p, "rb").read() for p in paths])
"""

from .types import (
    RasterImage,
    MarkerPoint,
    MarkerCluster,
    Quadrilateral,
    HomographyTransform,
    Segment,
    StitchedImage,
)

from .config import NormalizerConfig

from .image_io import (
    decode_image,
    encode_image,
    load_image,
    save_image,
)

from .markers import (
    detect_markers,
    markers_from_contours,
)

from .orientation import (
    ClusterFinder,
    BruteForceClusterFinder,
    GridClusterFinder,
    OrientationResult,
    resolve_page_corners,
    resolve_orientation,
    order_corners_by_default,
)

from .perspective import (
    compute_homography,
    warp_to_canonical,
)

from .enhance import (
    enhance_to_scanned_look,
    enhance_for_ocr,
)

from .stitching import (
    SegmentStitcher,
    compose_horizontal,
)

from .base import (
    DocumentNormalizer,
    NormalizationResult,
)

from .grid import GridMarkerNormalizer

from .processor import (
    CornerClusterNormalizer,
    create_normalizer,
    normalize_image,
)

__all__ = [
    # Types
    "RasterImage",
    "MarkerPoint",
    "MarkerCluster",
    "Quadrilateral",
    "HomographyTransform",
    "Segment",
    "StitchedImage",
    # Config
    "NormalizerConfig",
    # I/O
    "decode_image",
    "encode_image",
    "load_image",
    "save_image",
    # Markers
    "detect_markers",
    "markers_from_contours",
    # Corners & orientation
    "ClusterFinder",
    "BruteForceClusterFinder",
    "GridClusterFinder",
    "OrientationResult",
    "resolve_page_corners",
    "resolve_orientation",
    "order_corners_by_default",
    # Perspective
    "compute_homography",
    "warp_to_canonical",
    # Enhancement
    "enhance_to_scanned_look",
    "enhance_for_ocr",
    # Stitching
    "SegmentStitcher",
    "compose_horizontal",
    # Normalizers
    "DocumentNormalizer",
    "NormalizationResult",
    "CornerClusterNormalizer",
    "GridMarkerNormalizer",
    "create_normalizer",
    "normalize_image",
]
