"""
Normalizer Configuration
One immutable value carrying every tunable of the pipeline
"""
from dataclasses import dataclass, replace
from typing import Tuple

from ..core.constants import ClusterSearch, OutputFormat, PaperSizes, Strategy
from ..core.exceptions import InvalidConfigException


@dataclass(frozen=True)
class NormalizerConfig:
    """Configuration for all normalization stages"""
    strategy: str = Strategy.CORNER_CLUSTER.value

    # Marker detection (areas in full-resolution pixel^2)
    marker_min_area: float = 100.0
    marker_max_area: float = 5000.0
    blur_kernel: int = 5
    binary_threshold: int = 127
    use_otsu: bool = False

    # Detection runs on a downscaled copy for large photos
    detection_scale: float = 0.25
    detection_downscale_above: int = 2000

    # Orientation cluster (full-resolution pixels)
    cluster_max_cross_spread: float = 150.0
    cluster_max_along_spread: float = 600.0
    cluster_search: str = ClusterSearch.BRUTE_FORCE.value

    # Canonical frame, landscape
    page_long_side: int = PaperSizes.A3[0]
    page_short_side: int = PaperSizes.A3[1]
    min_quad_area: float = 100.0

    # Scan-look enhancement
    enhance_scan_look: bool = True
    clahe_clip_limit: float = 2.0
    clahe_tile_grid: int = 8
    unsharp_sigma: float = 3.0
    unsharp_amount: float = 1.5
    adaptive_block_size: int = 25
    adaptive_c: float = 10.0

    # Multi-segment stitching
    stitch_gutter: int = 20
    stitch_work_max_side: int = 1500
    paper_min_area_ratio: float = 0.1
    paper_max_area_ratio: float = 0.95
    paper_aspect_range: Tuple[float, float] = (0.3, 3.0)
    paper_approx_epsilon: float = 0.015
    paper_min_side: int = 100
    fallback_rotate_aspect: float = 1.3
    ocr_block_size: int = 21
    ocr_c: float = 8.0

    # Grid-of-scan-areas layout (areas as a ratio of the frame)
    grid_scan_area_ratio: Tuple[float, float] = (0.00014, 0.00025)
    grid_orientation_area_ratio: Tuple[float, float] = (0.00005, 0.0001)
    grid_approx_epsilon: float = 0.05
    grid_min_gap: int = 50
    grid_page_correction: bool = False
    grid_enhance: bool = False

    # Output encoding
    output_format: str = OutputFormat.WEBP.value
    output_quality: int = 90

    @property
    def canonical_size(self) -> Tuple[int, int]:
        """(width, height) of the canonical frame"""
        return self.page_long_side, self.page_short_side

    def with_overrides(self, **kwargs) -> "NormalizerConfig":
        """Return a validated copy with some fields replaced."""
        return replace(self, **kwargs).validate()

    def validate(self) -> "NormalizerConfig":
        """
        Check value consistency.

        Returns:
            self, to allow chaining

        Raises:
            InvalidConfigException: on the first inconsistent field
        """
        if self.strategy not in {s.value for s in Strategy}:
            raise InvalidConfigException("strategy", f"unknown strategy '{self.strategy}'")
        if self.cluster_search not in {c.value for c in ClusterSearch}:
            raise InvalidConfigException("cluster_search", f"unknown search '{self.cluster_search}'")
        if self.output_format not in {f.value for f in OutputFormat}:
            raise InvalidConfigException("output_format", f"unsupported format '{self.output_format}'")
        if not 0 <= self.marker_min_area <= self.marker_max_area:
            raise InvalidConfigException("marker_min_area", "must be within [0, marker_max_area]")
        if not 0 < self.detection_scale <= 1:
            raise InvalidConfigException("detection_scale", "must be in (0, 1]")
        if self.page_long_side < self.page_short_side or self.page_short_side <= 0:
            raise InvalidConfigException("page_long_side", "long side must be >= short side > 0")
        if self.cluster_max_cross_spread <= 0 or self.cluster_max_along_spread <= 0:
            raise InvalidConfigException("cluster_max_cross_spread", "spreads must be positive")
        for name in ("blur_kernel", "adaptive_block_size", "ocr_block_size"):
            value = getattr(self, name)
            if value < 3 or value % 2 == 0:
                raise InvalidConfigException(name, "must be an odd number >= 3")
        if self.stitch_gutter < 0:
            raise InvalidConfigException("stitch_gutter", "must not be negative")
        if not 0 <= self.output_quality <= 100:
            raise InvalidConfigException("output_quality", "must be within [0, 100]")
        return self

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "NormalizerConfig":
        """
        Build a config from application settings.

        Args:
            settings: sheetscan.config.Settings instance
            **kwargs: Additional NormalizerConfig overrides
        """
        values = dict(
            strategy=settings.NORMALIZER_STRATEGY,
            detection_scale=settings.DETECTION_SCALE,
            detection_downscale_above=settings.DETECTION_DOWNSCALE_ABOVE,
            enhance_scan_look=settings.ENHANCE_SCAN_LOOK,
            output_format=settings.OUTPUT_FORMAT,
            output_quality=settings.OUTPUT_QUALITY,
            stitch_gutter=settings.STITCH_GUTTER,
        )
        values.update(kwargs)
        return cls(**values).validate()
