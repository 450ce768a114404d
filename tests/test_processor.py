"""
Unit tests for the corner-cluster normalizer
"""
import cv2
import numpy as np
import pytest

from sheetscan.core import FailureReason, ImageProcessingException, InvalidConfigException
from sheetscan.normalizer import (
    BruteForceClusterFinder,
    CornerClusterNormalizer,
    NormalizationResult,
    NormalizerConfig,
    RasterImage,
    create_normalizer,
    normalize_image,
)

from conftest import SHEET_CORNERS, dark_pixels, draw_markers, make_sheet


def cluster_side(result):
    """'right' or 'left': which half of the canonical page holds the cluster"""
    gray = result.image.pixels if result.image.channels == 1 else result.image.pixels[:, :, 0]
    right = dark_pixels(gray, 2700, 3300, 800, 1700)
    left = dark_pixels(gray, 200, 800, 800, 1700)
    assert right != left
    return "right" if right > left else "left"


class TestCornerClusterNormalizer:
    """Full pipeline on synthetic sheets"""

    def test_upright_sheet(self, sheet, config):
        result = CornerClusterNormalizer(config).normalize(sheet, "upright")
        assert result.success
        assert result.image.shape == (2480, 3508, 3)
        assert result.marker_count == 7
        assert not result.used_default_orientation
        assert result.failure is None
        assert cluster_side(result) == "right"

    def test_upside_down_sheet(self, config):
        image = RasterImage(cv2.rotate(make_sheet(), cv2.ROTATE_180))
        result = CornerClusterNormalizer(config).normalize(image)
        assert result.success
        assert cluster_side(result) == "right"

    @pytest.mark.parametrize("rotation", [cv2.ROTATE_90_CLOCKWISE, cv2.ROTATE_90_COUNTERCLOCKWISE])
    def test_portrait_photo(self, config, rotation):
        image = RasterImage(cv2.rotate(make_sheet(), rotation))
        result = CornerClusterNormalizer(config).normalize(image)
        assert result.success
        assert result.image.shape[:2] == (2480, 3508)
        assert cluster_side(result) == "right"

    def test_scan_look_enabled(self, sheet):
        result = CornerClusterNormalizer(NormalizerConfig()).normalize(sheet)
        assert result.success
        assert result.image.shape == (2480, 3508)
        assert set(np.unique(result.image.pixels)) <= {0, 255}

    def test_missing_cluster_is_ambiguous_success(self, config):
        result = CornerClusterNormalizer(config).normalize(RasterImage(make_sheet(with_cluster=False)))
        assert result.success
        assert result.used_default_orientation
        assert result.failure == FailureReason.AMBIGUOUS_ORIENTATION
        assert result.image is not None

    def test_blank_image(self, blank, config):
        result = CornerClusterNormalizer(config).normalize(blank, "blank")
        assert not result.success
        assert result.failure == FailureReason.INSUFFICIENT_MARKERS
        assert result.marker_count == 0
        assert result.image is None
        assert result.suggestion

    def test_three_markers(self, config):
        image = RasterImage(draw_markers(1400, 1000, SHEET_CORNERS[:3]))
        result = CornerClusterNormalizer(config).normalize(image)
        assert result.failure == FailureReason.INSUFFICIENT_MARKERS
        assert result.marker_count == 3

    def test_collinear_markers(self, config):
        image = RasterImage(draw_markers(1400, 1000, [(100, 500), (400, 500), (700, 500), (1000, 500)]))
        result = CornerClusterNormalizer(config).normalize(image)
        assert not result.success
        assert result.failure == FailureReason.GEOMETRY_DEGENERATE
        assert result.image is None

    def test_input_untouched(self, sheet, config):
        before = sheet.pixels.copy()
        CornerClusterNormalizer(config).normalize(sheet)
        assert np.array_equal(sheet.pixels, before)

    def test_custom_cluster_finder(self, sheet, config):
        finder = BruteForceClusterFinder(max_cross_spread=5, max_along_spread=600)
        result = CornerClusterNormalizer(config, cluster_finder=finder).normalize(sheet)
        assert result.used_default_orientation

    def test_normalize_file(self, tmp_path, config):
        path = tmp_path / "sheet.png"
        cv2.imwrite(str(path), make_sheet())
        result = CornerClusterNormalizer(config).normalize_file(path)
        assert result.success
        assert result.image_name == "sheet"

    def test_normalize_missing_file(self, tmp_path, config):
        with pytest.raises(ImageProcessingException):
            CornerClusterNormalizer(config).normalize_file(tmp_path / "missing.png")


class TestFactory:
    """create_normalizer / normalize_image"""

    def test_default_strategy(self):
        assert isinstance(create_normalizer(), CornerClusterNormalizer)

    def test_overrides_validated(self):
        with pytest.raises(InvalidConfigException):
            create_normalizer(NormalizerConfig(), strategy="hexagon")

    def test_normalize_image_accepts_array(self, config):
        result = normalize_image(make_sheet(), config)
        assert result.success


class TestNormalizationResult:
    """Result serialization"""

    def test_to_dict_success(self, sheet, config):
        data = CornerClusterNormalizer(config).normalize(sheet, "p1").to_dict()
        assert data["success"] is True
        assert data["width"] == 3508 and data["height"] == 2480
        assert len(data["corners"]) == 4
        assert "failure" not in data

    def test_to_dict_failure(self):
        data = NormalizationResult.failed(FailureReason.INSUFFICIENT_MARKERS, "none").to_dict()
        assert data["failure"] == "INSUFFICIENT_MARKERS"
        assert "width" not in data
