"""
Unit tests for the grid marker layout
"""
import cv2
import numpy as np
import pytest

from sheetscan.core import FailureReason, ImageProcessingException
from sheetscan.normalizer import GridMarkerNormalizer, NormalizerConfig, RasterImage, create_normalizer
from sheetscan.normalizer import grid
from sheetscan.normalizer.grid import average_spacing, closest_index, column_quads, detect_grid_markers, needs_flip

from conftest import make_grid_sheet


def square(x, y, side=16):
    return np.array([[x, y], [x + side, y], [x + side, y + side], [x, y + side]])


GRID = [square(x, y) for x in (200, 500, 800, 1100) for y in (200, 700)]


@pytest.fixture
def grid_config():
    return NormalizerConfig(strategy="grid")


class TestSpacing:
    """Grid spacing helpers"""

    def test_average_spacing_ignores_small_gaps(self):
        assert average_spacing([200, 201, 500, 502, 800, 799]) == pytest.approx(298)

    def test_average_spacing_no_gaps(self):
        assert average_spacing([10, 12, 15]) == 0.0

    def test_closest_index(self):
        assert closest_index((490, 210), [(200, 200), (500, 200), (800, 200)]) == 1


class TestColumnQuads:
    """Column prediction from scan-area markers"""

    def test_column_count_and_corners(self):
        quads = column_quads(GRID, 50)
        assert len(quads) == 3
        first = quads[0]
        assert first.points == ((200, 200), (516, 200), (516, 716), (200, 716))
        assert quads[2].top_left == (800, 200)

    def test_needs_spread_in_both_axes(self):
        row = [square(x, 200) for x in (200, 500, 800, 1100)]
        assert column_quads(row, 50) == []


class TestFlip:
    """Orientation marker position"""

    def test_marker_above_grid(self):
        assert not needs_flip(square(650, 100, 10), GRID)

    def test_marker_below_grid(self):
        assert needs_flip(square(650, 850, 10), GRID)

    def test_missing_marker(self):
        assert not needs_flip(None, GRID)


class TestDetectGridMarkers:
    """Marker detection by area band"""

    def test_detects_both_bands(self, grid_config):
        scan_areas, orientation = detect_grid_markers(RasterImage(make_grid_sheet()), grid_config)
        assert len(scan_areas) == 8
        assert orientation is not None
        assert 645 <= orientation[:, 0].mean() <= 665

    def test_missing_orientation_marker(self, grid_config):
        scan_areas, orientation = detect_grid_markers(RasterImage(make_grid_sheet(None)), grid_config)
        assert len(scan_areas) == 8
        assert orientation is None


class TestGridMarkerNormalizer:
    """GridMarkerNormalizer end to end"""

    def test_factory_selects_grid(self, grid_config):
        assert isinstance(create_normalizer(grid_config), GridMarkerNormalizer)

    def test_columns_stacked(self, grid_config):
        result = GridMarkerNormalizer(grid_config).normalize(RasterImage(make_grid_sheet()), "grid")
        assert result.success
        assert result.marker_count == 8
        assert not result.used_default_orientation
        column_height = result.image.height // 3
        assert result.image.height == column_height * 3
        assert result.image.width < result.image.height

    def test_upside_down_sheet_flipped(self, grid_config):
        """Columns are identical; only the orientation marker moved below the grid"""
        normalizer = GridMarkerNormalizer(grid_config)
        upright = normalizer.normalize(RasterImage(make_grid_sheet((650, 100))))
        flipped = normalizer.normalize(RasterImage(make_grid_sheet((650, 850))))
        assert np.array_equal(flipped.image.pixels, cv2.rotate(upright.image.pixels, cv2.ROTATE_180))

    def test_no_orientation_marker_is_default(self, grid_config):
        result = GridMarkerNormalizer(grid_config).normalize(RasterImage(make_grid_sheet(None)))
        assert result.success
        assert result.used_default_orientation

    def test_too_few_scan_areas(self, grid_config, blank):
        result = GridMarkerNormalizer(grid_config).normalize(blank, "blank")
        assert not result.success
        assert result.failure == FailureReason.INSUFFICIENT_MARKERS
        assert result.image is None

    def test_gentle_enhancement_option(self, grid_config):
        config = grid_config.with_overrides(grid_enhance=True)
        result = GridMarkerNormalizer(config).normalize(RasterImage(make_grid_sheet()))
        assert result.success

    def test_opencv_fault_raised_as_processing_error(self, grid_config, monkeypatch):
        def broken(image, config):
            raise cv2.error("canny failure")

        monkeypatch.setattr(grid, "detect_grid_markers", broken)
        with pytest.raises(ImageProcessingException) as exc_info:
            GridMarkerNormalizer(grid_config).normalize(RasterImage(make_grid_sheet()), "sheet-7")
        assert exc_info.value.error_code == FailureReason.IMAGE_PROCESSING_ERROR.value
        assert "sheet-7" in exc_info.value.detail
