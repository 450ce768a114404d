"""
Unit tests for multi-segment stitching
"""
import cv2
import numpy as np
import pytest

from sheetscan.core import StitchingException
from sheetscan.normalizer import NormalizerConfig, RasterImage, SegmentStitcher, compose_horizontal, decode_image
from sheetscan.normalizer import stitching
from sheetscan.normalizer.stitching import find_paper_quad, order_by_extremes

from conftest import encode_png


def plain(width, height, value=200):
    return np.full((height, width, 3), value, dtype=np.uint8)


def paper_on_desk(width=600, height=800, box=(100, 100, 500, 700)):
    """White sheet on a dark background"""
    img = plain(width, height, 50)
    x0, y0, x1, y1 = box
    img[y0:y1, x0:x1] = 255
    return img


class TestComposeHorizontal:
    """Left-to-right composition"""

    def test_width_formula(self):
        images = [RasterImage(np.zeros((h, w), dtype=np.uint8)) for w, h in [(100, 50), (200, 80), (50, 30)]]
        result = compose_horizontal(images, gutter=20)
        assert result.width == 100 + 200 + 50 + 2 * 20
        assert result.height == 80

    def test_padding_is_white(self):
        images = [RasterImage(np.zeros((50, 100), dtype=np.uint8)), RasterImage(np.zeros((80, 100), dtype=np.uint8))]
        pixels = compose_horizontal(images, gutter=10).pixels
        assert pixels[70, 50] == 255       # below the shorter image
        assert pixels[10, 105] == 255      # gutter
        assert pixels[70, 150] == 0

    def test_mixed_channels_promoted_to_colour(self):
        images = [RasterImage(np.zeros((10, 10), dtype=np.uint8)), RasterImage(np.zeros((10, 10, 3), dtype=np.uint8))]
        assert compose_horizontal(images, gutter=0).shape == (10, 20, 3)

    def test_empty_input(self):
        with pytest.raises(ValueError):
            compose_horizontal([], gutter=20)


class TestPaperDetection:
    """Page boundary detection and correction"""

    def test_order_by_extremes(self):
        quad = order_by_extremes(np.array([[500, 700], [100, 100], [100, 700], [500, 100]]))
        assert quad.points == ((100, 100), (500, 100), (500, 700), (100, 700))

    def test_finds_sheet_on_dark_background(self):
        quad = find_paper_quad(RasterImage(paper_on_desk()), NormalizerConfig())
        assert quad is not None
        for (x, y), (ex, ey) in zip(quad.points, [(100, 100), (499, 100), (499, 699), (100, 699)]):
            assert abs(x - ex) <= 5 and abs(y - ey) <= 5

    def test_no_boundary_on_plain_image(self):
        assert find_paper_quad(RasterImage(plain(600, 800)), NormalizerConfig()) is None


class TestSegmentStitcher:
    """SegmentStitcher end to end"""

    def test_detected_paper_is_corrected(self):
        segment = SegmentStitcher().process_segment(0, encode_png(paper_on_desk()))
        assert segment.ok and not segment.used_fallback
        assert abs(segment.normalized.width - 400) <= 10
        assert abs(segment.normalized.height - 600) <= 10

    def test_landscape_paper_turned_portrait(self):
        """A landscape sheet is rotated, not squeezed"""
        img = paper_on_desk(800, 600, (100, 100, 700, 500))
        segment = SegmentStitcher().process_segment(0, encode_png(img))
        assert not segment.used_fallback
        assert abs(segment.normalized.width - 400) <= 10
        assert abs(segment.normalized.height - 600) <= 10

    def test_fallback_rotates_wide_segment(self):
        segment = SegmentStitcher().process_segment(0, encode_png(plain(800, 500)))
        assert segment.used_fallback
        assert segment.normalized.shape == (800, 500)

    def test_fallback_keeps_upright_segment(self):
        segment = SegmentStitcher().process_segment(0, encode_png(plain(400, 600)))
        assert segment.used_fallback
        assert segment.normalized.shape == (600, 400)

    def test_stitch_width(self):
        stitcher = SegmentStitcher(NormalizerConfig(stitch_gutter=20))
        stitched = stitcher.stitch([encode_png(plain(400, 600)), encode_png(plain(800, 500))])
        assert stitched.segment_widths == (400, 500)
        assert stitched.width == 400 + 500 + 20
        assert stitched.height == 800
        assert stitched.skipped == ()

    def test_gutter_override(self):
        stitched = SegmentStitcher().stitch([plain(400, 600), plain(400, 600)], gutter=0)
        assert stitched.width == 800

    def test_corrupt_segment_skipped(self):
        """One unreadable segment does not fail the batch"""
        sources = [encode_png(plain(400, 600)), b"not an image", encode_png(plain(300, 600))]
        stitched = SegmentStitcher().stitch(sources)
        assert stitched.segment_count == 2
        assert stitched.skipped == (1,)
        assert stitched.width == 400 + 300 + 20

    def test_unsupported_source_skipped(self):
        segment = SegmentStitcher().process_segment(3, 12345)
        assert not segment.ok
        assert "Segment 3" in segment.error

    def test_all_segments_fail(self):
        with pytest.raises(StitchingException):
            SegmentStitcher().stitch([b"", b"garbage"])

    def test_no_segments(self):
        with pytest.raises(StitchingException):
            SegmentStitcher().stitch([])

    def test_encode(self):
        stitcher = SegmentStitcher(NormalizerConfig(output_format="png"))
        stitched = stitcher.stitch([plain(300, 400)])
        decoded = decode_image(stitcher.encode(stitched))
        assert (decoded.width, decoded.height) == (300, 400)

    def test_boundary_error_uses_fallback(self, monkeypatch):
        """An OpenCV fault while finding the paper falls back instead of skipping"""
        def broken(image, config):
            raise cv2.error("contour failure")

        monkeypatch.setattr(stitching, "extract_and_correct_paper", broken)
        segment = SegmentStitcher().process_segment(0, encode_png(plain(800, 500)))
        assert segment.ok
        assert segment.used_fallback
        assert segment.normalized.shape == (800, 500)
