"""
Shared fixtures: synthetic answer-sheet photos drawn with OpenCV
"""
import cv2
import numpy as np
import pytest

from sheetscan.normalizer import NormalizerConfig, RasterImage


# Wide 1400x1000 sheet: four corner markers plus a vertical cluster near the right edge
SHEET_SIZE = (1400, 1000)
SHEET_CORNERS = [(50, 50), (1350, 50), (1350, 950), (50, 950)]
SHEET_CLUSTER = [(1150, 400), (1160, 500), (1150, 600)]


def draw_markers(width, height, centres, size=30, background=255):
    """White BGR canvas with filled black squares centred on each point."""
    img = np.full((height, width, 3), background, dtype=np.uint8)
    half = size // 2
    for x, y in centres:
        cv2.rectangle(img, (x - half, y - half), (x - half + size - 1, y - half + size - 1), (0, 0, 0), -1)
    return img


def make_sheet(with_cluster=True):
    width, height = SHEET_SIZE
    centres = SHEET_CORNERS + (SHEET_CLUSTER if with_cluster else [])
    return draw_markers(width, height, centres)


def make_grid_sheet(orientation_at=(650, 100)):
    """
    1400x1000 grid layout: two rows of four 16px scan markers and one
    10px orientation marker (omitted when orientation_at is None).
    """
    img = np.full((1000, 1400, 3), 255, dtype=np.uint8)
    for x in (200, 500, 800, 1100):
        for y in (200, 700):
            cv2.rectangle(img, (x, y), (x + 15, y + 15), (0, 0, 0), -1)
    if orientation_at is not None:
        ox, oy = orientation_at
        cv2.rectangle(img, (ox, oy), (ox + 9, oy + 9), (0, 0, 0), -1)
    return img


def encode_png(array):
    ok, buffer = cv2.imencode(".png", array)
    assert ok
    return buffer.tobytes()


def dark_pixels(gray, x0, x1, y0, y1):
    """Count pixels below mid-grey inside a window."""
    return int((gray[y0:y1, x0:x1] < 128).sum())


@pytest.fixture
def config():
    """Default config with enhancement off so marker pixels stay dark"""
    return NormalizerConfig(enhance_scan_look=False)


@pytest.fixture
def sheet():
    return RasterImage(make_sheet())


@pytest.fixture
def blank():
    return RasterImage(np.full((1000, 1400, 3), 255, dtype=np.uint8))
