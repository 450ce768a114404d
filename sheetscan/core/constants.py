"""
Normalizer constants
"""
from enum import Enum


class FailureReason(str, Enum):
    """Why a page could not be (fully) normalized"""
    INSUFFICIENT_MARKERS = "INSUFFICIENT_MARKERS"
    AMBIGUOUS_ORIENTATION = "AMBIGUOUS_ORIENTATION"
    GEOMETRY_DEGENERATE = "GEOMETRY_DEGENERATE"
    SEGMENT_DECODE_FAILURE = "SEGMENT_DECODE_FAILURE"
    IMAGE_PROCESSING_ERROR = "IMAGE_PROCESSING_ERROR"


class Strategy(str, Enum):
    """Physical marker layouts understood by the normalizer"""
    CORNER_CLUSTER = "corner_cluster"
    GRID = "grid"


class ClusterSearch(str, Enum):
    """Orientation cluster search implementations"""
    BRUTE_FORCE = "brute_force"
    GRID = "grid"


class OutputFormat(str, Enum):
    """Supported output encodings"""
    WEBP = "webp"
    PNG = "png"
    JPEG = "jpg"


# Suggestions returned to the caller alongside a failed result
class Suggestions:
    """Human readable hints for failed normalizations"""

    RETAKE_MARKERS = "Fewer than 4 alignment markers were found. Retake the photo with all sheet corners visible."
    RETAKE_GEOMETRY = "The detected page outline is degenerate. Retake the photo from straight above the sheet."
    CHECK_FILE = "Ensure the file exists and is a valid image format."
    CHECK_IMAGE = "Check image quality or contact support."


# Paper sizes in pixels at 300 DPI (long side, short side)
class PaperSizes:
    """Reference page dimensions"""
    A3 = (3508, 2480)
    A4 = (2480, 1754)


# Image files accepted by the batch helpers
IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "bmp", "webp", "tif", "tiff"}
