"""
Custom exceptions for the sheet normalizer
"""
from .constants import FailureReason


class SheetScanException(Exception):
    """Base exception for all normalizer errors"""

    def __init__(self, detail: str, error_code: str = None):
        super().__init__(detail)
        self.detail = detail
        self.error_code = error_code


class ImageProcessingException(SheetScanException):
    """Unexpected decode or I/O fault"""

    def __init__(self, source: str, reason: str):
        super().__init__(
            detail=f"Cannot process image '{source}': {reason}",
            error_code=FailureReason.IMAGE_PROCESSING_ERROR.value
        )
        self.source = source


class SegmentDecodeException(SheetScanException):
    """One segment of a stitch batch is unreadable"""

    def __init__(self, index: int, reason: str = None):
        detail = f"Segment {index} could not be decoded"
        if reason:
            detail += f": {reason}"
        super().__init__(
            detail=detail,
            error_code=FailureReason.SEGMENT_DECODE_FAILURE.value
        )
        self.index = index


class StitchingException(SheetScanException):
    """No segment of a stitch batch could be processed"""

    def __init__(self, message: str = "No images could be processed successfully"):
        super().__init__(detail=message, error_code="STITCHING_FAILED")


class InsufficientMarkersException(SheetScanException):
    """Fewer than 4 markers found"""

    def __init__(self, source: str, found: int):
        super().__init__(
            detail=f"Only {found} markers found in '{source}', at least 4 required",
            error_code=FailureReason.INSUFFICIENT_MARKERS.value
        )
        self.found = found


class GeometryDegenerateException(SheetScanException):
    """Resolved quadrilateral cannot be warped"""

    def __init__(self, source: str):
        super().__init__(
            detail=f"Page outline in '{source}' has near-zero or inverted area",
            error_code=FailureReason.GEOMETRY_DEGENERATE.value
        )


class InvalidConfigException(SheetScanException):
    """Normalizer configuration is inconsistent"""

    def __init__(self, field: str, reason: str):
        super().__init__(
            detail=f"Invalid value for '{field}': {reason}",
            error_code="INVALID_CONFIG"
        )
        self.field = field
