# Core package
from .constants import (
    FailureReason,
    Strategy,
    ClusterSearch,
    OutputFormat,
    Suggestions,
    PaperSizes,
    IMAGE_EXTENSIONS,
)
from .exceptions import (
    SheetScanException,
    ImageProcessingException,
    SegmentDecodeException,
    StitchingException,
    InsufficientMarkersException,
    GeometryDegenerateException,
    InvalidConfigException,
)
from .logger import logger, setup_logger, service_logger

__all__ = [
    # Constants
    "FailureReason",
    "Strategy",
    "ClusterSearch",
    "OutputFormat",
    "Suggestions",
    "PaperSizes",
    "IMAGE_EXTENSIONS",
    # Exceptions
    "SheetScanException",
    "ImageProcessingException",
    "SegmentDecodeException",
    "StitchingException",
    "InsufficientMarkersException",
    "GeometryDegenerateException",
    "InvalidConfigException",
    # Logging
    "logger",
    "setup_logger",
    "service_logger",
]
