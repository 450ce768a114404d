"""
Normalizer contract shared by the marker-layout strategies
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

from ..core.constants import FailureReason
from .config import NormalizerConfig
from .image_io import load_image
from .types import Quadrilateral, RasterImage

logger = logging.getLogger(__name__)


@dataclass
class NormalizationResult:
    """Outcome of normalizing one photo"""
    success: bool = True
    image: Optional[RasterImage] = None
    image_name: str = ""
    corners: Optional[Quadrilateral] = None
    used_default_orientation: bool = False
    marker_count: int = 0
    failure: Optional[FailureReason] = None
    error: Optional[str] = None
    suggestion: Optional[str] = None

    @classmethod
    def failed(
        cls,
        failure: FailureReason,
        error: str,
        suggestion: str = None,
        **kwargs
    ) -> "NormalizationResult":
        return cls(success=False, failure=failure, error=error, suggestion=suggestion, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary (pixels are left out)"""
        result = {
            "success": self.success,
            "image_name": self.image_name,
            "used_default_orientation": self.used_default_orientation,
            "marker_count": self.marker_count,
            "failure": self.failure.value if self.failure else None,
            "error": self.error,
            "suggestion": self.suggestion,
            "corners": [list(p) for p in self.corners.points] if self.corners else None,
        }
        if self.image is not None:
            result["width"] = self.image.width
            result["height"] = self.image.height
        # Remove None values
        return {k: v for k, v in result.items() if v is not None}


class DocumentNormalizer(ABC):
    """
    Turns one raw answer-sheet photo into a normalized page.

    Implementations never raise for expected "not found" conditions; they
    return a failed NormalizationResult instead. Decode and I/O faults
    propagate as ImageProcessingException.
    """

    def __init__(self, config: NormalizerConfig = None):
        self.config = (config or NormalizerConfig()).validate()

    @abstractmethod
    def normalize(self, image: RasterImage, image_name: str = "") -> NormalizationResult:
        """Normalize a decoded image."""

    def normalize_file(self, image_path: Union[str, Path]) -> NormalizationResult:
        """
        Load and normalize an image file.

        Raises:
            ImageProcessingException: If the file cannot be read or decoded
        """
        path = Path(image_path)
        image = load_image(path)
        return self.normalize(image, path.stem)
