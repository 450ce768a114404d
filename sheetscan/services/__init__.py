# Services package
from .normalization_service import NormalizationService

__all__ = ["NormalizationService"]
