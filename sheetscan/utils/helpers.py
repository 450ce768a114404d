"""
Utility functions for the application
"""
import uuid
import logging
from pathlib import Path
from typing import List, Union

from ..core.constants import IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)


def ensure_directory(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, create if not"""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_file_extension(filename: Union[str, Path]) -> str:
    """Get file extension without dot"""
    return Path(filename).suffix.lstrip(".")


def is_valid_image(filename: Union[str, Path]) -> bool:
    """Check if file has a supported image extension"""
    return get_file_extension(filename).lower() in IMAGE_EXTENSIONS


def safe_filename(filename: str) -> str:
    """Make filename safe for filesystem"""
    unsafe_chars = '<>:"/\\|?*'
    for char in unsafe_chars:
        filename = filename.replace(char, "_")
    return filename


def unique_output_name(extension: str, suffix: str = "") -> str:
    """Generate an opaque output file name, e.g. '3f2c..._stitched.webp'"""
    name = str(uuid.uuid4())
    if suffix:
        name = f"{name}_{suffix}"
    return f"{name}.{extension.lstrip('.')}"


def list_images(directory: Union[str, Path], recursive: bool = False) -> List[Path]:
    """List image files in a directory, sorted case-insensitively by name"""
    directory = Path(directory)
    if not directory.exists():
        logger.warning(f"Directory not found: {directory}")
        return []

    pattern = directory.rglob("*") if recursive else directory.glob("*")
    files = {p for p in pattern if p.is_file() and is_valid_image(p)}
    return sorted(files, key=lambda p: p.name.lower())
