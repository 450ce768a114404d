# Utils package
from .helpers import (
    ensure_directory,
    get_file_extension,
    is_valid_image,
    safe_filename,
    unique_output_name,
    list_images,
)

__all__ = [
    "ensure_directory",
    "get_file_extension",
    "is_valid_image",
    "safe_filename",
    "unique_output_name",
    "list_images",
]
