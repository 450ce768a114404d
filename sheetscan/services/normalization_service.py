"""
Normalization Service
File-level entry point used by the upload layer: reads raw photos, runs the
normalizer and writes the encoded result into the output directory
"""
import threading
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from sheetscan.config import settings
from sheetscan.core import (
    FailureReason,
    GeometryDegenerateException,
    InsufficientMarkersException,
    SheetScanException,
    service_logger,
)
from sheetscan.normalizer import (
    NormalizerConfig,
    SegmentStitcher,
    create_normalizer,
    load_image,
    save_image,
)
from sheetscan.utils import ensure_directory, list_images, safe_filename, unique_output_name

logger = logging.getLogger(__name__)


class NormalizationService:
    """
    Service wrapping the normalizer for file based callers.

    Each call is CPU bound and memory heavy, so at most
    max_concurrent_jobs calls run at the same time; the rest wait.
    """

    def __init__(
        self,
        output_dir: Union[str, Path] = None,
        config: NormalizerConfig = None,
        max_concurrent_jobs: int = None
    ):
        self.output_dir = ensure_directory(output_dir or settings.OUTPUT_DIR)
        self.config = config or NormalizerConfig.from_settings(settings)
        self.normalizer = create_normalizer(self.config)
        self.stitcher = SegmentStitcher(self.config)
        self._slots = threading.BoundedSemaphore(max_concurrent_jobs or settings.MAX_CONCURRENT_JOBS)

    def _output_name(self, output_name: str = None, suffix: str = "") -> str:
        if output_name:
            return safe_filename(output_name)
        return unique_output_name(self.config.output_format, suffix)

    def preprocess_file(self, image_path: Union[str, Path], output_name: str = None) -> str:
        """
        Normalize one photo and save it.

        Args:
            image_path: Raw photo on disk
            output_name: File name to write (generated when omitted)

        Returns:
            Name of the written file inside output_dir

        Raises:
            ImageProcessingException: Unreadable input or write failure
            InsufficientMarkersException: Fewer than 4 markers found
            GeometryDegenerateException: Page outline cannot be warped
        """
        path = Path(image_path)
        with self._slots:
            try:
                image = load_image(path)
                result = self.normalizer.normalize(image, path.stem)
                del image

                if not result.success:
                    if result.failure == FailureReason.INSUFFICIENT_MARKERS:
                        raise InsufficientMarkersException(str(path), result.marker_count)
                    raise GeometryDegenerateException(str(path))

                name = self._output_name(output_name)
                save_image(
                    result.image, self.output_dir / name,
                    self.config.output_format, self.config.output_quality
                )
            except SheetScanException as e:
                service_logger.error(f"Image processing failed for {path}: {e.detail}")
                raise

        service_logger.info(f"Image processed, saved {self.config.output_format} to {self.output_dir / name}")
        return name

    def stitch_files(
        self,
        sources: Sequence[Union[str, Path, bytes]],
        output_name: str = None,
        gutter: int = None
    ) -> str:
        """
        Stitch page segments (paths or encoded bytes) and save the composite.

        Returns:
            Name of the written file inside output_dir

        Raises:
            StitchingException: If no segment could be processed
        """
        with self._slots:
            try:
                stitched = self.stitcher.stitch(sources, gutter)
                name = self._output_name(output_name, "stitched")
                (self.output_dir / name).write_bytes(self.stitcher.encode(stitched))
            except SheetScanException as e:
                service_logger.error(f"Failed to stitch images: {e.detail}")
                raise
            except OSError as e:
                service_logger.error(f"Failed to write stitched image: {e}")
                raise

        service_logger.info(
            f"Stitched {stitched.segment_count} segments "
            f"(skipped {list(stitched.skipped)}) into {self.output_dir / name}"
        )
        return name

    def process_directory(self, directory: Union[str, Path]) -> List[Dict[str, Any]]:
        """
        Normalize every image in a directory.

        Returns:
            One summary dict per image; failures are recorded, not raised
        """
        image_files = list_images(directory)
        if not image_files:
            logger.warning(f"No images found in {directory}")
            return []

        logger.info(f"Found {len(image_files)} images to process")

        results = []
        for image_path in image_files:
            try:
                name = self.preprocess_file(image_path)
                results.append({"image_name": image_path.name, "success": True, "output": name})
            except SheetScanException as e:
                results.append({
                    "image_name": image_path.name,
                    "success": False,
                    "error": e.detail,
                    "error_code": e.error_code,
                })

        successful = sum(1 for r in results if r["success"])
        logger.info(f"Directory done: {successful} succeeded, {len(results) - successful} failed")
        return results
