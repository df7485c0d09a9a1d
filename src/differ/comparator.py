"""Screenshot comparison: pixel diffing and change classification.

Provides :class:`ImageComparator`, which diffs an *actual* screenshot
against its *expected* golden image.  For each pair it:

1. reads both images from disk,
2. runs :func:`~src.differ.pixel_diff.compare_images` to render a diff image
   and measure the share of mismatching pixels,
3. converts that share into a pixel count using the diff image's size,
4. classifies the pair as changed when the count reaches
   ``DiffConfig.min_diff_pixel_count``,
5. writes the diff image next to the other report artefacts.

Each comparison produces a :class:`DiffImageResult` consumed by
:class:`~src.differ.orchestrator.ScreenshotDiffOrchestrator`.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path, PurePosixPath

from src.config import DiffConfig, StorageConfig
from src.utils import read_bytes, write_bytes

from .models import DiffImageResult, TestFile
from .pixel_diff import PixelDiff, compare_images, image_dimensions

_PNG_SUFFIX = re.compile(r"\.png$")


class ImageComparator:
    """Diff actual screenshots against expected ones.

    Parameters
    ----------
    diff_config:
        Classification threshold and perceptual options.
    storage:
        Local directory for diff images and the base URL they are published
        under.
    """

    def __init__(self, diff_config: DiffConfig, storage: StorageConfig) -> None:
        self.diff_config = diff_config
        self.storage = storage

    # -- Public API ----------------------------------------------------------

    async def compare_one_image(
        self,
        actual_image_file: TestFile,
        expected_image_file: TestFile,
    ) -> DiffImageResult:
        """Compare a single actual screenshot against its expected image.

        The pixel comparison is delegated to a thread-pool executor so that
        CPU-intensive image processing does not block the event loop.

        Raises:
            ComparisonError: If either image, or the rendered diff, cannot be decoded.
            OSError: If an image cannot be read or the diff cannot be written.
        """
        actual_bytes = await read_bytes(actual_image_file.absolute_path)
        expected_bytes = await read_bytes(expected_image_file.absolute_path)

        loop = asyncio.get_running_loop()
        pixel_diff: PixelDiff = await loop.run_in_executor(
            None, compare_images, actual_bytes, expected_bytes, self.diff_config.comparison
        )

        diff_image_file = self.create_diff_image_file(actual_image_file)
        diff_pixel_fraction, diff_pixel_count = await self._analyze(pixel_diff)

        await write_bytes(diff_image_file.absolute_path, pixel_diff.image_bytes)

        return DiffImageResult(
            diff_image_file=diff_image_file,
            diff_pixel_count=diff_pixel_count,
            diff_pixel_fraction=diff_pixel_fraction,
            has_changed=self.is_changed(diff_pixel_count),
        )

    def is_changed(self, diff_pixel_count: float) -> bool:
        """True when *diff_pixel_count* reaches the configured minimum."""
        return diff_pixel_count >= self.diff_config.min_diff_pixel_count

    def create_diff_image_file(self, actual_image_file: TestFile) -> TestFile:
        """Describe where the diff image for *actual_image_file* lives.

        ``foo/bar.png`` becomes ``foo/bar.diff.png`` under the local diff
        directory, and the same relative path appended to the upload base
        URL and directory.  Leading separators are dropped so the diff
        always lands under the local diff directory.

        Raises:
            ValueError: If the relative path climbs out with ``..``.
        """
        relative_path = _PNG_SUFFIX.sub(
            ".diff.png", actual_image_file.relative_path.lstrip("/\\"), count=1
        )
        if ".." in PurePosixPath(relative_path.replace("\\", "/")).parts:
            raise ValueError(
                f"Diff image path escapes the diff directory: {actual_image_file.relative_path}"
            )
        absolute_path = Path(self.storage.local_diff_image_base_dir) / relative_path
        public_url = (
            self.storage.remote_upload_base_url
            + self.storage.remote_upload_base_dir
            + relative_path
        )
        return TestFile(
            relative_path=relative_path,
            absolute_path=str(absolute_path),
            public_url=public_url,
        )

    # -- Internal ------------------------------------------------------------

    async def _analyze(self, pixel_diff: PixelDiff) -> tuple[float, float]:
        """Return ``(fraction, count)`` measured against the decoded diff image."""
        loop = asyncio.get_running_loop()
        width, height = await loop.run_in_executor(
            None, image_dimensions, pixel_diff.image_bytes
        )
        diff_pixel_fraction = pixel_diff.raw_mismatch_fraction
        diff_pixel_count = diff_pixel_fraction * width * height
        return diff_pixel_fraction, diff_pixel_count
