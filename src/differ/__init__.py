"""screendiff -- Differ module.

Provides pixel-level image comparison, per-pair change classification, and
the orchestrator that diffs, partitions and groups a whole screenshot
collection.

Public API
----------
.. autoclass:: ImageComparator
.. autoclass:: ScreenshotDiffOrchestrator
.. autoclass:: ScreenshotCollectionResult
.. autoclass:: Screenshot
.. autoclass:: ScreenshotPair
.. autoclass:: DiffImageResult
.. autoclass:: TestFile
.. autofunction:: compare_images
"""

from .comparator import ImageComparator
from .models import (
    CaptureState,
    DiffImageResult,
    Screenshot,
    ScreenshotCollectionResult,
    ScreenshotPair,
    ScreenshotStateError,
    TestFile,
)
from .orchestrator import ScreenshotDiffOrchestrator
from .pixel_diff import ComparisonError, PixelDiff, compare_images

__all__ = [
    # Pixel comparison
    "compare_images",
    "PixelDiff",
    "ComparisonError",
    # Comparator
    "ImageComparator",
    # Orchestrator
    "ScreenshotDiffOrchestrator",
    # Models
    "CaptureState",
    "DiffImageResult",
    "Screenshot",
    "ScreenshotCollectionResult",
    "ScreenshotPair",
    "ScreenshotStateError",
    "TestFile",
]
