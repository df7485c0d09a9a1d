"""Run the image comparator over a whole screenshot collection.

Every comparable screenshot is diffed concurrently (at most
``DiffConfig.max_concurrent_comparisons`` at a time), moved into the
changed or unchanged list, and finally grouped by browser and by page.
The first failing comparison aborts the batch; diff images already written
by other comparisons are left in place.
"""

from __future__ import annotations

import asyncio

from src.utils import console, pluralize

from .comparator import ImageComparator
from .models import Screenshot, ScreenshotCollectionResult


class ScreenshotDiffOrchestrator:
    """Diff, classify and group all comparable screenshots of a run."""

    def __init__(self, comparator: ImageComparator) -> None:
        self.comparator = comparator

    @property
    def max_concurrency(self) -> int:
        return self.comparator.diff_config.max_concurrent_comparisons

    async def compare_all_screenshots(self, collection: ScreenshotCollectionResult) -> None:
        """Diff ``collection.comparable_screenshot_list`` and update *collection* in place."""
        screenshots = collection.comparable_screenshot_list
        console.print(f"Diffing {pluralize(len(screenshots), 'screenshot')}...")

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _compare(screenshot: Screenshot) -> None:
            async with semaphore:
                await self.compare_one_screenshot(collection, screenshot)

        await asyncio.gather(*(_compare(s) for s in screenshots))

        # Built from the settled lists, so grouping order does not depend on
        # which comparison finished first.
        collection.rebuild_groupings()

        self.log_comparison_results(collection)

    async def compare_one_screenshot(
        self, collection: ScreenshotCollectionResult, screenshot: Screenshot
    ) -> None:
        result = await self.comparator.compare_one_image(
            screenshot.pair.actual_image_file,
            screenshot.pair.expected_image_file,
        )
        screenshot.mark_diffed(result)

        if result.has_changed:
            collection.changed_screenshot_list.append(screenshot)
        else:
            collection.unchanged_screenshot_list.append(screenshot)

    # -- Console output ------------------------------------------------------

    def log_comparison_results(self, collection: ScreenshotCollectionResult) -> None:
        console.print()
        for title, screenshots in collection.categories().items():
            self._log_result_set(title, screenshots)

    @staticmethod
    def _log_result_set(title: str, screenshots: list[Screenshot]) -> None:
        console.print(f"{title} {pluralize(len(screenshots), 'screenshot')}:")
        for screenshot in screenshots:
            console.print(
                f"  - {screenshot.html_file_path} > {screenshot.user_agent_alias}",
                markup=False,
            )
        console.print()
