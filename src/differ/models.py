"""Screenshot comparison models.

Provides Pydantic v2 models for every stage of a diff run: the immutable
actual/expected pair, the per-pair diff result, the screenshot verdict that
carries both, and the collection-wide result that partitions verdicts into
categories and groups them for reporting.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScreenshotStateError(Exception):
    """Raised when a screenshot verdict is updated out of order."""


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

class TestFile(BaseModel):
    """A file known by its local path and (optionally) its published URL."""

    __test__ = False  # not a pytest test class

    model_config = ConfigDict(frozen=True)

    relative_path: str = Field(..., description="Path relative to the screenshot root, e.g. 'button/classes/baseline.png'")
    absolute_path: str = Field(default="", description="Location on the local file system")
    public_url: str = Field(default="", description="Location once uploaded; empty when not published")


# ---------------------------------------------------------------------------
# Pair and diff result
# ---------------------------------------------------------------------------

class ScreenshotPair(BaseModel):
    """One actual-vs-expected comparison unit for a single page and browser."""

    model_config = ConfigDict(frozen=True)

    actual_image_file: TestFile
    expected_image_file: TestFile
    user_agent_alias: str = Field(..., description="Browser the screenshot was taken in")
    html_file_path: str = Field(..., description="Page the screenshot was taken of")


class DiffImageResult(BaseModel):
    """Outcome of diffing one screenshot pair."""

    model_config = ConfigDict(frozen=True)

    diff_image_file: TestFile
    diff_pixel_count: float = Field(default=0.0, ge=0.0, description="Fraction times image area; not rounded")
    diff_pixel_fraction: float = Field(default=0.0, ge=0.0, le=1.0)
    has_changed: bool = Field(default=False, description="diff_pixel_count >= the configured minimum")


# ---------------------------------------------------------------------------
# Verdict
# ---------------------------------------------------------------------------

class CaptureState(str, Enum):
    PENDING = "pending"
    DIFFED = "diffed"


class Screenshot(BaseModel):
    """A screenshot pair plus everything learned about it during the run."""

    pair: ScreenshotPair
    capture_state: CaptureState = Field(default=CaptureState.PENDING)
    diff_image_result: Optional[DiffImageResult] = Field(default=None)
    diff_image_file: Optional[TestFile] = Field(default=None)

    @property
    def user_agent_alias(self) -> str:
        return self.pair.user_agent_alias

    @property
    def html_file_path(self) -> str:
        return self.pair.html_file_path

    @property
    def has_changed(self) -> bool:
        return self.diff_image_result is not None and self.diff_image_result.has_changed

    def mark_diffed(self, result: DiffImageResult) -> None:
        """Attach the diff result; allowed exactly once per screenshot."""
        if self.capture_state is CaptureState.DIFFED:
            raise ScreenshotStateError(
                f"Screenshot {self.html_file_path} > {self.user_agent_alias} was already diffed"
            )
        self.diff_image_result = result
        self.diff_image_file = result.diff_image_file
        self.capture_state = CaptureState.DIFFED


ScreenshotMap = dict[str, list[Screenshot]]


def group_screenshots(screenshots: list[Screenshot], key: str) -> ScreenshotMap:
    """Group *screenshots* by the named attribute, keeping list order within each group."""
    groups: ScreenshotMap = {}
    for screenshot in screenshots:
        groups.setdefault(getattr(screenshot, key), []).append(screenshot)
    return groups


# ---------------------------------------------------------------------------
# Collection result
# ---------------------------------------------------------------------------

class ScreenshotCollectionResult(BaseModel):
    """Every screenshot in a run, sorted into disjoint categories.

    ``comparable_screenshot_list`` is the input to diffing; the orchestrator
    moves each of its entries into either ``changed`` or ``unchanged``.
    ``skipped``, ``removed`` and ``added`` are filled in by whoever builds the
    collection, since those screenshots have nothing to diff against.
    """

    comparable_screenshot_list: list[Screenshot] = Field(default_factory=list)

    skipped_screenshot_list: list[Screenshot] = Field(default_factory=list)
    unchanged_screenshot_list: list[Screenshot] = Field(default_factory=list)
    removed_screenshot_list: list[Screenshot] = Field(default_factory=list)
    added_screenshot_list: list[Screenshot] = Field(default_factory=list)
    changed_screenshot_list: list[Screenshot] = Field(default_factory=list)

    changed_screenshot_browser_map: ScreenshotMap = Field(default_factory=dict)
    changed_screenshot_page_map: ScreenshotMap = Field(default_factory=dict)
    unchanged_screenshot_browser_map: ScreenshotMap = Field(default_factory=dict)
    unchanged_screenshot_page_map: ScreenshotMap = Field(default_factory=dict)

    def categories(self) -> dict[str, list[Screenshot]]:
        """Return the five output categories in reporting order."""
        return {
            "Skipped": self.skipped_screenshot_list,
            "Unchanged": self.unchanged_screenshot_list,
            "Removed": self.removed_screenshot_list,
            "Added": self.added_screenshot_list,
            "Changed": self.changed_screenshot_list,
        }

    def rebuild_groupings(self) -> None:
        """Recompute the by-browser and by-page maps from the settled lists."""
        self.changed_screenshot_browser_map = group_screenshots(
            self.changed_screenshot_list, "user_agent_alias"
        )
        self.changed_screenshot_page_map = group_screenshots(
            self.changed_screenshot_list, "html_file_path"
        )
        self.unchanged_screenshot_browser_map = group_screenshots(
            self.unchanged_screenshot_list, "user_agent_alias"
        )
        self.unchanged_screenshot_page_map = group_screenshots(
            self.unchanged_screenshot_list, "html_file_path"
        )

    # -- Serialisation helpers -----------------------------------------------

    def to_json(self, indent: int = 2) -> str:
        """Serialise the full result to a JSON string."""
        return self.model_dump_json(indent=indent)

    def save(self, path: Path) -> None:
        """Persist results to a JSON file, creating parent directories as needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "ScreenshotCollectionResult":
        """Load previously-saved results from a JSON file."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    # -- Summary helpers -----------------------------------------------------

    def summary_dict(self) -> dict[str, Any]:
        """Return per-category counts plus the number of distinct browsers and pages changed."""
        summary: dict[str, Any] = {
            title.lower(): len(screenshots) for title, screenshots in self.categories().items()
        }
        summary["changed_browsers"] = len(self.changed_screenshot_browser_map)
        summary["changed_pages"] = len(self.changed_screenshot_page_map)
        return summary
