"""Unit tests for ImageComparator (src.differ.comparator).

Tests cover:
- compare_one_image for identical and changed pairs
- The min_diff_pixel_count threshold
- Diff image naming, local path and public URL
- Writing and overwriting the diff image on disk
- Missing and undecodable inputs
"""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FIVE_SCATTERED_PIXELS
from src.config import DiffConfig, StorageConfig
from src.differ.comparator import ImageComparator
from src.differ.models import TestFile
from src.differ.pixel_diff import ComparisonError


def _test_file(path: Path, relative_path: str | None = None) -> TestFile:
    return TestFile(relative_path=relative_path or path.name, absolute_path=str(path))


@pytest.fixture
def comparator(diff_config: DiffConfig, storage_config: StorageConfig) -> ImageComparator:
    return ImageComparator(diff_config, storage_config)


# ---------------------------------------------------------------------------
# compare_one_image
# ---------------------------------------------------------------------------

class TestCompareOneImage:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_identical_images(self, comparator, make_png):
        actual = make_png("actual/page.png")
        expected = make_png("expected/page.png")

        result = await comparator.compare_one_image(_test_file(actual), _test_file(expected))

        assert result.diff_pixel_count == 0
        assert result.diff_pixel_fraction == 0
        assert result.has_changed is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_changed_pixels_counted(self, comparator, make_png):
        actual = make_png("actual/page.png", changed=FIVE_SCATTERED_PIXELS)
        expected = make_png("expected/page.png")

        result = await comparator.compare_one_image(_test_file(actual), _test_file(expected))

        assert result.diff_pixel_count == pytest.approx(5)
        assert result.diff_pixel_fraction == pytest.approx(0.05)
        assert result.has_changed is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_below_threshold_is_unchanged(self, storage_config, strict_options, make_png):
        config = DiffConfig(min_diff_pixel_count=10, comparison=strict_options)
        comparator = ImageComparator(config, storage_config)
        actual = make_png("actual/page.png", changed=FIVE_SCATTERED_PIXELS)
        expected = make_png("expected/page.png")

        result = await comparator.compare_one_image(_test_file(actual), _test_file(expected))

        assert result.diff_pixel_count == pytest.approx(5)
        assert result.has_changed is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_diff_image_written(self, comparator, make_png, storage_config):
        actual = make_png("actual/page.png", changed=FIVE_SCATTERED_PIXELS)
        expected = make_png("expected/page.png")

        result = await comparator.compare_one_image(
            _test_file(actual, "button/page.png"), _test_file(expected)
        )

        written = Path(result.diff_image_file.absolute_path)
        assert written == Path(storage_config.local_diff_image_base_dir) / "button/page.diff.png"
        assert written.read_bytes().startswith(b"\x89PNG")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_diff_image_overwritten(self, comparator, make_png):
        expected = make_png("expected/page.png")
        changed = make_png("actual/changed.png", changed=FIVE_SCATTERED_PIXELS)
        same = make_png("actual/same.png")

        first = await comparator.compare_one_image(_test_file(changed, "page.png"), _test_file(expected))
        first_bytes = Path(first.diff_image_file.absolute_path).read_bytes()
        second = await comparator.compare_one_image(_test_file(same, "page.png"), _test_file(expected))

        assert second.diff_image_file.absolute_path == first.diff_image_file.absolute_path
        assert Path(second.diff_image_file.absolute_path).read_bytes() != first_bytes

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_file(self, comparator, make_png, tmp_path):
        expected = make_png("expected/page.png")
        with pytest.raises(FileNotFoundError):
            await comparator.compare_one_image(
                _test_file(tmp_path / "nowhere.png"), _test_file(expected)
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_undecodable_file(self, comparator, make_png, tmp_path):
        broken = tmp_path / "broken.png"
        broken.write_bytes(b"garbage")
        expected = make_png("expected/page.png")
        with pytest.raises(ComparisonError):
            await comparator.compare_one_image(_test_file(broken), _test_file(expected))


# ---------------------------------------------------------------------------
# Threshold and naming
# ---------------------------------------------------------------------------

class TestIsChanged:
    @pytest.mark.unit
    @pytest.mark.parametrize("count,expected", [(0, False), (2.9, False), (3, True), (40, True)])
    def test_threshold(self, comparator, count, expected):
        assert comparator.is_changed(count) is expected

    @pytest.mark.unit
    def test_zero_threshold_always_changed(self, storage_config):
        comparator = ImageComparator(DiffConfig(min_diff_pixel_count=0), storage_config)
        assert comparator.is_changed(0) is True


class TestCreateDiffImageFile:
    @pytest.mark.unit
    def test_paths_and_url(self, comparator, storage_config):
        actual = TestFile(
            relative_path="button/classes/baseline.html.windows_chrome.png",
            absolute_path="/tmp/actual.png",
        )
        diff_file = comparator.create_diff_image_file(actual)

        assert diff_file.relative_path == "button/classes/baseline.html.windows_chrome.diff.png"
        assert diff_file.absolute_path == str(
            Path(storage_config.local_diff_image_base_dir)
            / "button/classes/baseline.html.windows_chrome.diff.png"
        )
        assert diff_file.public_url == (
            "https://storage.example.com/spec/run-1/"
            "button/classes/baseline.html.windows_chrome.diff.png"
        )

    @pytest.mark.unit
    def test_only_trailing_png_replaced(self, comparator):
        actual = TestFile(relative_path="a.png/b.png", absolute_path="/tmp/b.png")
        assert comparator.create_diff_image_file(actual).relative_path == "a.png/b.diff.png"

    @pytest.mark.unit
    def test_absolute_relative_path_stays_under_diff_dir(self, comparator, storage_config):
        actual = TestFile(relative_path="/etc/x.png", absolute_path="/etc/x.png")
        diff_file = comparator.create_diff_image_file(actual)

        base_dir = Path(storage_config.local_diff_image_base_dir)
        assert Path(diff_file.absolute_path) == base_dir / "etc" / "x.diff.png"
        assert diff_file.relative_path == "etc/x.diff.png"
        assert diff_file.public_url == "https://storage.example.com/spec/run-1/etc/x.diff.png"

    @pytest.mark.unit
    @pytest.mark.parametrize("relative_path", ["../x.png", "a/../../x.png", "..\\x.png"])
    def test_parent_segments_rejected(self, comparator, relative_path):
        actual = TestFile(relative_path=relative_path, absolute_path="/tmp/x.png")
        with pytest.raises(ValueError, match="escapes the diff directory"):
            comparator.create_diff_image_file(actual)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_absolute_relative_path_written_under_diff_dir(self, comparator, make_png, storage_config):
        actual = make_png("actual/page.png", changed=FIVE_SCATTERED_PIXELS)
        expected = make_png("expected/page.png")

        result = await comparator.compare_one_image(
            _test_file(actual, "/outside/page.png"), _test_file(expected)
        )

        written = Path(result.diff_image_file.absolute_path)
        assert written == Path(storage_config.local_diff_image_base_dir) / "outside" / "page.diff.png"
        assert written.exists()
