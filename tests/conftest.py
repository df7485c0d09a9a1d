"""Shared pytest fixtures for the screendiff test suite.

Provides reusable fixtures for:
- PNG images generated on the fly with Pillow
- Diff/storage configuration pointing into ``tmp_path``
- A representative CrossBrowserTesting device catalog
- Mocked ``httpx.AsyncClient`` instances
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Callable, Iterable
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from src.config import CbtConfig, ComparisonOptions, DiffConfig, IgnoreMode, StorageConfig
from src.devices.models import CbtDevice, parse_catalog
from src.differ.models import Screenshot, ScreenshotPair, TestFile


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def png_bytes(
    width: int = 10,
    height: int = 10,
    color: tuple[int, int, int, int] = WHITE,
    changed: Iterable[tuple[int, int]] = (),
    changed_color: tuple[int, int, int, int] = BLACK,
) -> bytes:
    """Encode a solid-colour RGBA PNG with optional recoloured pixels."""
    image = Image.new("RGBA", (width, height), color)
    for xy in changed:
        image.putpixel(xy, changed_color)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


# Five isolated pixels, none adjacent to another.
FIVE_SCATTERED_PIXELS = [(1, 1), (3, 3), (5, 5), (7, 7), (1, 8)]


@pytest.fixture
def make_png(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a generated PNG under ``tmp_path`` and returning its path.

    Usage::

        def test_something(make_png):
            path = make_png("actual/page.png", changed=[(0, 0)])
    """

    def factory(relative: str, **kwargs: Any) -> Path:
        path = tmp_path / "images" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(png_bytes(**kwargs))
        return path

    return factory


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def strict_options() -> ComparisonOptions:
    """Comparison options that count every differing pixel."""
    return ComparisonOptions(ignore=IgnoreMode.NOTHING)


@pytest.fixture
def diff_config(strict_options: ComparisonOptions) -> DiffConfig:
    return DiffConfig(min_diff_pixel_count=3, max_concurrent_comparisons=4, comparison=strict_options)


@pytest.fixture
def storage_config(tmp_path: Path) -> StorageConfig:
    return StorageConfig(
        local_diff_image_base_dir=tmp_path / "diffs",
        remote_upload_base_url="https://storage.example.com/",
        remote_upload_base_dir="spec/run-1/",
    )


@pytest.fixture
def cbt_config() -> CbtConfig:
    return CbtConfig(username="tester", authkey="s3cret")


# ---------------------------------------------------------------------------
# Screenshots
# ---------------------------------------------------------------------------

def make_screenshot(
    actual: Path,
    expected: Path,
    alias: str = "desktop_windows_chrome@latest",
    page: str = "button/classes/baseline.html",
    relative_path: str | None = None,
) -> Screenshot:
    """Build a pending screenshot verdict for two image paths."""
    return Screenshot(
        pair=ScreenshotPair(
            actual_image_file=TestFile(
                relative_path=relative_path or actual.name,
                absolute_path=str(actual),
            ),
            expected_image_file=TestFile(
                relative_path=expected.name,
                absolute_path=str(expected),
            ),
            user_agent_alias=alias,
            html_file_path=page,
        )
    )


# ---------------------------------------------------------------------------
# Device catalog
# ---------------------------------------------------------------------------

def _browser(api_name: str, type_: str, version: str) -> dict[str, Any]:
    return {
        "api_name": api_name,
        "name": f"{type_} {version}",
        "type": type_,
        "version": version,
        "caps": {"browserName": type_, "version": version, "browser_api_name": api_name},
    }


@pytest.fixture
def catalog_payload() -> list[dict[str, Any]]:
    """Raw ``/selenium/browsers`` response with desktop and mobile devices."""
    return [
        {
            "api_name": "Win10",
            "name": "Windows 10",
            "device": "desktop",
            "type": "Windows",
            "version": "Windows 10",
            "sort_order": 10,
            "caps": {"platform": "Windows 10"},
            "browsers": [
                _browser("Chrome64", "Chrome", "64"),
                _browser("Chrome64x64", "Chrome", "64 64-bit"),
                _browser("Chrome63", "Chrome", "63"),
                _browser("Chrome63x64", "Chrome", "63 64-bit"),
                _browser("FF58x64", "Firefox", "58 64-bit"),
                _browser("Edge16", "Microsoft Edge", "16"),
            ],
            "icon_class": "windows",
        },
        {
            "api_name": "Win7x64",
            "name": "Windows 7 64-bit",
            "device": "desktop",
            "type": "Windows",
            "version": "Windows 7 64-bit",
            "sort_order": 7,
            "caps": {"platform": "Windows 7 64-Bit"},
            "browsers": [
                _browser("Chrome64x64", "Chrome", "64 64-bit"),
                _browser("IE11", "Internet Explorer", "11"),
            ],
        },
        {
            "api_name": "WinXPSP2",
            "name": "Windows XP SP2",
            "device": "desktop",
            "type": "Windows",
            "version": "Windows XP Service Pack 2",
            "sort_order": 1,
            "caps": {"platform": "Windows XP"},
            "browsers": [_browser("Chrome49", "Chrome", "49")],
        },
        {
            "api_name": "Mac10.13",
            "name": "Mac OSX 10.13",
            "device": "desktop",
            "type": "Mac",
            "version": "Mac OSX 10.13",
            "sort_order": 20,
            "caps": {"platform": "Mac OSX 10.13"},
            "browsers": [
                _browser("Safari11", "Safari", "11"),
                _browser("Chrome64x64", "Chrome", "64 64-bit"),
            ],
        },
        {
            "api_name": "iPhoneX-iOS11sim",
            "name": "iPhone X Simulator",
            "device": "mobile",
            "type": "iPhone",
            "version": "11.0",
            "sort_order": 5,
            "caps": {"deviceName": "iPhone X Simulator", "platformVersion": "11.0"},
            "browsers": [_browser("MblSafari11.0", "Mobile Safari", "11.0")],
        },
        {
            "api_name": "GalaxyS8-Android7",
            "name": "Samsung Galaxy S8",
            "device": "mobile",
            "type": "Android",
            "version": "7.0",
            "sort_order": 5,
            "caps": {"deviceName": "Samsung Galaxy S8", "platformVersion": "7.0"},
            "browsers": [_browser("MblChrome63", "Chrome Mobile", "63")],
        },
    ]


@pytest.fixture
def catalog(catalog_payload: list[dict[str, Any]]) -> list[CbtDevice]:
    return parse_catalog(catalog_payload)


# ---------------------------------------------------------------------------
# HTTP mocks
# ---------------------------------------------------------------------------

def mock_async_client(get: AsyncMock) -> AsyncMock:
    """Wrap a ``get`` mock in an ``httpx.AsyncClient``-shaped async context manager."""
    client = AsyncMock()
    client.get = get
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


def json_response(payload: Any) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response
