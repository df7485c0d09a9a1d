"""screendiff configuration.

Centralised, typed configuration for the diff engine and the remote device
lookup. All settings use Pydantic v2 models so they can be validated at
construction time and serialised to/from JSON or environment variables
without boiler-plate.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field


class IgnoreMode(str, Enum):
    """Tolerance presets for the pixel comparator."""

    NOTHING = "nothing"
    LESS = "less"
    ANTIALIASING = "antialiasing"
    COLORS = "colors"
    ALPHA = "alpha"


class ErrorType(str, Enum):
    """How mismatching pixels are painted into the diff image."""

    FLAT = "flat"
    MOVEMENT = "movement"


class ChannelTolerance(BaseModel):
    """Per-channel tolerance used when deciding whether two pixels match."""

    red: int = Field(default=16, ge=0, le=255)
    green: int = Field(default=16, ge=0, le=255)
    blue: int = Field(default=16, ge=0, le=255)
    alpha: int = Field(default=16, ge=0, le=255)
    min_brightness: int = Field(default=16, ge=0, le=255)
    max_brightness: int = Field(default=240, ge=0, le=255)


TOLERANCE_PRESETS: dict[IgnoreMode, ChannelTolerance] = {
    IgnoreMode.NOTHING: ChannelTolerance(
        red=0, green=0, blue=0, alpha=0, min_brightness=0, max_brightness=255
    ),
    IgnoreMode.LESS: ChannelTolerance(),
    IgnoreMode.ANTIALIASING: ChannelTolerance(),
    IgnoreMode.COLORS: ChannelTolerance(),
    IgnoreMode.ALPHA: ChannelTolerance(alpha=255),
}


class ComparisonOptions(BaseModel):
    """Perceptual knobs forwarded to the pixel comparator.

    ``extra`` is an opaque mapping for comparator-specific settings that
    have no named field here.  It is saved and loaded with the config but
    the built-in comparator (:func:`src.differ.pixel_diff.compare_images`)
    does not read it.
    """

    ignore: IgnoreMode = Field(default=IgnoreMode.ANTIALIASING)
    tolerance: Optional[ChannelTolerance] = Field(
        default=None, description="Explicit tolerance; overrides the preset selected by 'ignore'"
    )
    error_color: tuple[int, int, int] = Field(default=(255, 0, 255))
    error_type: ErrorType = Field(default=ErrorType.FLAT)
    transparency: float = Field(default=0.3, ge=0.0, le=1.0)
    scale_to_same_size: bool = Field(default=False)
    extra: dict[str, Any] = Field(
        default_factory=dict, description="Opaque settings for other comparators; ignored by compare_images"
    )

    def effective_tolerance(self) -> ChannelTolerance:
        """Return the tolerance actually applied for the current options."""
        if self.tolerance is not None:
            return self.tolerance
        return TOLERANCE_PRESETS[self.ignore]


class DiffConfig(BaseModel):
    """Tuning knobs for screenshot classification."""

    min_diff_pixel_count: int = Field(
        default=1, ge=0, description="Pixel count at or above which a screenshot counts as changed"
    )
    max_concurrent_comparisons: int = Field(
        default=8, ge=1, description="Maximum image comparisons in flight at once"
    )
    comparison: ComparisonOptions = Field(default_factory=ComparisonOptions)


class StorageConfig(BaseModel):
    """Where diff images are written locally and published remotely."""

    local_diff_image_base_dir: Path = Field(default=Path("./screenshots/diffs"))
    remote_upload_base_url: str = Field(default="")
    remote_upload_base_dir: str = Field(default="")


class CbtConfig(BaseModel):
    """CrossBrowserTesting account and session settings."""

    username: str = Field(default="")
    authkey: str = Field(default="")
    api_base_url: str = Field(default="https://crossbrowsertesting.com/api/v3")
    selenium_host: str = Field(default="hub.crossbrowsertesting.com:80")
    timeout: int = Field(default=60, ge=1, description="Per-request timeout in seconds")
    record_video: bool = Field(default=True)
    record_network: bool = Field(default=True)

    @property
    def selenium_server_url(self) -> str:
        """Hub URL with the account credentials embedded."""
        return f"http://{self.username}:{self.authkey}@{self.selenium_host}/wd/hub"


class Config(BaseModel):
    """Global screendiff configuration.

    Instances are typically created once by the CLI entry point and then
    passed to the comparator, the orchestrator and the inventory client.
    """

    diff: DiffConfig = Field(default_factory=DiffConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    cbt: CbtConfig = Field(default_factory=CbtConfig)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            SCREENDIFF_MIN_DIFF_PIXEL_COUNT, SCREENDIFF_MAX_CONCURRENCY,
            SCREENDIFF_DIFF_DIR, SCREENDIFF_UPLOAD_BASE_URL,
            SCREENDIFF_UPLOAD_BASE_DIR, MDC_CBT_USERNAME, MDC_CBT_AUTHKEY.
        """
        diff_kwargs: dict[str, Any] = {}
        if os.environ.get("SCREENDIFF_MIN_DIFF_PIXEL_COUNT"):
            diff_kwargs["min_diff_pixel_count"] = int(os.environ["SCREENDIFF_MIN_DIFF_PIXEL_COUNT"])
        if os.environ.get("SCREENDIFF_MAX_CONCURRENCY"):
            diff_kwargs["max_concurrent_comparisons"] = int(os.environ["SCREENDIFF_MAX_CONCURRENCY"])

        storage_kwargs: dict[str, Any] = {}
        if os.environ.get("SCREENDIFF_DIFF_DIR"):
            storage_kwargs["local_diff_image_base_dir"] = Path(os.environ["SCREENDIFF_DIFF_DIR"])
        if os.environ.get("SCREENDIFF_UPLOAD_BASE_URL"):
            storage_kwargs["remote_upload_base_url"] = os.environ["SCREENDIFF_UPLOAD_BASE_URL"]
        if os.environ.get("SCREENDIFF_UPLOAD_BASE_DIR"):
            storage_kwargs["remote_upload_base_dir"] = os.environ["SCREENDIFF_UPLOAD_BASE_DIR"]

        return cls(
            diff=DiffConfig(**diff_kwargs),
            storage=StorageConfig(**storage_kwargs),
            cbt=CbtConfig(
                username=os.environ.get("MDC_CBT_USERNAME", ""),
                authkey=os.environ.get("MDC_CBT_AUTHKEY", ""),
            ),
        )
