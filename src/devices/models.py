"""Data model for user-agent requirements and the remote device catalog.

The catalog models mirror the JSON returned by the CrossBrowserTesting
``/selenium/browsers`` endpoint.  Unknown keys are ignored so new fields in
the provider's payload do not break validation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# User-agent requirement
# ---------------------------------------------------------------------------

class FormFactorType(str, Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"


class OsVendorType(str, Enum):
    ANDROID = "android"
    IOS = "ios"
    MAC = "mac"
    WINDOWS = "windows"


class BrowserVendorType(str, Enum):
    CHROME = "chrome"
    EDGE = "edge"
    FIREFOX = "firefox"
    IE = "ie"
    SAFARI = "safari"


class BrowserVersionType(str, Enum):
    EXACT = "exact"
    PREVIOUS = "previous"
    LATEST = "latest"


class UserAgent(BaseModel):
    """Abstract description of the browser a screenshot should be taken in."""

    model_config = ConfigDict(frozen=True)

    alias: str = Field(default="", description="Short name used to group screenshots, e.g. 'desktop_windows_chrome@latest'")
    form_factor_type: FormFactorType
    os_vendor_type: OsVendorType
    browser_vendor_type: BrowserVendorType
    browser_version_type: BrowserVersionType = Field(default=BrowserVersionType.LATEST)
    browser_version_value: str = Field(default="", description="Target version, only used by the EXACT policy")

    @model_validator(mode="after")
    def _exact_needs_value(self) -> "UserAgent":
        if self.browser_version_type is BrowserVersionType.EXACT and not self.browser_version_value:
            raise ValueError("browser_version_value is required when browser_version_type is 'exact'")
        return self


# ---------------------------------------------------------------------------
# Device catalog
# ---------------------------------------------------------------------------

class CbtBrowser(BaseModel):
    """A browser installed on a remote device."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    api_name: str = Field(..., description="Provider identifier, e.g. 'Chrome64x64'")
    name: str = Field(default="")
    type: str = Field(default="", description="Browser vendor, e.g. 'Chrome' or 'Mobile Safari'")
    version: str = Field(default="")
    caps: dict[str, Any] = Field(default_factory=dict, description="Provider capabilities, passed through as-is")


class CbtDevice(BaseModel):
    """A remote device (or OS image) and the browsers available on it."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    api_name: str = Field(default="")
    name: str = Field(default="")
    device: str = Field(default="", description="Form factor: 'desktop' or 'mobile'")
    type: str = Field(default="", description="OS vendor, e.g. 'Windows', 'Mac', 'iPhone'")
    version: str = Field(default="")
    sort_order: int = Field(default=0)
    caps: dict[str, Any] = Field(default_factory=dict, description="Provider capabilities, passed through as-is")
    browsers: list[CbtBrowser] = Field(default_factory=list)


class DeviceBrowserPair(BaseModel):
    """A concrete device/browser combination chosen for a user agent."""

    model_config = ConfigDict(frozen=True)

    device: CbtDevice
    browser: CbtBrowser

    @property
    def label(self) -> str:
        """Human-readable description for console output."""
        return f"{self.device.name or self.device.api_name} / {self.browser.name or self.browser.api_name}"


def parse_catalog(payload: Any) -> list[CbtDevice]:
    """Validate a raw ``/selenium/browsers`` payload into catalog entries."""
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array of devices, got {type(payload).__name__}")
    return [CbtDevice.model_validate(item) for item in payload]

