"""Remote WebDriver session settings for a resolved device/browser pair."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.config import CbtConfig
from src.utils import console

from .inventory import DeviceInventoryClient
from .matcher import DeviceMatcher
from .models import DeviceBrowserPair, UserAgent


class NoMatchingDeviceError(Exception):
    """Raised when no catalog entry satisfies a user agent."""

    def __init__(self, user_agent: UserAgent) -> None:
        self.user_agent = user_agent
        super().__init__(
            f"No device/browser in the catalog matches user agent '{user_agent.alias}' "
            f"({user_agent.form_factor_type.value}, {user_agent.os_vendor_type.value}, "
            f"{user_agent.browser_vendor_type.value}, {user_agent.browser_version_type.value}"
            f"{' ' + user_agent.browser_version_value if user_agent.browser_version_value else ''})"
        )


class SessionConfig(BaseModel):
    """Everything a WebDriver builder needs to open a remote session."""

    server_url: str
    capabilities: dict[str, Any] = Field(default_factory=dict)
    device_browser: DeviceBrowserPair


def build_capabilities(config: CbtConfig, pair: DeviceBrowserPair) -> dict[str, Any]:
    """Merge session flags, device caps and browser caps (later keys win)."""
    caps: dict[str, Any] = {
        "record_video": config.record_video,
        "record_network": config.record_network,
    }
    caps.update(pair.device.caps)
    caps.update(pair.browser.caps)
    return caps


class RemoteSessionConfigurator:
    """Turn a user agent into the hub URL and capabilities for a remote session."""

    def __init__(
        self,
        client: DeviceInventoryClient,
        matcher: DeviceMatcher | None = None,
    ) -> None:
        self.client = client
        self.matcher = matcher or DeviceMatcher()

    async def configure(self, user_agent: UserAgent) -> SessionConfig:
        catalog = await self.client.fetch_catalog()
        pair = self.matcher.resolve(user_agent, catalog)
        if pair is None:
            raise NoMatchingDeviceError(user_agent)

        config = self.client.config
        capabilities = build_capabilities(config, pair)
        console.print(f"  [cyan]{user_agent.alias or 'user agent'}[/cyan] -> {pair.label}")
        return SessionConfig(
            server_url=config.selenium_server_url,
            capabilities=capabilities,
            device_browser=pair,
        )
