"""Async client for the CrossBrowserTesting device inventory.

Fetches the full ``/selenium/browsers`` catalog once per client and hands
the same parsed result to every caller.  Concurrent callers that arrive
while the first request is still running attach to that request instead of
issuing their own.

Typical usage::

    client = DeviceInventoryClient(config.cbt)
    catalog = await client.fetch_catalog()
"""

from __future__ import annotations

import asyncio
import textwrap
from enum import Enum
from typing import Awaitable, Callable, Optional

import httpx

from src.config import CbtConfig
from src.utils import console

from .models import CbtDevice, parse_catalog

BROWSERS_ENDPOINT = "/selenium/browsers"

_CREDENTIAL_HELP = textwrap.dedent("""\
    Please add the following to your ~/.bash_profile or ~/.bashrc file:

        export MDC_CBT_USERNAME='...'
        export MDC_CBT_AUTHKEY='...'

    Credentials can be found on the CBT account page:
    https://crossbrowsertesting.com/account
""")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MissingCredentialError(Exception):
    """Raised when a required account credential is not configured."""

    def __init__(self, variable: str) -> None:
        self.variable = variable
        super().__init__(
            f"Required environment variable '{variable}' is not set.\n\n{_CREDENTIAL_HELP}"
        )


class InventoryFetchError(Exception):
    """Raised when the device catalog cannot be downloaded or parsed."""


# ---------------------------------------------------------------------------
# Catalog cache
# ---------------------------------------------------------------------------


class CacheState(str, Enum):
    UNFETCHED = "unfetched"
    IN_FLIGHT = "in_flight"
    READY = "ready"


class CatalogCache:
    """Holds the catalog for one client: nothing yet, a pending fetch, or the result.

    A failed fetch stays cached as well; every later caller sees the same
    error.  There is no invalidation.
    """

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task[list[CbtDevice]]] = None

    @property
    def state(self) -> CacheState:
        if self._task is None:
            return CacheState.UNFETCHED
        if not self._task.done():
            return CacheState.IN_FLIGHT
        return CacheState.READY

    def get_or_start(
        self, start: Callable[[], Awaitable[list[CbtDevice]]]
    ) -> asyncio.Task[list[CbtDevice]]:
        """Return the shared fetch task, creating it with ``start()`` on first use."""
        if self._task is None:
            self._task = asyncio.ensure_future(start())
        return self._task


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class DeviceInventoryClient:
    """Read-only view of the remote device/browser inventory.

    Parameters
    ----------
    config:
        Account credentials and API endpoint.  Both ``username`` and
        ``authkey`` must be set; otherwise :class:`MissingCredentialError`
        is raised immediately.
    """

    def __init__(self, config: CbtConfig) -> None:
        if not config.username:
            raise MissingCredentialError("MDC_CBT_USERNAME")
        if not config.authkey:
            raise MissingCredentialError("MDC_CBT_AUTHKEY")
        self.config = config
        self.base_url = config.api_base_url.rstrip("/")
        self._cache = CatalogCache()

    @property
    def cache_state(self) -> CacheState:
        return self._cache.state

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` authenticated against the provider API."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.config.username, self.config.authkey),
            timeout=httpx.Timeout(self.config.timeout, connect=10.0),
        )

    async def fetch_catalog(self) -> list[CbtDevice]:
        """Return the device catalog, downloading it on the first call only."""
        task = self._cache.get_or_start(self._download_catalog)
        # A cancelled caller must not cancel the shared fetch.
        return await asyncio.shield(task)

    async def _download_catalog(self) -> list[CbtDevice]:
        console.print("Fetching available devices...")
        try:
            async with self._client() as client:
                response = await client.get(BROWSERS_ENDPOINT)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise InventoryFetchError(
                f"Device catalog request returned HTTP {exc.response.status_code}: "
                f"{exc.response.text[:500]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise InventoryFetchError(
                f"Device catalog request to {self.base_url} failed: {exc}"
            ) from exc

        try:
            catalog = parse_catalog(response.json())
        except ValueError as exc:
            raise InventoryFetchError(f"Malformed device catalog: {exc}") from exc

        console.print(f"  [dim]{len(catalog)} devices available[/dim]")
        return catalog
