"""Resolve an abstract user agent to a concrete remote device/browser pair.

The matcher filters the provider catalog by form factor, OS vendor and
browser vendor, drops 32-bit browsers that have a 64-bit twin, ranks what
is left newest-first, then picks one candidate according to the user
agent's version policy:

* ``EXACT``    -- first candidate whose browser version starts with the target
* ``PREVIOUS`` -- the second-ranked candidate
* ``LATEST``   -- the top-ranked candidate

No match is reported as ``None``; callers decide whether that is an error.
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Optional

from .models import (
    BrowserVendorType,
    BrowserVersionType,
    CbtDevice,
    DeviceBrowserPair,
    FormFactorType,
    OsVendorType,
    UserAgent,
)
from .versions import compare_versions, version_prefix_matches

# ---------------------------------------------------------------------------
# Vendor lookup tables
# ---------------------------------------------------------------------------

FORM_FACTOR_NAMES: dict[FormFactorType, frozenset[str]] = {
    FormFactorType.DESKTOP: frozenset({"desktop"}),
    FormFactorType.MOBILE: frozenset({"mobile"}),
}

OS_VENDOR_NAMES: dict[OsVendorType, frozenset[str]] = {
    OsVendorType.ANDROID: frozenset({"Android"}),
    OsVendorType.IOS: frozenset({"iPhone", "iPad"}),
    OsVendorType.MAC: frozenset({"Mac"}),
    OsVendorType.WINDOWS: frozenset({"Windows"}),
}

BROWSER_VENDOR_NAMES: dict[BrowserVendorType, frozenset[str]] = {
    BrowserVendorType.CHROME: frozenset({"Chrome", "Chrome Mobile"}),
    BrowserVendorType.EDGE: frozenset({"Microsoft Edge"}),
    BrowserVendorType.FIREFOX: frozenset({"Firefox"}),
    BrowserVendorType.IE: frozenset({"Internet Explorer"}),
    BrowserVendorType.SAFARI: frozenset({"Safari", "Mobile Safari"}),
}

X64_SUFFIX = "x64"


def _compare_candidates(a: DeviceBrowserPair, b: DeviceBrowserPair) -> float:
    return (
        compare_versions(a.device.version, b.device.version)
        or compare_versions(a.browser.version, b.browser.version)
        or (a.device.sort_order - b.device.sort_order)
    )


class DeviceMatcher:
    """Match user-agent requirements against a device catalog.

    The matcher holds no state; the same instance can serve any number of
    catalogs and user agents.
    """

    def rank(self, user_agent: UserAgent, catalog: list[CbtDevice]) -> list[DeviceBrowserPair]:
        """Return every compatible device/browser pair, best candidate first.

        Ordering is by device version, then browser version, then the
        provider's ``sort_order``, all descending.
        """
        form_factors = FORM_FACTOR_NAMES[user_agent.form_factor_type]
        os_vendors = OS_VENDOR_NAMES[user_agent.os_vendor_type]
        browser_vendors = BROWSER_VENDOR_NAMES[user_agent.browser_vendor_type]

        all_api_names = {
            browser.api_name for device in catalog for browser in device.browsers
        }

        candidates: list[DeviceBrowserPair] = []
        for device in catalog:
            if device.device not in form_factors or device.type not in os_vendors:
                continue

            for browser in device.browsers:
                if browser.type not in browser_vendors:
                    continue
                # Prefer the 64-bit build when the provider offers both.
                if browser.api_name + X64_SUFFIX in all_api_names:
                    continue
                candidates.append(DeviceBrowserPair(device=device, browser=browser))

        candidates.sort(key=cmp_to_key(_compare_candidates))
        candidates.reverse()
        return candidates

    def resolve(
        self, user_agent: UserAgent, catalog: list[CbtDevice]
    ) -> Optional[DeviceBrowserPair]:
        """Pick one device/browser pair according to the user agent's version policy.

        Returns:
            The chosen pair, or ``None`` when nothing in the catalog fits
            (or fewer than two candidates exist for ``PREVIOUS``).
        """
        candidates = self.rank(user_agent, catalog)

        if user_agent.browser_version_type is BrowserVersionType.EXACT:
            for candidate in candidates:
                if version_prefix_matches(candidate.browser.version, user_agent.browser_version_value):
                    return candidate
            return None

        if user_agent.browser_version_type is BrowserVersionType.PREVIOUS:
            return candidates[1] if len(candidates) > 1 else None

        return candidates[0] if candidates else None
