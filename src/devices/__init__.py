"""screendiff -- Devices module.

Resolves abstract user agents to concrete remote device/browser pairs:
version normalisation and ordering, catalog matching, the cached inventory
client, and WebDriver session settings.

Public API
----------
.. autoclass:: DeviceMatcher
.. autoclass:: DeviceInventoryClient
.. autoclass:: RemoteSessionConfigurator
.. autofunction:: compare_versions
"""

from .inventory import (
    CacheState,
    DeviceInventoryClient,
    InventoryFetchError,
    MissingCredentialError,
)
from .matcher import DeviceMatcher
from .models import (
    BrowserVendorType,
    BrowserVersionType,
    CbtBrowser,
    CbtDevice,
    DeviceBrowserPair,
    FormFactorType,
    OsVendorType,
    UserAgent,
)
from .session import NoMatchingDeviceError, RemoteSessionConfigurator, SessionConfig
from .versions import compare_versions, parse_version_number

__all__ = [
    # Versions
    "compare_versions",
    "parse_version_number",
    # Matching
    "DeviceMatcher",
    "DeviceBrowserPair",
    # Inventory
    "DeviceInventoryClient",
    "CacheState",
    "InventoryFetchError",
    "MissingCredentialError",
    # Session
    "RemoteSessionConfigurator",
    "SessionConfig",
    "NoMatchingDeviceError",
    # Models
    "UserAgent",
    "FormFactorType",
    "OsVendorType",
    "BrowserVendorType",
    "BrowserVersionType",
    "CbtDevice",
    "CbtBrowser",
]
