"""screendiff command-line entry point.

Two commands:

* ``diff``    -- diff every comparable screenshot listed in a manifest and
  write the classified, grouped result as JSON.
* ``resolve`` -- resolve a user agent to a concrete remote device/browser
  and print the WebDriver capabilities for it.

Usage::

    python -m src.cli diff manifest.json --output report/screenshots.json
    python -m src.cli resolve --form-factor desktop --os windows --browser chrome
    python -m src.cli resolve --form-factor mobile --os ios --browser safari --version previous
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from enum import IntEnum
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from src.config import Config
from src.devices import (
    BrowserVendorType,
    BrowserVersionType,
    DeviceInventoryClient,
    FormFactorType,
    InventoryFetchError,
    MissingCredentialError,
    NoMatchingDeviceError,
    OsVendorType,
    RemoteSessionConfigurator,
    UserAgent,
)
from src.differ import (
    ComparisonError,
    ImageComparator,
    Screenshot,
    ScreenshotCollectionResult,
    ScreenshotDiffOrchestrator,
    ScreenshotPair,
)
from src.utils import (
    console,
    format_duration,
    load_json,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)


class ExitCode(IntEnum):
    OK = 0
    GENERAL_ERROR = 1
    CHANGES_FOUND = 2
    MISSING_ENV_VAR = 3
    NO_MATCHING_DEVICE = 4


MANIFEST_CATEGORIES: dict[str, str] = {
    "comparable": "comparable_screenshot_list",
    "skipped": "skipped_screenshot_list",
    "removed": "removed_screenshot_list",
    "added": "added_screenshot_list",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def load_config(path: Optional[str]) -> Config:
    """Load the config file at *path*, or build one from the environment."""
    if path:
        return Config.load(Path(path))
    return Config.from_env()


def build_collection(manifest: dict[str, Any]) -> ScreenshotCollectionResult:
    """Turn a manifest of screenshot pairs into an undiffed collection.

    The manifest maps ``comparable``, ``skipped``, ``removed`` and ``added``
    to lists of :class:`ScreenshotPair` objects.
    """
    collection = ScreenshotCollectionResult()
    for key, field_name in MANIFEST_CATEGORIES.items():
        screenshots = [
            Screenshot(pair=ScreenshotPair.model_validate(item))
            for item in manifest.get(key, [])
        ]
        setattr(collection, field_name, screenshots)
    return collection


def parse_version_policy(value: str) -> tuple[BrowserVersionType, str]:
    """Map ``latest`` / ``previous`` / anything else to a version policy."""
    lowered = value.strip().lower()
    if lowered == BrowserVersionType.LATEST.value:
        return BrowserVersionType.LATEST, ""
    if lowered == BrowserVersionType.PREVIOUS.value:
        return BrowserVersionType.PREVIOUS, ""
    return BrowserVersionType.EXACT, value.strip()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_diff(config: Config, manifest_path: Path, output_path: Path) -> ScreenshotCollectionResult:
    collection = build_collection(load_json(manifest_path))
    comparator = ImageComparator(config.diff, config.storage)
    orchestrator = ScreenshotDiffOrchestrator(comparator)
    await orchestrator.compare_all_screenshots(collection)
    collection.save(output_path)
    return collection


async def run_resolve(config: Config, user_agent: UserAgent) -> dict[str, Any]:
    client = DeviceInventoryClient(config.cbt)
    session = await RemoteSessionConfigurator(client).configure(user_agent)
    return session.capabilities


def cmd_diff(args: argparse.Namespace) -> int:
    manifest_path = Path(args.manifest)
    if not manifest_path.exists():
        print_error(f"Error: Manifest file not found: {manifest_path}")
        return ExitCode.GENERAL_ERROR

    try:
        config = load_config(args.config)
    except (ValueError, OSError) as exc:
        print_error(f"Error: Invalid configuration: {exc}")
        return ExitCode.GENERAL_ERROR

    started = time.monotonic()
    try:
        collection = asyncio.run(run_diff(config, manifest_path, Path(args.output)))
    except (ValidationError, json.JSONDecodeError) as exc:
        print_error(f"Error: Invalid manifest {manifest_path}: {exc}")
        return ExitCode.GENERAL_ERROR
    except (ComparisonError, OSError, ValueError) as exc:
        print_error(f"Error: Diff aborted: {exc}")
        return ExitCode.GENERAL_ERROR

    summary = collection.summary_dict()
    print_summary_table(
        {key.replace("_", " ").capitalize(): str(value) for key, value in summary.items()},
        title=f"Diff Results ({format_duration(time.monotonic() - started)})",
    )
    console.print(f"Results written to [bold]{args.output}[/bold]")

    if summary["changed"] and args.fail_on_change:
        print_warning(f"{summary['changed']} screenshot(s) changed.")
        return ExitCode.CHANGES_FOUND
    print_success("Diff completed.")
    return ExitCode.OK


def cmd_resolve(args: argparse.Namespace) -> int:
    version_type, version_value = parse_version_policy(args.version)
    try:
        user_agent = UserAgent(
            alias=args.alias or f"{args.form_factor}_{args.os}_{args.browser}@{args.version}",
            form_factor_type=FormFactorType(args.form_factor),
            os_vendor_type=OsVendorType(args.os),
            browser_vendor_type=BrowserVendorType(args.browser),
            browser_version_type=version_type,
            browser_version_value=version_value,
        )
    except ValidationError as exc:
        print_error(f"Error: Invalid user agent: {exc}")
        return ExitCode.GENERAL_ERROR

    try:
        config = load_config(args.config)
    except (ValueError, OSError) as exc:
        print_error(f"Error: Invalid configuration: {exc}")
        return ExitCode.GENERAL_ERROR

    try:
        capabilities = asyncio.run(run_resolve(config, user_agent))
    except MissingCredentialError as exc:
        print_error(f"ERROR: {exc}")
        return ExitCode.MISSING_ENV_VAR
    except NoMatchingDeviceError as exc:
        print_error(f"Error: {exc}")
        return ExitCode.NO_MATCHING_DEVICE
    except InventoryFetchError as exc:
        print_error(f"Error: {exc}")
        return ExitCode.GENERAL_ERROR

    print_summary_table(
        {key: str(value) for key, value in capabilities.items()},
        title=f"Capabilities for {user_agent.alias}",
    )
    return ExitCode.OK


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="screendiff -- screenshot diffing and remote device resolution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m src.cli diff manifest.json -o report/screenshots.json\n"
            "  python -m src.cli resolve --form-factor desktop --os windows --browser chrome\n"
        ),
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="JSON config file (default: read settings from the environment)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    diff = subparsers.add_parser("diff", help="Diff all screenshots listed in a manifest")
    diff.add_argument("manifest", help="Path to the screenshot manifest JSON")
    diff.add_argument(
        "--output", "-o",
        default="./screenshots/results.json",
        help="Where to write the diff results (default: ./screenshots/results.json)",
    )
    diff.add_argument(
        "--fail-on-change",
        action="store_true",
        help=f"Exit with code {int(ExitCode.CHANGES_FOUND)} when any screenshot changed",
    )
    diff.set_defaults(handler=cmd_diff)

    resolve = subparsers.add_parser("resolve", help="Resolve a user agent to a remote device/browser")
    resolve.add_argument("--form-factor", required=True, choices=[f.value for f in FormFactorType])
    resolve.add_argument("--os", required=True, choices=[o.value for o in OsVendorType])
    resolve.add_argument("--browser", required=True, choices=[b.value for b in BrowserVendorType])
    resolve.add_argument(
        "--version",
        default="latest",
        help="'latest', 'previous', or an exact version prefix such as '64' (default: latest)",
    )
    resolve.add_argument("--alias", default=None, help="Name shown in output")
    resolve.set_defaults(handler=cmd_resolve)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``python -m src.cli``."""
    args = build_parser().parse_args(argv)
    sys.exit(int(args.handler(args)))


if __name__ == "__main__":
    main()
