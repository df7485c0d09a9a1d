"""Shared utility functions for screendiff.

Provides the async byte-level file I/O used by the image comparator, JSON
loading for manifests, duration formatting, and the Rich-based console
helpers every module prints through.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async file I/O
# ---------------------------------------------------------------------------


async def read_bytes(path: str | Path) -> bytes:
    """Read a file's raw bytes without blocking the event loop.

    Raises:
        FileNotFoundError: If the file does not exist.
        OSError: On any other read failure.
    """
    file_path = Path(path)
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, file_path.read_bytes)


async def write_bytes(path: str | Path, data: bytes) -> Path:
    """Write raw bytes to *path*, creating parent directories as needed.

    An existing file at *path* is overwritten.  The write itself is performed
    in a thread-pool executor so large images do not stall other tasks.

    Returns:
        The path that was written.
    """
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, file_path.write_bytes, data)
    return file_path


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed dictionary.  A top-level array is wrapped as ``{"_root": [...]}``.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        return {"_root": data}
    return data


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def pluralize(count: int, noun: str) -> str:
    """Return ``"<count> <noun>"`` with a trailing ``s`` unless count is 1.

    Examples::

        pluralize(1, "screenshot") -> "1 screenshot"
        pluralize(3, "screenshot") -> "3 screenshots"
    """
    return f"{count} {noun}{'' if count == 1 else 's'}"


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
