"""Version-string parsing and ordering for device and browser catalogs.

Provider catalogs describe versions loosely: ``"Windows 10"``,
``"Mac OSX 10.13"``, ``"64 Beta"``, ``"XP Service Pack 2"``.  These helpers
normalise such strings into numeric segments and compare them.

Segments that are still not numeric after normalisation parse to ``NaN``.
``NaN`` compares as zero and never satisfies an equality check, so an odd
catalog entry sorts alongside its peers instead of raising.
"""

from __future__ import annotations

import math
import re
from typing import Union

Segment = Union[int, float]

# Applied in order; each replaces at most one match.
_NORMALIZATIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r" 64-bit$", re.IGNORECASE), ""),
    (re.compile(r" Beta$", re.IGNORECASE), ""),
    (re.compile(r" Preview$", re.IGNORECASE), ""),
    (re.compile(r" Home$", re.IGNORECASE), ""),
    (re.compile(r" Service Pack \d$", re.IGNORECASE), ""),
    (re.compile(r"^(?:Windows )?XP ?", re.IGNORECASE), "5.1"),
    (re.compile(r"^(?:Windows )?Vista ?", re.IGNORECASE), "6.0"),
    (re.compile(r"^(?:Windows|Win) ?", re.IGNORECASE), ""),
    (re.compile(r"^(?:Mac OS X|Mac OSX|MacOS|OSX|Mac) ?", re.IGNORECASE), ""),
    (re.compile(r"(?:\.0+)+$"), ""),
)


def normalize_version(version: object) -> str:
    """Strip vendor prefixes/suffixes and trailing zero groups from *version*.

    Examples::

        normalize_version("Windows 10")      -> "10"
        normalize_version("Windows XP")      -> "5.1"
        normalize_version("Mac OSX 10.13")   -> "10.13"
        normalize_version("64.0.0 Beta")     -> "64"
    """
    text = str(version)
    for pattern, replacement in _NORMALIZATIONS:
        text = pattern.sub(replacement, text, count=1)
    return text


def _parse_segment(segment: str) -> Segment:
    segment = segment.strip()
    if not segment:
        return 0
    try:
        return int(segment)
    except ValueError:
        pass
    try:
        return float(segment)
    except ValueError:
        return math.nan


def parse_version_number(version: object) -> list[Segment]:
    """Parse a version string into its numeric segments.

    ``"6.0.2"`` -> ``[6, 0, 2]``; ``"Windows 8.1"`` -> ``[8, 1]``.
    """
    return [_parse_segment(part) for part in normalize_version(version).split(".")]


def _comparable(segment: Segment) -> Segment:
    if isinstance(segment, float) and math.isnan(segment):
        return 0
    return segment


def compare_versions(version1: object, version2: object) -> Segment:
    """Compare two version strings.

    Returns:
        Negative if *version1* is older than *version2*, positive if it is
        newer, zero if they have equal precedence.  Missing trailing segments
        count as zero, so ``compare_versions("6", "6.0.0") == 0``.
    """
    v1 = parse_version_number(version1)
    v2 = parse_version_number(version2)

    width = max(len(v1), len(v2))
    v1 = v1 + [0] * (width - len(v1))
    v2 = v2 + [0] * (width - len(v2))

    for a, b in zip(v1, v2):
        delta = _comparable(a) - _comparable(b)
        if delta != 0:
            return delta
    return 0


def version_prefix_matches(candidate: object, target: object) -> bool:
    """True when every parsed segment of *target* equals the same segment of *candidate*.

    ``version_prefix_matches("64.0.3282", "64")`` is true,
    ``version_prefix_matches("63.0.1", "64")`` is not.
    """
    current = parse_version_number(candidate)
    required = parse_version_number(target)
    return all(
        index < len(current) and number == current[index]
        for index, number in enumerate(required)
    )
