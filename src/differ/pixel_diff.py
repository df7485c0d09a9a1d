"""Pixel-level image comparison.

Compares two encoded images pixel by pixel and renders a diff image in
which matching pixels are faded and mismatching pixels are painted in the
configured error colour.  The matching rules follow the familiar
resemble-style tolerances:

1. **RGBA tolerance** -- every channel differs by less than its tolerance.
2. **Colour-blind mode** (``ignore=colors``) -- only brightness and alpha
   are compared.
3. **Anti-aliasing forgiveness** (``ignore=antialiasing``) -- a pixel that
   looks anti-aliased in either image is accepted when its brightness is
   close enough.

All per-pixel work is vectorised with numpy.  The functions here are
synchronous and CPU-bound; async callers should run them in an executor.
"""

from __future__ import annotations

import io
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

from src.config import ChannelTolerance, ComparisonOptions, ErrorType, IgnoreMode

_NEIGHBOUR_OFFSETS: tuple[tuple[int, int], ...] = tuple(
    (dy, dx) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dy, dx) != (0, 0)
)
_HUE_DIFFERENCE = 0.3


class ComparisonError(Exception):
    """Raised when an image cannot be decoded or compared."""


@dataclass(frozen=True)
class PixelDiff:
    """Rendered diff image plus raw mismatch statistics."""

    image_bytes: bytes
    raw_mismatch_fraction: float
    mismatch_count: int
    width: int
    height: int


# ---------------------------------------------------------------------------
# Decoding and alignment
# ---------------------------------------------------------------------------

def decode_image(data: bytes, label: str = "image") -> Image.Image:
    """Decode *data* into an RGBA Pillow image.

    Raises:
        ComparisonError: If the bytes are not a readable image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ComparisonError(f"Could not decode {label}: {exc}") from exc
    return image.convert("RGBA")


def image_dimensions(data: bytes) -> tuple[int, int]:
    """Return ``(width, height)`` of an encoded image."""
    return decode_image(data, "diff image").size


def _pad_to(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    if image.size == size:
        return image
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    canvas.paste(image, (0, 0))
    return canvas


def _align(
    actual: Image.Image, expected: Image.Image, scale_to_same_size: bool
) -> tuple[Image.Image, Image.Image]:
    """Bring both images to the same dimensions.

    With ``scale_to_same_size`` the actual image is resampled to the expected
    image's size; otherwise both are padded with transparent pixels to their
    common bounding box, so the extra area counts as a mismatch.
    """
    if actual.size == expected.size:
        return actual, expected
    if scale_to_same_size:
        return actual.resize(expected.size, Image.Resampling.LANCZOS), expected
    size = (max(actual.width, expected.width), max(actual.height, expected.height))
    return _pad_to(actual, size), _pad_to(expected, size)


# ---------------------------------------------------------------------------
# Per-pixel helpers (vectorised)
# ---------------------------------------------------------------------------

def _brightness(pixels: np.ndarray) -> np.ndarray:
    return 0.3 * pixels[..., 0] + 0.59 * pixels[..., 1] + 0.11 * pixels[..., 2]


def _hue(pixels: np.ndarray) -> np.ndarray:
    rgb = pixels[..., :3] / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    high = rgb.max(axis=-1)
    low = rgb.min(axis=-1)
    delta = high - low
    safe = np.where(delta == 0, 1.0, delta)

    hue = np.zeros_like(high)
    red_max = (high == r) & (delta != 0)
    green_max = (high == g) & (delta != 0) & ~red_max
    blue_max = (delta != 0) & ~red_max & ~green_max
    hue = np.where(red_max, (g - b) / safe + np.where(g < b, 6.0, 0.0), hue)
    hue = np.where(green_max, (b - r) / safe + 2.0, hue)
    hue = np.where(blue_max, (r - g) / safe + 4.0, hue)
    return hue / 6.0


def _similar(a: np.ndarray, b: np.ndarray, tolerance: float) -> np.ndarray:
    diff = np.abs(a - b)
    return (diff == 0) | (diff < tolerance)


def _rgba_similar(a: np.ndarray, b: np.ndarray, tolerance: ChannelTolerance) -> np.ndarray:
    return (
        _similar(a[..., 0], b[..., 0], tolerance.red)
        & _similar(a[..., 1], b[..., 1], tolerance.green)
        & _similar(a[..., 2], b[..., 2], tolerance.blue)
        & _similar(a[..., 3], b[..., 3], tolerance.alpha)
    )


def _brightness_similar(a: np.ndarray, b: np.ndarray, tolerance: ChannelTolerance) -> np.ndarray:
    return (
        _similar(_brightness(a), _brightness(b), tolerance.min_brightness)
        & _similar(a[..., 3], b[..., 3], tolerance.alpha)
    )


def _antialiased(pixels: np.ndarray, tolerance: ChannelTolerance) -> np.ndarray:
    """Mask of pixels that look like anti-aliasing within their own image.

    A pixel is anti-aliased when more than one neighbour contrasts sharply
    with it, more than one neighbour has a clearly different hue, or fewer
    than two neighbours are identical to it.  Neighbours outside the image
    are not counted.
    """
    height, width = pixels.shape[:2]
    brightness = _brightness(pixels)
    hue = _hue(pixels)

    padded_pixels = np.pad(pixels, ((1, 1), (1, 1), (0, 0)))
    padded_brightness = np.pad(brightness, 1)
    padded_hue = np.pad(hue, 1)
    padded_valid = np.pad(np.ones((height, width), dtype=bool), 1)

    high_contrast = np.zeros((height, width), dtype=np.int8)
    different_hue = np.zeros((height, width), dtype=np.int8)
    equivalent = np.zeros((height, width), dtype=np.int8)

    for dy, dx in _NEIGHBOUR_OFFSETS:
        rows = slice(1 + dy, 1 + dy + height)
        cols = slice(1 + dx, 1 + dx + width)
        valid = padded_valid[rows, cols]

        contrast = np.abs(padded_brightness[rows, cols] - brightness) > tolerance.max_brightness
        same = np.all(padded_pixels[rows, cols] == pixels, axis=-1)
        hue_shift = np.abs(padded_hue[rows, cols] - hue) > _HUE_DIFFERENCE

        high_contrast += contrast & valid
        equivalent += same & valid
        different_hue += hue_shift & valid

    return (high_contrast > 1) | (different_hue > 1) | (equivalent < 2)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _render(
    actual: np.ndarray,
    expected: np.ndarray,
    similar: np.ndarray,
    grayscale: np.ndarray,
    options: ComparisonOptions,
) -> np.ndarray:
    out = np.empty_like(actual, dtype=np.float64)

    # Matching pixels: faded copy of the actual image.
    out[..., :3] = actual[..., :3]
    out[..., 3] = actual[..., 3] * options.transparency

    # Forgiven pixels: faded grayscale of the expected image.
    gray = _brightness(expected)
    for channel in range(3):
        out[..., channel] = np.where(grayscale, gray, out[..., channel])
    out[..., 3] = np.where(grayscale, expected[..., 3] * options.transparency, out[..., 3])

    error = ~(similar | grayscale)
    color = np.array(options.error_color, dtype=np.float64)
    if options.error_type is ErrorType.MOVEMENT:
        moved = (expected[..., :3] * (color / 255.0) + color) / 2.0
        out[..., :3] = np.where(error[..., None], moved, out[..., :3])
        out[..., 3] = np.where(error, expected[..., 3], out[..., 3])
    else:
        out[..., :3] = np.where(error[..., None], color, out[..., :3])
        out[..., 3] = np.where(error, 255, out[..., 3])

    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def _encode_png(pixels: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def compare_images(
    actual_bytes: bytes,
    expected_bytes: bytes,
    options: ComparisonOptions | None = None,
) -> PixelDiff:
    """Compare two encoded images and render their diff.

    Args:
        actual_bytes: The freshly captured screenshot.
        expected_bytes: The golden screenshot.
        options: Perceptual tolerances; defaults to ``ComparisonOptions()``.

    Returns:
        A :class:`PixelDiff` whose ``raw_mismatch_fraction`` is the share of
        mismatching pixels in ``[0, 1]``.

    Raises:
        ComparisonError: If either input cannot be decoded.
    """
    options = options or ComparisonOptions()
    tolerance = options.effective_tolerance()

    actual_image, expected_image = _align(
        decode_image(actual_bytes, "actual image"),
        decode_image(expected_bytes, "expected image"),
        options.scale_to_same_size,
    )
    actual = np.asarray(actual_image, dtype=np.int16)
    expected = np.asarray(expected_image, dtype=np.int16)
    height, width = actual.shape[:2]

    if options.ignore is IgnoreMode.COLORS:
        similar = np.zeros((height, width), dtype=bool)
        grayscale = _brightness_similar(actual, expected, tolerance)
    else:
        similar = _rgba_similar(actual, expected, tolerance)
        grayscale = np.zeros((height, width), dtype=bool)
        if options.ignore is IgnoreMode.ANTIALIASING:
            forgivable = ~similar & (
                _antialiased(actual, tolerance) | _antialiased(expected, tolerance)
            )
            grayscale = forgivable & _brightness_similar(actual, expected, tolerance)

    mismatch_count = int(np.count_nonzero(~(similar | grayscale)))
    total = width * height
    fraction = mismatch_count / total if total else 0.0

    return PixelDiff(
        image_bytes=_encode_png(_render(actual, expected, similar, grayscale, options)),
        raw_mismatch_fraction=fraction,
        mismatch_count=mismatch_count,
        width=width,
        height=height,
    )
