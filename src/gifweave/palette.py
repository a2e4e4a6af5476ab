"""Palette lookups: nearest-color mapping and transparent slot resolution."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from .alpha import pixel_rows
from .color_format import ColorFormat
from .error_handling import ValidationError
from .quantize import MAX_PALETTE_SIZE, Palette

# Rows of unique colors compared against the palette at once
_CHUNK_ROWS = 4096


def find_transparent_index(palette: Sequence[Sequence[int]]) -> int | None:
    """Return the index of the first fully transparent entry, or None."""
    for index, color in enumerate(palette):
        if len(color) > 3 and color[3] == 0:
            return index
    return None


def apply_palette(
    pixels: Any,
    palette: Palette,
    *,
    color_format: ColorFormat | str = ColorFormat.RGB565,
    clear_alpha_threshold: int = 1,
    one_bit_alpha: bool = False,
) -> np.ndarray:
    """Map every pixel to the index of its closest palette entry.

    Distance is the squared Euclidean distance over the channels the format
    uses (RGB, plus alpha for ``rgba4444``). Channels are compared at full 8-bit
    precision rather than truncated to format cells, so palette entries that
    share a cell stay distinguishable. Equal distances resolve to the lowest
    index. With ``one_bit_alpha`` and ``rgba4444``, pixel alpha is snapped to 0
    or 255 around 127 before comparing, and pixels snapped to 0 count as
    cleared.

    When the palette holds a transparent entry, pixels with alpha below
    ``clear_alpha_threshold`` (always including alpha 0) map to it directly,
    and opaque pixels are only matched against the remaining entries. This
    keeps transparent black from bleeding into dark opaque colors and the
    other way round.

    Returns:
        uint8 index buffer with one entry per pixel.
    """
    fmt = ColorFormat.parse(color_format)
    rgba = pixel_rows(pixels)
    if len(rgba) == 0:
        return np.zeros(0, dtype=np.uint8)
    table = _palette_table(palette)

    transparent_index = find_transparent_index(palette)
    candidates = np.arange(len(table))
    if transparent_index is not None and len(table) > 1:
        candidates = candidates[candidates != transparent_index]
    reference = table[candidates, : fmt.channels]

    snap_alpha = one_bit_alpha and fmt.has_alpha
    packed = np.ascontiguousarray(rgba).view(np.uint32).reshape(-1)
    unique, inverse = np.unique(packed, return_inverse=True)
    colors = unique.view(np.uint8).reshape(-1, 4)

    lookup = np.empty(len(unique), dtype=np.uint8)
    for start in range(0, len(colors), _CHUNK_ROWS):
        block = colors[start : start + _CHUNK_ROWS, : fmt.channels].astype(np.int32)
        if snap_alpha:
            block[:, 3] = np.where(block[:, 3] <= 127, 0, 255)
        distances = ((block[:, None, :] - reference[None, :, :]) ** 2).sum(axis=2)
        lookup[start : start + len(block)] = candidates[np.argmin(distances, axis=1)]

    if transparent_index is not None:
        cleared = colors[:, 3].astype(np.uint16) < max(clear_alpha_threshold, 1)
        if snap_alpha:
            cleared |= colors[:, 3] <= 127
        lookup[cleared] = transparent_index

    return lookup[inverse.reshape(-1)]


def nearest_color_index(
    color: Sequence[int],
    palette: Palette,
    color_format: ColorFormat | str = ColorFormat.RGB565,
) -> int:
    """Index of the palette entry closest to a single RGB or RGBA color."""
    rgba = bytes(_as_rgba(color))
    return int(apply_palette(rgba, palette, color_format=color_format)[0])


def _palette_table(palette: Palette) -> np.ndarray:
    if not palette:
        raise ValidationError("Cannot map pixels onto an empty palette")
    if len(palette) > MAX_PALETTE_SIZE:
        raise ValidationError(
            f"Palette has {len(palette)} entries, at most {MAX_PALETTE_SIZE} are allowed"
        )
    return np.asarray([_as_rgba(color) for color in palette], dtype=np.int32)


def _as_rgba(color: Sequence[int]) -> tuple[int, int, int, int]:
    if len(color) == 3:
        r, g, b = color
        return int(r), int(g), int(b), 255
    if len(color) == 4:
        r, g, b, a = color
        return int(r), int(g), int(b), int(a)
    raise ValidationError(f"Palette colors need 3 or 4 channels, got {tuple(color)}")
