"""Deterministic palette quantization for RGBA frames.

The reduction works in two steps:

1. Every pixel is bucketed into a cell of the chosen ``ColorFormat`` (for
   ``rgb565`` a cell is 8x4x8 source values). Each non-empty cell remembers
   how many pixels fell into it and their summed full-precision color.
2. If there are more cells than palette slots, a weighted median cut over the
   cell coordinates groups them. The box with the largest
   ``pixel_count * widest_cell_range`` is split along its widest axis at the
   weighted median, until the palette budget is reached. Each box becomes one
   palette entry holding the mean color of its pixels.

When there are fewer cells than slots but more distinct colors than cells,
the cut runs over the exact colors instead, so colors sharing a cell can still
get entries of their own.

Boxes are always separated by a boundary on the axis they were split on, so
two boxes never round to the same color and a frame with at least
``max_colors`` distinct colors yields exactly ``max_colors`` entries.

Nothing here depends on hash ordering or randomness: the same buffer and
options always produce the same palette.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from .alpha import pixel_rows
from .color_format import ColorFormat
from .error_handling import ValidationError

logger = logging.getLogger(__name__)

MAX_PALETTE_SIZE = 256

#: Reserved entry for pixels collapsed into full transparency
TRANSPARENT_COLOR: tuple[int, int, int, int] = (0, 0, 0, 0)

Color = tuple[int, ...]
Palette = list[Color]


def validate_max_colors(max_colors: int) -> None:
    """Validate a requested palette size.

    Raises:
        ValidationError: If ``max_colors`` is not an integer in 1..256
    """
    if isinstance(max_colors, bool) or not isinstance(max_colors, (int, np.integer)):
        raise ValidationError(f"Palette size must be an integer, got {max_colors!r}")
    if not 1 <= max_colors <= MAX_PALETTE_SIZE:
        raise ValidationError(
            f"Palette size must be between 1 and {MAX_PALETTE_SIZE}, got {max_colors}"
        )


def quantize(
    pixels: Any,
    max_colors: int,
    *,
    color_format: ColorFormat | str = ColorFormat.RGB565,
    clear_alpha: bool = True,
    clear_alpha_threshold: int = 1,
    clear_alpha_color: int = 0,
    one_bit_alpha: bool = False,
) -> Palette:
    """Reduce an RGBA buffer to at most ``max_colors`` palette entries.

    Args:
        pixels: Flat RGBA buffer, usually already alpha-normalized.
        max_colors: Palette budget, 1..256.
        color_format: Cell precision and whether alpha takes part. Palette
            entries carry 4 channels for ``rgba4444`` and 3 otherwise.
        clear_alpha: With an alpha format, collapse every pixel whose alpha is
            below ``clear_alpha_threshold`` into one reserved transparent entry
            at index 0, ``(0, 0, 0, 0)`` by default. The reserved entry counts
            toward ``max_colors``.
        clear_alpha_threshold: Alpha cutoff for collapsing, 0..256.
        clear_alpha_color: Channel value used for the RGB of the reserved
            entry, so it reads as ``(c, c, c, 0)``.
        one_bit_alpha: With an alpha format, snap entry alpha to 0 or 255.

    Returns:
        The palette, empty for an empty buffer.
    """
    validate_max_colors(max_colors)
    fmt = ColorFormat.parse(color_format)
    if not 0 <= clear_alpha_threshold <= 256:
        raise ValidationError(
            f"Clear-alpha threshold must be between 0 and 256, got {clear_alpha_threshold}"
        )
    if not 0 <= clear_alpha_color <= 255:
        raise ValidationError(
            f"Clear-alpha color must be between 0 and 255, got {clear_alpha_color}"
        )

    rgba = pixel_rows(pixels)
    if len(rgba) == 0:
        return []

    reserve = fmt.has_alpha and clear_alpha
    reserved = (clear_alpha_color,) * 3 + (0,)
    palette: Palette = []
    candidates = rgba
    if reserve:
        cleared = rgba[:, 3].astype(np.uint16) < clear_alpha_threshold
        if cleared.any():
            palette.append(reserved)
            candidates = rgba[~cleared]

    budget = max_colors - len(palette)
    if budget == 0 or len(candidates) == 0:
        return palette

    cells, weights, sums = _build_cells(candidates, fmt)
    cell_count = len(cells)
    if cell_count < budget:
        colors, color_weights, color_sums = _build_cells(candidates, fmt, exact=True)
        if len(colors) > cell_count:
            cells, weights, sums = colors, color_weights, color_sums
    boxes = _median_cut(cells, weights, budget)

    for box in boxes:
        color = _box_color(box, weights, sums)
        if fmt.has_alpha:
            if one_bit_alpha:
                color = color[:3] + ((0 if color[3] <= 127 else 255),)
            if reserve and color[3] == 0:
                if reserved in palette:
                    continue
                color = reserved
        palette.append(color)

    logger.debug(
        f"Quantized {len(rgba)} pixels ({cell_count} {fmt.value} cells) to {len(palette)} colors"
    )
    return palette


def _build_cells(
    rgba: np.ndarray, fmt: ColorFormat, exact: bool = False
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Group pixels by format cell, or by exact color when ``exact`` is set.

    Returns:
        ``(cells, weights, sums)``: cell coordinates per unique cell in key
        order, pixel counts, and per-channel color sums.
    """
    channels = fmt.channels
    if exact:
        used = rgba[:, :channels].astype(np.int64)
        keys = np.zeros(len(used), dtype=np.int64)
        for channel in range(channels):
            keys = (keys << 8) | used[:, channel]
    else:
        keys = fmt.keys(rgba)
    _, first, inverse, counts = np.unique(
        keys, return_index=True, return_inverse=True, return_counts=True
    )
    inverse = inverse.reshape(-1)

    sums = np.empty((len(first), channels), dtype=np.float64)
    for channel in range(channels):
        sums[:, channel] = np.bincount(
            inverse, weights=rgba[:, channel].astype(np.float64), minlength=len(first)
        )

    if exact:
        cells = rgba[first, :channels].astype(np.int32)
    else:
        cells = fmt.cells(rgba[first])
    return cells, counts.astype(np.int64), sums


def _median_cut(cells: np.ndarray, weights: np.ndarray, budget: int) -> list[np.ndarray]:
    """Partition cell indices into at most ``budget`` boxes."""
    if len(cells) <= budget:
        return [np.array([i]) for i in range(len(cells))]

    boxes = [np.arange(len(cells))]
    scores = [_box_score(boxes[0], cells, weights)]

    while len(boxes) < budget:
        # max() returns the first maximum, so ties go to the earliest box
        best = max(range(len(boxes)), key=scores.__getitem__)
        if scores[best] <= 0:
            break
        left, right = _split_box(boxes[best], cells, weights)
        boxes[best : best + 1] = [left, right]
        scores[best : best + 1] = [
            _box_score(left, cells, weights),
            _box_score(right, cells, weights),
        ]

    return boxes


def _box_score(box: np.ndarray, cells: np.ndarray, weights: np.ndarray) -> int:
    if len(box) < 2:
        return 0
    sub = cells[box]
    widest = int((sub.max(axis=0) - sub.min(axis=0)).max())
    return int(weights[box].sum()) * widest


def _split_box(
    box: np.ndarray, cells: np.ndarray, weights: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    sub = cells[box]
    axis = int(np.argmax(sub.max(axis=0) - sub.min(axis=0)))
    values = sub[:, axis]

    order = np.argsort(values, kind="stable")
    cumulative = np.cumsum(weights[box][order])
    median_pos = int(np.searchsorted(cumulative, cumulative[-1] / 2.0))
    median = int(values[order][median_pos])

    # Keep both halves non-empty
    cut = min(median, int(values.max()) - 1)
    mask = values <= cut
    return box[mask], box[~mask]


def _box_color(box: np.ndarray, weights: np.ndarray, sums: np.ndarray) -> Color:
    mean = sums[box].sum(axis=0) / float(weights[box].sum())
    rounded = np.clip(np.floor(mean + 0.5), 0, 255).astype(int)
    return tuple(int(v) for v in rounded)
