"""Alpha normalization for rendered RGBA frames.

GIF transparency is binary: a pixel either shows its palette color or shows
whatever is underneath. Antialiased renderers produce edge pixels with partial
alpha, and if those reach the quantizer as-is they turn into dark "ghost"
colors that flicker from frame to frame. Normalizing first snaps every pixel to
fully opaque or fully transparent black.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from .error_handling import ValidationError

DEFAULT_ALPHA_THRESHOLD = 128


def as_pixel_array(pixels: Any, width: int, height: int) -> np.ndarray:
    """Return ``pixels`` as a flat uint8 array after checking its length.

    Bytes-like inputs are wrapped without copying; a bytearray therefore stays
    writable and shares memory with the returned array.

    Raises:
        ValidationError: If the size is not positive or the buffer length is
            not ``width * height * 4``.
    """
    if width <= 0 or height <= 0:
        raise ValidationError(f"Frame size must be positive, got {width}x{height}")

    array = _flat_uint8(pixels)
    expected = width * height * 4
    if array.size != expected:
        raise ValidationError(
            f"Pixel buffer has {array.size} bytes, expected {expected} for a {width}x{height} RGBA frame",
            context={"width": width, "height": height, "length": int(array.size)},
        )
    return array


def normalize_alpha(
    pixels: Any, threshold: int = DEFAULT_ALPHA_THRESHOLD, *, inplace: bool = True
) -> np.ndarray:
    """Binarize alpha against ``threshold``.

    Pixels with ``alpha < threshold`` become ``(0, 0, 0, 0)``; all other pixels
    keep their RGB and get alpha 255. A threshold of 0 makes every pixel opaque
    and any threshold of 256 or more makes every pixel transparent black.

    Args:
        pixels: Flat RGBA buffer (bytearray, bytes, memoryview or uint8 array).
        threshold: Alpha cutoff, must not be negative.
        inplace: Write into ``pixels`` when it is writable. Read-only inputs are
            always copied.

    Returns:
        The normalized flat uint8 array.
    """
    if threshold < 0:
        raise ValidationError(f"Alpha threshold must not be negative, got {threshold}")

    array = _flat_uint8(pixels)
    if array.size % 4:
        raise ValidationError(f"Pixel buffer length {array.size} is not a multiple of 4")
    if not inplace or not array.flags.writeable:
        array = array.copy()

    rgba = array.reshape(-1, 4)
    # uint16 holds every alpha value plus the 256 cutoff
    cutoff = min(int(threshold), 256)
    transparent = rgba[:, 3].astype(np.uint16) < cutoff
    rgba[transparent] = 0
    rgba[~transparent, 3] = 255
    return array


def pixel_rows(pixels: Any) -> np.ndarray:
    """View a flat RGBA buffer as an ``(N, 4)`` uint8 array."""
    array = _flat_uint8(pixels)
    if array.size % 4:
        raise ValidationError(f"Pixel buffer length {array.size} is not a multiple of 4")
    return array.reshape(-1, 4)


def is_normalized(pixels: Any) -> bool:
    """Return True if every alpha is 0 or 255 and transparent pixels are black."""
    rgba = pixel_rows(pixels)
    alpha = rgba[:, 3]
    if not np.all((alpha == 0) | (alpha == 255)):
        return False
    return not np.any(rgba[alpha == 0, :3])


def _flat_uint8(pixels: Any) -> np.ndarray:
    if isinstance(pixels, np.ndarray):
        if pixels.dtype != np.uint8:
            raise ValidationError(f"Pixel arrays must be uint8, got {pixels.dtype}")
        return pixels.reshape(-1)
    try:
        return np.frombuffer(pixels, dtype=np.uint8)
    except TypeError as e:
        raise ValidationError(f"Unsupported pixel buffer type: {type(pixels).__name__}") from e
