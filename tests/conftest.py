"""Shared fixtures and frame builders for the gifweave test-suite."""

from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def solid_frame(width: int, height: int, rgba: tuple[int, int, int, int]) -> bytearray:
    """Flat RGBA buffer filled with a single color."""
    return bytearray(bytes(rgba) * (width * height))


def frame_from_pixels(pixels: list[tuple[int, int, int, int]]) -> bytearray:
    """Flat RGBA buffer from a list of RGBA tuples."""
    return bytearray(b"".join(bytes(p) for p in pixels))


def gradient_frame(width: int, height: int, alpha: int = 255) -> np.ndarray:
    """Horizontal red / vertical green ramp with a fixed alpha."""
    xs, ys = np.meshgrid(np.arange(width), np.arange(height), indexing="xy")
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., 0] = (xs * 255 // max(width - 1, 1)).astype(np.uint8)
    rgba[..., 1] = (ys * 255 // max(height - 1, 1)).astype(np.uint8)
    rgba[..., 2] = 64
    rgba[..., 3] = alpha
    return rgba.reshape(-1)


def sprite_frame(width: int, height: int, index: int) -> np.ndarray:
    """Opaque square that moves one pixel per frame on a transparent background."""
    rgba = np.zeros((height, width, 4), dtype=np.uint8)
    size = max(min(width, height) // 3, 1)
    x = index % max(width - size, 1)
    rgba[1 : 1 + size, x : x + size] = (200, 40, 40, 255)
    # Soft edge column with partial alpha
    if x + size < width:
        rgba[1 : 1 + size, x + size] = (200, 40, 40, 100)
    return rgba.reshape(-1)


@pytest.fixture
def frames_dir(tmp_path: Path) -> Path:
    """Directory with four 8x6 RGBA PNG frames."""
    directory = tmp_path / "frames"
    directory.mkdir()
    for index in range(4):
        pixels = sprite_frame(8, 6, index).reshape(6, 8, 4)
        Image.fromarray(pixels, "RGBA").save(directory / f"frame_{index:03d}.png")
    return directory
