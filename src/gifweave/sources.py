"""Frame sources feeding the encoding pipeline.

Three flavours are provided: frames already in memory, an image sequence on
disk and generated test animations. All of them hand out flat RGBA buffers of
``width * height * 4`` bytes.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image, ImageDraw

from .alpha import as_pixel_array
from .error_handling import ValidationError, error_context
from .pipeline import FrameSource

logger = logging.getLogger(__name__)

# Supersampling factor used to antialias drawn shapes
_SUPERSAMPLE = 4


class ArrayFrameSource(FrameSource):
    """Frames that were rendered ahead of time."""

    def __init__(self, frames: Sequence[Any]):
        self.frames = list(frames)

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def render_frame(self, index: int) -> Any:
        return self.frames[index]


class ImageSequenceSource(FrameSource):
    """One image file per frame, loaded lazily with Pillow.

    Images are converted to RGBA. Those that do not match the target size are
    resized with LANCZOS; without an explicit size, the first image decides.
    """

    def __init__(
        self, paths: Sequence[Path | str], width: int | None = None, height: int | None = None
    ):
        self.paths = [Path(p) for p in paths]
        if not self.paths:
            raise ValidationError("Image sequence is empty")

        if width is None or height is None:
            with Image.open(self.paths[0]) as first:
                first_width, first_height = first.size
            width = first_width if width is None else width
            height = first_height if height is None else height

        self.width = width
        self.height = height

    @classmethod
    def from_directory(
        cls,
        directory: Path | str,
        pattern: str = "*.png",
        width: int | None = None,
        height: int | None = None,
    ) -> ImageSequenceSource:
        """Collect the files matching ``pattern`` in name order."""
        directory = Path(directory)
        if not directory.is_dir():
            raise ValidationError(f"Frames directory not found: {directory}")
        paths = sorted(directory.glob(pattern))
        if not paths:
            raise ValidationError(f"No files matching {pattern!r} in {directory}")
        logger.info(f"Found {len(paths)} frames in {directory}")
        return cls(paths, width, height)

    @property
    def frame_count(self) -> int:
        return len(self.paths)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def render_frame(self, index: int) -> np.ndarray:
        path = self.paths[index]
        with error_context(f"load frame {path.name}", ValidationError, context={"path": str(path)}):
            with Image.open(path) as img:
                rgba = img.convert("RGBA")
        if rgba.size != self.size:
            rgba = rgba.resize(self.size, Image.Resampling.LANCZOS)
        return np.asarray(rgba, dtype=np.uint8).reshape(-1)


class SyntheticFrameSource(FrameSource):
    """Generated animations for demos and tests.

    Content types:
        orbit: antialiased disc circling on a transparent background
        gradient: moving multi-hue gradient, many distinct colors
        fade: solid square whose alpha ramps from 0 to 255
        solid: opaque color blocks shifting every frame
    """

    CONTENT_TYPES = ("orbit", "gradient", "fade", "solid")

    def __init__(self, width: int, height: int, frames: int = 12, content_type: str = "orbit"):
        if width <= 0 or height <= 0:
            raise ValidationError(f"Frame size must be positive, got {width}x{height}")
        if frames <= 0:
            raise ValidationError(f"Frame count must be positive, got {frames}")
        if content_type not in self.CONTENT_TYPES:
            raise ValidationError(
                f"Unknown content type {content_type!r}, expected one of: {', '.join(self.CONTENT_TYPES)}"
            )
        self.width = width
        self.height = height
        self.frames = frames
        self.content_type = content_type

    @property
    def frame_count(self) -> int:
        return self.frames

    def render_frame(self, index: int) -> np.ndarray:
        image = self.create_frame(index)
        pixels = np.asarray(image.convert("RGBA"), dtype=np.uint8).reshape(-1)
        return as_pixel_array(pixels, self.width, self.height)

    def create_frame(self, index: int) -> Image.Image:
        """Draw frame ``index`` as a Pillow image."""
        content_generators = {
            "orbit": self._create_orbit_frame,
            "gradient": self._create_gradient_frame,
            "fade": self._create_fade_frame,
            "solid": self._create_solid_frame,
        }
        return content_generators[self.content_type](index)

    def _create_orbit_frame(self, index: int) -> Image.Image:
        """Disc on transparency, drawn large and downsampled for soft edges."""
        big_w, big_h = self.width * _SUPERSAMPLE, self.height * _SUPERSAMPLE
        img = Image.new("RGBA", (big_w, big_h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)

        phase = (index / self.frames) * 2 * math.pi
        radius = max(min(big_w, big_h) // 6, _SUPERSAMPLE)
        orbit = min(big_w, big_h) / 2 - radius
        cx = big_w / 2 + orbit * math.cos(phase)
        cy = big_h / 2 + orbit * math.sin(phase)

        hue = int(255 * index / self.frames)
        draw.ellipse(
            (cx - radius, cy - radius, cx + radius, cy + radius),
            fill=(255, hue, 255 - hue, 255),
        )
        return img.resize((self.width, self.height), Image.Resampling.LANCZOS)

    def _create_gradient_frame(self, index: int) -> Image.Image:
        phase = (index / self.frames) * 2 * np.pi
        x_coords, y_coords = np.meshgrid(
            np.arange(self.width), np.arange(self.height), indexing="xy"
        )
        x_norm = x_coords / max(self.width - 1, 1)
        y_norm = y_coords / max(self.height - 1, 1)

        r = (127.5 + 127.5 * np.sin(2 * np.pi * x_norm + phase)).astype(np.uint8)
        g = (255 * y_norm).astype(np.uint8)
        b = (127.5 + 127.5 * np.cos(2 * np.pi * (x_norm + y_norm) - phase)).astype(np.uint8)

        return Image.fromarray(np.stack([r, g, b], axis=-1), "RGB")

    def _create_fade_frame(self, index: int) -> Image.Image:
        alpha = 255 if self.frames == 1 else round(255 * index / (self.frames - 1))
        img = Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        inset_x, inset_y = self.width // 4, self.height // 4
        draw.rectangle(
            (inset_x, inset_y, self.width - 1 - inset_x, self.height - 1 - inset_y),
            fill=(40, 120, 220, alpha),
        )
        return img

    def _create_solid_frame(self, index: int) -> Image.Image:
        colors = np.array(
            [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0), (255, 0, 255)],
            dtype=np.uint8,
        )
        block_size = max(min(self.width, self.height) // 4, 1)
        img_array = np.empty((self.height, self.width, 3), dtype=np.uint8)

        for i, x in enumerate(range(0, self.width, block_size)):
            for j, y in enumerate(range(0, self.height, block_size)):
                img_array[y : y + block_size, x : x + block_size] = colors[(i + j + index) % len(colors)]

        return Image.fromarray(img_array, "RGB")
