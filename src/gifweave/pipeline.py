"""Frame-by-frame pipeline from rendered RGBA buffers to an animated GIF.

For every frame, in order::

    normalize_alpha -> quantize -> find_transparent_index + apply_palette
        -> FrameDescriptor -> GifStream.write_frame

Frames are processed synchronously and strictly in sequence: the renderer
behind a ``FrameSource`` is typically stateful, and the GIF stream is
append-only.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import fields
from typing import Any

import numpy as np

from .alpha import as_pixel_array, normalize_alpha
from .config import AnimationConfig
from .encoder import DisposalMode, FrameDescriptor, GifStream, StreamState
from .error_handling import EncodingError, StreamStateError, error_context
from .palette import apply_palette, find_transparent_index
from .quantize import quantize

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    """Anything that can render an animation one frame at a time.

    Implementations wrap the actual renderer. ``render_frame`` is called once
    per frame with strictly increasing indices starting at 0, and must return
    a flat RGBA buffer of exactly ``width * height * 4`` bytes for the size
    the encoder was configured with.
    """

    @property
    @abstractmethod
    def frame_count(self) -> int:
        """Total number of frames the source can render."""

    @abstractmethod
    def render_frame(self, index: int) -> Any:
        """Advance to frame ``index`` and return its RGBA pixels."""


class ScratchBuffer:
    """Single pixel buffer reused for every frame of an encoding session.

    ``load`` overwrites the whole buffer before any stage reads it, so no
    state leaks from one frame to the next.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self._data = np.zeros(width * height * 4, dtype=np.uint8)

    @property
    def array(self) -> np.ndarray:
        return self._data

    def load(self, pixels: Any) -> np.ndarray:
        source = as_pixel_array(pixels, self.width, self.height)
        np.copyto(self._data, source)
        return self._data


def process_frame(
    pixels: Any,
    config: AnimationConfig,
    *,
    delay_ms: float | None = None,
    disposal: int | None = None,
    scratch: ScratchBuffer | None = None,
) -> FrameDescriptor:
    """Run one frame through normalization, quantization and mapping.

    Without ``scratch`` the caller's buffer is left untouched; with it, the
    pixels are copied into the scratch buffer and processed there.
    """
    if scratch is not None:
        data = scratch.load(pixels)
        normalize_alpha(data, config.ALPHA_THRESHOLD)
    else:
        data = as_pixel_array(pixels, config.WIDTH, config.HEIGHT)
        data = normalize_alpha(data, config.ALPHA_THRESHOLD, inplace=False)

    settings = config.QUANTIZE
    palette = quantize(
        data,
        settings.MAX_COLORS,
        color_format=settings.COLOR_FORMAT,
        clear_alpha=settings.CLEAR_ALPHA,
        clear_alpha_threshold=settings.CLEAR_ALPHA_THRESHOLD,
        clear_alpha_color=settings.CLEAR_ALPHA_COLOR,
        one_bit_alpha=settings.ONE_BIT_ALPHA,
    )
    transparent_index = find_transparent_index(palette)
    index_buffer = apply_palette(
        data,
        palette,
        color_format=settings.COLOR_FORMAT,
        clear_alpha_threshold=settings.CLEAR_ALPHA_THRESHOLD if settings.CLEAR_ALPHA else 1,
        one_bit_alpha=settings.ONE_BIT_ALPHA,
    )

    return FrameDescriptor(
        index_buffer=index_buffer,
        width=config.WIDTH,
        height=config.HEIGHT,
        palette=palette,
        delay_ms=config.frame_delay_ms if delay_ms is None else delay_ms,
        transparent=transparent_index is not None,
        transparent_index=transparent_index if transparent_index is not None else 0,
        disposal=DisposalMode.parse(config.DISPOSAL if disposal is None else disposal),
    )


class AnimationEncoder:
    """Encoding session: one GIF stream plus the scratch buffer feeding it.

    Precondition violations (wrong buffer size, bad disposal, writing after
    ``finish``) surface immediately from the call that caused them, leaving
    the frames already written intact. Any other failure is raised as
    :class:`EncodingError` naming the frame.
    """

    def __init__(self, config: AnimationConfig):
        self.config = config
        self.stream = GifStream(
            config.WIDTH,
            config.HEIGHT,
            repeat=config.REPEAT,
            initial_capacity=config.INITIAL_CAPACITY,
            auto_grow=config.AUTO_GROW,
        )
        self.scratch = ScratchBuffer(config.WIDTH, config.HEIGHT)

    @property
    def frames_written(self) -> int:
        return self.stream.frame_count

    @property
    def finished(self) -> bool:
        return self.stream.state is StreamState.FINISHED

    def encode_frame(
        self, pixels: Any, *, delay_ms: float | None = None, disposal: int | None = None
    ) -> FrameDescriptor:
        """Process and append one frame, returning its descriptor."""
        index = self.stream.frame_count
        if self.finished:
            raise StreamStateError(
                f"Cannot encode frame {index}: the GIF stream is already finished",
                context={"frame": index},
            )

        with error_context(
            f"encode frame {index}", EncodingError, context={"frame": index}, logger=logger
        ):
            frame = process_frame(
                pixels, self.config, delay_ms=delay_ms, disposal=disposal, scratch=self.scratch
            )
            self.stream.write_frame(frame)
        return frame

    def encode(
        self,
        source: FrameSource,
        *,
        max_frames: int | None = None,
        should_continue: Callable[[int], bool] | None = None,
    ) -> bytes:
        """Encode every frame of ``source`` and return the finished GIF.

        Args:
            source: Frame provider, asked for frames 0, 1, 2, ... in order.
            max_frames: Stop after this many frames.
            should_continue: Called with the next frame index before it is
                rendered; returning False stops the loop.

        Stopping early still finishes the stream, so the result is a valid
        GIF holding the frames encoded so far.
        """
        total = source.frame_count
        if max_frames is not None:
            total = min(total, max_frames)

        logger.info(
            f"Encoding {total} frames at {self.config.WIDTH}x{self.config.HEIGHT}, "
            f"{self.config.frame_delay_ms:.1f}ms per frame"
        )
        start = time.perf_counter()

        for index in range(total):
            if should_continue is not None and not should_continue(index):
                logger.info(f"Stopped after {index} of {total} frames")
                break
            with error_context(
                f"render frame {index}", EncodingError, context={"frame": index}, logger=logger
            ):
                pixels = source.render_frame(index)
            self.encode_frame(pixels)

        self.finish()
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Encoded {self.frames_written} frames into {len(self.stream)} bytes in {elapsed_ms:.0f}ms"
        )
        return self.bytes()

    def finish(self) -> None:
        self.stream.finish()

    def bytes(self) -> bytes:
        """Everything written so far; incomplete until ``finish`` was called."""
        return self.stream.bytes()

    def reset(self) -> None:
        self.stream.reset()


def encode_animation(
    source: FrameSource,
    config: AnimationConfig | None = None,
    *,
    max_frames: int | None = None,
    should_continue: Callable[[int], bool] | None = None,
    **options: Any,
) -> bytes:
    """Encode ``source`` in a fresh session.

    Keyword ``options`` are config fields in upper or lower case, e.g.
    ``width=64, height=64, delay_ms=40``. Without ``config`` they build the
    whole configuration; with it they override single fields.

    Raises:
        ConfigurationError: If the options do not form a valid configuration.
    """
    if config is None:
        config = AnimationConfig.from_dict(options)
    elif options:
        current = {f.name: getattr(config, f.name) for f in fields(config)}
        config = AnimationConfig.from_dict({**current, **options})
    return AnimationEncoder(config).encode(
        source, max_frames=max_frames, should_continue=should_continue
    )
