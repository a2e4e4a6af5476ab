"""GIF89a frame encoding and stream assembly.

Layout of a finished stream::

    "GIF89a" | logical screen descriptor | [NETSCAPE2.0 loop extension]
    ( graphic control extension | image descriptor | local color table
      | LZW minimum code size | image data sub-blocks | 0x00 ) * frames
    0x3B

The logical screen never carries a global color table: every frame ships its
own local table, since each frame is quantized independently.
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

import numpy as np

from .error_handling import StreamCapacityError, StreamStateError, ValidationError
from .lzw import encode_indices, min_code_size_for, pack_sub_blocks
from .quantize import MAX_PALETTE_SIZE, Palette

logger = logging.getLogger(__name__)

SIGNATURE = b"GIF89a"
TRAILER = 0x3B
EXTENSION_INTRODUCER = 0x21
GRAPHIC_CONTROL_LABEL = 0xF9
APPLICATION_LABEL = 0xFF
IMAGE_SEPARATOR = 0x2C

LOGICAL_SCREEN_SIZE = 7
LOOP_EXTENSION_SIZE = 19
MAX_DIMENSION = 0xFFFF
MAX_DELAY_CS = 0xFFFF

# Growth policy of the output buffer
_GROWTH_SMALL = 2.0
_GROWTH_LARGE = 1.125
_GROWTH_SWITCH = 1024 * 1024


class DisposalMode(IntEnum):
    """What the decoder does with a frame before drawing the next one."""

    UNSPECIFIED = -1
    NONE = 0
    KEEP = 1
    RESTORE_BACKGROUND = 2
    RESTORE_PREVIOUS = 3

    @property
    def bits(self) -> int:
        """Value stored in the graphic control extension."""
        return max(int(self), 0)

    @classmethod
    def parse(cls, value: Any) -> DisposalMode:
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise ValidationError(
                f"Disposal mode must be one of -1, 0, 1, 2, 3, got {value!r}"
            )
        try:
            return cls(int(value))
        except ValueError:
            raise ValidationError(
                f"Disposal mode must be one of -1, 0, 1, 2, 3, got {value!r}"
            ) from None


class StreamState(Enum):
    OPEN = "open"
    FINISHED = "finished"


def delay_to_centiseconds(delay_ms: float) -> int:
    """Convert a millisecond delay to GIF centiseconds.

    Rounds half up (15 ms -> 2 cs, 14.99 ms -> 1 cs) and clamps to the 16-bit
    field.
    """
    if delay_ms is None or not math.isfinite(delay_ms) or delay_ms < 0:
        raise ValidationError(f"Frame delay must be a non-negative number, got {delay_ms!r}")
    return min(int(math.floor(delay_ms / 10.0 + 0.5)), MAX_DELAY_CS)


def header_size(repeat: int = 0) -> int:
    """Number of bytes a stream holds right after construction."""
    size = len(SIGNATURE) + LOGICAL_SCREEN_SIZE
    if repeat >= 0:
        size += LOOP_EXTENSION_SIZE
    return size


@dataclass(frozen=True, eq=False)
class FrameDescriptor:
    """One indexed frame ready to be encoded.

    Attributes:
        index_buffer: Palette index per pixel, row-major, ``width * height`` long.
        width: Frame width in pixels.
        height: Frame height in pixels.
        palette: Local color table for this frame (RGB or RGBA entries, alpha
            is not stored in the file).
        delay_ms: Display time before the next frame.
        transparent: Whether ``transparent_index`` is flagged as transparent.
        transparent_index: Palette position rendered as "see-through".
        disposal: How the decoder disposes of this frame.
    """

    index_buffer: np.ndarray
    width: int
    height: int
    palette: Palette
    delay_ms: float = 0.0
    transparent: bool = False
    transparent_index: int = 0
    disposal: DisposalMode = DisposalMode.UNSPECIFIED
    delay_cs: int = field(init=False)

    def __post_init__(self) -> None:
        if not (0 < self.width <= MAX_DIMENSION and 0 < self.height <= MAX_DIMENSION):
            raise ValidationError(f"Frame size must be 1..{MAX_DIMENSION}, got {self.width}x{self.height}")

        index_buffer = np.asarray(self.index_buffer)
        if index_buffer.dtype != np.uint8:
            if index_buffer.size and (index_buffer.min() < 0 or index_buffer.max() > 255):
                raise ValidationError("Index buffer values must fit in one byte")
            index_buffer = index_buffer.astype(np.uint8)
        index_buffer = index_buffer.reshape(-1)
        if index_buffer.size != self.width * self.height:
            raise ValidationError(
                f"Index buffer has {index_buffer.size} entries, expected {self.width * self.height}"
            )

        if not self.palette:
            raise ValidationError("Frame palette must not be empty")
        if len(self.palette) > MAX_PALETTE_SIZE:
            raise ValidationError(
                f"Frame palette has {len(self.palette)} entries, at most {MAX_PALETTE_SIZE} are allowed"
            )
        palette = [tuple(int(c) for c in color) for color in self.palette]
        for color in palette:
            if len(color) not in (3, 4) or min(color) < 0 or max(color) > 255:
                raise ValidationError(f"Invalid palette color {color}")

        if int(index_buffer.max()) >= len(palette):
            raise ValidationError(
                f"Index {int(index_buffer.max())} is outside the {len(palette)}-color palette"
            )
        if self.transparent and not 0 <= self.transparent_index < len(palette):
            raise ValidationError(
                f"Transparent index {self.transparent_index} is outside the {len(palette)}-color palette"
            )

        object.__setattr__(self, "index_buffer", index_buffer)
        object.__setattr__(self, "palette", palette)
        object.__setattr__(self, "disposal", DisposalMode.parse(self.disposal))
        object.__setattr__(self, "delay_cs", delay_to_centiseconds(self.delay_ms))


def color_table_bits(palette_size: int) -> int:
    """Bits needed for a color table of ``palette_size`` entries (1..8)."""
    return max(1, (max(palette_size, 1) - 1).bit_length())


def color_table_bytes(palette: Palette) -> bytes:
    """RGB triples padded with black to the next power of two."""
    table_len = 1 << color_table_bits(len(palette))
    table = bytearray()
    for color in palette:
        table.extend(color[:3])
    table.extend(b"\x00" * (3 * (table_len - len(palette))))
    return bytes(table)


def graphic_control_extension(
    disposal: DisposalMode, delay_cs: int, transparent: bool, transparent_index: int
) -> bytes:
    packed = (DisposalMode.parse(disposal).bits << 2) | (1 if transparent else 0)
    return struct.pack(
        "<BBBBHBB",
        EXTENSION_INTRODUCER,
        GRAPHIC_CONTROL_LABEL,
        4,
        packed,
        delay_cs,
        transparent_index if transparent else 0,
        0,
    )


def image_descriptor(width: int, height: int, palette_size: int) -> bytes:
    packed = 0x80 | (color_table_bits(palette_size) - 1)
    return struct.pack("<BHHHHB", IMAGE_SEPARATOR, 0, 0, width, height, packed)


def encode_frame(frame: FrameDescriptor) -> bytes:
    """Serialize one frame: control extension, descriptor, table and image data."""
    min_code_size = min_code_size_for(1 << color_table_bits(len(frame.palette)))
    compressed = encode_indices(frame.index_buffer, min_code_size)
    return b"".join(
        (
            graphic_control_extension(
                frame.disposal, frame.delay_cs, frame.transparent, frame.transparent_index
            ),
            image_descriptor(frame.width, frame.height, len(frame.palette)),
            color_table_bytes(frame.palette),
            bytes((min_code_size,)),
            pack_sub_blocks(compressed),
        )
    )


def logical_screen(width: int, height: int) -> bytes:
    # No global table, 8 bits of color resolution
    return struct.pack("<HHBBB", width, height, 0x70, 0, 0)


def loop_extension(repeat: int) -> bytes:
    return (
        bytes((EXTENSION_INTRODUCER, APPLICATION_LABEL, 11))
        + b"NETSCAPE2.0"
        + struct.pack("<BBHB", 3, 1, repeat, 0)
    )


class ByteBuffer:
    """Append-only byte buffer with explicit capacity.

    With ``auto_grow`` the capacity doubles while below 1 MiB and grows by
    12.5% afterwards. Without it, a write that does not fit raises
    :class:`StreamCapacityError` and leaves the buffer untouched.
    """

    def __init__(self, initial_capacity: int = 4096, auto_grow: bool = True):
        if initial_capacity < 0:
            raise ValidationError(f"Initial capacity must not be negative, got {initial_capacity}")
        self.auto_grow = auto_grow
        self._data = bytearray(initial_capacity)
        self._length = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return self._length

    def write(self, chunk: bytes) -> None:
        end = self._length + len(chunk)
        if end > self.capacity:
            if not self.auto_grow:
                raise StreamCapacityError(
                    f"Write of {len(chunk)} bytes exceeds fixed capacity {self.capacity} "
                    f"({self._length} bytes used)",
                    context={"capacity": self.capacity, "used": self._length},
                )
            self._grow(end)
        self._data[self._length : end] = chunk
        self._length = end

    def clear(self) -> None:
        self._length = 0

    def view(self) -> memoryview:
        return memoryview(self._data)[: self._length].toreadonly()

    def getvalue(self) -> bytes:
        return bytes(self._data[: self._length])

    def _grow(self, needed: int) -> None:
        capacity = max(self.capacity, 1)
        while capacity < needed:
            factor = _GROWTH_SMALL if capacity < _GROWTH_SWITCH else _GROWTH_LARGE
            capacity = max(int(capacity * factor), capacity + 1)
        # New allocation, so views handed out earlier stay valid
        grown = bytearray(capacity)
        grown[: self._length] = self._data[: self._length]
        self._data = grown


class GifStream:
    """Accumulates an animated GIF, frame by frame.

    The stream starts OPEN with its header already written. ``write_frame``
    appends frames in call order, ``finish`` writes the trailer and moves to
    FINISHED, after which no more frames are accepted. ``bytes``/``bytes_view``
    work in both states; before ``finish`` they return an incomplete stream
    without trailer. ``reset`` discards everything and starts over.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        repeat: int = 0,
        initial_capacity: int = 4096,
        auto_grow: bool = True,
    ):
        if not (0 < width <= MAX_DIMENSION and 0 < height <= MAX_DIMENSION):
            raise ValidationError(f"Screen size must be 1..{MAX_DIMENSION}, got {width}x{height}")
        if repeat > MAX_DIMENSION:
            raise ValidationError(f"Repeat count must be at most {MAX_DIMENSION}, got {repeat}")

        self.width = width
        self.height = height
        self.repeat = repeat
        self._buffer = ByteBuffer(initial_capacity, auto_grow)
        self._frame_count = 0
        self._state = StreamState.OPEN
        self._write_header()

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    def __len__(self) -> int:
        return len(self._buffer)

    def write_frame(self, frame: FrameDescriptor) -> None:
        """Append one encoded frame.

        Raises:
            StreamStateError: If the stream was already finished.
            ValidationError: If the frame does not fit the logical screen.
            StreamCapacityError: If a fixed-capacity buffer is full.
        """
        if self._state is StreamState.FINISHED:
            raise StreamStateError(
                "Cannot write a frame to a finished GIF stream; call reset() to start a new one",
                context={"frames": self._frame_count},
            )
        if frame.width > self.width or frame.height > self.height:
            raise ValidationError(
                f"Frame {frame.width}x{frame.height} does not fit the {self.width}x{self.height} screen"
            )

        block = encode_frame(frame)
        self._buffer.write(block)
        self._frame_count += 1
        logger.debug(
            f"Wrote frame {self._frame_count}: {len(frame.palette)} colors, "
            f"{len(block)} bytes, delay {frame.delay_cs}cs, disposal {frame.disposal.bits}"
        )

    def finish(self) -> None:
        """Write the trailer and close the stream."""
        if self._state is StreamState.FINISHED:
            raise StreamStateError("GIF stream is already finished")
        self._buffer.write(bytes((TRAILER,)))
        self._state = StreamState.FINISHED
        logger.debug(f"Finished GIF stream: {self._frame_count} frames, {len(self._buffer)} bytes")

    def bytes(self) -> bytes:
        """Copy of everything written so far."""
        return self._buffer.getvalue()

    def bytes_view(self) -> memoryview:
        """Read-only view of everything written so far, without copying."""
        return self._buffer.view()

    def reset(self) -> None:
        """Discard all content and reopen with a fresh header."""
        self._buffer.clear()
        self._frame_count = 0
        self._state = StreamState.OPEN
        self._write_header()

    def _write_header(self) -> None:
        header = SIGNATURE + logical_screen(self.width, self.height)
        if self.repeat >= 0:
            header += loop_extension(self.repeat)
        self._buffer.write(header)
