"""Structure inspection, metadata extraction and hashing for GIF files."""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .error_handling import GifFormatError
from .lzw import decode_indices, join_sub_blocks


@dataclass
class FrameInfo:
    """One image block together with its graphic control extension."""

    width: int
    height: int
    left: int = 0
    top: int = 0
    interlaced: bool = False
    disposal: int = 0
    transparent: bool = False
    transparent_index: int = 0
    delay_cs: int = 0
    local_color_table: list[tuple[int, int, int]] | None = None
    min_code_size: int = 0
    data_size: int = 0
    indices: bytes | None = None

    @property
    def delay_ms(self) -> int:
        return self.delay_cs * 10


@dataclass
class GifStructure:
    """Block-level view of a GIF file."""

    version: str
    width: int
    height: int
    global_color_table: list[tuple[int, int, int]] | None = None
    background_index: int = 0
    loop_count: int | None = None
    frames: list[FrameInfo] = field(default_factory=list)
    trailer: bool = False

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def duration_ms(self) -> int:
        return sum(frame.delay_ms for frame in self.frames)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "width": self.width,
            "height": self.height,
            "global_color_table": len(self.global_color_table) if self.global_color_table else 0,
            "loop_count": self.loop_count,
            "frame_count": self.frame_count,
            "duration_ms": self.duration_ms,
            "frames": [
                {
                    "width": f.width,
                    "height": f.height,
                    "left": f.left,
                    "top": f.top,
                    "disposal": f.disposal,
                    "transparent": f.transparent,
                    "transparent_index": f.transparent_index,
                    "delay_cs": f.delay_cs,
                    "colors": len(f.local_color_table) if f.local_color_table else 0,
                    "min_code_size": f.min_code_size,
                    "data_size": f.data_size,
                }
                for f in self.frames
            ],
        }


@dataclass
class GifMetadata:
    """Summary of a GIF file."""

    gif_sha: str
    filename: str
    kilobytes: float
    width: int
    height: int
    frames: int
    fps: float
    loop_count: int | None
    color_table_size: int


class _Cursor:
    def __init__(self, data: bytes):
        self.data = data
        self.position = 0

    def read(self, length: int) -> bytes:
        end = self.position + length
        if end > len(self.data):
            raise GifFormatError(f"Unexpected end of data at offset {self.position}")
        chunk = self.data[self.position : end]
        self.position = end
        return chunk

    def byte(self) -> int:
        return self.read(1)[0]

    def sub_blocks(self) -> list[bytes]:
        blocks = []
        size = self.byte()
        while size:
            blocks.append(self.read(size))
            size = self.byte()
        return blocks


def _color_table(cursor: _Cursor, bits: int) -> list[tuple[int, int, int]]:
    raw = cursor.read(3 * (1 << bits))
    return [tuple(raw[i : i + 3]) for i in range(0, len(raw), 3)]


def inspect_gif(data: bytes, decode: bool = False) -> GifStructure:
    """Walk the blocks of a GIF file.

    Args:
        data: Complete GIF file contents.
        decode: Also decompress each frame's LZW data into palette indices.

    Returns:
        GifStructure describing the screen, loop count and every frame.

    Raises:
        GifFormatError: If the data is not a well-formed GIF.
    """
    cursor = _Cursor(bytes(data))
    signature = cursor.read(6)
    if signature[:3] != b"GIF" or signature[3:] not in (b"87a", b"89a"):
        raise GifFormatError(f"Not a GIF file (signature {signature!r})")

    width, height, packed, background, _aspect = struct.unpack("<HHBBB", cursor.read(7))
    structure = GifStructure(
        version=signature[3:].decode("ascii"),
        width=width,
        height=height,
        background_index=background,
    )
    if packed & 0x80:
        structure.global_color_table = _color_table(cursor, (packed & 7) + 1)

    control: dict[str, int] | None = None
    while cursor.position < len(cursor.data):
        introducer = cursor.byte()

        if introducer == 0x3B:
            structure.trailer = True
            break

        if introducer == 0x21:
            label = cursor.byte()
            blocks = cursor.sub_blocks()
            if label == 0xF9:
                if not blocks or len(blocks[0]) < 4:
                    raise GifFormatError("Truncated graphic control extension")
                flags, delay, tindex = struct.unpack("<BHB", blocks[0][:4])
                control = {
                    "disposal": (flags >> 2) & 7,
                    "transparent": flags & 1,
                    "transparent_index": tindex,
                    "delay_cs": delay,
                }
            elif label == 0xFF and blocks and blocks[0][:11] == b"NETSCAPE2.0":
                if len(blocks) > 1 and len(blocks[1]) >= 3 and blocks[1][0] == 1:
                    structure.loop_count = struct.unpack("<H", blocks[1][1:3])[0]
            # Comments and plain text are skipped
            continue

        if introducer == 0x2C:
            structure.frames.append(_read_image(cursor, control, decode))
            control = None
            continue

        raise GifFormatError(
            f"Unknown block introducer 0x{introducer:02X} at offset {cursor.position - 1}"
        )

    return structure


def _read_image(cursor: _Cursor, control: dict[str, int] | None, decode: bool) -> FrameInfo:
    left, top, width, height, packed = struct.unpack("<HHHHB", cursor.read(9))
    if width == 0 or height == 0:
        raise GifFormatError("Image area is zero")

    frame = FrameInfo(
        width=width,
        height=height,
        left=left,
        top=top,
        interlaced=bool(packed & 0x40),
    )
    if control is not None:
        frame.disposal = control["disposal"]
        frame.transparent = bool(control["transparent"])
        frame.transparent_index = control["transparent_index"]
        frame.delay_cs = control["delay_cs"]
    if packed & 0x80:
        frame.local_color_table = _color_table(cursor, (packed & 7) + 1)

    frame.min_code_size = cursor.byte()
    if not 2 <= frame.min_code_size <= 8:
        raise GifFormatError(f"Invalid LZW minimum code size: {frame.min_code_size}")
    compressed = join_sub_blocks(cursor.sub_blocks())
    frame.data_size = len(compressed)

    if decode:
        expected = width * height
        frame.indices = decode_indices(compressed, frame.min_code_size, expected)
        if len(frame.indices) != expected:
            raise GifFormatError(
                f"Frame data holds {len(frame.indices)} pixels, expected {expected}"
            )
    return frame


def compute_sha256(data: bytes) -> str:
    """SHA256 of in-memory GIF data."""
    return hashlib.sha256(data).hexdigest()


def compute_file_sha256(file_path: Path) -> str:
    """Compute SHA256 hash of a file.

    Args:
        file_path: Path to the file to hash

    Returns:
        Hexadecimal SHA256 hash string
    """
    sha256_hash = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            sha256_hash.update(chunk)
    return sha256_hash.hexdigest()


def summarize_gif(file_path: Path) -> GifMetadata:
    """Extract a metadata record from a GIF file.

    Raises:
        OSError: If the file does not exist.
        GifFormatError: If the file is not a valid GIF.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise OSError(f"File not found: {file_path}")

    data = file_path.read_bytes()
    structure = inspect_gif(data)

    frames = structure.frame_count
    avg_delay_ms = structure.duration_ms / frames if frames else 0
    fps = 1000.0 / avg_delay_ms if avg_delay_ms > 0 else 0.0

    tables = [f.local_color_table for f in structure.frames if f.local_color_table]
    if structure.global_color_table:
        tables.append(structure.global_color_table)

    return GifMetadata(
        gif_sha=compute_sha256(data),
        filename=file_path.name,
        kilobytes=len(data) / 1024.0,
        width=structure.width,
        height=structure.height,
        frames=frames,
        fps=round(fps, 3),
        loop_count=structure.loop_count,
        color_table_size=max((len(t) for t in tables), default=0),
    )
