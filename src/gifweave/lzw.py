"""GIF flavoured LZW compression.

Codes are variable width, starting at ``min_code_size + 1`` bits and growing up
to 12 bits. The first code is always a clear code; once all 4096 codes are in
use a clear code resets the dictionary. Bits are packed least significant
first, and the packed bytes are split into sub-blocks of at most 255 bytes.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import numpy as np

from .error_handling import GifFormatError, ValidationError

MAX_CODE_SIZE = 12
MAX_CODES = 1 << MAX_CODE_SIZE
SUB_BLOCK_SIZE = 255


def min_code_size_for(palette_size: int) -> int:
    """LZW minimum code size for a color table holding ``palette_size`` entries."""
    return max(2, (max(palette_size, 2) - 1).bit_length())


def encode_indices(indices: Any, min_code_size: int) -> bytes:
    """Compress palette indices into packed LZW bytes (without sub-blocks).

    Args:
        indices: Iterable of ints or a uint8 array, each below ``2 ** min_code_size``.
        min_code_size: Root code size, 2..8.
    """
    if not 2 <= min_code_size <= 8:
        raise ValidationError(f"LZW minimum code size must be 2..8, got {min_code_size}")
    if isinstance(indices, (bytes, bytearray, memoryview)):
        data = list(bytes(indices))
    else:
        data = np.asarray(indices, dtype=np.uint8).reshape(-1).tolist()

    clear_code = 1 << min_code_size
    end_code = clear_code + 1
    if data and max(data) >= clear_code:
        raise ValidationError(
            f"Index {max(data)} does not fit LZW minimum code size {min_code_size}"
        )
    out = bytearray()
    accumulator = 0
    bit_count = 0
    code_size = min_code_size + 1
    max_code = (1 << code_size) - 1
    next_code = end_code + 1
    table: dict[int, int] = {}

    def put(code: int) -> None:
        nonlocal accumulator, bit_count, code_size, max_code
        accumulator |= code << bit_count
        bit_count += code_size
        while bit_count >= 8:
            out.append(accumulator & 0xFF)
            accumulator >>= 8
            bit_count -= 8
        # The decoder widens its codes once its table reaches the next power of two
        if next_code > max_code and code_size < MAX_CODE_SIZE:
            code_size += 1
            max_code = (1 << code_size) - 1

    put(clear_code)
    if not data:
        put(end_code)
        return _flush(out, accumulator, bit_count)

    prefix = data[0]
    for index in data[1:]:
        key = (prefix << 8) | index
        code = table.get(key)
        if code is not None:
            prefix = code
            continue

        put(prefix)
        if next_code < MAX_CODES:
            table[key] = next_code
            next_code += 1
        else:
            table.clear()
            next_code = end_code + 1
            put(clear_code)
            code_size = min_code_size + 1
            max_code = (1 << code_size) - 1
        prefix = index

    put(prefix)
    put(end_code)
    return _flush(out, accumulator, bit_count)


def _flush(out: bytearray, accumulator: int, bit_count: int) -> bytes:
    if bit_count > 0:
        out.append(accumulator & 0xFF)
    return bytes(out)


def pack_sub_blocks(data: bytes) -> bytes:
    """Split ``data`` into length-prefixed sub-blocks and add the terminator."""
    chunks = bytearray()
    for start in range(0, len(data), SUB_BLOCK_SIZE):
        chunk = data[start : start + SUB_BLOCK_SIZE]
        chunks.append(len(chunk))
        chunks.extend(chunk)
    chunks.append(0)
    return bytes(chunks)


def decode_indices(data: bytes, min_code_size: int, expected: int | None = None) -> bytes:
    """Inverse of :func:`encode_indices`.

    Args:
        data: Packed LZW bytes with sub-block framing already removed.
        min_code_size: Root code size from the image data block.
        expected: Stop once this many indices were produced.

    Raises:
        GifFormatError: On codes that reference entries not yet defined.
    """
    if not 2 <= min_code_size <= 8:
        raise GifFormatError(f"Invalid LZW minimum code size: {min_code_size}")

    clear_code = 1 << min_code_size
    end_code = clear_code + 1
    root = [bytes((i,)) for i in range(clear_code)] + [b"", b""]
    reader = _CodeReader(data)
    output = bytearray()

    entries = list(root)
    code_size = min_code_size + 1
    previous: bytes | None = None

    while expected is None or len(output) < expected:
        code = reader.read(code_size)
        if code is None or code == end_code:
            break
        if code == clear_code:
            entries = list(root)
            code_size = min_code_size + 1
            previous = None
            continue

        if code < len(entries):
            entry = entries[code]
            if previous is not None and len(entries) < MAX_CODES:
                entries.append(previous + entry[:1])
        elif code == len(entries) and previous is not None:
            entry = previous + previous[:1]
            entries.append(entry)
        else:
            raise GifFormatError(f"LZW code {code} is not defined (table size {len(entries)})")

        output.extend(entry)
        previous = entry
        if len(entries) == (1 << code_size) and code_size < MAX_CODE_SIZE:
            code_size += 1

    if expected is not None:
        del output[expected:]
    return bytes(output)


class _CodeReader:
    """Reads variable-width codes, least significant bit first."""

    def __init__(self, data: bytes):
        self.data = data
        self.position = 0
        self.accumulator = 0
        self.bit_count = 0

    def read(self, code_size: int) -> int | None:
        while self.bit_count < code_size and self.position < len(self.data):
            self.accumulator |= self.data[self.position] << self.bit_count
            self.position += 1
            self.bit_count += 8
        if self.bit_count < code_size:
            return None
        code = self.accumulator & ((1 << code_size) - 1)
        self.accumulator >>= code_size
        self.bit_count -= code_size
        return code


def join_sub_blocks(blocks: Iterable[bytes]) -> bytes:
    """Concatenate sub-block payloads."""
    return b"".join(blocks)
