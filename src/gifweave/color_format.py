"""Channel formats used to bucket colors during quantization and mapping."""

from __future__ import annotations

from enum import Enum

import numpy as np


class ColorFormat(Enum):
    """Per-channel precision used when grouping colors.

    Values mirror the names used on the command line. The shifts are applied to
    8-bit channels, so ``RGB565`` keeps 5 bits of red, 6 of green and 5 of blue.
    """

    RGB565 = "rgb565"
    RGB444 = "rgb444"
    RGBA4444 = "rgba4444"

    @property
    def shifts(self) -> tuple[int, ...]:
        return _SHIFTS[self]

    @property
    def has_alpha(self) -> bool:
        return self is ColorFormat.RGBA4444

    @property
    def channels(self) -> int:
        """Number of channels a palette entry carries in this format."""
        return 4 if self.has_alpha else 3

    @classmethod
    def parse(cls, value: str | ColorFormat) -> ColorFormat:
        """Return the format named by ``value`` (case-insensitive)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown color format {value!r}, expected one of: {valid}") from None

    def cells(self, rgba: np.ndarray) -> np.ndarray:
        """Map an ``(N, 4)`` uint8 array to ``(N, channels)`` cell coordinates."""
        used = rgba[:, : self.channels].astype(np.int32)
        return used >> np.asarray(self.shifts, dtype=np.int32)

    def keys(self, rgba: np.ndarray) -> np.ndarray:
        """Pack cell coordinates into one integer key per pixel."""
        cells = self.cells(rgba)
        key = np.zeros(len(cells), dtype=np.int64)
        for channel, shift in enumerate(self.shifts):
            key = (key << (8 - shift)) | cells[:, channel]
        return key


_SHIFTS: dict[ColorFormat, tuple[int, ...]] = {
    ColorFormat.RGB565: (3, 2, 3),
    ColorFormat.RGB444: (4, 4, 4),
    ColorFormat.RGBA4444: (4, 4, 4, 4),
}
