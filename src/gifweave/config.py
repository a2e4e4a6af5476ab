"""Configuration settings for gifweave."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from .color_format import ColorFormat
from .error_handling import ConfigurationError


@dataclass
class QuantizeConfig:
    """Configuration for per-frame palette quantization."""

    # Palette budget per frame (GIF allows at most 256)
    MAX_COLORS: int = 256

    # Cell precision: rgb565, rgb444 or rgba4444 (alpha takes part)
    COLOR_FORMAT: ColorFormat = ColorFormat.RGBA4444

    # Collapse transparent pixels into one reserved palette slot
    CLEAR_ALPHA: bool = True

    # Pixels with alpha below this value are collapsed (1 = only alpha 0)
    CLEAR_ALPHA_THRESHOLD: int = 1

    # RGB channel value of the reserved transparent slot
    CLEAR_ALPHA_COLOR: int = 0

    # Snap palette and pixel alpha to 0/255
    ONE_BIT_ALPHA: bool = False

    def __post_init__(self) -> None:
        self.COLOR_FORMAT = ColorFormat.parse(self.COLOR_FORMAT)

        if isinstance(self.MAX_COLORS, bool) or not isinstance(self.MAX_COLORS, int):
            raise ValueError(f"MAX_COLORS must be an integer, got {self.MAX_COLORS!r}")
        if not 1 <= self.MAX_COLORS <= 256:
            raise ValueError(f"MAX_COLORS must be between 1 and 256, got {self.MAX_COLORS}")

        if not 0 <= self.CLEAR_ALPHA_THRESHOLD <= 256:
            raise ValueError(
                f"CLEAR_ALPHA_THRESHOLD must be between 0 and 256, got {self.CLEAR_ALPHA_THRESHOLD}"
            )
        if not 0 <= self.CLEAR_ALPHA_COLOR <= 255:
            raise ValueError(
                f"CLEAR_ALPHA_COLOR must be between 0 and 255, got {self.CLEAR_ALPHA_COLOR}"
            )


@dataclass
class AnimationConfig:
    """Configuration for turning a frame sequence into one animated GIF."""

    # Output frame size in pixels
    WIDTH: int
    HEIGHT: int

    # Playback speed; ignored when DELAY_MS is set
    FRAME_RATE: float = 30.0

    # Explicit per-frame delay in milliseconds
    DELAY_MS: float | None = None

    # Pixels with alpha below this become transparent, the rest opaque
    ALPHA_THRESHOLD: int = 128

    # -1 unspecified, 0 none, 1 keep, 2 restore background, 3 restore previous.
    # Restoring the background avoids trails with transparent frames.
    DISPOSAL: int = 2

    # Loop count, 0 = forever, -1 = no loop extension (play once)
    REPEAT: int = 0

    # Output buffer sizing
    INITIAL_CAPACITY: int = 4096
    AUTO_GROW: bool = True

    QUANTIZE: QuantizeConfig = field(default_factory=QuantizeConfig)

    def __post_init__(self) -> None:
        if self.WIDTH <= 0 or self.HEIGHT <= 0:
            raise ValueError(f"WIDTH and HEIGHT must be positive, got {self.WIDTH}x{self.HEIGHT}")
        if self.WIDTH > 0xFFFF or self.HEIGHT > 0xFFFF:
            raise ValueError(f"WIDTH and HEIGHT must be at most 65535, got {self.WIDTH}x{self.HEIGHT}")

        if self.DELAY_MS is None and self.FRAME_RATE <= 0:
            raise ValueError(f"FRAME_RATE must be positive, got {self.FRAME_RATE}")
        if self.DELAY_MS is not None and self.DELAY_MS < 0:
            raise ValueError(f"DELAY_MS must be non-negative, got {self.DELAY_MS}")

        if not 0 <= self.ALPHA_THRESHOLD <= 256:
            raise ValueError(f"ALPHA_THRESHOLD must be between 0 and 256, got {self.ALPHA_THRESHOLD}")

        if (
            isinstance(self.DISPOSAL, bool)
            or not isinstance(self.DISPOSAL, int)
            or self.DISPOSAL not in (-1, 0, 1, 2, 3)
        ):
            raise ValueError(f"DISPOSAL must be one of -1, 0, 1, 2, 3, got {self.DISPOSAL}")

        if not -1 <= self.REPEAT <= 0xFFFF:
            raise ValueError(f"REPEAT must be between -1 and 65535, got {self.REPEAT}")

        if self.INITIAL_CAPACITY < 0:
            raise ValueError(f"INITIAL_CAPACITY must be non-negative, got {self.INITIAL_CAPACITY}")

        if isinstance(self.QUANTIZE, Mapping):
            self.QUANTIZE = QuantizeConfig(**_upper_keys(self.QUANTIZE, QuantizeConfig))

    @property
    def frame_delay_ms(self) -> float:
        """Delay between frames, from DELAY_MS or derived from FRAME_RATE."""
        if self.DELAY_MS is not None:
            return float(self.DELAY_MS)
        return 1000.0 / self.FRAME_RATE

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnimationConfig":
        """Build a config from a mapping such as a parsed JSON file.

        Keys may be upper or lower case; ``quantize`` may hold a nested mapping.

        Raises:
            ConfigurationError: On unknown keys or invalid values.
        """
        try:
            return cls(**_upper_keys(data, cls))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid animation configuration: {e}", cause=e) from e


@dataclass
class LoggingConfig:
    """Logging configuration with environment variable overrides."""

    # Override with: GIFWEAVE_LOG_LEVEL
    LOG_LEVEL: str = "INFO"

    # Directory for timestamped log files, None logs to the console only.
    # Override with: GIFWEAVE_LOGS_DIR
    LOGS_DIR: Path | None = None

    def __post_init__(self) -> None:
        """Apply environment variable overrides after initialization."""
        env_level = os.getenv("GIFWEAVE_LOG_LEVEL")
        if env_level:
            self.LOG_LEVEL = env_level
        env_dir = os.getenv("GIFWEAVE_LOGS_DIR")
        if env_dir:
            self.LOGS_DIR = Path(env_dir)

        self.LOG_LEVEL = self.LOG_LEVEL.upper()
        if self.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL: {self.LOG_LEVEL}")


def _upper_keys(data: Mapping[str, Any], target: type) -> dict[str, Any]:
    known = {f.name for f in fields(target)}
    result: dict[str, Any] = {}
    for key, value in data.items():
        name = str(key).upper()
        if name not in known:
            raise ConfigurationError(
                f"Unknown {target.__name__} option {key!r}, expected one of: {', '.join(sorted(known))}"
            )
        result[name] = value
    return result


# Default configuration instances
DEFAULT_QUANTIZE_CONFIG = QuantizeConfig()
