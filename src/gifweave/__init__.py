"""gifweave - animated GIF encoding from rendered RGBA frames."""

__version__: str = "0.1.0"

# Public re-exports for convenience ---------------------------------------------------

from .alpha import normalize_alpha
from .color_format import ColorFormat
from .config import AnimationConfig, LoggingConfig, QuantizeConfig
from .encoder import (
    DisposalMode,
    FrameDescriptor,
    GifStream,
    StreamState,
    delay_to_centiseconds,
    encode_frame,
    header_size,
)
from .error_handling import (
    ConfigurationError,
    EncodingError,
    GifFormatError,
    GifWeaveError,
    StreamCapacityError,
    StreamStateError,
    ValidationError,
)
from .meta import inspect_gif
from .palette import apply_palette, find_transparent_index
from .pipeline import AnimationEncoder, FrameSource, encode_animation, process_frame
from .quantize import quantize
from .sources import ArrayFrameSource, ImageSequenceSource, SyntheticFrameSource

__all__ = [
    "AnimationConfig",
    "AnimationEncoder",
    "ArrayFrameSource",
    "ColorFormat",
    "ConfigurationError",
    "DisposalMode",
    "EncodingError",
    "FrameDescriptor",
    "FrameSource",
    "GifFormatError",
    "GifStream",
    "GifWeaveError",
    "ImageSequenceSource",
    "LoggingConfig",
    "QuantizeConfig",
    "StreamCapacityError",
    "StreamState",
    "StreamStateError",
    "SyntheticFrameSource",
    "ValidationError",
    "apply_palette",
    "delay_to_centiseconds",
    "encode_animation",
    "encode_frame",
    "find_transparent_index",
    "header_size",
    "inspect_gif",
    "normalize_alpha",
    "process_frame",
    "quantize",
]
