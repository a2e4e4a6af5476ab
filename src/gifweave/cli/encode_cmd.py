"""Encode command: turn a directory of frame images into an animated GIF."""

from pathlib import Path

import click

from ..color_format import ColorFormat
from ..io import write_gif
from ..pipeline import encode_animation
from ..sources import ImageSequenceSource
from .utils import (
    build_animation_config,
    configure_logging,
    display_common_header,
    display_encode_summary,
    display_path_info,
    handle_generic_error,
    handle_keyboard_interrupt,
)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.command()
@click.argument(
    "frames_dir",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--pattern", default="*.png", show_default=True, help="Glob for frame files")
@click.option("--width", type=int, help="Output width (default: first frame's width)")
@click.option("--height", type=int, help="Output height (default: first frame's height)")
@click.option("--fps", type=float, help="Frame rate (default: 30)")
@click.option("--delay", type=float, help="Per-frame delay in milliseconds, overrides --fps")
@click.option(
    "--alpha-threshold",
    type=click.IntRange(0, 256),
    help="Alpha below this becomes fully transparent (default: 128)",
)
@click.option(
    "--format",
    "color_format",
    type=click.Choice([f.value for f in ColorFormat]),
    help="Quantization precision (default: rgba4444)",
)
@click.option(
    "--max-colors", type=click.IntRange(1, 256), help="Palette size per frame (default: 256)"
)
@click.option(
    "--disposal",
    type=click.IntRange(-1, 3),
    help="Frame disposal: -1 unspecified, 0 none, 1 keep, 2 background, 3 previous (default: 2)",
)
@click.option(
    "--repeat",
    type=click.IntRange(-1, 65535),
    help="Loop count, 0 forever, -1 play once (default: 0)",
)
@click.option("--max-frames", type=click.IntRange(min=1), help="Encode at most this many frames")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with animation settings",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level (default: INFO or GIFWEAVE_LOG_LEVEL)",
)
def encode(
    frames_dir: Path,
    output: Path,
    pattern: str,
    width: int | None,
    height: int | None,
    fps: float | None,
    delay: float | None,
    alpha_threshold: int | None,
    color_format: str | None,
    max_colors: int | None,
    disposal: int | None,
    repeat: int | None,
    max_frames: int | None,
    config_path: Path | None,
    log_level: str | None,
) -> None:
    """Encode the images in FRAMES_DIR into the animated GIF OUTPUT.

    Frames are taken in file name order, converted to RGBA and resized to the
    output size. Each frame gets its own palette.

    FRAMES_DIR: Directory containing one image per frame
    OUTPUT: Path of the GIF to write
    """
    try:
        configure_logging(log_level)

        display_common_header("gifweave encoder")
        display_path_info("Frames", frames_dir)
        display_path_info("Output", output, "📄")

        source = ImageSequenceSource.from_directory(frames_dir, pattern)
        config = build_animation_config(
            config_path,
            {
                "WIDTH": width,
                "HEIGHT": height,
                "FRAME_RATE": fps,
                "DELAY_MS": delay,
                "ALPHA_THRESHOLD": alpha_threshold,
                "DISPOSAL": disposal,
                "REPEAT": repeat,
            },
            {"COLOR_FORMAT": color_format, "MAX_COLORS": max_colors},
            defaults={"WIDTH": source.width, "HEIGHT": source.height},
        )
        source.width, source.height = config.WIDTH, config.HEIGHT

        frames = source.frame_count if max_frames is None else min(source.frame_count, max_frames)
        click.echo(f"🚀 Encoding {frames} frames...")
        data = encode_animation(source, config, max_frames=max_frames)
        write_gif(data, output)

        display_encode_summary(config, frames, len(data))
        click.echo(f"✅ Wrote {output}")

    except KeyboardInterrupt:
        handle_keyboard_interrupt("Encoding")
    except Exception as e:
        handle_generic_error("Encoding", e)
