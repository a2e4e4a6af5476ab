"""Synth command: encode a generated test animation."""

from pathlib import Path

import click

from ..color_format import ColorFormat
from ..io import write_gif
from ..pipeline import encode_animation
from ..sources import SyntheticFrameSource
from .encode_cmd import LOG_LEVELS
from .utils import (
    build_animation_config,
    configure_logging,
    display_common_header,
    display_encode_summary,
    display_path_info,
    handle_generic_error,
    handle_keyboard_interrupt,
)


@click.command()
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--content",
    type=click.Choice(list(SyntheticFrameSource.CONTENT_TYPES)),
    default="orbit",
    show_default=True,
    help="Kind of animation to generate",
)
@click.option("--width", type=int, default=64, show_default=True, help="Frame width")
@click.option("--height", type=int, default=64, show_default=True, help="Frame height")
@click.option("--frames", "-n", type=click.IntRange(min=1), default=12, show_default=True)
@click.option("--fps", type=float, help="Frame rate (default: 30)")
@click.option(
    "--format",
    "color_format",
    type=click.Choice([f.value for f in ColorFormat]),
    help="Quantization precision (default: rgba4444)",
)
@click.option("--max-colors", type=click.IntRange(1, 256), help="Palette size per frame")
@click.option("--disposal", type=click.IntRange(-1, 3), help="Frame disposal (default: 2)")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level (default: INFO or GIFWEAVE_LOG_LEVEL)",
)
def synth(
    output: Path,
    content: str,
    width: int,
    height: int,
    frames: int,
    fps: float | None,
    color_format: str | None,
    max_colors: int | None,
    disposal: int | None,
    log_level: str | None,
) -> None:
    """Generate a synthetic animation and encode it to OUTPUT.

    Useful for checking how transparency, gradients and fades survive
    per-frame quantization without preparing input frames.
    """
    try:
        configure_logging(log_level)

        display_common_header(f"gifweave synthetic '{content}' animation")
        display_path_info("Output", output, "📄")

        config = build_animation_config(
            None,
            {"WIDTH": width, "HEIGHT": height, "FRAME_RATE": fps, "DISPOSAL": disposal},
            {"COLOR_FORMAT": color_format, "MAX_COLORS": max_colors},
        )
        source = SyntheticFrameSource(width, height, frames, content)
        data = encode_animation(source, config)
        write_gif(data, output)

        display_encode_summary(config, frames, len(data))
        click.echo(f"✅ Wrote {output}")

    except KeyboardInterrupt:
        handle_keyboard_interrupt("Synthesis")
    except Exception as e:
        handle_generic_error("Synthesis", e)
