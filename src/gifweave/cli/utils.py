"""Shared utilities for CLI commands."""

import sys
from pathlib import Path
from typing import Any

import click

from ..config import AnimationConfig, LoggingConfig
from ..error_handling import ConfigurationError
from ..io import load_json, setup_logging


def handle_generic_error(command_name: str, error: Exception) -> None:
    """Handle generic command errors with consistent formatting."""
    click.echo(f"❌ {command_name} failed: {error}", err=True)
    sys.exit(1)


def handle_keyboard_interrupt(command_name: str) -> None:
    """Handle keyboard interrupt with consistent formatting."""
    click.echo(f"\n⏹️  {command_name} interrupted by user", err=True)
    sys.exit(1)


def configure_logging(log_level: str | None) -> None:
    """Route library logging to the console at the requested level."""
    config = LoggingConfig()
    # Command line wins over GIFWEAVE_LOG_LEVEL
    if log_level is not None:
        config.LOG_LEVEL = log_level.upper()
    setup_logging(config)


def build_animation_config(
    config_path: Path | None,
    overrides: dict[str, Any],
    quantize_overrides: dict[str, Any],
    defaults: dict[str, Any] | None = None,
) -> AnimationConfig:
    """Merge a JSON config file with command line overrides.

    Options left at ``None`` keep the value from the file, then ``defaults``,
    then the built-in default.
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        try:
            data = {str(k).upper(): v for k, v in load_json(config_path).items()}
        except ValueError as e:
            raise ConfigurationError(f"Cannot parse config file {config_path}: {e}", cause=e) from e

    quantize = {str(k).upper(): v for k, v in dict(data.pop("QUANTIZE", None) or {}).items()}
    quantize.update({k: v for k, v in quantize_overrides.items() if v is not None})
    data.update({k: v for k, v in overrides.items() if v is not None})
    for key, value in (defaults or {}).items():
        data.setdefault(key, value)
    if quantize:
        data["QUANTIZE"] = quantize

    return AnimationConfig.from_dict(data)


def display_common_header(title: str) -> None:
    """Display a common header for CLI commands."""
    click.echo(f"🎞️  {title}")


def display_path_info(label: str, path: Path, emoji: str = "📁") -> None:
    """Display path information with consistent formatting."""
    click.echo(f"{emoji} {label}: {path}")


def display_encode_summary(config: AnimationConfig, frames: int, size_bytes: int) -> None:
    """Display the result of an encoding run."""
    click.echo("\n📊 Results:")
    click.echo(f"   • Frames: {frames}")
    click.echo(f"   • Size: {config.WIDTH}x{config.HEIGHT}")
    click.echo(f"   • Delay: {config.frame_delay_ms:.1f}ms per frame")
    click.echo(f"   • Output: {size_bytes / 1024:.1f} KB")
