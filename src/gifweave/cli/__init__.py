"""CLI module for gifweave commands.

Each command lives in its own module; this package assembles them into the
``gifweave`` entry point.
"""

import click

from .encode_cmd import encode
from .info_cmd import info
from .synth_cmd import synth


@click.group()
@click.version_option(version="0.1.0", prog_name="gifweave")
def main() -> None:
    """🎞️ gifweave: animated GIFs from RGBA frames."""
    pass


main.add_command(encode)
main.add_command(synth)
main.add_command(info)

__all__ = ["encode", "info", "main", "synth"]
