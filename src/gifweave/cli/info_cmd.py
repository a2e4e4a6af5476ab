"""Info command: show the block structure of a GIF file."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..meta import compute_sha256, inspect_gif
from .utils import handle_generic_error

DISPOSAL_NAMES = {0: "none", 1: "keep", 2: "background", 3: "previous"}


@click.command()
@click.argument("gif", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print the structure as JSON")
@click.option(
    "--decode",
    is_flag=True,
    help="Also decompress every frame to check the image data is complete",
)
def info(gif: Path, as_json: bool, decode: bool) -> None:
    """Inspect GIF and list its screen, loop count and frames."""
    try:
        data = gif.read_bytes()
        structure = inspect_gif(data, decode=decode)

        if as_json:
            report = structure.to_dict()
            report["sha256"] = compute_sha256(data)
            report["bytes"] = len(data)
            click.echo(json.dumps(report, indent=2))
            return

        console = Console()
        loop = "none" if structure.loop_count is None else (
            "forever" if structure.loop_count == 0 else str(structure.loop_count)
        )
        console.print(
            f"[bold]{gif.name}[/bold]: GIF{structure.version} "
            f"{structure.width}x{structure.height}, {structure.frame_count} frames, "
            f"{structure.duration_ms}ms, loop {loop}, {len(data)} bytes"
        )

        table = Table(title="Frames")
        table.add_column("#", justify="right")
        table.add_column("Size")
        table.add_column("Offset")
        table.add_column("Delay (cs)", justify="right")
        table.add_column("Disposal")
        table.add_column("Transparent")
        table.add_column("Colors", justify="right")
        table.add_column("Data", justify="right")

        for index, frame in enumerate(structure.frames):
            table.add_row(
                str(index),
                f"{frame.width}x{frame.height}",
                f"{frame.left},{frame.top}",
                str(frame.delay_cs),
                DISPOSAL_NAMES.get(frame.disposal, str(frame.disposal)),
                str(frame.transparent_index) if frame.transparent else "-",
                str(len(frame.local_color_table or structure.global_color_table or [])),
                f"{frame.data_size} B",
            )

        console.print(table)
        if decode:
            console.print("[green]✅ All frames decoded[/green]")

    except Exception as e:
        handle_generic_error("Inspection", e)
