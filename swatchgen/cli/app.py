"""Main CLI application."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from ..coordinator import run_generate
from ..core.errors import SwatchgenError
from ..core.models import GenerateConfig
from ..rendering.io import list_existing_swatches
from ..rendering.renderer import OpenScadRenderer
from ..reporting import format_summary
from ..settings import get_settings
from .parsers import parse_output_format, resolve_workers

logger = logging.getLogger(__name__)

EXIT_FATAL = 2

app = typer.Typer(
    name="swatchgen",
    help="Customizable filament swatch generator driven by a CSV inventory.",
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


@app.command()
def generate(
    inventory: Annotated[
        Path,
        typer.Option(
            "--inventory",
            "-i",
            help="Inventory CSV with manufacturer, material, color and temperature columns.",
            metavar="PATH",
        ),
    ],
    output_dir: Annotated[
        Path,
        typer.Option(
            "--output-dir",
            "-d",
            help="Output directory (created if missing).",
            metavar="DIR",
        ),
    ],
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Re-render swatches that already exist.",
        ),
    ] = False,
    workers: Annotated[
        Optional[int],
        typer.Option(
            "--workers",
            "-j",
            help="Concurrent renderer processes (default: logical CPU count).",
            metavar="N",
        ),
    ] = None,
    output_format: Annotated[
        Optional[str],
        typer.Option(
            "--output-format",
            help="Export format: stl, 3mf, amf, off or obj (default: stl).",
            metavar="FORMAT",
        ),
    ] = None,
    openscad_path: Annotated[
        Optional[str],
        typer.Option(
            "--openscad-path",
            help="OpenSCAD executable (default: openscad on PATH).",
            metavar="PATH",
        ),
    ] = None,
    scad_file: Annotated[
        Optional[Path],
        typer.Option(
            "--scad-file",
            help="Swatch model driven by the customizer parameters.",
            metavar="PATH",
        ),
    ] = None,
    organize: Annotated[
        bool,
        typer.Option(
            "--organize/--flat",
            help="Nest swatches under <material>/<manufacturer>/ directories.",
        ),
    ] = True,
    timeout: Annotated[
        Optional[float],
        typer.Option(
            "--timeout",
            help="Per-swatch render timeout in seconds.",
            metavar="SECONDS",
        ),
    ] = None,
    progress: Annotated[
        bool,
        typer.Option(
            "--progress/--no-progress",
            help="Show a progress bar while rendering.",
        ),
    ] = True,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose logging.",
        ),
    ] = False,
) -> None:
    """Render one swatch per inventory row that has not been rendered yet."""
    _configure_logging(verbose)
    try:
        settings = get_settings()
    except ValidationError as exc:
        for error in exc.errors():
            name = "_".join(str(part) for part in error["loc"]).upper()
            logger.error(f"Invalid setting SWATCHGEN_{name}: {error['msg']}")
        raise typer.Exit(code=EXIT_FATAL) from exc

    fmt = parse_output_format(output_format) if output_format else settings.output_format
    config = GenerateConfig(
        inventory=inventory,
        output_dir=output_dir,
        force=force,
        workers=resolve_workers(workers, settings.workers),
        output_format=fmt,
        organize=organize,
        progress=progress,
    )
    logger.debug(f"Config: {config.model_dump()}")

    renderer = OpenScadRenderer(
        executable=openscad_path or settings.openscad_path,
        scad_file=scad_file or settings.scad_file,
        output_format=fmt,
        timeout=timeout if timeout is not None else settings.render_timeout,
    )

    try:
        report = run_generate(config, renderer)
    except SwatchgenError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=EXIT_FATAL) from exc

    typer.echo(format_summary(report))
    raise typer.Exit(code=report.exit_code)


@app.command("list")
def list_swatches(
    output_dir: Annotated[
        Path,
        typer.Option(
            "--output-dir",
            "-d",
            help="Output directory to scan.",
            metavar="DIR",
        ),
    ],
) -> None:
    """List swatch files already present in the output directory."""
    for path in list_existing_swatches(output_dir):
        typer.echo(str(path))


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
