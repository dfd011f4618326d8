"""CLI argument parsers and validators."""

from __future__ import annotations

import os

import typer

from ..core.models import OutputFormat


def parse_output_format(value: str) -> OutputFormat:
    """Parse an export format name (case-insensitive)."""
    try:
        return OutputFormat(value.strip().lower())
    except ValueError as e:
        choices = ", ".join(fmt.value for fmt in OutputFormat)
        raise typer.BadParameter(f"Unknown output format {value!r} (choose from {choices})") from e


def resolve_workers(requested: int | None, configured: int | None = None) -> int:
    """Pick the worker count: CLI flag, then settings, then logical CPU count."""
    workers = requested if requested is not None else configured
    if workers is None:
        return os.cpu_count() or 1
    if workers < 1:
        raise typer.BadParameter(f"Worker count must be at least 1, got {workers}")
    return workers
