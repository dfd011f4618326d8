"""Map inventory records to render tasks."""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path
from typing import Callable, Iterable

from jinja2 import Template
from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import FilesystemError
from ..core.models import OutputFormat, Record, RenderTask
from ..rendering.io import ensure_directory, has_output
from .naming import derive_output_path
from .presets import ParameterTable, compile_labels, load_parameter_table, render_parameters

logger = logging.getLogger(__name__)

OutputExists = Callable[[Path], bool]


class Plan(BaseModel):
    """Tasks to execute plus what planning filtered out."""

    model_config = ConfigDict(frozen=True)

    tasks: list[RenderTask] = Field(default_factory=list)
    skipped: list[RenderTask] = Field(default_factory=list)
    duplicates: int = 0


def build_task(
    record: Record,
    output_root: Path,
    table: ParameterTable,
    *,
    output_format: OutputFormat = OutputFormat.STL,
    organize: bool = True,
    labels: dict[str, Template] | None = None,
) -> RenderTask:
    """Build the render task for a single record."""
    return RenderTask(
        output_path=derive_output_path(
            output_root,
            record.manufacturer,
            record.material,
            record.color,
            record.temperature,
            output_format.extension,
            organize=organize,
        ),
        manufacturer=record.manufacturer,
        material=record.material,
        color=record.color,
        temperature=record.temperature,
        render_parameters=render_parameters(record, table, labels),
    )


def plan_tasks(
    records: Iterable[Record],
    output_root: Path,
    *,
    force: bool = False,
    output_format: OutputFormat = OutputFormat.STL,
    organize: bool = True,
    output_exists: OutputExists = has_output,
    table: ParameterTable | None = None,
) -> Plan:
    """Plan render tasks for the given records.

    Args:
        records: Valid inventory records
        output_root: Output root directory
        force: Emit tasks even when the output already exists
        output_format: Export format, decides the file extension
        organize: Use the hierarchical directory layout
        output_exists: Predicate deciding whether a target is already rendered
        table: Renderer parameter table (the packaged one if omitted)

    Returns:
        Plan with tasks in first-seen order
    """
    table = table or load_parameter_table()
    labels = compile_labels(table)

    tasks: list[RenderTask] = []
    skipped: list[RenderTask] = []
    seen: set[tuple[str, str, str, int]] = set()
    duplicates = 0

    for record in records:
        if record.key in seen:
            duplicates += 1
            logger.warning(f"Ignoring duplicate inventory entry: {record} @ {record.temperature}°C")
            continue
        seen.add(record.key)

        task = build_task(
            record,
            output_root,
            table,
            output_format=output_format,
            organize=organize,
            labels=labels,
        )
        if not force and output_exists(task.output_path):
            logger.debug(f"Skipping {task.output_path}: already rendered")
            skipped.append(task)
            continue
        tasks.append(task)

    logger.info(
        f"Planned {len(tasks)} task(s), {len(skipped)} already rendered"
        + (f", {duplicates} duplicate(s) ignored" if duplicates else "")
    )
    return Plan(tasks=tasks, skipped=skipped, duplicates=duplicates)


def group_tasks(tasks: Iterable[RenderTask]) -> dict[tuple[str, str], list[RenderTask]]:
    """Group tasks by (material, manufacturer)."""
    groups: dict[tuple[str, str], list[RenderTask]] = defaultdict(list)
    for task in tasks:
        groups[(task.material, task.manufacturer)].append(task)
    return dict(sorted(groups.items()))


def output_directories(tasks: Iterable[RenderTask]) -> list[Path]:
    """Distinct parent directories of the task outputs, sorted."""
    return sorted({task.output_path.parent for task in tasks})


def prepare_directories(directories: Iterable[Path]) -> dict[Path, FilesystemError]:
    """Create every output directory ahead of rendering.

    Returns:
        Directories that could not be created, with the error for each
    """
    failed: dict[Path, FilesystemError] = {}
    for directory in directories:
        try:
            ensure_directory(directory)
        except FilesystemError as exc:
            logger.error(f"Cannot create output directory {exc}")
            failed[directory] = exc
    return failed
