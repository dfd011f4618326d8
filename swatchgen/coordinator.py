"""Run coordination: inventory -> plan -> directories -> render -> report."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable

from .core.errors import FilesystemError
from .core.models import (
    GenerateConfig,
    RenderTask,
    RowError,
    RunReport,
    TaskFailure,
    TaskOutcome,
    TaskStatus,
)
from .inventory.reader import read_inventory
from .planning.planner import (
    OutputExists,
    group_tasks,
    output_directories,
    plan_tasks,
    prepare_directories,
)
from .rendering.executor import CANCELLED_REASON, execute_tasks
from .rendering.io import ensure_directory, has_output
from .rendering.renderer import Renderer

logger = logging.getLogger(__name__)


def build_report(
    outcomes: Iterable[TaskOutcome],
    skipped: int = 0,
    row_errors: Iterable[RowError] = (),
) -> RunReport:
    """Fold task outcomes into a run report.

    Failures are sorted by output path so identical outcome sets always
    produce identical reports.
    """
    succeeded = 0
    failures: list[TaskFailure] = []
    cancelled = False

    for outcome in outcomes:
        if outcome.status is TaskStatus.SUCCEEDED:
            succeeded += 1
        elif outcome.status is TaskStatus.SKIPPED:
            skipped += 1
        else:
            reason = outcome.reason or "unknown error"
            cancelled = cancelled or reason == CANCELLED_REASON
            failures.append(TaskFailure(output_path=outcome.task.output_path, reason=reason))

    failures.sort(key=lambda failure: (str(failure.output_path), failure.reason))
    return RunReport(
        skipped=skipped,
        succeeded=succeeded,
        failed=len(failures),
        failures=failures,
        row_errors=sorted(row_errors, key=lambda error: error.line),
        cancelled=cancelled,
    )


def _split_unreachable(
    tasks: list[RenderTask], failed_dirs: dict[Path, FilesystemError]
) -> tuple[list[RenderTask], list[TaskOutcome]]:
    runnable: list[RenderTask] = []
    unreachable: list[TaskOutcome] = []
    for task in tasks:
        error = failed_dirs.get(task.output_path.parent)
        if error is None:
            runnable.append(task)
        else:
            unreachable.append(TaskOutcome.failed(task, f"cannot create output directory {error}"))
    return runnable, unreachable


def run_generate(
    config: GenerateConfig,
    renderer: Renderer,
    *,
    output_exists: OutputExists = has_output,
    cancel: threading.Event | None = None,
) -> RunReport:
    """Run the full generation pipeline.

    Args:
        config: Resolved run configuration
        renderer: Renderer used for every task
        output_exists: Predicate deciding whether a swatch is already rendered
        cancel: Event that stops dispatching new renders when set

    Returns:
        Aggregated run report

    Raises:
        MalformedInventory: inventory unreadable, empty or without valid rows
        MissingColumn: inventory header lacks a required column
        FilesystemError: the output root cannot be created
    """
    inventory = read_inventory(config.inventory)
    ensure_directory(config.output_dir)

    plan = plan_tasks(
        inventory.records,
        config.output_dir,
        force=config.force,
        output_format=config.output_format,
        organize=config.organize,
        output_exists=output_exists,
    )

    for (material, manufacturer), grouped in group_tasks(plan.tasks).items():
        logger.debug(f"{material}/{manufacturer}: {len(grouped)} task(s)")

    failed_dirs = prepare_directories(output_directories(plan.tasks))
    runnable, unreachable = _split_unreachable(plan.tasks, failed_dirs)

    outcomes = execute_tasks(
        runnable,
        renderer,
        config.workers,
        cancel=cancel,
        progress=config.progress,
    )

    report = build_report(
        [*outcomes, *unreachable],
        skipped=len(plan.skipped),
        row_errors=inventory.row_errors,
    )
    logger.info(
        f"Finished: {report.succeeded} succeeded, {report.skipped} skipped, {report.failed} failed"
    )
    return report
