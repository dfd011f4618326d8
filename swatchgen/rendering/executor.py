"""Bounded parallel execution of render tasks."""

from __future__ import annotations

import logging
import signal
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from typing import Iterator, Sequence

from tqdm import tqdm

from ..core.models import RenderTask, TaskOutcome, TaskStatus
from .renderer import Renderer

logger = logging.getLogger(__name__)

CANCELLED_REASON = "cancelled"
POLL_INTERVAL_SECONDS = 0.2
_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def cancel_on_signal(cancel: threading.Event) -> Iterator[None]:
    """Set ``cancel`` when SIGINT/SIGTERM arrives, restoring previous handlers on exit.

    Signal handlers can only be installed from the main thread; elsewhere this
    is a no-op and cancellation relies on the event alone.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, _frame: object) -> None:
        logger.warning(
            f"Received {signal.Signals(signum).name}, stopping after in-flight renders"
        )
        cancel.set()

    previous = {sig: signal.signal(sig, _handler) for sig in _HANDLED_SIGNALS}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _collect(future: Future[TaskOutcome], task: RenderTask) -> TaskOutcome:
    try:
        return future.result()
    except Exception as exc:  # noqa: BLE001
        logger.error(f"Renderer crashed on {task.output_path}: {exc}", exc_info=True)
        return TaskOutcome.failed(task, f"unexpected renderer error: {exc}")


def _terminate(renderer: Renderer) -> None:
    terminate = getattr(renderer, "terminate", None)
    if callable(terminate):
        terminate()


def execute_tasks(
    tasks: Sequence[RenderTask],
    renderer: Renderer,
    workers: int,
    *,
    cancel: threading.Event | None = None,
    progress: bool = False,
) -> list[TaskOutcome]:
    """Render every task with at most ``workers`` invocations in flight.

    Args:
        tasks: Tasks in submission order
        renderer: Renderer invoked once per task
        workers: Maximum concurrent invocations
        cancel: Event that stops dispatching when set
        progress: Show a progress bar

    Returns:
        One outcome per task, in completion order; tasks never dispatched
        because of cancellation are reported as failed
    """
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")

    if cancel is None:
        cancel = threading.Event()
    outcomes: list[TaskOutcome] = []
    queue = iter(tasks)
    in_flight: dict[Future[TaskOutcome], RenderTask] = {}
    terminated = False

    logger.info(f"Rendering {len(tasks)} swatch(es) with {workers} worker(s)")

    with ThreadPoolExecutor(
        max_workers=workers, thread_name_prefix="swatchgen-render"
    ) as pool, cancel_on_signal(cancel), tqdm(
        total=len(tasks), unit="swatch", disable=not progress
    ) as bar:

        def dispatch() -> None:
            while len(in_flight) < workers and not cancel.is_set():
                task = next(queue, None)
                if task is None:
                    return
                in_flight[pool.submit(renderer.invoke, task)] = task

        dispatch()
        while in_flight:
            done, _ = wait(in_flight, timeout=POLL_INTERVAL_SECONDS, return_when=FIRST_COMPLETED)
            if cancel.is_set() and not terminated:
                terminated = True
                _terminate(renderer)

            for future in done:
                task = in_flight.pop(future)
                outcome = _collect(future, task)
                if outcome.status is TaskStatus.SUCCEEDED:
                    logger.info(f"Rendered {task.output_path}")
                outcomes.append(outcome)
                bar.update(1)
            dispatch()

    undispatched = [TaskOutcome.failed(task, CANCELLED_REASON) for task in queue]
    if undispatched:
        logger.warning(f"Cancelled {len(undispatched)} task(s) before dispatch")
    return outcomes + undispatched
