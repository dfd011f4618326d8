import threading
from pathlib import Path

import pytest

from swatchgen.core.models import RenderTask, TaskStatus
from swatchgen.rendering.executor import CANCELLED_REASON, cancel_on_signal, execute_tasks


def _tasks(root: Path, colors: list[str]) -> list[RenderTask]:
    root.mkdir(parents=True, exist_ok=True)
    return [
        RenderTask(
            output_path=root / f"{color}-210.stl",
            manufacturer="eSun",
            material="PLA",
            color=color,
            temperature=210,
        )
        for color in colors
    ]


def test_every_task_gets_one_outcome(tmp_path, fake_renderer):
    tasks = _tasks(tmp_path, ["Red", "Green", "Blue", "White", "Black"])

    outcomes = execute_tasks(tasks, fake_renderer, workers=3)

    assert sorted(o.task.color for o in outcomes) == sorted(t.color for t in tasks)
    assert all(o.status is TaskStatus.SUCCEEDED for o in outcomes)
    assert len(fake_renderer.calls) == 5


def test_concurrency_is_bounded(tmp_path, renderer_factory):
    renderer = renderer_factory(delay=0.05)
    tasks = _tasks(tmp_path, [f"c{i}" for i in range(12)])

    execute_tasks(tasks, renderer, workers=3)

    assert 1 <= renderer.max_active <= 3


def test_failures_and_crashes_are_isolated(tmp_path, renderer_factory):
    renderer = renderer_factory(fail={"Green"}, crash={"Blue"})
    tasks = _tasks(tmp_path, ["Red", "Green", "Blue", "White"])

    outcomes = {o.task.color: o for o in execute_tasks(tasks, renderer, workers=2)}

    assert outcomes["Red"].status is TaskStatus.SUCCEEDED
    assert outcomes["White"].status is TaskStatus.SUCCEEDED
    assert outcomes["Green"].reason == "renderer exited with code 1"
    assert outcomes["Blue"].status is TaskStatus.FAILED
    assert "renderer exploded" in outcomes["Blue"].reason


def test_cancelled_before_start_dispatches_nothing(tmp_path, fake_renderer):
    cancel = threading.Event()
    cancel.set()
    tasks = _tasks(tmp_path, ["Red", "Green"])

    outcomes = execute_tasks(tasks, fake_renderer, workers=2, cancel=cancel)

    assert fake_renderer.calls == []
    assert [o.reason for o in outcomes] == [CANCELLED_REASON, CANCELLED_REASON]


def test_cancel_mid_run_stops_dispatch_and_terminates(tmp_path, renderer_factory):
    cancel = threading.Event()

    class CancellingRenderer(renderer_factory):
        def invoke(self, task):
            outcome = super().invoke(task)
            cancel.set()
            return outcome

    renderer = CancellingRenderer()
    tasks = _tasks(tmp_path, [f"c{i}" for i in range(6)])

    outcomes = execute_tasks(tasks, renderer, workers=1, cancel=cancel)

    assert len(renderer.calls) == 1
    assert renderer.terminated
    assert len(outcomes) == 6
    assert sum(o.status is TaskStatus.SUCCEEDED for o in outcomes) == 1
    assert sum(o.reason == CANCELLED_REASON for o in outcomes) == 5
    # Completed output stays on disk.
    assert (tmp_path / "c0-210.stl").exists()


def test_rejects_empty_pool(tmp_path, fake_renderer):
    with pytest.raises(ValueError):
        execute_tasks(_tasks(tmp_path, ["Red"]), fake_renderer, workers=0)


def test_signal_guard_restores_handlers():
    import signal

    before = signal.getsignal(signal.SIGTERM)
    cancel = threading.Event()

    with cancel_on_signal(cancel):
        assert signal.getsignal(signal.SIGTERM) is not before
        signal.raise_signal(signal.SIGTERM)

    assert cancel.is_set()
    assert signal.getsignal(signal.SIGTERM) is before
