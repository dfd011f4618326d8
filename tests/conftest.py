from __future__ import annotations

import stat
import threading
import time
from pathlib import Path

import pytest

from swatchgen.core.models import GenerateConfig, RenderTask, TaskOutcome

SCENARIO_ROWS = [
    ("eSun", "PLA", "Orange", "210"),
    ("Fiberlogy", "PLA", "Vertigo", "215"),
    ("Hatchbox", "PETG", "Black", "235"),
    ("Hatchbox", "PLA", "White", "215"),
]


class FakeRenderer:
    """Records invocations and writes the target file unless told to fail."""

    def __init__(
        self,
        fail: set[str] | None = None,
        crash: set[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.fail = fail or set()
        self.crash = crash or set()
        self.delay = delay
        self.calls: list[RenderTask] = []
        self.active = 0
        self.max_active = 0
        self.terminated = False
        self._lock = threading.Lock()

    def invoke(self, task: RenderTask) -> TaskOutcome:
        with self._lock:
            self.calls.append(task)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if task.color in self.crash:
                raise RuntimeError("renderer exploded")
            if task.color in self.fail:
                return TaskOutcome.failed(task, "renderer exited with code 1")
            task.output_path.write_text("solid swatch\nendsolid swatch\n")
            return TaskOutcome.succeeded(task)
        finally:
            with self._lock:
                self.active -= 1

    def terminate(self) -> None:
        self.terminated = True


def write_inventory(path: Path, header: list[str], rows: list[tuple[str, ...]]) -> Path:
    lines = [",".join(header)] + [",".join(row) for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def scenario_inventory(tmp_path: Path) -> Path:
    return write_inventory(
        tmp_path / "inventory.csv",
        ["manufacturer", "material", "color", "temperature"],
        SCENARIO_ROWS,
    )


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "swatches"


@pytest.fixture
def make_config(output_dir: Path):
    def _make(inventory: Path, **overrides) -> GenerateConfig:
        values = {
            "inventory": inventory,
            "output_dir": output_dir,
            "workers": 2,
            "progress": False,
        }
        values.update(overrides)
        return GenerateConfig(**values)

    return _make


@pytest.fixture
def stub_openscad(tmp_path: Path):
    """Create a shell script standing in for the OpenSCAD executable.

    The script records its arguments, then writes ``content`` to the ``-o``
    target and exits with ``exit_code``. With ``sleep`` it writes ``content``
    and then hangs in place of the renderer; ``ignore_term`` makes it deaf to
    SIGTERM so only SIGKILL stops it.
    """

    def _make(
        exit_code: int = 0,
        content: str = "solid swatch",
        stderr: str = "",
        sleep: float = 0,
        ignore_term: bool = False,
    ) -> Path:
        script = tmp_path / f"openscad-{exit_code}-{len(content)}-{sleep}-{ignore_term}.sh"
        script.write_text(
            "#!/bin/sh\n"
            f'echo "$@" > "{tmp_path}/openscad-args.txt"\n'
            'out=""\n'
            'while [ $# -gt 0 ]; do\n'
            '  if [ "$1" = "-o" ]; then out="$2"; fi\n'
            '  if [ "$1" = "-p" ]; then cp "$2" "' + str(tmp_path) + '/customizer-copy.json"; fi\n'
            "  shift\n"
            "done\n"
            + (f'printf "%s" "{content}" > "$out"\n' if content else "")
            + (f'echo "{stderr}" >&2\n' if stderr else "")
            + ("trap '' TERM\n" if ignore_term else "")
            # exec keeps the pid, so signals reach the sleeping process itself
            + (f"exec sleep {sleep}\n" if sleep else "")
            + f"exit {exit_code}\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


@pytest.fixture
def renderer_factory():
    return FakeRenderer


@pytest.fixture
def inventory_file(tmp_path: Path):
    def _make(header: list[str], rows: list[tuple[str, ...]], name: str = "inventory.csv") -> Path:
        return write_inventory(tmp_path / name, header, rows)

    return _make
