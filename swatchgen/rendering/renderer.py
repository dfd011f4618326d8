"""Renderer capability and the OpenSCAD implementation."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
import threading
import time
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..core.errors import FilesystemError, RenderInvocationFailed
from ..core.models import OutputFormat, RenderTask, TaskOutcome
from ..planning.presets import load_parameter_table
from .io import atomic_write_text, discard, has_output, staging_path

logger = logging.getLogger(__name__)

CUSTOMIZER_FILENAME = "customizer.json"
STDERR_EXCERPT_LINES = 5
TERMINATE_GRACE_SECONDS = 5.0


@runtime_checkable
class Renderer(Protocol):
    """Anything that can turn a render task into an outcome."""

    def invoke(self, task: RenderTask) -> TaskOutcome: ...


def _stderr_excerpt(stderr: str | None) -> str:
    lines = [line for line in (stderr or "").splitlines() if line.strip()]
    return " | ".join(lines[-STDERR_EXCERPT_LINES:])


def customizer_document(task: RenderTask, parameter_set: str, version: str) -> str:
    """Serialise task parameters as an OpenSCAD customizer parameter file."""
    document = {
        "parameterSets": {parameter_set: dict(task.render_parameters)},
        "fileFormatVersion": version,
    }
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


class OpenScadRenderer:
    """Render swatches by running the OpenSCAD command line once per task."""

    def __init__(
        self,
        executable: str,
        scad_file: Path,
        output_format: OutputFormat = OutputFormat.STL,
        timeout: float | None = None,
        terminate_grace: float = TERMINATE_GRACE_SECONDS,
    ) -> None:
        self.executable = executable
        self.scad_file = scad_file
        self.output_format = output_format
        self.timeout = timeout
        self.terminate_grace = terminate_grace

        table = load_parameter_table()
        self.parameter_set = table.parameter_set
        self.file_format_version = table.file_format_version

        self._lock = threading.Lock()
        self._running: set[subprocess.Popen[str]] = set()
        self._terminating = False

    @property
    def active_processes(self) -> int:
        with self._lock:
            return len(self._running)

    def command(
        self, task: RenderTask, customizer_path: Path, target: Path | None = None
    ) -> list[str]:
        return [
            self.executable,
            "--export-format",
            self.output_format.export_format,
            "-o",
            str(target or task.output_path),
            "-p",
            str(customizer_path),
            "-P",
            self.parameter_set,
            str(self.scad_file),
        ]

    def invoke(self, task: RenderTask) -> TaskOutcome:
        started = time.monotonic()
        try:
            self._render(task)
        except RenderInvocationFailed as exc:
            logger.warning(f"Render failed for {task}: {exc}")
            return TaskOutcome.failed(task, str(exc), time.monotonic() - started)
        return TaskOutcome.succeeded(task, time.monotonic() - started)

    def _render(self, task: RenderTask) -> None:
        # OpenSCAD writes to a hidden sibling; only a complete file reaches output_path.
        try:
            staged = staging_path(task.output_path)
        except FilesystemError as exc:
            raise RenderInvocationFailed(str(exc)) from exc

        try:
            with tempfile.TemporaryDirectory(prefix="swatchgen-") as work_dir:
                customizer_path = Path(work_dir) / CUSTOMIZER_FILENAME
                atomic_write_text(
                    customizer_path,
                    customizer_document(task, self.parameter_set, self.file_format_version),
                )
                cmd = self.command(task, customizer_path, staged)
                logger.debug(f"Running: {' '.join(cmd)}")
                returncode, stderr = self._run(cmd)

            if returncode != 0:
                excerpt = _stderr_excerpt(stderr)
                message = f"renderer exited with code {returncode}"
                raise RenderInvocationFailed(f"{message}: {excerpt}" if excerpt else message)
            if not has_output(staged):
                raise RenderInvocationFailed(
                    f"renderer exited successfully but {task.output_path} is missing or empty"
                )
            try:
                os.replace(staged, task.output_path)
                os.chmod(task.output_path, 0o644)
            except OSError as exc:
                raise RenderInvocationFailed(
                    f"cannot move render into {task.output_path}: {exc.strerror or exc}"
                ) from exc
        finally:
            discard(staged)

    def _run(self, cmd: list[str]) -> tuple[int, str]:
        with self._lock:
            if self._terminating:
                raise RenderInvocationFailed("cancelled")
            try:
                proc = subprocess.Popen(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    errors="replace",
                )
            except OSError as exc:
                raise RenderInvocationFailed(
                    f"cannot launch {cmd[0]}: {exc.strerror or exc}"
                ) from exc
            self._running.add(proc)

        try:
            _, stderr = proc.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            proc.communicate()
            raise RenderInvocationFailed(f"renderer timed out after {self.timeout}s") from exc
        finally:
            with self._lock:
                self._running.discard(proc)

        if self._terminating and proc.returncode != 0:
            raise RenderInvocationFailed("cancelled")
        return proc.returncode, stderr

    def terminate(self) -> None:
        """Stop every in-flight renderer process and refuse new ones."""
        with self._lock:
            self._terminating = True
            running = list(self._running)

        for proc in running:
            if proc.poll() is None:
                proc.terminate()
        deadline = time.monotonic() + self.terminate_grace
        for proc in running:
            try:
                proc.wait(timeout=max(0.0, deadline - time.monotonic()))
            except subprocess.TimeoutExpired:
                logger.warning(f"Killing unresponsive renderer process {proc.pid}")
                proc.kill()
        if running:
            logger.info(f"Terminated {len(running)} in-flight renderer process(es)")
