"""Domain models for inventory records, render tasks and run outcomes."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_TEMPERATURE_PATTERN = re.compile(r"^\+?\d+$")


class Record(BaseModel):
    """One validated inventory row."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    manufacturer: str = Field(..., min_length=1, description="Filament brand")
    material: str = Field(..., min_length=1, description="Material (PLA, PETG, ...)")
    color: str = Field(..., min_length=1, description="Color name")
    temperature: int = Field(..., gt=0, description="Print temperature in °C")

    @field_validator("temperature", mode="before")
    @classmethod
    def _parse_temperature(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            if not _TEMPERATURE_PATTERN.match(value):
                raise ValueError(f"must be a positive integer, got {value!r}")
            return int(value)
        return value

    @property
    def key(self) -> tuple[str, str, str, int]:
        return (self.manufacturer, self.material, self.color, self.temperature)

    def __str__(self) -> str:
        return f"{self.manufacturer} - {self.material} - {self.color}"


class RenderTask(BaseModel):
    """A single renderer invocation producing one swatch file."""

    model_config = ConfigDict(frozen=True)

    output_path: Path = Field(..., description="Render target")
    manufacturer: str
    material: str
    color: str
    temperature: int
    render_parameters: dict[str, str] = Field(
        default_factory=dict, description="Renderer parameter name to value"
    )

    def __str__(self) -> str:
        return f"{self.manufacturer} - {self.material} - {self.color} @ {self.temperature}°C"


class TaskStatus(str, Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TaskOutcome(BaseModel):
    """Result of executing (or skipping) one render task."""

    model_config = ConfigDict(frozen=True)

    task: RenderTask
    status: TaskStatus
    reason: str | None = Field(default=None, description="Failure reason")
    duration: float | None = Field(default=None, description="Seconds spent rendering")

    @model_validator(mode="after")
    def _failed_needs_reason(self) -> TaskOutcome:
        if self.status is TaskStatus.FAILED and not self.reason:
            raise ValueError("failed outcomes must carry a reason")
        return self

    @classmethod
    def succeeded(cls, task: RenderTask, duration: float | None = None) -> TaskOutcome:
        return cls(task=task, status=TaskStatus.SUCCEEDED, duration=duration)

    @classmethod
    def failed(
        cls, task: RenderTask, reason: str, duration: float | None = None
    ) -> TaskOutcome:
        return cls(task=task, status=TaskStatus.FAILED, reason=reason, duration=duration)


class RowError(BaseModel):
    """An inventory row rejected during reading."""

    model_config = ConfigDict(frozen=True)

    line: int = Field(..., description="1-based physical line number")
    reason: str


class TaskFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    output_path: Path
    reason: str


class RunReport(BaseModel):
    """Aggregate result of one generation run."""

    skipped: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: list[TaskFailure] = Field(default_factory=list)
    row_errors: list[RowError] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def degraded(self) -> bool:
        return bool(self.failed or self.row_errors or self.cancelled)

    @property
    def exit_code(self) -> int:
        return 1 if self.degraded else 0


class OutputFormat(str, Enum):
    """Export formats understood by the renderer."""

    STL = "stl"
    THREE_MF = "3mf"
    AMF = "amf"
    OFF = "off"
    OBJ = "obj"

    @property
    def export_format(self) -> str:
        """Value passed to ``openscad --export-format``."""
        return "binstl" if self is OutputFormat.STL else self.value

    @property
    def extension(self) -> str:
        return self.value


class GenerateConfig(BaseModel):
    """Resolved configuration for one ``generate`` run."""

    inventory: Path = Field(..., description="Inventory CSV")
    output_dir: Path = Field(..., description="Output root directory")
    force: bool = Field(default=False, description="Re-render existing swatches")
    workers: int = Field(..., ge=1, description="Concurrent renderer invocations")
    output_format: OutputFormat = Field(default=OutputFormat.STL)
    organize: bool = Field(
        default=True, description="Use the material/manufacturer directory layout"
    )
    progress: bool = Field(default=True, description="Show a progress bar")
