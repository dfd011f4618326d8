"""Error taxonomy for swatch generation."""

from __future__ import annotations

from pathlib import Path


class SwatchgenError(Exception):
    """Base class for every error raised by swatchgen."""


class InventoryError(SwatchgenError):
    """Raised when the inventory table cannot be used."""


class MalformedInventory(InventoryError):
    """The inventory file is missing, unreadable, empty or structurally broken."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class EmptyInventory(MalformedInventory):
    """The inventory produced no valid records."""


class MissingColumn(InventoryError):
    """The header lacks one or more required columns."""

    def __init__(self, columns: list[str]) -> None:
        self.columns = columns
        super().__init__(f"inventory header is missing column(s): {', '.join(columns)}")


class InvalidRow(InventoryError):
    """A single data row failed validation."""

    def __init__(self, line: int, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"line {line}: {reason}")


class RenderInvocationFailed(SwatchgenError):
    """The external renderer did not produce the expected output."""


class FilesystemError(SwatchgenError):
    """An output directory could not be created."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")
