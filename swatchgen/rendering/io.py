"""File I/O operations for rendering."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from ..core.errors import FilesystemError

PRINTABLE_FILE_TYPES = frozenset({"step", "3mf", "stl", "obj", "amf", "off"})


def ensure_directory(path: Path) -> None:
    """Create a directory and its parents; an existing directory is fine.

    Args:
        path: Directory to create

    Raises:
        FilesystemError: if the path exists but is not a directory, or cannot be created
    """
    if path.exists() and not path.is_dir():
        raise FilesystemError(path, "exists and is not a directory")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(path, exc.strerror or str(exc)) from exc


def has_output(path: Path) -> bool:
    """Return True when a non-empty regular file exists at path."""
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def atomic_write_text(path: Path, text: str, mode: int = 0o644) -> None:
    """Write text to a file atomically using a temporary file.

    Args:
        path: Destination file path
        text: Text content to write
        mode: File permissions (octal)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
        os.chmod(path, mode)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def staging_path(path: Path) -> Path:
    """Reserve a hidden sibling of path to be moved onto it once complete.

    The name keeps the extension so tools that infer the format from it still
    work, e.g. ``Orange-210.stl`` stages as ``.Orange-210.k3j9x_q1.stl``.

    Raises:
        FilesystemError: if the parent directory cannot hold the file
    """
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.stem}.", suffix=path.suffix, dir=str(path.parent)
        )
    except OSError as exc:
        raise FilesystemError(path.parent, exc.strerror or str(exc)) from exc
    os.close(fd)
    return Path(tmp_name)


def discard(path: Path) -> None:
    """Remove a file if present."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def is_printable_file(name: str) -> bool:
    return Path(name.lower()).suffix.lstrip(".") in PRINTABLE_FILE_TYPES


def list_existing_swatches(root: Path) -> list[Path]:
    """List printable swatch files under root, sorted, relative to root."""
    if not root.is_dir():
        return []
    return sorted(
        path.relative_to(root)
        for path in root.rglob("*")
        if path.is_file()
        and not path.name.startswith(".")
        and is_printable_file(path.name)
    )
