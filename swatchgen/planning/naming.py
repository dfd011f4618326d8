"""Deterministic output path derivation."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote

# Characters left as-is in a path component; everything else is percent-encoded.
_SAFE = " "


def encode_component(value: str) -> str:
    """Encode a value for use as a single, filesystem-safe path component.

    Case is preserved and ``%`` is always encoded, so distinct inputs never
    produce the same component. ``-`` is encoded too, keeping it free for
    separating components inside a file name.
    """
    encoded = quote(value, safe=_SAFE).replace("-", "%2D")
    if encoded.startswith("."):
        encoded = "%2E" + encoded[1:]
    return encoded


def swatch_filename(color: str, temperature: int, extension: str) -> str:
    return f"{encode_component(color)}-{temperature}.{extension}"


def derive_output_path(
    root: Path,
    manufacturer: str,
    material: str,
    color: str,
    temperature: int,
    extension: str,
    *,
    organize: bool = True,
) -> Path:
    """Derive the output file for one swatch.

    Args:
        root: Output root directory
        manufacturer: Filament manufacturer
        material: Filament material
        color: Filament color
        temperature: Print temperature
        extension: File extension without the dot
        organize: Nest files under ``<material>/<manufacturer>/``

    Returns:
        ``<root>/<material>/<manufacturer>/<color>-<temperature>.<ext>``, or
        ``<root>/<material>-<manufacturer>-<color>-<temperature>.<ext>`` when
        ``organize`` is off
    """
    filename = swatch_filename(color, temperature, extension)
    if organize:
        return root / encode_component(material) / encode_component(manufacturer) / filename
    return root / f"{encode_component(material)}-{encode_component(manufacturer)}-{filename}"
