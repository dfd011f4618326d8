"""Swatchgen - Customizable filament swatch generator.

Renders one OpenSCAD swatch per CSV inventory row, in parallel, into a
material/manufacturer directory tree.
"""

__version__ = "0.1.0"

# Configure logging for library use
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Re-export main CLI entry point
from .cli import main

__all__ = ["main"]
