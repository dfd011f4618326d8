"""Renderer parameter table and per-material print presets."""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib import resources

import yaml
from jinja2 import Environment, StrictUndefined, Template
from pydantic import BaseModel, Field

from ..core.models import Record

logger = logging.getLogger(__name__)

PARAMETERS_RESOURCE = "parameters.yaml"
DEFAULT_PRESET = "default"


class MaterialPreset(BaseModel):
    """Default print settings for one material."""

    layer_height: str = Field(..., description="Layer height in mm")
    temperature: int = Field(..., gt=0, description="Default print temperature")


class ParameterTable(BaseModel):
    """Versioned renderer parameter table."""

    file_format_version: str
    parameter_set: str = "Generator"
    defaults: dict[str, str]
    labels: dict[str, str] = Field(default_factory=dict)
    materials: dict[str, MaterialPreset]

    def preset_for(self, material: str) -> MaterialPreset:
        """Look up a material preset case-insensitively, falling back to the default."""
        by_name = {name.upper(): preset for name, preset in self.materials.items()}
        preset = by_name.get(material.upper())
        if preset is None:
            logger.debug(f"No preset for material {material!r}, using {DEFAULT_PRESET!r}")
            preset = by_name[DEFAULT_PRESET.upper()]
        return preset


def _label_environment() -> Environment:
    return Environment(
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=False,
    )


@lru_cache(maxsize=1)
def load_parameter_table() -> ParameterTable:
    """Load the parameter table shipped with the package."""
    raw = resources.files("swatchgen.templates").joinpath(PARAMETERS_RESOURCE).read_text(
        encoding="utf-8"
    )
    table = ParameterTable.model_validate(yaml.safe_load(raw))
    if DEFAULT_PRESET.upper() not in {name.upper() for name in table.materials}:
        raise ValueError(f"Parameter table lacks a {DEFAULT_PRESET!r} material preset")
    logger.debug(
        f"Loaded parameter table v{table.file_format_version} "
        f"({len(table.defaults)} parameter(s), {len(table.materials)} preset(s))"
    )
    return table


def compile_labels(table: ParameterTable) -> dict[str, Template]:
    env = _label_environment()
    return {name: env.from_string(source) for name, source in table.labels.items()}


def render_parameters(
    record: Record,
    table: ParameterTable,
    labels: dict[str, Template] | None = None,
) -> dict[str, str]:
    """Derive the renderer parameters for a record.

    Args:
        record: Inventory record
        table: Renderer parameter table
        labels: Pre-compiled label templates (compiled from ``table`` if omitted)

    Returns:
        Parameter name to value mapping, defaults overridden by labels
    """
    preset = table.preset_for(record.material)
    context = {
        "manufacturer": record.manufacturer,
        "material": record.material,
        "color": record.color,
        "layer_height": preset.layer_height,
        # The inventory temperature overrides the material default.
        "temperature": record.temperature,
        "default_temperature": preset.temperature,
    }

    parameters = dict(table.defaults)
    for name, template in (labels or compile_labels(table)).items():
        parameters[name] = template.render(**context)
    return parameters
