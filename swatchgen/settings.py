from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.models import OutputFormat


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SWATCHGEN_", case_sensitive=False)

    openscad_path: str = "openscad"
    scad_file: Path = Path("Configurable_Filament_Swatch.scad")
    output_format: OutputFormat = OutputFormat.STL
    workers: int | None = Field(default=None, ge=1)
    render_timeout: float | None = Field(default=None, gt=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
