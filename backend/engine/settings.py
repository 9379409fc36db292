"""Engine configuration via environment variables."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class EngineSettings(BaseSettings):
    model_config = {"env_prefix": "ENGINE_"}

    database_path: str = Field(default="backend/data/engine.db", min_length=1)
    registry_dir: str = Field(default="config", min_length=1)
    log_dir: str | None = Field(default="backend/logs/engine")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    certification_runs: int = Field(default=100, ge=1)
