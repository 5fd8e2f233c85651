from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from field_dictionary import DEFAULT_DATA_DIR


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HL7_EXPLORER_", extra="ignore")

    data_dir: Path = DEFAULT_DATA_DIR
    api_base_url: str = "http://localhost:3001"
    api_timeout: float = 10.0
    log_level: str = "INFO"
