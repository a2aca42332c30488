"""Runtime configuration for the Helios-9 MCP server.

Values come from the environment (``HELIOS_*``), an optional ``.env`` file,
or explicit overrides passed by the CLI.
"""
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_API_URL = "https://www.helios9.app"


class Settings(BaseSettings):
    # Backend
    api_url: str = DEFAULT_API_URL
    api_key: Optional[str] = None
    request_timeout: float = 30.0
    client_name: str = "helios9-mcp-server"

    # Credentials carrying this prefix are service keys
    service_key_prefix: str = "hel9_"
    lazy_service_keys: bool = False

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="HELIOS_", env_file=".env", extra="ignore")

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    def is_service_key(self, credential: Optional[str]) -> bool:
        return bool(credential) and credential.startswith(self.service_key_prefix)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
