"""
Configuration management using pydantic-settings.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from walrus_client.constants import DEFAULT_TIMEOUT, DEFAULT_WALRUS_ADDRESS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="WALRUS_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # host:port or full URL; a bare host:port is reached over https
    address: str = DEFAULT_WALRUS_ADDRESS
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings()
