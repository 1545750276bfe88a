from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Chat Relay"
    mode: Literal["debug", "release"] = "debug"

    # Server
    host: str = "0.0.0.0"
    port: int = 8081
    cors_allowed_origins: str = ""  # comma-separated, empty allows all
    server_api_key: str = ""  # empty disables the X-API-Key check

    # Rate limiting (per client address)
    rate_limit_max: int = Field(default=60, gt=0)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)

    # Upstream provider
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    upstream_connect_timeout: float = 10.0
    upstream_read_timeout: float = 300.0

    # Storage
    db_path: str = "claude_play.db"
    database_url: str = ""  # takes precedence over db_path when set

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def debug(self) -> bool:
        return self.mode == "debug"

    @property
    def cors_origins(self) -> list[str]:
        origins = [o.strip() for o in self.cors_allowed_origins.split(",")]
        origins = [o for o in origins if o]
        return origins or ["*"]


settings = Settings()
