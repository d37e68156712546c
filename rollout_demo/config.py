from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    service_name: str = Field(default="demo-app", alias="SERVICE_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    git_commit: str = Field(default="unknown", alias="GIT_COMMIT")
    environment: str = Field(default="production", alias="APP_ENV")

    memory_limit_mb: int = Field(default=512, alias="MEMORY_LIMIT_MB")
    simulated_error_rate: float = Field(default=0.05, ge=0.0, le=1.0, alias="SIMULATED_ERROR_RATE")
    users_max_delay_ms: float = Field(default=100.0, ge=0.0, alias="USERS_MAX_DELAY_MS")
    slow_max_delay_ms: float = Field(default=3000.0, ge=0.0, alias="SLOW_MAX_DELAY_MS")
    random_seed: int | None = Field(default=None, alias="RANDOM_SEED")

    shutdown_timeout_s: int = Field(default=30, ge=0, alias="SHUTDOWN_TIMEOUT_S")

    @property
    def is_development(self) -> bool:
        return self.environment.strip().lower() == "development"

    @property
    def memory_limit_bytes(self) -> int:
        return self.memory_limit_mb * 1024 * 1024


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
