from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from courtside.sync.retry import RetryPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COURTSIDE_",
        extra="ignore",
    )

    # stats api
    api_base_url: str = Field(default="http://localhost:3000")
    http_timeout_s: float = 30.0
    http_connect_timeout_s: float = 10.0

    # query cache
    stale_time_s: float = Field(default=5.0, ge=0.0)
    gc_time_s: float = Field(default=300.0, ge=0.0)

    # retry / backoff
    retry_count: int = Field(default=3, ge=0)
    retry_base_delay_s: float = Field(default=1.0, ge=0.0)
    retry_max_delay_s: float = Field(default=30.0, ge=0.0)

    log_level: str = "INFO"

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            retries=self.retry_count,
            base_delay_s=self.retry_base_delay_s,
            max_delay_s=self.retry_max_delay_s,
        )


settings = Settings()
