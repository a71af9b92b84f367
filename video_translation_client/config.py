"""
Server process configuration.

Values are read from environment variables (PORT, HOST, MIN_DELAY, MAX_DELAY,
ERROR_RATE, LOG_LEVEL) or a local .env file. Delays are in milliseconds.
"""
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from video_translation_client.errors import ConfigurationError


class ServerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore"
    )

    host: str = "localhost"
    port: int = 3000
    min_delay: int = Field(default=5000, ge=0)
    max_delay: int = Field(default=50000, ge=0)
    error_rate: float = Field(default=0.03, ge=0.0, le=1.0)
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_delay_range(self):
        if self.min_delay > self.max_delay:
            raise ConfigurationError(
                f"MIN_DELAY ({self.min_delay}) exceeds MAX_DELAY ({self.max_delay})"
            )
        return self
