"""Server settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from a2a_tasks.utilities.logging import LogLevel


class Settings(BaseSettings):
    """Task server settings.

    All settings can be configured via environment variables with the prefix A2A_.
    For example, A2A_PORT=9000 will set port=9000.
    """

    model_config = SettingsConfigDict(
        env_prefix="A2A_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Server settings
    debug: bool = False
    log_level: LogLevel = "INFO"

    # HTTP settings
    host: str = "127.0.0.1"
    port: int = 8000

    # Worker pool
    max_workers: int = Field(default=32, ge=1)

    # Streaming
    stream_timeout: float = Field(default=30.0, gt=0)
    """Seconds a stream may stay idle before it is closed with a timeout event."""
    emit_delay: float = Field(default=0.05, ge=0)
    """Pause between the events of a task's work, so streaming clients see them arrive one by one."""

    # Task retention
    sweep_interval: float = Field(default=300.0, gt=0)
    task_max_age: float = Field(default=3600.0, gt=0)
    """Terminal tasks untouched for longer than this are removed by the sweep."""
