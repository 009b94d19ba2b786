"""Environment and settings (Pydantic Settings)."""

from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Default data directory: ~/.daybook/
_data_dir = Path.home() / ".daybook"
DEFAULT_LOG_FILE = _data_dir / "daybook.log"


class Settings(BaseSettings):
    """Daybook settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="DAYBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Undo snackbar lifetime
    undo_window_seconds: float = 5.0

    # Calendar strip: span and how far before today it starts
    calendar_span_days: int = 90
    calendar_lookback_days: int = 45

    # Session seed data
    sample_task_count: int = 60
    sample_seed: Optional[int] = None

    owner_name: str = "Adrian Kisliuk"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: Path = DEFAULT_LOG_FILE


def get_settings() -> Settings:
    """Return application settings (singleton-like)."""
    return Settings()
