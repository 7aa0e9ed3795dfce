"""
Runtime settings read from the environment.

UCDIAGRAM_MAX_HISTORY   undo snapshots kept per editing session (default 100)
UCDIAGRAM_PASS_SCORE    minimum consistency score the CLI gate accepts (default 60)
UCDIAGRAM_LOG_LEVEL     logging level name for the CLI (default WARNING)
UCDIAGRAM_DIAGRAMS_DIR  directory used by the JSON file store (default ~/diagrams)
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Settings shared by the document model, the CLI and the stores."""

    model_config = SettingsConfigDict(env_prefix="UCDIAGRAM_", env_ignore_empty=True)

    max_history: int = Field(default=100, ge=1)
    pass_score: int = Field(default=60, ge=0, le=100)
    log_level: str = "WARNING"
    diagrams_dir: Path = Path("~/diagrams").expanduser()

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @field_validator("diagrams_dir")
    @classmethod
    def expand_dir(cls, value: Path) -> Path:
        return Path(value).expanduser()


def load_settings() -> Settings:
    """Build Settings from the current UCDIAGRAM_* environment.

    Unset or empty variables keep their defaults; malformed values raise a
    pydantic ValidationError naming the offending field.
    """
    return Settings()
