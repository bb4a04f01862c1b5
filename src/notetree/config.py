"""Configuration module for notetree."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config
_USER_ENV = Path.home() / ".notetree" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NoteTreeConfig(BaseModel):
    """Configuration for hierarchy building and schema matching."""

    # Match the exact namespace note in addition to its wildcard children
    match_namespace: bool = Field(
        default_factory=lambda: _env_flag("NOTETREE_MATCH_NAMESPACE", "true")
    )
    # When True, every record id is checked for uniqueness before a build
    # starts. When False, duplicates surface only when the id is looked up.
    eager_duplicate_check: bool = Field(
        default_factory=lambda: _env_flag("NOTETREE_EAGER_DUPLICATE_CHECK", "true")
    )
    # Extension stripped from note paths when deriving default titles
    note_extension: str = Field(
        default_factory=lambda: os.getenv("NOTETREE_NOTE_EXTENSION", ".md")
    )
    # Suffix appended to schema record paths
    schema_suffix: str = Field(
        default_factory=lambda: os.getenv("NOTETREE_SCHEMA_SUFFIX", ".schema")
    )
    # Logging configuration
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTETREE_LOG_LEVEL", "INFO").upper()
    )
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTETREE_LOG_DIR"))
            if os.getenv("NOTETREE_LOG_DIR")
            else None
        )
    )

    model_config = {"validate_assignment": True}

    @model_validator(mode="after")
    def _validate_settings(self) -> "NoteTreeConfig":
        """Reject log levels and extensions that the builders cannot use."""
        if self.log_level.upper() not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(_VALID_LOG_LEVELS)}"
            )
        for name in ("note_extension", "schema_suffix"):
            value = getattr(self, name)
            if not value.startswith(".") or len(value) < 2:
                raise ValueError(f"{name} must start with '.' and not be empty")
        return self

    @property
    def log_level_value(self) -> int:
        """The numeric logging level for ``log_level``."""
        return getattr(logging, self.log_level.upper())


# Create a global config instance
config = NoteTreeConfig()
