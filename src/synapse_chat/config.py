"""Environment-driven settings.

Centralizes configuration so commands and the TUI never read the
environment directly. Values come from the process environment, with a
``.env`` file in the working directory loaded first.

Environment variables:
    SYNAPSE_PROVIDER: Provider type (pollinations, openai; default: pollinations)
    SYNAPSE_API_BASE: Endpoint root (default depends on provider)
    SYNAPSE_API_KEY: Static bearer credential (required for openai)
    SYNAPSE_DEFAULT_MODEL: Model used before one is chosen (default: openai)
    SYNAPSE_TIMEOUT: Request timeout in seconds (default: 60)
    SYNAPSE_STORAGE: Storage backend (file, memory; default: file)
    SYNAPSE_DATA_DIR: Directory for the file backend (default: ~/.synapse)
    SYNAPSE_LOG_LEVEL: Log level (default: WARNING)
    SYNAPSE_LOG_FILE: Optional log file path
"""

import os
from pathlib import Path
from typing import Literal

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class Settings(BaseModel):
    """Resolved client configuration."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["pollinations", "openai"] = "pollinations"
    api_base: str | None = Field(default=None, description="Endpoint root override")
    api_key: str | None = Field(default=None, description="Static bearer credential")
    default_model: str = "openai"
    timeout: float = Field(default=60.0, gt=0)
    storage: Literal["file", "memory"] = "file"
    data_dir: Path = Path("~/.synapse")
    log_level: str = "WARNING"
    log_file: Path | None = None

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    def provider_config(self) -> dict:
        """Keyword arguments for ``create_llm_provider``."""
        return {
            "api_key": self.api_key,
            "base_url": self.api_base,
            "timeout": self.timeout,
        }

    def storage_config(self) -> dict:
        """Keyword arguments for ``create_storage``."""
        if self.storage == "file":
            return {"directory": self.data_dir.expanduser()}
        return {}


def load_settings(**overrides) -> Settings:
    """Build Settings from the environment.

    Args:
        **overrides: Explicit values (e.g. from CLI options); None is ignored

    Raises:
        ValueError: If a value is invalid
    """
    load_dotenv(find_dotenv(usecwd=True))

    values = {
        "provider": os.getenv("SYNAPSE_PROVIDER", "pollinations").lower(),
        "api_base": os.getenv("SYNAPSE_API_BASE") or None,
        "api_key": os.getenv("SYNAPSE_API_KEY") or None,
        "default_model": os.getenv("SYNAPSE_DEFAULT_MODEL", "openai"),
        "timeout": os.getenv("SYNAPSE_TIMEOUT", "60"),
        "storage": os.getenv("SYNAPSE_STORAGE", "file").lower(),
        "data_dir": os.getenv("SYNAPSE_DATA_DIR", "~/.synapse"),
        "log_level": os.getenv("SYNAPSE_LOG_LEVEL", "WARNING"),
        "log_file": os.getenv("SYNAPSE_LOG_FILE") or None,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
