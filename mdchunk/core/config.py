"""Global configuration (12-factor style).

Environment variables (all optional, ``MDCHUNK_`` prefix, ``.env`` honoured):

* ``MDCHUNK_CHUNK_SIZE``    - default: ``512``
* ``MDCHUNK_CHUNK_OVERLAP`` - default: ``64``; must stay below the chunk size
* ``MDCHUNK_MAX_DEPTH``     - default: ``64``; list / blockquote nesting cap
* ``MDCHUNK_LOG_LEVEL``     - default: ``"WARNING"``; used by the CLI only

Usage:

    from mdchunk.core.config import Settings
    settings = Settings()  # auto-loads & validates env vars

    # For tests:
    test_settings = Settings.for_testing()
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic import model_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Typed view over process environment."""

    model_config = SettingsConfigDict(
        env_prefix="MDCHUNK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    chunk_size: int = Field(default=512, gt=0)
    chunk_overlap: int = Field(default=64, ge=0)
    max_depth: int = Field(default=64, gt=0)

    log_level: str = "WARNING"

    @model_validator(mode="after")
    def _overlap_below_size(self) -> "Settings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self

    @classmethod
    def for_testing(cls) -> "Settings":
        """Small budget so tests exercise chunk boundaries with short inputs.

        Environment values are ignored; tests always see the same numbers.
        """
        return cls.model_construct(
            chunk_size=64, chunk_overlap=32, max_depth=8, log_level="DEBUG"
        )


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
