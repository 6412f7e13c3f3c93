"""
Central application configuration.

Every tunable value lives here as a typed, documented field.
Any field can be overridden at runtime via an environment variable of the
same name (case-insensitive), e.g.:

    MAX_UPLOAD_MB=50 python -m diso          # allow larger clips
    export STORAGE_DIR=~/.local/share/diso   # move the history file

A `.env` file at the project root is loaded automatically.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,   # MAX_UPLOAD_MB == max_upload_mb
        extra="ignore",         # silently drop unknown env vars
    )

    # ------------------------------------------------------------------ #
    # File Size Limits                                                    #
    # ------------------------------------------------------------------ #
    max_upload_mb: int = Field(
        20, description="Max MB for a single image or video submission"
    )

    # ------------------------------------------------------------------ #
    # History Persistence                                                 #
    # ------------------------------------------------------------------ #
    history_storage_key: str = Field(
        "diso_history", description="Storage key holding the serialized history list"
    )
    storage_dir: str = Field(
        ".diso", description="Directory backing the local key-value store"
    )
    storage_capacity_kb: int = Field(
        5_120, description="Total capacity of the local store (browser-like 5 MB quota)"
    )

    # ------------------------------------------------------------------ #
    # Gemini Client                                                       #
    # ------------------------------------------------------------------ #
    gemini_model: str = Field(
        "gemini-2.5-flash", description="Model used for forensic analysis"
    )
    gemini_http_timeout_ms: int = Field(
        120_000, description="HTTP client total timeout (ms); videos are slow"
    )
    gemini_temperature: float = Field(
        0.4, description="Sampling temperature for Gemini model"
    )

    # ------------------------------------------------------------------ #
    # Local API                                                           #
    # ------------------------------------------------------------------ #
    api_host: str = Field(
        "127.0.0.1", description="Bind address; the surface is local-only"
    )
    api_port: int = Field(
        8765, description="Port of the local presentation API"
    )

    # ------------------------------------------------------------------ #
    # Derived byte-level properties (computed from MB/KB fields)          #
    # ------------------------------------------------------------------ #
    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def storage_capacity_bytes(self) -> int:
        return self.storage_capacity_kb * 1024


# Single shared instance, import this everywhere.
settings = Settings()
