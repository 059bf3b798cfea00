"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "Maturity Scoring Engine"
    debug: bool = True
    mock_mode: bool = True  # When True, the in-memory demo data source is used

    # ── MongoDB ──────────────────────────────────────────
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "maturity_framework"

    # ── Cache ────────────────────────────────────────────
    cache_ttl_seconds: float = 300.0  # 5 minutes
    cache_sweep_interval_seconds: float = 120.0  # 2 minutes

    # ── Scoring ──────────────────────────────────────────
    basic_structuring_diagnostic_id: int = 1  # scored with the Sim/Não table

    # ── Loaders ──────────────────────────────────────────
    fetch_timeout_seconds: float = 30.0

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
