"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Contextual padding pipeline configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; opt into `0.0.0.0` explicitly for remote access.
    cpad_host: str = "127.0.0.1"
    cpad_port: int = 8011
    cpad_log_level: str = "info"
    # If binding to non-loopback, refuse to start unless this is set true
    # (there is currently no auth layer).
    cpad_allow_insecure_bind: bool = False

    # Alignment self-check: value_a + value_b must equal value_c within tolerance
    alignment_value_a: float = 2.89
    alignment_value_b: float = 0.1
    alignment_value_c: float = 2.99
    alignment_tolerance: float = 1e-4

    # Shared stores
    cache_capacity: int = 1000
    profile_capacity: int = 500
    history_limit: int = 100

    # Cultural context nudges padding by one step when markers are found
    cultural_context: bool = True

    # Transport relay
    process_timeout_seconds: float = 2.0
    send_retries: int = 2

    # Optional persistence (empty db_path = in-memory only)
    db_path: str = ""
    encryption_key: str = ""
    # Comma-separated retired keys; stored history is re-encrypted under
    # encryption_key at startup
    previous_encryption_keys: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
