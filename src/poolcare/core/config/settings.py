"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """PoolCare server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Server
    # Default to loopback: there is no auth layer in front of the tools.
    pool_host: str = "127.0.0.1"
    pool_port: int = 8010
    pool_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set true.
    pool_allow_insecure_bind: bool = False

    # Storage (pool history store)
    storage_enabled: bool = True
    db_path: str = "~/.poolcare/pools.db"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
