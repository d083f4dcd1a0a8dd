"""
Centralized configuration for accinfo.

All configuration is loaded from environment variables with sensible defaults.
CLI flags override individual values via dataclasses.replace().

Usage:
    from accinfo.config import get_config
    cfg = get_config()
    print(cfg.database)      # ~/.accinfo/accounts.aidb or $ACCINFO_DATABASE
    print(cfg.listen)        # "127.0.0.1:8080"
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Config:
    """Top-level accinfo configuration."""

    database: Path = field(default_factory=lambda: Path.home() / ".accinfo" / "accounts.aidb")

    # HTTP service (TLS is terminated by the reverse proxy in front)
    host: str = "127.0.0.1"
    port: int = 8080
    api_token: str = ""  # empty = no bearer auth
    rate_limit: int = 60  # requests per client IP per minute, 0 = unlimited

    # Logging
    log_level: str = "INFO"
    log_file: str = ""  # empty = stderr only
    log_max_bytes: int = 10 * 1024 * 1024

    # scrypt work factor for newly written databases (n = 2**kdf_log_n)
    kdf_log_n: int = 15

    @property
    def listen(self) -> str:
        return f"{self.host}:{self.port}"


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    database = Path(
        os.environ.get("ACCINFO_DATABASE", Path.home() / ".accinfo" / "accounts.aidb")
    ).expanduser()

    return Config(
        database=database,
        host=os.environ.get("ACCINFO_HOST", "127.0.0.1"),
        port=int(os.environ.get("ACCINFO_PORT", "8080")),
        api_token=os.environ.get("ACCINFO_API_TOKEN", ""),
        rate_limit=int(os.environ.get("ACCINFO_RATE_LIMIT", "60")),
        log_level=os.environ.get("ACCINFO_LOG_LEVEL", "INFO").upper(),
        log_file=os.environ.get("ACCINFO_LOG_FILE", ""),
        log_max_bytes=int(os.environ.get("ACCINFO_LOG_MAX_BYTES", str(10 * 1024 * 1024))),
        kdf_log_n=int(os.environ.get("ACCINFO_KDF_LOG_N", "15")),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
