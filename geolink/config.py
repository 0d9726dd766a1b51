"""
Centralized configuration for GeoLink Access.

All configuration is loaded from environment variables with sensible defaults.
A ``.env`` file in the working directory is honoured for local development.

Usage:
    from geolink.config import get_config
    cfg = get_config()
    print(cfg.db.name)          # "geolink"
    print(cfg.is_production)    # False unless GEOLINK_ENV=production
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection parameters."""

    host: str = ""  # empty = Unix socket (peer auth); set to 127.0.0.1 for TCP
    port: int = 5432
    name: str = "geolink"
    user: str = "geolink"
    password: str = ""

    @property
    def dsn(self) -> str:
        """Return a psycopg2-compatible DSN string."""
        parts = [f"dbname={self.name}"]
        if self.host:
            parts.append(f"host={self.host}")
        parts.append(f"port={self.port}")
        if self.user:
            parts.append(f"user={self.user}")
        if self.password:
            parts.append(f"password={self.password}")
        return " ".join(parts)

    @property
    def dict(self) -> dict[str, str | int]:
        """Return a psycopg2.connect() kwargs dict."""
        d: dict[str, str | int] = {
            "dbname": self.name,
            "port": self.port,
        }
        if self.host:
            d["host"] = self.host
        if self.user:
            d["user"] = self.user
        if self.password:
            d["password"] = self.password
        return d


@dataclass(frozen=True)
class AuthConfig:
    """Bearer token and API key settings."""

    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    api_key_header: str = "X-API-Key"
    token_ttl_hours: int = 24


@dataclass(frozen=True)
class Config:
    """Top-level GeoLink configuration."""

    environment: str = "development"
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)

    api_host: str = "127.0.0.1"
    api_port: int = 4000
    pool_min: int = 1
    pool_max: int = 10

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


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
    load_dotenv()

    db = DatabaseConfig(
        host=os.environ.get("GEOLINK_DB_HOST", ""),
        port=int(os.environ.get("GEOLINK_DB_PORT", "5432")),
        name=os.environ.get("GEOLINK_DB_NAME", "geolink"),
        user=os.environ.get("GEOLINK_DB_USER", os.environ.get("USER", "geolink")),
        password=os.environ.get("GEOLINK_DB_PASSWORD", ""),
    )

    auth = AuthConfig(
        jwt_secret=os.environ.get("GEOLINK_JWT_SECRET", os.environ.get("JWT_SECRET", "")),
        jwt_algorithm=os.environ.get("GEOLINK_JWT_ALGORITHM", "HS256"),
        api_key_header=os.environ.get("GEOLINK_API_KEY_HEADER", "X-API-Key"),
        token_ttl_hours=int(os.environ.get("GEOLINK_TOKEN_TTL_HOURS", "24")),
    )

    return Config(
        environment=os.environ.get("GEOLINK_ENV", os.environ.get("NODE_ENV", "development")),
        db=db,
        auth=auth,
        api_host=os.environ.get("GEOLINK_API_HOST", "127.0.0.1"),
        api_port=int(os.environ.get("GEOLINK_API_PORT", "4000")),
        pool_min=int(os.environ.get("GEOLINK_DB_POOL_MIN", "1")),
        pool_max=int(os.environ.get("GEOLINK_DB_POOL_MAX", "10")),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
