"""h2osheet configuration management.

Loads configuration from environment variables with sensible defaults.
Storage is local-first: the cache backend is always consulted before the
remote project-data API, which is optional.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

CACHE_BACKENDS = ("file", "redis", "none")


@dataclass
class StorageConfig:
    """Local cache configuration."""

    cache_backend: str = "file"  # file, redis or none
    cache_dir: Path = Path(".h2osheet/cache")
    redis_url: str | None = None
    cache_ttl_seconds: int = 7 * 24 * 3600


@dataclass
class RemoteConfig:
    """Remote project-data API configuration."""

    api_base_url: str | None = None
    api_token: str | None = None
    timeout_seconds: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.api_base_url)


@dataclass
class LibraryConfig:
    """Locations of the parameter and template YAML files.

    ``None`` means the data files shipped inside the package.
    """

    parameters_dir: Path | None = None
    templates_dir: Path | None = None


@dataclass
class AppConfig:
    """Root application configuration."""

    log_level: str = "INFO"
    log_format: str = "console"  # console or json

    storage: StorageConfig = field(default_factory=StorageConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    library: LibraryConfig = field(default_factory=LibraryConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Optional (with defaults):
        - H2OSHEET_CACHE_BACKEND: file, redis or none (default: "file")
        - H2OSHEET_CACHE_DIR: directory for the file cache
        - REDIS_URL: required when the cache backend is redis
        - H2OSHEET_API_URL / H2OSHEET_API_TOKEN: remote sync, disabled when unset
        - LOG_LEVEL, LOG_FORMAT

        Raises:
            KeyError: If REDIS_URL is missing for the redis backend
            ValueError: If the cache backend is unknown
        """
        backend = os.getenv("H2OSHEET_CACHE_BACKEND", "file").strip().lower()
        if backend not in CACHE_BACKENDS:
            raise ValueError(
                f"Unknown cache backend {backend!r}. Expected one of: {', '.join(CACHE_BACKENDS)}"
            )

        redis_url = os.getenv("REDIS_URL")
        if backend == "redis" and not redis_url:
            raise KeyError(
                "REDIS_URL environment variable is required for the redis cache backend. "
                "Example: redis://localhost:6379/0"
            )

        parameters_dir = os.getenv("H2OSHEET_PARAMETERS_DIR")
        templates_dir = os.getenv("H2OSHEET_TEMPLATES_DIR")

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "console"),
            storage=StorageConfig(
                cache_backend=backend,
                cache_dir=Path(os.getenv("H2OSHEET_CACHE_DIR", ".h2osheet/cache")),
                redis_url=redis_url,
                cache_ttl_seconds=int(os.getenv("H2OSHEET_CACHE_TTL", str(7 * 24 * 3600))),
            ),
            remote=RemoteConfig(
                api_base_url=os.getenv("H2OSHEET_API_URL") or None,
                api_token=os.getenv("H2OSHEET_API_TOKEN") or None,
                timeout_seconds=float(os.getenv("H2OSHEET_API_TIMEOUT", "10")),
            ),
            library=LibraryConfig(
                parameters_dir=Path(parameters_dir) if parameters_dir else None,
                templates_dir=Path(templates_dir) if templates_dir else None,
            ),
        )

    @property
    def json_logs(self) -> bool:
        return self.log_format.lower() == "json"


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Returns:
        AppConfig: Application configuration

    Raises:
        KeyError: If required environment variables are missing
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config
