"""Configuration loading for votelog."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

STORE_BACKENDS = ("redis", "sqlite", "memory")
IMPORT_POLICIES = ("abort", "skip")


@dataclass
class StoreConfig:
    """Configuration for the backing list store."""

    backend: str = "redis"  # "redis", "sqlite" or "memory"
    redis_url: str = "redis://localhost:6379/0"
    sqlite_path: str = "~/.votelog/votes.db"
    socket_timeout_seconds: float | None = 5.0


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class ImportConfig:
    """Configuration for CSV bulk import."""

    on_error: str = "abort"  # "abort" or "skip"
    progress_every: int = 100000


@dataclass
class LoggingConfig:
    level: str = "info"
    json: bool = False


@dataclass
class Config:
    store: StoreConfig = field(default_factory=StoreConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    importer: ImportConfig = field(default_factory=ImportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with VOTELOG_ prefix."""
    return os.environ.get(f"VOTELOG_{key}", default)


def _as_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    # Store overrides
    if backend := _get_env("STORE_BACKEND"):
        config.store.backend = backend
    if redis_url := _get_env("REDIS_URL"):
        config.store.redis_url = redis_url
    if sqlite_path := _get_env("SQLITE_PATH"):
        config.store.sqlite_path = sqlite_path

    # Server overrides
    if host := _get_env("HOST"):
        config.server.host = host
    if port := _get_env("PORT"):
        config.server.port = int(port)

    # Import overrides
    if on_error := _get_env("IMPORT_ON_ERROR"):
        config.importer.on_error = on_error

    # Logging overrides
    if level := _get_env("LOG_LEVEL"):
        config.logging.level = level
    if json_logs := _get_env("JSON_LOGS"):
        config.logging.json = _as_bool(json_logs)

    return config


def _validate(config: Config) -> Config:
    if config.store.backend not in STORE_BACKENDS:
        raise ValueError(
            f"Unknown store backend '{config.store.backend}', "
            f"expected one of {', '.join(STORE_BACKENDS)}"
        )
    if config.importer.on_error not in IMPORT_POLICIES:
        raise ValueError(
            f"Unknown import error policy '{config.importer.on_error}', "
            f"expected one of {', '.join(IMPORT_POLICIES)}"
        )
    if config.importer.progress_every < 1:
        raise ValueError("importer.progress_every must be at least 1")
    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default config.

    Returns:
        Loaded and validated Config object.

    Raises:
        ValueError: If a backend or policy name is not recognized.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            # Parse store config
            if "store" in data:
                store_data = data["store"]
                config.store = StoreConfig(
                    backend=store_data.get("backend", config.store.backend),
                    redis_url=store_data.get("redis_url", config.store.redis_url),
                    sqlite_path=store_data.get(
                        "sqlite_path", config.store.sqlite_path
                    ),
                    socket_timeout_seconds=store_data.get(
                        "socket_timeout_seconds", config.store.socket_timeout_seconds
                    ),
                )

            # Parse server config
            if "server" in data:
                server_data = data["server"]
                config.server = ServerConfig(
                    host=server_data.get("host", config.server.host),
                    port=server_data.get("port", config.server.port),
                )

            # Parse import config
            if "importer" in data:
                import_data = data["importer"]
                config.importer = ImportConfig(
                    on_error=import_data.get("on_error", config.importer.on_error),
                    progress_every=import_data.get(
                        "progress_every", config.importer.progress_every
                    ),
                )

            # Parse logging config
            if "logging" in data:
                log_data = data["logging"]
                config.logging = LoggingConfig(
                    level=log_data.get("level", config.logging.level),
                    json=log_data.get("json", config.logging.json),
                )

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return _validate(config)
