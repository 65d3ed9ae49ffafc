# ============================================================================
# ghostleak/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# Defines every process-level setting: where state is stored, how probes are
# sent, where the proxy and the control API listen, and how logging behaves.
#
# KEY CONCEPTS:
# 1. Frozen dataclasses: one immutable section per concern
# 2. Environment variables: GHOSTLEAK_* overrides, read once by from_env()
# 3. Singleton: get_config() builds the config lazily, set_config() swaps it
#
# NOTE:
# The three user toggles (enabled / git / env) are NOT configuration. They
# live in the durable store and change at runtime; see base/settings.py.
#
# ============================================================================

from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ghostleak.errors import ErrorCode, GhostleakError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/133.0.0.0 Safari/537.36"
)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_number(name: str, default: str, cast=float):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError as e:
        raise GhostleakError(
            ErrorCode.CONFIG_INVALID,
            f"{name} must be a number, got {raw!r}",
            details={"variable": name, "value": raw},
        ) from e


# ============================================================================
# File Storage Configuration
# ============================================================================

@dataclass(frozen=True)
class StorageConfig:
    # Base directory for the database and log files
    base_dir: Path = field(default_factory=lambda: Path.home() / ".ghostleak")

    # SQLite file holding the key-value state (toggles, findings, dedup set)
    db_name: str = "ghostleak.db"

    @property
    def db_path(self) -> Path:
        return self.base_dir / self.db_name


# ============================================================================
# Probe Configuration
# ============================================================================
# Controls the outbound GET requests sent to /.git/config and /.env.

@dataclass(frozen=True)
class ProbeConfig:
    # Upper bound for one probe, connect + read + body. A hung probe would
    # otherwise hold its origin lock forever.
    timeout_seconds: float = 10.0

    # Targets are arbitrary sites; many have broken or self-signed certs
    verify_tls: bool = False

    # Browsers follow redirects when fetching, so the probe does too
    follow_redirects: bool = True

    user_agent: str = DEFAULT_USER_AGENT


# ============================================================================
# Passive Proxy Configuration
# ============================================================================

@dataclass(frozen=True)
class ProxyConfig:
    listen_host: str = "127.0.0.1"

    # 0 means "pick a free port at start"
    listen_port: int = 8080


# ============================================================================
# Control API Configuration
# ============================================================================

@dataclass(frozen=True)
class ApiConfig:
    host: str = "127.0.0.1"
    port: int = 8766


# ============================================================================
# Cross-process Change Watch
# ============================================================================

@dataclass(frozen=True)
class WatchConfig:
    # How often the SQLite store checks whether another process wrote to it
    poll_interval: float = 1.0


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    file_enabled: bool = True
    file_name: str = "ghostleak.log"
    max_file_size_mb: int = 10
    backup_count: int = 5


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass  # Not frozen because __post_init__ creates directories
class GhostleakConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    log: LogConfig = field(default_factory=LogConfig)
    debug: bool = False

    def __post_init__(self):
        self.storage.base_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> "GhostleakConfig":
        base_dir = Path(os.getenv("GHOSTLEAK_DATA_DIR", str(Path.home() / ".ghostleak")))
        storage = StorageConfig(base_dir=base_dir)

        probe = ProbeConfig(
            timeout_seconds=_env_number("GHOSTLEAK_PROBE_TIMEOUT", "10"),
            verify_tls=_env_bool("GHOSTLEAK_VERIFY_TLS", "false"),
            follow_redirects=_env_bool("GHOSTLEAK_FOLLOW_REDIRECTS", "true"),
            user_agent=os.getenv("GHOSTLEAK_USER_AGENT", DEFAULT_USER_AGENT),
        )

        proxy = ProxyConfig(
            listen_host=os.getenv("GHOSTLEAK_PROXY_HOST", "127.0.0.1"),
            listen_port=_env_number("GHOSTLEAK_PROXY_PORT", "8080", int),
        )

        api = ApiConfig(
            host=os.getenv("GHOSTLEAK_API_HOST", "127.0.0.1"),
            port=_env_number("GHOSTLEAK_API_PORT", "8766", int),
        )

        watch = WatchConfig(
            poll_interval=_env_number("GHOSTLEAK_WATCH_INTERVAL", "1.0"),
        )

        log = LogConfig(
            level=os.getenv("GHOSTLEAK_LOG_LEVEL", "INFO"),
            file_enabled=_env_bool("GHOSTLEAK_LOG_FILE", "true"),
        )

        return cls(
            storage=storage,
            probe=probe,
            proxy=proxy,
            api=api,
            watch=watch,
            log=log,
            debug=_env_bool("GHOSTLEAK_DEBUG", "false"),
        )


_config: Optional[GhostleakConfig] = None


def get_config() -> GhostleakConfig:
    global _config
    if _config is None:
        _config = GhostleakConfig.from_env()
    return _config


def set_config(config: Optional[GhostleakConfig]) -> None:
    global _config
    _config = config


def setup_logging(config: Optional[GhostleakConfig] = None) -> None:
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_enabled:
        from logging.handlers import RotatingFileHandler
        log_path = cfg.storage.base_dir / cfg.log.file_name
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    level = "DEBUG" if cfg.debug else cfg.log.level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
