"""
Console configuration management.

Handles loading, saving, and validating the console configuration.
The console only needs to know where the scheduler service lives and
how often to poll it; everything else has sensible defaults.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, List
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_GROUP = "DEFAULT"

# Environment variables
ENV_BASE_URL = "QUARTZ_MANAGER_URL"
ENV_CONFIG_PATH = "QUARTZ_CONSOLE_CONFIG"
ENV_LOG_DIR = "QUARTZ_CONSOLE_LOG_DIR"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _get_default_log_file() -> str:
    """Get default log file path from environment or default."""
    if os.environ.get(ENV_LOG_DIR):
        return str(Path(os.environ[ENV_LOG_DIR]).expanduser() / "console.log")
    return "~/.quartz_console/logs/console.log"


@dataclass
class ConnectionConfig:
    """Where the scheduler service lives."""
    base_url: str = DEFAULT_BASE_URL
    request_timeout: Optional[float] = None  # None = network layer default


@dataclass
class DashboardConfig:
    """Dashboard refresh and display settings."""
    poll_interval_seconds: float = 5
    history_limit: int = 20
    default_group: str = DEFAULT_GROUP


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: str = None  # Set dynamically in __post_init__

    def __post_init__(self):
        if self.file is None:
            self.file = _get_default_log_file()


@dataclass
class ConsoleConfig:
    """
    Console configuration manager.

    Configuration path priority:
    1. Explicit config_path argument
    2. QUARTZ_CONSOLE_CONFIG environment variable
    3. Default: ~/.quartz_console/config.json

    The service URL is resolved separately, highest priority first:
    explicit base_url, QUARTZ_MANAGER_URL, config file, default.
    """

    config_path: Path = None
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    DEFAULT_CONFIG_PATH = Path.home() / ".quartz_console" / "config.json"

    @classmethod
    def from_sources(
        cls,
        config_path: Optional[str] = None,
        base_url: Optional[str] = None
    ) -> 'ConsoleConfig':
        """
        Build configuration from file, environment and explicit overrides.

        Args:
            config_path: Path to configuration file. If None, uses env var or default.
            base_url: Scheduler service URL overriding every other source.

        Returns:
            ConsoleConfig instance
        """
        if config_path:
            path = Path(config_path).expanduser()
        elif os.environ.get(ENV_CONFIG_PATH):
            path = Path(os.environ[ENV_CONFIG_PATH]).expanduser()
        else:
            path = cls.DEFAULT_CONFIG_PATH

        config = cls(config_path=path)
        if path.exists():
            config.load()
        else:
            logger.debug(f"No config found at {path}, using defaults")

        env_url = os.environ.get(ENV_BASE_URL)
        if base_url:
            logger.debug(f"Using explicitly provided base_url: {base_url}")
            config.connection.base_url = base_url
        elif env_url:
            logger.debug(f"Using base_url from {ENV_BASE_URL}: {env_url}")
            config.connection.base_url = env_url

        return config

    def load(self):
        """Load configuration from JSON file."""
        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)

            if 'connection' in data:
                self.connection = ConnectionConfig(**data['connection'])
            if 'dashboard' in data:
                self.dashboard = DashboardConfig(**data['dashboard'])
            if 'logging' in data:
                self.logging = LoggingConfig(**data['logging'])

            logger.info(f"Loaded configuration from {self.config_path}")

        except Exception as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise

    def save(self):
        """Save configuration to JSON file."""
        path = self.config_path or self.DEFAULT_CONFIG_PATH
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            'connection': asdict(self.connection),
            'dashboard': asdict(self.dashboard),
            'logging': asdict(self.logging)
        }

        with open(path, 'w') as f:
            json.dump(data, f, indent=2)

        self.config_path = path
        logger.info(f"Saved configuration to {path}")

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        parsed = urlparse(self.connection.base_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"connection.base_url must be an http(s) URL, got '{self.connection.base_url}'")

        timeout = self.connection.request_timeout
        if timeout is not None and timeout <= 0:
            errors.append("connection.request_timeout must be positive")

        if self.dashboard.poll_interval_seconds <= 0:
            errors.append("dashboard.poll_interval_seconds must be positive")

        if self.dashboard.history_limit <= 0:
            errors.append("dashboard.history_limit must be positive")

        if not self.dashboard.default_group or not self.dashboard.default_group.strip():
            errors.append("dashboard.default_group cannot be empty")

        if str(self.logging.level).upper() not in LOG_LEVELS:
            errors.append(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got '{self.logging.level}'")

        return errors

    def __repr__(self):
        return f"ConsoleConfig(base_url={self.connection.base_url}, path={self.config_path})"
