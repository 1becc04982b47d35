"""
SLA Configuration File Integration
===================================

YAML-backed SLA configuration with watchdog hot-reload.

The file holds the default weekly business hours (used for scopes with
no schedule in the database) and the per-priority fallback targets.
"""

import threading
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from helpdesk_sla.core.exceptions import ConfigurationException
from helpdesk_sla.sla.application.services import ISLAConfigProvider
from helpdesk_sla.sla.domain.value_objects import SLAConfig
from helpdesk_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA config file changes."""

    def __init__(self, config_manager: "SLAConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("SLA config file changed", extra={"path": event.src_path})
            self.config_manager.reload()

    on_created = on_modified


class SLAConfigManager(ISLAConfigProvider):
    """
    Thread-safe SLA configuration manager with hot-reload support.

    Uses watchdog to monitor file changes and reload configuration
    without restarting the service. A reload that fails keeps the
    previous configuration.
    """

    def __init__(self, config: Optional[SLAConfig] = None):
        self._config: Optional[SLAConfig] = config
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SLAConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: if the file exists but is invalid
        """
        self._path = Path(path)
        try:
            config = self._load_from_file(self._path)
        except (yaml.YAMLError, ValidationError, OSError) as e:
            raise ConfigurationException(
                f"Invalid SLA configuration file: {self._path}",
                {"error": str(e)}
            )
        with self._lock:
            self._config = config
        return config

    @staticmethod
    def _load_from_file(path: Path) -> SLAConfig:
        """Load and parse YAML config file; defaults when it is missing."""
        if not path.exists():
            logger.warning("SLA config file not found, using defaults", extra={"path": str(path)})
            return SLAConfig()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return SLAConfig(**data)

    def reload(self) -> bool:
        """Reload configuration from file."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (yaml.YAMLError, ValidationError, OSError) as e:
            logger.error(
                "Failed to reload SLA config, keeping previous",
                extra={"path": str(self._path), "error": str(e)}
            )
            return False

        with self._lock:
            self._config = new_config
        logger.info("SLA configuration reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching configuration file for changes.

        Skips watching when the file doesn't exist or the platform cannot
        watch files (e.g. some containers).
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "SLA config file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                ConfigFileHandler(self, self._path),
                str(self._path.resolve().parent),
                recursive=False
            )
            self._observer.start()
            logger.info("Started watching SLA config file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static config", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    @property
    def config(self) -> SLAConfig:
        """Get current configuration."""
        with self._lock:
            if self._config is None:
                raise RuntimeError("SLA configuration not loaded")
            return self._config

    def get_config(self) -> SLAConfig:
        return self.config
