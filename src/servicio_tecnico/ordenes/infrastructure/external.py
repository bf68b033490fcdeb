"""
Order External Integrations
============================

Process-level collaborators of the order module:
- YAML semáforo threshold file with watchdog hot reload
- APScheduler job driving the periodic alert sweep
"""

import threading
from pathlib import Path
from typing import Awaitable, Callable, Optional

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from servicio_tecnico.core import ConfigurationException
from servicio_tecnico.ordenes.application import ISemaforoConfigProvider
from servicio_tecnico.ordenes.domain import SemaforoConfig
from servicio_tecnico.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for semáforo config file changes."""

    def __init__(self, config_manager: "SemaforoConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("Semáforo config file changed", extra={"path": event.src_path})
            self.config_manager.reload()


class SemaforoConfigManager(ISemaforoConfigProvider):
    """
    Thread-safe semáforo threshold manager with hot-reload support.

    The watchdog observer calls `reload()` from its own thread, so the
    current config is swapped under a lock. A missing file means defaults.
    """

    def __init__(self):
        self._config: Optional[SemaforoConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SemaforoConfig:
        """Initial configuration load; raises ConfigurationException on a bad file."""
        self._path = Path(path)
        config = self._load_from_file(self._path)
        with self._lock:
            self._config = config
        logger.info("Semáforo configuration loaded", extra=config.model_dump())
        return config

    def _load_from_file(self, path: Path) -> SemaforoConfig:
        if not path.exists():
            logger.warning(
                "Semáforo config file not found, using defaults",
                extra={"path": str(path)}
            )
            return SemaforoConfig()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Invalid YAML in {path}: {e}")

        # Thresholds may sit at the top level or under a `semaforo:` key
        if isinstance(data, dict):
            data = data.get("semaforo", data) or {}
        if not isinstance(data, dict):
            raise ConfigurationException(f"{path} must contain a mapping of thresholds")

        try:
            return SemaforoConfig(**data)
        except ValidationError as e:
            raise ConfigurationException(
                f"Invalid semáforo thresholds in {path}",
                details={"errors": e.errors(include_url=False)}
            )

    def reload(self) -> bool:
        """Reload from file; the previous config stays active on failure."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except ConfigurationException as e:
            logger.error(
                "Failed to reload semáforo config, keeping previous",
                extra={"error": e.message}
            )
            return False

        with self._lock:
            self._config = new_config
        logger.info("Semáforo configuration reloaded", extra=new_config.model_dump())
        return True

    def start_watching(self) -> None:
        """
        Start watching the configuration file for changes.

        Skipped when the file does not exist or inotify is unavailable
        (serverless and some container runtimes).
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "Semáforo config file absent, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Started watching semáforo config", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static config", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    def get_config(self) -> SemaforoConfig:
        with self._lock:
            if self._config is None:
                raise RuntimeError("Semáforo configuration not loaded")
            return self._config

    @property
    def config(self) -> SemaforoConfig:
        return self.get_config()


class AlertaSweepScheduler:
    """
    Wrapper for APScheduler running the alert sweep in-process.

    One job, never overlapping: `max_instances=1` and missed runs coalesce
    into a single one. An interval of 0 disables the scheduler, leaving
    the cron endpoint as the only trigger.
    """

    JOB_ID = "alertas_sweep"

    def __init__(self, interval_seconds: int = 3600):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    @property
    def enabled(self) -> bool:
        return self.interval_seconds > 0

    async def start(self, job_func: Callable[[], Awaitable[None]]) -> None:
        """Start the scheduler with the given coroutine function."""
        if not self.enabled:
            logger.info("Alert sweep scheduler disabled (interval is 0)")
            return

        if self._running:
            logger.warning("Alert sweep scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            name="Alert Sweep Job",
            misfire_grace_time=60,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info(
            "Alert sweep scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._scheduler = None
        self._running = False
        logger.info("Alert sweep scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
