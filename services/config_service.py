"""
Printer configuration service with background refresh.

This service owns the current PrinterConfiguration for the whole session.
Routes read it through get_config(); refreshes replace it wholesale.

ATOMIC REPLACE:
    - A refresh parses the full document into a new immutable
      PrinterConfiguration BEFORE assigning it
    - A failed refresh (network or parse) leaves the previous configuration
      untouched and records the error for display
    - Readers observe either the fully-old or the fully-new configuration

Thread Safety:
    - The current configuration and last error are guarded by a lock
    - Manual refreshes run in their own "ConfigRefresh" thread so the
      request that triggered them returns immediately
    - At most one refresh runs at a time

Usage:
    # At app startup
    config_service = ConfigService(PrinterConfigClient(url))
    config_service.start()              # initial load (+ periodic loop if enabled)

    # In routes
    config = config_service.get_config()
    config_service.request_refresh()    # "refresh" button

    # At app shutdown
    config_service.stop()
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.config_client import PrinterConfigClient
from core.exceptions import ConfigLoadError, ConfigurationNotLoadedError
from models.printer_config import PrinterConfiguration
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)


class ConfigService:
    """
    Holds the session's printer configuration and refreshes it.

    Attributes:
        refresh_interval_seconds: Time between automatic refreshes (0 = manual only)
        is_running: Whether start() has been called
    """

    def __init__(
        self,
        client: PrinterConfigClient,
        refresh_interval_seconds: float = 0.0
    ):
        self._client = client
        self._refresh_interval = refresh_interval_seconds

        # Shared state
        self._lock = threading.Lock()
        self._current_config: PrinterConfiguration = PrinterConfiguration.create_empty()
        self._last_error: Optional[ConfigLoadError] = None
        self._last_attempt_at: Optional[datetime] = None

        # Refresh threads
        self._refresh_lock = threading.Lock()
        self._refresh_thread: Optional[threading.Thread] = None
        self._loop_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False

        # Track consecutive failures for logging
        self._consecutive_failures = 0

        logger.info(
            f"ConfigService initialized (url: {client.url}, "
            f"refresh interval: {refresh_interval_seconds or 'manual'})"
        )

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def refresh_interval_seconds(self) -> float:
        return self._refresh_interval

    @property
    def is_refreshing(self) -> bool:
        """Whether a refresh is currently in flight."""
        return self._refresh_lock.locked()

    @property
    def last_error(self) -> Optional[ConfigLoadError]:
        with self._lock:
            return self._last_error

    # ---------- Lifecycle ----------

    def start(self) -> None:
        """
        Start background loading.

        With a refresh interval the loop thread loads immediately and then
        every interval; without one a single initial load is offloaded.
        Safe to call multiple times.
        """
        if self._is_running:
            logger.warning("ConfigService already running")
            return

        self._stop_event.clear()
        self._is_running = True

        if self._refresh_interval > 0:
            self._loop_thread = threading.Thread(
                target=self._refresh_loop,
                name="ConfigRefreshLoop",
                daemon=True
            )
            self._loop_thread.start()
            logger.info("Configuration refresh loop started")
        else:
            self.request_refresh()

    def stop(self) -> None:
        """Stop the refresh loop and wait for an in-flight refresh."""
        if not self._is_running:
            return

        logger.info("Stopping configuration service...")
        self._stop_event.set()

        for thread in (self._loop_thread, self._refresh_thread):
            if thread and thread.is_alive():
                thread.join(timeout=5.0)
                if thread.is_alive():
                    logger.warning(f"{thread.name} thread did not stop cleanly")

        self._is_running = False
        self._loop_thread = None
        logger.info("Configuration service stopped")

    # ---------- Reads ----------

    def get_config(self) -> PrinterConfiguration:
        """
        Current configuration (never None).

        Returns the empty configuration until the first successful load.
        """
        with self._lock:
            return self._current_config

    def get_config_or_raise(self) -> PrinterConfiguration:
        """
        Raises:
            ConfigurationNotLoadedError: If nothing has been loaded yet
        """
        config = self.get_config()
        if config.is_empty:
            raise ConfigurationNotLoadedError()
        return config

    def status(self) -> Dict[str, Any]:
        """Status dictionary for the UI and the health endpoint."""
        with self._lock:
            config = self._current_config
            error = self._last_error
            last_attempt = self._last_attempt_at

        return {
            "loaded": not config.is_empty,
            "source_url": self._client.url,
            "location_count": len(config.locations),
            "model_count": len(config.printer_models),
            "loaded_at": None if config.is_empty else config.loaded_at.isoformat(),
            "age_seconds": None if config.is_empty else round(config.age_seconds, 1),
            "skipped_records": list(config.skipped_records),
            "last_attempt_at": last_attempt.isoformat() if last_attempt else None,
            "refreshing": self.is_refreshing,
            "error": str(error) if error else None,
            "error_kind": error.kind if error else None,
        }

    # ---------- Refresh ----------

    def refresh(self) -> bool:
        """
        Load the configuration in the calling thread.

        Returns:
            True if a new configuration was installed, False otherwise
            (including when another refresh is already running)
        """
        if not self._refresh_lock.acquire(blocking=False):
            logger.info("Configuration refresh already in progress")
            return False
        try:
            return self._do_refresh()
        finally:
            self._refresh_lock.release()

    def request_refresh(self) -> bool:
        """
        Offload a refresh to a background thread.

        Returns:
            True if a refresh thread was started, False if one is running
        """
        if self.is_refreshing:
            return False

        thread = threading.Thread(
            target=self._refresh_thread_main,
            name="ConfigRefresh",
            daemon=True
        )
        self._refresh_thread = thread
        thread.start()
        return True

    def _refresh_thread_main(self) -> None:
        set_thread_name("ConfigRefresh")
        self.refresh()

    def _refresh_loop(self) -> None:
        set_thread_name("ConfigRefreshLoop")
        logger.info("Configuration refresh loop starting")

        self.refresh()

        while not self._stop_event.wait(timeout=self._refresh_interval):
            self.refresh()

        logger.info("Configuration refresh loop exiting")

    def _do_refresh(self) -> bool:
        logger.debug("Refreshing printer configuration...")
        attempted_at = datetime.now(timezone.utc)

        try:
            # Parse fully, then assign
            new_config = self._client.fetch()
        except ConfigLoadError as e:
            with self._lock:
                self._last_error = e
                self._last_attempt_at = attempted_at
            self._log_failure(e)
            return False

        with self._lock:
            self._current_config = new_config
            self._last_error = None
            self._last_attempt_at = attempted_at

        if self._consecutive_failures > 0:
            logger.info(
                f"Configuration refresh recovered after {self._consecutive_failures} failures"
            )
        self._consecutive_failures = 0

        logger.info(
            f"Configuration loaded: {len(new_config.locations)} locations, "
            f"{len(new_config.printer_models)} models"
        )
        return True

    def _log_failure(self, error: ConfigLoadError) -> None:
        self._consecutive_failures += 1

        if self._consecutive_failures == 1:
            logger.warning(f"Configuration refresh failed ({error.kind}): {error}")
        elif self._consecutive_failures <= 3:
            logger.error(
                f"Configuration refresh failed ({self._consecutive_failures} consecutive): {error}"
            )
        elif self._consecutive_failures % 5 == 0:
            # Only log every 5th failure after that to avoid spam
            logger.error(
                f"Configuration refresh still failing ({self._consecutive_failures} consecutive): {error}"
            )
