"""
Core module for PrinterInstallWeb.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- cups_admin: CUPS queue administration (lpstat / lpadmin)
- config_client: HTTP client for the configuration server
  (import it as core.config_client; it depends on models)
"""

from .exceptions import (
    PrinterInstallerError,
    ConfigLoadError,
    ConfigNetworkError,
    ConfigParseError,
    ConfigurationNotLoadedError,
    InstallStepError,
    ConfigurationGapError,
    DriverDownloadError,
    DriverStorageError,
    InvalidPrinterRecordError,
    InvalidPrinterNameError,
    QueueCommandError,
    CupsUnavailableError,
    BatchAlreadyRunningError,
)
from .cups_admin import CommandResult, QueueAdmin, CupsQueueAdmin

__all__ = [
    "PrinterInstallerError",
    "ConfigLoadError",
    "ConfigNetworkError",
    "ConfigParseError",
    "ConfigurationNotLoadedError",
    "InstallStepError",
    "ConfigurationGapError",
    "DriverDownloadError",
    "DriverStorageError",
    "InvalidPrinterRecordError",
    "InvalidPrinterNameError",
    "QueueCommandError",
    "CupsUnavailableError",
    "BatchAlreadyRunningError",
    "CommandResult",
    "QueueAdmin",
    "CupsQueueAdmin",
]
