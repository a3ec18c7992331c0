"""
Custom exceptions for PrinterInstallWeb.

Exception Hierarchy:
    PrinterInstallerError (base)
    ├── ConfigLoadError             - Printer configuration could not be loaded
    │   ├── ConfigNetworkError      - Connection/DNS/timeout/non-2xx (retry manually)
    │   └── ConfigParseError        - Malformed JSON or wrong shape (fix server side)
    ├── ConfigurationNotLoadedError - Nothing loaded yet (runtime, graceful)
    ├── InstallStepError            - One printer failed (converted to an outcome)
    │   ├── ConfigurationGapError   - Model has no driver URL
    │   ├── DriverDownloadError     - Driver fetch failed (network / HTTP status)
    │   ├── DriverStorageError      - Temp file could not be created or written
    │   ├── InvalidPrinterRecordError
    │   │   └── InvalidPrinterNameError
    │   └── QueueCommandError       - lpadmin exited non-zero
    ├── CupsUnavailableError        - lpadmin/lpstat not installed
    └── BatchAlreadyRunningError    - A batch is still in progress

Usage:
    Configuration errors leave the previously loaded configuration in effect.
    InstallStepError subclasses never escape a batch: the orchestrator turns
    them into failed InstallOutcomes.
"""

from typing import Optional, Dict, Any


class PrinterInstallerError(Exception):
    """
    Base exception for all PrinterInstallWeb errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# =============================================================================
# CONFIGURATION ERRORS - Previous configuration stays in effect
# =============================================================================

class ConfigLoadError(PrinterInstallerError):
    """Base class for printer configuration load failures."""

    kind = "unknown"

    def __init__(self, message: str, url: str, details: Optional[Dict[str, Any]] = None):
        error_details = details or {}
        error_details["url"] = url
        super().__init__(message, error_details)
        self.url = url


class ConfigNetworkError(ConfigLoadError):
    """
    The configuration server could not be reached or answered with an error.

    Typical causes:
    - Server down or connection refused
    - DNS failure or timeout
    - Non-2xx HTTP status

    The operator can simply retry with the refresh button.
    """

    kind = "network"

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        message = f"Cannot load printer configuration from {url}: {reason}"
        details = {"resolution": "Check the network connection and refresh"}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, url, details)
        self.reason = reason
        self.status_code = status_code


class ConfigParseError(ConfigLoadError):
    """
    The configuration body is not valid JSON or does not have the expected shape.

    Retrying will not help; the JSON file on the server has to be fixed.
    """

    kind = "parse"

    def __init__(self, reason: str, url: str = "", path: str = ""):
        where = f" at {path}" if path else ""
        message = f"Invalid printer configuration{where}: {reason}"
        details = {
            "path": path,
            "resolution": "Fix printer-config.json on the configuration server",
        }
        super().__init__(message, url, details)
        self.reason = reason
        self.path = path


class ConfigurationNotLoadedError(PrinterInstallerError):
    """No printer configuration has been loaded yet."""

    def __init__(self, message: str = "Printer configuration not yet loaded"):
        super().__init__(message, {"resolution": "Wait for the initial load or press refresh"})


# =============================================================================
# PER-PRINTER ERRORS - Converted into failed InstallOutcomes
# =============================================================================

class InstallStepError(PrinterInstallerError):
    """
    Base class for failures while installing a single printer.

    The message is what the operator sees next to the printer name in the
    batch summary, so it must be specific.
    """


class ConfigurationGapError(InstallStepError):
    """
    The printer's model has no driver URL in printer_models.

    This is a server-side configuration problem, not a transient fault.
    """

    def __init__(self, model: str, rejected_url: str = ""):
        if rejected_url:
            message = (
                f"ppd_url {rejected_url!r} for model '{model}' is not an absolute http(s) URL; "
                "fix it in printer_models in the server's printer-config.json"
            )
        else:
            message = (
                f"no ppd_url configured for model '{model}'; "
                "add it to printer_models in the server's printer-config.json"
            )
        super().__init__(message, {"model": model, "rejected_url": rejected_url})
        self.model = model
        self.rejected_url = rejected_url


class DriverDownloadError(InstallStepError):
    """The driver (PPD) file could not be downloaded."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        message = f"failed to download driver file ({url}): {reason}"
        details = {"url": url}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class DriverStorageError(InstallStepError):
    """The downloaded driver could not be stored in a local temp file."""

    def __init__(self, url: str, reason: str):
        message = f"failed to save driver file from {url} locally: {reason}"
        super().__init__(message, {"url": url})
        self.url = url


class InvalidPrinterRecordError(InstallStepError):
    """The printer record cannot be turned into a queue (e.g. no address)."""


class InvalidPrinterNameError(InvalidPrinterRecordError):
    """The printer name is not a legal CUPS queue name."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"invalid queue name {name!r}: {reason}", {"name": name})
        self.name = name


class QueueCommandError(InstallStepError):
    """A CUPS administration command exited with a non-zero status."""

    def __init__(self, command: str, output: str, returncode: int):
        super().__init__(output, {"command": command, "returncode": returncode})
        self.command = command
        self.output = output
        self.returncode = returncode


# =============================================================================
# ENVIRONMENT / SERVICE ERRORS
# =============================================================================

class CupsUnavailableError(PrinterInstallerError):
    """The CUPS administration tools are not installed on this machine."""

    def __init__(self, tool: str):
        super().__init__(
            f"CUPS not available: '{tool}' not found in PATH",
            {"tool": tool, "resolution": "Install the cups-client package"},
        )
        self.tool = tool


class BatchAlreadyRunningError(PrinterInstallerError):
    """A new batch was submitted while another one is still installing."""

    def __init__(self, batch_id: str):
        super().__init__(
            f"Batch {batch_id[:8]} is still installing; wait for it to finish",
            {"batch_id": batch_id},
        )
        self.batch_id = batch_id
