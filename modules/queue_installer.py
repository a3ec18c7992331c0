"""
Idempotent installation of a single CUPS queue.

Sequence for one printer:
    1. lpstat -p NAME          - does the queue exist?
    2. lpadmin -x NAME         - if so remove it (best effort)
    3. resolve the device URI  - explicit uri, else synthesized from the IP
    4. lpadmin -p NAME -v URI -P PPD -E -D "NAME (MODEL)"

Re-running the sequence for the same name always converges to one queue,
it never fails with "already exists".
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from core.cups_admin import QueueAdmin
from core.exceptions import (
    InstallStepError,
    InvalidPrinterNameError,
    InvalidPrinterRecordError,
    QueueCommandError,
)
from models.install_result import InstallOutcome
from models.printer_config import Printer


DEFAULT_URI_TEMPLATE = "ipp://{ip}/ipp/print"
UNKNOWN_ERROR = "unknown error"

# CUPS rejects these in queue names (see cupsd's validate_name)
_ILLEGAL_NAME_CHARS = set(" \t/\\#'\"")
MAX_QUEUE_NAME_LENGTH = 127


def validate_queue_name(name: str) -> str:
    """
    Check that `name` can be used as a CUPS queue name.

    Raises:
        InvalidPrinterNameError: If the name is empty, too long, or contains
            whitespace, '/', '\\', '#', quotes or control characters
    """
    if not name:
        raise InvalidPrinterNameError(name, "name is empty")
    if len(name) > MAX_QUEUE_NAME_LENGTH:
        raise InvalidPrinterNameError(name, f"longer than {MAX_QUEUE_NAME_LENGTH} characters")

    bad = sorted({ch for ch in name if ch in _ILLEGAL_NAME_CHARS or not ch.isprintable()})
    if bad:
        shown = ", ".join(repr(ch) for ch in bad)
        raise InvalidPrinterNameError(name, f"contains characters not allowed by CUPS ({shown})")
    return name


def build_connection_uri(printer: Printer, template: str = DEFAULT_URI_TEMPLATE) -> str:
    """
    Device URI for `printer`: its explicit uri, or `template` filled with its IP.

    Raises:
        InvalidPrinterRecordError: If the record has neither uri nor ip
    """
    if printer.uri:
        return printer.uri
    if not printer.ip:
        raise InvalidPrinterRecordError(
            f"printer '{printer.name}' has neither 'uri' nor 'ip' configured",
            {"name": printer.name},
        )
    return template.format(ip=printer.ip)


def describe(printer: Printer) -> str:
    return f"{printer.name} ({printer.model})"


class QueueInstaller:
    """
    Installs one printer queue through a QueueAdmin.

    The admin is injected so tests can use an in-memory fake instead of
    touching the real printing system.
    """

    def __init__(
        self,
        admin: QueueAdmin,
        uri_template: str = DEFAULT_URI_TEMPLATE,
        logger: Optional[logging.Logger] = None
    ):
        self._admin = admin
        self._uri_template = uri_template
        self._logger = logger or logging.getLogger("modules.queue_installer")

    @property
    def admin(self) -> QueueAdmin:
        return self._admin

    def install(self, printer: Printer, driver_path: Path) -> InstallOutcome:
        """
        (Re)install the queue for `printer` using the PPD at `driver_path`.

        Returns:
            InstallOutcome; the failure reason is the lpadmin output verbatim
        """
        try:
            self.install_or_raise(printer, driver_path)
        except InstallStepError as e:
            self._logger.warning(f"Installing '{printer.name}' failed: {e}")
            return InstallOutcome.failed(printer, str(e))

        self._logger.info(f"Installed printer '{printer.name}'")
        return InstallOutcome.succeeded(printer)

    def install_or_raise(self, printer: Printer, driver_path: Path) -> None:
        """
        Same as install() but raises instead of returning an outcome.

        Raises:
            InvalidPrinterNameError: Name not usable as a queue name
            InvalidPrinterRecordError: No address to build the URI from
            QueueCommandError: lpadmin exited non-zero
        """
        name = validate_queue_name(printer.name)
        uri = build_connection_uri(printer, self._uri_template)

        self._remove_existing(name)

        self._logger.debug(f"Creating queue '{name}' -> {uri}")
        result = self._admin.create(name, uri, driver_path, describe(printer))
        if not result.ok:
            output = result.output.strip() or UNKNOWN_ERROR
            raise QueueCommandError("lpadmin", output, result.returncode)

    def _remove_existing(self, name: str) -> None:
        if not self._admin.exists(name):
            return

        self._logger.info(f"Queue '{name}' already exists, removing it first")
        result = self._admin.remove(name)
        if not result.ok:
            # Not fatal: the create step either overwrites or fails clearly
            self._logger.warning(
                f"Removing existing queue '{name}' failed (rc={result.returncode}): "
                f"{result.output.strip()}"
            )
