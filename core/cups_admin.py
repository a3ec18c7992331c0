# core/cups_admin.py

from __future__ import annotations

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .exceptions import CupsUnavailableError


logger = logging.getLogger("core.cups_admin")

DEFAULT_COMMAND_TIMEOUT = 60.0


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined stdout/stderr of one administration command."""

    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class QueueAdmin(ABC):
    """
    Abstract print-queue administration interface.

    The queue installer owns the install sequence and error handling.
    Concrete implementations talk to the real printing subsystem (CUPS).
    """

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Whether a queue called `name` is currently configured."""
        raise NotImplementedError

    @abstractmethod
    def remove(self, name: str) -> CommandResult:
        """Delete queue `name`."""
        raise NotImplementedError

    @abstractmethod
    def create(self, name: str, uri: str, driver_path: Path, description: str) -> CommandResult:
        """
        Create and enable queue `name`.

        - `uri` is the device URI the queue sends jobs to.
        - `driver_path` is a local PPD file.
        - Implementations report failure through the returned CommandResult.
        """
        raise NotImplementedError


class CupsQueueAdmin(QueueAdmin):
    """
    CUPS-backed queue administration using `lpstat` and `lpadmin`.

    Design constraints:
    - Commands are argument lists, never shell strings.
    - A missing binary or a hung command becomes a failed CommandResult,
      the caller decides what that means.
    """

    def __init__(
            self,
            lpstat_path: str = "lpstat",
            lpadmin_path: str = "lpadmin",
            timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self._lpstat_path = lpstat_path
        self._lpadmin_path = lpadmin_path
        self._timeout = timeout

    def preflight(self) -> None:
        for tool in (self._lpadmin_path, self._lpstat_path):
            if shutil.which(tool) is None:
                raise CupsUnavailableError(tool)

    def exists(self, name: str) -> bool:
        return self._run([self._lpstat_path, "-p", name]).ok

    def remove(self, name: str) -> CommandResult:
        return self._run([self._lpadmin_path, "-x", name])

    def create(self, name: str, uri: str, driver_path: Path, description: str) -> CommandResult:
        cmd = [
            self._lpadmin_path,
            "-p", name,
            "-v", uri,
            "-P", str(driver_path),
            "-E",
            "-D", description,
        ]
        return self._run(cmd)

    def _run(self, cmd: Sequence[str]) -> CommandResult:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            proc = subprocess.run(
                list(cmd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError:
            return CommandResult(returncode=127, output=f"'{cmd[0]}' not found in PATH")
        except subprocess.TimeoutExpired:
            return CommandResult(
                returncode=124,
                output=f"'{cmd[0]}' timed out after {self._timeout:g}s",
            )

        output = proc.stdout or ""
        if proc.returncode != 0:
            logger.debug(f"{cmd[0]} failed (rc={proc.returncode}): {output.strip()}")
        return CommandResult(returncode=proc.returncode, output=output)
