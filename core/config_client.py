"""
HTTP client for the printer configuration server.

This module fetches printer-config.json and turns it into an immutable
PrinterConfiguration. It performs exactly one blocking GET per fetch().

ERROR KINDS:
    - ConfigNetworkError: connection refused, DNS, timeout, non-2xx status.
      The operator can retry with the refresh button.
    - ConfigParseError: body is not JSON or not the expected shape.
      Nothing to do locally; the server file must be fixed.

Usage:
    client = PrinterConfigClient("http://server/printer/printer-config.json")
    config = client.fetch()
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import requests

from models.printer_config import PrinterConfiguration
from .exceptions import ConfigNetworkError, ConfigParseError


DEFAULT_TIMEOUT_SECONDS = 10.0


class PrinterConfigClient:
    """
    Fetches and parses the printer configuration document.

    A requests.Session may be injected (tests pass a MagicMock); otherwise
    each fetch uses the module-level requests.get.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        if not url:
            raise ValueError("configuration URL is required")

        self._url = url
        self._timeout = timeout
        self._session = session
        self._logger = logger or logging.getLogger("core.config_client")

    @property
    def url(self) -> str:
        return self._url

    def fetch(self) -> PrinterConfiguration:
        """
        Download and parse the configuration.

        Returns:
            Newly built PrinterConfiguration

        Raises:
            ConfigNetworkError: If the server cannot be reached or returns non-2xx
            ConfigParseError: If the body is not a valid configuration document
        """
        self._logger.debug(f"Fetching printer configuration from {self._url}")

        getter = self._session.get if self._session is not None else requests.get

        try:
            response = getter(self._url, timeout=self._timeout)
        except requests.exceptions.Timeout:
            raise ConfigNetworkError(self._url, f"timed out after {self._timeout:g}s")
        except requests.exceptions.RequestException as e:
            raise ConfigNetworkError(self._url, str(e))

        try:
            if not 200 <= response.status_code < 300:
                raise ConfigNetworkError(
                    self._url,
                    f"HTTP {response.status_code} {response.reason or ''}".strip(),
                    status_code=response.status_code,
                )

            try:
                body = response.content
            except requests.exceptions.RequestException as e:
                # Connection dropped while reading the body
                raise ConfigNetworkError(self._url, f"connection lost while reading: {e}")
        finally:
            response.close()

        try:
            data = json.loads(body.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigParseError(f"malformed JSON: {e}", self._url)

        config = PrinterConfiguration.from_json(data, source_url=self._url)

        self._logger.info(
            f"Printer configuration loaded: {len(config.locations)} locations, "
            f"{len(config.printer_models)} models"
        )
        return config
