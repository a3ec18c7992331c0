"""
Printer configuration data models.

These models represent the JSON document served by the configuration server:

    {
      "locations": {"<location>": [{"name": ..., "model": ..., "ip": ...,
                                     "ppd": ..., "uri": ...}, ...]},
      "printer_models": {"<model>": {"ppd_url": ...}}
    }

Thread Safety:
    - All models are frozen dataclasses (immutable)
    - Location lists are stored as tuples and the mappings as read-only proxies
    - ConfigService replaces the whole PrinterConfiguration on refresh,
      it is never patched in place
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from core.exceptions import ConfigParseError


logger = logging.getLogger(__name__)

_PRINTER_OPTIONAL_FIELDS = ("ip", "ppd", "uri")


def _require_str(value: Any, path: str, url: str, allow_empty: bool = True) -> str:
    if not isinstance(value, str):
        raise ConfigParseError(f"expected a string, got {type(value).__name__}", url, path)
    if not allow_empty and not value.strip():
        raise ConfigParseError("must not be empty", url, path)
    return value


@dataclass(frozen=True)
class Printer:
    """
    One printer record within a location.

    The name doubles as the CUPS queue name.
    """

    name: str
    """Queue name, unique within a location."""

    model: str
    """Key into printer_models."""

    ip: str = ""
    """Network address, used to synthesize a URI when none is given."""

    ppd: str = ""
    """Driver file reference as published by the server (informational)."""

    uri: str = ""
    """Explicit connection URI (overrides the synthesized one)."""

    @property
    def display_address(self) -> str:
        return self.ip or self.uri

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for JSON responses."""
        return {
            "name": self.name,
            "model": self.model,
            "ip": self.ip,
            "ppd": self.ppd,
            "uri": self.uri,
        }

    @classmethod
    def from_dict(cls, data: Any, path: str = "printer", url: str = "") -> "Printer":
        """
        Create a Printer from one JSON record.

        Raises:
            ConfigParseError: If the record is not an object, name/model are
                missing or empty, or an optional field is not a string
        """
        if not isinstance(data, dict):
            raise ConfigParseError("expected an object", url, path)

        for required in ("name", "model"):
            if required not in data:
                raise ConfigParseError(f"missing required field '{required}'", url, path)

        name = _require_str(data["name"], f"{path}.name", url, allow_empty=False).strip()
        model = _require_str(data["model"], f"{path}.model", url, allow_empty=False).strip()

        optional = {}
        for key in _PRINTER_OPTIONAL_FIELDS:
            value = data.get(key)
            optional[key] = "" if value is None else _require_str(value, f"{path}.{key}", url).strip()

        return cls(name=name, model=model, **optional)


@dataclass(frozen=True)
class ModelInfo:
    """Metadata for one printer model."""

    ppd_url: str = ""
    """Absolute http(s) URL of the model's PPD file (empty = not usable)."""

    rejected_url: str = ""
    """ppd_url as published when it was not an absolute http(s) URL."""

    @classmethod
    def from_dict(cls, data: Any, path: str = "model", url: str = "") -> "ModelInfo":
        """
        Parse one printer_models entry.

        A ppd_url that is not an absolute http(s) URL does not fail the
        document; it is kept in rejected_url and the printers of this
        model fail individually when installed.
        """
        if not isinstance(data, dict):
            raise ConfigParseError("expected an object", url, path)

        value = data.get("ppd_url")
        ppd_url = "" if value is None else _require_str(value, f"{path}.ppd_url", url).strip()

        if ppd_url:
            parts = urlsplit(ppd_url)
            if parts.scheme not in ("http", "https") or not parts.netloc:
                logger.warning(f"{path}.ppd_url is not an absolute http(s) URL: {ppd_url!r}")
                return cls(ppd_url="", rejected_url=ppd_url)

        return cls(ppd_url=ppd_url)


@dataclass(frozen=True)
class PrinterConfiguration:
    """
    Point-in-time printer configuration.

    Created fresh on every successful load; the previous value is discarded.
    """

    locations: Mapping[str, Tuple[Printer, ...]]
    """Location name -> ordered printers."""

    printer_models: Mapping[str, ModelInfo]
    """Model name -> model metadata."""

    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """When this configuration was fetched."""

    source_url: str = ""
    """URL the configuration was fetched from."""

    skipped_records: Tuple[str, ...] = ()
    """Printer records left out of the locations, as '<path>: <reason>'."""

    @classmethod
    def create_empty(cls) -> "PrinterConfiguration":
        """Configuration used before the first successful load."""
        return cls(
            locations=MappingProxyType({}),
            printer_models=MappingProxyType({}),
            loaded_at=datetime.min.replace(tzinfo=timezone.utc),
        )

    @classmethod
    def from_json(cls, data: Any, source_url: str = "") -> "PrinterConfiguration":
        """
        Build a configuration from the decoded JSON document.

        Parses everything before constructing the object, so a shape error
        never produces a partially-filled configuration. A single unusable
        printer record (missing or empty name/model, wrong field types) is
        left out and listed in skipped_records instead.

        Raises:
            ConfigParseError: If the document does not match the expected shape
        """
        if not isinstance(data, dict):
            raise ConfigParseError("top-level value must be an object", source_url)

        raw_locations = data.get("locations")
        if not isinstance(raw_locations, dict):
            raise ConfigParseError("missing or invalid 'locations' object", source_url, "locations")

        raw_models = data.get("printer_models", {})
        if raw_models is None:
            raw_models = {}
        if not isinstance(raw_models, dict):
            raise ConfigParseError("'printer_models' must be an object", source_url, "printer_models")

        locations: Dict[str, Tuple[Printer, ...]] = {}
        skipped: List[str] = []
        for location, raw_printers in raw_locations.items():
            path = f"locations.{location}"
            if raw_printers is None:
                raw_printers = []
            if not isinstance(raw_printers, list):
                raise ConfigParseError("expected a list of printers", source_url, path)

            printers = []
            for index, item in enumerate(raw_printers):
                try:
                    printers.append(Printer.from_dict(item, f"{path}[{index}]", source_url))
                except ConfigParseError as e:
                    logger.warning(f"Skipping printer record: {e}")
                    skipped.append(f"{e.path}: {e.reason}")
            locations[location] = tuple(printers)

        printer_models = {
            model: ModelInfo.from_dict(info, f"printer_models.{model}", source_url)
            for model, info in raw_models.items()
        }

        return cls(
            locations=MappingProxyType(locations),
            printer_models=MappingProxyType(printer_models),
            loaded_at=datetime.now(timezone.utc),
            source_url=source_url,
            skipped_records=tuple(skipped),
        )

    @property
    def is_empty(self) -> bool:
        """True until a configuration has been loaded."""
        return not self.locations and not self.printer_models and not self.source_url

    @property
    def location_names(self) -> List[str]:
        """Location names, sorted for display."""
        return sorted(self.locations)

    @property
    def age_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.loaded_at).total_seconds()

    def printers_for(self, location: str) -> Tuple[Printer, ...]:
        """Printers configured for a location (empty tuple if unknown)."""
        return self.locations.get(location, ())

    def find_printer(self, location: str, name: str) -> Optional[Printer]:
        for printer in self.printers_for(location):
            if printer.name == name:
                return printer
        return None

    def model_info(self, model: str) -> Optional[ModelInfo]:
        return self.printer_models.get(model)
