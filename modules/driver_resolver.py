"""Map a printer's model to the URL of its PPD driver file."""

from urllib.parse import quote, unquote

from core.exceptions import ConfigurationGapError
from models.printer_config import Printer, PrinterConfiguration


def encode_last_segment(url: str) -> str:
    """
    Percent-encode only the filename part of a URL.

    Everything up to and including the last '/' is left untouched, so
    'http://host/drivers/HP LaserJet.ppd' becomes
    'http://host/drivers/HP%20LaserJet.ppd'. Existing escapes are decoded
    first so an already-encoded filename is not double-encoded.
    """
    head, sep, filename = url.rpartition("/")
    if not sep:
        return url
    return f"{head}/{quote(unquote(filename), safe='')}"


def resolve_driver_url(printer: Printer, config: PrinterConfiguration) -> str:
    """
    Return the encoded PPD URL for `printer`.

    Raises:
        ConfigurationGapError: If the model has no entry, an empty ppd_url,
            or a ppd_url that was rejected when the configuration was parsed
    """
    info = config.model_info(printer.model)
    if info is None or not info.ppd_url:
        raise ConfigurationGapError(printer.model, info.rejected_url if info else "")
    return encode_last_segment(info.ppd_url)
