"""
Download PPD driver files into scoped temporary files.

The temp file only lives for the duration of the `with` block:

    with downloaded_driver(url) as ppd_path:
        installer.install(printer, ppd_path)

It is removed on every exit path - normal completion, an exception raised
inside the block, or a failure while downloading.
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import requests

from core.exceptions import DriverDownloadError, DriverStorageError


logger = logging.getLogger("modules.driver_fetcher")

DEFAULT_TIMEOUT_SECONDS = 30.0
CHUNK_SIZE = 64 * 1024


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary driver file {path}: {e}")


def _download_to(url: str, target, session, timeout: float) -> int:
    getter = session.get if session is not None else requests.get

    try:
        response = getter(url, stream=True, timeout=timeout)
    except requests.exceptions.Timeout:
        raise DriverDownloadError(url, f"timed out after {timeout:g}s")
    except requests.exceptions.RequestException as e:
        raise DriverDownloadError(url, str(e))

    written = 0
    try:
        if not 200 <= response.status_code < 300:
            raise DriverDownloadError(
                url,
                f"HTTP {response.status_code} {response.reason or ''}".strip(),
                status_code=response.status_code,
            )

        chunks = response.iter_content(chunk_size=CHUNK_SIZE)
        while True:
            try:
                chunk = next(chunks)
            except StopIteration:
                break
            except requests.exceptions.RequestException as e:
                raise DriverDownloadError(url, f"connection lost after {written} bytes: {e}")

            if not chunk:
                continue
            try:
                target.write(chunk)
            except OSError as e:
                raise DriverStorageError(url, str(e))
            written += len(chunk)
    finally:
        response.close()

    return written


@contextmanager
def downloaded_driver(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    temp_dir: Optional[str] = None,
) -> Iterator[Path]:
    """
    Download `url` into a uniquely-named temp file and yield its path.

    Raises:
        DriverStorageError: If the temp file cannot be created or written
        DriverDownloadError: On network failure or a non-2xx response
    """
    try:
        fd, name = tempfile.mkstemp(prefix="printer-", suffix=".ppd", dir=temp_dir)
    except OSError as e:
        raise DriverStorageError(url, f"cannot create temporary file: {e}")

    path = Path(name)
    try:
        try:
            with os.fdopen(fd, "wb") as target:
                written = _download_to(url, target, session, timeout)
        except OSError as e:
            # close() can fail too (e.g. disk full on flush)
            raise DriverStorageError(url, str(e))

        logger.debug(f"Downloaded {written} bytes from {url} to {path}")
        yield path
    finally:
        _remove_quietly(path)
