"""Shared fixtures for the printer installer tests."""

import json
from contextlib import contextmanager
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from core.cups_admin import CommandResult, QueueAdmin
from models.printer_config import PrinterConfiguration


SAMPLE_CONFIG = {
    "locations": {
        "HQ-3F": [
            {"name": "HR-Color", "model": "HP M479", "ip": "10.0.3.21"},
            {"name": "Finance-BW", "model": "Kyocera 4002", "ip": "10.0.3.22"},
        ],
        "Branch-A": [
            {"name": "Lobby", "model": "HP M479", "uri": "socket://10.1.0.5:9100"},
        ],
    },
    "printer_models": {
        "HP M479": {"ppd_url": "http://files.example/ppd/HP M479.ppd"},
        "Kyocera 4002": {"ppd_url": "http://files.example/ppd/Kyocera4002.ppd"},
    },
}


class FakeQueueAdmin(QueueAdmin):
    """
    In-memory stand-in for the CUPS tools.

    Queues are kept in a dict; `fail_create` maps a queue name to the
    output lpadmin should "print" when creating it fails.
    """

    def __init__(self, existing=(), fail_create=None, fail_remove=()):
        self.queues = {name: {} for name in existing}
        self.fail_create = dict(fail_create or {})
        self.fail_remove = set(fail_remove)
        self.calls = []

    def exists(self, name):
        self.calls.append(("exists", name))
        return name in self.queues

    def remove(self, name):
        self.calls.append(("remove", name))
        if name in self.fail_remove:
            return CommandResult(1, "lpadmin: Unable to delete printer")
        self.queues.pop(name, None)
        return CommandResult(0, "")

    def create(self, name, uri, driver_path, description):
        self.calls.append(("create", name, uri, str(driver_path), description))
        if name in self.fail_create:
            return CommandResult(1, self.fail_create[name])
        if name in self.queues:
            return CommandResult(1, f"lpadmin: printer {name} already exists")
        self.queues[name] = {"uri": uri, "driver": str(driver_path), "description": description}
        return CommandResult(0, "")


def make_response(status_code=200, content=b"", reason="OK", chunks=None):
    """MagicMock shaped like a requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.content = content
    response.iter_content.return_value = iter(chunks if chunks is not None else [content])
    return response


@contextmanager
def fake_driver(url):
    """Driver fetcher that hands out a fixed path without network access."""
    yield Path("/tmp/printer-test.ppd")


@pytest.fixture
def sample_config_data():
    return json.loads(json.dumps(SAMPLE_CONFIG))


@pytest.fixture
def sample_config(sample_config_data):
    return PrinterConfiguration.from_json(
        sample_config_data, source_url="http://config.test/printer-config.json"
    )


@pytest.fixture
def fake_admin():
    return FakeQueueAdmin()
