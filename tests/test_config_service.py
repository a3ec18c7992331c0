"""
Unit tests for the ConfigService.

Covers atomic replacement: a failed refresh never disturbs the
configuration that is already loaded.
"""

import threading
import time
from unittest.mock import MagicMock

import pytest

from core.exceptions import ConfigNetworkError, ConfigParseError, ConfigurationNotLoadedError
from models.printer_config import PrinterConfiguration
from services.config_service import ConfigService


URL = "http://config.test/printer-config.json"


def _config(*locations):
    return PrinterConfiguration.from_json(
        {"locations": {name: [] for name in locations}}, source_url=URL
    )


@pytest.fixture
def client():
    mock_client = MagicMock()
    mock_client.url = URL
    return mock_client


@pytest.fixture
def service(client):
    svc = ConfigService(client)
    yield svc
    svc.stop()


class TestConfigServiceRefresh:

    def test_starts_empty(self, service):
        assert service.get_config().is_empty
        assert service.status()["loaded"] is False

    def test_get_config_or_raise_before_load(self, service):
        with pytest.raises(ConfigurationNotLoadedError):
            service.get_config_or_raise()

    def test_status_reports_age_and_skipped_records(self, service, client):
        client.fetch.return_value = PrinterConfiguration.from_json(
            {"locations": {"HQ": [{"name": "A", "model": "M1"}, {"model": "M1"}]}}, source_url=URL
        )
        assert service.status()["age_seconds"] is None

        service.refresh()
        status = service.status()

        assert status["age_seconds"] >= 0
        assert status["skipped_records"] == ["locations.HQ[1]: missing required field 'name'"]

    def test_successful_refresh_replaces_config(self, service, client):
        new_config = _config("HQ")
        client.fetch.return_value = new_config

        assert service.refresh() is True
        assert service.get_config() is new_config
        assert service.last_error is None

    def test_dropped_connection_keeps_previous_config(self, service, client):
        original = _config("HQ", "Branch")
        client.fetch.return_value = original
        service.refresh()

        client.fetch.side_effect = ConfigNetworkError(URL, "connection lost while reading")
        assert service.refresh() is False

        assert service.get_config() is original
        assert service.get_config().location_names == ["Branch", "HQ"]
        assert isinstance(service.last_error, ConfigNetworkError)

    def test_parse_error_reported_in_status(self, service, client):
        client.fetch.side_effect = ConfigParseError("malformed JSON: Expecting value", URL)

        service.refresh()
        status = service.status()

        assert status["loaded"] is False
        assert status["error_kind"] == "parse"
        assert "malformed JSON" in status["error"]
        assert status["last_attempt_at"] is not None

    def test_recovery_clears_error(self, service, client):
        client.fetch.side_effect = ConfigNetworkError(URL, "refused")
        service.refresh()
        service.refresh()

        client.fetch.side_effect = None
        client.fetch.return_value = _config("HQ")
        assert service.refresh() is True

        status = service.status()
        assert status["error"] is None
        assert status["loaded"] is True
        assert status["location_count"] == 1

    def test_concurrent_refresh_is_skipped(self, service, client):
        entered = threading.Event()
        release = threading.Event()

        def slow_fetch():
            entered.set()
            release.wait(timeout=5)
            return _config("HQ")

        client.fetch.side_effect = slow_fetch

        worker = threading.Thread(target=service.refresh)
        worker.start()
        assert entered.wait(timeout=5)

        assert service.is_refreshing is True
        assert service.refresh() is False
        assert service.request_refresh() is False

        release.set()
        worker.join(timeout=5)
        assert client.fetch.call_count == 1
        assert service.get_config().location_names == ["HQ"]


class TestConfigServiceLifecycle:

    def test_start_without_interval_loads_once(self, service, client):
        client.fetch.return_value = _config("HQ")

        service.start()
        service._refresh_thread.join(timeout=5)

        assert service.is_running is True
        assert client.fetch.call_count == 1
        assert service.get_config().location_names == ["HQ"]

    def test_request_refresh_runs_in_background(self, service, client):
        client.fetch.return_value = _config("HQ")

        assert service.request_refresh() is True
        service._refresh_thread.join(timeout=5)

        assert service._refresh_thread.name == "ConfigRefresh"
        assert not service.get_config().is_empty

    def test_periodic_refresh_loop(self, client):
        client.fetch.return_value = _config("HQ")
        service = ConfigService(client, refresh_interval_seconds=0.01)

        service.start()
        deadline = time.time() + 5
        while client.fetch.call_count < 3 and time.time() < deadline:
            time.sleep(0.01)
        service.stop()

        assert client.fetch.call_count >= 3
        assert service.is_running is False

    def test_start_twice_is_harmless(self, service, client):
        client.fetch.return_value = _config("HQ")

        service.start()
        service.start()
        service._refresh_thread.join(timeout=5)

        assert client.fetch.call_count == 1
