"""
Unit tests for the printer configuration models.
"""

import pytest

from core.exceptions import ConfigParseError
from models.printer_config import ModelInfo, Printer, PrinterConfiguration


class TestPrinter:
    """Tests for single printer records."""

    def test_from_dict_minimal(self):
        printer = Printer.from_dict({"name": "HR-Color", "model": "HP M479"})

        assert printer.name == "HR-Color"
        assert printer.model == "HP M479"
        assert printer.ip == ""
        assert printer.uri == ""

    def test_from_dict_strips_values(self):
        printer = Printer.from_dict({"name": " HR-Color ", "model": "HP M479", "ip": " 10.0.0.1 "})

        assert printer.name == "HR-Color"
        assert printer.ip == "10.0.0.1"

    def test_missing_name_rejected(self):
        with pytest.raises(ConfigParseError) as exc_info:
            Printer.from_dict({"model": "HP M479"}, path="locations.HQ[0]")

        assert "name" in str(exc_info.value)
        assert exc_info.value.path == "locations.HQ[0]"

    def test_empty_model_rejected(self):
        with pytest.raises(ConfigParseError):
            Printer.from_dict({"name": "HR", "model": "  "})

    def test_non_string_ip_rejected(self):
        with pytest.raises(ConfigParseError) as exc_info:
            Printer.from_dict({"name": "HR", "model": "HP", "ip": 10})

        assert exc_info.value.path == "printer.ip"

    def test_display_address_prefers_ip(self):
        assert Printer("a", "m", ip="10.0.0.1", uri="socket://x").display_address == "10.0.0.1"
        assert Printer("a", "m", uri="socket://x").display_address == "socket://x"

    def test_is_immutable(self):
        printer = Printer("a", "m")
        with pytest.raises(AttributeError):
            printer.name = "b"


class TestModelInfo:

    def test_absolute_http_url_accepted(self):
        info = ModelInfo.from_dict({"ppd_url": "https://files.example/ppd/a.ppd"})
        assert info.ppd_url == "https://files.example/ppd/a.ppd"

    def test_missing_url_is_empty(self):
        assert ModelInfo.from_dict({}).ppd_url == ""

    @pytest.mark.parametrize("url", ["ftp://host/a.ppd", "/ppd/a.ppd", "a.ppd"])
    def test_non_http_url_kept_as_rejected(self, url):
        info = ModelInfo.from_dict({"ppd_url": url})

        assert info.ppd_url == ""
        assert info.rejected_url == url


class TestPrinterConfiguration:
    """Tests for the full configuration document."""

    def test_from_json(self, sample_config):
        assert sample_config.location_names == ["Branch-A", "HQ-3F"]
        assert [p.name for p in sample_config.printers_for("HQ-3F")] == ["HR-Color", "Finance-BW"]
        assert sample_config.model_info("HP M479").ppd_url.endswith("HP M479.ppd")
        assert sample_config.source_url == "http://config.test/printer-config.json"

    def test_location_order_preserved(self, sample_config):
        printers = sample_config.printers_for("HQ-3F")
        assert isinstance(printers, tuple)
        assert printers[0].name == "HR-Color"

    def test_printer_models_optional(self):
        config = PrinterConfiguration.from_json({"locations": {"A": []}})

        assert config.printer_models == {}
        assert config.printers_for("A") == ()

    def test_missing_locations_rejected(self):
        with pytest.raises(ConfigParseError) as exc_info:
            PrinterConfiguration.from_json({"printer_models": {}})

        assert exc_info.value.path == "locations"

    def test_locations_must_be_lists(self):
        with pytest.raises(ConfigParseError):
            PrinterConfiguration.from_json({"locations": {"A": {"name": "x"}}})

    def test_top_level_must_be_object(self):
        with pytest.raises(ConfigParseError):
            PrinterConfiguration.from_json(["not", "an", "object"])

    def test_bad_record_skipped(self):
        data = {"locations": {"HQ": [{"name": "ok", "model": "m"}, {"name": "bad"}, {"name": " ", "model": "m"}]}}

        config = PrinterConfiguration.from_json(data)

        assert [p.name for p in config.printers_for("HQ")] == ["ok"]
        assert config.skipped_records == (
            "locations.HQ[1]: missing required field 'model'",
            "locations.HQ[2].name: must not be empty",
        )

    def test_bad_model_url_does_not_reject_document(self):
        data = {
            "locations": {"HQ": [{"name": "A", "model": "M1"}, {"name": "B", "model": "M2"}]},
            "printer_models": {"M1": {"ppd_url": "http://x/a.ppd"}, "M2": {"ppd_url": "files/b.ppd"}},
        }

        config = PrinterConfiguration.from_json(data)

        assert config.location_names == ["HQ"]
        assert config.model_info("M1").ppd_url == "http://x/a.ppd"
        assert config.model_info("M2").rejected_url == "files/b.ppd"

    def test_mappings_are_read_only(self, sample_config):
        with pytest.raises(TypeError):
            sample_config.locations["New"] = ()

    def test_find_printer(self, sample_config):
        assert sample_config.find_printer("HQ-3F", "Finance-BW").model == "Kyocera 4002"
        assert sample_config.find_printer("HQ-3F", "Lobby") is None
        assert sample_config.find_printer("Nowhere", "HR-Color") is None

    def test_empty_configuration(self):
        config = PrinterConfiguration.create_empty()

        assert config.is_empty
        assert config.location_names == []
        assert config.printers_for("anything") == ()

    def test_loaded_configuration_without_locations_is_not_empty(self):
        config = PrinterConfiguration.from_json({"locations": {}}, source_url="http://x/c.json")

        assert not config.is_empty
        assert config.location_names == []
