# tests/test_cups_admin.py

import subprocess
from pathlib import Path

import pytest

from core.cups_admin import CommandResult, CupsQueueAdmin
from core.exceptions import CupsUnavailableError


class FakeProc:
    def __init__(self, returncode=0, stdout=""):
        self.returncode = returncode
        self.stdout = stdout


@pytest.fixture
def admin():
    return CupsQueueAdmin(lpstat_path="lpstat", lpadmin_path="lpadmin", timeout=5)


def test_preflight_raises_if_lpadmin_missing(monkeypatch, admin):
    monkeypatch.setattr("shutil.which", lambda p: None if p == "lpadmin" else "/usr/bin/" + p)

    with pytest.raises(CupsUnavailableError, match="not found in PATH"):
        admin.preflight()


def test_preflight_passes_when_tools_present(monkeypatch, admin):
    monkeypatch.setattr("shutil.which", lambda p: "/usr/sbin/" + p)
    admin.preflight()


def test_exists_uses_lpstat(monkeypatch, admin):
    seen = []

    def fake_run(cmd, **kwargs):
        seen.append(cmd)
        return FakeProc(returncode=0, stdout="printer HR-Color is idle.")

    monkeypatch.setattr("subprocess.run", fake_run)

    assert admin.exists("HR-Color") is True
    assert seen == [["lpstat", "-p", "HR-Color"]]


def test_exists_false_on_nonzero(monkeypatch, admin):
    monkeypatch.setattr(
        "subprocess.run",
        lambda cmd, **kwargs: FakeProc(returncode=1, stdout="lpstat: Invalid destination name"),
    )

    assert admin.exists("Nope") is False


def test_remove_uses_lpadmin_x(monkeypatch, admin):
    seen = []
    monkeypatch.setattr("subprocess.run", lambda cmd, **kwargs: seen.append(cmd) or FakeProc())

    result = admin.remove("HR-Color")

    assert result.ok
    assert seen == [["lpadmin", "-x", "HR-Color"]]


def test_create_builds_expected_command(monkeypatch, admin):
    seen = []
    monkeypatch.setattr("subprocess.run", lambda cmd, **kwargs: seen.append(cmd) or FakeProc())

    admin.create("HR-Color", "ipp://10.0.3.21/ipp/print", Path("/tmp/printer-1.ppd"), "HR-Color (HP M479)")

    assert seen == [[
        "lpadmin",
        "-p", "HR-Color",
        "-v", "ipp://10.0.3.21/ipp/print",
        "-P", "/tmp/printer-1.ppd",
        "-E",
        "-D", "HR-Color (HP M479)",
    ]]


def test_create_returns_combined_output_on_failure(monkeypatch, admin):
    monkeypatch.setattr(
        "subprocess.run",
        lambda cmd, **kwargs: FakeProc(returncode=1, stdout="lpadmin: Unable to copy PPD file.\n"),
    )

    result = admin.create("HR", "ipp://x/ipp/print", Path("/tmp/a.ppd"), "HR (HP)")

    assert result == CommandResult(1, "lpadmin: Unable to copy PPD file.\n")
    assert not result.ok


def test_commands_run_with_timeout_and_merged_stderr(monkeypatch, admin):
    captured = {}

    def fake_run(cmd, **kwargs):
        captured.update(kwargs)
        return FakeProc()

    monkeypatch.setattr("subprocess.run", fake_run)
    admin.remove("HR")

    assert captured["timeout"] == 5
    assert captured["stdout"] == subprocess.PIPE
    assert captured["stderr"] == subprocess.STDOUT
    assert captured["text"] is True


def test_missing_binary_becomes_failed_result(monkeypatch, admin):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr("subprocess.run", fake_run)

    result = admin.remove("HR")

    assert result.returncode == 127
    assert "not found" in result.output


def test_hung_command_becomes_failed_result(monkeypatch, admin):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr("subprocess.run", fake_run)

    result = admin.create("HR", "ipp://x/ipp/print", Path("/tmp/a.ppd"), "HR (HP)")

    assert result.returncode == 124
    assert "timed out after 5s" in result.output
