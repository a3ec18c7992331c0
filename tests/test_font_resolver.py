"""
Unit tests for UI font discovery.
"""

from unittest.mock import MagicMock

import pytest

from modules.font_resolver import (
    EnvFontProbe,
    FontconfigProbe,
    PathListProbe,
    ResolvedFont,
    resolve_font,
)


class FakeProc:
    def __init__(self, returncode=0, stdout=""):
        self.returncode = returncode
        self.stdout = stdout


@pytest.fixture
def fonts(tmp_path):
    paths = {}
    for name in ("ukai.ttf", "wqy-microhei.ttf", "NotoSansCJK.ttc"):
        path = tmp_path / name
        path.write_bytes(b"font")
        paths[name] = str(path)
    return paths


class TestEnvFontProbe:

    def test_existing_file(self, fonts):
        probe = EnvFontProbe("UI_FONT", environ={"UI_FONT": fonts["ukai.ttf"]})
        assert probe.find() == fonts["ukai.ttf"]

    def test_missing_file(self, tmp_path):
        probe = EnvFontProbe("UI_FONT", environ={"UI_FONT": str(tmp_path / "nope.ttf")})
        assert probe.find() is None

    def test_unset(self):
        assert EnvFontProbe("UI_FONT", environ={}).find() is None


class TestFontconfigProbe:

    def _patch(self, monkeypatch, stdout, returncode=0):
        monkeypatch.setattr("shutil.which", lambda p: "/usr/bin/fc-list")
        monkeypatch.setattr(
            "subprocess.run", lambda cmd, **kwargs: FakeProc(returncode=returncode, stdout=stdout)
        )

    def test_prefers_kai_fonts(self, monkeypatch, fonts):
        stdout = (
            f"{fonts['wqy-microhei.ttf']}: WenQuanYi Micro Hei\n"
            f"{fonts['ukai.ttf']}: AR PL UKai CN\n"
        )
        self._patch(monkeypatch, stdout)

        assert FontconfigProbe().find() == fonts["ukai.ttf"]

    def test_falls_back_to_any_font(self, monkeypatch, fonts):
        self._patch(monkeypatch, f"{fonts['wqy-microhei.ttf']}: WenQuanYi Micro Hei\n")

        assert FontconfigProbe().find() == fonts["wqy-microhei.ttf"]

    def test_skips_collections(self, monkeypatch, fonts):
        stdout = (
            f"{fonts['NotoSansCJK.ttc']}: Noto Sans CJK SC,KaiTi\n"
            f"{fonts['wqy-microhei.ttf']}: WenQuanYi Micro Hei\n"
        )
        self._patch(monkeypatch, stdout)

        assert FontconfigProbe().find() == fonts["wqy-microhei.ttf"]

    def test_fc_list_missing(self, monkeypatch):
        monkeypatch.setattr("shutil.which", lambda p: None)
        run = MagicMock()
        monkeypatch.setattr("subprocess.run", run)

        assert FontconfigProbe().find() is None
        run.assert_not_called()

    def test_fc_list_fails(self, monkeypatch, fonts):
        self._patch(monkeypatch, f"{fonts['ukai.ttf']}: AR PL UKai CN\n", returncode=1)

        assert FontconfigProbe().find() is None

    def test_command_line(self, monkeypatch):
        seen = []
        monkeypatch.setattr("shutil.which", lambda p: "/usr/bin/fc-list")
        monkeypatch.setattr("subprocess.run", lambda cmd, **kwargs: seen.append(cmd) or FakeProc())

        FontconfigProbe().find()

        assert seen == [["fc-list", ":lang=zh", "file", "family"]]


class TestPathListProbe:

    def test_first_existing_non_collection(self, fonts, tmp_path):
        probe = PathListProbe([
            str(tmp_path / "missing.ttf"),
            fonts["NotoSansCJK.ttc"],
            fonts["wqy-microhei.ttf"],
            fonts["ukai.ttf"],
        ])

        assert probe.find() == fonts["wqy-microhei.ttf"]

    def test_nothing_found(self, tmp_path):
        assert PathListProbe([str(tmp_path / "missing.ttf")]).find() is None


class TestResolveFont:

    def test_first_probe_wins(self, fonts):
        first = EnvFontProbe("UI_FONT", environ={"UI_FONT": fonts["ukai.ttf"]})
        second = MagicMock()

        font = resolve_font([first, second])

        assert font == ResolvedFont(path=fonts["ukai.ttf"], source="env")
        second.find.assert_not_called()

    def test_falls_through_probes(self, fonts):
        empty = EnvFontProbe("UI_FONT", environ={})
        paths = PathListProbe([fonts["wqy-microhei.ttf"]])

        font = resolve_font([empty, paths])

        assert font.source == "paths"
        assert font.mimetype == "font/ttf"

    def test_none_found(self):
        assert resolve_font([EnvFontProbe("UI_FONT", environ={})]) is None
