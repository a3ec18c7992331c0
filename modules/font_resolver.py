"""
UI font discovery.

The printer list shows Chinese printer and location names, so the UI ships
a CJK-capable font when the machine has one. Probes are tried in order and
the first hit wins:

    1. EnvFontProbe      - explicit path from an environment variable
    2. FontconfigProbe   - `fc-list :lang=zh file family`, Kai-style first
    3. PathListProbe     - well-known install locations

TrueType collections (.ttc) are skipped everywhere; browsers and several
toolkits cannot load them as a single face.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

logger = logging.getLogger("modules.font_resolver")

KAI_KEYWORDS = ("KaiTi", "楷体", "Kai", "UKai", "AR PL UKai", "KAITI")

DEFAULT_FONT_PATHS = (
    # Noto Sans CJK SC
    "/usr/share/fonts/opentype/noto/NotoSansCJKsc-Regular.otf",
    "/usr/share/fonts/truetype/noto-cjk/NotoSansCJKsc-Regular.otf",
    "/usr/share/fonts/noto-cjk/NotoSansCJKsc-Regular.otf",
    # Kylin / UKUI
    "/usr/share/fonts/truetype/ukui/ukui-default.ttf",
    "/usr/share/fonts/ukui/ukui-default.ttf",
    "/usr/share/fonts/truetype/kylin-font/kylin-font.ttf",
    # WenQuanYi
    "/usr/share/fonts/truetype/wqy/wqy-microhei.ttf",
    "/usr/share/fonts/truetype/wqy/wqy-zenhei.ttf",
    # AR PL
    "/usr/share/fonts/truetype/arphic/uming.ttf",
    "/usr/share/fonts/truetype/arphic/ukai.ttf",
    # Droid
    "/usr/share/fonts/truetype/droid/DroidSansFallbackFull.ttf",
    # Windows
    "C:\\Windows\\Fonts\\msyh.ttc",
    "C:\\Windows\\Fonts\\simhei.ttf",
)

FONT_MIMETYPES = {
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
}


@dataclass(frozen=True)
class ResolvedFont:
    path: str
    source: str
    """Name of the probe that found the font."""

    @property
    def mimetype(self) -> str:
        ext = os.path.splitext(self.path)[1].lower()
        return FONT_MIMETYPES.get(ext, "application/octet-stream")


def is_collection(path: str) -> bool:
    return path.lower().endswith(".ttc")


def _usable(path: str) -> bool:
    return bool(path) and not is_collection(path) and os.path.isfile(path)


class FontProbe(ABC):
    """One way of locating a font file."""

    name = "probe"

    @abstractmethod
    def find(self) -> Optional[str]:
        """Path of a usable font, or None."""


class EnvFontProbe(FontProbe):
    name = "env"

    def __init__(self, var_name: str, environ: Optional[Mapping[str, str]] = None):
        self.var_name = var_name
        self._environ = environ if environ is not None else os.environ

    def find(self) -> Optional[str]:
        path = self._environ.get(self.var_name, "").strip()
        if not path:
            return None
        if not os.path.isfile(path):
            logger.warning(f"{self.var_name} points to a missing font: {path}")
            return None
        return path


class FontconfigProbe(FontProbe):
    """
    Ask fontconfig for fonts covering Chinese.

    Each output line looks like "/path/to/font.ttf: Family Name,Alias".
    """

    name = "fontconfig"

    def __init__(
        self,
        fc_list_path: str = "fc-list",
        keywords: Sequence[str] = KAI_KEYWORDS,
        timeout: float = 10.0
    ):
        self.fc_list_path = fc_list_path
        self.keywords = tuple(keywords)
        self.timeout = timeout

    def list_fonts(self) -> List[str]:
        if shutil.which(self.fc_list_path) is None:
            logger.debug(f"'{self.fc_list_path}' not found in PATH")
            return []
        try:
            completed = subprocess.run(
                [self.fc_list_path, ":lang=zh", "file", "family"],
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"fc-list failed: {e}")
            return []
        if completed.returncode != 0:
            logger.warning(f"fc-list exited with {completed.returncode}")
            return []
        return [line for line in completed.stdout.splitlines() if line.strip()]

    def find(self) -> Optional[str]:
        lines = self.list_fonts()

        # First pass prefers Kai-style faces, second takes anything
        kai = [line for line in lines if any(k in line for k in self.keywords)]
        for candidates in (kai, lines):
            for line in candidates:
                path = line.split(":", 1)[0].strip()
                if _usable(path):
                    return path
        return None


class PathListProbe(FontProbe):
    name = "paths"

    def __init__(self, paths: Iterable[str] = DEFAULT_FONT_PATHS):
        self.paths = tuple(paths)

    def find(self) -> Optional[str]:
        for path in self.paths:
            if _usable(path):
                return path
        return None


def default_probes(env_var: str) -> List[FontProbe]:
    return [EnvFontProbe(env_var), FontconfigProbe(), PathListProbe()]


def resolve_font(probes: Iterable[FontProbe]) -> Optional[ResolvedFont]:
    """First font found by `probes`, in order."""
    for probe in probes:
        path = probe.find()
        if path:
            logger.info(f"Using UI font {path} (found by {probe.name})")
            return ResolvedFont(path=path, source=probe.name)

    logger.warning("No CJK font found; install fonts-noto-cjk for proper rendering")
    return None
