"""
Services layer for PrinterInstallWeb.

This module contains the long-lived services:
- ConfigService: Session-owned printer configuration with background refresh
- InstallService: Batch install threads and result store

Thread Model:
    Main Thread (Flask)
    ├── ConfigRefresh thread (on demand, or periodic loop if configured)
    └── Batch thread (one at a time)
        └── Install-<printer> threads (parallel policy only)

Batches receive an immutable copy of the selected printers and the
configuration snapshot they were selected from.
"""

from .config_service import ConfigService
from .install_service import (
    BatchResultStore,
    BatchRunner,
    InstallService,
    install_printer,
)

__all__ = [
    "ConfigService",
    "InstallService",
    "BatchRunner",
    "BatchResultStore",
    "install_printer",
]
