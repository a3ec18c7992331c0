"""
Data models for PrinterInstallWeb.

This module contains immutable dataclasses for:
- PrinterConfiguration: Point-in-time configuration from the server
- Printer / ModelInfo: Records inside the configuration
- InstallOutcome: Result of installing one printer
- BatchResult / BatchProgress: Aggregate and live state of a batch

All dataclasses are frozen so they can be handed between threads safely.
"""

from .printer_config import Printer, ModelInfo, PrinterConfiguration
from .install_result import (
    BatchProgress,
    BatchResult,
    BatchStatus,
    InstallOutcome,
    InstallPolicy,
)

__all__ = [
    # Configuration models
    "Printer",
    "ModelInfo",
    "PrinterConfiguration",
    # Install models
    "InstallOutcome",
    "InstallPolicy",
    "BatchProgress",
    "BatchResult",
    "BatchStatus",
]
