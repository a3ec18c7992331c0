"""
Configuration for PrinterInstallWeb.

All settings come from environment variables (optionally via a .env file
next to the application), with defaults suitable for an office workstation.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "printer_installer_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Printer configuration server
    # ==========================================================================
    # PRINTER_CONFIG_URL: JSON document with "locations" and "printer_models"
    # CONFIG_REFRESH_INTERVAL_SECONDS: periodic reload, 0 = manual refresh only
    # ==========================================================================
    PRINTER_CONFIG_URL = os.environ.get(
        "PRINTER_CONFIG_URL",
        "http://10.245.93.86/printer/printer-config.json"
    )
    HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "15"))
    CONFIG_REFRESH_INTERVAL_SECONDS = float(
        os.environ.get("CONFIG_REFRESH_INTERVAL_SECONDS", "0")
    )

    # ==========================================================================
    # Batch installation
    # ==========================================================================
    # INSTALL_POLICY: "sequential" (results in selection order) or
    #   "parallel" (one thread per printer, results in completion order)
    # DEDUPE_SELECTED_PRINTERS: drop repeated queue names before dispatch
    # MAX_FAILURE_LINES: failure details shown in the batch summary
    # MAX_STORED_BATCHES: finished batch results kept for the batch pages
    # ==========================================================================
    INSTALL_POLICY = os.environ.get("INSTALL_POLICY", "sequential")
    DEDUPE_SELECTED_PRINTERS = _env_bool("DEDUPE_SELECTED_PRINTERS", "1")
    MAX_FAILURE_LINES = int(os.environ.get("MAX_FAILURE_LINES", "5"))
    MAX_STORED_BATCHES = int(os.environ.get("MAX_STORED_BATCHES", "20"))
    DRIVER_DOWNLOAD_TIMEOUT_SECONDS = float(
        os.environ.get("DRIVER_DOWNLOAD_TIMEOUT_SECONDS", "30")
    )

    # ==========================================================================
    # CUPS
    # ==========================================================================
    DEFAULT_URI_TEMPLATE = os.environ.get("DEFAULT_URI_TEMPLATE", "ipp://{ip}/ipp/print")
    LPSTAT_PATH = os.environ.get("LPSTAT_PATH", "lpstat")
    LPADMIN_PATH = os.environ.get("LPADMIN_PATH", "lpadmin")
    CUPS_COMMAND_TIMEOUT_SECONDS = float(os.environ.get("CUPS_COMMAND_TIMEOUT_SECONDS", "60"))

    # UI font override (path to a .ttf/.otf file)
    FONT_ENV_VAR = "PRINTER_INSTALLER_FONT"

    # Log files (production only); empty = logs/ beside the application
    LOG_DIR = os.environ.get("LOG_DIR", "")

    # Local web UI
    HOST = os.environ.get("HOST", "127.0.0.1")
    PORT = int(os.environ.get("PORT", "5000"))

    # Start the configuration load and resolve the UI font at startup
    START_BACKGROUND_SERVICES = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    PRINTER_CONFIG_URL = "http://config.test/printer-config.json"
    START_BACKGROUND_SERVICES = False
    CONFIG_REFRESH_INTERVAL_SECONDS = 0
    INSTALL_POLICY = "sequential"
