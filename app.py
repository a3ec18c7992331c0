"""
PrinterInstallWeb - Flask Application Entry Point.

This is a slim app factory that:
1. Loads the printer configuration (separate thread)
2. Creates the install service (thread-per-batch)
3. Registers route blueprints
4. Sets up error handlers and context processors

ARCHITECTURE:
    Main Thread
    ├── Flask request handling (local web UI)
    └── Cleanup on shutdown

    ConfigRefresh Thread (on demand or periodic)
    └── Downloads printer-config.json, swaps the snapshot atomically

    Batch Thread (one at a time)
    └── Resolve driver -> download PPD -> lpadmin, per selected printer

Batches work on a frozen copy of the selection and the configuration
snapshot it came from; refreshes never change a running batch.
"""

from __future__ import annotations

import atexit
import logging
import sys
from functools import partial
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, flash, redirect, request, session, url_for

from logging_config import setup_logging, get_logger
from core.config_client import PrinterConfigClient
from core.cups_admin import CupsQueueAdmin
from core.exceptions import CupsUnavailableError
from models.install_result import InstallPolicy
from modules.driver_fetcher import downloaded_driver
from modules.font_resolver import default_probes, resolve_font
from modules.i18n import (
    create_translation_filter,
    current_language,
    get_supported_languages,
    translate,
)
from modules.queue_installer import QueueInstaller
from services.config_service import ConfigService
from services.install_service import InstallService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent


def create_app(config_object: str = "config.Config") -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class
            (tests pass "config.TestingConfig")

    Returns:
        Configured Flask application
    """
    # .env next to the executable takes precedence over the shell environment
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    log_dir = app.config.get("LOG_DIR")
    root_logger = setup_logging(
        log_level=log_level,
        log_dir=Path(log_dir) if log_dir else None,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting PrinterInstallWeb in {app.config.get('ENVIRONMENT')} mode")

    start_background = app.config.get("START_BACKGROUND_SERVICES", True)

    # =========================================================================
    # PRINTING SYSTEM
    # =========================================================================

    queue_admin = CupsQueueAdmin(
        lpstat_path=app.config["LPSTAT_PATH"],
        lpadmin_path=app.config["LPADMIN_PATH"],
        timeout=app.config["CUPS_COMMAND_TIMEOUT_SECONDS"],
    )
    try:
        queue_admin.preflight()
    except CupsUnavailableError as e:
        # The UI still works for browsing; every install will fail with this reason
        logger.warning(f"{e}. Installs will fail until CUPS is installed.")
    app.config["QUEUE_ADMIN"] = queue_admin

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    config_client = PrinterConfigClient(
        app.config["PRINTER_CONFIG_URL"],
        timeout=app.config["HTTP_TIMEOUT_SECONDS"],
    )
    config_service = ConfigService(
        config_client,
        refresh_interval_seconds=app.config["CONFIG_REFRESH_INTERVAL_SECONDS"],
    )
    if start_background:
        config_service.start()
        logger.info("Configuration service started")
    app.config["CONFIG_SERVICE"] = config_service

    installer = QueueInstaller(queue_admin, uri_template=app.config["DEFAULT_URI_TEMPLATE"])
    fetch_driver = partial(
        downloaded_driver, timeout=app.config["DRIVER_DOWNLOAD_TIMEOUT_SECONDS"]
    )
    install_service = InstallService(
        installer,
        fetch_driver,
        policy=InstallPolicy.parse(app.config["INSTALL_POLICY"]),
        dedupe=app.config["DEDUPE_SELECTED_PRINTERS"],
        max_results=app.config["MAX_STORED_BATCHES"],
    )
    app.config["INSTALL_SERVICE"] = install_service
    logger.info("Install service initialized")

    # UI font (presentation only)
    app.config["UI_FONT"] = (
        resolve_font(default_probes(app.config["FONT_ENV_VAR"])) if start_background else None
    )

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        config_service.stop()
        install_service.shutdown()
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # CONTEXT PROCESSORS
    # =========================================================================

    @app.context_processor
    def inject_i18n():
        """Inject translation function into all templates."""
        current_lang = current_language()
        return {
            "_": create_translation_filter(current_lang),
            "current_language": current_lang,
            "supported_languages": get_supported_languages(),
        }

    @app.context_processor
    def inject_ui_font():
        return {"ui_font_available": app.config.get("UI_FONT") is not None}

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(404)
    def handle_not_found(e):
        flash(translate("errors.not_found", lang=current_language()), "warning")
        return redirect(url_for("main.index"))

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        flash(translate("errors.unexpected", lang=current_language()), "error")
        return redirect(url_for("main.index"))

    # =========================================================================
    # LANGUAGE ROUTE
    # =========================================================================

    @app.route("/set_language/<lang>", methods=["GET"])
    def set_language(lang: str):
        languages = get_supported_languages()
        if lang in languages:
            session["language"] = lang
            session.modified = True
            flash(translate("language.changed", lang=lang, name=languages[lang]["name"]), "success")
        else:
            flash(translate("language.unsupported", lang=current_language(), code=lang), "error")
        return redirect(request.referrer or url_for("main.index"))

    logger.info("Application initialized successfully")
    return app


def main() -> None:
    app = create_app()
    app.run(
        host=app.config["HOST"],
        port=app.config["PORT"],
        debug=app.config.get("DEBUG", False),
        use_reloader=False,
    )


if __name__ == "__main__":
    main()
