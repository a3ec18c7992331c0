"""
Main routes (printer selection, install, batch progress).

Flow:
    GET  /                  - pick a location, tick printers
    POST /install           - snapshot the selection, start a batch
    GET  /batch/<id>        - progress page (polls /api/batch/<id>), then summary
    POST /batch/<id>/cancel - stop before the next printer
    POST /refresh           - reload the printer configuration
"""

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    send_file,
    session,
    url_for,
)

from core.exceptions import BatchAlreadyRunningError, ConfigurationNotLoadedError
from modules.i18n import current_language, translate
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

main_bp = Blueprint("main", __name__)


def _t(key: str, **kwargs) -> str:
    return translate(key, lang=current_language(), **kwargs)


def _selected_location(locations, requested=None):
    """Requested location if known, else the remembered one, else the first."""
    for candidate in (requested, session.get("location")):
        if candidate and candidate in locations:
            return candidate
    return locations[0] if locations else None


@main_bp.route("/", methods=["GET"])
def index():
    """Location picker and printer list."""
    config_service = current_app.config["CONFIG_SERVICE"]
    install_service = current_app.config["INSTALL_SERVICE"]

    config = config_service.get_config()
    locations = config.location_names
    location = _selected_location(locations, request.args.get("location"))
    if location:
        session["location"] = location

    return render_template(
        "index.html",
        locations=locations,
        selected_location=location,
        printers=config.printers_for(location) if location else (),
        config_status=config_service.status(),
        active_batch_id=install_service.active_batch_id,
    )


@main_bp.route("/refresh", methods=["POST"])
def refresh():
    """Reload the printer configuration in the background."""
    config_service = current_app.config["CONFIG_SERVICE"]

    if config_service.request_refresh():
        logger.info("Configuration refresh requested")
        flash(_t("config.refresh_started"), "info")
    else:
        flash(_t("config.refresh_busy"), "warning")

    return redirect(url_for("main.index"))


@main_bp.route("/install", methods=["POST"])
def install():
    """
    Install the ticked printers of one location.

    The printers are resolved against the configuration snapshot current
    at submit time; the batch keeps that snapshot even if a refresh
    replaces the configuration while it runs.
    """
    config_service = current_app.config["CONFIG_SERVICE"]
    install_service = current_app.config["INSTALL_SERVICE"]

    location = request.form.get("location", "")
    names = request.form.getlist("printers")

    try:
        config = config_service.get_config_or_raise()
    except ConfigurationNotLoadedError:
        flash(_t("config.not_loaded"), "warning")
        return redirect(url_for("main.index"))

    if location not in config.locations:
        flash(_t("install.unknown_location", location=location), "error")
        return redirect(url_for("main.index"))

    if not names:
        flash(_t("install.none_selected"), "warning")
        return redirect(url_for("main.index", location=location))

    selected = []
    missing = []
    for name in names:
        printer = config.find_printer(location, name)
        if printer is None:
            missing.append(name)
        else:
            selected.append(printer)

    if missing:
        flash(_t("install.unknown_printers", names=", ".join(missing)), "warning")
    if not selected:
        return redirect(url_for("main.index", location=location))

    try:
        batch_id = install_service.submit_batch(tuple(selected), config)
    except BatchAlreadyRunningError as e:
        flash(_t("install.already_running"), "warning")
        return redirect(url_for("main.batch", batch_id=e.batch_id))

    logger.info(f"Batch {batch_id[:8]} started for {len(selected)} printers at '{location}'")
    session["batch_id"] = batch_id
    return redirect(url_for("main.batch", batch_id=batch_id))


@main_bp.route("/batch/<batch_id>", methods=["GET"])
def batch(batch_id: str):
    """Progress page while running, summary once finished."""
    install_service = current_app.config["INSTALL_SERVICE"]

    progress = install_service.get_progress(batch_id)
    if progress is None:
        flash(_t("batch.not_found"), "warning")
        return redirect(url_for("main.index"))

    result = install_service.get_result(batch_id)
    limit = current_app.config.get("MAX_FAILURE_LINES", 5)
    shown, omitted = result.summary_lines(limit) if result else ([], 0)

    return render_template(
        "batch.html",
        batch_id=batch_id,
        progress=progress,
        result=result,
        failure_lines=shown,
        omitted_failures=omitted,
    )


@main_bp.route("/batch/<batch_id>/cancel", methods=["POST"])
def cancel_batch(batch_id: str):
    install_service = current_app.config["INSTALL_SERVICE"]

    if install_service.cancel(batch_id):
        flash(_t("batch.cancel_requested"), "info")
    else:
        flash(_t("batch.cancel_unavailable"), "warning")

    return redirect(url_for("main.batch", batch_id=batch_id))


@main_bp.route("/assets/font", methods=["GET"])
def font():
    """Serve the CJK UI font found at startup."""
    ui_font = current_app.config.get("UI_FONT")
    if ui_font is None:
        return "", 404
    return send_file(ui_font.path, mimetype=ui_font.mimetype, max_age=86400)
