"""
API routes (AJAX endpoints).

Handles:
- /api/batch/<id> - Poll batch install progress (and summary when finished)
- /api/config/status - Configuration load state
- /health - Health check endpoint
"""

from flask import Blueprint, current_app

from core.exceptions import CupsUnavailableError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/api/batch/<batch_id>", methods=["GET"])
def batch_status(batch_id: str):
    """
    AJAX endpoint for batch progress.

    While running: status, completed/total and the printer being installed.
    Once finished the result summary is included and "complete" is true.
    """
    install_service = current_app.config.get("INSTALL_SERVICE")
    if not install_service:
        return {
            "status": "error",
            "message": "Install service unavailable",
            "complete": True,
            "error": True
        }, 500

    progress = install_service.get_progress(batch_id)
    if progress is None:
        return {
            "status": "unknown",
            "message": "Batch not found",
            "complete": True,
            "error": True
        }, 404

    payload = progress.to_dict()
    result = install_service.get_result(batch_id)
    payload["complete"] = result is not None
    payload["error"] = False

    if result is not None:
        limit = current_app.config.get("MAX_FAILURE_LINES", 5)
        payload["result"] = result.to_dict(summary_limit=limit)

    return payload


@api_bp.route("/api/config/status", methods=["GET"])
def config_status():
    config_service = current_app.config.get("CONFIG_SERVICE")
    if not config_service:
        return {"loaded": False, "error": "Configuration service unavailable"}, 500
    return config_service.status()


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    config_service = current_app.config.get("CONFIG_SERVICE")
    if config_service and config_service.get_config().is_empty:
        health_status["checks"]["config"] = "not_loaded"
        health_status["status"] = "degraded"
    elif config_service:
        health_status["checks"]["config"] = "loaded"
    else:
        health_status["checks"]["config"] = "unavailable"
        health_status["status"] = "degraded"

    queue_admin = current_app.config.get("QUEUE_ADMIN")
    try:
        if queue_admin is None:
            raise CupsUnavailableError("lpadmin")
        queue_admin.preflight()
        health_status["checks"]["cups"] = "available"
    except CupsUnavailableError as e:
        logger.debug(f"Health check: {e}")
        health_status["checks"]["cups"] = "unavailable"
        health_status["status"] = "degraded"

    install_service = current_app.config.get("INSTALL_SERVICE")
    if install_service:
        active = install_service.active_batch_id
        health_status["checks"]["install"] = f"running:{active[:8]}" if active else "idle"
    else:
        health_status["checks"]["install"] = "unavailable"
        health_status["status"] = "degraded"

    return health_status
