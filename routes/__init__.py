"""
Flask route blueprints for PrinterInstallWeb.

- main: Location and printer selection, install submission, batch pages
- api: JSON endpoints polled by the batch page, plus /health
"""

from .main import main_bp
from .api import api_bp

BLUEPRINTS = (main_bp, api_bp)

__all__ = ["main_bp", "api_bp", "register_blueprints"]


def register_blueprints(app):
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)
