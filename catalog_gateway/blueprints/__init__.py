"""
Blueprint registration for the catalog gateway.

The search and catalog blueprints are mounted under ``API_PREFIX``; the
health blueprint is mounted at the application root.
"""

from flask import Flask

import structlog

from .catalog import catalog_bp
from .health import health_bp
from .search import search_bp

logger = structlog.get_logger("blueprints")


def register_blueprints(app: Flask) -> None:
    """
    Register all application blueprints.

    Args:
        app: Flask application instance
    """
    api_prefix = app.config.get('API_PREFIX', '/api/v1')
    app.register_blueprint(search_bp, url_prefix=api_prefix)
    app.register_blueprint(catalog_bp, url_prefix=api_prefix)
    app.register_blueprint(health_bp)

    logger.info(
        "Blueprints registered",
        api_prefix=api_prefix,
        blueprints=[search_bp.name, catalog_bp.name, health_bp.name]
    )


__all__ = ['register_blueprints', 'search_bp', 'catalog_bp', 'health_bp']
