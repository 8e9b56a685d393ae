"""
Flask Application Factory for the Catalog Gateway

Creates and configures the Flask application: configuration, structured
logging, collaborator registration, blueprints and error handlers.

Usage:
    # Development server
    export FLASK_ENV=development
    flask --app "catalog_gateway.app:create_app()" run

    # Production WSGI deployment
    gunicorn "catalog_gateway.app:create_wsgi_application()"

    # Application factory usage with collaborators
    from catalog_gateway.app import create_app
    from catalog_gateway.business.services import CatalogServices
    app = create_app('production', services=CatalogServices(search=my_search_client))
"""

from typing import Optional

import structlog
from flask import Flask

from .blueprints import register_blueprints
from .business.exceptions import create_flask_error_handlers
from .business.services import CatalogServices
from .config.settings import get_config
from .monitoring.logging import init_request_logging, setup_structured_logging

logger = structlog.get_logger("app")


class CatalogApplicationFactory:
    """
    Catalog gateway application factory.

    Each call to ``create_application`` builds an independent application;
    nothing is shared between instances except the process-wide Prometheus
    registry.
    """

    def create_application(
        self,
        config_name: Optional[str] = None,
        services: Optional[CatalogServices] = None,
        **config_overrides
    ) -> Flask:
        """
        Create and configure a Flask application.

        Args:
            config_name: Configuration environment name (development, testing, production)
            services: Collaborators used by the routes
            **config_overrides: Configuration values applied on top of the environment config

        Returns:
            Configured Flask application
        """
        app = Flask(__name__.split('.')[0])

        self._configure_application(app, config_name, **config_overrides)
        logger_instance = setup_structured_logging(app)
        init_request_logging(app, logger_instance)

        (services or CatalogServices()).init_app(app)
        register_blueprints(app)
        create_flask_error_handlers(app)

        logger.info(
            "Flask application created",
            environment=app.config.get('FLASK_ENV'),
            api_prefix=app.config.get('API_PREFIX'),
            testing=app.config.get('TESTING', False)
        )
        return app

    def _configure_application(
        self,
        app: Flask,
        config_name: Optional[str],
        **config_overrides
    ) -> None:
        config_class = get_config(config_name)
        app.config.from_object(config_class)

        if config_overrides:
            app.config.update(config_overrides)

        config_class.init_app(app)


_application_factory = CatalogApplicationFactory()


def create_app(
    config_name: Optional[str] = None,
    services: Optional[CatalogServices] = None,
    **config_overrides
) -> Flask:
    """
    Create the catalog gateway application.

    Args:
        config_name: Configuration environment name; defaults to ``FLASK_ENV``
        services: Search, recommendation and store collaborators plus user loader
        **config_overrides: Additional configuration parameter overrides

    Returns:
        Configured Flask application

    Examples:
        app = create_app('testing', services=CatalogServices(search=fake_search))
        app = create_app('production', API_PREFIX='/catalog/v2')
    """
    return _application_factory.create_application(
        config_name=config_name,
        services=services,
        **config_overrides
    )


def create_wsgi_application() -> Flask:
    """WSGI entry point; collaborators are attached by the deployment."""
    return create_app()


__all__ = ['CatalogApplicationFactory', 'create_app', 'create_wsgi_application']
