"""
Flask Configuration Classes

Environment-specific settings (Development, Testing, Production) for the
catalog gateway application factory. Values come from environment
variables, with a local ``.env`` file loaded through python-dotenv.

Configuration Keys:
    APP_NAME / APP_VERSION: Application metadata used in logs and /health
    API_PREFIX: URL prefix of the catalog API blueprints
    LOG_LEVEL / LOG_FORMAT: structlog level and renderer (json or console)
    LOG_VALIDATION_FAILURES: Log rejected requests at warning level
    PRODUCT_SANITIZE_FIELDS / CUSTOMER_SANITIZE_FIELDS / ORDER_SANITIZE_FIELDS:
        Body fields stripped of markup before validation
"""

import logging
import os
from typing import List, Optional, Type

from dotenv import load_dotenv
from flask import Flask

logger = logging.getLogger(__name__)

# Load environment variables from a local .env file
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(',') if item.strip()]


class BaseConfig:
    """
    Base configuration shared by every environment.
    """

    # Application Metadata
    APP_NAME = os.getenv('APP_NAME', 'catalog-gateway')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')

    # Environment Configuration
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = False
    TESTING = False

    # API Configuration
    API_PREFIX = os.getenv('API_PREFIX', '/api/v1')

    # Request Parsing Configuration
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', '1048576'))  # 1MB default

    # JSON Configuration
    JSON_SORT_KEYS = False

    # Logging Configuration
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')
    LOG_VALIDATION_FAILURES = _env_bool('LOG_VALIDATION_FAILURES', True)

    # Sanitization Configuration
    PRODUCT_SANITIZE_FIELDS = _env_list('PRODUCT_SANITIZE_FIELDS', 'name,description')
    CUSTOMER_SANITIZE_FIELDS = _env_list('CUSTOMER_SANITIZE_FIELDS', 'first_name,last_name')
    ORDER_SANITIZE_FIELDS = _env_list('ORDER_SANITIZE_FIELDS', 'notes')

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """
        Initialize Flask application with base configuration.

        Args:
            app: Flask application instance
        """
        app.json.sort_keys = app.config.get('JSON_SORT_KEYS', cls.JSON_SORT_KEYS)
        logger.info(
            "Base configuration initialized",
            extra={
                'config_class': cls.__name__,
                'app_name': app.config.get('APP_NAME'),
                'api_prefix': app.config.get('API_PREFIX'),
            }
        )


class DevelopmentConfig(BaseConfig):
    """Local development: debug mode and console log output."""

    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'console')


class TestingConfig(BaseConfig):
    """
    Test configuration.

    Validation failures are not logged to keep test output readable; tests
    that check logging enable it explicitly.
    """

    TESTING = True
    FLASK_ENV = 'testing'
    LOG_LEVEL = 'WARNING'
    LOG_FORMAT = 'console'
    LOG_VALIDATION_FAILURES = False


class ProductionConfig(BaseConfig):
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = 'json'


config_map = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,

    # Aliases
    'dev': DevelopmentConfig,
    'test': TestingConfig,
    'prod': ProductionConfig
}


def get_config(environment: Optional[str] = None) -> Type[BaseConfig]:
    """
    Get configuration class for the specified environment.

    Args:
        environment: Target environment name (defaults to FLASK_ENV)

    Returns:
        Configuration class for the specified environment

    Raises:
        ValueError: If environment is not supported
    """
    if environment is None:
        environment = os.getenv('FLASK_ENV', 'development')

    environment = environment.lower()

    if environment not in config_map:
        raise ValueError(
            f"Unsupported environment '{environment}'. "
            f"Supported environments: {list(config_map.keys())}"
        )

    return config_map[environment]


__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'TestingConfig',
    'ProductionConfig',
    'config_map',
    'get_config',
]
