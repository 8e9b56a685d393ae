"""
Structured Logging Configuration

Configures structlog on top of the standard library logging module and
installs the request-id middleware used to correlate log lines of a request.

Every log event carries an ISO timestamp, the log level, the logger name and
any context bound through ``structlog.contextvars`` (the request id in
particular). Events render as JSON lines by default, or as human-readable
console output when ``LOG_FORMAT`` is ``console``.
"""

import logging
import logging.config
import uuid
from typing import Any, Dict, Optional

import structlog
from flask import Flask, g, request

REQUEST_ID_HEADER = 'X-Request-ID'


def _build_processors(log_format: str) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == 'console':
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(structlog.processors.JSONRenderer())
    return processors


def setup_structured_logging(app: Flask) -> structlog.stdlib.BoundLogger:
    """
    Configure structlog and stdlib logging from the application config.

    Args:
        app: Flask application providing ``LOG_LEVEL``, ``LOG_FORMAT`` and ``APP_NAME``

    Returns:
        Logger bound to the application name
    """
    log_level = app.config.get('LOG_LEVEL', 'INFO').upper()
    log_format = app.config.get('LOG_FORMAT', 'json')

    structlog.configure(
        processors=_build_processors(log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging_config: Dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'plain': {
                'format': '%(message)s'
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'plain',
                'stream': 'ext://sys.stdout'
            }
        },
        'root': {
            'handlers': ['console'],
            'level': log_level
        }
    }
    logging.config.dictConfig(logging_config)

    logger = structlog.get_logger(app.config.get('APP_NAME', 'catalog_gateway'))
    logger.info(
        "Structured logging initialized",
        log_level=log_level,
        log_format=log_format,
        version=app.config.get('APP_VERSION')
    )
    return logger


def init_request_logging(app: Flask, logger: Optional[structlog.stdlib.BoundLogger] = None) -> None:
    """
    Bind a request id to every log event emitted while serving a request.

    The id comes from the ``X-Request-ID`` header when the client sends one
    and is generated otherwise; it is echoed back on the response.
    """
    if logger is None:
        logger = structlog.get_logger(app.config.get('APP_NAME', 'catalog_gateway'))

    @app.before_request
    def bind_request_id():
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        g.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.path
        )

    @app.after_request
    def log_response(response):
        request_id = getattr(g, 'request_id', None)
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        logger.info("Request completed", status_code=response.status_code)
        return response

    @app.teardown_request
    def unbind_request_id(exc):
        structlog.contextvars.clear_contextvars()


__all__ = ['REQUEST_ID_HEADER', 'setup_structured_logging', 'init_request_logging']
