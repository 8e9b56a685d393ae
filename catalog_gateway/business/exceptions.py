"""
Business Exception Classes and Validation Error Formatting

Defines the error taxonomy used at the request pipeline boundary and the
formatter turning marshmallow validation failures into the uniform,
client-visible error report.

Taxonomy:
    BaseBusinessException: Base class carrying message, error code and HTTP status
    DataValidationError: Structural violations (one or more field-level failures)
    BusinessRuleViolationError: Cross-field or semantic rule failures
    ExternalServiceError: Collaborator (search, recommendation, store) failures

Structural and business violations are rendered as 400 responses with full
detail. Anything else is an unexpected error: it is logged with context and
rendered as an opaque 500 response.
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import structlog
from flask import Flask, jsonify
from marshmallow import ValidationError as MarshmallowValidationError
from marshmallow.exceptions import SCHEMA
from werkzeug.exceptions import HTTPException

from .models import FieldViolation, ValidationErrorReport

logger = structlog.get_logger("business.exceptions")

VALIDATION_FAILED_MESSAGE = "Validation failed"
INTERNAL_ERROR_MESSAGE = "Internal server error"


class BaseBusinessException(Exception):
    """
    Base exception class for all catalog business failures.

    Attributes:
        message: Client-facing error message
        error_code: Stable identifier for the failure kind
        http_status_code: HTTP status used when rendered as a response
        context: Extra detail for logging (never rendered to the client)
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        http_status_code: int = 400,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.http_status_code = http_status_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {'error': self.message}

    def to_flask_response(self) -> tuple:
        return jsonify(self.to_dict()), self.http_status_code


class DataValidationError(BaseBusinessException):
    """
    Structural validation failure with every field violation of one pass.

    Example:
        try:
            ProductValidator().load(payload)
        except MarshmallowValidationError as e:
            raise DataValidationError.from_marshmallow(e)
    """

    def __init__(
        self,
        violations: List[FieldViolation],
        message: str = VALIDATION_FAILED_MESSAGE,
        error_code: str = "SCHEMA_VALIDATION_FAILED",
        **kwargs
    ) -> None:
        kwargs.setdefault('http_status_code', 400)
        super().__init__(message, error_code, **kwargs)
        self.violations = violations

    @classmethod
    def from_marshmallow(cls, error: MarshmallowValidationError, **kwargs) -> 'DataValidationError':
        return cls(list(iter_field_violations(error.messages)), **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return ValidationErrorReport(
            message=VALIDATION_FAILED_MESSAGE,
            errors=self.violations,
        ).to_response()


class BusinessRuleViolationError(BaseBusinessException):
    """
    Raised when structurally valid data breaks a business rule.

    Example:
        if min_price > max_price:
            raise BusinessRuleViolationError(
                message="Minimum price cannot be greater than maximum price",
                error_code="INVERTED_PRICE_RANGE",
                rule_name="price_range",
            )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "BUSINESS_RULE_VIOLATION",
        rule_name: Optional[str] = None,
        **kwargs
    ) -> None:
        kwargs.setdefault('http_status_code', 400)
        context = dict(kwargs.get('context') or {})
        if rule_name:
            context['violated_rule'] = rule_name
        kwargs['context'] = context
        super().__init__(message, error_code, **kwargs)
        self.rule_name = rule_name

    def to_dict(self) -> Dict[str, Any]:
        return ValidationErrorReport(
            message=VALIDATION_FAILED_MESSAGE,
            errors=[FieldViolation(message=self.message)],
        ).to_response()


class ExternalServiceError(BaseBusinessException):
    """Collaborator failure; details stay in the logs."""

    def __init__(self, message: str, service_name: str, **kwargs) -> None:
        kwargs.setdefault('http_status_code', 500)
        context = dict(kwargs.get('context') or {})
        context['service_name'] = service_name
        kwargs['context'] = context
        super().__init__(message, "EXTERNAL_SERVICE_ERROR", **kwargs)
        self.service_name = service_name

    def to_dict(self) -> Dict[str, Any]:
        return {'error': INTERNAL_ERROR_MESSAGE}


# ============================================================================
# VALIDATION ERROR FORMATTING
# ============================================================================

PathSegment = Union[str, int]


def iter_field_violations(
    messages: Union[Dict[Any, Any], List[Any], str],
    path: Tuple[PathSegment, ...] = (),
) -> Iterator[FieldViolation]:
    """
    Walk a marshmallow error message tree depth first.

    Dict keys become path segments (list indexes included), ``_schema`` keys
    report at the path of the schema they belong to, and each message string
    becomes one violation. Order follows the order errors were recorded.
    """
    if isinstance(messages, dict):
        for key, nested in messages.items():
            child_path = path if key == SCHEMA else path + (key,)
            yield from iter_field_violations(nested, child_path)
    elif isinstance(messages, list):
        for nested in messages:
            yield from iter_field_violations(nested, path)
    else:
        yield FieldViolation(field='.'.join(str(segment) for segment in path), message=str(messages))


def format_validation_error(error: MarshmallowValidationError) -> Dict[str, Any]:
    """
    Convert a marshmallow ValidationError into the uniform error report.

    Args:
        error: Structural validation failure raised by ``Schema.load``

    Returns:
        ``{"message": "Validation failed", "errors": [{"field": ..., "message": ...}]}``
    """
    return ValidationErrorReport(
        message=VALIDATION_FAILED_MESSAGE,
        errors=list(iter_field_violations(error.messages)),
    ).to_response()


# ============================================================================
# FLASK ERROR HANDLERS
# ============================================================================

def create_flask_error_handlers(app: Flask) -> None:
    """
    Register JSON error handlers for business exceptions and unexpected errors.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(BaseBusinessException)
    def handle_business_exception(error: BaseBusinessException):
        if error.http_status_code >= 500:
            logger.error(
                "Business exception",
                error_code=error.error_code,
                error=error.message,
                **error.context
            )
        else:
            logger.warning(
                "Business exception",
                error_code=error.error_code,
                error=error.message,
                **error.context
            )
        return error.to_flask_response()

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({'error': error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_exception(error: Exception):
        logger.error(
            "Unhandled exception",
            error=str(error),
            error_type=type(error).__name__,
            exc_info=error
        )
        return jsonify({'error': INTERNAL_ERROR_MESSAGE}), 500


__all__ = [
    'VALIDATION_FAILED_MESSAGE',
    'INTERNAL_ERROR_MESSAGE',
    'BaseBusinessException',
    'DataValidationError',
    'BusinessRuleViolationError',
    'ExternalServiceError',
    'iter_field_violations',
    'format_validation_error',
    'create_flask_error_handlers',
]
