"""
Request Pipeline Decorators

Composable view decorators forming the request pipeline of the catalog API.
Each decorator is one stage: it reads an immutable ``RequestContext``,
either short-circuits with an error response or calls the next stage with a
new context. Views at the end of the chain receive the context as their
only argument, ``ctx``.

Stages:
    validate_schema: Load body, query string or route params through a marshmallow schema
    validate_business_logic: Check a sync or async predicate over validated data
    sanitize_input: Strip markup from designated body fields
    handle_service_errors: Render collaborator failures as opaque 500 responses

The outermost stage builds the context from the Flask request, including
the route parameters Flask passes as view keyword arguments. Stages never
touch ``flask.g``: every result flows through ``ctx``.

Example:
    @bp.route('/orders', methods=['POST'])
    @sanitize_input(['notes'])
    @validate_schema(OrderValidator)
    @validate_business_logic(lambda order: validate_order_items(order.items),
                             "Duplicate products in order items")
    def create_order(ctx: RequestContext):
        return jsonify(store.create_order(ctx.user.tenant_id, ctx.validated)), 201
"""

import functools
import inspect
import re
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Type, TypeVar, Union

import structlog
from flask import current_app, jsonify, request
from marshmallow import Schema, ValidationError as MarshmallowValidationError
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import HTTPException

from ..business.exceptions import (
    INTERNAL_ERROR_MESSAGE,
    VALIDATION_FAILED_MESSAGE,
    BusinessRuleViolationError,
    DataValidationError,
    format_validation_error,
)
from ..business.models import FieldViolation, ValidationErrorReport
from ..monitoring.metrics import record_unexpected_error, record_validation_failure, validation_duration
from .sanitizers import sanitize_fields

F = TypeVar('F', bound=Callable[..., Any])

logger = structlog.get_logger("utils.decorators")

REQUEST_LOCATIONS = ('body', 'query', 'params')
BRACKET_KEY_REGEX = re.compile(r'^([^\[\]]+)\[([^\[\]]*)\]$')


# ============================================================================
# REQUEST CONTEXT
# ============================================================================

@dataclass(frozen=True)
class RequestContext:
    """
    Immutable per-request state threaded through the pipeline stages.

    Attributes:
        body: Parsed JSON body, or None when the request carries none
        query: Query string parsed to plain values, lists and nested maps
        params: Route parameters
        user: Authenticated user supplied by the authentication stage
        validated: Typed result of the most recent schema stage
    """

    body: Any = None
    query: Mapping[str, Any] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)
    user: Any = None
    validated: Any = None

    def location(self, name: str) -> Any:
        if name not in REQUEST_LOCATIONS:
            raise ValueError(f"Unknown request location: {name}")
        return getattr(self, name)


def parse_query_string(args: MultiDict) -> Dict[str, Any]:
    """
    Convert query string arguments to plain data.

    A key given once maps to its string value and a repeated key to the list
    of its values. ``name[key]=v`` collects into a nested map under ``name``
    and ``name[]=v`` into a list.

    Example:
        parse_query_string(MultiDict([('categories', 'a'), ('categories', 'b'),
                                      ('attributes[color]', 'red')]))
        # Result: {'categories': ['a', 'b'], 'attributes': {'color': 'red'}}
    """
    parsed: Dict[str, Any] = {}
    for key in args.keys():
        values = args.getlist(key)
        value = values[0] if len(values) == 1 else values

        match = BRACKET_KEY_REGEX.match(key)
        if match is None:
            parsed[key] = value
            continue

        name, sub_key = match.groups()
        if not sub_key:
            parsed[name] = list(values)
            continue
        nested = parsed.get(name)
        if not isinstance(nested, dict):
            nested = parsed[name] = {}
        nested[sub_key] = value
    return parsed


def build_request_context(params: Optional[Mapping[str, Any]] = None) -> RequestContext:
    """Build the initial context from the active Flask request."""
    return RequestContext(
        body=request.get_json(silent=True),
        query=parse_query_string(request.args),
        params=dict(params if params is not None else (request.view_args or {})),
    )


def stage_context(kwargs: Dict[str, Any]) -> RequestContext:
    """Take the context passed by the previous stage, or build it at the outermost one."""
    # Route params arrive as view kwargs at the outermost stage only.
    ctx = kwargs.pop('ctx', None)
    if ctx is None:
        ctx = build_request_context(dict(kwargs))
        kwargs.clear()
    return ctx


def call_next_stage(func: Callable[..., Any], ctx: RequestContext) -> Any:
    """Invoke the next stage (or the view, sync or async) with ``ctx``."""
    return current_app.ensure_sync(func)(ctx=ctx)


def _validation_failure_response(errors: Sequence[FieldViolation]) -> Tuple[Any, int]:
    report = ValidationErrorReport(message=VALIDATION_FAILED_MESSAGE, errors=list(errors))
    return jsonify(report.to_response()), 400


def _log_validation_failures() -> bool:
    return current_app.config.get('LOG_VALIDATION_FAILURES', True)


# ============================================================================
# VALIDATION PIPELINE STAGE
# ============================================================================

def validate_schema(
    schema: Union[Type[Schema], Schema],
    location: Union[str, Iterable[str]] = 'body'
) -> Callable[[F], F]:
    """
    Load request data through a marshmallow schema.

    On success the typed result is stored as ``ctx.validated`` and the next
    stage runs. On a structural failure every violation is reported in one
    400 response and the pipeline halts. Any other exception raised while
    loading is logged and rendered as an opaque 500 response.

    Args:
        schema: marshmallow schema class or instance
        location: ``'body'``, ``'query'``, ``'params'``, or several locations
            merged left to right (later locations win on key clashes, so list
            ``'params'`` last to keep route values authoritative)

    Returns:
        Decorator applying the stage to a view

    Example:
        @validate_schema(RecommendationParamsValidator, location=('query', 'params'))
        def recommendations(ctx):
            params = ctx.validated
    """
    locations = (location,) if isinstance(location, str) else tuple(location)
    for name in locations:
        if name not in REQUEST_LOCATIONS:
            raise ValueError(f"Unknown request location: {name}")
    schema_name = schema.__name__ if isinstance(schema, type) else type(schema).__name__

    def collect(ctx: RequestContext) -> Any:
        if len(locations) == 1:
            return ctx.location(locations[0])
        merged: Dict[str, Any] = {}
        for name in locations:
            data = ctx.location(name)
            if isinstance(data, Mapping):
                merged.update(data)
        return merged

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(**kwargs):
            ctx = stage_context(kwargs)

            try:
                schema_instance = schema() if isinstance(schema, type) else schema
                with validation_duration.labels(schema=schema_name).time():
                    validated = schema_instance.load(collect(ctx))
            except MarshmallowValidationError as e:
                record_validation_failure('schema', schema_name)
                report = format_validation_error(e)
                if _log_validation_failures():
                    logger.warning(
                        "Request validation failed",
                        schema=schema_name,
                        location=list(locations),
                        errors=report['errors']
                    )
                return jsonify(report), 400
            except Exception as e:
                record_unexpected_error('schema')
                logger.error(
                    "Unexpected validation error",
                    schema=schema_name,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=e
                )
                return jsonify({'message': INTERNAL_ERROR_MESSAGE}), 500

            return call_next_stage(func, replace(ctx, validated=validated))

        return wrapper
    return decorator


# ============================================================================
# BUSINESS-LOGIC STAGE
# ============================================================================

BUSINESS_RULE_ERRORS = (
    BusinessRuleViolationError,
    DataValidationError,
    ValueError,
    MarshmallowValidationError,
)


async def _resolve_awaitable(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


def _rule_message(error: Exception) -> str:
    if isinstance(error, (BusinessRuleViolationError, DataValidationError)):
        return error.message
    return str(error)


def validate_business_logic(
    predicate: Callable[[Any], Any],
    error_message: str
) -> Callable[[F], F]:
    """
    Check a business rule over structurally valid data.

    The predicate receives ``ctx.validated`` (or the raw body when no schema
    stage ran before) and may be a coroutine function or return an awaitable,
    which is awaited before its result is checked. A falsy result fails
    with ``error_message``; a raised business-rule violation, ``ValueError``
    or marshmallow ``ValidationError`` fails with the exception's message.
    Both render as a 400 validation report. Any other exception is logged
    and rendered as an opaque 500 response.

    Args:
        predicate: Rule over the validated data
        error_message: Message reported when the predicate returns a falsy value
    """
    rule_name = getattr(predicate, '__name__', type(predicate).__name__)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(**kwargs):
            ctx = stage_context(kwargs)
            data = ctx.validated if ctx.validated is not None else ctx.body

            try:
                is_valid = current_app.ensure_sync(predicate)(data)
                if inspect.isawaitable(is_valid):
                    is_valid = current_app.ensure_sync(_resolve_awaitable)(is_valid)
            except BUSINESS_RULE_ERRORS as e:
                message = _rule_message(e)
            except Exception as e:
                record_unexpected_error('business_logic')
                logger.error(
                    "Unexpected business rule error",
                    rule=rule_name,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=e
                )
                return jsonify({'message': INTERNAL_ERROR_MESSAGE}), 500
            else:
                if is_valid:
                    return call_next_stage(func, ctx)
                message = error_message

            record_validation_failure('business_logic', rule_name)
            if _log_validation_failures():
                logger.warning("Business rule validation failed", rule=rule_name, error=message)
            return _validation_failure_response([FieldViolation(message=message)])

        return wrapper
    return decorator


# ============================================================================
# SANITIZATION STAGE
# ============================================================================

def sanitize_input(
    fields: Iterable[str] = (),
    config_key: Optional[str] = None
) -> Callable[[F], F]:
    """
    Strip markup from top-level string fields of the body.

    The stage never rejects a request. The sanitized body replaces
    ``ctx.body`` for later stages; the Flask request is left untouched.

    Args:
        fields: Body keys to sanitize
        config_key: Application config key overriding ``fields`` when set
    """
    default_fields = tuple(fields)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(**kwargs):
            ctx = stage_context(kwargs)
            names = default_fields
            if config_key is not None:
                names = tuple(current_app.config.get(config_key, default_fields))
            return call_next_stage(func, replace(ctx, body=sanitize_fields(ctx.body, names)))

        return wrapper
    return decorator


# ============================================================================
# HANDLER ERROR BOUNDARY
# ============================================================================

def handle_service_errors(operation: str) -> Callable[[F], F]:
    """
    Render failures raised by a view or its collaborators as opaque 500s.

    The error and its traceback are logged; the client only sees
    ``{"error": "Internal server error"}``.

    Args:
        operation: Name used in logs for the guarded operation
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(**kwargs):
            ctx = stage_context(kwargs)
            try:
                return call_next_stage(func, ctx)
            except HTTPException:
                raise
            except Exception as e:
                record_unexpected_error('handler')
                logger.error(
                    "Error handling request",
                    operation=operation,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=e
                )
                return jsonify({'error': INTERNAL_ERROR_MESSAGE}), 500

        return wrapper
    return decorator


__all__ = [
    'REQUEST_LOCATIONS',
    'RequestContext',
    'parse_query_string',
    'build_request_context',
    'stage_context',
    'call_next_stage',
    'validate_schema',
    'validate_business_logic',
    'sanitize_input',
    'handle_service_errors',
]
