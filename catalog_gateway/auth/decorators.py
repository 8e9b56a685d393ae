"""
Authentication Context Stage

The gateway never authenticates anyone itself. An external authentication
layer identifies the caller and the configured user loader hands the result
to ``require_authentication``, which places it on the request context or
rejects the request with 401 before any validation runs.
"""

import functools
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional, TypeVar

import structlog
from flask import current_app, jsonify
from marshmallow import ValidationError as MarshmallowValidationError

from ..business.services import get_catalog_services
from ..monitoring.metrics import record_validation_failure
from ..utils.decorators import call_next_stage, stage_context
from ..utils.validators import validate_tenant_id

F = TypeVar('F', bound=Callable[..., Any])

logger = structlog.get_logger("auth.decorators")


@dataclass(frozen=True)
class AuthenticatedUser:
    """Caller identity as supplied by the authentication layer."""

    user_id: str
    tenant_id: str


def _coerce_user(raw: Any) -> Optional[AuthenticatedUser]:
    if raw is None or isinstance(raw, AuthenticatedUser):
        return raw
    if isinstance(raw, Mapping):
        user_id, tenant_id = raw.get('user_id'), raw.get('tenant_id')
    else:
        user_id, tenant_id = getattr(raw, 'user_id', None), getattr(raw, 'tenant_id', None)
    if not user_id or not tenant_id:
        return None
    return AuthenticatedUser(user_id=str(user_id), tenant_id=str(tenant_id))


def load_authenticated_user() -> Optional[AuthenticatedUser]:
    """
    Resolve the caller through the registered user loader.

    Returns:
        The authenticated user, or None when the caller is anonymous or the
        supplied tenant id is not a valid identifier
    """
    loader = get_catalog_services().user_loader
    user = _coerce_user(current_app.ensure_sync(loader)())
    if user is None:
        return None

    try:
        validate_tenant_id(user.tenant_id)
    except MarshmallowValidationError:
        logger.warning("Rejected malformed tenant id", user_id=user.user_id)
        return None
    return user


def require_authentication(func: F) -> F:
    """
    Require an authenticated user with a tenant before the next stage runs.

    Anonymous requests get ``{"error": "Unauthorized"}`` with status 401.
    """
    @functools.wraps(func)
    def wrapper(**kwargs):
        ctx = stage_context(kwargs)
        user = load_authenticated_user()
        if user is None:
            record_validation_failure('authentication', func.__name__)
            logger.warning("Unauthorized request", endpoint=func.__name__)
            return jsonify({'error': 'Unauthorized'}), 401

        structlog.contextvars.bind_contextvars(tenant_id=user.tenant_id, user_id=user.user_id)
        return call_next_stage(func, replace(ctx, user=user))

    return wrapper


__all__ = ['AuthenticatedUser', 'load_authenticated_user', 'require_authentication']
