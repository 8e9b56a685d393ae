"""
Primitive validators for catalog request data.

Atomic rules reused by every entity and query schema. Each primitive is
available in two shapes:

- a marshmallow field (``IdField``, ``EmailField``, ``PhoneField``, ``SkuField``,
  ``PriceField``, ``QuantityField``, ``StringMapField``, ``JsonMapField``) for
  declarative composition inside schemas,
- a plain function (``validate_id``, ``validate_email_address``, ...) that takes
  an untyped value and returns the typed value or raises
  ``marshmallow.ValidationError`` with the violation reason.

All primitives are pure: no I/O, no logging, no shared state.
"""

import re
from decimal import Decimal
from typing import Any, Dict, List, Optional, Pattern, Union

from email_validator import EmailNotValidError, validate_email as email_validate
from marshmallow import ValidationError, fields
from marshmallow.exceptions import SCHEMA


# Validation patterns
UUID_REGEX: Pattern[str] = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$',
    re.IGNORECASE,
)
PHONE_REGEX: Pattern[str] = re.compile(r'^\+?[1-9]\d{1,14}$')
SKU_REGEX: Pattern[str] = re.compile(r'^[A-Z0-9]{4,16}$')

JSON_SCALAR_TYPES = (str, int, float, bool, type(None))


# ============================================================================
# STRING PATTERN FIELDS
# ============================================================================

class PatternField(fields.String):
    """String field constrained to a full-match regular expression."""

    pattern: Pattern[str]
    default_error_messages = {'format': 'Invalid format'}

    def _deserialize(self, value: Any, attr: Optional[str], data: Any, **kwargs) -> str:
        value = super()._deserialize(value, attr, data, **kwargs)
        if not self.pattern.fullmatch(value):
            raise self.make_error('format')
        return value


class IdField(PatternField):
    """UUID v4 identifier (8-4-4-4-12 hex, version nibble 4, variant 8/9/a/b)."""

    pattern = UUID_REGEX
    default_error_messages = {'format': 'Invalid UUID format'}


class TenantIdField(IdField):
    default_error_messages = {'format': 'Invalid tenant ID format'}


class PhoneField(PatternField):
    """E.164-style phone number: optional '+', leading 1-9, 2-15 digits total."""

    pattern = PHONE_REGEX
    default_error_messages = {'format': 'Invalid phone number format'}


class SkuField(PatternField):
    """Stock keeping unit: 4-16 uppercase letters and digits."""

    pattern = SKU_REGEX
    default_error_messages = {'format': 'Invalid SKU format'}


class EmailField(fields.String):
    """
    Email address validated with email-validator.

    Deliverability (DNS) checks are disabled; only address syntax is checked.
    The normalized form of the address is returned.
    """

    default_error_messages = {'format': 'Invalid email format'}

    def _deserialize(self, value: Any, attr: Optional[str], data: Any, **kwargs) -> str:
        value = super()._deserialize(value, attr, data, **kwargs)
        try:
            return email_validate(value, check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise self.make_error('format') from e


# ============================================================================
# NUMERIC FIELDS
# ============================================================================

class PriceField(fields.Decimal):
    """
    Non-negative monetary amount parsed to ``Decimal``.

    Booleans, NaN and infinity are always rejected. With ``strict=True`` (the
    default, used for JSON bodies) numeric strings are rejected as well; query
    string schemas pass ``strict=False`` so that ``"19.99"`` parses.
    """

    default_error_messages = {'negative': 'Price must be non-negative'}

    def __init__(self, *, strict: bool = True, **kwargs):
        self.strict = strict
        super().__init__(**kwargs)

    def _deserialize(self, value: Any, attr: Optional[str], data: Any, **kwargs) -> Decimal:
        if self.strict and isinstance(value, str):
            raise self.make_error('invalid')
        amount = super()._deserialize(value, attr, data, **kwargs)
        if amount < 0:
            raise self.make_error('negative')
        return amount


class QuantityField(fields.Integer):
    """Non-negative integer count."""

    default_error_messages = {'negative': 'Quantity must be non-negative'}

    def __init__(self, *, strict: bool = True, **kwargs):
        super().__init__(strict=strict, **kwargs)

    def _deserialize(self, value: Any, attr: Optional[str], data: Any, **kwargs) -> int:
        quantity = super()._deserialize(value, attr, data, **kwargs)
        if quantity < 0:
            raise self.make_error('negative')
        return quantity


# ============================================================================
# MAPPING FIELDS
# ============================================================================

class StringMapField(fields.Dict):
    """
    Dict field reporting element errors under the entry's own key.

    marshmallow nests mapping errors as ``{key: {"key": [...], "value": ...}}``;
    this field lifts them to ``{key: ...}`` so error paths read
    ``attributes.color.0`` instead of ``attributes.color.value.0``. Key
    violations are reported as schema-level messages of the entry.
    """

    def _deserialize(self, value: Any, attr: Optional[str], data: Any, **kwargs) -> Dict[str, Any]:
        try:
            return super()._deserialize(value, attr, data, **kwargs)
        except ValidationError as error:
            if not isinstance(error.messages, dict):
                raise
            raise ValidationError(
                {key: _lift_entry_errors(entry) for key, entry in error.messages.items()},
                valid_data=error.valid_data,
            ) from error


def _lift_entry_errors(entry: Dict[str, Any]) -> Union[List[Any], Dict[Any, Any]]:
    key_errors = entry.get('key')
    value_errors = entry.get('value')
    if key_errors is None:
        return value_errors
    if value_errors is None:
        return key_errors
    if isinstance(value_errors, dict):
        return {SCHEMA: key_errors, **value_errors}
    return [*key_errors, *value_errors]


class JsonValueField(fields.Raw):
    """Any JSON-compatible value: scalar, list of JSON values or string-keyed map."""

    default_error_messages = {'invalid': 'Not a valid JSON value.'}

    def _deserialize(self, value: Any, attr: Optional[str], data: Any, **kwargs) -> Any:
        if not is_json_value(value):
            raise self.make_error('invalid')
        return value


class JsonMapField(StringMapField):
    """Open key-value metadata map with JSON-compatible values."""

    def __init__(self, **kwargs):
        super().__init__(keys=fields.String(), values=JsonValueField(), **kwargs)


def is_json_value(value: Any) -> bool:
    if isinstance(value, float):
        return value == value and value not in (float('inf'), float('-inf'))
    if isinstance(value, JSON_SCALAR_TYPES):
        return True
    if isinstance(value, list):
        return all(is_json_value(item) for item in value)
    if isinstance(value, dict):
        return all(isinstance(k, str) and is_json_value(v) for k, v in value.items())
    return False


# ============================================================================
# FUNCTIONAL API
# ============================================================================

def validate_id(value: Any) -> str:
    """Return ``value`` if it is a UUID v4 string, else raise ValidationError."""
    return IdField().deserialize(value)


def validate_tenant_id(value: Any) -> str:
    return TenantIdField().deserialize(value)


def validate_email_address(value: Any) -> str:
    return EmailField().deserialize(value)


def validate_phone(value: Any) -> str:
    return PhoneField().deserialize(value)


def validate_sku(value: Any) -> str:
    return SkuField().deserialize(value)


def validate_price(value: Any, strict: bool = True) -> Decimal:
    """
    Parse a monetary amount.

    Args:
        value: Untyped input value
        strict: Reject numeric strings when True

    Returns:
        Decimal amount greater than or equal to zero

    Raises:
        ValidationError: If the value is not a non-negative number
    """
    return PriceField(strict=strict).deserialize(value)


def validate_quantity(value: Any, strict: bool = True) -> int:
    return QuantityField(strict=strict).deserialize(value)


__all__ = [
    'UUID_REGEX',
    'PHONE_REGEX',
    'SKU_REGEX',
    'PatternField',
    'IdField',
    'TenantIdField',
    'PhoneField',
    'SkuField',
    'EmailField',
    'PriceField',
    'QuantityField',
    'StringMapField',
    'JsonValueField',
    'JsonMapField',
    'is_json_value',
    'validate_id',
    'validate_tenant_id',
    'validate_email_address',
    'validate_phone',
    'validate_sku',
    'validate_price',
    'validate_quantity',
]
