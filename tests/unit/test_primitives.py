"""
Primitive validator tests.

Covers the functional API of ``catalog_gateway.utils.validators`` (ids,
email, phone, SKU, price, quantity) and the JSON value check used by
metadata maps. Every rejection is checked for its exact reason since the
reasons are client-visible.
"""

from decimal import Decimal

import pytest
from marshmallow import ValidationError as MarshmallowValidationError

import structlog

from catalog_gateway.utils.validators import (
    is_json_value,
    validate_email_address,
    validate_id,
    validate_phone,
    validate_price,
    validate_quantity,
    validate_sku,
    validate_tenant_id,
)

logger = structlog.get_logger("tests.unit.test_primitives")


def _reason(excinfo) -> str:
    return excinfo.value.messages[0]


class TestIdValidation:
    """UUID v4 identifiers: 8-4-4-4-12 hex, version nibble 4, variant 8/9/a/b."""

    @pytest.mark.parametrize('value', [
        '3f2b8c1e-4a5d-4e6f-9a7b-1c2d3e4f5a6b',
        '11111111-2222-4333-8444-555555555555',
        'aaaaaaaa-bbbb-4ccc-bddd-eeeeeeeeeeee',
        'AAAAAAAA-BBBB-4CCC-ADDD-EEEEEEEEEEEE',
    ])
    def test_accepts_uuid_v4(self, value):
        assert validate_id(value) == value

    @pytest.mark.parametrize('value', [
        '3f2b8c1e-4a5d-1e6f-9a7b-1c2d3e4f5a6b',   # version 1
        '3f2b8c1e-4a5d-4e6f-ca7b-1c2d3e4f5a6b',   # variant c
        '3f2b8c1-4a5d-4e6f-9a7b-1c2d3e4f5a6b',    # short first group
        '3f2b8c1e-4a5d-4e6f-9a7b-1c2d3e4f5a6b0',  # long last group
        '3f2b8c1e4a5d4e6f9a7b1c2d3e4f5a6b',       # no dashes
        'g f2b8c1e-4a5d-4e6f-9a7b-1c2d3e4f5a6',   # non-hex
        '',
    ])
    def test_rejects_malformed_identifiers(self, value):
        with pytest.raises(MarshmallowValidationError) as excinfo:
            validate_id(value)
        assert _reason(excinfo) == 'Invalid UUID format'

    def test_rejects_non_string(self):
        with pytest.raises(MarshmallowValidationError) as excinfo:
            validate_id(12345)
        assert _reason(excinfo) == 'Not a valid string.'

    def test_tenant_id_reason(self):
        with pytest.raises(MarshmallowValidationError) as excinfo:
            validate_tenant_id('tenant-1')
        assert _reason(excinfo) == 'Invalid tenant ID format'


class TestContactValidation:

    def test_email_accepted_and_domain_normalized(self):
        assert validate_email_address('Jane.Doe@ACME-Mail.com') == 'Jane.Doe@acme-mail.com'

    @pytest.mark.parametrize('value', ['jane.doe', 'jane@', '@acme-mail.com', 'jane doe@acme-mail.com'])
    def test_email_rejected(self, value):
        with pytest.raises(MarshmallowValidationError) as excinfo:
            validate_email_address(value)
        assert _reason(excinfo) == 'Invalid email format'

    @pytest.mark.parametrize('value', ['+14155552671', '14155552671', '12', '+442079460000'])
    def test_phone_accepted(self, value):
        assert validate_phone(value) == value

    @pytest.mark.parametrize('value', ['+1', '0123456', '+0123456', '+1 415 555 2671', '1234567890123456'])
    def test_phone_rejected(self, value):
        with pytest.raises(MarshmallowValidationError) as excinfo:
            validate_phone(value)
        assert _reason(excinfo) == 'Invalid phone number format'


class TestSkuValidation:

    @pytest.mark.parametrize('value', ['AB12', 'LAMP2024', 'A' * 16])
    def test_accepted(self, value):
        assert validate_sku(value) == value

    @pytest.mark.parametrize('value', ['ab12', 'A', 'ABC', 'A' * 17, 'AB-12'])
    def test_rejected(self, value):
        with pytest.raises(MarshmallowValidationError) as excinfo:
            validate_sku(value)
        assert _reason(excinfo) == 'Invalid SKU format'


class TestNumericValidation:
    """Prices parse to Decimal; quantities are integers; both must be non-negative."""

    @pytest.mark.parametrize('value, expected', [
        (0, Decimal('0')),
        (10.5, Decimal('10.5')),
        (199, Decimal('199')),
    ])
    def test_price_accepted(self, value, expected):
        assert validate_price(value) == expected

    def test_negative_price_rejected(self):
        with pytest.raises(MarshmallowValidationError) as excinfo:
            validate_price(-0.01)
        assert _reason(excinfo) == 'Price must be non-negative'

    @pytest.mark.parametrize('value', [True, '10.5', None, float('nan'), float('inf'), [1]])
    def test_non_numeric_price_rejected(self, value):
        with pytest.raises(MarshmallowValidationError):
            validate_price(value)

    def test_numeric_string_price_accepted_when_not_strict(self):
        assert validate_price('10.5', strict=False) == Decimal('10.5')

    @pytest.mark.parametrize('value', [0, 1, 250])
    def test_quantity_accepted(self, value):
        assert validate_quantity(value) == value

    def test_negative_quantity_rejected(self):
        with pytest.raises(MarshmallowValidationError) as excinfo:
            validate_quantity(-1)
        assert _reason(excinfo) == 'Quantity must be non-negative'

    @pytest.mark.parametrize('value', [1.5, '3', True])
    def test_non_integer_quantity_rejected(self, value):
        with pytest.raises(MarshmallowValidationError) as excinfo:
            validate_quantity(value)
        assert _reason(excinfo) == 'Not a valid integer.'


class TestJsonValues:

    @pytest.mark.parametrize('value', [
        None, True, 3, 2.5, 'text',
        [1, 'two', None],
        {'nested': {'list': [1, {'deep': False}]}},
    ])
    def test_json_values_accepted(self, value):
        assert is_json_value(value)

    @pytest.mark.parametrize('value', [
        {1, 2},
        (1, 2),
        {1: 'non-string key'},
        float('nan'),
        [float('inf')],
        Decimal('1.5'),
    ])
    def test_non_json_values_rejected(self, value):
        assert not is_json_value(value)
