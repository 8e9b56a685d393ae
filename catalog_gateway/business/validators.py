"""
Catalog Validation Schemas and Business Rules

marshmallow schemas turning untrusted request data into the frozen models of
``catalog_gateway.business.models``. Every schema excludes unknown keys,
checks every declared field in one pass and collects all violations; only
fully valid input reaches ``post_load`` and becomes a typed model.

Validation Categories:
    Entity Validators:
        ProductValidator: Catalog product creation
        AddressValidator: Billing, shipping and default addresses
        OrderItemValidator: Single order line
        OrderValidator: Order with nested addresses and items
        CustomerValidator: Customer profile

    Query Validators:
        PaginationValidator: page / pageSize with defaults
        SortOptionValidator: Sort field and direction
        SearchFiltersValidator: Optional structured filters
        SearchQueryValidator: Pagination, free text, filters and flat sort keys
        RecommendationParamsValidator: Product id and result limit

    Business Rule Validators:
        validate_order_items: Product ids must be unique across order items
        validate_price_range: Minimum price must not exceed maximum price

Business rules are never run by the schemas themselves. Routes compose them
explicitly after structural validation through ``validate_business_logic``.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from marshmallow import (
    EXCLUDE, Schema, fields, post_load, pre_load, validate,
    ValidationError as MarshmallowValidationError
)

import structlog

from .exceptions import BusinessRuleViolationError
from .models import (
    Address, Customer, Order, OrderItem, PaymentMethod, Product,
    RecommendationParams, SearchFilters, SearchQuery, ShippingMethod,
    SortDirection, SortField, SortOption
)
from ..utils.validators import (
    EmailField, IdField, JsonMapField, PhoneField, PriceField, QuantityField,
    SkuField, StringMapField
)

logger = structlog.get_logger("business.validators")

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
MAX_RECOMMENDATIONS = 20
DEFAULT_RECOMMENDATIONS = 5


# ============================================================================
# BASE CLASSES
# ============================================================================

class BaseCatalogValidator(Schema):
    """
    Base schema for all catalog validators.

    Unknown keys are dropped and declared field order is kept so error
    reports list violations in declaration order.
    """

    class Meta:
        unknown = EXCLUDE
        ordered = True

    def handle_error(self, error: MarshmallowValidationError, data: Any, *, many: bool, **kwargs):
        logger.debug(
            "Schema validation failed",
            schema=type(self).__name__,
            error_fields=list(error.messages) if isinstance(error.messages, dict) else None
        )


# ============================================================================
# ENTITY VALIDATORS
# ============================================================================

class ProductValidator(BaseCatalogValidator):
    """
    Product catalog entry.

    ``attributes`` maps a non-empty attribute name to a non-empty list of
    non-empty values; violations report as ``attributes.<name>.<index>``.
    """

    name = fields.Str(required=True, validate=[
        validate.Length(min=1, error='Name is required'),
        validate.Length(max=200, error='Name is too long'),
    ])
    description = fields.Str(validate=validate.Length(max=2000, error='Description is too long'))
    sku = SkuField(required=True)
    price = PriceField(required=True)
    stock_quantity = QuantityField(required=True)
    categories = fields.List(
        IdField(),
        required=True,
        validate=validate.Length(min=1, error='At least one category is required')
    )
    attributes = StringMapField(
        keys=fields.Str(validate=validate.Length(min=1, error='Attribute name is required')),
        values=fields.List(
            fields.Str(validate=validate.Length(min=1, error='Attribute value is required')),
            validate=validate.Length(min=1, error='At least one attribute value is required')
        )
    )
    images = fields.List(fields.Url(error_messages={'invalid': 'Invalid image URL'}))
    is_active = fields.Bool(load_default=True)
    metadata = JsonMapField()

    @post_load
    def make_model(self, data: Dict[str, Any], **kwargs) -> Product:
        return Product.model_validate(data)


class AddressValidator(BaseCatalogValidator):
    street = fields.Str(required=True, validate=validate.Length(min=1, error='Street is required'))
    city = fields.Str(required=True, validate=validate.Length(min=1, error='City is required'))
    state = fields.Str(required=True, validate=validate.Length(min=1, error='State is required'))
    postal_code = fields.Str(required=True, validate=validate.Length(min=1, error='Postal code is required'))
    country = fields.Str(required=True, validate=[
        validate.Length(min=2, error='Country is required'),
        validate.Length(max=2, error='Use ISO country code'),
    ])
    phone = PhoneField(required=True)

    @post_load
    def make_model(self, data: Dict[str, Any], **kwargs) -> Address:
        return Address.model_validate(data)


class OrderItemValidator(BaseCatalogValidator):
    product_id = IdField(required=True)
    quantity = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error='Quantity must be positive')
    )
    unit_price = PriceField(required=True)
    metadata = JsonMapField()

    @post_load
    def make_model(self, data: Dict[str, Any], **kwargs) -> OrderItem:
        return OrderItem.model_validate(data)


class OrderValidator(BaseCatalogValidator):
    """
    Order with nested addresses and line items.

    Element violations are reported with their index, e.g.
    ``items.2.quantity``. Duplicate product ids are not a structural error;
    see ``validate_order_items``.
    """

    customer_id = IdField(required=True)
    billing_address = fields.Nested(AddressValidator, required=True)
    shipping_address = fields.Nested(AddressValidator, required=True)
    items = fields.List(
        fields.Nested(OrderItemValidator),
        required=True,
        validate=validate.Length(min=1, error='Order must contain at least one item')
    )
    payment_method = fields.Enum(PaymentMethod, by_value=True, required=True)
    shipping_method = fields.Enum(ShippingMethod, by_value=True, required=True)
    notes = fields.Str(validate=validate.Length(max=1000, error='Notes are too long'))
    metadata = JsonMapField()

    @post_load
    def make_model(self, data: Dict[str, Any], **kwargs) -> Order:
        return Order.model_validate(data)


class CustomerValidator(BaseCatalogValidator):
    email = EmailField(required=True)
    first_name = fields.Str(required=True, validate=validate.Length(min=1, error='First name is required'))
    last_name = fields.Str(required=True, validate=validate.Length(min=1, error='Last name is required'))
    phone = PhoneField()
    default_address = fields.Nested(AddressValidator)
    metadata = JsonMapField()

    @post_load
    def make_model(self, data: Dict[str, Any], **kwargs) -> Customer:
        return Customer.model_validate(data)


# ============================================================================
# QUERY VALIDATORS
# ============================================================================

class PaginationValidator(BaseCatalogValidator):
    """
    Page number and page size, both defaulted.

    Loads to ``{'page': int, 'page_size': int}``. Query strings carry numbers
    as text, so integers are parsed non-strictly.
    """

    page = fields.Int(
        load_default=1,
        validate=validate.Range(min=1, error='Page must be a positive integer')
    )
    page_size = fields.Int(
        data_key='pageSize',
        load_default=DEFAULT_PAGE_SIZE,
        validate=validate.Range(
            min=1,
            max=MAX_PAGE_SIZE,
            error='Page size must be between {min} and {max}'
        )
    )


class SortOptionValidator(BaseCatalogValidator):
    field = fields.Enum(SortField, by_value=True, required=True)
    direction = fields.Enum(SortDirection, by_value=True, required=True)

    @post_load
    def make_model(self, data: Dict[str, Any], **kwargs) -> SortOption:
        return SortOption.model_validate(data)


class SearchFiltersValidator(BaseCatalogValidator):
    """
    Structured search filters.

    No filter has a default: the loaded data holds exactly the keys the
    client supplied, which the resulting ``SearchFilters`` records as set.
    A single query-string value for a list filter (``?categories=<id>`` or
    ``?attributes[color]=red``) is accepted as a one-element list.
    """

    categories = fields.List(IdField())
    min_price = PriceField(data_key='minPrice', strict=False)
    max_price = PriceField(data_key='maxPrice', strict=False)
    attributes = StringMapField(keys=fields.Str(), values=fields.List(fields.Str()))
    in_stock = fields.Bool(data_key='inStock')

    @pre_load
    def wrap_list_filters(self, data: Any, **kwargs) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        if isinstance(data.get('categories'), str):
            data['categories'] = [data['categories']]
        attributes = data.get('attributes')
        if isinstance(attributes, Mapping):
            data['attributes'] = {
                name: [values] if isinstance(values, str) else values
                for name, values in attributes.items()
            }
        return data

    @post_load
    def make_model(self, data: Dict[str, Any], **kwargs) -> SearchFilters:
        return SearchFilters.model_validate(data)


SEARCH_FILTER_FIELDS = tuple(SearchFiltersValidator._declared_fields)


class SearchQueryValidator(PaginationValidator, SearchFiltersValidator):
    """
    Full search request as sent in the query string.

    Combines pagination, the free-text ``query``, every search filter and the
    flat ``field`` / ``direction`` sort keys. ``post_load`` assembles a
    ``SearchQuery``: a sort is attached only when both sort keys are present,
    otherwise the backend default ordering applies.

    Example:
        query = SearchQueryValidator().load({'query': 'lamp', 'maxPrice': '50', 'field': 'price'})
        assert query.sort is None
        assert query.filters.as_filters() == {'max_price': Decimal('50')}
    """

    query = fields.Str()
    field = fields.Enum(SortField, by_value=True)
    direction = fields.Enum(SortDirection, by_value=True)

    @post_load
    def make_model(self, data: Dict[str, Any], **kwargs) -> SearchQuery:
        filters = {name: data[name] for name in SEARCH_FILTER_FIELDS if name in data}
        sort_field = data.get('field')
        direction = data.get('direction')
        sort = None
        if sort_field is not None and direction is not None:
            sort = SortOption(field=sort_field, direction=direction)

        return SearchQuery(
            query=data.get('query'),
            filters=SearchFilters.model_validate(filters),
            sort=sort,
            page=data['page'],
            page_size=data['page_size'],
        )


class RecommendationParamsValidator(BaseCatalogValidator):
    product_id = IdField(
        data_key='productId',
        required=True,
        error_messages={'format': 'Invalid product ID'}
    )
    limit = fields.Int(
        load_default=DEFAULT_RECOMMENDATIONS,
        validate=validate.Range(
            min=1,
            max=MAX_RECOMMENDATIONS,
            error='Limit must be between {min} and {max}'
        )
    )

    @post_load
    def make_model(self, data: Dict[str, Any], **kwargs) -> RecommendationParams:
        return RecommendationParams.model_validate(data)


# ============================================================================
# BUSINESS RULE VALIDATORS
# ============================================================================

def _product_id(item: Any) -> Any:
    if isinstance(item, Mapping):
        return item.get('product_id')
    return item.product_id


def validate_order_items(items: Iterable[Any]) -> bool:
    """
    Ensure no product appears on more than one order line.

    Args:
        items: ``OrderItem`` models or raw item mappings

    Returns:
        True when every product id is distinct

    Raises:
        BusinessRuleViolationError: If a product id is repeated
    """
    product_ids = [_product_id(item) for item in items]
    if len(set(product_ids)) != len(product_ids):
        raise BusinessRuleViolationError(
            message="Duplicate products in order items",
            error_code="DUPLICATE_ORDER_ITEMS",
            rule_name="order_items_unique",
        )
    return True


def validate_price_range(
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None
) -> bool:
    """
    Ensure a price range is not inverted.

    Either bound may be absent, in which case the range is accepted.

    Raises:
        BusinessRuleViolationError: If both bounds are given and min exceeds max
    """
    if min_price is not None and max_price is not None and min_price > max_price:
        raise BusinessRuleViolationError(
            message="Minimum price cannot be greater than maximum price",
            error_code="INVERTED_PRICE_RANGE",
            rule_name="price_range",
        )
    return True


__all__ = [
    'BaseCatalogValidator',
    'ProductValidator',
    'AddressValidator',
    'OrderItemValidator',
    'OrderValidator',
    'CustomerValidator',
    'PaginationValidator',
    'SortOptionValidator',
    'SearchFiltersValidator',
    'SearchQueryValidator',
    'RecommendationParamsValidator',
    'SEARCH_FILTER_FIELDS',
    'validate_order_items',
    'validate_price_range',
]
