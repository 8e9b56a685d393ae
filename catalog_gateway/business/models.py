"""
Typed Catalog Models

Immutable pydantic models produced by the marshmallow schemas once a request
passes structural validation. Every model is frozen: a validated value is
built fresh per request, handed to the next pipeline stage and discarded.

Model Categories:
    Search Models:
        SearchFilters: Optional filter subset, remembers which keys were provided
        SortOption: Sort field and direction
        SearchQuery: Free text, filters, sort and pagination
        RecommendationParams: Product id and result limit

    Entity Models:
        Product, Address, OrderItem, Order, Customer

    Error Models:
        FieldViolation: One violation with its dotted field path
        ValidationErrorReport: Client-visible error body

Open metadata maps are typed as ``pydantic.JsonValue`` so arbitrary payloads
stay JSON-compatible without falling back to ``Any``.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, JsonValue


Metadata = Dict[str, JsonValue]


# ============================================================================
# BASE CLASSES
# ============================================================================

class BaseCatalogModel(BaseModel):
    """
    Base class for catalog value objects.

    Instances are frozen and reject unknown attributes; schemas strip unknown
    wire keys before a model is ever built.
    """

    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
        str_strip_whitespace=False,
    )


# ============================================================================
# ENUMERATIONS
# ============================================================================

class SortField(str, Enum):
    """Fields the search backend can order results by."""
    PRICE = "price"
    CREATED_AT = "created_at"
    NAME = "name"
    POPULARITY = "popularity"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PaymentMethod(str, Enum):
    """Accepted payment methods for orders."""
    CREDIT_CARD = "CREDIT_CARD"
    PAYPAL = "PAYPAL"
    BANK_TRANSFER = "BANK_TRANSFER"


class ShippingMethod(str, Enum):
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"
    OVERNIGHT = "OVERNIGHT"


# ============================================================================
# SEARCH MODELS
# ============================================================================

class SearchFilters(BaseCatalogModel):
    """
    Structured search filters.

    Only keys supplied by the client count as set; ``as_filters`` drops the
    rest so the search backend can tell "not filtered" from "filtered by an
    empty value".
    """

    categories: Optional[List[str]] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    attributes: Optional[Dict[str, List[str]]] = None
    in_stock: Optional[bool] = None

    def as_filters(self) -> Dict[str, Any]:
        """Return the explicitly provided filters only."""
        return self.model_dump(exclude_unset=True)


class SortOption(BaseCatalogModel):
    field: SortField
    direction: SortDirection


class SearchQuery(BaseCatalogModel):
    """
    Normalized search request handed to the search collaborator.

    Attributes:
        query: Free-text search term
        filters: Provided filter subset
        sort: Ordering, absent when the backend default applies
        page: 1-based page number
        page_size: Results per page, between 1 and 100
    """

    query: Optional[str] = None
    filters: SearchFilters = Field(default_factory=SearchFilters)
    sort: Optional[SortOption] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class RecommendationParams(BaseCatalogModel):
    product_id: str
    limit: int = Field(default=5, ge=1, le=20)


# ============================================================================
# ENTITY MODELS
# ============================================================================

class Product(BaseCatalogModel):
    """Catalog product submitted for creation."""

    name: str
    description: Optional[str] = None
    sku: str
    price: Decimal
    stock_quantity: int
    categories: List[str]
    attributes: Optional[Dict[str, List[str]]] = None
    images: Optional[List[str]] = None
    is_active: bool = True
    metadata: Optional[Metadata] = None


class Address(BaseCatalogModel):
    street: str
    city: str
    state: str
    postal_code: str
    country: str
    phone: str


class OrderItem(BaseCatalogModel):
    product_id: str
    quantity: int
    unit_price: Decimal
    metadata: Optional[Metadata] = None


class Order(BaseCatalogModel):
    """
    Customer order with billing and shipping details.

    Product id uniqueness across ``items`` is a business rule checked by
    ``validate_order_items``, not by the model itself.
    """

    customer_id: str
    billing_address: Address
    shipping_address: Address
    items: List[OrderItem]
    payment_method: PaymentMethod
    shipping_method: ShippingMethod
    notes: Optional[str] = None
    metadata: Optional[Metadata] = None


class Customer(BaseCatalogModel):
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    default_address: Optional[Address] = None
    metadata: Optional[Metadata] = None


# ============================================================================
# ERROR MODELS
# ============================================================================

class FieldViolation(BaseCatalogModel):
    """Single violation; ``field`` is omitted for business-rule failures."""

    field: Optional[str] = None
    message: str


class ValidationErrorReport(BaseCatalogModel):
    message: str
    errors: List[FieldViolation] = Field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        """Serialize to the client-visible error body."""
        return self.model_dump(mode='json', exclude_none=True)


__all__ = [
    'Metadata',
    'BaseCatalogModel',
    'SortField',
    'SortDirection',
    'PaymentMethod',
    'ShippingMethod',
    'SearchFilters',
    'SortOption',
    'SearchQuery',
    'RecommendationParams',
    'Product',
    'Address',
    'OrderItem',
    'Order',
    'Customer',
    'FieldViolation',
    'ValidationErrorReport',
]
