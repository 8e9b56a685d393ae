"""
Business Logic Package

Typed models, validation schemas, business rules, error taxonomy and
collaborator forwarding for the catalog gateway.
"""

from .exceptions import (
    BaseBusinessException,
    BusinessRuleViolationError,
    DataValidationError,
    ExternalServiceError,
    format_validation_error,
)
from .models import (
    Address,
    Customer,
    Order,
    OrderItem,
    Product,
    RecommendationParams,
    SearchFilters,
    SearchQuery,
    SortOption,
    ValidationErrorReport,
)
from .services import CatalogServices
from .validators import (
    AddressValidator,
    CustomerValidator,
    OrderItemValidator,
    OrderValidator,
    PaginationValidator,
    ProductValidator,
    RecommendationParamsValidator,
    SearchFiltersValidator,
    SearchQueryValidator,
    SortOptionValidator,
    validate_order_items,
    validate_price_range,
)

__all__ = [
    'BaseBusinessException',
    'BusinessRuleViolationError',
    'DataValidationError',
    'ExternalServiceError',
    'format_validation_error',
    'Address',
    'Customer',
    'Order',
    'OrderItem',
    'Product',
    'RecommendationParams',
    'SearchFilters',
    'SearchQuery',
    'SortOption',
    'ValidationErrorReport',
    'CatalogServices',
    'AddressValidator',
    'CustomerValidator',
    'OrderItemValidator',
    'OrderValidator',
    'PaginationValidator',
    'ProductValidator',
    'RecommendationParamsValidator',
    'SearchFiltersValidator',
    'SearchQueryValidator',
    'SortOptionValidator',
    'validate_order_items',
    'validate_price_range',
]
