"""
Collaborator Contracts and Forwarding Services

The catalog gateway validates requests and forwards the normalized result
to external collaborators. This module declares what those collaborators
must look like and how the routes reach them.

Collaborators:
    SearchBackend: Runs a normalized product search
    RecommendationBackend: Returns product recommendations
    CatalogStore: Persists validated products, orders and customers
    user loader: Returns the authenticated user (or None) for the current request

Collaborators are registered per application as a ``CatalogServices``
bundle in ``app.extensions['catalog_gateway']``. Any collaborator method
may be a coroutine function; calls are driven through Flask's
``ensure_sync``. Results are opaque to the gateway and returned to the
client as JSON.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

import structlog
from flask import Flask, current_app, g

from .exceptions import ExternalServiceError
from .models import Customer, Order, Product, RecommendationParams, SearchQuery

logger = structlog.get_logger("business.services")

EXTENSION_NAME = 'catalog_gateway'


# ============================================================================
# COLLABORATOR CONTRACTS
# ============================================================================

@runtime_checkable
class SearchBackend(Protocol):
    def search_products(
        self,
        tenant_id: str,
        query: Optional[str],
        filters: Dict[str, Any],
        sort: Optional[Dict[str, str]],
        page: int,
        page_size: int,
    ) -> Any:
        ...


@runtime_checkable
class RecommendationBackend(Protocol):
    def get_product_recommendations(self, tenant_id: str, product_id: str, limit: int) -> Any:
        ...


@runtime_checkable
class CatalogStore(Protocol):
    def create_product(self, tenant_id: str, product: Product) -> Any:
        ...

    def create_order(self, tenant_id: str, order: Order) -> Any:
        ...

    def create_customer(self, tenant_id: str, customer: Customer) -> Any:
        ...


def load_user_from_g() -> Any:
    """Default user loader: the authentication layer stores the user on ``g``."""
    return g.get('authenticated_user')


@dataclass(frozen=True)
class CatalogServices:
    """
    Collaborators used by the catalog routes.

    Attributes:
        search: Search backend, required by ``GET /search``
        recommendations: Recommendation backend
        store: Catalog store for entity creation routes
        user_loader: Callable returning the authenticated user of the request
    """

    search: Optional[SearchBackend] = None
    recommendations: Optional[RecommendationBackend] = None
    store: Optional[CatalogStore] = None
    user_loader: Callable[[], Any] = load_user_from_g

    def init_app(self, app: Flask) -> None:
        app.extensions[EXTENSION_NAME] = self
        logger.info(
            "Catalog services registered",
            search=type(self.search).__name__ if self.search else None,
            recommendations=type(self.recommendations).__name__ if self.recommendations else None,
            store=type(self.store).__name__ if self.store else None
        )


def get_catalog_services() -> CatalogServices:
    """Return the services of the current application (empty bundle if none registered)."""
    return current_app.extensions.get(EXTENSION_NAME) or CatalogServices()


def _require(collaborator: Any, service_name: str) -> Any:
    if collaborator is None:
        raise ExternalServiceError(
            message=f"{service_name} collaborator is not configured",
            service_name=service_name,
        )
    return collaborator


# ============================================================================
# FORWARDING SERVICES
# ============================================================================

def run_search(tenant_id: str, search_query: SearchQuery) -> Any:
    """
    Forward a validated search to the search backend.

    Only explicitly provided filters are passed on; ``sort`` is None when
    the backend default ordering applies.
    """
    backend = _require(get_catalog_services().search, 'search')
    sort = search_query.sort.model_dump(mode='json') if search_query.sort else None
    filters = search_query.filters.as_filters()

    logger.info(
        "Forwarding product search",
        tenant_id=tenant_id,
        filters=sorted(filters),
        sort=sort,
        page=search_query.page,
        page_size=search_query.page_size
    )
    return current_app.ensure_sync(backend.search_products)(
        tenant_id,
        search_query.query,
        filters,
        sort,
        search_query.page,
        search_query.page_size,
    )


def fetch_recommendations(tenant_id: str, params: RecommendationParams) -> Any:
    backend = _require(get_catalog_services().recommendations, 'recommendations')
    logger.info(
        "Forwarding recommendation request",
        tenant_id=tenant_id,
        product_id=params.product_id,
        limit=params.limit
    )
    return current_app.ensure_sync(backend.get_product_recommendations)(
        tenant_id,
        params.product_id,
        params.limit,
    )


def create_product(tenant_id: str, product: Product) -> Any:
    store = _require(get_catalog_services().store, 'store')
    logger.info("Creating product", tenant_id=tenant_id, sku=product.sku)
    return current_app.ensure_sync(store.create_product)(tenant_id, product)


def create_order(tenant_id: str, order: Order) -> Any:
    store = _require(get_catalog_services().store, 'store')
    logger.info("Creating order", tenant_id=tenant_id, item_count=len(order.items))
    return current_app.ensure_sync(store.create_order)(tenant_id, order)


def create_customer(tenant_id: str, customer: Customer) -> Any:
    store = _require(get_catalog_services().store, 'store')
    logger.info("Creating customer", tenant_id=tenant_id)
    return current_app.ensure_sync(store.create_customer)(tenant_id, customer)


__all__ = [
    'EXTENSION_NAME',
    'SearchBackend',
    'RecommendationBackend',
    'CatalogStore',
    'CatalogServices',
    'load_user_from_g',
    'get_catalog_services',
    'run_search',
    'fetch_recommendations',
    'create_product',
    'create_order',
    'create_customer',
]
