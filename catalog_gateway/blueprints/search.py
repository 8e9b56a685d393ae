"""
Search Blueprint

Product search and recommendation routes. Each route is a fixed pipeline:
authentication, structural validation of the query string (and route
params), optional business rules, then forwarding to the collaborator.

Endpoints:
    GET /search: Filtered, sorted and paginated product search
    GET /products/<productId>/recommendations: Recommendations for a product
"""

from flask import Blueprint, jsonify

from ..auth.decorators import require_authentication
from ..business import services
from ..business.models import SearchQuery
from ..business.validators import (
    RecommendationParamsValidator,
    SearchQueryValidator,
    validate_price_range,
)
from ..utils.decorators import (
    RequestContext,
    handle_service_errors,
    validate_business_logic,
    validate_schema,
)

search_bp = Blueprint('search', __name__)

PRICE_RANGE_MESSAGE = "Minimum price cannot be greater than maximum price"


def search_price_range_is_valid(search_query: SearchQuery) -> bool:
    return validate_price_range(search_query.filters.min_price, search_query.filters.max_price)


@search_bp.route('/search', methods=['GET'])
@require_authentication
@validate_schema(SearchQueryValidator, location='query')
@validate_business_logic(search_price_range_is_valid, PRICE_RANGE_MESSAGE)
@handle_service_errors('search_products')
def search_products(ctx: RequestContext):
    """
    Search products for the caller's tenant.

    Query Parameters:
        query: Free-text term
        categories: Category id, repeatable
        minPrice / maxPrice: Price bounds
        attributes[<name>]: Attribute value, repeatable
        inStock: Only products in stock
        field / direction: Sort, applied only when both are given
        page / pageSize: Pagination (defaults 1 and 20, pageSize at most 100)

    Returns:
        Search results as produced by the search backend
    """
    results = services.run_search(ctx.user.tenant_id, ctx.validated)
    return jsonify(results)


@search_bp.route('/products/<productId>/recommendations', methods=['GET'])
@require_authentication
@validate_schema(RecommendationParamsValidator, location=('query', 'params'))
@handle_service_errors('get_recommendations')
def get_recommendations(ctx: RequestContext):
    """Recommendations for a product; ``limit`` between 1 and 20, default 5."""
    recommendations = services.fetch_recommendations(ctx.user.tenant_id, ctx.validated)
    return jsonify(recommendations)
