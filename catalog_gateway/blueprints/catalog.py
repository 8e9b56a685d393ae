"""
Catalog Blueprint

Entity creation routes. Free-text fields are stripped of markup before the
body is validated; the validated model is forwarded to the catalog store.

Endpoints:
    POST /products: Create a product
    POST /orders: Create an order (product ids must be unique across items)
    POST /customers: Create a customer
"""

from flask import Blueprint, jsonify

from ..auth.decorators import require_authentication
from ..business import services
from ..business.models import Order
from ..business.validators import (
    CustomerValidator,
    OrderValidator,
    ProductValidator,
    validate_order_items,
)
from ..utils.decorators import (
    RequestContext,
    handle_service_errors,
    sanitize_input,
    validate_business_logic,
    validate_schema,
)

catalog_bp = Blueprint('catalog', __name__)

DUPLICATE_ITEMS_MESSAGE = "Duplicate products in order items"


def order_items_are_unique(order: Order) -> bool:
    return validate_order_items(order.items)


@catalog_bp.route('/products', methods=['POST'])
@require_authentication
@sanitize_input(['name', 'description'], config_key='PRODUCT_SANITIZE_FIELDS')
@validate_schema(ProductValidator)
@handle_service_errors('create_product')
def create_product(ctx: RequestContext):
    created = services.create_product(ctx.user.tenant_id, ctx.validated)
    return jsonify(created), 201


@catalog_bp.route('/orders', methods=['POST'])
@require_authentication
@sanitize_input(['notes'], config_key='ORDER_SANITIZE_FIELDS')
@validate_schema(OrderValidator)
@validate_business_logic(order_items_are_unique, DUPLICATE_ITEMS_MESSAGE)
@handle_service_errors('create_order')
def create_order(ctx: RequestContext):
    """
    Create an order.

    Structural violations of the order, its addresses and every item are
    reported together; the duplicate-product rule runs only once the order
    is structurally valid.
    """
    created = services.create_order(ctx.user.tenant_id, ctx.validated)
    return jsonify(created), 201


@catalog_bp.route('/customers', methods=['POST'])
@require_authentication
@sanitize_input(['first_name', 'last_name'], config_key='CUSTOMER_SANITIZE_FIELDS')
@validate_schema(CustomerValidator)
@handle_service_errors('create_customer')
def create_customer(ctx: RequestContext):
    created = services.create_customer(ctx.user.tenant_id, ctx.validated)
    return jsonify(created), 201
