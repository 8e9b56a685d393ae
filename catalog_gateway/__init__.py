"""
Catalog Gateway

Validation and query-normalization layer for a multi-tenant product
search and catalog service. Untrusted HTTP input is parsed into frozen,
typed models, checked against business rules and forwarded to the search,
recommendation and catalog store collaborators.

Package Components:
    utils.validators: Primitive validators (ids, email, phone, SKU, price, quantity)
    business.validators: Entity and query schemas plus business rules
    business.models: Typed pydantic result models
    business.exceptions: Error taxonomy and validation error formatting
    business.services: Collaborator contracts and forwarding
    utils.decorators: Request pipeline stages
    auth.decorators: Authentication context stage
    blueprints: HTTP routes
"""

__version__ = "1.0.0"

from .app import create_app

__all__ = ['__version__', 'create_app']
