"""
Domain Services - application layer of the storefront core.

Structure:
    Caller (validated parameters, tenant/user identity)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from storefront.services.domain import CatalogService, CartService

    catalog = CatalogService(db)
    page = catalog.list_products(tenant_id, filters)
"""

from .catalog_service import CatalogService
from .cart_service import CartService

__all__ = [
    "CatalogService",
    "CartService",
]
