"""
Repository Pattern implementation.
Centralizes tenant-scoped data access for the catalog store and cart.

Usage:
    from storefront.repositories import ProductRepository, ProductFilters

    repo = ProductRepository(db)
    products = repo.find_page(tenant_id=1, filters=ProductFilters(category_ids={5}), ...)
    product = repo.find_for_details(tenant_id=1, product_id=123)
"""

from .base import BaseRepository, RepositoryFilters
from .product import ProductRepository, ProductFilters, product_ordering
from .cart import CartRepository, CartFilters, CartLineKey

__all__ = [
    # Base
    "BaseRepository",
    "RepositoryFilters",
    # Product
    "ProductRepository",
    "ProductFilters",
    "product_ordering",
    # Cart
    "CartRepository",
    "CartFilters",
    "CartLineKey",
]
