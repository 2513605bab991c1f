"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class, TimestampMixin and AuditMixin (soft delete)
- tenant: Tenant
- catalog: Confectioner, Category, Flavor, Size, Product, ProductFlavor, ProductSize, Review
- cart: CartItem
"""

# Base classes
from .base import Base, AuditMixin, TimestampMixin

# Tenant isolation boundary
from .tenant import Tenant

# Catalog store
from .catalog import (
    Confectioner,
    Category,
    Flavor,
    Size,
    Product,
    ProductFlavor,
    ProductSize,
    Review,
)

# Cart lines
from .cart import CartItem

__all__ = [
    "Base",
    "AuditMixin",
    "TimestampMixin",
    "Tenant",
    "Confectioner",
    "Category",
    "Flavor",
    "Size",
    "Product",
    "ProductFlavor",
    "ProductSize",
    "Review",
    "CartItem",
]
