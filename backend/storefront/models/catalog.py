"""
Catalog Models: Confectioner, Category, Flavor, Size, Product,
ProductFlavor, ProductSize, Review.

Every table carries tenant_id; catalog queries always filter on it.
Money is stored in integer cents.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, BigIntPK

if TYPE_CHECKING:
    from .tenant import Tenant


class Confectioner(AuditMixin, Base):
    """
    Seller that owns products.
    average_rating and total_products_sold are aggregates maintained outside this core.
    """

    __tablename__ = "confectioner"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    photo: Mapped[Optional[str]] = mapped_column(Text)
    average_rating: Mapped[float] = mapped_column(Numeric(3, 2, asdecimal=False), default=0, nullable=False)
    total_products_sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    products: Mapped[list["Product"]] = relationship(back_populates="confectioner")


class Category(AuditMixin, Base):
    """Grouping label for products; a filter dimension and a relatedness signal."""

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)

    products: Mapped[list["Product"]] = relationship(back_populates="category")

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_category_tenant_name"),
    )


class Flavor(AuditMixin, Base):
    """Catalog-wide flavor vocabulary entry."""

    __tablename__ = "flavor"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)


class Size(AuditMixin, Base):
    """Catalog-wide size vocabulary entry with its price modifier."""

    __tablename__ = "size"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price_modifier_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Product(AuditMixin, Base):
    """
    Sellable item.

    Three independent flags govern visibility:
    - is_active: soft delete (AuditMixin)
    - is_published: the catalog "active" switch
    - is_available: temporarily out of stock / not taking orders

    ingredients and image_gallery hold JSON arrays, nutritional_info a JSON object.
    """

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    confectioner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("confectioner.id"), nullable=False, index=True
    )
    category_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("category.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    ingredients: Mapped[Optional[str]] = mapped_column(Text)  # JSON array as string
    nutritional_info: Mapped[Optional[str]] = mapped_column(Text)  # JSON object as string
    base_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    promotional_price_cents: Mapped[Optional[int]] = mapped_column(Integer)
    main_image: Mapped[Optional[str]] = mapped_column(Text)
    image_gallery: Mapped[Optional[str]] = mapped_column(Text)  # JSON array as string
    average_rating: Mapped[float] = mapped_column(Numeric(3, 2, asdecimal=False), default=0, nullable=False)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    preparation_time: Mapped[Optional[str]] = mapped_column(Text)
    is_published: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    # Relationships
    tenant: Mapped["Tenant"] = relationship(back_populates="products")
    confectioner: Mapped["Confectioner"] = relationship(back_populates="products")
    category: Mapped["Category"] = relationship(back_populates="products")
    flavors: Mapped[list["ProductFlavor"]] = relationship(
        back_populates="product", cascade="all, delete-orphan"
    )
    sizes: Mapped[list["ProductSize"]] = relationship(
        back_populates="product", cascade="all, delete-orphan"
    )
    reviews: Mapped[list["Review"]] = relationship(back_populates="product")

    __table_args__ = (
        # Listing always starts from tenant + soft delete + publication
        Index("ix_product_tenant_visible", "tenant_id", "is_active", "is_published"),
        CheckConstraint("base_price_cents >= 0", name="ck_product_base_price"),
    )

    @property
    def effective_price_cents(self) -> int:
        """Promotional price when set, otherwise base price."""
        if self.promotional_price_cents is not None:
            return self.promotional_price_cents
        return self.base_price_cents

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', tenant_id={self.tenant_id})>"


class ProductFlavor(Base):
    """Per-product flavor offering. is_available withdraws it for this product only."""

    __tablename__ = "product_flavor"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    flavor_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("flavor.id"), nullable=False, index=True
    )
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    product: Mapped["Product"] = relationship(back_populates="flavors")
    flavor: Mapped["Flavor"] = relationship()

    __table_args__ = (
        UniqueConstraint("product_id", "flavor_id", name="uq_product_flavor"),
    )


class ProductSize(Base):
    """Per-product size offering. is_available withdraws it for this product only."""

    __tablename__ = "product_size"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    size_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("size.id"), nullable=False, index=True
    )
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    product: Mapped["Product"] = relationship(back_populates="sizes")
    size: Mapped["Size"] = relationship()

    __table_args__ = (
        UniqueConstraint("product_id", "size_id", name="uq_product_size"),
    )


class Review(AuditMixin, Base):
    """Customer rating and comment on a product. Read-only in this core."""

    __tablename__ = "review"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text)

    product: Mapped["Product"] = relationship(back_populates="reviews")

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating"),
    )
