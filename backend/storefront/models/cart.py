"""
Cart Models: CartItem (one line per tenant, user, product, flavor and size).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .catalog import Product, Flavor, Size


class CartItem(TimestampMixin, Base):
    """
    A line in a user's cart.

    Adding the same (product, flavor, size) again merges into this line.
    unit_price_cents is the price computed at the last write that touched
    the line; total_price_cents is always unit_price_cents * quantity.
    """

    __tablename__ = "cart_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    flavor_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("flavor.id"), nullable=False
    )
    size_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("size.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Relationships
    product: Mapped["Product"] = relationship()
    flavor: Mapped["Flavor"] = relationship()
    size: Mapped["Size"] = relationship()

    __table_args__ = (
        # One line per key; concurrent first inserts collide here
        UniqueConstraint(
            "tenant_id", "user_id", "product_id", "flavor_id", "size_id",
            name="uq_cart_item_line_key",
        ),
        Index("ix_cart_item_tenant_user", "tenant_id", "user_id"),
        CheckConstraint("quantity >= 1 AND quantity <= 10", name="ck_cart_item_quantity"),
    )

    def __repr__(self) -> str:
        return (
            f"<CartItem(id={self.id}, user_id={self.user_id}, product_id={self.product_id}, "
            f"flavor_id={self.flavor_id}, size_id={self.size_id}, qty={self.quantity})>"
        )
