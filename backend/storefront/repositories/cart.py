"""
Cart Repository - Data access for cart lines.
"""

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import Select, select
from sqlalchemy.orm import selectinload

from storefront.models import CartItem
from .base import BaseRepository, RepositoryFilters


@dataclass(frozen=True)
class CartLineKey:
    """Natural key of a cart line within a tenant. At most one line exists per key."""

    user_id: int
    product_id: int
    flavor_id: int
    size_id: int


@dataclass
class CartFilters(RepositoryFilters):
    """Filters specific to cart lines."""

    user_id: int | None = None


class CartRepository(BaseRepository[CartItem]):
    """Repository for CartItem entities."""

    @property
    def model(self) -> type[CartItem]:
        return CartItem

    def _base_query(self, tenant_id: int) -> Select:
        return select(CartItem).where(CartItem.tenant_id == tenant_id)

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if not isinstance(filters, CartFilters):
            filters = CartFilters(**filters.__dict__)

        if filters.user_id is not None:
            query = query.where(CartItem.user_id == filters.user_id)

        return query

    def find_line_for_update(self, tenant_id: int, key: CartLineKey) -> CartItem | None:
        """
        Existing line for the key, row-locked until the transaction ends.
        A concurrent writer on the same key waits here instead of reading
        a quantity that is about to change.
        """
        query = (
            select(CartItem)
            .where(
                CartItem.tenant_id == tenant_id,
                CartItem.user_id == key.user_id,
                CartItem.product_id == key.product_id,
                CartItem.flavor_id == key.flavor_id,
                CartItem.size_id == key.size_id,
            )
            .with_for_update()
        )
        return self._db.scalar(query)

    def find_for_user(self, tenant_id: int, user_id: int) -> Sequence[CartItem]:
        """All lines in a user's cart, oldest first, with products loaded."""
        return self.find_all(
            tenant_id,
            CartFilters(user_id=user_id),
            order_by=(CartItem.id.asc(),),
            options=(selectinload(CartItem.product),),
        )
