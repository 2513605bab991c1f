"""
Cart Service - merge-or-insert of cart lines with a per-line quantity ceiling.

Usage:
    from storefront.services.domain import CartService

    service = CartService(db)
    line = service.add_to_cart(tenant_id, user_id, product_id, flavor_id, size_id, quantity=3)

Concurrency:
    Each add runs as one transaction. An existing line is read with
    SELECT ... FOR UPDATE, so concurrent merges into the same line are
    serialized and none of their increments is lost. Two callers that both
    find no line race on the INSERT; the unique constraint on the line key
    lets exactly one win, and the loser rolls back and replays the whole
    unit of work, this time merging into the winner's line.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.config.constants import CartLimits, ErrorCode
from shared.config.logging import cart_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit, translate_store_errors
from shared.utils.exceptions import (
    FlavorNotAvailableError,
    ProductNotAvailableError,
    ProductNotFoundError,
    QuantityExceedsLimitError,
    SizeNotAvailableError,
    StoreError,
    ValidationError,
)
from storefront.models import CartItem
from storefront.repositories import CartLineKey, CartRepository, ProductRepository
from storefront.schemas import AddToCartRequest, CartItemOutput, CartLineOutput, CartOutput
from storefront.services.base_service import BaseService
from storefront.services.pricing import line_total_cents, unit_price_cents


class CartService(BaseService):
    """
    Service for cart lines.

    Business rules:
    - One line per (tenant, user, product, flavor, size)
    - Quantity per line stays within 1..10, also after merging
    - Only published, available, non-deleted products of the tenant,
      with a flavor and size currently offered for that product
    - Unit price = (promotional or base price) + size modifier, computed
      at write time; total = unit price * quantity
    - A failed add leaves the cart exactly as it was
    """

    def __init__(self, db: Session, *, max_attempts: int | None = None):
        super().__init__(db)
        self._products = ProductRepository(db)
        self._cart = CartRepository(db)
        self._max_attempts = max_attempts or settings.cart_upsert_max_attempts

    # =========================================================================
    # Write Operations
    # =========================================================================

    def add_to_cart(
        self,
        tenant_id: int | None,
        user_id: int | None,
        product_id: int | None,
        flavor_id: int | None,
        size_id: int | None,
        quantity: int | None,
        notes: str | None = None,
    ) -> CartLineOutput:
        """
        Add a product in a flavor and size to the user's cart.

        Merges into the existing line for the same key (quantity summed,
        prices recomputed from current catalog pricing, notes replaced only
        when new notes are given) or creates a new line.

        Returns:
            The resulting line's id, quantity, unit price and total price.

        Raises:
            ValidationError: Missing identifier, quantity below 1 or notes too long.
            ProductNotFoundError: Product missing, soft-deleted or in another tenant.
            ProductNotAvailableError: Product unpublished or unavailable.
            FlavorNotAvailableError / SizeNotAvailableError: Option not offered for the product.
            QuantityExceedsLimitError: Requested or merged quantity above 10.
            StoreError: Persistence failure, or the line key stayed contended
                after all attempts.
        """
        tenant_id = self.require_tenant(tenant_id)
        user_id = self.require(user_id, "user_id", ErrorCode.USER_REQUIRED)
        product_id = self.require(product_id, "product_id", ErrorCode.PRODUCT_REQUIRED)
        flavor_id = self.require(flavor_id, "flavor_id", ErrorCode.FLAVOR_REQUIRED)
        size_id = self.require(size_id, "size_id", ErrorCode.SIZE_REQUIRED)
        quantity = self._check_quantity(quantity)
        notes = self._clean_notes(notes)

        key = CartLineKey(
            user_id=user_id,
            product_id=product_id,
            flavor_id=flavor_id,
            size_id=size_id,
        )
        log_context = {"tenant_id": tenant_id, "user_id": user_id, "product_id": product_id}

        for attempt in range(1, self._max_attempts + 1):
            with translate_store_errors(self._db, "add to cart", **log_context):
                try:
                    line, merged = self._merge_or_insert(tenant_id, key, quantity, notes)
                    # Captured from the flushed row; commit expires it
                    result = CartLineOutput(
                        cart_item_id=line.id,
                        quantity=line.quantity,
                        unit_price_cents=line.unit_price_cents,
                        total_price_cents=line.total_price_cents,
                    )
                    safe_commit(self._db)
                except IntegrityError:
                    # Another writer inserted this key first; replay against its line
                    self._db.rollback()
                    logger.info("Cart line key contended, retrying", attempt=attempt, **log_context)
                    continue
                except Exception:
                    self._db.rollback()
                    raise

            logger.info(
                "Cart line merged" if merged else "Cart line created",
                cart_item_id=result.cart_item_id,
                quantity=result.quantity,
                attempt=attempt,
                **log_context,
            )
            return result

        raise StoreError(
            "add to cart",
            code=ErrorCode.STORE_CONFLICT,
            attempts=self._max_attempts,
            **log_context,
        )

    def add_from_request(
        self,
        tenant_id: int | None,
        user_id: int | None,
        request: AddToCartRequest,
    ) -> CartLineOutput:
        """Add to cart from a validated AddToCartRequest."""
        return self.add_to_cart(
            tenant_id,
            user_id,
            request.product_id,
            request.flavor_id,
            request.size_id,
            request.quantity,
            request.notes,
        )

    def _merge_or_insert(
        self,
        tenant_id: int,
        key: CartLineKey,
        quantity: int,
        notes: str | None,
    ) -> tuple[CartItem, bool]:
        """
        Validate against current catalog state, then update or create the line.
        Runs inside the caller's transaction; raises before any write on failure.
        """
        product = self._products.find_by_id(tenant_id, key.product_id)
        if product is None:
            raise ProductNotFoundError(key.product_id, tenant_id=tenant_id)
        if not (product.is_published and product.is_available):
            raise ProductNotAvailableError(key.product_id, tenant_id=tenant_id)

        if self._products.find_offered_flavor(tenant_id, key.product_id, key.flavor_id) is None:
            raise FlavorNotAvailableError(key.product_id, key.flavor_id, tenant_id=tenant_id)

        size = self._products.find_offered_size(tenant_id, key.product_id, key.size_id)
        if size is None:
            raise SizeNotAvailableError(key.product_id, key.size_id, tenant_id=tenant_id)

        unit_price = unit_price_cents(product, size)

        line = self._cart.find_line_for_update(tenant_id, key)
        if line is not None:
            new_quantity = line.quantity + quantity
            if new_quantity > CartLimits.MAX_QUANTITY:
                raise QuantityExceedsLimitError(
                    requested=quantity,
                    existing=line.quantity,
                    tenant_id=tenant_id,
                    cart_item_id=line.id,
                )

            line.quantity = new_quantity
            line.unit_price_cents = unit_price
            line.total_price_cents = line_total_cents(unit_price, new_quantity)
            if notes is not None:
                line.notes = notes
            return self._cart.save(line), True

        line = CartItem(
            tenant_id=tenant_id,
            user_id=key.user_id,
            product_id=key.product_id,
            flavor_id=key.flavor_id,
            size_id=key.size_id,
            quantity=quantity,
            unit_price_cents=unit_price,
            total_price_cents=line_total_cents(unit_price, quantity),
            notes=notes,
        )
        return self._cart.save(line), False

    # =========================================================================
    # Read Operations
    # =========================================================================

    def get_cart(self, tenant_id: int | None, user_id: int | None) -> CartOutput:
        """The user's cart lines (oldest first) with quantity and price totals."""
        tenant_id = self.require_tenant(tenant_id)
        user_id = self.require(user_id, "user_id", ErrorCode.USER_REQUIRED)

        with translate_store_errors(self._db, "get cart", tenant_id=tenant_id, user_id=user_id):
            lines = self._cart.find_for_user(tenant_id, user_id)

        items = [
            CartItemOutput(
                cart_item_id=line.id,
                product_id=line.product_id,
                product_name=line.product.name,
                flavor_id=line.flavor_id,
                size_id=line.size_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                total_price_cents=line.total_price_cents,
                notes=line.notes,
            )
            for line in lines
        ]
        return CartOutput(
            items=items,
            total_quantity=sum(i.quantity for i in items),
            total_price_cents=sum(i.total_price_cents for i in items),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _check_quantity(quantity: int | None) -> int:
        if quantity is None or quantity < CartLimits.MIN_QUANTITY:
            raise ValidationError(
                f"Quantity must be at least {CartLimits.MIN_QUANTITY}",
                code=ErrorCode.INVALID_QUANTITY,
                quantity=quantity,
            )
        if quantity > CartLimits.MAX_QUANTITY:
            raise QuantityExceedsLimitError(requested=quantity)
        return quantity

    @staticmethod
    def _clean_notes(notes: str | None) -> str | None:
        if notes is None:
            return None
        notes = notes.strip()
        if len(notes) > CartLimits.MAX_NOTES_LENGTH:
            raise ValidationError(
                f"Notes must be at most {CartLimits.MAX_NOTES_LENGTH} characters",
                length=len(notes),
            )
        return notes or None
