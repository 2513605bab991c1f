"""
Tests for CartService - merge-or-insert of cart lines.

Tests cover:
- New lines and merges (quantity, prices, notes)
- The per-line quantity ceiling before and after merging
- Product, flavor and size availability checks
- Tenant and user isolation
- Retry on a concurrent first insert and store failures
"""

import pytest
from sqlalchemy.exc import OperationalError

from shared.config.constants import ErrorCode
from shared.utils.exceptions import (
    BusinessRuleError,
    FlavorNotAvailableError,
    ProductNotAvailableError,
    ProductNotFoundError,
    QuantityExceedsLimitError,
    SizeNotAvailableError,
    StoreError,
    ValidationError,
)
from storefront.repositories import CartRepository, ProductRepository
from storefront.schemas import AddToCartRequest
from storefront.services.domain import CartService, CatalogService

USER_ID = 42


@pytest.fixture
def cart_service(db_session):
    """Get a CartService instance."""
    return CartService(db_session)


@pytest.fixture
def seed_cake(builder, seed_confectioner, seed_category, seed_flavors, seed_sizes):
    """Cake at 30.00 (promo 25.00) offered in both flavors and sizes."""
    return builder.product(
        seed_confectioner, seed_category, "Chocolate Cake", 3000,
        promotional_price_cents=2500,
        flavors=seed_flavors,
        sizes=seed_sizes,
    )


@pytest.fixture
def add(cart_service, seed_tenant, seed_cake, seed_flavors, seed_sizes):
    """Add the seed cake in chocolate/large unless told otherwise."""
    chocolate, _ = seed_flavors
    _, large = seed_sizes

    def _add(quantity, **overrides):
        params = {
            "tenant_id": seed_tenant.id,
            "user_id": USER_ID,
            "product_id": seed_cake.id,
            "flavor_id": chocolate.id,
            "size_id": large.id,
            "quantity": quantity,
        }
        params.update(overrides)
        return cart_service.add_to_cart(**params)

    return _add


class TestAddToCartNewLine:
    """First add of a (product, flavor, size) combination."""

    def test_creates_line_with_promotional_price_plus_modifier(self, add):
        line = add(2)

        assert line.quantity == 2
        assert line.unit_price_cents == 2500 + 1200
        assert line.total_price_cents == (2500 + 1200) * 2

    def test_base_price_used_without_promotion(
        self, add, builder, seed_confectioner, seed_category, seed_flavors, seed_sizes
    ):
        plain = builder.product(
            seed_confectioner, seed_category, "Plain Cake", 1800,
            flavors=seed_flavors, sizes=seed_sizes,
        )

        line = add(1, product_id=plain.id, size_id=seed_sizes[0].id)

        assert line.unit_price_cents == 1800

    def test_different_options_make_separate_lines(self, add, cart_service, seed_tenant, seed_flavors, seed_sizes):
        first = add(1)
        second = add(1, flavor_id=seed_flavors[1].id)
        third = add(1, size_id=seed_sizes[0].id)

        assert len({first.cart_item_id, second.cart_item_id, third.cart_item_id}) == 3
        assert len(cart_service.get_cart(seed_tenant.id, USER_ID).items) == 3

    def test_exactly_ten_is_allowed(self, add):
        assert add(10).quantity == 10

    def test_notes_are_trimmed(self, add, cart_service, seed_tenant):
        add(1, notes="  Happy birthday Sofi  ")

        assert cart_service.get_cart(seed_tenant.id, USER_ID).items[0].notes == "Happy birthday Sofi"

    def test_add_from_request(self, cart_service, seed_tenant, seed_cake, seed_flavors, seed_sizes):
        request = AddToCartRequest(
            product_id=seed_cake.id,
            flavor_id=seed_flavors[0].id,
            size_id=seed_sizes[0].id,
            quantity=3,
            notes="No nuts",
        )

        line = cart_service.add_from_request(seed_tenant.id, USER_ID, request)

        assert line.quantity == 3
        assert line.total_price_cents == 2500 * 3


class TestAddToCartMerge:
    """Repeat adds of the same combination."""

    def test_quantities_are_summed_into_one_line(self, add, cart_service, seed_tenant):
        first = add(3)
        second = add(4)

        assert second.cart_item_id == first.cart_item_id
        assert second.quantity == 7
        assert second.total_price_cents == second.unit_price_cents * 7

        cart = cart_service.get_cart(seed_tenant.id, USER_ID)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 7

    def test_merge_reprices_with_current_catalog_price(self, add, builder, seed_cake):
        add(2)
        seed_cake.promotional_price_cents = None
        builder.db.commit()

        line = add(1)

        assert line.unit_price_cents == 3000 + 1200
        assert line.total_price_cents == (3000 + 1200) * 3

    def test_merge_keeps_notes_when_none_given(self, add, cart_service, seed_tenant):
        add(1, notes="Write 'Felicidades'")
        add(1)
        add(1, notes="   ")

        assert cart_service.get_cart(seed_tenant.id, USER_ID).items[0].notes == "Write 'Felicidades'"

    def test_merge_replaces_notes_when_given(self, add, cart_service, seed_tenant):
        add(1, notes="First")
        add(1, notes="Second")

        assert cart_service.get_cart(seed_tenant.id, USER_ID).items[0].notes == "Second"

    def test_merge_over_limit_is_rejected_and_line_unchanged(self, add, cart_service, seed_tenant):
        add(8, notes="Original")

        with pytest.raises(QuantityExceedsLimitError) as exc_info:
            add(5, notes="Replaced?")

        assert exc_info.value.existing == 8
        assert exc_info.value.requested == 5
        assert exc_info.value.code == ErrorCode.QUANTITY_EXCEEDS_LIMIT

        item = cart_service.get_cart(seed_tenant.id, USER_ID).items[0]
        assert item.quantity == 8
        assert item.notes == "Original"

    def test_merge_up_to_exactly_ten(self, add):
        add(6)
        assert add(4).quantity == 10


class TestAddToCartValidation:
    """Rejected requests never touch the cart."""

    @pytest.mark.parametrize(
        "field, code",
        [
            ("tenant_id", ErrorCode.TENANT_REQUIRED),
            ("user_id", ErrorCode.USER_REQUIRED),
            ("product_id", ErrorCode.PRODUCT_REQUIRED),
            ("flavor_id", ErrorCode.FLAVOR_REQUIRED),
            ("size_id", ErrorCode.SIZE_REQUIRED),
        ],
    )
    def test_missing_identifier(self, add, field, code):
        with pytest.raises(ValidationError) as exc_info:
            add(1, **{field: None})
        assert exc_info.value.code == code

    @pytest.mark.parametrize("quantity", [0, -3, None])
    def test_quantity_below_one(self, add, quantity):
        with pytest.raises(ValidationError) as exc_info:
            add(quantity)
        assert exc_info.value.code == ErrorCode.INVALID_QUANTITY

    def test_quantity_above_ten(self, add, cart_service, seed_tenant):
        with pytest.raises(QuantityExceedsLimitError) as exc_info:
            add(11)

        assert exc_info.value.existing == 0
        assert cart_service.get_cart(seed_tenant.id, USER_ID).items == []

    def test_notes_too_long(self, add):
        with pytest.raises(ValidationError):
            add(1, notes="x" * 201)

    def test_notes_at_limit(self, add):
        assert add(1, notes="x" * 200).quantity == 1


class TestAddToCartAvailability:
    """Product, flavor and size must be currently offered."""

    def test_unknown_product(self, add):
        with pytest.raises(ProductNotFoundError):
            add(1, product_id=99999)

    def test_deleted_product(self, add, builder, seed_cake):
        builder.soft_delete(seed_cake)

        with pytest.raises(ProductNotFoundError):
            add(1)

    def test_other_tenant_product(self, add, other_tenant):
        with pytest.raises(ProductNotFoundError):
            add(1, tenant_id=other_tenant.id)

    @pytest.mark.parametrize("flag", ["is_published", "is_available"])
    def test_hidden_product(self, add, builder, seed_cake, flag):
        setattr(seed_cake, flag, False)
        builder.db.commit()

        with pytest.raises(ProductNotAvailableError) as exc_info:
            add(1)
        assert isinstance(exc_info.value, BusinessRuleError)
        assert exc_info.value.code == ErrorCode.PRODUCT_NOT_AVAILABLE

    def test_flavor_not_linked(self, add, builder):
        lemon = builder.flavor("Lemon")

        with pytest.raises(FlavorNotAvailableError):
            add(1, flavor_id=lemon.id)

    def test_flavor_withdrawn_for_product(
        self, add, builder, seed_confectioner, seed_category, seed_flavors, seed_sizes
    ):
        cake = builder.product(seed_confectioner, seed_category, "Seasonal", 2000, sizes=seed_sizes)
        builder.offer_flavor(cake, seed_flavors[0], is_available=False)

        with pytest.raises(FlavorNotAvailableError) as exc_info:
            add(1, product_id=cake.id)
        assert exc_info.value.code == ErrorCode.FLAVOR_NOT_AVAILABLE

    def test_deleted_flavor(self, add, builder, seed_flavors):
        builder.soft_delete(seed_flavors[0])

        with pytest.raises(FlavorNotAvailableError):
            add(1)

    def test_size_not_linked(self, add, builder):
        huge = builder.size("Huge", 5000)

        with pytest.raises(SizeNotAvailableError) as exc_info:
            add(1, size_id=huge.id)
        assert exc_info.value.code == ErrorCode.SIZE_NOT_AVAILABLE

    def test_size_withdrawn_for_product(
        self, add, builder, seed_confectioner, seed_category, seed_flavors, seed_sizes
    ):
        cake = builder.product(seed_confectioner, seed_category, "Seasonal", 2000, flavors=seed_flavors)
        builder.offer_size(cake, seed_sizes[1], is_available=False)

        with pytest.raises(SizeNotAvailableError):
            add(1, product_id=cake.id)

    def test_other_tenant_options_are_not_available(self, add, other_builder):
        foreign_flavor = other_builder.flavor("Chocolate")

        with pytest.raises(FlavorNotAvailableError):
            add(1, flavor_id=foreign_flavor.id)


class TestGetCart:
    """Tests for CartService.get_cart()"""

    def test_empty_cart(self, cart_service, seed_tenant):
        cart = cart_service.get_cart(seed_tenant.id, USER_ID)

        assert cart.items == []
        assert cart.total_quantity == 0
        assert cart.total_price_cents == 0

    def test_totals_over_lines(self, add, cart_service, seed_tenant, seed_sizes, seed_cake):
        add(2)
        add(3, size_id=seed_sizes[0].id)

        cart = cart_service.get_cart(seed_tenant.id, USER_ID)

        assert [i.quantity for i in cart.items] == [2, 3]
        assert cart.items[0].product_name == seed_cake.name
        assert cart.total_quantity == 5
        assert cart.total_price_cents == 3700 * 2 + 2500 * 3

    def test_carts_are_per_user(self, add, cart_service, seed_tenant):
        add(2)
        add(1, user_id=USER_ID + 1)

        assert cart_service.get_cart(seed_tenant.id, USER_ID).total_quantity == 2
        assert cart_service.get_cart(seed_tenant.id, USER_ID + 1).total_quantity == 1

    def test_carts_are_per_tenant(self, add, cart_service, other_tenant):
        add(2)

        assert cart_service.get_cart(other_tenant.id, USER_ID).items == []

    def test_missing_user_is_rejected(self, cart_service, seed_tenant):
        with pytest.raises(ValidationError) as exc_info:
            cart_service.get_cart(seed_tenant.id, None)
        assert exc_info.value.code == ErrorCode.USER_REQUIRED


class TestAddToCartConcurrency:
    """
    Concurrent first inserts of the same line key.

    A second writer that read "no line" before the first committed is
    simulated by hiding the existing line from the locked lookup.
    """

    @pytest.fixture
    def stale_lookup(self, monkeypatch):
        """Make the first `misses` lookups report no existing line."""
        original = CartRepository.find_line_for_update
        calls = []

        def install(misses):
            def lookup(self, tenant_id, key):
                calls.append(key)
                if len(calls) <= misses:
                    return None
                return original(self, tenant_id, key)

            monkeypatch.setattr(CartRepository, "find_line_for_update", lookup)
            return calls

        return install

    def test_losing_insert_retries_as_merge(self, add, cart_service, seed_tenant, stale_lookup):
        add(3)
        calls = stale_lookup(misses=1)

        line = add(4)

        assert len(calls) == 2
        assert line.quantity == 7
        cart = cart_service.get_cart(seed_tenant.id, USER_ID)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 7

    def test_retry_still_enforces_limit(self, add, cart_service, seed_tenant, stale_lookup):
        add(8)
        stale_lookup(misses=1)

        with pytest.raises(QuantityExceedsLimitError):
            add(5)

        assert cart_service.get_cart(seed_tenant.id, USER_ID).items[0].quantity == 8

    def test_persistent_conflict_becomes_store_error(
        self, db_session, seed_tenant, seed_cake, seed_flavors, seed_sizes, stale_lookup
    ):
        service = CartService(db_session, max_attempts=2)
        params = dict(
            tenant_id=seed_tenant.id,
            user_id=USER_ID,
            product_id=seed_cake.id,
            flavor_id=seed_flavors[0].id,
            size_id=seed_sizes[0].id,
        )
        service.add_to_cart(quantity=3, **params)
        calls = stale_lookup(misses=100)

        with pytest.raises(StoreError) as exc_info:
            service.add_to_cart(quantity=1, **params)

        assert len(calls) == 2
        assert exc_info.value.code == ErrorCode.STORE_CONFLICT
        assert exc_info.value.retryable is True
        assert service.get_cart(seed_tenant.id, USER_ID).items[0].quantity == 3


class TestStoreFailures:
    """Driver failures surface as StoreError."""

    def test_add_to_cart_connection_lost(self, add, cart_service, seed_tenant, monkeypatch):
        def broken(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

        monkeypatch.setattr(ProductRepository, "find_by_id", broken)

        with pytest.raises(StoreError) as exc_info:
            add(1)

        assert exc_info.value.code == ErrorCode.STORE_UNAVAILABLE
        assert exc_info.value.to_dict()["retryable"] is True

    def test_result_does_not_reload_after_commit(self, add, cart_service, db_session, seed_tenant, monkeypatch):
        add(3)
        real_commit = db_session.commit

        def commit_then_disconnect():
            real_commit()

            def broken(*args, **kwargs):
                raise OperationalError("SELECT cart_items", {}, Exception("server closed the connection"))

            monkeypatch.setattr(db_session, "execute", broken)

        monkeypatch.setattr(db_session, "commit", commit_then_disconnect)

        line = add(4)

        assert line.quantity == 7
        assert line.unit_price_cents == 2500 + 1200
        assert line.total_price_cents == (2500 + 1200) * 7

        monkeypatch.undo()
        assert cart_service.get_cart(seed_tenant.id, USER_ID).items[0].quantity == 7

    def test_listing_connection_lost(self, db_session, seed_tenant, monkeypatch):
        def broken(self, *args, **kwargs):
            raise OperationalError("SELECT count(*)", {}, Exception("timeout"))

        monkeypatch.setattr(ProductRepository, "count", broken)

        with pytest.raises(StoreError) as exc_info:
            CatalogService(db_session).list_products(seed_tenant.id)

        assert exc_info.value.operation == "list products"
