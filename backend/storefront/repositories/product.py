"""
Product Repository - Data access for the catalog store.

All filtering is expressed as bound-parameter predicates on SQLAlchemy
constructs; id-set filters become IN clauses and option filters become
EXISTS subqueries. Nothing is assembled from raw strings.
"""

from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy import Select, and_, case, cast, exists, func, or_, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import contains_eager, joinedload

from shared.config.constants import SortOption
from shared.utils.validators import escape_like_pattern
from storefront.models import (
    Category,
    Confectioner,
    Flavor,
    Product,
    ProductFlavor,
    ProductSize,
    Review,
    Size,
)
from .base import BaseRepository, RepositoryFilters


@dataclass
class ProductFilters(RepositoryFilters):
    """
    Catalog listing filters. All supplied criteria must hold (conjunctive).

    Empty id sets are treated like absent ones.
    """

    category_ids: frozenset[int] | None = None
    flavor_ids: frozenset[int] | None = None
    size_ids: frozenset[int] | None = None
    confectioner_ids: frozenset[int] | None = None
    min_price_cents: int | None = None
    max_price_cents: int | None = None
    available_only: bool = True

    def __post_init__(self):
        super().__post_init__()
        self.category_ids = frozenset(self.category_ids) if self.category_ids else None
        self.flavor_ids = frozenset(self.flavor_ids) if self.flavor_ids else None
        self.size_ids = frozenset(self.size_ids) if self.size_ids else None
        self.confectioner_ids = frozenset(self.confectioner_ids) if self.confectioner_ids else None


# Primary ordering per sort key; every ordering ends with name, id
_SORT_COLUMNS: dict[SortOption, tuple[Any, ...]] = {
    SortOption.RELEVANCE: (Product.average_rating.desc(),),
    SortOption.TOP_RATED: (Product.average_rating.desc(),),
    SortOption.PRICE_ASC: (Product.base_price_cents.asc(),),
    SortOption.PRICE_DESC: (Product.base_price_cents.desc(),),
    SortOption.BEST_SELLERS: (Product.total_reviews.desc(),),
    SortOption.NEWEST: (Product.created_at.desc(),),
}


def product_ordering(sort_by: SortOption) -> tuple[Any, ...]:
    """Deterministic ORDER BY for a sort key."""
    return _SORT_COLUMNS[sort_by] + (Product.name.asc(), Product.id.asc())


class ProductRepository(BaseRepository[Product]):
    """
    Repository for Product entities.

    The base query joins the owning confectioner and category within the
    same tenant and keeps only rows where product, confectioner and
    category are all present (not soft-deleted) and the product is
    published.
    """

    @property
    def model(self) -> type[Product]:
        return Product

    def _base_query(self, tenant_id: int) -> Select:
        return (
            select(Product)
            .join(
                Confectioner,
                and_(
                    Confectioner.id == Product.confectioner_id,
                    Confectioner.tenant_id == Product.tenant_id,
                ),
            )
            .join(
                Category,
                and_(
                    Category.id == Product.category_id,
                    Category.tenant_id == Product.tenant_id,
                ),
            )
            .where(
                Product.tenant_id == tenant_id,
                Product.is_active.is_(True),
                Product.is_published.is_(True),
                Confectioner.is_active.is_(True),
                Category.is_active.is_(True),
            )
        )

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        """Apply catalog listing filters."""
        if not isinstance(filters, ProductFilters):
            filters = ProductFilters(**filters.__dict__)

        if filters.available_only:
            query = query.where(Product.is_available.is_(True))

        if filters.category_ids:
            query = query.where(Product.category_id.in_(filters.category_ids))

        if filters.confectioner_ids:
            query = query.where(Product.confectioner_id.in_(filters.confectioner_ids))

        if filters.min_price_cents is not None:
            query = query.where(Product.base_price_cents >= filters.min_price_cents)

        if filters.max_price_cents is not None:
            query = query.where(Product.base_price_cents <= filters.max_price_cents)

        if filters.search:
            search_term = f"%{escape_like_pattern(filters.search)}%"
            query = query.where(
                or_(
                    Product.name.ilike(search_term, escape="\\"),
                    Product.description.ilike(search_term, escape="\\"),
                    self._ingredient_matches(search_term),
                )
            )

        # Only options offered (is_available) for this product count;
        # a withdrawn option does not qualify the product
        if filters.flavor_ids:
            query = query.where(
                exists().where(
                    ProductFlavor.tenant_id == Product.tenant_id,
                    ProductFlavor.product_id == Product.id,
                    ProductFlavor.flavor_id.in_(filters.flavor_ids),
                    ProductFlavor.is_available.is_(True),
                )
            )

        if filters.size_ids:
            query = query.where(
                exists().where(
                    ProductSize.tenant_id == Product.tenant_id,
                    ProductSize.product_id == Product.id,
                    ProductSize.size_id.in_(filters.size_ids),
                    ProductSize.is_available.is_(True),
                )
            )

        return query

    def _ingredient_matches(self, pattern: str) -> Any:
        """
        EXISTS over the decoded elements of the ingredients JSON array, so
        the pattern is matched against ingredient text, not JSON syntax or
        \\u escapes.
        """
        if self._db.get_bind().dialect.name == "postgresql":
            elements = func.jsonb_array_elements_text(
                cast(Product.ingredients, JSONB)
            ).table_valued("value")
        else:
            # json_each raises on malformed text; such rows simply have no ingredients
            document = case(
                (func.json_valid(Product.ingredients) == 1, Product.ingredients),
                else_="[]",
            )
            elements = func.json_each(document).table_valued("value")

        return (
            select(elements.c.value)
            .where(elements.c.value.ilike(pattern, escape="\\"))
            .exists()
        )

    # =========================================================================
    # Listing
    # =========================================================================

    def find_page(
        self,
        tenant_id: int,
        filters: ProductFilters,
        sort_by: SortOption,
        *,
        offset: int,
        limit: int,
    ) -> Sequence[Product]:
        """One page of the filtered listing with confectioner and category loaded."""
        return self.find_all(
            tenant_id,
            filters,
            order_by=product_ordering(sort_by),
            options=(
                contains_eager(Product.confectioner),
                contains_eager(Product.category),
            ),
            offset=offset,
            limit=limit,
        )

    # =========================================================================
    # Details
    # =========================================================================

    def find_for_details(self, tenant_id: int, product_id: int) -> Product | None:
        """
        Product by id if it belongs to the tenant and is not soft-deleted.
        Publication and availability are not checked.
        """
        return self.find_by_id(
            tenant_id,
            product_id,
            options=(joinedload(Product.confectioner),),
        )

    def find_flavor_options(self, tenant_id: int, product_id: int) -> Sequence[tuple[ProductFlavor, Flavor]]:
        """All flavor rows linked to the product (offered or withdrawn), ordered by name."""
        query = (
            select(ProductFlavor, Flavor)
            .join(
                Flavor,
                and_(
                    Flavor.id == ProductFlavor.flavor_id,
                    Flavor.tenant_id == ProductFlavor.tenant_id,
                ),
            )
            .where(
                ProductFlavor.tenant_id == tenant_id,
                ProductFlavor.product_id == product_id,
                Flavor.is_active.is_(True),
            )
            .order_by(Flavor.name.asc(), Flavor.id.asc())
        )
        return self._db.execute(query).all()

    def find_size_options(self, tenant_id: int, product_id: int) -> Sequence[tuple[ProductSize, Size]]:
        """All size rows linked to the product (offered or withdrawn), cheapest modifier first."""
        query = (
            select(ProductSize, Size)
            .join(
                Size,
                and_(
                    Size.id == ProductSize.size_id,
                    Size.tenant_id == ProductSize.tenant_id,
                ),
            )
            .where(
                ProductSize.tenant_id == tenant_id,
                ProductSize.product_id == product_id,
                Size.is_active.is_(True),
            )
            .order_by(Size.price_modifier_cents.asc(), Size.id.asc())
        )
        return self._db.execute(query).all()

    def find_reviews(self, tenant_id: int, product_id: int) -> Sequence[Review]:
        """Non-deleted reviews, newest first."""
        query = (
            select(Review)
            .where(
                Review.tenant_id == tenant_id,
                Review.product_id == product_id,
                Review.is_active.is_(True),
            )
            .order_by(Review.created_at.desc(), Review.id.desc())
        )
        return self._db.execute(query).scalars().all()

    # =========================================================================
    # Related products
    # =========================================================================

    def _related_candidates(self, tenant_id: int, reference: Product) -> Select:
        return (
            self._base_query(tenant_id)
            .where(
                Product.id != reference.id,
                Product.is_available.is_(True),
            )
            .options(contains_eager(Product.confectioner))
        )

    def find_related(self, tenant_id: int, reference: Product, limit: int) -> Sequence[Product]:
        """
        Products sharing the reference's confectioner (tier 1) or category (tier 2),
        tier first, then rating and review count descending.
        """
        tier = case(
            (Product.confectioner_id == reference.confectioner_id, 1),
            (Product.category_id == reference.category_id, 2),
            else_=3,
        )
        query = (
            self._related_candidates(tenant_id, reference)
            .where(
                or_(
                    Product.confectioner_id == reference.confectioner_id,
                    Product.category_id == reference.category_id,
                )
            )
            .order_by(
                tier.asc(),
                Product.average_rating.desc(),
                Product.total_reviews.desc(),
                Product.id.asc(),
            )
            .limit(limit)
        )
        return self._db.execute(query).scalars().unique().all()

    def find_popular(
        self,
        tenant_id: int,
        reference: Product,
        exclude_ids: Sequence[int],
        limit: int,
    ) -> Sequence[Product]:
        """Highest-rated, most-reviewed visible products outside exclude_ids."""
        query = self._related_candidates(tenant_id, reference)
        if exclude_ids:
            query = query.where(Product.id.not_in(exclude_ids))
        query = query.order_by(
            Product.average_rating.desc(),
            Product.total_reviews.desc(),
            Product.id.asc(),
        ).limit(limit)
        return self._db.execute(query).scalars().unique().all()

    # =========================================================================
    # Cart validation
    # =========================================================================

    def find_offered_flavor(self, tenant_id: int, product_id: int, flavor_id: int) -> ProductFlavor | None:
        """Flavor link if the flavor exists and is offered for this product."""
        query = (
            select(ProductFlavor)
            .join(
                Flavor,
                and_(
                    Flavor.id == ProductFlavor.flavor_id,
                    Flavor.tenant_id == ProductFlavor.tenant_id,
                ),
            )
            .where(
                ProductFlavor.tenant_id == tenant_id,
                ProductFlavor.product_id == product_id,
                ProductFlavor.flavor_id == flavor_id,
                ProductFlavor.is_available.is_(True),
                Flavor.is_active.is_(True),
            )
        )
        return self._db.scalar(query)

    def find_offered_size(self, tenant_id: int, product_id: int, size_id: int) -> Size | None:
        """Size (with its price modifier) if it exists and is offered for this product."""
        query = (
            select(Size)
            .join(
                ProductSize,
                and_(
                    ProductSize.size_id == Size.id,
                    ProductSize.tenant_id == Size.tenant_id,
                ),
            )
            .where(
                ProductSize.tenant_id == tenant_id,
                ProductSize.product_id == product_id,
                ProductSize.size_id == size_id,
                ProductSize.is_available.is_(True),
                Size.is_active.is_(True),
            )
        )
        return self._db.scalar(query)
