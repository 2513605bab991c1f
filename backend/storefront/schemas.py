"""
Pydantic schemas for the storefront core boundary.

Request schemas are what the request-handling layer validates and hands
to the services; output schemas are the success payloads the services
return. Money fields are integer cents.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from shared.config.constants import CartLimits, Limits, Pagination, SortOption
from shared.utils.validators import parse_id_list
from storefront.repositories.product import ProductFilters


# =============================================================================
# Request Schemas
# =============================================================================


class ProductListQuery(BaseModel):
    """
    Catalog listing query.

    Id filters accept lists of ints or the comma-separated form used in
    query strings ("1,2,3"). page_size is deliberately unconstrained:
    unsupported sizes fall back to the default in the service.
    """

    page: int = Field(default=Pagination.DEFAULT_PAGE, ge=1)
    page_size: int = Pagination.DEFAULT_PAGE_SIZE
    sort_by: SortOption = SortOption.RELEVANCE
    category_ids: frozenset[int] | None = None
    flavor_ids: frozenset[int] | None = None
    size_ids: frozenset[int] | None = None
    confectioner_ids: frozenset[int] | None = None
    min_price_cents: int | None = Field(default=None, ge=0)
    max_price_cents: int | None = Field(default=None, ge=0)
    search_term: str | None = Field(default=None, max_length=Limits.MAX_SEARCH_TERM_LENGTH)
    available_only: bool = True

    @field_validator("category_ids", "flavor_ids", "size_ids", "confectioner_ids", mode="before")
    @classmethod
    def _parse_ids(cls, value: Any) -> frozenset[int] | None:
        return parse_id_list(value)

    def to_filters(self) -> ProductFilters:
        """Build the repository filter object."""
        return ProductFilters(
            search=self.search_term,
            category_ids=self.category_ids,
            flavor_ids=self.flavor_ids,
            size_ids=self.size_ids,
            confectioner_ids=self.confectioner_ids,
            min_price_cents=self.min_price_cents,
            max_price_cents=self.max_price_cents,
            available_only=self.available_only,
        )


class AddToCartRequest(BaseModel):
    """Request to add a product (with flavor and size) to the caller's cart."""

    product_id: int = Field(gt=0)
    flavor_id: int = Field(gt=0)
    size_id: int = Field(gt=0)
    quantity: int = Field(ge=CartLimits.MIN_QUANTITY, le=CartLimits.MAX_QUANTITY)
    notes: str | None = Field(default=None, max_length=CartLimits.MAX_NOTES_LENGTH)


# =============================================================================
# Catalog Output Schemas
# =============================================================================


class ProductSummary(BaseModel):
    """Product card in a listing."""

    id: int
    name: str
    description: str | None
    base_price_cents: int
    promotional_price_cents: int | None
    main_image: str | None
    average_rating: float
    total_reviews: int
    preparation_time: str | None
    is_available: bool
    confectioner_name: str
    category_name: str


class PaginationOutput(BaseModel):
    """Pagination metadata computed over the full filtered set."""

    total_count: int
    total_pages: int
    current_page: int
    page_size: int


class ProductListOutput(BaseModel):
    """One page of a catalog listing."""

    products: list[ProductSummary]
    pagination: PaginationOutput


class ConfectionerSummary(BaseModel):
    """Seller summary shown on the product page."""

    id: int
    name: str
    photo: str | None
    average_rating: float
    total_products_sold: int


class FlavorOptionOutput(BaseModel):
    """Flavor linked to a product, tagged with whether it is currently offered."""

    flavor_id: int
    name: str
    is_available: bool


class SizeOptionOutput(BaseModel):
    """Size linked to a product, tagged with whether it is currently offered."""

    size_id: int
    name: str
    description: str | None
    price_modifier_cents: int
    is_available: bool


class ReviewOutput(BaseModel):
    """Customer review."""

    id: int
    customer_name: str
    rating: int
    comment: str | None
    created_at: datetime


class ProductDetailOutput(BaseModel):
    """Full product page payload."""

    id: int
    name: str
    description: str | None
    ingredients: list[str]
    nutritional_info: dict[str, Any] | None
    base_price_cents: int
    promotional_price_cents: int | None
    main_image: str | None
    image_gallery: list[str]
    average_rating: float
    total_reviews: int
    preparation_time: str | None
    is_available: bool
    confectioner: ConfectionerSummary
    flavors: list[FlavorOptionOutput]
    sizes: list[SizeOptionOutput]
    reviews: list[ReviewOutput]


class RelatedProductOutput(BaseModel):
    """Related product card."""

    id: int
    name: str
    base_price_cents: int
    promotional_price_cents: int | None
    main_image: str | None
    average_rating: float
    total_reviews: int
    confectioner_name: str


# =============================================================================
# Cart Output Schemas
# =============================================================================


class CartLineOutput(BaseModel):
    """Resulting cart line after an add."""

    cart_item_id: int
    quantity: int
    unit_price_cents: int
    total_price_cents: int


class CartItemOutput(BaseModel):
    """Cart line as listed in the cart."""

    cart_item_id: int
    product_id: int
    product_name: str
    flavor_id: int
    size_id: int
    quantity: int
    unit_price_cents: int
    total_price_cents: int
    notes: str | None


class CartOutput(BaseModel):
    """A user's cart."""

    items: list[CartItemOutput]
    total_quantity: int
    total_price_cents: int
