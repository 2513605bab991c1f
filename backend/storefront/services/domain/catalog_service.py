"""
Catalog Service - multi-criteria product listing, product details and
related products.

Usage:
    from storefront.services.domain import CatalogService

    service = CatalogService(db)
    page = service.list_products(tenant_id, ProductFilters(category_ids={3}), sort_by="price_asc", page=2)
    details = service.get_product_details(tenant_id, product_id)
    related = service.get_related_products(tenant_id, product_id, limit=4)

Read-only: no locking beyond the store's default isolation.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from shared.config.constants import ErrorCode, Pagination, SortOption
from shared.config.logging import catalog_logger as logger
from shared.infrastructure.db import translate_store_errors
from shared.utils.exceptions import ProductNotFoundError, ValidationError
from shared.utils.validators import parse_json_list, parse_json_object
from storefront.models import Product
from storefront.repositories import ProductFilters, ProductRepository
from storefront.schemas import (
    ConfectionerSummary,
    FlavorOptionOutput,
    PaginationOutput,
    ProductDetailOutput,
    ProductListOutput,
    ProductListQuery,
    ProductSummary,
    RelatedProductOutput,
    ReviewOutput,
    SizeOptionOutput,
)
from storefront.services.base_service import BaseService
from storefront.services.pricing import normalize_page_size, page_offset, total_pages


class CatalogService(BaseService):
    """
    Service for customer-facing catalog queries.

    Business rules:
    - Every query is scoped to the caller's tenant
    - Soft-deleted products never appear; listings also hide unpublished
      products and products whose confectioner or category is deleted
    - Listing order is fully deterministic (ties end on name, then id)
    - Missing, deleted and cross-tenant products are indistinguishable
    """

    def __init__(self, db: Session):
        super().__init__(db)
        self._products = ProductRepository(db)

    # =========================================================================
    # Listing
    # =========================================================================

    def list_products(
        self,
        tenant_id: int | None,
        filters: ProductFilters | None = None,
        *,
        sort_by: SortOption | str = SortOption.RELEVANCE,
        page: int | None = Pagination.DEFAULT_PAGE,
        page_size: int | None = Pagination.DEFAULT_PAGE_SIZE,
    ) -> ProductListOutput:
        """
        List one page of products matching all supplied filters.

        Args:
            tenant_id: Tenant ID for isolation (required).
            filters: Optional listing filters; defaults to available products only.
            sort_by: One of SortOption.
            page: 1-based page number.
            page_size: 12, 24 or 36; anything else is treated as 12.

        Returns:
            Products of the page plus pagination metadata computed over the
            whole filtered set. Zero matches is an empty page, not an error.

        Raises:
            ValidationError: Missing tenant, page below 1 or unknown sort key.
            StoreError: Persistence failure.
        """
        tenant_id = self.require_tenant(tenant_id)
        filters = filters or ProductFilters()
        sort_option = self._parse_sort(sort_by)

        page = Pagination.DEFAULT_PAGE if page is None else page
        if page < 1:
            raise ValidationError(
                f"Page number must be at least 1, got {page}",
                code=ErrorCode.INVALID_PAGE_NUMBER,
                page=page,
            )
        page_size = normalize_page_size(page_size)

        with translate_store_errors(self._db, "list products", tenant_id=tenant_id):
            total_count = self._products.count(tenant_id, filters)
            products = self._products.find_page(
                tenant_id,
                filters,
                sort_option,
                offset=page_offset(page, page_size),
                limit=page_size,
            )

        logger.debug(
            "Products listed",
            tenant_id=tenant_id,
            sort_by=sort_option.value,
            page=page,
            page_size=page_size,
            total_count=total_count,
        )

        return ProductListOutput(
            products=[self._to_summary(p) for p in products],
            pagination=PaginationOutput(
                total_count=total_count,
                total_pages=total_pages(total_count, page_size),
                current_page=page,
                page_size=page_size,
            ),
        )

    def list_from_query(self, tenant_id: int | None, query: ProductListQuery) -> ProductListOutput:
        """List products for a validated ProductListQuery."""
        return self.list_products(
            tenant_id,
            query.to_filters(),
            sort_by=query.sort_by,
            page=query.page,
            page_size=query.page_size,
        )

    # =========================================================================
    # Details
    # =========================================================================

    def get_product_details(self, tenant_id: int | None, product_id: int | None) -> ProductDetailOutput:
        """
        Full product page: core fields, confectioner, every linked flavor and
        size (offered or withdrawn, tagged), and non-deleted reviews newest first.

        Raises:
            ValidationError: Missing tenant or product id.
            ProductNotFoundError: Product missing, soft-deleted or in another tenant.
        """
        tenant_id = self.require_tenant(tenant_id)
        product_id = self.require(product_id, "product_id", ErrorCode.PRODUCT_REQUIRED)

        with translate_store_errors(self._db, "get product details", tenant_id=tenant_id):
            product = self._products.find_for_details(tenant_id, product_id)
            if product is None:
                raise ProductNotFoundError(product_id, tenant_id=tenant_id)

            flavors = self._products.find_flavor_options(tenant_id, product_id)
            sizes = self._products.find_size_options(tenant_id, product_id)
            reviews = self._products.find_reviews(tenant_id, product_id)

        confectioner = product.confectioner
        return ProductDetailOutput(
            id=product.id,
            name=product.name,
            description=product.description,
            ingredients=[str(i) for i in parse_json_list(product.ingredients)],
            nutritional_info=parse_json_object(product.nutritional_info),
            base_price_cents=product.base_price_cents,
            promotional_price_cents=product.promotional_price_cents,
            main_image=product.main_image,
            image_gallery=[str(i) for i in parse_json_list(product.image_gallery)],
            average_rating=product.average_rating,
            total_reviews=product.total_reviews,
            preparation_time=product.preparation_time,
            is_available=product.is_available,
            confectioner=ConfectionerSummary(
                id=confectioner.id,
                name=confectioner.name,
                photo=confectioner.photo,
                average_rating=confectioner.average_rating,
                total_products_sold=confectioner.total_products_sold,
            ),
            flavors=[
                FlavorOptionOutput(flavor_id=flavor.id, name=flavor.name, is_available=link.is_available)
                for link, flavor in flavors
            ],
            sizes=[
                SizeOptionOutput(
                    size_id=size.id,
                    name=size.name,
                    description=size.description,
                    price_modifier_cents=size.price_modifier_cents,
                    is_available=link.is_available,
                )
                for link, size in sizes
            ],
            reviews=[
                ReviewOutput(
                    id=r.id,
                    customer_name=r.customer_name,
                    rating=r.rating,
                    comment=r.comment,
                    created_at=r.created_at,
                )
                for r in reviews
            ],
        )

    # =========================================================================
    # Related products
    # =========================================================================

    def get_related_products(
        self,
        tenant_id: int | None,
        product_id: int | None,
        limit: int = Pagination.DEFAULT_RELATED_LIMIT,
    ) -> list[RelatedProductOutput]:
        """
        Products related to a reference product.

        Same-confectioner candidates rank first, then same-category ones,
        each by rating and review count. When fewer than `limit` exist, the
        result is topped up with the tenant's best-rated remaining products.
        Never includes the reference product or duplicates.

        Raises:
            ValidationError: Missing tenant/product id or limit below 1.
            ProductNotFoundError: Reference product missing, soft-deleted or in another tenant.
        """
        tenant_id = self.require_tenant(tenant_id)
        product_id = self.require(product_id, "product_id", ErrorCode.PRODUCT_REQUIRED)
        if limit < 1:
            raise ValidationError(
                f"Limit must be at least 1, got {limit}",
                code=ErrorCode.INVALID_LIMIT,
                limit=limit,
            )

        with translate_store_errors(self._db, "get related products", tenant_id=tenant_id):
            reference = self._products.find_by_id(tenant_id, product_id)
            if reference is None:
                raise ProductNotFoundError(product_id, tenant_id=tenant_id)

            related = list(self._products.find_related(tenant_id, reference, limit))

            remaining = limit - len(related)
            if remaining > 0:
                backfill = self._products.find_popular(
                    tenant_id,
                    reference,
                    exclude_ids=[p.id for p in related],
                    limit=remaining,
                )
                related.extend(backfill)

        logger.debug(
            "Related products resolved",
            tenant_id=tenant_id,
            product_id=product_id,
            returned=len(related),
            limit=limit,
        )

        return [
            RelatedProductOutput(
                id=p.id,
                name=p.name,
                base_price_cents=p.base_price_cents,
                promotional_price_cents=p.promotional_price_cents,
                main_image=p.main_image,
                average_rating=p.average_rating,
                total_reviews=p.total_reviews,
                confectioner_name=p.confectioner.name,
            )
            for p in related
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _parse_sort(sort_by: SortOption | str | None) -> SortOption:
        if sort_by is None:
            return SortOption.RELEVANCE
        try:
            return SortOption(sort_by)
        except ValueError:
            raise ValidationError(
                f"Unknown sort option '{sort_by}'",
                sort_by=sort_by,
            ) from None

    @staticmethod
    def _to_summary(product: Product) -> ProductSummary:
        return ProductSummary(
            id=product.id,
            name=product.name,
            description=product.description,
            base_price_cents=product.base_price_cents,
            promotional_price_cents=product.promotional_price_cents,
            main_image=product.main_image,
            average_rating=product.average_rating,
            total_reviews=product.total_reviews,
            preparation_time=product.preparation_time,
            is_available=product.is_available,
            confectioner_name=product.confectioner.name,
            category_name=product.category.name,
        )
