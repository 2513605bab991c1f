"""
Pricing and pagination helpers shared by the catalog and cart services.

All amounts are integer cents.
"""

import math

from shared.config.constants import Pagination
from shared.config.logging import get_logger
from storefront.models import Product, Size

logger = get_logger(__name__)


def unit_price_cents(product: Product, size: Size) -> int:
    """
    Current unit price for a product in a size.

    Promotional price overrides base price; the size's modifier is added on top.
    """
    return product.effective_price_cents + size.price_modifier_cents


def line_total_cents(unit_price: int, quantity: int) -> int:
    """Line total is always recomputed from unit price, never accumulated."""
    return unit_price * quantity


def normalize_page_size(page_size: int | None) -> int:
    """
    Page size from the supported set, anything else becomes the default.
    Unsupported sizes are not an error.
    """
    if page_size in Pagination.ALLOWED_PAGE_SIZES:
        return page_size
    if page_size is not None:
        logger.debug(
            "Unsupported page size, using default",
            requested=page_size,
            page_size=Pagination.DEFAULT_PAGE_SIZE,
        )
    return Pagination.DEFAULT_PAGE_SIZE


def page_offset(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def total_pages(total_count: int, page_size: int) -> int:
    """ceil(total_count / page_size); zero matches means zero pages."""
    return math.ceil(total_count / page_size)
