"""
Centralized constants for the storefront core.
Avoid magic strings and repeated limits across services and schemas.

Usage:
    from shared.config.constants import SortOption, Pagination, CartLimits

    if page_size not in Pagination.ALLOWED_PAGE_SIZES:
        page_size = Pagination.DEFAULT_PAGE_SIZE
"""

from enum import Enum
from typing import Final


# =============================================================================
# Catalog Sorting
# =============================================================================


class SortOption(str, Enum):
    """Catalog listing sort keys."""

    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    TOP_RATED = "top_rated"
    BEST_SELLERS = "best_sellers"
    NEWEST = "newest"


# =============================================================================
# Pagination
# =============================================================================


class Pagination:
    """Catalog pagination constants."""

    DEFAULT_PAGE: Final[int] = 1
    DEFAULT_PAGE_SIZE: Final[int] = 12
    # Any other requested size silently falls back to DEFAULT_PAGE_SIZE
    ALLOWED_PAGE_SIZES: Final[frozenset[int]] = frozenset({12, 24, 36})

    DEFAULT_RELATED_LIMIT: Final[int] = 4


# =============================================================================
# Cart
# =============================================================================


class CartLimits:
    """Cart line limits."""

    MIN_QUANTITY: Final[int] = 1
    # Ceiling applies to a single request and to the merged line
    MAX_QUANTITY: Final[int] = 10
    MAX_NOTES_LENGTH: Final[int] = 200


# =============================================================================
# Validation Limits
# =============================================================================


class Limits:
    """Validation limits."""

    MAX_SEARCH_TERM_LENGTH: Final[int] = 100
    MIN_RATING: Final[int] = 1
    MAX_RATING: Final[int] = 5


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode:
    """Machine-readable error codes carried by core exceptions."""

    TENANT_REQUIRED: Final[str] = "idAccountRequired"
    USER_REQUIRED: Final[str] = "idUserRequired"
    PRODUCT_REQUIRED: Final[str] = "idProductRequired"
    FLAVOR_REQUIRED: Final[str] = "flavorRequired"
    SIZE_REQUIRED: Final[str] = "sizeRequired"
    INVALID_QUANTITY: Final[str] = "invalidQuantity"
    INVALID_PAGE_NUMBER: Final[str] = "invalidPageNumber"
    INVALID_LIMIT: Final[str] = "invalidLimit"
    VALIDATION_FAILED: Final[str] = "validationFailed"

    PRODUCT_NOT_FOUND: Final[str] = "productNotFound"
    NOT_FOUND: Final[str] = "notFound"

    PRODUCT_NOT_AVAILABLE: Final[str] = "productNotAvailable"
    FLAVOR_NOT_AVAILABLE: Final[str] = "flavorNotAvailable"
    SIZE_NOT_AVAILABLE: Final[str] = "sizeNotAvailable"
    QUANTITY_EXCEEDS_LIMIT: Final[str] = "quantityExceedsLimit"
    BUSINESS_RULE: Final[str] = "businessRuleViolated"

    STORE_UNAVAILABLE: Final[str] = "storeUnavailable"
    STORE_CONFLICT: Final[str] = "storeConflict"
