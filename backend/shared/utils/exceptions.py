"""
Centralized exceptions for the storefront core.
Every failure surfaced by a core operation is one of four named conditions:

- ValidationError: missing/malformed required input (caller's fault, never retried)
- NotFoundError: referenced entity does not exist or is not visible to the tenant
- BusinessRuleError: request is well-formed but violates a catalog/cart rule
- StoreError: transaction/connectivity failure from the persistence layer (retryable)

The core never renders transport responses. ``http_status`` is only a hint
for the calling layer that maps errors to responses.

Usage:
    from shared.utils.exceptions import ProductNotFoundError, QuantityExceedsLimitError

    raise ProductNotFoundError(product_id, tenant_id=tenant_id)
    raise QuantityExceedsLimitError(requested=5, existing=8)
"""

from http import HTTPStatus
from typing import Any

from shared.config.constants import CartLimits, ErrorCode
from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(Exception):
    """
    Base exception with automatic logging.

    All core exceptions inherit from this class to ensure consistent
    logging and a uniform shape (detail, code, http_status, retryable).
    """

    http_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(
        self,
        detail: str,
        code: str,
        log_level: str = "warning",
        **log_context: Any,
    ):
        self.detail = detail
        self.code = code
        self.context = log_context

        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, code=code, status_code=int(self.http_status), **log_context)

        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        """Serializable error payload for the calling layer."""
        return {"code": self.code, "message": self.detail, "retryable": self.retryable}


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(AppException):
    """
    Missing or malformed required input.

    Usage:
        raise ValidationError("Tenant id is required", code=ErrorCode.TENANT_REQUIRED)
    """

    http_status = HTTPStatus.BAD_REQUEST

    def __init__(self, detail: str, code: str = ErrorCode.VALIDATION_FAILED, **log_context: Any):
        super().__init__(detail, code, log_level="warning", **log_context)


class MissingFieldError(ValidationError):
    """A required identifier was not supplied."""

    def __init__(self, field: str, code: str, **log_context: Any):
        super().__init__(f"{field} is required", code=code, field=field, **log_context)


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found or not visible to this tenant.

    Usage:
        raise NotFoundError("Product", 123)
    """

    http_status = HTTPStatus.NOT_FOUND

    def __init__(
        self,
        entity: str,
        entity_id: int | str | None = None,
        code: str = ErrorCode.NOT_FOUND,
        **log_context: Any,
    ):
        if entity_id is not None:
            detail = f"{entity} with id {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            detail,
            code,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class ProductNotFoundError(NotFoundError):
    """
    Product missing, soft-deleted, or owned by another tenant.
    The three cases share one message so callers cannot enumerate tenants.
    """

    def __init__(self, product_id: int | None = None, **log_context: Any):
        super().__init__("Product", product_id, code=ErrorCode.PRODUCT_NOT_FOUND, **log_context)


# =============================================================================
# Business Rule Errors
# =============================================================================


class BusinessRuleError(AppException):
    """
    Request violates a catalog or cart rule.

    Usage:
        raise BusinessRuleError("Flavor is not offered", code=ErrorCode.FLAVOR_NOT_AVAILABLE)
    """

    http_status = HTTPStatus.BAD_REQUEST

    def __init__(self, detail: str, code: str = ErrorCode.BUSINESS_RULE, **log_context: Any):
        super().__init__(detail, code, log_level="warning", **log_context)


class ProductNotAvailableError(BusinessRuleError):
    """Product exists but is unpublished or currently unavailable."""

    def __init__(self, product_id: int, **log_context: Any):
        super().__init__(
            f"Product {product_id} is not available",
            code=ErrorCode.PRODUCT_NOT_AVAILABLE,
            product_id=product_id,
            **log_context,
        )


class FlavorNotAvailableError(BusinessRuleError):
    """Flavor is not offered for this product."""

    def __init__(self, product_id: int, flavor_id: int, **log_context: Any):
        super().__init__(
            f"Flavor {flavor_id} is not available for product {product_id}",
            code=ErrorCode.FLAVOR_NOT_AVAILABLE,
            product_id=product_id,
            flavor_id=flavor_id,
            **log_context,
        )


class SizeNotAvailableError(BusinessRuleError):
    """Size is not offered for this product."""

    def __init__(self, product_id: int, size_id: int, **log_context: Any):
        super().__init__(
            f"Size {size_id} is not available for product {product_id}",
            code=ErrorCode.SIZE_NOT_AVAILABLE,
            product_id=product_id,
            size_id=size_id,
            **log_context,
        )


class QuantityExceedsLimitError(BusinessRuleError):
    """Requested or merged line quantity is above the per-line ceiling."""

    def __init__(self, requested: int, existing: int = 0, **log_context: Any):
        self.requested = requested
        self.existing = existing
        total = requested + existing
        if existing:
            detail = (
                f"Quantity {existing} + {requested} = {total} exceeds "
                f"the limit of {CartLimits.MAX_QUANTITY} per item"
            )
        else:
            detail = f"Quantity {requested} exceeds the limit of {CartLimits.MAX_QUANTITY} per item"

        super().__init__(
            detail,
            code=ErrorCode.QUANTITY_EXCEEDS_LIMIT,
            requested=requested,
            existing=existing,
            **log_context,
        )


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(AppException):
    """
    Persistence layer failure (timeout, deadlock, lost connection,
    unresolved constraint conflict). May succeed if retried.

    Usage:
        raise StoreError("add to cart", code=ErrorCode.STORE_CONFLICT)
    """

    http_status = HTTPStatus.SERVICE_UNAVAILABLE
    retryable = True

    def __init__(self, operation: str, code: str = ErrorCode.STORE_UNAVAILABLE, **log_context: Any):
        self.operation = operation
        detail = f"Store failure during {operation}. Please try again."
        super().__init__(detail, code, log_level="error", operation=operation, **log_context)
