"""
Base Service Class.

Architecture:
    Caller (validated parameters + tenant/user identity)
        ↓
    Service (business rules, unit of work)  ← YOU ARE HERE
        ↓
    Repository (tenant-scoped data access)
        ↓
    Model (entity)

Services re-check required identifiers even though the request layer has
already validated them; a missing tenant must never reach a query.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from shared.config.constants import ErrorCode
from shared.config.logging import get_logger
from shared.utils.exceptions import MissingFieldError

logger = get_logger(__name__)


class BaseService:
    """Common infrastructure for domain services (session access, required-field checks)."""

    def __init__(self, db: Session):
        self._db = db

    @property
    def db(self) -> Session:
        """Database session."""
        return self._db

    @staticmethod
    def require(value: Any, field: str, code: str, **log_context: Any) -> Any:
        """Return value, or raise MissingFieldError when it is absent."""
        if value is None:
            raise MissingFieldError(field, code=code, **log_context)
        return value

    def require_tenant(self, tenant_id: int | None) -> int:
        return self.require(tenant_id, "tenant_id", ErrorCode.TENANT_REQUIRED)
