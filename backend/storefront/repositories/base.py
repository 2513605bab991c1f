"""
Base Repository implementation.
Provides common data access patterns with tenant isolation.

Every public method takes tenant_id as its first argument and every
query it builds filters on it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from shared.utils.validators import sanitize_search_term


ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    """Base filters for repository queries."""

    # Soft delete
    include_deleted: bool = False

    # Search
    search: str | None = None

    def __post_init__(self):
        """Validate and normalize filters."""
        self.search = sanitize_search_term(self.search)


class BaseRepository(ABC, Generic[ModelT]):
    """
    Abstract base repository with common operations.

    Subclasses must implement:
    - model: Return the SQLAlchemy model class
    - _base_query(): Return the tenant-scoped base query
    - _apply_filters(): Apply entity-specific filters
    """

    def __init__(self, db: Session):
        self._db = db

    @property
    @abstractmethod
    def model(self) -> type[ModelT]:
        """Return the SQLAlchemy model class."""
        ...

    @abstractmethod
    def _base_query(self, tenant_id: int) -> Select:
        """Return the base query, already restricted to tenant_id."""
        ...

    @abstractmethod
    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        """Apply entity-specific filters to query."""
        ...

    def _filtered_query(self, tenant_id: int, filters: RepositoryFilters | None) -> Select:
        filters = filters or RepositoryFilters()
        query = self._base_query(tenant_id)

        if not filters.include_deleted and hasattr(self.model, "is_active"):
            query = query.where(self.model.is_active.is_(True))

        return self._apply_filters(query, filters)

    def find_all(
        self,
        tenant_id: int,
        filters: RepositoryFilters | None = None,
        *,
        order_by: Sequence[Any] = (),
        options: Sequence[Any] = (),
        offset: int = 0,
        limit: int | None = None,
    ) -> Sequence[ModelT]:
        """
        Find all entities matching filters.

        Args:
            tenant_id: Tenant ID for isolation
            filters: Optional filters
            order_by: Order expressions (applied in sequence)
            options: SQLAlchemy loader options
            offset: Rows to skip
            limit: Maximum rows (None = unbounded)

        Returns:
            List of entities
        """
        query = self._filtered_query(tenant_id, filters)

        if options:
            query = query.options(*options)
        if order_by:
            query = query.order_by(*order_by)

        query = query.offset(max(0, offset))
        if limit is not None:
            query = query.limit(limit)

        return self._db.execute(query).scalars().unique().all()

    def count(
        self,
        tenant_id: int,
        filters: RepositoryFilters | None = None,
    ) -> int:
        """
        Count entities matching filters.

        Counts over the same filtered query find_all() pages through,
        so totals always agree with the listed rows.
        """
        query = self._filtered_query(tenant_id, filters).order_by(None)
        count_query = select(func.count()).select_from(query.subquery())
        return self._db.scalar(count_query) or 0

    def find_by_id(
        self,
        tenant_id: int,
        entity_id: int,
        *,
        include_deleted: bool = False,
        options: Sequence[Any] = (),
    ) -> ModelT | None:
        """
        Find entity by ID within the tenant.

        Args:
            tenant_id: Tenant ID for isolation
            entity_id: Entity ID
            include_deleted: Include soft-deleted entities
            options: SQLAlchemy loader options

        Returns:
            Entity or None
        """
        query = (
            select(self.model)
            .where(
                self.model.id == entity_id,
                self.model.tenant_id == tenant_id,
            )
        )

        if not include_deleted and hasattr(self.model, "is_active"):
            query = query.where(self.model.is_active.is_(True))

        if options:
            query = query.options(*options)

        return self._db.scalar(query)

    def save(self, entity: ModelT) -> ModelT:
        """
        Save entity (insert or update) and flush it to the store.
        Constraint violations surface here as IntegrityError.
        """
        self._db.add(entity)
        self._db.flush()
        return entity
