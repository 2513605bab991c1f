"""
Pytest configuration and fixtures for backend tests.
"""

import itertools
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.models import (
    Base, Tenant, Confectioner, Category, Flavor, Size,
    Product, ProductFlavor, ProductSize, Review,
)


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


class CatalogBuilder:
    """
    Creates committed catalog rows for one tenant.

    Products get strictly increasing created_at values in creation order,
    so "newest" ordering is predictable.
    """

    def __init__(self, db, tenant):
        self.db = db
        self.tenant_id = tenant.id
        self._created = itertools.count(1)

    def _commit(self, entity):
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def confectioner(self, name="Ana's Bakery", **fields):
        return self._commit(Confectioner(tenant_id=self.tenant_id, name=name, **fields))

    def category(self, name="Cakes", **fields):
        return self._commit(Category(tenant_id=self.tenant_id, name=name, **fields))

    def flavor(self, name="Chocolate", **fields):
        return self._commit(Flavor(tenant_id=self.tenant_id, name=name, **fields))

    def size(self, name="Small", price_modifier_cents=0, **fields):
        return self._commit(
            Size(tenant_id=self.tenant_id, name=name, price_modifier_cents=price_modifier_cents, **fields)
        )

    def product(
        self,
        confectioner,
        category,
        name,
        base_price_cents=1000,
        *,
        flavors=(),
        sizes=(),
        **fields,
    ):
        fields.setdefault("created_at", datetime(2024, 1, 1) + timedelta(hours=next(self._created)))
        product = Product(
            tenant_id=self.tenant_id,
            confectioner_id=confectioner.id,
            category_id=category.id,
            name=name,
            base_price_cents=base_price_cents,
            **fields,
        )
        self.db.add(product)
        self.db.flush()
        for flavor in flavors:
            self.offer_flavor(product, flavor, commit=False)
        for size in sizes:
            self.offer_size(product, size, commit=False)
        return self._commit(product)

    def offer_flavor(self, product, flavor, is_available=True, commit=True):
        link = ProductFlavor(
            tenant_id=self.tenant_id,
            product_id=product.id,
            flavor_id=flavor.id,
            is_available=is_available,
        )
        if not commit:
            self.db.add(link)
            return link
        return self._commit(link)

    def offer_size(self, product, size, is_available=True, commit=True):
        link = ProductSize(
            tenant_id=self.tenant_id,
            product_id=product.id,
            size_id=size.id,
            is_available=is_available,
        )
        if not commit:
            self.db.add(link)
            return link
        return self._commit(link)

    def review(self, product, rating=5, customer_name="Laura", **fields):
        return self._commit(
            Review(
                tenant_id=self.tenant_id,
                product_id=product.id,
                customer_name=customer_name,
                rating=rating,
                **fields,
            )
        )

    def soft_delete(self, entity):
        entity.soft_delete()
        self.db.commit()
        return entity


@pytest.fixture
def seed_tenant(db_session):
    """Create a test tenant."""
    tenant = Tenant(name="Dulce Hogar", slug="dulce-hogar")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db_session):
    """Create a second tenant for isolation tests."""
    tenant = Tenant(name="Otra Tienda", slug="otra-tienda")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def builder(db_session, seed_tenant):
    """Catalog builder for the main test tenant."""
    return CatalogBuilder(db_session, seed_tenant)


@pytest.fixture
def other_builder(db_session, other_tenant):
    """Catalog builder for the second tenant."""
    return CatalogBuilder(db_session, other_tenant)


@pytest.fixture
def seed_confectioner(builder):
    return builder.confectioner("Ana's Bakery")


@pytest.fixture
def seed_category(builder):
    return builder.category("Cakes")


@pytest.fixture
def seed_flavors(builder):
    """Chocolate and vanilla flavors."""
    return builder.flavor("Chocolate"), builder.flavor("Vanilla")


@pytest.fixture
def seed_sizes(builder):
    """Small (no modifier) and large (+12.00) sizes."""
    return builder.size("Small", 0), builder.size("Large", 1200, description="Serves 12")
