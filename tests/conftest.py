from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import ecommerce_api.models  # noqa: F401
from ecommerce_api.core.rate_limiter import limiter
from ecommerce_api.database import Base, build_engine, get_db
from ecommerce_api.main import app
from ecommerce_api.models import Category, Product


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of a test."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """Test client whose requests run on the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def category(db):
    category = Category(name="Kitchen", description="Cups and pans")
    db.add(category)
    db.commit()
    return category


@pytest.fixture
def make_product(db, category):
    def _make(name="Mug", price="10.50", stock=10, is_active=True, **kwargs):
        product = Product(
            name=name,
            description=kwargs.pop("description", ""),
            price=Decimal(price),
            stock=stock,
            is_active=is_active,
            category_id=kwargs.pop("category_id", category.id),
            **kwargs,
        )
        db.add(product)
        db.commit()
        return product

    return _make
