"""
Shared fixtures for the Market Yard test suite.

Every test gets a fresh in-memory SQLite database; nothing touches the
file configured in settings.
"""
import os

# Point the default engine at memory before marketyard reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")

import logging
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketyard.database import enable_sqlite_savepoints, get_db, init_db
from marketyard.schemas import PriceActor
from marketyard.services import accounts, catalog
from marketyard.services.storage import EntityStore

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = enable_sqlite_savepoints(create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ))
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Database session bound to the in-memory engine."""
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db_session):
    return EntityStore(db_session)


@pytest.fixture
def client(db_session):
    """API client whose requests share the test session."""
    from marketyard.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ============== Entity factories ==============

def ts(days_ago: float = 0) -> datetime:
    """A fixed point in time, ``days_ago`` days before NOW."""
    return NOW - timedelta(days=days_ago)


def make_user(store, phone="9876543210", name="Test User", user_type="end_user", **extra):
    data = {
        "id": f"user_{phone}",
        "phone_number": phone,
        "name": name,
        "user_type": user_type,
        "created_at": ts(30),
        "updated_at": ts(30),
    }
    data.update(extra)
    return store.save(data, "users")


def make_shop(store, shop_id, owner_id="user_owner", name=None, **extra):
    data = {
        "id": shop_id,
        "owner_id": owner_id,
        "shop_name": name or f"Shop {shop_id}",
        "category": "mixed",
        "created_at": ts(30),
        "updated_at": ts(30),
    }
    data.update(extra)
    return store.save(data, "shops")


def make_product(store, product_id, name=None, category="vegetables", unit="kg", **extra):
    data = {
        "id": product_id,
        "name": name or product_id.title(),
        "category": category,
        "unit": unit,
        "created_at": ts(30),
    }
    data.update(extra)
    return store.save(data, "products")


def make_listing(store, listing_id, shop_id, product_id, price=None, is_available=True, **extra):
    data = {
        "id": listing_id,
        "shop_id": shop_id,
        "product_id": product_id,
        "is_available": is_available,
        "current_price": price,
        "created_at": ts(30),
        "updated_at": ts(30),
    }
    data.update(extra)
    return store.save(data, "shop_products")


def make_update(store, update_id, listing_id, price, days_ago=0, **extra):
    data = {
        "id": update_id,
        "shop_product_id": listing_id,
        "price": price,
        "updated_by_type": "shop_owner",
        "updated_by_id": "user_owner",
        "created_at": ts(days_ago),
    }
    data.update(extra)
    return store.save(data, "price_updates")


@pytest.fixture
def market(store):
    """Three shops selling tomatoes at 80 / 100 / 120, plus apples and onions.

    Built through the catalog services, so every price comes from a price
    update.
    """
    owners = [
        accounts.create_user(store, f"98765432{i:02d}", f"Owner {i}", "shop_owner")
        for i in range(1, 4)
    ]
    buyer = accounts.create_user(store, "9123456789", "Buyer", "end_user")

    shops = [
        catalog.create_shop(store, owner.id, f"{name} Traders", "mixed", city="Pune")
        for owner, name in zip(owners, ["Asha", "Bala", "Chetan"])
    ]
    tomato = catalog.create_product(store, "Tomato", "vegetables", "kg")
    apple = catalog.create_product(store, "Apple", "fruits", "kg")
    onion = catalog.create_product(store, "Onion", "vegetables", "kg")

    listings = {}
    for shop, price in zip(shops, [80, 100, 120]):
        listings[(shop.id, tomato.id)] = catalog.add_product_to_shop(store, shop.id, tomato.id, price=price)
    listings[(shops[0].id, apple.id)] = catalog.add_product_to_shop(store, shops[0].id, apple.id, price=150)
    listings[(shops[1].id, onion.id)] = catalog.add_product_to_shop(store, shops[1].id, onion.id)

    return {
        "owners": owners,
        "buyer": buyer,
        "shops": shops,
        "tomato": tomato,
        "apple": apple,
        "onion": onion,
        "listings": listings,
        "staff": PriceActor(id="staff_1", role="staff"),
    }
