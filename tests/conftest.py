import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from filtererp import app
from filtererp.core.security import issue_token_pair
from filtererp.crud.catalog import create_item
from filtererp.crud.users import create_user, session_for
from filtererp.db.session import Base, enable_sqlite_foreign_keys, get_db

# Ensure models are imported so metadata is populated
from filtererp.models import catalog as catalog_model  # noqa: F401
from filtererp.models import inventory as inventory_model  # noqa: F401
from filtererp.models import order as order_model  # noqa: F401
from filtererp.models import purchase as purchase_model  # noqa: F401
from filtererp.models import user as user_model  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def user(db_session):
    return create_user(
        db_session,
        {"email": "warehouse@example.com", "display_name": "Warehouse Lin", "password": "s3cret"},
    )


@pytest.fixture()
def session_ctx(user):
    return session_for(user)


@pytest.fixture()
def product(db_session, session_ctx):
    return create_item(
        db_session,
        "product",
        {"name": "24x24x2", "category": "鐵框", "efficiency": "MERV13", "stock": 10, "safety_stock": 3},
        session_ctx,
    )


@pytest.fixture()
def material(db_session, session_ctx):
    return create_item(
        db_session,
        "material",
        {"name": "Glass fibre roll", "stock": 0, "safety_stock": 5},
        session_ctx,
    )


@pytest.fixture()
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def auth_headers(user):
    pair = issue_token_pair(subject=user.id)
    return {"Authorization": f"Bearer {pair.access_token}"}
