import mongomock
import pytest
from fastapi.testclient import TestClient

import auth
import categories
import config
import main
import products
from schemas import Category, Product


@pytest.fixture
def db():
    return mongomock.MongoClient()["agromonk_test"]


@pytest.fixture
def client(db, tmp_path, monkeypatch):
    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path))
    main.app.dependency_overrides[main.get_db] = lambda: db
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(db):
    admin = auth.init_admin(db, "admin@agromonk.in", "admin-pass")
    return {"Authorization": f"Bearer {auth.create_token(admin)}"}


@pytest.fixture
def customer(db):
    """Registered shopper: (auth headers, user id)."""
    resp = auth.register(db, "Asha", "asha@agromonk.in", "asha-pass")
    return {"Authorization": f"Bearer {resp['access_token']}"}, resp["user"]["id"]


@pytest.fixture
def make_category(db):
    def _make(name, parent=None, **kwargs):
        return categories.create(db, Category(name=name, parent_category=parent, **kwargs))
    return _make


@pytest.fixture
def make_product(db):
    def _make(name, sub_category, **kwargs):
        kwargs.setdefault("price", 100)
        return products.create(db, Product(name=name, sub_category=sub_category, **kwargs))
    return _make


@pytest.fixture
def shelf(make_category):
    """A main category with one sub-category: (main, sub)."""
    main_category = make_category("Vegetables")
    sub = make_category("Tomatoes", parent=main_category["id"])
    return main_category, sub
