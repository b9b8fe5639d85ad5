import mongomock
import pytest
from fastapi.testclient import TestClient

import services
from config import Settings
from database import Store
from main import create_app
from validators import LoginInput, RegisterInput

ADMIN = {"full_name": "Admin User", "email": "admin@inventory.io", "password": "admin12345"}


@pytest.fixture
def store():
    s = Store(mongomock.MongoClient()["inventory_test"])
    s.ensure_indexes()
    return s


@pytest.fixture
def settings():
    return Settings(app_env="test", jwt_secret="test-secret")


@pytest.fixture
def client(store, settings):
    return TestClient(create_app(store=store, settings=settings))


@pytest.fixture
def admin(store):
    return services.create_admin(store, RegisterInput(**ADMIN))


@pytest.fixture
def admin_headers(store, settings, admin):
    tokens = services.login(store, settings, LoginInput(email=ADMIN["email"], password=ADMIN["password"]))
    return {"Authorization": f"Bearer {tokens['access_token']}"}
