import os

# Must be set before the package reads its settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from hospital_booking.main import create_app
from hospital_booking.core.config import Settings
from hospital_booking.core.database import get_db, Base
from hospital_booking.core.security import UserRole
from hospital_booking.schemas.auth import UserRegister
from hospital_booking.services.auth_service import AuthService

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

# Test data
ALICE = {"name": "Alice", "email": "alice@example.com", "password": "pw123"}
BOB = {"name": "Bob", "email": "bob@example.com", "password": "pw654321"}
ADMIN = {"name": "Admin", "email": "admin@example.com", "password": "AdminPass123"}

HOSPITAL = {
    "ordinal": 121,
    "name": "Happy Hospital",
    "address": "121 Sukhumvit Road",
    "district": "Bang Na",
    "province": "Bangkok",
    "postal_code": "10110",
    "tel": "02-2187000",
    "region": "Bangkok",
}

@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(test_db):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def settings():
    return Settings()

@pytest.fixture
def app(test_db, settings):
    application = create_app(settings)
    application.dependency_overrides[get_db] = override_get_db
    return application

@pytest.fixture
def client(app):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def register(client):
    """Register a user and return bearer headers; the session cookie is dropped."""
    def _register(user_data=ALICE):
        response = client.post("/api/v1/auth/register", json=user_data)
        assert response.status_code == 201, response.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _register

@pytest.fixture
def user_headers(register):
    return register(ALICE)

@pytest.fixture
def admin_headers(client, db_session):
    AuthService(db_session).register_user(UserRegister(**ADMIN), role=UserRole.ADMIN)
    response = client.post(
        "/api/v1/auth/login",
        json={"email": ADMIN["email"], "password": ADMIN["password"]}
    )
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}

@pytest.fixture
def create_hospital(client, admin_headers):
    def _create(**overrides):
        payload = {**HOSPITAL, **overrides}
        response = client.post("/api/v1/hospitals", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create
