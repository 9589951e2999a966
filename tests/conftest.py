import os

# Must be set before the application settings are imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from medbook.main import app
from medbook.core.database import Base, engine_options, get_db, get_redis, init_db

# Create test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, **engine_options(SQLALCHEMY_DATABASE_URL))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class InMemoryRedis:
    """The subset of the redis client used by the rate limiter."""

    def __init__(self):
        self.data = {}

    def setex(self, key, time, value):
        self.data[key] = str(value)
        return True

    def get(self, key):
        return self.data.get(key)

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])


app.dependency_overrides[get_db] = override_get_db

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(scope="function")
def test_db():
    init_db(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis():
    redis_client = InMemoryRedis()
    app.dependency_overrides[get_redis] = lambda: redis_client
    yield redis_client
    app.dependency_overrides.pop(get_redis, None)


@pytest.fixture
def client(fake_redis):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    """Register an account through the API and return the response body."""
    def _register(name, email, role="patient", specialization=None, password=DEFAULT_PASSWORD):
        payload = {
            "name": name,
            "email": email,
            "password": password,
            "role": role,
        }
        if specialization is not None:
            payload["specialization"] = specialization

        response = client.post("/api/v1/auth/register", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _register


def auth_headers(account):
    return {"Authorization": f"Bearer {account['token']}"}


@pytest.fixture
def headers():
    return auth_headers
