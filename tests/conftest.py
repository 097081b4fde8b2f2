import os

# securepay.main builds its default app from the environment on import
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-the-suite")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from securepay.config import Settings
from securepay.database import Base
from securepay.main import create_app
from securepay.models import PaymentStatus
from securepay.payments import FixedOutcome


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def session_factory(database_url):
    engine = create_engine(database_url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_client(session_factory, database_url):
    """Build a TestClient on the test database whose payments resolve with the given outcome."""
    opened = []

    def _make(outcome=None, **client_kwargs):
        settings = Settings(database_url=database_url, jwt_secret=os.environ["JWT_SECRET"])
        fastapi_app = create_app(settings, outcome=outcome or FixedOutcome(PaymentStatus.SUCCESS))
        client = TestClient(fastapi_app, **client_kwargs)
        client.__enter__()
        opened.append(client)
        return client

    yield _make

    for client in opened:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def login():
    """Register (if needed) and log in, returning an Authorization header."""
    def _login(client, username="user1", password="pass123"):
        client.post("/auth/register", json={"username": username, "password": password})
        response = client.post("/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200
        return {"Authorization": f"Bearer {response.text}"}
    return _login


@pytest.fixture
def auth_headers(client, login):
    return login(client)
