"""
Pytest configuration and fixtures.

Chaque test tourne sur une base SQLite en mémoire fraîche (StaticPool:
une seule connexion partagée entre le test et l'app), redis et les APIs
tierces sont remplacés par monkeypatch.
"""
import os
import pathlib
import sys
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("PUBLIC_API_URL", "https://api.relay.test")
os.environ.setdefault("SITE_URL", "https://relay.test")
os.environ.setdefault("ALERT_WEBHOOK_URL", "")

from fastapi.testclient import TestClient  # noqa: E402

from app.core.security import create_access_token, hash_password  # noqa: E402
from app.db import session as db_session  # noqa: E402
from app.db.deps import get_db  # noqa: E402
from app.models import Base, Deal, Project, User, UserRole, ADMIN_ROLE  # noqa: E402
from main import app  # noqa: E402

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# Hash unique pour tous les comptes de test (bcrypt est lent)
TEST_PASSWORD = "s3cret-pass"
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(autouse=True)
def _job_sessions(monkeypatch):
    """Les jobs ouvrent leur session via app.db.session.SessionLocal."""
    monkeypatch.setattr(db_session, "SessionLocal", TestingSessionLocal)


@pytest.fixture(autouse=True)
def _no_rate_limit(request, monkeypatch):
    # Les tests unitaires du rate limiter exercent la vraie fonction.
    if request.module.__name__.endswith("test_rate_limiter"):
        return
    monkeypatch.setattr(
        "app.core.rate_limiter.check_rate_limit",
        lambda key, max_requests, window_seconds: (True, max_requests - 1),
    )


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email="user@example.com", admin=False):
        user = User(email=email, password_hash=_TEST_PASSWORD_HASH)
        db.add(user)
        db.commit()
        if admin:
            db.add(UserRole(user_id=user.id, role=ADMIN_ROLE))
            db.commit()
        return user
    return _make


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def admin_user(make_user):
    return make_user("admin@example.com", admin=True)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def regular_user(make_user):
    return make_user("member@example.com")


@pytest.fixture
def user_headers(regular_user):
    return auth_headers(regular_user)


@pytest.fixture
def make_deal(db):
    def _make(**kwargs):
        values = {
            "title": "Wireless Earbuds Pro",
            "price": 49.99,
            "original_price": 79.99,
            "discount": 38,
            "product_url": "https://www.amazon.com/dp/B0ABCDEF12",
            "image_url": "https://m.media-amazon.com/images/I/earbuds.jpg",
            "category": "Electronics",
            "brand": "Acme",
            "fetched_at": datetime.utcnow(),
            "posted_at": datetime.utcnow(),
        }
        values.update(kwargs)
        deal = Deal(**values)
        db.add(deal)
        db.commit()
        return deal
    return _make


@pytest.fixture
def make_project(db):
    def _make(tracking_code="project-21", is_active=True, slug="my-channel"):
        project = Project(name="My channel", slug=slug, tracking_code=tracking_code, is_active=is_active)
        db.add(project)
        db.commit()
        return project
    return _make


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def password():
    return TEST_PASSWORD
