"""
Pytest configuration and fixtures

Every test runs against a fresh in-memory SQLite schema: tables are created
before the test and dropped after it, so nothing leaks between tests.
"""
import os
import sys
from datetime import timedelta
from itertools import count

# Settings are read at import time; point them at the test database first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FORMAT"] = "text"
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["RECAPTCHA_SECRET_KEY"] = ""
os.environ["SENTRY_DSN"] = ""

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

from core.database import Base, SessionLocal, engine, get_db
from core.rate_limit import get_rate_limiter
from core.security import get_password_hash
from core.time_utils import utcnow
from main import app
from models import Location, Run, RunMembership, User
from services.sessions import create_session

DEFAULT_PASSWORD = "Trail2run"

# Hashing is the slow part of building users; every fixture user shares one.
_DEFAULT_PASSWORD_HASH = get_password_hash(DEFAULT_PASSWORD)


def _override_get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture(autouse=True)
def _fresh_schema():
    """Create all tables before each test and drop them afterwards."""
    Base.metadata.create_all(bind=engine)
    get_rate_limiter().reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """A session on the test database. Fixtures commit through it."""
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def client():
    """Anonymous client with its own cookie jar."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db_session):
    """Factory: insert a user directly. All share DEFAULT_PASSWORD."""
    seq = count(1)

    def _make(role="runner", username=None, email=None, **overrides):
        n = next(seq)
        fields = {
            "email": email or f"runner{n}@example.com",
            "username": username or f"runner{n}",
            "password_hash": _DEFAULT_PASSWORD_HASH,
            "age": 30,
            "gender": "zenski",
            "fitness_level": "srednji",
            "pace_min_per_km": 5.5,
            "role": role,
        }
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def login_client():
    """
    Factory: a TestClient logged in as `user` through POST /auth/login.

    Each call returns a new client, so each user keeps their own cookie jar.
    """
    clients = []

    def _login(user, password=DEFAULT_PASSWORD):
        c = TestClient(app)
        resp = c.post("/auth/login", json={"email": user.email, "password": password})
        assert resp.status_code == 200, resp.text
        assert c.cookies.get("runly_session")
        clients.append(c)
        return c

    yield _login

    for c in clients:
        c.close()


@pytest.fixture
def bearer_headers(db_session):
    """Factory: Authorization header for a fresh session, skipping the login endpoint."""
    def _headers(user):
        issued = create_session(db_session, user.id)
        return {"Authorization": f"Bearer {issued.token}"}

    return _headers


@pytest.fixture
def make_run(db_session):
    """Factory: insert a run hosted by `host`, with the host and `participants` joined."""
    def _make(host, participants=(), title="Sunday long run", city="Beograd",
              municipality="Zvezdara", starts_in=timedelta(days=2), pace=5.5, distance=12.0):
        location = (
            db_session.query(Location)
            .filter(Location.city == city, Location.municipality == municipality)
            .first()
        )
        if location is None:
            location = Location(city=city, municipality=municipality)
            db_session.add(location)
            db_session.flush()

        run = Run(
            title=title,
            route="Ada Ciganlija loop",
            starts_at=utcnow() + starts_in,
            distance_km=distance,
            pace_min_per_km=pace,
            location_id=location.id,
            host_user_id=host.id,
        )
        db_session.add(run)
        db_session.flush()
        db_session.add(RunMembership(run_id=run.id, user_id=host.id))
        for user in participants:
            db_session.add(RunMembership(run_id=run.id, user_id=user.id))
        db_session.commit()
        db_session.refresh(run)
        return run

    return _make


@pytest.fixture
def register_payload():
    """Valid POST /auth/register body. Override keys per test."""
    def _payload(**overrides):
        body = {
            "email": "maja@example.com",
            "password": DEFAULT_PASSWORD,
            "username": "maja",
            "age": 28,
            "gender": "zenski",
            "fitness_level": "napredni",
            "pace_min_per_km": 4.9,
        }
        body.update(overrides)
        return body

    return _payload


@pytest.fixture
def run_payload():
    """Valid POST /runs body starting tomorrow."""
    def _payload(**overrides):
        body = {
            "title": "Morning tempo",
            "route": "Kalemegdan to Usce and back",
            "starts_at": (utcnow() + timedelta(days=1)).isoformat(),
            "distance_km": 10,
            "pace_min_per_km": 5.0,
            "city": "Beograd",
            "municipality": "Stari Grad",
        }
        body.update(overrides)
        return body

    return _payload
