"""
Tests for the admin seed, session purge and migration tooling.
"""
from datetime import timedelta
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import inspect, text

from core.config import settings
from core.database import Base, engine
from core.security import verify_password
from core.time_utils import utcnow
from models import User, UserSession
from schemas import LoginRequest
from services.sessions import create_session

from scripts import purge_expired_sessions as purge_script
from scripts import seed_admin as seed_script


class TestSeedAdmin:
    def test_creates_admin(self, db_session):
        user, created = seed_script.seed_admin(db_session, "Admin@Runly.app", "runly_admin", "Admin123!")

        assert created is True
        assert user.email == "admin@runly.app"
        assert user.role == "admin"
        assert verify_password("Admin123!", user.password_hash)

    def test_promotes_existing_account(self, db_session, make_user):
        existing = make_user(email="boss@example.com", username="boss")

        user, created = seed_script.seed_admin(db_session, "boss@example.com", "the_boss", "N3wSecret")

        assert created is False
        assert user.id == existing.id
        assert user.role == "admin"
        assert user.username == "the_boss"
        assert verify_password("N3wSecret", user.password_hash)
        assert db_session.query(User).count() == 1

    def test_main_uses_settings(self, db_session, monkeypatch, capsys):
        monkeypatch.setattr(settings, "SEED_ADMIN_EMAIL", "ops@runly.app")
        monkeypatch.setattr(settings, "SEED_ADMIN_USERNAME", "ops")
        monkeypatch.setattr(settings, "SEED_ADMIN_PASSWORD", "Sup3rSecret")

        assert seed_script.main() == 0

        user = db_session.query(User).filter(User.email == "ops@runly.app").one()
        assert user.role == "admin"
        assert verify_password("Sup3rSecret", user.password_hash)
        assert "Created admin user" in capsys.readouterr().out

    def test_seeded_admin_can_log_in(self, client, db_session):
        seed_script.seed_admin(db_session, "admin@runly.app", "runly_admin", "Admin123!")

        resp = client.post("/auth/login", json={"email": "admin@runly.app", "password": "Admin123!"})

        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["role"] == "admin"

    def test_default_email_is_accepted_at_login(self):
        assert LoginRequest(email=settings.SEED_ADMIN_EMAIL, password="x").email == settings.SEED_ADMIN_EMAIL

    def test_rejects_email_login_would_refuse(self, db_session):
        with pytest.raises(PydanticValidationError):
            seed_script.seed_admin(db_session, "admin@runly.local", "runly_admin", "Admin123!")

        assert db_session.query(User).count() == 0

    def test_main_fails_on_bad_configured_email(self, db_session, monkeypatch, capsys):
        monkeypatch.setattr(settings, "SEED_ADMIN_EMAIL", "admin@runly.local")

        assert seed_script.main() == 1

        assert db_session.query(User).count() == 0
        assert "could not seed admin" in capsys.readouterr().out


class TestPurgeScript:
    def test_main_removes_expired(self, db_session, make_user, capsys):
        user = make_user()
        create_session(db_session, user.id, now=utcnow() - timedelta(days=30))
        create_session(db_session, user.id)

        assert purge_script.main() == 0

        assert db_session.query(UserSession).count() == 1
        assert "Removed 1 expired sessions" in capsys.readouterr().out


class TestMigrations:
    def test_upgrade_matches_models_and_downgrade_drops(self):
        # Start from an empty database instead of the create_all schema.
        Base.metadata.drop_all(bind=engine)

        cfg = Config()
        cfg.set_main_option("script_location", str(Path(__file__).resolve().parents[1] / "alembic"))

        command.upgrade(cfg, "head")
        tables = set(inspect(engine).get_table_names())
        assert set(Base.metadata.tables) <= tables

        unique_names = {uc["name"] for uc in inspect(engine).get_unique_constraints("ratings")}
        assert "uq_ratings_run_from_user" in unique_names

        command.downgrade(cfg, "base")
        remaining = set(inspect(engine).get_table_names())
        assert remaining.isdisjoint(Base.metadata.tables)

        with engine.begin() as conn:
            conn.execute(text("DROP TABLE IF EXISTS alembic_version"))
