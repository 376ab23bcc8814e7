from sqlalchemy import Column, Integer, CheckConstraint, Float, DateTime, ForeignKey, Text, String, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from core.database import Base
from core.time_utils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    username = Column(String(100), unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    avatar_url = Column(Text, nullable=True)
    age = Column(Integer, nullable=False)
    gender = Column(String(20), nullable=False)  # 'muski', 'zenski', 'drugo'
    fitness_level = Column(String(20), nullable=False)  # 'pocetni', 'srednji', 'napredni'
    pace_min_per_km = Column(Float, nullable=False)
    role = Column(String(20), default="runner", nullable=False)  # 'admin', 'coach', 'runner'
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("age BETWEEN 10 AND 120", name="ck_users_age_range"),
        CheckConstraint("pace_min_per_km > 0", name="ck_users_pace_positive"),
        CheckConstraint("role IN ('admin', 'coach', 'runner')", name="ck_users_role_enum"),
        CheckConstraint("gender IN ('muski', 'zenski', 'drugo')", name="ck_users_gender_enum"),
        CheckConstraint(
            "fitness_level IN ('pocetni', 'srednji', 'napredni')",
            name="ck_users_fitness_level_enum",
        ),
    )


class UserSession(Base):
    """Opaque login session. Valid while expires_at is strictly in the future."""
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(64), unique=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_sessions_user_id", "user_id"),
        Index("ix_sessions_expires_at", "expires_at"),
    )


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    city = Column(String(100), nullable=False)
    municipality = Column(String(100), nullable=False)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint("city", "municipality", name="uq_locations_city_municipality"),
    )


class Run(Base):
    __tablename__ = "runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(120), nullable=False)
    route = Column(Text, nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    distance_km = Column(Float, nullable=False)
    pace_min_per_km = Column(Float, nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    host_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    location = relationship("Location")
    host = relationship("User")

    __table_args__ = (
        CheckConstraint("distance_km > 0", name="ck_runs_distance_positive"),
        CheckConstraint("pace_min_per_km > 0", name="ck_runs_pace_positive"),
        Index("ix_runs_starts_at", "starts_at"),
        Index("ix_runs_host_user_id", "host_user_id"),
    )


class RunMembership(Base):
    """A user taking part in a run. The host gets one at creation."""
    __tablename__ = "run_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(Integer, ForeignKey("runs.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("run_id", "user_id", name="uq_run_users_run_user"),
        Index("ix_run_users_user_id", "user_id"),
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content = Column(Text, nullable=False)
    sent_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    run_id = Column(Integer, ForeignKey("runs.id"), nullable=False)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    sender = relationship("User", foreign_keys=[from_user_id])

    __table_args__ = (
        Index("ix_messages_run_id_sent_at", "run_id", "sent_at"),
    )


class Rating(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(Integer, ForeignKey("runs.id"), nullable=False)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)  # always the run's host
    score = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("run_id", "from_user_id", name="uq_ratings_run_from_user"),
        CheckConstraint("score BETWEEN 1 AND 5", name="ck_ratings_score_range"),
        Index("ix_ratings_to_user_id", "to_user_id"),
    )
