from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_serializer, field_validator, model_validator
from datetime import datetime
from enum import Enum
from typing import Annotated, Optional, List, Literal
from urllib.parse import urlparse

from core.password_policy import validate_password
from core.time_utils import as_utc, isoformat_utc, utcnow


class UserRole(str, Enum):
    ADMIN = "admin"
    COACH = "coach"
    RUNNER = "runner"


class Gender(str, Enum):
    MALE = "muski"
    FEMALE = "zenski"
    OTHER = "drugo"


class FitnessLevel(str, Enum):
    BEGINNER = "pocetni"
    INTERMEDIATE = "srednji"
    ADVANCED = "napredni"


Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
RunTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=120)]
RunRoute = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3)]
PlaceName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
MessageText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)]
Age = Annotated[int, Field(ge=10, le=120)]
Pace = Annotated[float, Field(gt=0)]
Score = Annotated[int, Field(ge=1, le=5)]


def _normalize_avatar_url(value):
    """Blank strings clear the avatar; anything else must be an http(s) URL."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Avatar URL must be a string")
    value = value.strip()
    if not value:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Avatar URL must be an absolute http(s) URL")
    return value


def _require_any_field(model: BaseModel) -> BaseModel:
    if not model.model_fields_set:
        raise ValueError("At least one field must be provided")
    return model


# --- Auth ---

class RegisterRequest(BaseModel):
    """Self-service registration. Admin accounts come from scripts/seed_admin.py."""
    email: EmailStr
    password: str
    username: Username
    avatar_url: Optional[str] = None
    age: Age
    gender: Gender
    fitness_level: FitnessLevel
    pace_min_per_km: Pace
    role: Literal["runner", "coach"] = "runner"

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_policy(cls, v: str) -> str:
        is_valid, errors = validate_password(v)
        if not is_valid:
            raise ValueError("; ".join(errors))
        return v

    @field_validator("avatar_url", mode="before")
    @classmethod
    def avatar_url_format(cls, v):
        return _normalize_avatar_url(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: Annotated[str, StringConstraints(min_length=1)]
    captcha_token: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class AuthUserResponse(BaseModel):
    """Identity returned by login and /auth/me."""
    id: int
    email: str
    username: str
    role: str

    model_config = ConfigDict(from_attributes=True)


# --- Profile ---

class ProfileResponse(BaseModel):
    id: int
    email: str
    username: str
    avatar_url: Optional[str] = None
    age: int
    gender: str
    fitness_level: str
    pace_min_per_km: float
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def serialize_created_at(self, v: datetime) -> str:
        return isoformat_utc(v)


class ProfileUpdateRequest(BaseModel):
    """Partial profile update. Email and role are not editable here."""
    username: Optional[Username] = None
    avatar_url: Optional[str] = None
    age: Optional[Age] = None
    gender: Optional[Gender] = None
    fitness_level: Optional[FitnessLevel] = None
    pace_min_per_km: Optional[Pace] = None

    @field_validator("avatar_url", mode="before")
    @classmethod
    def avatar_url_format(cls, v):
        return _normalize_avatar_url(v)

    @field_validator("username", "age", "gender", "fitness_level", "pace_min_per_km")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @model_validator(mode="after")
    def at_least_one_field(self):
        return _require_any_field(self)


# --- Runs ---

class RunCreateRequest(BaseModel):
    title: RunTitle
    route: RunRoute
    starts_at: datetime
    distance_km: Annotated[float, Field(gt=0)]
    pace_min_per_km: Pace
    city: PlaceName
    municipality: PlaceName
    lat: Optional[Annotated[float, Field(ge=-90, le=90)]] = None
    lng: Optional[Annotated[float, Field(ge=-180, le=180)]] = None

    @field_validator("starts_at")
    @classmethod
    def starts_in_future(cls, v: datetime) -> datetime:
        v = as_utc(v)
        if v <= utcnow():
            raise ValueError("Run must start in the future")
        return v

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be provided together")
        return self


class RunUpdateRequest(BaseModel):
    """Partial update of a run by its host."""
    title: Optional[RunTitle] = None
    route: Optional[RunRoute] = None
    starts_at: Optional[datetime] = None
    distance_km: Optional[Annotated[float, Field(gt=0)]] = None
    pace_min_per_km: Optional[Pace] = None
    city: Optional[PlaceName] = None
    municipality: Optional[PlaceName] = None

    @field_validator("title", "route", "starts_at", "distance_km", "pace_min_per_km", "city", "municipality")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("starts_at")
    @classmethod
    def normalize_starts_at(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def location_fields_together(self):
        _require_any_field(self)
        has_city = "city" in self.model_fields_set
        has_municipality = "municipality" in self.model_fields_set
        if has_city != has_municipality:
            raise ValueError("city and municipality must be changed together")
        return self


# --- Chat ---

class MessageRequest(BaseModel):
    content: MessageText


class MessageResponse(BaseModel):
    id: int
    run_id: int
    content: str
    sent_at: datetime
    from_user_id: int
    from_username: str
    to_user_id: int

    @field_serializer("sent_at")
    def serialize_sent_at(self, v: datetime) -> str:
        return isoformat_utc(v)


# --- Ratings ---

class RatingCreateRequest(BaseModel):
    run_id: Annotated[int, Field(gt=0)]
    score: Score
    comment: MessageText


class RatingUpdateRequest(BaseModel):
    score: Optional[Score] = None
    comment: Optional[MessageText] = None

    @field_validator("score", "comment")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @model_validator(mode="after")
    def at_least_one_field(self):
        return _require_any_field(self)


class RatingResponse(BaseModel):
    id: int
    run_id: int
    score: int
    comment: str
    from_user_id: int
    to_user_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def serialize_created_at(self, v: datetime) -> str:
        return isoformat_utc(v)


class ReceivedRating(BaseModel):
    id: int
    run_id: int
    run_title: str
    score: int
    comment: str
    from_user_id: int
    from_username: str


class UserRatingsSummary(BaseModel):
    to_user_id: int
    average_score: Optional[float] = None
    total_ratings: int
    ratings: List[ReceivedRating]
