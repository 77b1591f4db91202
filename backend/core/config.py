from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic.aliases import AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_DIR = Path(__file__).resolve().parents[1]

SEMESTERS = ("fall", "spring", "summer")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=BACKEND_DIR / ".env", env_file_encoding="utf-8")

    database_url: str

    # Auth (tokens are issued by the campus auth service; we only verify them)
    jwt_secret_key: str = Field(
        validation_alias=AliasChoices("jwt_secret_key", "jwt_secret", "JWT_SECRET_KEY", "JWT_SECRET")
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias=AliasChoices("jwt_algorithm", "JWT_ALGORITHM"))

    # Runtime
    environment: str = Field(default="development", validation_alias=AliasChoices("environment", "ENVIRONMENT"))
    frontend_origin: str = Field(
        default="http://localhost:5173",
        validation_alias=AliasChoices("frontend_origin", "FRONTEND_ORIGIN"),
    )

    # Enrollment policy
    # None means "strict in production, warn-only elsewhere".
    enforce_prerequisites: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("enforce_prerequisites", "ENFORCE_PREREQUISITES"),
    )
    drop_period_weeks: int = Field(
        default=4,
        ge=0,
        validation_alias=AliasChoices("drop_period_weeks", "DROP_PERIOD_WEEKS"),
    )

    # Scheduler search budget (unset = unbounded)
    scheduler_max_steps: int | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("scheduler_max_steps", "SCHEDULER_MAX_STEPS"),
    )
    scheduler_max_time_seconds: float | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("scheduler_max_time_seconds", "SCHEDULER_MAX_TIME_SECONDS"),
    )

    # Optional term override for auto-enrollment; derived from the date otherwise.
    current_semester: str | None = Field(
        default=None,
        validation_alias=AliasChoices("current_semester", "CURRENT_SEMESTER"),
    )
    current_year: int | None = Field(
        default=None,
        validation_alias=AliasChoices("current_year", "CURRENT_YEAR"),
    )

    @field_validator("frontend_origin")
    @classmethod
    def _normalize_frontend_origin(cls, v: str) -> str:
        # Starlette CORS expects the Origin to match exactly (no trailing slash).
        return v.strip().rstrip("/")

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, v: str) -> str:
        return (v or "development").strip().lower()

    @field_validator("current_semester")
    @classmethod
    def _normalize_current_semester(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().lower()
        if not v:
            return None
        if v not in SEMESTERS:
            raise ValueError("CURRENT_SEMESTER must be 'fall', 'spring', or 'summer'")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def prerequisites_enforced(self) -> bool:
        if self.enforce_prerequisites is None:
            return self.is_production
        return bool(self.enforce_prerequisites)


settings = Settings()
