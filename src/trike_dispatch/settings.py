from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from trike_dispatch.core.exceptions import ConfigurationError


class DispatchSettings(BaseSettings):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["text", "json"] = "text"
    environment: str = "development"

    model_config = SettingsConfigDict(env_prefix="DISPATCH_")


class DatabaseSettings(BaseSettings):
    url: str = Field(
        default="sqlite:///./db/dispatch.db",
        description="SQLAlchemy database URL for the trip/presence record store",
    )
    sqlite_busy_timeout_seconds: float = Field(default=30.0, ge=0.0, le=300.0)

    model_config = SettingsConfigDict(env_prefix="DB_")


class FareSettings(BaseSettings):
    """Fixed fare schedule. Defaults are the published tricycle tariff."""

    base_fare: float = Field(default=15.00, ge=0.0)
    per_km_rate: float = Field(default=5.00, ge=0.0)
    discount_rate: float = Field(
        default=0.20,
        ge=0.0,
        le=1.0,
        description="Fraction taken off the pre-discount total for senior and PWD riders",
    )

    model_config = SettingsConfigDict(env_prefix="FARE_")


class MatchingSettings(BaseSettings):
    """Nearest-driver search configuration."""

    default_radius_km: float = Field(default=5.0, gt=0.0)
    nearest_radius_km: float = Field(
        default=10.0,
        gt=0.0,
        description="Radius used by the find-nearest fallback",
    )
    max_radius_km: float = Field(
        default=10.0,
        gt=0.0,
        description="Hard cap applied to any requested search radius",
    )
    eta_speed_kmh: float = Field(default=30.0, gt=0.0)
    min_eta_minutes: int = Field(default=1, ge=1)

    model_config = SettingsConfigDict(env_prefix="MATCHING_")

    @model_validator(mode="after")
    def validate_radius_cap(self) -> "MatchingSettings":
        if self.default_radius_km > self.max_radius_km:
            raise ValueError(
                f"default_radius_km ({self.default_radius_km}) exceeds "
                f"max_radius_km ({self.max_radius_km})"
            )
        if self.nearest_radius_km > self.max_radius_km:
            raise ValueError(
                f"nearest_radius_km ({self.nearest_radius_km}) exceeds "
                f"max_radius_km ({self.max_radius_km})"
            )
        return self


class PropagationSettings(BaseSettings):
    poll_interval_seconds: float = Field(
        default=3.0,
        ge=3.0,
        le=5.0,
        description="Re-read interval for observers using the polling transport",
    )
    subscriber_buffer_size: int = Field(
        default=64,
        ge=1,
        le=10_000,
        description="Events buffered per subscriber before the oldest are dropped",
    )

    model_config = SettingsConfigDict(env_prefix="PROPAGATION_")


class RedisSettings(BaseSettings):
    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str = ""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    @model_validator(mode="after")
    def validate_credentials_provided(self) -> "RedisSettings":
        if self.enabled and not self.password:
            raise ValueError("Required credential not provided: REDIS_PASSWORD")
        return self


class APISettings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: str = "http://localhost:8081,http://localhost:19006"

    model_config = SettingsConfigDict(env_prefix="API_")

    @field_validator("cors_origins")
    @classmethod
    def strip_origins(cls, v: str) -> str:
        return ",".join(origin.strip() for origin in v.split(",") if origin.strip())


class Settings(BaseSettings):
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    fare: FareSettings = Field(default_factory=FareSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    propagation: PropagationSettings = Field(default_factory=PropagationSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    api: APISettings = Field(default_factory=APISettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        ConfigurationError: a variable is missing or out of range
    """
    try:
        return Settings()
    except PydanticValidationError as e:
        raise ConfigurationError(
            "Invalid configuration",
            details={"errors": [error["msg"] for error in e.errors()]},
        ) from e
