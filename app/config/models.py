"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class WeightsConfig(BaseModel):
    """Points awarded per matching axis."""

    skills: int = Field(3, ge=1, le=100, description="Points for a skill match")
    sub_skills: int = Field(2, ge=1, le=100, description="Points for a sub-skill match")
    location: int = Field(1, ge=1, le=100, description="Points for a pincode match")


def _checked_duration(value: str, min_seconds: int, max_seconds: int, label: str) -> int:
    try:
        seconds = parse_duration(value)
        validate_duration_range(seconds, min_seconds, max_seconds, label=label)
    except DurationParseError as e:
        raise ValueError(str(e)) from e
    return seconds


class MatchingConfig(BaseModel):
    """Matching engine settings."""

    weights: WeightsConfig = Field(default_factory=WeightsConfig, description="Axis weights")
    swipe_hide_duration: str = Field(
        "120d", description="How long a left swipe hides a post"
    )
    request_timeout: str = Field(
        "10s", description="Budget for one matching request before it is abandoned"
    )
    exclude_expired_posts: bool = Field(
        True, description="Hide posts whose deadline has passed"
    )
    parallel_reads: bool = Field(
        False, description="Read candidates and exclusion sets concurrently"
    )

    # Computed fields
    swipe_hide_seconds: Optional[int] = None
    request_timeout_seconds: Optional[int] = None

    @field_validator("swipe_hide_duration")
    @classmethod
    def validate_swipe_hide_duration(cls, v: str) -> str:
        """Left swipes hide posts for between one day and two years."""
        _checked_duration(v, 86400, 2 * 365 * 86400, "Swipe hide duration")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: str) -> str:
        """Request budget must be between 1 second and 5 minutes."""
        _checked_duration(v, 1, 300, "Request timeout")
        return v

    @model_validator(mode="after")
    def compute_durations(self):
        """Store parsed durations in seconds."""
        self.swipe_hide_seconds = parse_duration(self.swipe_hide_duration)
        self.request_timeout_seconds = parse_duration(self.request_timeout)
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True, "validate_default": True}


class AppConfig(BaseModel):
    """Root configuration object for the post matching engine."""

    matching: MatchingConfig = Field(
        default_factory=MatchingConfig, description="Matching engine settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
