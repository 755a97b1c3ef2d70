"""Pydantic configuration models for all system settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class CaptureConfig(BaseModel):
    """Daily closing-snapshot capture."""

    enabled: bool = True
    capture_time: str = "23:55"  # HH:MM site-local
    timezone: str = "Africa/Harare"  # IANA tz defining the calendar day
    max_concurrency: int = Field(4, ge=1, le=64)
    run_on_startup: bool = False  # Capture today once at startup (idempotent)

    @field_validator("capture_time")
    @classmethod
    def _check_capture_time(cls, value: str) -> str:
        hours, sep, minutes = value.partition(":")
        if not sep or not hours.isdigit() or not minutes.isdigit():
            raise ValueError("capture_time must be HH:MM")
        if not (0 <= int(hours) <= 23 and 0 <= int(minutes) <= 59):
            raise ValueError("capture_time out of range")
        return value


class SitesConfig(BaseModel):
    """Defaults applied when a device is first seen without a site record."""

    default_fuel_capacity_l: float = Field(2000.0, gt=0)
    default_low_fuel_threshold_pct: float = Field(25.0, ge=0.0, le=100.0)
    device_prefix: str = ""  # Only devices whose id starts with this are captured


class AnalyticsConfig(BaseModel):
    correlation_tolerance_minutes: float = Field(5.0, gt=0)
    power_precedence: Literal["generator_first", "grid_first"] = "generator_first"
    closure_tolerance_hours: float = Field(0.01, ge=0.0)
    max_range_days: int = Field(366, ge=1)  # Longest range computed on demand


class UserConfig(BaseModel):
    username: str
    password_hash: str  # format: "salt_hex:sha256_hex"
    role: str = "viewer"  # "admin" or "viewer"
    enabled: bool = True


class AuthConfig(BaseModel):
    users: list[UserConfig] = Field(default_factory=list)  # Empty = auth disabled
    session_secret: str = ""  # Auto-generated on first authenticated startup
    session_max_age_seconds: int = 86400


class DashboardConfig(BaseModel):
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080
    recent_activity_limit: int = 10
    auth: AuthConfig = AuthConfig()


class ResilienceConfig(BaseModel):
    max_consecutive_failures: int = 3


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file: str = ""


class DBConfig(BaseModel):
    path: str = "fuel_monitor.db"


class AppConfig(BaseModel):
    """Root configuration model containing all system settings."""

    capture: CaptureConfig = CaptureConfig()
    sites: SitesConfig = SitesConfig()
    analytics: AnalyticsConfig = AnalyticsConfig()
    dashboard: DashboardConfig = DashboardConfig()
    resilience: ResilienceConfig = ResilienceConfig()
    logging: LoggingConfig = LoggingConfig()
    db: DBConfig = DBConfig()
