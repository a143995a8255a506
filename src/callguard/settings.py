from __future__ import annotations

from typing import Any

import structlog
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, EnvSettingsSource, SettingsConfigDict

from callguard.circuit_breaker.config import CircuitBreakerConfig
from callguard.logging import configure_structlog, get_log_level_value

ENV_PREFIX = "CALLGUARD_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


def dependency_env_prefix(name: str) -> str:
    """Return the environment prefix for per-dependency overrides."""
    normalized = name.strip().upper().replace("-", "_").replace(".", "_")
    if not normalized:
        raise ValueError("dependency name must be non-empty")
    return f"{ENV_PREFIX}{normalized}_"


class GuardSettings(BaseSettings):
    """Call guard thresholds and timeouts read from ``CALLGUARD_*`` variables."""

    model_config = prefixed_settings_config(ENV_PREFIX)

    failure_rate_threshold: float = 50.0
    minimum_volume: int = 20
    window_duration_seconds: float = 10.0
    bucket_width_seconds: float = 1.0
    open_duration_seconds: float = 5.0
    half_open_timeout_seconds: float = 5.0
    call_timeout_seconds: float = 10.0
    fallback_timeout_seconds: float | None = None
    log_level: str = "INFO"

    @classmethod
    def for_dependency(cls, name: str, **overrides: Any) -> GuardSettings:
        """Layer ``CALLGUARD_<NAME>_*`` variables over the global settings.

        Precedence, highest first: keyword overrides, per-dependency
        variables, global ``CALLGUARD_*`` variables, field defaults.
        """
        scoped = EnvSettingsSource(
            cls,
            case_sensitive=False,
            env_prefix=dependency_env_prefix(name),
        )()
        return cls(**{**scoped, **overrides})

    def configure_logging(self) -> structlog.stdlib.BoundLogger:
        """Configure structlog and stdlib logging at ``log_level``."""
        return configure_structlog(log_level=self.log_level)

    @field_validator("failure_rate_threshold", mode="before")
    @classmethod
    def _strip_percent_sign(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().removesuffix("%").strip()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            get_log_level_value(value)
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _validate_guard_settings(self) -> GuardSettings:
        if not 0 < self.failure_rate_threshold <= 100:
            raise ValueError("failure_rate_threshold must be > 0 and <= 100")
        if self.minimum_volume < 1:
            raise ValueError("minimum_volume must be >= 1")
        if self.window_duration_seconds <= 0:
            raise ValueError("window_duration_seconds must be > 0")
        if self.bucket_width_seconds <= 0:
            raise ValueError("bucket_width_seconds must be > 0")
        if self.bucket_width_seconds > self.window_duration_seconds:
            raise ValueError(
                "bucket_width_seconds must be <= window_duration_seconds"
            )
        if self.open_duration_seconds < 0:
            raise ValueError("open_duration_seconds must be >= 0")
        if self.half_open_timeout_seconds <= 0:
            raise ValueError("half_open_timeout_seconds must be > 0")
        if self.call_timeout_seconds <= 0:
            raise ValueError("call_timeout_seconds must be > 0")
        if (
            self.fallback_timeout_seconds is not None
            and self.fallback_timeout_seconds <= 0
        ):
            raise ValueError("fallback_timeout_seconds must be > 0 when provided")
        return self

    def to_config(
        self,
        *,
        ignored_exceptions: tuple[type[Exception], ...] = (),
    ) -> CircuitBreakerConfig:
        """Build an immutable guard configuration from these settings."""
        return CircuitBreakerConfig(
            failure_rate_threshold=self.failure_rate_threshold,
            minimum_volume=self.minimum_volume,
            window_duration=self.window_duration_seconds,
            bucket_width=self.bucket_width_seconds,
            open_duration=self.open_duration_seconds,
            half_open_timeout=self.half_open_timeout_seconds,
            call_timeout=self.call_timeout_seconds,
            fallback_timeout=self.fallback_timeout_seconds,
            ignored_exceptions=ignored_exceptions,
        )
