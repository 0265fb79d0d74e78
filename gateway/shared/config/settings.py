# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import sys
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_INSECURE_SECRETS = ("dev", "development", "test", "changeme", "")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class _Section(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        validate_by_name=True,
    )


class DatabaseConfig(_Section):
    url: str = Field("sqlite:///gateway.db", alias="DATABASE_URL")
    pool_size: int = Field(10, ge=1, alias="DATABASE_POOL_SIZE")
    max_overflow: int = Field(5, ge=0, alias="DATABASE_MAX_OVERFLOW")
    pool_timeout: float = Field(5.0, ge=0.1, alias="DATABASE_POOL_TIMEOUT")


class SessionConfig(_Section):
    secret: str = Field("dev", alias="SESSION_SECRET")
    cookie_name: str = Field("sid", min_length=1, alias="SESSION_COOKIE_NAME")
    idle_timeout: int = Field(60 * 60 * 24 * 14, ge=60, alias="SESSION_IDLE_TIMEOUT")
    store_backend: str = Field("sqlalchemy", alias="SESSION_STORE_BACKEND")
    store_timeout: float = Field(2.0, gt=0, alias="SESSION_STORE_TIMEOUT")
    store_retries: int = Field(1, ge=0, alias="SESSION_STORE_RETRIES")

    @field_validator("store_backend", mode="before")
    @classmethod
    def _parse_backend(cls, value: str) -> str:
        backend = str(value).strip().lower()
        if backend not in ("sqlalchemy", "memory"):
            raise ValueError("SESSION_STORE_BACKEND must be 'sqlalchemy' or 'memory'")
        return backend


class DownstreamConfig(_Section):
    payments_url: str = Field("http://localhost:8081", alias="PAYMENTS_SERVICE_URL")
    users_url: str = Field("http://localhost:8082", alias="USERS_SERVICE_URL")
    timeout: float = Field(10.0, gt=0, alias="DOWNSTREAM_TIMEOUT")


class ResilienceConfig(_Section):
    backoff_base: float = Field(0.05, ge=0.0, alias="RESILIENCE_BACKOFF_BASE")
    backoff_cap: float = Field(1.0, ge=0.0, alias="RESILIENCE_BACKOFF_CAP")
    circuit_fail_threshold: int = Field(5, ge=1, alias="RESILIENCE_CIRCUIT_THRESHOLD")
    circuit_reset_timeout: float = Field(30.0, ge=0.0, alias="RESILIENCE_CIRCUIT_RESET")


class SecurityConfig(_Section):
    # Cookie security
    cookie_secure: bool = Field(True, alias="COOKIE_SECURE")
    cookie_samesite: str = Field("Lax", alias="COOKIE_SAMESITE")
    cookie_domain: str | None = Field(None, alias="COOKIE_DOMAIN")

    # CORS, exact values only
    allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field((), alias="ALLOWED_ORIGINS")

    # Rate limiting
    enable_rate_limit: bool = Field(True, alias="ENABLE_RATE_LIMIT")
    rate_limit_requests: int = Field(10, ge=1, alias="RL_LIMIT")
    rate_limit_window: float = Field(60.0, gt=0, alias="RL_WINDOW")

    # HSTS
    enable_hsts: bool = Field(False, alias="ENABLE_HSTS")

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: str | list[str] | tuple[str, ...]) -> tuple[str, ...]:
        if isinstance(value, str):
            value = value.split(",")
        origins = tuple(origin.strip() for origin in value if origin and origin.strip())
        if "*" in origins:
            raise ValueError("ALLOWED_ORIGINS must list exact origins, '*' is not allowed")
        return origins

    @field_validator("cookie_samesite", mode="before")
    @classmethod
    def _parse_samesite(cls, value: str) -> str:
        normalized = str(value).strip().capitalize()
        if normalized not in ("Lax", "Strict", "None"):
            raise ValueError("COOKIE_SAMESITE must be one of Lax, Strict, None")
        return normalized

    @field_validator("cookie_domain", mode="before")
    @classmethod
    def _parse_domain(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("cookie_secure", "enable_rate_limit", "enable_hsts", mode="before")
    @classmethod
    def _parse_flags(cls, value: str | bool) -> bool:
        return _parse_bool(value)

    @model_validator(mode="after")
    def _samesite_none_requires_secure(self) -> "SecurityConfig":
        if self.cookie_samesite == "None" and not self.cookie_secure:
            raise ValueError("COOKIE_SAMESITE=None requires COOKIE_SECURE=true")
        return self


class AppConfig(BaseSettings):
    app_env: str = Field("development", alias="APP_ENV")
    debug_logging: bool = Field(False, alias="DEBUG_LOGGING")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: Path | None = Field(None, alias="LOG_FILE")
    access_log_file: Path | None = Field(None, alias="ACCESS_LOG_FILE")
    port: int = Field(8080, ge=1, le=65535, alias="PORT")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    downstream: DownstreamConfig = Field(default_factory=DownstreamConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        validate_by_name=True,
    )

    @field_validator("debug_logging", mode="before")
    @classmethod
    def _parse_debug_logging(cls, value: str | bool) -> bool:
        return _parse_bool(value)

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "AppConfig":
        if not self.is_production():
            return self

        if self.session.secret in _INSECURE_SECRETS or len(self.session.secret) < 32:
            print(
                "\n❌ CRITICAL SECURITY ERROR: Insecure SESSION_SECRET detected in production!\n"
                "   SESSION_SECRET must be a strong random value of at least 32 characters.\n"
                "   Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\"\n",
                file=sys.stderr,
            )
            sys.exit(1)

        warnings = []
        if not self.security.cookie_secure:
            warnings.append("⚠️  Cookie Secure flag is DISABLED (use HTTPS!)")
        if not self.security.enable_hsts:
            warnings.append("⚠️  HSTS is DISABLED (recommended for HTTPS)")
        if not self.security.allowed_origins:
            warnings.append("⚠️  ALLOWED_ORIGINS is empty, every cross-origin request is rejected")
        if self.session.store_backend == "memory":
            warnings.append("⚠️  In-memory session store loses sessions on restart")

        if warnings:
            print("\n⚠️  PRODUCTION SECURITY WARNINGS:", file=sys.stderr)
            for warning in warnings:
                print(f"   {warning}", file=sys.stderr)
            print("", file=sys.stderr)

        return self

    def is_production(self) -> bool:
        return self.app_env.lower() in ("production", "prod")


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    return AppConfig()


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "DownstreamConfig",
    "ResilienceConfig",
    "SecurityConfig",
    "SessionConfig",
    "load_config",
]
