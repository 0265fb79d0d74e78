# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

USER_KEY = "user"


class Identity(BaseModel):
    """Authenticated identity stored in a session under ``USER_KEY``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    account_id: str = Field(min_length=1, max_length=128)
    display_name: str | None = Field(None, max_length=256)
    issued_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("account_id", mode="before")
    @classmethod
    def _coerce_account_id(cls, value: Any) -> Any:
        # Collaborators may hand out numeric ids; bools are never ids.
        if isinstance(value, bool):
            raise ValueError("account_id must be a string or integer")
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("issued_at", mode="after")
    @classmethod
    def _require_tz(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def parse(cls, value: Any) -> Identity | None:
        """Return the identity, or None for anything ill-formed."""
        if not isinstance(value, dict):
            return None
        try:
            return cls.model_validate(value)
        except ValidationError:
            return None

    def to_session_value(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


@dataclass(slots=True)
class Session:
    id: str
    created_at: datetime
    last_accessed_at: datetime
    expires_at: datetime
    data: dict[str, Any] = field(default_factory=dict)
    is_new: bool = False
    modified: bool = False
    invalidated: bool = False
    persisted: bool = False
    write_failed: bool = False
    previous_id: str | None = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value
        self.modified = True

    def pop(self, key: str, default: Any = None) -> Any:
        if key in self.data:
            self.modified = True
        return self.data.pop(key, default)

    def clear(self) -> None:
        if self.data:
            self.modified = True
        self.data.clear()

    @property
    def identity(self) -> Identity | None:
        return Identity.parse(self.data.get(USER_KEY))

    @property
    def needs_persist(self) -> bool:
        if self.invalidated or self.persisted or self.write_failed:
            return False
        return self.modified or not self.is_new


__all__ = ["USER_KEY", "Identity", "Session"]
