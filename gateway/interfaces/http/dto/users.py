from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CredentialsDTO(BaseModel):
    # Extra fields are passed through to the users service untouched.
    model_config = ConfigDict(extra="allow")

    username: str = Field(min_length=1, max_length=128)
    password: str = Field(min_length=1, max_length=256)

    @field_validator("username")
    @classmethod
    def _strip_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("username must not be blank")
        return value


class SignInRequestDTO(_CredentialsDTO):
    pass


class SignUpRequestDTO(_CredentialsDTO):
    display_name: str | None = Field(None, max_length=256)


class SignOutResponseDTO(BaseModel):
    ok: bool = True
