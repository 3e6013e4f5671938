"""Form schemas and validation helpers."""

from __future__ import annotations

import re
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from gistpad.models.gist import VALID_STATUSES

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
PASSWORD_STRENGTH_RE = re.compile(r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

F = TypeVar("F", bound=BaseModel)


def _fail(message: str) -> None:
    raise PydanticCustomError("form_error", message)


class FormSchema(BaseModel):
    model_config = ConfigDict(validate_default=True, extra="ignore")


class RegistrationForm(FormSchema):
    username: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""

    @field_validator("username")
    @classmethod
    def _check_username(cls, v: str) -> str:
        if not v:
            _fail("Username is required")
        if len(v) < 3:
            _fail("Username must be at least 3 characters")
        if not USERNAME_RE.match(v):
            _fail("Username can only contain letters, numbers, hyphens, and underscores")
        return v

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        if not v:
            _fail("Email is required")
        if not EMAIL_RE.match(v):
            _fail("Please enter a valid email address")
        return v

    @field_validator("password")
    @classmethod
    def _check_password(cls, v: str) -> str:
        if not v:
            _fail("Password is required")
        if len(v) < 8:
            _fail("Password must be at least 8 characters")
        if not PASSWORD_STRENGTH_RE.search(v):
            _fail("Password must contain at least one uppercase letter, one lowercase letter, and one number")
        return v

    @field_validator("confirm_password")
    @classmethod
    def _check_confirm(cls, v: str, info: ValidationInfo) -> str:
        if not v:
            _fail("Please confirm your password")
        # Only compared once the password itself is valid
        if "password" in info.data and v != info.data["password"]:
            _fail("Passwords do not match")
        return v


class LoginForm(FormSchema):
    email_or_username: str = ""
    password: str = ""

    @field_validator("email_or_username")
    @classmethod
    def _check_login(cls, v: str) -> str:
        if not v:
            _fail("Email or username is required")
        valid = EMAIL_RE.match(v) if "@" in v else len(v) >= 3
        if not valid:
            _fail("Please enter a valid email address or username (at least 3 characters)")
        return v

    @field_validator("password")
    @classmethod
    def _check_password(cls, v: str) -> str:
        if not v:
            _fail("Password is required")
        if len(v) < 6:
            _fail("Password must be at least 6 characters")
        return v


class GoogleSignInForm(FormSchema):
    id_token: str = ""

    @field_validator("id_token")
    @classmethod
    def _check_token(cls, v: str) -> str:
        if not v:
            _fail("Google sign-in was cancelled")
        return v


class GistForm(FormSchema):
    filename: str = ""
    code: str = ""
    description: str | None = ""
    status: str = "public"

    @field_validator("filename")
    @classmethod
    def _check_filename(cls, v: str) -> str:
        if not v:
            _fail("Gist name is required")
        return v

    @field_validator("code")
    @classmethod
    def _check_code(cls, v: str) -> str:
        if not v:
            _fail("Code content is required")
        return v

    @field_validator("status")
    @classmethod
    def _check_status(cls, v: str) -> str:
        if v not in VALID_STATUSES:
            _fail("Visibility must be public or private")
        return v


class CommentForm(FormSchema):
    content: str = ""

    @field_validator("content")
    @classmethod
    def _check_content(cls, v: str) -> str:
        if not v.strip():
            _fail("Comment cannot be empty")
        return v


def field_errors(exc: ValidationError) -> dict[str, str]:
    """First message per field; model-level errors land under ``""``."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        name = str(err["loc"][0]) if err["loc"] else ""
        errors.setdefault(name, err["msg"])
    return errors


def validate_form(schema: type[F], values: dict) -> tuple[F | None, dict[str, str]]:
    """Returns (form, {}) when valid, else (None, field errors)."""
    try:
        return schema.model_validate(values), {}
    except ValidationError as e:
        return None, field_errors(e)
