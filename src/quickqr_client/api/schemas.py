"""Pydantic models for the view host's request bodies."""

from pydantic import BaseModel, ConfigDict, Field


class LoginBody(BaseModel):
    """Sign-in form."""

    email: str
    password: str


class RegisterBody(BaseModel):
    """Sign-up form; ``confirmPassword`` is accepted as sent by browser forms."""

    model_config = ConfigDict(populate_by_name=True)

    username: str
    email: str
    password: str
    confirm_password: str = Field(alias="confirmPassword")


class QRCreateBody(BaseModel):
    """Generate form."""

    url: str
    name: str | None = None
