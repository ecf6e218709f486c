"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=3, max_length=255)
    password: str
    confirm_password: str = Field(alias="confirmPassword")
    username: str = Field(min_length=1, max_length=50)


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str | None = None
    password: str


class VerifyEmailRequest(BaseModel):
    token: str | None = None


class ResendVerificationRequest(BaseModel):
    email: str | None = None
