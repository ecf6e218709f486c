"""Pydantic schemas for user data."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from marketplace.models.user import UserRole, UserStatus


class UserResponse(BaseModel):
    """Public view of a user. Never includes the password hash or action tokens."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    email: str
    username: str
    role: str
    status: str
    email_verified: bool
    profile_image_id: int | None = None
    bio: str | None = None
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    users: list[dict]
    total: int


class UserUpdateRequest(BaseModel):
    role: UserRole | None = None
    status: UserStatus | None = None
