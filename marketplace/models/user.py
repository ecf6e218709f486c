"""User model."""

import enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from marketplace.database import Base, utcnow


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(Base):
    """Marketplace account and its pending action tokens."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    role = Column(String(16), nullable=False, default=UserRole.USER.value)
    status = Column(String(16), nullable=False, default=UserStatus.INACTIVE.value)
    email_verified = Column(Boolean, nullable=False, default=False)
    profile_image_id = Column(Integer, nullable=True)
    bio = Column(Text, nullable=True)
    password_reset_token = Column(String(512), nullable=True)
    password_reset_expires_at = Column(DateTime, nullable=True)
    email_verification_token = Column(String(512), nullable=True)
    email_verification_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value
