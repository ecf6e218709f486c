"""User persistence: lookups, creation and action-token bookkeeping."""

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.database import utcnow
from marketplace.models.user import User, UserRole, UserStatus
from marketplace.schemas.user import UserResponse


def sanitize_user(user: User) -> dict:
    """Return the public JSON view of a user."""
    return UserResponse.model_validate(user).model_dump(by_alias=True, mode="json")


class UserService:
    """Owns the User table. Token signing is not its concern, only the stored copies."""

    def find_by_id(self, db: Session, user_id: int) -> User | None:
        return db.get(User, user_id)

    def find_by_email(self, db: Session, email: str) -> User | None:
        # Emails are stored lowercased; compare exactly so "_" and "%" are literal
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    def find_by_username(self, db: Session, username: str) -> User | None:
        return db.query(User).filter(User.username == username.strip()).first()

    def exists(self, db: Session, user_id: int) -> bool:
        return db.query(User.id).filter(User.id == user_id).first() is not None

    def create(
        self,
        db: Session,
        email: str,
        username: str,
        password_hash: str,
        role: UserRole = UserRole.USER,
        status: UserStatus = UserStatus.INACTIVE,
        email_verified: bool = False,
    ) -> User:
        """Insert a new user. New accounts start inactive and unverified unless told otherwise."""
        user = User(
            email=email.lower().strip(),
            username=username.strip(),
            password_hash=password_hash,
            role=role.value,
            status=status.value,
            email_verified=email_verified,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    def list_users(self, db: Session, limit: int = 50, offset: int = 0) -> tuple[list[User], int]:
        query = db.query(User)
        total = query.count()
        users = query.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(limit).all()
        return users, total

    def update_account(
        self,
        db: Session,
        user: User,
        role: UserRole | None = None,
        status: UserStatus | None = None,
    ) -> User:
        if role is not None:
            user.role = role.value
        if status is not None:
            user.status = status.value
        db.commit()
        db.refresh(user)
        return user

    def store_password_reset_token(self, db: Session, user: User, token: str, expires_at: datetime) -> None:
        """Remember the latest reset token; any earlier one is superseded."""
        user.password_reset_token = token
        user.password_reset_expires_at = expires_at
        db.commit()

    def store_email_verification_token(self, db: Session, user: User, token: str, expires_at: datetime) -> None:
        """Remember the latest verification token; any earlier one is superseded."""
        user.email_verification_token = token
        user.email_verification_expires_at = expires_at
        db.commit()

    def has_live_password_reset_token(self, user: User, token: str) -> bool:
        """Read-only check that ``token`` is the stored, unexpired reset token."""
        return (
            user.password_reset_token == token
            and user.password_reset_expires_at is not None
            and user.password_reset_expires_at > utcnow()
        )

    def consume_password_reset_token(self, db: Session, user_id: int, token: str, password_hash: str) -> bool:
        """Set the new password and clear the reset token in one conditional update.

        Returns False when the stored token no longer matches or has expired,
        which includes a concurrent reset that got there first.
        """
        now = utcnow()
        updated = (
            db.query(User)
            .filter(
                User.id == user_id,
                User.password_reset_token == token,
                User.password_reset_expires_at > now,
            )
            .update(
                {
                    User.password_hash: password_hash,
                    User.password_reset_token: None,
                    User.password_reset_expires_at: None,
                    User.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return updated == 1

    def consume_email_verification_token(self, db: Session, user_id: int, token: str) -> bool:
        """Mark the email verified, activate the account and clear the token in one conditional update."""
        now = utcnow()
        updated = (
            db.query(User)
            .filter(
                User.id == user_id,
                User.email_verified.is_(False),
                User.email_verification_token == token,
                User.email_verification_expires_at > now,
            )
            .update(
                {
                    User.email_verified: True,
                    User.status: UserStatus.ACTIVE.value,
                    User.email_verification_token: None,
                    User.email_verification_expires_at: None,
                    User.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return updated == 1


_user_service: UserService | None = None


def get_user_service() -> UserService:
    """Get singleton user service instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
