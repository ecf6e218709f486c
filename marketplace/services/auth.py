"""Authentication service."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from marketplace.database import utcnow
from marketplace.errors import (
    AlreadyVerifiedError,
    EmailTakenError,
    InvalidCredentialsError,
    InvalidTokenError,
    PasswordMismatchError,
    UnverifiedEmailError,
    UserNotFoundError,
    UsernameTakenError,
)
from marketplace.models.user import User, UserStatus
from marketplace.services.email import get_email_service
from marketplace.services.password import hash_password, validate_password, verify_password
from marketplace.services.tokens import TokenPurpose, get_token_service
from marketplace.services.user import get_user_service

logger = logging.getLogger("marketplace.auth")


@dataclass
class SessionTokens:
    """Credentials issued at login."""

    access_token: str
    refresh_token: str


class AuthService:
    """Handles registration, login and the reset/verification token lifecycle."""

    def register(self, db: Session, email: str, password: str, confirm_password: str, username: str) -> User:
        """Create an inactive, unverified account and email it a verification link."""
        if password != confirm_password:
            raise PasswordMismatchError()
        validate_password(password)

        users = get_user_service()
        if users.find_by_username(db, username):
            raise UsernameTakenError()
        if users.find_by_email(db, email):
            raise EmailTakenError()

        user = users.create(db, email=email, username=username, password_hash=hash_password(password))
        self._send_verification(db, user)
        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, db: Session, email: str, password: str) -> User:
        """Check credentials. Unknown email and wrong password are indistinguishable to the caller."""
        user = get_user_service().find_by_email(db, email)
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.email_verified or user.status != UserStatus.ACTIVE.value:
            raise UnverifiedEmailError()

        return user

    def issue_session(self, user: User) -> SessionTokens:
        tokens = get_token_service()
        return SessionTokens(
            access_token=tokens.issue(TokenPurpose.ACCESS, user.id),
            refresh_token=tokens.issue(TokenPurpose.REFRESH, user.id),
        )

    def current_user(self, db: Session, access_token: str | None) -> User:
        """Resolve the user behind an access token."""
        payload = get_token_service().verify(access_token, TokenPurpose.ACCESS)
        user = get_user_service().find_by_id(db, payload.user_id)
        if not user:
            raise UserNotFoundError()
        return user

    def request_password_reset(self, db: Session, email: str) -> bool:
        """Store and email a reset token if the account exists.

        Returns whether a mail was sent. Callers must not reveal the answer.
        """
        user = get_user_service().find_by_email(db, email)
        if not user:
            return False

        token = get_token_service().issue(TokenPurpose.PASSWORD_RESET, user.id)
        get_user_service().store_password_reset_token(
            db, user, token, utcnow() + TokenPurpose.PASSWORD_RESET.ttl
        )
        get_email_service().send_password_reset_email(user.email, token)
        return True

    def reset_password(self, db: Session, token: str | None, new_password: str) -> User:
        """Consume a reset token and set a new password."""
        if not token:
            raise InvalidTokenError("Reset token is required")
        payload = get_token_service().verify(token, TokenPurpose.PASSWORD_RESET)

        users = get_user_service()
        user = users.find_by_id(db, payload.user_id)
        if not user:
            raise UserNotFoundError()

        if not users.has_live_password_reset_token(user, token):
            raise InvalidTokenError("Invalid reset token")

        validate_password(new_password)

        if not users.consume_password_reset_token(db, user.id, token, hash_password(new_password)):
            raise InvalidTokenError("Invalid reset token")

        logger.info("Password reset for user %s", user.id)
        return user

    def verify_email(self, db: Session, token: str | None) -> User:
        """Consume a verification token; the account becomes verified and active."""
        if not token:
            raise InvalidTokenError("Verification token is required")
        payload = get_token_service().verify(token, TokenPurpose.EMAIL_VERIFICATION)

        users = get_user_service()
        user = users.find_by_id(db, payload.user_id)
        if not user:
            raise UserNotFoundError()
        if user.email_verified:
            raise AlreadyVerifiedError()

        if not users.consume_email_verification_token(db, user.id, token):
            raise InvalidTokenError("Invalid or expired verification token")

        db.refresh(user)
        logger.info("Verified email for user %s", user.id)
        return user

    def resend_verification(self, db: Session, email: str) -> User:
        """Issue a fresh verification token, superseding the previous one."""
        user = get_user_service().find_by_email(db, email)
        if not user:
            raise UserNotFoundError()
        if user.email_verified:
            raise AlreadyVerifiedError()

        self._send_verification(db, user)
        return user

    def _send_verification(self, db: Session, user: User) -> None:
        token = get_token_service().issue(TokenPurpose.EMAIL_VERIFICATION, user.id)
        get_user_service().store_email_verification_token(
            db, user, token, utcnow() + TokenPurpose.EMAIL_VERIFICATION.ttl
        )
        get_email_service().send_verification_email(user.email, token)


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
