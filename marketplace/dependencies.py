"""Authentication dependencies for FastAPI routes."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from marketplace.cookies import ACCESS_COOKIE_NAME
from marketplace.database import get_db
from marketplace.errors import ForbiddenError, InvalidTokenError, UnauthorizedError
from marketplace.models.user import User
from marketplace.services.auth import get_auth_service


def get_access_token(request: Request) -> str | None:
    """Access token from the cookie, falling back to an Authorization: Bearer header."""
    token = request.cookies.get(ACCESS_COOKIE_NAME)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the authenticated user. Raises 401 if the access token is missing or invalid, 404 if the user is gone."""
    token = get_access_token(request)
    if not token:
        raise UnauthorizedError()

    try:
        return get_auth_service().current_user(db, token)
    except InvalidTokenError:
        raise UnauthorizedError("Invalid or expired token") from None


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require the admin role. Raises 403 otherwise."""
    if not user.is_admin:
        raise ForbiddenError()
    return user
