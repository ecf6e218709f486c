"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from marketplace.cookies import clear_access_cookie, clear_refresh_cookie, set_access_cookie, set_refresh_cookie
from marketplace.database import get_db
from marketplace.dependencies import get_current_user
from marketplace.errors import AuthError
from marketplace.models.user import User
from marketplace.rate_limit import limiter
from marketplace.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from marketplace.services.auth import get_auth_service
from marketplace.services.user import sanitize_user

logger = logging.getLogger("marketplace")

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _internal_error(message: str) -> HTTPException:
    logger.exception(message)
    return HTTPException(status_code=500, detail=message)


@router.post("/login")
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> JSONResponse:
    """Authenticate and open a session (access + refresh cookies)."""
    auth_service = get_auth_service()
    try:
        user = auth_service.authenticate(db, body.email, body.password)
        tokens = auth_service.issue_session(user)
    except AuthError:
        raise
    except Exception:
        raise _internal_error("Internal server error") from None

    response = JSONResponse({"success": True, "user": sanitize_user(user)})
    set_access_cookie(response, tokens.access_token)
    set_refresh_cookie(response, tokens.refresh_token)
    return response


@router.post("/logout")
def logout() -> JSONResponse:
    """End the session by clearing both cookies."""
    response = JSONResponse({"success": True})
    clear_refresh_cookie(response)
    clear_access_cookie(response)
    return response


@router.get("/me")
def me(user: User = Depends(get_current_user)) -> dict:
    """Return the signed-in user."""
    return sanitize_user(user)


@router.post("/register")
@limiter.limit("5/minute")
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)) -> dict:
    """Register a new, unverified account and send the verification email."""
    try:
        get_auth_service().register(db, body.email, body.password, body.confirm_password, body.username)
    except AuthError:
        raise
    except Exception:
        raise _internal_error("Internal server error") from None

    return {
        "success": True,
        "message": "Account created successfully. Please check your email to verify your account.",
    }


@router.post("/forgot-password")
@limiter.limit("3/minute")
def forgot_password(request: Request, body: ForgotPasswordRequest, db: Session = Depends(get_db)) -> dict:
    """Request a password reset. The answer is the same whether or not the account exists."""
    try:
        get_auth_service().request_password_reset(db, body.email)
    except Exception:
        raise _internal_error("Failed to process password reset request") from None

    return {"success": True}


@router.post("/reset-password")
@limiter.limit("5/minute")
def reset_password(request: Request, body: ResetPasswordRequest, db: Session = Depends(get_db)) -> dict:
    """Set a new password using a reset token."""
    try:
        get_auth_service().reset_password(db, body.token, body.password)
    except AuthError:
        raise
    except Exception:
        raise _internal_error("Failed to reset password") from None

    return {"success": True}


@router.post("/verify-email")
@limiter.limit("10/minute")
def verify_email(request: Request, body: VerifyEmailRequest, db: Session = Depends(get_db)) -> dict:
    """Verify an email address and activate the account."""
    try:
        get_auth_service().verify_email(db, body.token)
    except AuthError:
        raise
    except Exception:
        raise _internal_error("Failed to verify email") from None

    return {"success": True, "message": "Email verified successfully. Your account is now active."}


@router.post("/resend-verification")
@limiter.limit("3/minute")
def resend_verification(
    request: Request, body: ResendVerificationRequest, db: Session = Depends(get_db)
) -> dict:
    """Send a new verification email."""
    if not body.email:
        raise HTTPException(status_code=400, detail="Email is required")

    try:
        get_auth_service().resend_verification(db, body.email)
    except AuthError:
        raise
    except Exception:
        raise _internal_error("Failed to send verification email") from None

    return {"success": True, "message": "A new verification email has been sent. Please check your email."}
