"""Admin user management endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.dependencies import require_admin
from marketplace.models.user import User
from marketplace.schemas.user import UserListResponse, UserUpdateRequest
from marketplace.services.user import get_user_service, sanitize_user

logger = logging.getLogger("marketplace")

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/users", response_model=UserListResponse)
def list_users(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserListResponse:
    """List accounts, newest first."""
    users, total = get_user_service().list_users(db, limit=limit, offset=offset)
    return UserListResponse(users=[sanitize_user(u) for u in users], total=total)


@router.patch("/users/{user_id}")
def update_user(
    user_id: int,
    body: UserUpdateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    """Change a user's role or status."""
    service = get_user_service()
    user = service.find_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user = service.update_account(db, user, role=body.role, status=body.status)
    logger.info("Admin %s updated user %s (role=%s, status=%s)", admin.id, user.id, user.role, user.status)
    return sanitize_user(user)
