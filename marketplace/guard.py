"""Route guard for server-rendered pages.

Every non-exempt request must carry a valid refresh token cookie. The guard
resolves the request into one of the :class:`GuardState` outcomes; only
``AUTHORIZED`` and ``EXEMPT`` reach the application. Authorized requests get a
freshly minted access token cookie on the way out.

:class:`RouteGuard` holds the decision logic and knows nothing about HTTP, so
it can be exercised directly. :class:`AuthGuardMiddleware` adapts it to
Starlette.
"""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlencode

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse, Response

from marketplace.cookies import REFRESH_COOKIE_NAME, set_access_cookie
from marketplace.database import get_db
from marketplace.errors import InvalidTokenError
from marketplace.models.user import User
from marketplace.routes import is_admin_route, is_exempt, is_public_route
from marketplace.services.tokens import TokenPurpose, TokenService, get_token_service
from marketplace.services.user import get_user_service

logger = logging.getLogger("marketplace.guard")

SIGN_IN_PATH = "/auth/sign-in"


class GuardState(str, enum.Enum):
    EXEMPT = "exempt"
    NO_REFRESH_TOKEN = "no_refresh_token"
    REFRESH_INVALID = "refresh_invalid"
    REFRESH_VALID_USER_MISSING = "refresh_valid_user_missing"
    REFRESH_VALID_ADMIN_REQUIRED_BUT_ABSENT = "refresh_valid_admin_required_but_absent"
    AUTHORIZED = "authorized"


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    redirect_url: str | None = None
    access_token: str | None = None
    user_id: int | None = None

    @property
    def allowed(self) -> bool:
        return self.state in (GuardState.EXEMPT, GuardState.AUTHORIZED)


def sign_in_url(return_to: str, message: str) -> str:
    return f"{SIGN_IN_PATH}?{urlencode({'returnTo': return_to, 'message': message})}"


class RouteGuard:
    """Decides what happens to a request given its path and refresh token."""

    def __init__(self, token_service: TokenService, find_user: Callable[[int], User | None]) -> None:
        self.token_service = token_service
        self.find_user = find_user

    def evaluate(self, path: str, refresh_token: str | None) -> GuardDecision:
        if is_exempt(path) or is_public_route(path):
            return GuardDecision(GuardState.EXEMPT)

        if not refresh_token:
            return GuardDecision(
                GuardState.NO_REFRESH_TOKEN,
                redirect_url=sign_in_url(path, "Please log in to continue"),
            )

        try:
            payload = self.token_service.verify(refresh_token, TokenPurpose.REFRESH)
            user = self.find_user(payload.user_id)
        except InvalidTokenError:
            logger.warning("Rejected refresh token for %s", path)
            return self._session_expired(path)
        except Exception:
            logger.exception("Auth check failed for %s", path)
            return self._session_expired(path)

        if user is None or not user.is_active:
            # A deactivated account loses its session the same way a deleted one does
            logger.warning("Refresh token for missing or inactive user %s on %s", payload.user_id, path)
            return GuardDecision(
                GuardState.REFRESH_VALID_USER_MISSING,
                redirect_url=sign_in_url(path, "User not found, please log in again"),
            )

        if is_admin_route(path) and not user.is_admin:
            return GuardDecision(
                GuardState.REFRESH_VALID_ADMIN_REQUIRED_BUT_ABSENT,
                redirect_url="/",
                user_id=user.id,
            )

        return GuardDecision(
            GuardState.AUTHORIZED,
            access_token=self.token_service.issue(TokenPurpose.ACCESS, user.id),
            user_id=user.id,
        )

    def _session_expired(self, path: str) -> GuardDecision:
        return GuardDecision(
            GuardState.REFRESH_INVALID,
            redirect_url=sign_in_url(path, "Session expired, please log in again"),
        )


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """Applies RouteGuard to every request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if is_exempt(path) or is_public_route(path):
            return await call_next(request)

        decision = await run_in_threadpool(self._evaluate, request, path)
        if not decision.allowed:
            return RedirectResponse(url=decision.redirect_url, status_code=302)

        request.state.user_id = decision.user_id
        response = await call_next(request)
        set_access_cookie(response, decision.access_token)
        return response

    @staticmethod
    def _evaluate(request: Request, path: str) -> GuardDecision:
        # Resolve get_db through the app so test overrides apply here too
        session_factory = request.app.dependency_overrides.get(get_db, get_db)
        sessions = session_factory()
        db = next(sessions)
        try:
            guard = RouteGuard(get_token_service(), lambda user_id: get_user_service().find_by_id(db, user_id))
            return guard.evaluate(path, request.cookies.get(REFRESH_COOKIE_NAME))
        finally:
            sessions.close()
