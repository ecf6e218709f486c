"""Session cookies: a short-lived access token and a long-lived refresh token."""

from starlette.responses import Response

from marketplace.config import get_settings

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "token"
ACCESS_COOKIE_MAX_AGE = 15 * 60  # 15 minutes
REFRESH_COOKIE_MAX_AGE = 7 * 24 * 60 * 60  # 7 days


def _set_cookie(response: Response, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        samesite="lax",
        secure=get_settings().is_production,
        max_age=max_age,
        path="/",
    )


def set_access_cookie(response: Response, token: str) -> None:
    """Set the access token cookie."""
    _set_cookie(response, ACCESS_COOKIE_NAME, token, ACCESS_COOKIE_MAX_AGE)


def set_refresh_cookie(response: Response, token: str) -> None:
    """Set the refresh token cookie."""
    _set_cookie(response, REFRESH_COOKIE_NAME, token, REFRESH_COOKIE_MAX_AGE)


def clear_access_cookie(response: Response) -> None:
    response.delete_cookie(key=ACCESS_COOKIE_NAME, path="/")


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(key=REFRESH_COOKIE_NAME, path="/")
