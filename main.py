"""Marketplace - accounts, sessions and route protection."""

import logging
import time
from pathlib import Path

from fastapi import Depends, FastAPI, Form, HTTPException, Query, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from marketplace.config import get_settings
from marketplace.cookies import set_access_cookie, set_refresh_cookie
from marketplace.database import get_db
from marketplace.errors import AuthError
from marketplace.guard import AuthGuardMiddleware, sign_in_url
from marketplace.rate_limit import limiter
from marketplace.routers import admin_router, auth_router
from marketplace.services.auth import get_auth_service
from marketplace.services.user import get_user_service

BASE_DIR = Path(__file__).resolve().parent

# Logging
logger = logging.getLogger("marketplace")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

for warning in get_settings().validate():
    logger.warning(warning)

app = FastAPI(title="Marketplace", version="0.1.0")
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; style-src 'self' 'unsafe-inline'; img-src 'self' data:; form-action 'self'"
        )
        return response


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PREFIXES = ("/api/auth/", "/api/admin/", "/auth/")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        method = request.method
        if method in ("POST", "PATCH", "DELETE") and path.startswith(self.AUDIT_PREFIXES):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


# Outermost last: audit sees the final status, the guard runs closest to the routes
app.add_middleware(AuthGuardMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AuditLogMiddleware)

# Static files
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

# Templates
templates = Jinja2Templates(directory=BASE_DIR / "templates")

# API routers
app.include_router(auth_router)
app.include_router(admin_router)


# --- Error handlers ---
@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Expected auth failures carry their own status and client-safe message."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    """Malformed auth bodies answer 400 in the usual error shape; elsewhere keep FastAPI's 422."""
    if not request.url.path.startswith("/api/auth/"):
        return await request_validation_exception_handler(request, exc)
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})
    field = ".".join(str(part) for part in errors[0]["loc"] if part != "body")
    message = errors[0]["msg"]
    return JSONResponse(status_code=400, content={"error": f"{field}: {message}" if field else message})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded."""
    if request.url.path.startswith("/api/"):
        return JSONResponse(status_code=429, content={"error": "Rate limit exceeded. Try again later."})
    return HTMLResponse(content="<h1>429</h1><p>Too many requests. Please try again later.</p>", status_code=429)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """JSON for API requests, a bare HTML page for everything else."""
    if request.url.path.startswith("/api/"):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return HTMLResponse(
        content=f"<h1>{exc.status_code}</h1><p>{exc.detail}</p>",
        status_code=exc.status_code,
    )


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "marketplace", "version": "0.1.0"}


def safe_return_to(return_to: str | None) -> str:
    """Only same-site relative paths are allowed as post-login targets."""
    if not return_to or not return_to.startswith("/") or return_to.startswith("//"):
        return "/"
    return return_to


# --- Web routes ---
@app.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    """Public landing page."""
    return templates.TemplateResponse(request, "home.html", {})


@app.get("/auth/sign-in", response_class=HTMLResponse)
def sign_in_page(
    request: Request,
    return_to: str | None = Query(None, alias="returnTo"),
    message: str | None = None,
) -> HTMLResponse:
    """Render the sign-in form, with the guard's explanation if redirected here."""
    return templates.TemplateResponse(
        request,
        "sign_in.html",
        {"return_to": safe_return_to(return_to), "message": message},
    )


@app.post("/auth/sign-in", response_class=HTMLResponse)
@limiter.limit("10/minute")
def sign_in_submit(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    return_to: str = Form("/"),
    db: Session = Depends(get_db),
) -> Response:
    """Handle the sign-in form."""
    auth_service = get_auth_service()
    try:
        user = auth_service.authenticate(db, email, password)
    except AuthError as e:
        return templates.TemplateResponse(
            request,
            "sign_in.html",
            {"return_to": safe_return_to(return_to), "error": e.message, "email": email},
            status_code=e.status_code,
        )

    tokens = auth_service.issue_session(user)
    response = RedirectResponse(url=safe_return_to(return_to), status_code=302)
    set_access_cookie(response, tokens.access_token)
    set_refresh_cookie(response, tokens.refresh_token)
    return response


@app.get("/auth/verify-email/{token}", response_class=HTMLResponse)
def verify_email_page(request: Request, token: str) -> HTMLResponse:
    """Landing page for the emailed link. Only the confirm button consumes the token."""
    return templates.TemplateResponse(request, "verify_email.html", {"token": token})


@app.post("/auth/verify-email/{token}", response_class=HTMLResponse)
@limiter.limit("10/minute")
def verify_email_submit(request: Request, token: str, db: Session = Depends(get_db)) -> HTMLResponse:
    """Handle the confirm button on the verification page."""
    try:
        get_auth_service().verify_email(db, token)
    except AuthError as e:
        return templates.TemplateResponse(
            request, "verify_email.html", {"success": False, "error": e.message}, status_code=e.status_code
        )
    return templates.TemplateResponse(request, "verify_email.html", {"success": True})


@app.get("/auth/reset-password/{token}", response_class=HTMLResponse)
def reset_password_page(request: Request, token: str) -> HTMLResponse:
    """Render the new-password form for a reset link."""
    return templates.TemplateResponse(request, "reset_password.html", {"token": token})


@app.post("/auth/reset-password/{token}", response_class=HTMLResponse)
@limiter.limit("5/minute")
def reset_password_submit(
    request: Request,
    token: str,
    password: str = Form(...),
    confirm_password: str = Form(...),
    db: Session = Depends(get_db),
) -> Response:
    """Handle the new-password form."""
    if password != confirm_password:
        return templates.TemplateResponse(
            request, "reset_password.html", {"token": token, "error": "Passwords do not match"}, status_code=400
        )

    try:
        get_auth_service().reset_password(db, token, password)
    except AuthError as e:
        return templates.TemplateResponse(
            request, "reset_password.html", {"token": token, "error": e.message}, status_code=e.status_code
        )

    return RedirectResponse(url=sign_in_url("/user", "Password updated, please sign in"), status_code=302)


@app.get("/user", response_class=HTMLResponse)
def profile_page(request: Request, db: Session = Depends(get_db)) -> HTMLResponse:
    """Signed-in user's profile. Only reachable through the route guard."""
    user = get_user_service().find_by_id(db, request.state.user_id)
    return templates.TemplateResponse(request, "profile.html", {"user": user})


@app.get("/admin", response_class=HTMLResponse)
def admin_dashboard(request: Request, db: Session = Depends(get_db)) -> HTMLResponse:
    """Admin dashboard. The route guard only lets admins through."""
    users, total = get_user_service().list_users(db, limit=100)
    return templates.TemplateResponse(request, "admin.html", {"users": users, "total": total})
