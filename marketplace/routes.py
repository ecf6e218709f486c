"""Which paths the route guard skips, lets through, or reserves for admins."""

EXEMPT_PREFIXES = ("/static", "/_next", "/api", "/auth", "/favicon.ico", "/docs", "/openapi.json")

PUBLIC_ROUTES = ("/",)

ADMIN_ROUTES = ("/admin",)


def _matches(path: str, route: str) -> bool:
    if route == "/":
        return path == "/"
    return path == route or path.startswith(route.rstrip("/") + "/")


def is_exempt(path: str) -> bool:
    """Static assets, API and auth pages never go through the guard."""
    return any(_matches(path, prefix) for prefix in EXEMPT_PREFIXES)


def is_public_route(path: str) -> bool:
    return any(_matches(path, route) for route in PUBLIC_ROUTES)


def is_admin_route(path: str) -> bool:
    return any(_matches(path, route) for route in ADMIN_ROUTES)
