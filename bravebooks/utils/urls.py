# bravebooks/utils/urls.py
from fastapi import Request

from bravebooks.config import settings


def platform_url(request: Request) -> str:
    """
    Public base URL of the platform (no trailing slash).
    PLATFORM_URL wins; otherwise respects X-Forwarded-Proto/Host when behind a proxy.
    """
    if settings.PLATFORM_URL:
        return settings.PLATFORM_URL
    scheme = request.headers.get("x-forwarded-proto", request.url.scheme)
    host = request.headers.get("x-forwarded-host", request.headers.get("host", request.url.hostname))
    return f"{scheme}://{host}"


def frontend_url(request: Request, path: str) -> str:
    """Absolute link into the web client, e.g. for emails."""
    base = settings.FRONTEND_URL or platform_url(request)
    return f"{base}{path}"
