"""Security headers middleware.

Learn: The relay only answers JSON, so the headers are the API subset:
- X-Content-Type-Options: no MIME sniffing of JSON bodies
- X-Frame-Options / Referrer-Policy: harmless defaults for any browser
- Cache-Control: trigger and health answers are never cacheable
- Strict-Transport-Security: only when the request arrived over TLS
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HSTS_VALUE = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all HTTP responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response
