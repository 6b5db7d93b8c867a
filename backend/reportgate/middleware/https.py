"""
HTTPS-only gate.

TLS terminates upstream, so the original scheme is recovered from ``X-Forwarded-Proto``
or the RFC 7239 ``Forwarded`` header. Plain HTTP is rejected with 418 and never
redirected.
"""

import re

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from reportgate.errors import https_required

HSTS_HEADER = "Strict-Transport-Security"
HSTS_VALUE = "max-age=63072000; includeSubDomains; preload"

# Only the first proto= parameter counts
_PROTO_RE = re.compile(r"(?i)proto=(https|http)")

# Liveness probes carry no forwarding headers
EXEMPT_PATHS = frozenset({"/health"})

logger = structlog.get_logger()


def forwarded_scheme(request: Request) -> str | None:
    """Extract the client-facing scheme from forwarding headers, if present."""
    proto = request.headers.get("X-Forwarded-Proto")
    if proto:
        return proto.split(",")[0].strip().lower()

    forwarded = request.headers.get("Forwarded")
    if forwarded:
        match = _PROTO_RE.search(forwarded)
        if match:
            return match.group(1).lower()
    return None


class HTTPSOnlyMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path not in EXEMPT_PATHS and forwarded_scheme(request) != "https":
            error = https_required()
            logger.info("insecure_request_rejected", path=request.url.path)
            return JSONResponse(status_code=error.status_code, content=error.to_response_body())

        response = await call_next(request)
        response.headers[HSTS_HEADER] = HSTS_VALUE
        return response
