import re

from slowapi import Limiter
from starlette.requests import Request

from reportgate.config import settings

_FORWARDED_FOR_RE = re.compile(r'(?i)for="?\[?([^;,"\]]+)')


def get_real_client_ip(request: Request) -> str:
    """Key rate limits on the original client address reported by our proxy.

    Prefers the first hop of X-Forwarded-For, then the first ``for=`` of an
    RFC 7239 Forwarded header, then the socket peer.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    forwarded = request.headers.get("Forwarded")
    if forwarded:
        match = _FORWARDED_FOR_RE.search(forwarded)
        if match:
            return match.group(1).strip()

    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=get_real_client_ip, enabled=settings.rate_limit_enabled)
