"""Fixed-window rate limiting with slowapi.

Auth endpoints: 5 requests per 15 minutes per client address.
General API endpoints: 60 requests per minute per client address.
Limits are applied per endpoint via @limiter.limit() decorators.

The client address is the socket peer. X-Forwarded-For is only read when the
peer is one of TRUSTED_PROXIES, and then the right-most hop that is not itself
a trusted proxy is used; everything left of it was written by the client.
"""

import ipaddress

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.core.config import get_settings

RATE_LIMITED_MESSAGE = "Too many requests, please try again later"

_settings = get_settings()

AUTH_LIMIT = _settings.auth_rate_limit
API_LIMIT = _settings.api_rate_limit
TRUSTED_NETWORKS = _settings.trusted_networks()


def _is_trusted(host: str, trusted_networks) -> bool:
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return any(address in network for network in trusted_networks)


def client_address(request: Request, trusted_networks=()) -> str:
    peer = get_remote_address(request)
    if not _is_trusted(peer, trusted_networks):
        return peer

    forwarded_for = request.headers.get("x-forwarded-for", "")
    hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
    for hop in reversed(hops):
        if not _is_trusted(hop, trusted_networks):
            return hop
    # Every hop is a proxy of ours
    return hops[0] if hops else peer


def get_client_address(request: Request) -> str:
    return client_address(request, TRUSTED_NETWORKS)


limiter = Limiter(
    key_func=get_client_address,
    strategy="fixed-window",
    storage_uri="memory://",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Uniform 429 body; the limit detail is not exposed."""
    return JSONResponse(status_code=429, content={"error": RATE_LIMITED_MESSAGE})
