"""Rate limiting configuration for API endpoints."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config import get_settings


def get_rate_limit_key(request: Request) -> str:
    """
    Client IP used for rate limiting and abuse logs.

    X-Forwarded-For is only read when `trusted_proxy_hops` is set, and then
    only the address appended by the outermost trusted proxy is used. Hops
    further left are set by the client and can be forged.
    """
    hops = get_settings().trusted_proxy_hops
    forwarded = request.headers.get("x-forwarded-for")
    if hops > 0 and forwarded:
        addresses = [address.strip() for address in forwarded.split(",") if address.strip()]
        if len(addresses) >= hops:
            return addresses[-hops]
    return get_remote_address(request)


def chat_rate_limit() -> str:
    """Rate limit string for the chat endpoint, read from settings."""
    return get_settings().chat_rate_limit


limiter = Limiter(key_func=get_rate_limit_key)
