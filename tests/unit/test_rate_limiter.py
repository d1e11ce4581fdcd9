"""Rate limit key and chat endpoint limit tests."""

import pytest
from starlette.requests import Request

from src.config import Settings
from src.core import rate_limiter
from src.core.rate_limiter import get_rate_limit_key, limiter


def make_request(headers=None, client=("203.0.113.7", 5000)):
    scope = {
        "type": "http",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


@pytest.fixture
def proxy_hops(monkeypatch):
    def use(hops):
        settings = Settings(_env_file=None, trusted_proxy_hops=hops)
        monkeypatch.setattr(rate_limiter, "get_settings", lambda: settings)

    return use


def test_forwarded_header_ignored_without_trusted_proxy(proxy_hops):
    proxy_hops(0)
    request = make_request({"X-Forwarded-For": "198.51.100.1"})
    assert get_rate_limit_key(request) == "203.0.113.7"


def test_uses_hop_appended_by_trusted_proxy(proxy_hops):
    proxy_hops(1)
    request = make_request({"X-Forwarded-For": "10.9.9.9, 198.51.100.1"})
    assert get_rate_limit_key(request) == "198.51.100.1"


def test_short_forwarded_chain_falls_back_to_peer(proxy_hops):
    proxy_hops(2)
    request = make_request({"X-Forwarded-For": "198.51.100.1"})
    assert get_rate_limit_key(request) == "203.0.113.7"


def test_falls_back_to_client_address():
    assert get_rate_limit_key(make_request()) == "203.0.113.7"


def test_rotating_forwarded_header_still_limited(client):
    limiter.enabled = True
    limiter.reset()
    try:
        statuses = [
            client.post(
                "/api/chat",
                json={"messages": []},
                headers={"x-forwarded-for": f"10.0.0.{i}"},
            ).status_code
            for i in range(25)
        ]
    finally:
        limiter.reset()
        limiter.enabled = False

    assert statuses[:20] == [400] * 20
    assert 429 in statuses[20:]
