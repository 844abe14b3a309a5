from ipaddress import ip_network
from unittest.mock import MagicMock, patch

from app.middleware import rate_limit
from app.middleware.rate_limit import client_address

RATE_LIMITED = {"error": "Too many requests, please try again later"}
PROXY_NETWORKS = (ip_network("10.0.0.0/8"),)


def test_sixth_auth_request_in_window_is_rejected(client, webhook):
    for i in range(5):
        response = client.post("/api/auth/request-code", json={"email": f"guest{i}@example.com"})
        assert response.status_code == 200

    response = client.post("/api/auth/request-code", json={"email": "guest5@example.com"})

    assert response.status_code == 429
    assert response.json() == RATE_LIMITED
    assert len(webhook.events("auth_code_request")) == 5


def test_rotating_forwarded_header_does_not_reset_the_window(client):
    statuses = [
        client.post(
            "/api/auth/verify-code",
            json={"email": "a@b.com", "code": f"{1000 + i}"},
            headers={"X-Forwarded-For": f"10.0.0.{i}"},
        ).status_code
        for i in range(6)
    ]

    assert statuses == [401] * 5 + [429]


def test_limit_is_per_client_address_behind_trusted_proxy(client):
    def post(forwarded_for):
        return client.post(
            "/api/auth/request-code",
            json={"email": "late@example.com"},
            headers={"X-Forwarded-For": forwarded_for},
        )

    with patch.object(rate_limit, "get_remote_address", return_value="10.1.2.3"), \
            patch.object(rate_limit, "TRUSTED_NETWORKS", PROXY_NETWORKS):
        for i in range(5):
            post("203.0.113.7")
        # A forged left-most hop still lands in the real client's bucket
        blocked = post("198.51.100.99, 203.0.113.7")
        other = post("198.51.100.2")

    assert blocked.status_code == 429
    assert other.status_code == 200


def test_general_endpoints_allow_sixty_per_minute(client):
    headers = {"Authorization": "Bearer not-a-jwt"}
    for _ in range(60):
        assert client.get("/api/auth/session", headers=headers).status_code == 401

    assert client.get("/api/auth/session", headers=headers).status_code == 429


def _request(peer, headers=None):
    request = MagicMock()
    request.client.host = peer
    request.headers = headers or {}
    return request


def test_untrusted_peer_ignores_forwarding_headers():
    request = _request("192.0.2.1", {"x-forwarded-for": "203.0.113.7"})
    assert client_address(request, PROXY_NETWORKS) == "192.0.2.1"
    assert client_address(request) == "192.0.2.1"


def test_trusted_peer_uses_right_most_untrusted_hop():
    request = _request("10.0.0.5", {"x-forwarded-for": "198.51.100.99, 203.0.113.7, 10.0.0.9"})
    assert client_address(request, PROXY_NETWORKS) == "203.0.113.7"

    only_proxies = _request("10.0.0.5", {"x-forwarded-for": "10.0.0.8, 10.0.0.9"})
    assert client_address(only_proxies, PROXY_NETWORKS) == "10.0.0.8"

    no_header = _request("10.0.0.5")
    assert client_address(no_header, PROXY_NETWORKS) == "10.0.0.5"
