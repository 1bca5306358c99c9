"""Infrastructure endpoint and error envelope tests."""

from __future__ import annotations

from httpx import ASGITransport, AsyncClient


async def test_root_banner(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.text.startswith("Mini-CRM API is running")


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["status"] == "ok"
    assert body["environment"] == "development"


async def test_readiness_checks_database(client):
    response = await client.get("/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "ok"


async def test_readiness_without_database(client, app):
    app.state.session_factory = None
    response = await client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


async def test_metrics_endpoint(client):
    await client.get("/health")
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "http_requests_total" in response.text


async def test_request_id_header(client):
    response = await client.get("/health")
    assert response.headers.get("X-Request-ID")


async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/nope")
    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "HTTP_ERROR"
    assert set(body) == {"error", "code", "details"}


async def test_uninitialized_repository_returns_503(client, app, alice):
    app.state.contact_repository = None
    response = await client.get("/contacts", headers=alice["headers"])
    assert response.status_code == 503


async def test_unexpected_error_is_500_without_detail(app):
    async def explode():
        raise RuntimeError("secret internals")

    app.add_api_route("/explode", explode)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/explode")

    assert response.status_code == 500
    assert response.json() == {"error": "server error", "code": "INTERNAL_ERROR", "details": None}
    assert "secret" not in response.text


async def test_cors_allows_localhost_origin(client):
    response = await client.options(
        "/contacts",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


async def test_app_state_wiring(app):
    """Repositories and the aggregator share one session factory and guard."""
    state = app.state
    guard = state.contact_repository._guard
    assert state.note_repository._guard is guard
    assert state.deal_repository._guard is guard
    assert guard._session_factory is state.session_factory
    assert state.analytics._deals is state.deal_repository
