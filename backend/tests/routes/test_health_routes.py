"""Health and metrics endpoints."""


def test_health_reports_connected_database(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["degraded"] is False


def test_health_degraded_when_database_unreachable(client, persistence, monkeypatch):
    monkeypatch.setattr(persistence, "ping", lambda: False)
    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
    assert response.json()["database"] == "unreachable"


def test_prometheus_metrics_exposed(client):
    client.get("/health")
    response = client.get("/metrics/prometheus")
    assert response.status_code == 200
    assert "tripbooking_payment_reconciliation_required_total" in response.text


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/v1/nowhere")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "kind": "NotFoundError",
        "message": "Not Found",
        "details": {},
    }
