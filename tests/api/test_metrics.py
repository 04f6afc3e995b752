import pytest
from fastapi.testclient import TestClient


def test_metrics_endpoint_returns_prometheus_format(client: TestClient):
    """Test that metrics endpoint returns data in Prometheus text format"""
    response = client.get("/api/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "timetracker_" in response.text


def test_metrics_contains_expected_metrics(client: TestClient):
    """Test that metrics endpoint exposes expected metric types"""
    content = client.get("/api/metrics").text

    expected_metrics = [
        "timetracker_auth_failed_logins_total",
        "timetracker_auth_token_errors_total",
        "timetracker_timer_sessions_started_total",
        "timetracker_timer_sessions_stopped_total",
        "timetracker_timer_sessions_deleted_total",
        "timetracker_timer_start_conflicts_total",
    ]

    for metric_name in expected_metrics:
        assert metric_name in content, f"Expected metric '{metric_name}' not found in output"


def test_requests_are_counted(client: TestClient):
    client.get("/api/health")
    content = client.get("/api/metrics").text

    lines = [line for line in content.splitlines() if line.startswith("timetracker_http_requests_total{")]
    assert any('endpoint="/api/health"' in line and 'status="200"' in line for line in lines)


def test_session_start_is_counted(client: TestClient, test_user):
    def started() -> float:
        for line in client.get("/api/metrics").text.splitlines():
            if line.startswith("timetracker_timer_sessions_started_total "):
                return float(line.split()[1])
        raise AssertionError("counter missing")

    before = started()
    client.post("/api/timer/start", headers=test_user["headers"])
    assert started() == before + 1
