import pytest
from fastapi.testclient import TestClient

from failover import main
from failover.health import HealthStatus, ModelHealth
from failover.main import app
from failover.monitor import HealthMonitor
from failover.probe import Probe, ProbeResult


class FixedProbe(Probe):
    def __init__(self, results: dict) -> None:
        self.results = results

    async def check(self, model: str) -> ProbeResult:
        return self.results[model]


@pytest.fixture(autouse=True)
def reset_health_table():
    main.health_table.reset()
    yield
    main.health_table.reset()


@pytest.fixture
def fixed_monitor(monkeypatch):
    probe = FixedProbe(
        {
            "gpt-4o": ProbeResult(success=False, latency_ms=5200),
            "claude-3-sonnet": ProbeResult(success=True, latency_ms=90),
        }
    )
    monitor = HealthMonitor(main.health_table, probe, interval_ms=60000)
    monkeypatch.setattr(main, "monitor", monitor)
    return monitor


def test_health_ok():
    client = TestClient(app)
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_metrics_exposed():
    client = TestClient(app)
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert b"http_requests_total" in resp.content


def test_resolve_healthy_primary():
    main.health_table.set("gpt-4o", ModelHealth(HealthStatus.HEALTHY, 120))
    client = TestClient(app)

    resp = client.post("/api/resolve-model", json={"simulationId": "sim-101-finance"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["modelToUse"] == "gpt-4o"
    assert body["fallbackOccurred"] is False
    assert body["details"] == {"status": "HEALTHY", "latency": 120}
    assert resp.headers["X-Model-Chosen"] == "gpt-4o"
    assert resp.headers["X-Route-Reason"] == "primary_healthy"


def test_resolve_unhealthy_primary_falls_back():
    main.health_table.set("gpt-4o", ModelHealth(HealthStatus.UNHEALTHY, 5200))
    client = TestClient(app)

    resp = client.post("/api/resolve-model", json={"simulationId": "sim-101-finance"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["modelToUse"] == "claude-3-sonnet"
    assert body["fallbackOccurred"] is True
    assert "UNHEALTHY" in body["reason"]
    assert resp.headers["X-Route-Reason"] == "primary_unhealthy"


def test_resolve_unknown_primary_falls_back():
    client = TestClient(app)

    resp = client.post("/api/resolve-model", json={"simulationId": "sim-202-engineering"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["modelToUse"] == "gpt-4o"
    assert body["fallbackOccurred"] is True
    assert body["details"] == {"status": "UNKNOWN", "latency": None}


@pytest.mark.parametrize("body", [{}, {"simulationId": ""}, None])
def test_resolve_requires_simulation_id(body):
    client = TestClient(app)

    if body is None:
        resp = client.post("/api/resolve-model")
    else:
        resp = client.post("/api/resolve-model", json=body)

    assert resp.status_code == 400
    assert resp.json() == {"error": {"code": "invalid_request", "message": "simulationId is required"}}


def test_resolve_unknown_simulation():
    client = TestClient(app)

    resp = client.post("/api/resolve-model", json={"simulationId": "nonexistent"})

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_list_simulations():
    client = TestClient(app)

    resp = client.get("/v1/simulations")

    assert resp.status_code == 200
    ids = [s["id"] for s in resp.json()["simulations"]]
    assert ids == ["sim-101-finance", "sim-202-engineering"]


def test_models_health_snapshot():
    main.health_table.set("claude-3-sonnet", ModelHealth(HealthStatus.HEALTHY, 90))
    client = TestClient(app)

    resp = client.get("/v1/models/health")

    assert resp.status_code == 200
    assert resp.json()["models"] == {
        "gpt-4o": {"status": "UNKNOWN", "latency": None},
        "claude-3-sonnet": {"status": "HEALTHY", "latency": 90},
    }


def test_refresh_runs_probe_cycle(fixed_monitor):
    client = TestClient(app)

    resp = client.post("/v1/admin/health/refresh")

    assert resp.status_code == 200
    assert resp.json()["models"]["gpt-4o"]["status"] == "UNHEALTHY"
    assert resp.json()["models"]["claude-3-sonnet"]["status"] == "HEALTHY"
    assert fixed_monitor.cycles_completed == 1


def test_startup_probes_before_serving(fixed_monitor):
    with TestClient(app) as client:
        assert fixed_monitor.running
        resp = client.post("/api/resolve-model", json={"simulationId": "sim-101-finance"})
        assert resp.json()["modelToUse"] == "claude-3-sonnet"
        assert resp.json()["details"] == {"status": "UNHEALTHY", "latency": 5200}

    assert not fixed_monitor.running


def test_resolve_non_string_id_uses_error_envelope():
    client = TestClient(app)

    resp = client.post("/api/resolve-model", json={"simulationId": 101})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_request"
    assert "simulationId" in resp.json()["error"]["message"]


def test_resolve_blank_id_is_not_found():
    client = TestClient(app)

    resp = client.post("/api/resolve-model", json={"simulationId": "   "})

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"
