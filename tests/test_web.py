"""Tests for the FastAPI backend."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from acp_scheduler import config as config_module
from web.app import app

FORCED = "3\n2\n0 0 1\n0 0 1\n0\n0 5\n7 0\n"


@pytest.fixture
def client():
    return TestClient(app)


def _upload(content: str):
    return {"file": ("instance.txt", content.encode(), "text/plain")}


def test_get_config(client):
    response = client.get("/api/config")
    assert response.status_code == 200
    body = response.json()
    assert body["version"] == "1.0.0"
    assert body["solver"]["lns_size"] == 10


def test_validate(client):
    response = client.post("/api/validate", files=_upload(FORCED))
    assert response.status_code == 200
    assert response.json() == {
        "num_periods": 3,
        "num_products": 2,
        "num_items": 2,
        "num_residuals": 1,
        "inventory_cost": 0,
        "max_transition_cost": 7,
    }


def test_validate_malformed(client):
    response = client.post("/api/validate", files=_upload("3\nabc\n"))
    assert response.status_code == 400
    assert "line 2" in response.json()["detail"]


def test_solve(client):
    response = client.post(
        "/api/solve",
        files=_upload(FORCED),
        data={"seed": "1", "max_iterations": "100"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["objective"] == 5
    assert body["solutions"][-1]["objective"] == 5
    assert body["solutions"][0]["iteration"] == 0
    assert len(body["best_products"]) == 3


def test_solve_with_warm_start(client):
    response = client.post(
        "/api/solve",
        files=_upload(FORCED),
        data={"initial_schedule": "1 0 2"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["solutions"][0]["operator"] == "warm_start"
    assert body["solutions"][0]["line"] == "1 0 -1"


def test_solve_bad_option(client):
    response = client.post("/api/solve", files=_upload(FORCED), data={"lns_size": "0"})
    assert response.status_code == 400


def test_solve_infeasible(client):
    response = client.post("/api/solve", files=_upload("1\n2\n1\n1\n1\n0 0\n0 0\n"))
    assert response.status_code == 422


def test_config_comes_from_shipped_file(client, tmp_path, monkeypatch):
    shipped = tmp_path / "solver.yaml"
    shipped.write_text("solver:\n  lns_size: 6\n")
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", shipped)
    assert client.get("/api/config").json()["solver"]["lns_size"] == 6
