from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import FakeRuntime
from stackops import api, db
from stackops.stack import ManagedService, StackConfig

A = "registry.example/svca:latest"


@pytest.fixture
def client(stack):
    rt = FakeRuntime(
        containers={"stack-svca": ("running", "sha256:a"), "stack-runners": ("exited", None)},
        images={A: "sha256:a2"},
    )
    api.app.dependency_overrides[api.get_stack] = lambda: stack
    api.app.dependency_overrides[api.get_runtime] = lambda: rt
    with TestClient(api.app) as c:
        yield c
    api.app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}


def test_services_lists_every_managed_service(client):
    r = client.get("/services")
    assert r.status_code == 200
    rows = {row["service"]: row for row in r.json()}
    assert set(rows) == {"svca", "svcb", "svcc", "runners"}
    assert rows["svca"]["state"] == "running"
    assert rows["runners"]["state"] == "stopped"
    assert rows["svcb"]["status"] == "absent"
    assert rows["svca"]["http_healthy"] is None


def test_services_probe(monkeypatch):
    probed = StackConfig(
        name="p", services=(ManagedService("web", "web", health_url="http://localhost:1/health"),)
    )
    monkeypatch.setattr(api, "probe_stack", lambda stack, timeout_s: {"web": (False, "No response", 1.0)})
    api.app.dependency_overrides[api.get_stack] = lambda: probed
    api.app.dependency_overrides[api.get_runtime] = lambda: FakeRuntime()
    try:
        with TestClient(api.app) as c:
            row = c.get("/services", params={"probe": "true"}).json()[0]
    finally:
        api.app.dependency_overrides.clear()
    assert row["http_healthy"] is False
    assert row["http_detail"] == "No response"


def test_update_check_endpoint(client):
    r = client.post("/updates/check")
    assert r.status_code == 200
    body = r.json()
    assert body["stack"] == "Test Stack"
    assert body["updates"] == ["stack-svca"]
    assert [o["outcome"] for o in body["observations"]] == ["update_available", "skipped", "skipped"]


def test_events_endpoint(client):
    db.log_event("INFO", "hello", service_name="svca", container="stack-svca")
    r = client.get("/events", params={"limit": 1})
    assert r.status_code == 200
    events = r.json()
    assert len(events) == 1
    assert events[0]["message"] == "hello"

    assert client.get("/events", params={"limit": 0}).status_code == 422
