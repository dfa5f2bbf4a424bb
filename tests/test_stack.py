from __future__ import annotations

import json

import pytest

from stackops.settings import Settings, _env_bool, _env_int
from stackops.stack import DEFAULT_STACK, ManagedService, StackConfig, configured_stack, load_stack


def test_default_stack_tables():
    assert DEFAULT_STACK.service_names == ["postgres", "redis", "n8n", "n8n-runners", "docling"]
    assert DEFAULT_STACK.container_for("postgres") == "n8n-postgres"
    assert DEFAULT_STACK.container_for("docling") == "n8n-docling"
    assert DEFAULT_STACK.container_for("nope") is None
    assert DEFAULT_STACK.service_for_container("n8n-docling") == "docling"
    assert DEFAULT_STACK.service_for_container("stranger") == "stranger"

    monitored = {m.name: m.image for m in DEFAULT_STACK.monitored()}
    assert monitored == {
        "n8n-postgres": "docker.io/library/postgres:latest",
        "n8n-redis": "docker.io/library/redis:latest",
        "n8n": "docker.n8n.io/n8nio/n8n:stable",
        "n8n-docling": "quay.io/docling-project/docling-serve-cpu:latest",
    }


def test_duplicate_names_rejected():
    with pytest.raises(ValueError, match="Duplicate service"):
        StackConfig("x", (ManagedService("a", "c1"), ManagedService("a", "c2")))
    with pytest.raises(ValueError, match="Duplicate container"):
        StackConfig("x", (ManagedService("a", "c1"), ManagedService("b", "c1")))


def test_invalid_names_rejected():
    with pytest.raises(ValueError):
        StackConfig("x", (ManagedService("Bad Name", "c1"),))


def test_load_stack_file(tmp_path):
    path = tmp_path / "stack.json"
    path.write_text(
        json.dumps(
            {
                "name": "demo",
                "services": [
                    {"name": "db", "container": "demo-db", "image": "postgres:16"},
                    {"name": "worker", "container": "demo-worker", "health_url": "http://localhost:9000/health"},
                ],
            }
        )
    )
    stack = load_stack(path)
    assert stack.name == "demo"
    assert [m.name for m in stack.monitored()] == ["demo-db"]
    assert stack.get("worker").health_url == "http://localhost:9000/health"


def test_load_stack_rejects_bad_health_url(tmp_path):
    path = tmp_path / "stack.json"
    path.write_text(json.dumps({"services": [{"name": "a", "container": "a", "health_url": "ftp://x"}]}))
    with pytest.raises(ValueError, match="Invalid stack file"):
        load_stack(path)


def test_load_stack_rejects_empty(tmp_path):
    path = tmp_path / "stack.json"
    path.write_text(json.dumps({"services": []}))
    with pytest.raises(ValueError):
        load_stack(path)


def test_configured_stack_defaults_to_builtin(tmp_path):
    assert configured_stack(Settings(stack_file=None)) is DEFAULT_STACK
    path = tmp_path / "s.json"
    path.write_text(json.dumps({"name": "one", "services": [{"name": "a", "container": "a"}]}))
    assert configured_stack(Settings(stack_file=str(path))).name == "one"


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("X_BOOL", "Yes")
    monkeypatch.setenv("X_INT", "42")
    monkeypatch.setenv("X_BAD", "forty")
    assert _env_bool("X_BOOL") is True
    assert _env_bool("X_MISSING", default=True) is True
    assert _env_int("X_INT", 1) == 42
    assert _env_int("X_BAD", 7) == 7
