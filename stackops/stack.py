"""Static description of the managed stack.

A ``StackConfig`` is built once per process (from the built-in table or a
JSON stack file) and handed to the update checker and the restart
reconciler. Nothing here talks to the container runtime.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from .api_models import StackFile
from .settings import Settings


NAME_RE = re.compile(r"^[a-z][a-z0-9\-_]{0,62}$")


def validate_name(name: str, kind: str = "service") -> None:
    if not NAME_RE.match(name):
        raise ValueError(
            f"Invalid {kind} name {name!r}. Use lowercase letters/numbers, '-' or '_', starting with a letter (max 63 chars)."
        )


@dataclass(frozen=True)
class ManagedService:
    name: str
    container: str
    image: str | None = None  # None for locally built images with no remote tag
    health_url: str | None = None


@dataclass(frozen=True)
class MonitoredService:
    """A running container whose image is compared against the registry."""

    name: str
    image: str


@dataclass(frozen=True)
class StackConfig:
    name: str
    services: tuple[ManagedService, ...]

    def __post_init__(self) -> None:
        seen_names: set[str] = set()
        seen_containers: set[str] = set()
        for svc in self.services:
            validate_name(svc.name)
            validate_name(svc.container, kind="container")
            if svc.name in seen_names:
                raise ValueError(f"Duplicate service name {svc.name!r}.")
            if svc.container in seen_containers:
                raise ValueError(f"Duplicate container name {svc.container!r}.")
            seen_names.add(svc.name)
            seen_containers.add(svc.container)

    @property
    def service_names(self) -> list[str]:
        return [s.name for s in self.services]

    def get(self, service: str) -> ManagedService | None:
        for s in self.services:
            if s.name == service:
                return s
        return None

    def container_for(self, service: str) -> str | None:
        s = self.get(service)
        return s.container if s else None

    def service_for_container(self, container: str) -> str:
        for s in self.services:
            if s.container == container:
                return s.name
        return container

    def monitored(self) -> list[MonitoredService]:
        return [MonitoredService(name=s.container, image=s.image) for s in self.services if s.image]


DEFAULT_STACK = StackConfig(
    name="n8n Stack",
    services=(
        ManagedService("postgres", "n8n-postgres", image="docker.io/library/postgres:latest"),
        ManagedService("redis", "n8n-redis", image="docker.io/library/redis:latest"),
        ManagedService(
            "n8n",
            "n8n",
            image="docker.n8n.io/n8nio/n8n:stable",
            health_url="http://localhost:5678/healthz",
        ),
        ManagedService("n8n-runners", "n8n-runners"),
        ManagedService(
            "docling",
            "n8n-docling",
            image="quay.io/docling-project/docling-serve-cpu:latest",
            health_url="http://localhost:5001/health",
        ),
    ),
)


def load_stack(path: str | Path) -> StackConfig:
    """Read and validate a JSON stack file."""
    raw = Path(path).read_text(encoding="utf-8")
    try:
        doc = StackFile.model_validate_json(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid stack file {path}: {e}") from e
    return StackConfig(
        name=doc.name,
        services=tuple(
            ManagedService(name=s.name, container=s.container, image=s.image, health_url=s.health_url)
            for s in doc.services
        ),
    )


def configured_stack(cfg: Settings) -> StackConfig:
    if cfg.stack_file:
        return load_stack(cfg.stack_file)
    return DEFAULT_STACK
