from __future__ import annotations

import pytest

from stackops import db
from stackops.docker_ops import RuntimeOpError
from stackops.outcomes import ContainerSlot, SlotState
from stackops.settings import Settings
from stackops.stack import ManagedService, StackConfig


class FakeRuntime:
    """In-memory container runtime that records every call in order.

    ``containers`` maps container name -> (status, image_id); missing names are absent.
    ``images`` maps image ref -> image id as seen after a pull.
    """

    def __init__(
        self,
        containers: dict[str, tuple[str, str | None]] | None = None,
        images: dict[str, str] | None = None,
        fail_pull: set[str] | None = None,
        fail_remove: set[str] | None = None,
        fail_up: set[str] | None = None,
        fail_up_all: bool = False,
        fail_inspect: bool = False,
        problems: list[str] | None = None,
    ):
        self.containers = dict(containers or {})
        self.images = dict(images or {})
        self.fail_pull = fail_pull or set()
        self.fail_remove = fail_remove or set()
        self.fail_up = fail_up or set()
        self.fail_up_all = fail_up_all
        self.fail_inspect = fail_inspect
        self.problems = problems or []
        self.calls: list[tuple[str, ...]] = []

    def inspect(self, name: str) -> ContainerSlot:
        self.calls.append(("inspect", name))
        if self.fail_inspect:
            raise RuntimeOpError("socket missing")
        if name not in self.containers:
            return ContainerSlot(name=name, state=SlotState.ABSENT)
        status, image_id = self.containers[name]
        state = SlotState.RUNNING if status == "running" else SlotState.STOPPED
        return ContainerSlot(name=name, state=state, status=status, image_id=image_id)

    def pull(self, ref: str) -> None:
        self.calls.append(("pull", ref))
        if ref in self.fail_pull:
            raise RuntimeOpError(f"pull {ref} failed: manifest unknown")

    def inspect_image(self, ref: str) -> str:
        self.calls.append(("inspect_image", ref))
        if ref not in self.images:
            raise RuntimeOpError(f"no such image {ref}")
        return self.images[ref]

    def remove(self, name: str) -> None:
        self.calls.append(("remove", name))
        if name in self.fail_remove:
            raise RuntimeOpError("permission denied")
        self.containers.pop(name, None)

    def up_one(self, service: str) -> None:
        self.calls.append(("up_one", service))
        if service in self.fail_up:
            raise RuntimeOpError("compose exited 1")

    def up_all(self) -> None:
        self.calls.append(("up_all",))
        if self.fail_up_all:
            raise RuntimeOpError("compose exited 1")

    def list_slots(self, names: list[str]) -> list[ContainerSlot]:
        out = []
        for name in names:
            try:
                out.append(self.inspect(name))
            except RuntimeOpError:
                out.append(ContainerSlot(name=name, state=None, status="unknown"))
        return out

    def compose_command(self) -> list[str]:
        return ["podman-compose"]

    def preflight(self) -> list[str]:
        self.calls.append(("preflight",))
        return list(self.problems)

    def runtime_calls(self) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] != "preflight"]


@pytest.fixture(autouse=True)
def event_db(tmp_path, monkeypatch):
    """Keep the sqlite event log inside the test's temp dir."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "events.db")))
    db.init_db()
    return db


@pytest.fixture
def stack() -> StackConfig:
    return StackConfig(
        name="Test Stack",
        services=(
            ManagedService("svca", "stack-svca", image="registry.example/svca:latest"),
            ManagedService("svcb", "stack-svcb", image="registry.example/svcb:latest"),
            ManagedService("svcc", "stack-svcc", image="registry.example/svcc:stable"),
            ManagedService("runners", "stack-runners"),
        ),
    )
