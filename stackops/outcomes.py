from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from .stack import MonitoredService


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SlotState(str, Enum):
    ABSENT = "absent"
    RUNNING = "running"
    STOPPED = "stopped"


# Runtime status strings (docker and podman) grouped by what they mean for a
# compose create: anything that still holds the name but is not executing
# blocks it.
RUNNING_STATUSES = frozenset({"running", "restarting", "paused"})
STOPPED_STATUSES = frozenset({"created", "exited", "dead", "stopped", "configured", "removing"})


def slot_state(status: str | None) -> SlotState:
    s = (status or "").strip().lower()
    if s in RUNNING_STATUSES:
        return SlotState.RUNNING
    if s in STOPPED_STATUSES:
        return SlotState.STOPPED
    if not s:
        return SlotState.ABSENT
    # Unknown status but the container exists: it still owns the name.
    return SlotState.STOPPED


@dataclass(frozen=True)
class ContainerSlot:
    """What the runtime reports for one container name.

    ``state`` is None when the runtime could not be queried.
    """

    name: str
    state: SlotState | None
    status: str = "absent"
    image_id: str | None = None
    health: str | None = None

    @property
    def running(self) -> bool:
        return self.state == SlotState.RUNNING


class CheckOutcome(str, Enum):
    SKIPPED = "skipped"
    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"
    PULL_FAILED = "pull_failed"


@dataclass(frozen=True)
class ServiceObservation:
    service: MonitoredService
    outcome: CheckOutcome
    running_id: str | None = None
    latest_id: str | None = None
    detail: str = ""


class CleanupOutcome(str, Enum):
    ABSENT = "absent"
    LEFT_RUNNING = "left_running"
    REMOVED = "removed"
    REMOVE_FAILED = "remove_failed"
    INSPECT_FAILED = "inspect_failed"


class RestartOutcome(str, Enum):
    STARTED = "started"
    START_FAILED = "start_failed"
    UNKNOWN_SERVICE = "unknown_service"


@dataclass(frozen=True)
class RestartResult:
    service: str
    container: str | None
    outcome: RestartOutcome
    cleanup: CleanupOutcome | None = None
    message: str = ""


def short_id(image_id: str | None) -> str:
    if not image_id:
        return "-"
    return image_id.split(":", 1)[-1][:12]
