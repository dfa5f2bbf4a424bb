from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from . import console, db
from .docker_ops import RuntimeOpError
from .outcomes import CleanupOutcome, ContainerSlot, RestartOutcome, RestartResult, SlotState
from .stack import StackConfig

ALL = "all"


@dataclass
class RestartReport:
    results: list[RestartResult]
    statuses: list[ContainerSlot] = field(default_factory=list)
    all_services: bool = False

    @property
    def ok(self) -> bool:
        return bool(self.results) and all(r.outcome == RestartOutcome.STARTED for r in self.results)

    @property
    def failed(self) -> list[str]:
        return [r.service for r in self.results if r.outcome != RestartOutcome.STARTED]


def status_table(stack: StackConfig, slots: Sequence[ContainerSlot]) -> list[str]:
    rows = []
    for s in slots:
        rows.append([stack.service_for_container(s.name), s.name, s.status, s.health or "-"])
    return console.table(["SERVICE", "CONTAINER", "STATE", "HEALTH"], rows)


class RestartReconciler:
    """(Re)creates compose services without tripping over stale container names.

    The runtime refuses to create a container whose name is still held by a
    stopped container, so every start is preceded by a cleanup of that name.
    """

    def __init__(self, stack: StackConfig, runtime: Any):
        self.stack = stack
        self.runtime = runtime

    def cleanup(self, service: str) -> CleanupOutcome:
        container = self.stack.container_for(service)
        if container is None:
            raise KeyError(service)

        try:
            slot = self.runtime.inspect(container)
        except RuntimeOpError as e:
            console.warning(f"Could not inspect {container}: {e}")
            db.log_event("WARN", f"Cleanup inspect failed: {e}", service, container)
            return CleanupOutcome.INSPECT_FAILED

        if slot.state == SlotState.STOPPED:
            console.info(f"Removing stopped container: {container}")
            try:
                self.runtime.remove(container)
            except RuntimeOpError as e:
                console.warning(f"Failed to remove: {container}")
                db.log_event("WARN", f"Failed to remove stopped container: {e}", service, container)
                return CleanupOutcome.REMOVE_FAILED
            console.success(f"Removed: {container}")
            db.log_event("INFO", f"Removed stopped container ({slot.status})", service, container)
            return CleanupOutcome.REMOVED

        if slot.state == SlotState.RUNNING:
            console.info(f"Container {container} is running, will be recreated by compose")
            return CleanupOutcome.LEFT_RUNNING

        console.info(f"Container {container} does not exist")
        return CleanupOutcome.ABSENT

    def _unknown(self, service: str) -> RestartResult:
        valid = " ".join(self.stack.service_names)
        console.error(f"Unknown service: {service}")
        console.info(f"Valid services: {valid}")
        return RestartResult(
            service=service,
            container=None,
            outcome=RestartOutcome.UNKNOWN_SERVICE,
            message=f"Unknown service; valid services: {valid}",
        )

    def restart_service(self, service: str) -> RestartResult:
        container = self.stack.container_for(service)
        if container is None:
            return self._unknown(service)

        console.info(f"Restarting service: {service} (container: {container})")
        cleanup = self.cleanup(service)

        console.info(f"Running: compose up -d {service}")
        try:
            self.runtime.up_one(service)
        except RuntimeOpError as e:
            console.error(f"Failed to restart service: {service}")
            db.log_event("ERROR", f"Start failed: {e}", service, container)
            return RestartResult(service, container, RestartOutcome.START_FAILED, cleanup, str(e))

        console.success(f"Service {service} restarted successfully")
        db.log_event("INFO", "Service restarted", service, container)
        return RestartResult(service, container, RestartOutcome.STARTED, cleanup)

    def restart_all(self) -> list[RestartResult]:
        console.info("Restarting all services in the stack")

        # Sweep every stale name first; the aggregate start must not race a sibling's cleanup.
        cleanups = {s.name: self.cleanup(s.name) for s in self.stack.services}

        console.info("Running: compose up -d")
        try:
            self.runtime.up_all()
        except RuntimeOpError as e:
            console.error("Failed to restart services")
            db.log_event("ERROR", f"Start of all services failed: {e}")
            outcome, message = RestartOutcome.START_FAILED, str(e)
        else:
            console.success("All services restarted successfully")
            db.log_event("INFO", "All services restarted")
            outcome, message = RestartOutcome.STARTED, ""

        return [
            RestartResult(s.name, s.container, outcome, cleanups[s.name], message)
            for s in self.stack.services
        ]

    def reconcile(self, targets: Sequence[str]) -> RestartReport:
        if not targets:
            raise ValueError("No service specified")

        results: list[RestartResult] = []
        seen: set[str] = set()
        all_services = ALL in targets

        for name in targets:
            if name in seen or name == ALL:
                continue
            seen.add(name)
            if all_services:
                # The aggregate start covers every known name; only strays are reported here.
                if self.stack.get(name) is None:
                    results.append(self._unknown(name))
                continue
            results.append(self.restart_service(name))
            console.blank()

        if all_services:
            results.extend(self.restart_all())

        return RestartReport(results=results, statuses=self._statuses(results), all_services=all_services)

    def _statuses(self, results: Sequence[RestartResult]) -> list[ContainerSlot]:
        """Status rows in result order; unknown names get a placeholder row."""
        known = [r.container for r in results if r.container is not None]
        slots = {s.name: s for s in self.runtime.list_slots(known)} if known else {}
        rows = []
        for r in results:
            if r.container is None:
                rows.append(ContainerSlot(name=r.service, state=None, status="unknown"))
            else:
                rows.append(slots.get(r.container) or ContainerSlot(name=r.container, state=None, status="unknown"))
        return rows

    def status(self, services: Sequence[str] | None = None) -> list[ContainerSlot]:
        names = list(services) if services is not None else self.stack.service_names
        containers = [self.stack.container_for(n) or n for n in names]
        return self.runtime.list_slots(containers)
