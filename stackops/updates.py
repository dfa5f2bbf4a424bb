"""Image update check.

For each monitored container: record the image id it runs, pull the remote
reference (download only), and compare the freshly pulled image id with the
running one. Running containers are never touched; locally built images are
simply not monitored.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Protocol

from . import db
from .docker_ops import RuntimeOpError
from .outcomes import CheckOutcome, ServiceObservation, short_id, utc_now
from .stack import MonitoredService, StackConfig


class IdentityComparable(Protocol):
    def same_image(self, running: str, latest: str) -> bool: ...


class ExactIdentity:
    """Two image ids are the same image iff the strings are equal."""

    def same_image(self, running: str, latest: str) -> bool:
        return running == latest


@dataclass
class UpdateReport:
    stack: str
    observations: list[ServiceObservation]
    checked_at: str = field(default_factory=utc_now)

    def _names(self, outcome: CheckOutcome) -> list[str]:
        return [o.service.name for o in self.observations if o.outcome == outcome]

    @property
    def updates(self) -> list[str]:
        return self._names(CheckOutcome.UPDATE_AVAILABLE)

    @property
    def errors(self) -> list[str]:
        return self._names(CheckOutcome.PULL_FAILED)

    @property
    def current(self) -> list[str]:
        return self._names(CheckOutcome.UP_TO_DATE)

    @property
    def skipped(self) -> list[str]:
        return self._names(CheckOutcome.SKIPPED)

    def render(self, stack: StackConfig, compose_dir: str, compose_hint: str) -> list[str]:
        lines = [f"=== {self.stack} — Image Update Check ({self.checked_at[:16]}) ===", ""]
        for o in self.observations:
            lines.extend(_observation_lines(o))
        lines.append("")

        if self.errors:
            lines.append(f"Errors pulling: {' '.join(self.errors)}")

        if self.updates:
            lines.append(f"Updates available for: {' '.join(self.updates)}")
            lines.append("")
            lines.append("To apply updates:")
            lines.append(f"  cd {compose_dir}")
            for container in self.updates:
                lines.append(f"  {compose_hint} up -d {stack.service_for_container(container)}")
        else:
            lines.append("All monitored containers are up to date.")
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "stack": self.stack,
            "checked_at": self.checked_at,
            "observations": [
                {
                    "container": o.service.name,
                    "image": o.service.image,
                    "outcome": o.outcome.value,
                    "running_id": o.running_id,
                    "latest_id": o.latest_id,
                    "detail": o.detail,
                }
                for o in self.observations
            ],
            "updates": self.updates,
            "errors": self.errors,
        }


def _observation_lines(o: ServiceObservation) -> list[str]:
    name = o.service.name
    if o.outcome == CheckOutcome.SKIPPED:
        return [f"  SKIP  {name} — {o.detail or 'not running'}"]
    if o.outcome == CheckOutcome.PULL_FAILED:
        return [f"  ERROR {name} — failed to pull {o.service.image}"]
    if o.outcome == CheckOutcome.UP_TO_DATE:
        return [f"  OK    {name} — up to date"]
    return [
        f"  NEW   {name} — update available",
        f"          image:   {o.service.image}",
        f"          running: {short_id(o.running_id)}",
        f"          latest:  {short_id(o.latest_id)}",
    ]


class UpdateChecker:
    """Compares running image ids against freshly pulled remote ones."""

    def __init__(
        self,
        stack: StackConfig,
        runtime: Any,
        comparator: IdentityComparable | None = None,
        max_workers: int = 1,
    ):
        self.stack = stack
        self.runtime = runtime
        self.comparator = comparator or ExactIdentity()
        self.max_workers = max(1, int(max_workers))

    def check_service(self, service: MonitoredService) -> ServiceObservation:
        try:
            slot = self.runtime.inspect(service.name)
        except RuntimeOpError as e:
            return ServiceObservation(service, CheckOutcome.SKIPPED, detail=f"inspect failed: {e}")
        if not slot.running or not slot.image_id:
            return ServiceObservation(service, CheckOutcome.SKIPPED, detail="not running")

        running_id = slot.image_id
        try:
            self.runtime.pull(service.image)
            latest_id = self.runtime.inspect_image(service.image)
        except RuntimeOpError as e:
            return ServiceObservation(service, CheckOutcome.PULL_FAILED, running_id=running_id, detail=str(e))

        if self.comparator.same_image(running_id, latest_id):
            outcome = CheckOutcome.UP_TO_DATE
        else:
            outcome = CheckOutcome.UPDATE_AVAILABLE
        return ServiceObservation(service, outcome, running_id=running_id, latest_id=latest_id)

    def run(self) -> UpdateReport:
        services = self.stack.monitored()
        if self.max_workers > 1 and len(services) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                # map() keeps input order, so the report does not depend on completion order.
                observations = list(pool.map(self.check_service, services))
        else:
            observations = [self.check_service(s) for s in services]

        report = UpdateReport(stack=self.stack.name, observations=observations)
        self._log(report)
        return report

    def _log(self, report: UpdateReport) -> None:
        for o in report.observations:
            service_name = self.stack.service_for_container(o.service.name)
            if o.outcome == CheckOutcome.PULL_FAILED:
                db.log_event("WARN", f"Pull failed for {o.service.image}: {o.detail}", service_name, o.service.name)
            elif o.outcome == CheckOutcome.UPDATE_AVAILABLE:
                db.log_event(
                    "INFO",
                    f"Update available for {o.service.image} ({short_id(o.running_id)} -> {short_id(o.latest_id)})",
                    service_name,
                    o.service.name,
                )
        db.log_event(
            "INFO",
            f"Update check: {len(report.current)} current, {len(report.updates)} updates, "
            f"{len(report.errors)} errors, {len(report.skipped)} skipped",
        )
