from __future__ import annotations

from typing import Any, Iterator

from fastapi import Depends, FastAPI, HTTPException, Query

from . import db
from .api_models import ServiceStatusOut, UpdateReportOut
from .docker_ops import ContainerRuntime
from .health import probe_stack
from .reconciler import RestartReconciler
from .settings import settings
from .stack import StackConfig, configured_stack
from .updates import UpdateChecker

app = FastAPI(title="stackops")


def get_stack() -> StackConfig:
    try:
        return configured_stack(settings)
    except (OSError, ValueError) as e:
        raise HTTPException(status_code=500, detail=f"Invalid stack configuration: {e}")


def get_runtime() -> Iterator[Any]:
    runtime = ContainerRuntime(settings)
    try:
        yield runtime
    finally:
        runtime.close()


@app.on_event("startup")
def startup() -> None:
    db.init_db()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/services", response_model=list[ServiceStatusOut])
def services(
    probe: bool = False,
    stack: StackConfig = Depends(get_stack),
    runtime: Any = Depends(get_runtime),
) -> list[ServiceStatusOut]:
    slots = RestartReconciler(stack, runtime).status()
    probes = probe_stack(stack, settings.health_timeout_s) if probe else {}
    out = []
    for svc, slot in zip(stack.services, slots):
        p = probes.get(svc.name)
        out.append(
            ServiceStatusOut(
                service=svc.name,
                container=slot.name,
                state=slot.state.value if slot.state else None,
                status=slot.status,
                health=slot.health,
                http_healthy=p[0] if p else None,
                http_detail=p[1] if p else None,
            )
        )
    return out


@app.post("/updates/check", response_model=UpdateReportOut)
def check_updates(
    stack: StackConfig = Depends(get_stack),
    runtime: Any = Depends(get_runtime),
) -> UpdateReportOut:
    report = UpdateChecker(stack, runtime, max_workers=settings.check_workers).run()
    return UpdateReportOut.model_validate(report.to_dict())


@app.get("/events")
def events(limit: int = Query(50, ge=1, le=1000)) -> list[dict[str, Any]]:
    return db.latest_events(limit)
