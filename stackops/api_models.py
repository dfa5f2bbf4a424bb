from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class StackServiceEntry(BaseModel):
    name: str = Field(..., description="Compose service short-name, e.g. postgres")
    container: str = Field(..., description="Concrete container name, e.g. n8n-postgres")
    image: str | None = Field(None, description="Remote image reference; omit for locally built images")
    health_url: str | None = Field(None, description="Optional HTTP health endpoint")

    @field_validator("health_url")
    @classmethod
    def _http_only(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("health_url must be an http(s) URL.")
        return v


class StackFile(BaseModel):
    name: str = "stack"
    services: list[StackServiceEntry] = Field(..., min_length=1)


class ObservationOut(BaseModel):
    container: str
    image: str
    outcome: str
    running_id: str | None = None
    latest_id: str | None = None
    detail: str = ""


class UpdateReportOut(BaseModel):
    stack: str
    checked_at: str
    observations: list[ObservationOut]
    updates: list[str]
    errors: list[str]


class ServiceStatusOut(BaseModel):
    service: str
    container: str
    state: str | None
    status: str
    health: str | None = None
    http_healthy: bool | None = None
    http_detail: str | None = None
