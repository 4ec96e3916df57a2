from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(..., description="healthy once a cycle has completed")
    cycles_completed: int


class DirectoryStatus(BaseModel):
    kind: str = Field(..., description="config|htpasswd")
    directory: str
    changed: bool
    written: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    render_failures: list[str] = Field(default_factory=list)


class CycleStatus(BaseModel):
    started_at: str
    finished_at: str
    duration_ms: float
    endpoints: list[str]
    skipped: dict[str, int] = Field(default_factory=dict, description="Excluded containers by reason")
    directories: list[DirectoryStatus]
    reloaded: bool


class StatusResponse(BaseModel):
    process_started_at: str
    cycles_completed: int
    last_cycle: CycleStatus | None = None


class EventRecord(BaseModel):
    ts: str
    level: str
    message: str
    fields: dict[str, str] = Field(default_factory=dict)
