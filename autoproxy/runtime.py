from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock

from .events import utc_now


@dataclass(frozen=True)
class DesiredEndpoint:
    """Desired proxy state for one running container, valid for a single cycle."""

    name: str
    virtual_host: str
    container_address: str
    container_port: int
    ssl_cert_name: str = ""
    credential_entries: tuple[str, ...] = ()

    def template_context(self) -> dict[str, object]:
        return {
            "name": self.name,
            "virtual_host": self.virtual_host,
            "container_address": self.container_address,
            "container_port": self.container_port,
            "ssl_cert_name": self.ssl_cert_name,
            "credential_entries": list(self.credential_entries),
        }


@dataclass(frozen=True)
class DirectoryReport:
    kind: str
    directory: str
    changed: bool
    written: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    render_failures: tuple[str, ...] = ()


@dataclass(frozen=True)
class CycleReport:
    started_at: str
    finished_at: str
    duration_ms: float
    endpoints: tuple[str, ...]
    skipped: dict[str, int]
    directories: tuple[DirectoryReport, ...]
    reloaded: bool

    @property
    def changed(self) -> bool:
        return any(d.changed for d in self.directories)

    @property
    def render_failures(self) -> int:
        return sum(len(d.render_failures) for d in self.directories)


@dataclass
class RuntimeState:
    """Latest completed cycle, shared with the status API thread."""

    lock: Lock = field(default_factory=Lock, repr=False)
    last_cycle: CycleReport | None = None
    cycles_completed: int = 0
    started_at: str = field(default_factory=utc_now)

    def publish(self, report: CycleReport) -> None:
        with self.lock:
            self.last_cycle = report
            self.cycles_completed += 1

    def snapshot(self) -> tuple[CycleReport | None, int]:
        with self.lock:
            return self.last_cycle, self.cycles_completed
