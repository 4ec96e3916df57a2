from __future__ import annotations

import pytest
from docker.errors import NotFound

from autoproxy.docker_ops import ContainerDetail, ContainerSummary
from autoproxy.errors import ReloadError
from autoproxy.events import clear_events
from autoproxy.settings import Settings


class FakeInventory:
    """In-memory stand-in for the Docker API: {name: ContainerDetail}."""

    def __init__(self) -> None:
        self.containers: dict[str, ContainerDetail] = {}
        self.broken: set[str] = set()
        self.list_error: Exception | None = None

    def add(
        self,
        name: str,
        env: dict[str, str] | None = None,
        ports: tuple[str, ...] = ("80",),
        ip: str = "172.17.0.2",
    ) -> ContainerDetail:
        detail = ContainerDetail(
            id=f"id-{name}",
            names=(f"/{name}",),
            env=dict(env or {}),
            exposed_ports=frozenset(ports),
            ip_address=ip,
        )
        self.containers[name] = detail
        return detail

    def remove(self, name: str) -> None:
        del self.containers[name]

    def list_running(self) -> list[ContainerSummary]:
        if self.list_error is not None:
            raise self.list_error
        return [ContainerSummary(id=d.id, names=d.names) for d in self.containers.values()]

    def inspect(self, container_id: str) -> ContainerDetail:
        for name, detail in self.containers.items():
            if detail.id == container_id:
                if name in self.broken:
                    raise NotFound(f"No such container: {container_id}")
                return detail
        raise NotFound(f"No such container: {container_id}")


class RecordingReloader:
    def __init__(self) -> None:
        self.calls = 0
        self.error: ReloadError | None = None

    def reload(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


@pytest.fixture(autouse=True)
def _fresh_events():
    clear_events()
    yield
    clear_events()


@pytest.fixture
def inventory() -> FakeInventory:
    return FakeInventory()


@pytest.fixture
def reloader() -> RecordingReloader:
    return RecordingReloader()


@pytest.fixture
def settings(tmp_path) -> Settings:
    ssl_dir = tmp_path / "ssl.d"
    ssl_dir.mkdir()
    return Settings(
        config_dir=str(tmp_path / "conf.d"),
        htpasswd_dir=str(tmp_path / "htpasswd.d"),
        ssl_dir=str(ssl_dir),
        poll_interval_s=1,
    )


