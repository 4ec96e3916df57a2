from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import docker
import requests
from docker.errors import DockerException

from .errors import InventoryError


@dataclass(frozen=True)
class ContainerSummary:
    id: str
    names: tuple[str, ...]

    @property
    def name(self) -> str:
        return primary_name(self.names)


@dataclass(frozen=True)
class ContainerDetail:
    id: str
    names: tuple[str, ...]
    env: dict[str, str] = field(default_factory=dict)
    exposed_ports: frozenset[str] = frozenset()
    ip_address: str = ""


class Inventory(Protocol):
    def list_running(self) -> list[ContainerSummary]: ...

    def inspect(self, container_id: str) -> ContainerDetail: ...


def primary_name(names: tuple[str, ...] | list[str]) -> str:
    for n in names:
        if n:
            return n.lstrip("/")
    return ""


def parse_env(raw: list[str] | None) -> dict[str, str]:
    """Turn Docker's ["KEY=value", ...] list into a dict. Later entries win."""
    env: dict[str, str] = {}
    for item in raw or []:
        key, sep, value = item.partition("=")
        if not key:
            continue
        env[key] = value if sep else ""
    return env


def parse_ports(attrs: dict[str, Any]) -> frozenset[str]:
    """Exposed container ports, without the /tcp or /udp suffix."""
    net = attrs.get("NetworkSettings") or {}
    ports = net.get("Ports") or (attrs.get("Config") or {}).get("ExposedPorts") or {}
    return frozenset(str(key).split("/", 1)[0] for key in ports)


def container_ip(attrs: dict[str, Any]) -> str:
    net = attrs.get("NetworkSettings") or {}
    ip = net.get("IPAddress") or ""
    if ip:
        return ip
    # Containers attached only to user-defined networks have no top-level IPAddress.
    for network in (net.get("Networks") or {}).values():
        ip = (network or {}).get("IPAddress") or ""
        if ip:
            return ip
    return ""


class DockerInventory:
    """Read-only view of running containers via the Docker Engine API."""

    def __init__(self, api: Any):
        # `api` is a docker.APIClient (or DockerClient.api).
        self.api = api

    def list_running(self) -> list[ContainerSummary]:
        try:
            rows = self.api.containers(all=False)
        except (DockerException, requests.exceptions.RequestException) as e:
            raise InventoryError(f"Unable to list containers: {type(e).__name__}: {e}") from e
        return [ContainerSummary(id=r["Id"], names=tuple(r.get("Names") or ())) for r in rows]

    def inspect(self, container_id: str) -> ContainerDetail:
        attrs = self.api.inspect_container(container_id)
        name = attrs.get("Name") or ""
        return ContainerDetail(
            id=attrs.get("Id", container_id),
            names=(name,) if name else (),
            env=parse_env((attrs.get("Config") or {}).get("Env")),
            exposed_ports=parse_ports(attrs),
            ip_address=container_ip(attrs),
        )


def connect(docker_host: str | None = None) -> DockerInventory:
    """Connect to the Docker daemon and verify it answers."""
    try:
        client = docker.DockerClient(base_url=docker_host) if docker_host else docker.from_env()
        client.ping()
    except (DockerException, requests.exceptions.RequestException) as e:
        raise InventoryError(f"Unable to connect to docker API: {type(e).__name__}: {e}") from e
    return DockerInventory(client.api)
