from __future__ import annotations

import os
from collections import Counter
from dataclasses import dataclass, field

import requests
from docker.errors import DockerException
from pydantic import TypeAdapter, ValidationError

from .docker_ops import ContainerDetail, ContainerSummary, Inventory, primary_name
from .events import log_event
from .runtime import DesiredEndpoint

VIRTUAL_HOST = "VIRTUAL_HOST"
VIRTUAL_PORT = "VIRTUAL_PORT"
SSL_CERT_NAME = "SSL_CERT_NAME"
HTPASSWD = "HTPASSWD"

# Skip reasons reported in Discovery.skipped
SKIP_INSPECT_FAILED = "inspect_failed"
SKIP_NO_VIRTUAL_HOST = "no_virtual_host"
SKIP_NO_PORT = "no_port"
SKIP_AMBIGUOUS_PORT = "ambiguous_port"
SKIP_INVALID_PORT = "invalid_port"
SKIP_NO_ADDRESS = "no_address"

_htpasswd_entries = TypeAdapter(list[str])


@dataclass(frozen=True)
class Discovery:
    endpoints: tuple[DesiredEndpoint, ...]
    skipped: dict[str, int] = field(default_factory=dict)

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())


def parse_port(raw: str) -> int | None:
    try:
        port = int(raw.strip())
    except ValueError:
        return None
    if not 1 <= port <= 65535:
        return None
    return port


def parse_credentials(raw: str | None) -> tuple[str, ...] | None:
    """Decode a JSON array of htpasswd lines. None means the value was unusable."""
    if raw is None:
        return ()
    try:
        return tuple(_htpasswd_entries.validate_json(raw))
    except ValidationError:
        return None


class InventoryReader:
    """Derives the desired endpoints from the containers running right now."""

    def __init__(self, inventory: Inventory, ssl_dir: str):
        self.inventory = inventory
        self.ssl_dir = ssl_dir

    def discover(self) -> Discovery:
        """List running containers and build one DesiredEndpoint per routable container.

        Only the list call may raise (InventoryError); anything wrong with a
        single container excludes that container and is counted in `skipped`.
        """
        summaries = self.inventory.list_running()
        endpoints: list[DesiredEndpoint] = []
        skipped: Counter[str] = Counter()
        for summary in summaries:
            try:
                detail = self.inventory.inspect(summary.id)
            except (DockerException, requests.exceptions.RequestException) as e:
                log_event("WARN", "Unable to inspect container", container=summary.name or summary.id, err=e)
                skipped[SKIP_INSPECT_FAILED] += 1
                continue
            endpoint, reason = self._endpoint_for(summary, detail)
            if endpoint is None:
                skipped[reason] += 1
                continue
            endpoints.append(endpoint)
        return Discovery(endpoints=tuple(endpoints), skipped=dict(skipped))

    def _endpoint_for(self, summary: ContainerSummary, detail: ContainerDetail) -> tuple[DesiredEndpoint | None, str]:
        name = summary.name or primary_name(detail.names) or detail.id
        env = detail.env

        vhost = env.get(VIRTUAL_HOST, "").strip()
        if not vhost:
            log_event("DEBUG", "container does not have a `VIRTUAL_HOST` env variable, skipping", container=name)
            return None, SKIP_NO_VIRTUAL_HOST

        port: int | None
        raw_port = env.get(VIRTUAL_PORT, "").strip()
        if raw_port:
            port = parse_port(raw_port)
            if port is None:
                log_event("WARN", "container has an unparseable `VIRTUAL_PORT`, skipping", container=name, VIRTUAL_PORT=raw_port)
                return None, SKIP_INVALID_PORT
        elif len(detail.exposed_ports) > 1:
            log_event(
                "DEBUG",
                "container does not have a `VIRTUAL_PORT` env variable and exposes more than one port, skipping",
                container=name,
            )
            return None, SKIP_AMBIGUOUS_PORT
        elif not detail.exposed_ports:
            log_event("DEBUG", "container does not expose any ports, skipping", container=name)
            return None, SKIP_NO_PORT
        else:
            (only,) = detail.exposed_ports
            port = parse_port(only)
            if port is None:
                log_event("WARN", "container exposes an unparseable port, skipping", container=name, port=only)
                return None, SKIP_INVALID_PORT

        # Host-network containers have no address of their own; `server :port;` breaks the reload.
        if not detail.ip_address:
            log_event("WARN", "container has no IP address, skipping", container=name)
            return None, SKIP_NO_ADDRESS

        return (
            DesiredEndpoint(
                name=name,
                virtual_host=vhost,
                container_address=detail.ip_address,
                container_port=port,
                ssl_cert_name=self._checked_ssl_cert_name(name, env.get(SSL_CERT_NAME, "").strip()),
                credential_entries=self._credentials(name, env.get(HTPASSWD)),
            ),
            "",
        )

    def _checked_ssl_cert_name(self, container: str, cert_name: str) -> str:
        # nginx refuses to start if either half of the pair is missing.
        if not cert_name:
            return ""
        cert_path = os.path.join(self.ssl_dir, f"{cert_name}.crt")
        if not os.path.isfile(cert_path):
            log_event("WARN", "Unable to find SSL certificate file, disabling HTTPS", container=container, SSL_CERT_NAME=cert_name)
            return ""
        key_path = os.path.join(self.ssl_dir, f"{cert_name}.key")
        if not os.path.isfile(key_path):
            log_event("WARN", "Unable to find SSL private key file, disabling HTTPS", container=container, SSL_CERT_NAME=cert_name)
            return ""
        return cert_name

    def _credentials(self, container: str, raw: str | None) -> tuple[str, ...]:
        entries = parse_credentials(raw)
        if entries is None:
            log_event(
                "DEBUG",
                "Unable to parse htpasswd entries from container, is `HTPASSWD` a JSON array?",
                container=container,
            )
            return ()
        return entries
