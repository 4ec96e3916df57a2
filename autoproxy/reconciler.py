from __future__ import annotations

import time
from typing import Callable

from .artifacts import ConfigArtifact, CredentialArtifact
from .docker_ops import Inventory
from .events import log_event, utc_now
from .inventory import SKIP_NO_VIRTUAL_HOST, InventoryReader
from .reload import ProxyReloader
from .runtime import CycleReport, RuntimeState
from .settings import Settings
from .sync import sync_directory


class Reconciler:
    """Keeps the proxy's config and htpasswd directories in line with the running containers.

    One cycle: discover -> sync config dir -> sync htpasswd dir -> reload if
    either changed. Nothing is retried: any error leaves the loop and the
    process supervisor is expected to restart us.
    """

    def __init__(
        self,
        settings: Settings,
        reader: InventoryReader,
        reloader: ProxyReloader,
        runtime: RuntimeState | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.reader = reader
        self.reloader = reloader
        self.runtime = runtime or RuntimeState()
        self.config_artifact = ConfigArtifact(settings.template_path, settings.ssl_dir, settings.htpasswd_dir)
        self.credential_artifact = CredentialArtifact()
        self._sleep = sleep
        self._stop = False

    @classmethod
    def from_settings(cls, settings: Settings, inventory: Inventory, runtime: RuntimeState | None = None) -> "Reconciler":
        return cls(
            settings,
            InventoryReader(inventory, settings.ssl_dir),
            ProxyReloader(settings.reload_command, settings.reload_failure_marker),
            runtime=runtime,
        )

    def stop(self) -> None:
        self._stop = True

    def run_forever(self) -> None:
        log_event("INFO", "Reconciler started", interval_s=self.settings.poll_interval_s)
        while not self._stop:
            self.run_once()
            if self._stop:
                break
            self._sleep(max(1, self.settings.poll_interval_s))

    def run_once(self) -> CycleReport:
        started = time.monotonic()
        started_at = utc_now()

        discovery = self.reader.discover()
        endpoints = discovery.endpoints

        dirs = (
            sync_directory(self.settings.config_dir, self.config_artifact, endpoints),
            sync_directory(self.settings.htpasswd_dir, self.credential_artifact, endpoints),
        )

        reloaded = False
        if any(d.changed for d in dirs):
            self.reloader.reload()
            reloaded = True
        else:
            log_event("DEBUG", "Skipped reloading proxy configuration")

        report = CycleReport(
            started_at=started_at,
            finished_at=utc_now(),
            duration_ms=round((time.monotonic() - started) * 1000.0, 2),
            endpoints=tuple(ep.name for ep in endpoints),
            skipped=dict(discovery.skipped),
            directories=dirs,
            reloaded=reloaded,
        )
        # Containers without VIRTUAL_HOST are the normal case and not worth a summary line.
        notable = {k: v for k, v in discovery.skipped.items() if k != SKIP_NO_VIRTUAL_HOST}
        if notable or report.render_failures:
            log_event(
                "INFO",
                "Some containers were left out of this cycle",
                render_failures=report.render_failures,
                **{f"skipped_{k}": v for k, v in notable.items()},
            )
        self.runtime.publish(report)
        return report
