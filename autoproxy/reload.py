from __future__ import annotations

import subprocess
from typing import Sequence

from .errors import ReloadError
from .events import log_event


class ProxyReloader:
    """Runs the proxy's reload command and decides whether it worked.

    Some init wrappers (`service nginx reload` on Ubuntu, for one) exit 0
    even when the reload failed, so success requires BOTH a zero exit code
    and no `failure_marker` anywhere in the combined stdout/stderr.
    """

    def __init__(self, command: Sequence[str], failure_marker: str = "fail"):
        if not command:
            raise ValueError("reload command must not be empty")
        self.command = list(command)
        self.failure_marker = failure_marker

    def reload(self) -> None:
        try:
            proc = subprocess.run(
                self.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as e:
            raise ReloadError(f"Unable to run {' '.join(self.command)}: {e}") from e

        output = proc.stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise ReloadError(f"Failed to reload proxy: exit code {proc.returncode}: {output.strip()}")
        if self.failure_marker and self.failure_marker in output:
            raise ReloadError(f"Failed to reload proxy: {output.strip()}")

        log_event("INFO", "Reloaded proxy configuration")
