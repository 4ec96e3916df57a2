from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path

DEFAULT_TEMPLATE = str(Path(__file__).resolve().parent / "templates" / "nginx.conf.j2")


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_command(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = _env_str(name, shlex.join(default))
    try:
        return tuple(shlex.split(raw))
    except ValueError as e:
        raise ValueError(f"{name}: {e}: {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Docker
    docker_host: str | None = None  # None -> docker.from_env()

    # Filesystem layout
    config_dir: str = "/etc/nginx/conf.d"
    htpasswd_dir: str = "/etc/nginx/htpasswd.d"
    ssl_dir: str = "/etc/nginx/ssl.d"
    template_path: str = DEFAULT_TEMPLATE

    # Loop
    poll_interval_s: int = 5
    reload_command: tuple[str, ...] = field(default=("nginx", "-s", "reload"))
    reload_failure_marker: str = "fail"
    log_level: str = "info"

    # Optional read-only status API (0 disables it).
    status_host: str = "127.0.0.1"
    status_port: int = 0

    @classmethod
    def from_env(cls) -> "Settings":
        d = cls()
        return cls(
            docker_host=os.getenv("AUTOPROXY_DOCKER_HOST") or None,
            config_dir=_env_str("AUTOPROXY_CONFIG_DIR", d.config_dir),
            htpasswd_dir=_env_str("AUTOPROXY_HTPASSWD_DIR", d.htpasswd_dir),
            ssl_dir=_env_str("AUTOPROXY_SSL_DIR", d.ssl_dir),
            template_path=_env_str("AUTOPROXY_TEMPLATE", d.template_path),
            poll_interval_s=_env_int("AUTOPROXY_POLL_INTERVAL_S", d.poll_interval_s),
            reload_command=_env_command("AUTOPROXY_RELOAD_COMMAND", d.reload_command),
            reload_failure_marker=_env_str("AUTOPROXY_RELOAD_FAILURE_MARKER", d.reload_failure_marker),
            log_level=_env_str("AUTOPROXY_LOG_LEVEL", d.log_level),
            status_host=_env_str("AUTOPROXY_STATUS_HOST", d.status_host),
            status_port=_env_int("AUTOPROXY_STATUS_PORT", d.status_port),
        )

    def with_log_level(self, level: str | None) -> "Settings":
        if not level:
            return self
        return replace(self, log_level=level)
