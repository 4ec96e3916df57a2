from __future__ import annotations

import argparse
import sys

from .docker_ops import connect
from .errors import AutoproxyError
from .events import LEVELS, configure_logging, log_event
from .reconciler import Reconciler
from .runtime import RuntimeState
from .settings import Settings


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="autoproxy",
        description="Generate reverse proxy configuration for running Docker containers",
    )
    p.add_argument(
        "--loglevel",
        default=None,
        metavar="LEVEL",
        help=f"logging level, one of {', '.join(LEVELS)} (use \"debug\" for verbose output; default: info)",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env().with_log_level(args.loglevel)
    except ValueError as e:
        print(f"autoproxy: Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        configure_logging(settings.log_level)
    except ValueError as e:
        print(f"autoproxy: Unable to initialise logger: {e}", file=sys.stderr)
        return 2

    runtime = RuntimeState()
    try:
        inventory = connect(settings.docker_host)
        if settings.status_port > 0:
            from .status_api import start_status_server

            start_status_server(runtime, settings.status_host, settings.status_port)
        Reconciler.from_settings(settings, inventory, runtime=runtime).run_forever()
    except AutoproxyError as e:
        log_event("CRITICAL", "Unable to configure and reload proxy", err=e, error_type=type(e).__name__)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
