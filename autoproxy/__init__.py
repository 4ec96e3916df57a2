"""docker-autoproxy.

Watches the running containers on a Docker host and keeps a reverse proxy's
configuration directory in step with them:
 - one rendered config file per container that declares VIRTUAL_HOST
 - one htpasswd file per container that declares HTPASSWD
 - stale files removed, proxy reloaded only when something on disk changed
"""
from __future__ import annotations

__version__ = "0.2.0"
