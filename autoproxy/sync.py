from __future__ import annotations

import os
import tempfile
from typing import Iterable

from .artifacts import Artifact, RenderError
from .errors import SyncError
from .events import log_event
from .runtime import DesiredEndpoint, DirectoryReport

FILE_MODE = 0o644
DIR_MODE = 0o755


def _atomic_write(path: str, content: bytes) -> None:
    directory, name = os.path.split(path)
    fd, tmp = tempfile.mkstemp(dir=directory, prefix=f".{name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, FILE_MODE)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


def write_if_changed(path: str, content: bytes) -> bool:
    """Write `content` to `path` unless the file already holds exactly those bytes.

    Returns True when the file was created or rewritten.
    """
    try:
        with open(path, "rb") as f:
            current: bytes | None = f.read()
    except FileNotFoundError:
        current = None
    except OSError as e:
        raise SyncError(f"Unable to read {path}: {e}") from e

    if current == content:
        return False

    log_event("INFO", "Writing file", filePath=path)
    try:
        _atomic_write(path, content)
    except OSError as e:
        raise SyncError(f"Unable to write {path}: {e}") from e
    return True


def remove_redundant(directory: str, keep: set[str]) -> list[str]:
    """Delete every file in `directory` whose name is not in `keep`. Subdirectories are left alone."""
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError as e:
        raise SyncError(f"Unable to list {directory}: {e}") from e

    removed: list[str] = []
    for entry in entries:
        if entry.name in keep:
            continue
        if entry.is_dir(follow_symlinks=False):
            log_event("DEBUG", "Ignoring subdirectory", path=entry.path)
            continue
        log_event("INFO", "Removing file", filePath=entry.path)
        try:
            os.remove(entry.path)
        except FileNotFoundError:
            continue
        except OSError as e:
            raise SyncError(f"Unable to remove {entry.path}: {e}") from e
        removed.append(entry.name)
    return removed


def sync_directory(directory: str, artifact: Artifact, endpoints: Iterable[DesiredEndpoint]) -> DirectoryReport:
    """Make `directory` hold exactly one artifact per endpoint.

    Files are only touched when their content differs, so a pass over an
    unchanged inventory leaves the directory (and every mtime) as it was and
    reports changed=False. Errors are not rolled back; each individual file
    write is atomic.
    """
    endpoints = list(endpoints)
    try:
        os.makedirs(directory, mode=DIR_MODE, exist_ok=True)
    except OSError as e:
        raise SyncError(f"Unable to create directory {directory}: {e}") from e

    written: list[str] = []
    failures: list[str] = []
    for ep in endpoints:
        try:
            content = artifact.render(ep)
        except RenderError as e:
            log_event("WARN", "Unable to render artifact, leaving it unchanged", container=ep.name, kind=artifact.kind, err=e)
            failures.append(ep.name)
            continue
        if content is None:
            continue
        if write_if_changed(os.path.join(directory, ep.name), content):
            written.append(ep.name)

    removed = remove_redundant(directory, {ep.name for ep in endpoints})

    return DirectoryReport(
        kind=artifact.kind,
        directory=directory,
        changed=bool(written or removed),
        written=tuple(written),
        removed=tuple(removed),
        render_failures=tuple(failures),
    )
