import os

import pytest

from autoproxy.artifacts import CredentialArtifact, RenderError
from autoproxy.errors import SyncError
from autoproxy.runtime import DesiredEndpoint
from autoproxy.sync import remove_redundant, sync_directory, write_if_changed


class TextArtifact:
    """Renders `<name> <host>`; names in `failing` raise RenderError."""

    kind = "config"

    def __init__(self, failing=()):
        self.failing = set(failing)

    def render(self, endpoint):
        if endpoint.name in self.failing:
            raise RenderError("boom")
        return f"{endpoint.name} {endpoint.virtual_host}\n".encode()


def _ep(name, host=None, entries=()):
    return DesiredEndpoint(
        name=name,
        virtual_host=host or f"{name}.example.com",
        container_address="10.0.0.1",
        container_port=80,
        credential_entries=tuple(entries),
    )


def _listing(path):
    return sorted(os.listdir(path))


def test_creates_missing_directory_and_writes(tmp_path):
    target = tmp_path / "nested" / "conf.d"

    res = sync_directory(str(target), TextArtifact(), [_ep("web1")])

    assert res.changed is True
    assert res.written == ("web1",)
    assert (target / "web1").read_bytes() == b"web1 web1.example.com\n"
    assert oct((target / "web1").stat().st_mode & 0o777) == oct(0o644)


def test_second_pass_is_a_no_op(tmp_path):
    eps = [_ep("web1"), _ep("web2")]
    sync_directory(str(tmp_path), TextArtifact(), eps)
    mtimes = {n: os.stat(tmp_path / n).st_mtime_ns for n in ("web1", "web2")}

    res = sync_directory(str(tmp_path), TextArtifact(), eps)

    assert res.changed is False
    assert res.written == ()
    assert res.removed == ()
    assert {n: os.stat(tmp_path / n).st_mtime_ns for n in ("web1", "web2")} == mtimes


def test_garbage_collection(tmp_path):
    for name in ("a", "b", "c"):
        (tmp_path / name).write_bytes(f"{name} {name}.example.com\n".encode())
    b_mtime = os.stat(tmp_path / "b").st_mtime_ns

    res = sync_directory(str(tmp_path), TextArtifact(), [_ep("b"), _ep("d")])

    assert _listing(tmp_path) == ["b", "d"]
    assert res.changed is True
    assert res.written == ("d",)
    assert res.removed == ("a", "c")
    assert os.stat(tmp_path / "b").st_mtime_ns == b_mtime


def test_changed_content_is_rewritten(tmp_path):
    sync_directory(str(tmp_path), TextArtifact(), [_ep("web1", host="old.com")])

    res = sync_directory(str(tmp_path), TextArtifact(), [_ep("web1", host="new.com")])

    assert res.written == ("web1",)
    assert (tmp_path / "web1").read_text() == "web1 new.com\n"


def test_removal_alone_reports_change(tmp_path):
    (tmp_path / "stale").write_text("x")

    res = sync_directory(str(tmp_path), TextArtifact(), [])

    assert res.changed is True
    assert res.removed == ("stale",)
    assert _listing(tmp_path) == []


def test_render_failure_keeps_existing_file(tmp_path):
    (tmp_path / "web1").write_text("previous\n")

    res = sync_directory(str(tmp_path), TextArtifact(failing={"web1"}), [_ep("web1"), _ep("web2")])

    assert (tmp_path / "web1").read_text() == "previous\n"
    assert res.render_failures == ("web1",)
    assert res.written == ("web2",)


def test_credentials_only_for_endpoints_with_entries(tmp_path):
    res = sync_directory(str(tmp_path), CredentialArtifact(), [_ep("open"), _ep("private", entries=["bob:h"])])

    assert _listing(tmp_path) == ["private"]
    assert (tmp_path / "private").read_text() == "bob:h"
    assert res.written == ("private",)


def test_subdirectories_are_not_collected(tmp_path):
    (tmp_path / "snippets").mkdir()

    res = sync_directory(str(tmp_path), TextArtifact(), [])

    assert res.changed is False
    assert _listing(tmp_path) == ["snippets"]


def test_no_temporary_files_left_behind(tmp_path):
    sync_directory(str(tmp_path), TextArtifact(), [_ep("web1")])
    sync_directory(str(tmp_path), TextArtifact(), [_ep("web1", host="other.com")])

    assert _listing(tmp_path) == ["web1"]


def test_write_if_changed(tmp_path):
    path = str(tmp_path / "f")

    assert write_if_changed(path, b"one") is True
    assert write_if_changed(path, b"one") is False
    assert write_if_changed(path, b"two") is True


def test_directory_creation_failure_is_fatal(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")

    with pytest.raises(SyncError):
        sync_directory(str(blocker / "conf.d"), TextArtifact(), [_ep("web1")])


def test_listing_failure_is_fatal(tmp_path):
    with pytest.raises(SyncError):
        remove_redundant(str(tmp_path / "missing"), set())
