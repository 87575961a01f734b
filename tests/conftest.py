"""
Shared test fixtures and configuration.
"""

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from lxguest.core.config.loader import DEFAULT_ASSETS_DIR
from lxguest.core.models.distro import MARKER_TABLE, Distribution

# Directories every real guest root already has.
GUEST_SKELETON = ("etc/profile.d", "sbin", "usr/sbin", "lib")


@pytest.fixture(autouse=True)
def chown_calls(monkeypatch) -> list[tuple[str, int, int]]:
    """Record chown/lchown instead of performing them, so tests run unprivileged."""
    calls: list[tuple[str, int, int]] = []

    def _record(path, uid, gid, *args, **kwargs):
        calls.append((str(path), uid, gid))

    monkeypatch.setattr(os, "chown", _record)
    monkeypatch.setattr(os, "lchown", _record)
    return calls


@pytest.fixture
def assets_dir() -> Path:
    """The asset bundle shipped with the package."""
    return DEFAULT_ASSETS_DIR


@pytest.fixture
def make_guest(tmp_path: Path) -> Callable[..., Path]:
    """Build a guest root skeleton with the markers of the given distributions."""

    def _make(*distributions: Distribution, name: str = "root") -> Path:
        root = tmp_path / name
        for rel in GUEST_SKELETON:
            (root / rel).mkdir(parents=True, exist_ok=True)
        markers = dict(MARKER_TABLE)
        for distribution in distributions:
            marker = root / markers[distribution]
            marker.write_text(f"{distribution.value}\n")
        return root

    return _make


def snapshot(root: Path) -> dict[str, tuple[int, bytes | str]]:
    """Map every entry under ``root`` to (mode, content-or-link-target)."""
    result: dict[str, tuple[int, bytes | str]] = {}
    for path in sorted(root.rglob("*")):
        st = path.lstat()
        if path.is_symlink():
            result[str(path.relative_to(root))] = (st.st_mode, os.readlink(path))
        elif path.is_file():
            result[str(path.relative_to(root))] = (st.st_mode, path.read_bytes())
        else:
            result[str(path.relative_to(root))] = (st.st_mode, "")
    return result


@pytest.fixture
def tree_snapshot() -> Callable[[Path], dict[str, tuple[int, bytes | str]]]:
    return snapshot
