"""
Distribution and InstallStep models.

A Distribution is identified once per provisioning run from marker
files in the guest root. An InstallStep describes one file placement
the installer performs; the per-distribution step tables live in
``lxguest.core.services.distro``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from lxguest.core.models.action import Action

# Ownership applied to everything placed in a guest root.
ROOT_UID = 0
ROOT_GID = 0


class Distribution(StrEnum):
    """Linux distributions the installer knows how to integrate with."""

    ALPINE = "alpine"
    ARCH = "arch"
    DEBIAN = "debian"
    REDHAT = "redhat"
    VOID = "void"
    UNKNOWN = "unknown"


# Checked in this order; the first marker present wins.
MARKER_TABLE: tuple[tuple[Distribution, str], ...] = (
    (Distribution.ALPINE, "etc/alpine-release"),
    (Distribution.ARCH, "etc/arch-release"),
    (Distribution.DEBIAN, "etc/debian_version"),
    (Distribution.REDHAT, "etc/redhat-release"),
    (Distribution.VOID, "etc/void-release"),
)


Operation = Literal["copy_file", "copy_dir", "mkdirp", "symlink"]


class InstallStep(BaseModel):
    """One file placement under a guest root.

    For ``copy_file`` and ``copy_dir``, ``source`` is relative to the
    asset bundle. For ``symlink`` it is the literal link target. For
    ``mkdirp`` it is unused. ``destination`` is always relative to the
    guest root.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    operation: Operation
    destination: str
    source: str = ""
    mode: int = 0o755
    uid: int = ROOT_UID
    gid: int = ROOT_GID

    def to_action(self, prefix: str = "") -> Action:
        """Build the adapter Action that performs this step."""
        params: dict = {
            "operation": self.operation,
            "dst": self.destination,
            "uid": self.uid,
            "gid": self.gid,
        }
        if self.operation == "symlink":
            params["target"] = self.source
        else:
            params["mode"] = self.mode
            if self.source:
                params["src"] = self.source

        action_id = f"{prefix}:{self.name}" if prefix else self.name
        return Action(id=action_id, name=self.name, params=params)
