"""
Filesystem adapter — the primitives used to populate a guest root.

Every operation returns a Receipt carrying the affected path and, on
failure, the OS error number, so the services above can report exactly
which placement broke.

Action params:
    operation (str): One of 'copy_file', 'copy_dir', 'mkdirp', 'symlink', 'unlink'.
    dst (str): Destination, relative to the guest root.
    src (str): Source, relative to the asset bundle (copy_file, copy_dir).
    target (str): Literal link target (symlink).
    uid, gid (int): Ownership to apply (default 0/0).
    mode (int): Permission bits (copy_file, copy_dir, mkdirp).
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import time
from pathlib import Path

from lxguest.adapters.base import Adapter, ExecutionContext
from lxguest.core.models.action import Receipt
from lxguest.core.models.distro import ROOT_GID, ROOT_UID

logger = logging.getLogger(__name__)

# Mode for directories created implicitly (parents, copy_dir subtrees).
DIR_MODE = 0o755

_REQUIRED = {
    "copy_file": ("src", "dst", "mode"),
    "copy_dir": ("src", "dst", "mode"),
    "mkdirp": ("dst", "mode"),
    "symlink": ("target", "dst"),
    "unlink": ("dst",),
}


class FilesystemAdapter(Adapter):
    """Guest-root file operations with receipts."""

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        operation = params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in _REQUIRED:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_REQUIRED))}"

        for key in _REQUIRED[operation]:
            if key not in params or params[key] in ("", None):
                return False, f"Missing required param: '{key}' for {operation} operation"

        return True, ""

    def preflight(self, context: ExecutionContext) -> Receipt | None:
        operation = context.action.params["operation"]
        if operation not in ("copy_file", "copy_dir"):
            return None

        source = context.asset_path(context.action.params["src"])
        present = source.is_file() if operation == "copy_file" else source.is_dir()
        if present:
            return None
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=f"{operation} failed for {source}: No such file or directory",
            errno=errno.ENOENT,
            path=str(source),
            metadata={"operation": operation, "dry_run": True},
        )

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        operation = params["operation"]
        target = context.guest_path(params["dst"])
        uid = int(params.get("uid", ROOT_UID))
        gid = int(params.get("gid", ROOT_GID))

        start = time.monotonic()
        try:
            if operation == "copy_file":
                receipt = self._copy_file(context, target, uid, gid)
            elif operation == "copy_dir":
                receipt = self._copy_dir(context, target, uid, gid)
            elif operation == "mkdirp":
                receipt = self._mkdirp(context, target, uid, gid)
            elif operation == "symlink":
                receipt = self._symlink(context, target, uid, gid)
            elif operation == "unlink":
                receipt = self._unlink(context, target)
            else:
                receipt = Receipt.failure(
                    adapter=self.name,
                    action_id=context.action.id,
                    error=f"Unknown operation: {operation}",
                    path=str(target),
                )
        except OSError as e:
            failed_path = e.filename if e.filename else target
            receipt = Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"{operation} failed for {failed_path}: {e.strerror or e}",
                errno=e.errno,
                path=str(failed_path),
                metadata={"operation": operation},
            )
        except Exception as e:
            receipt = Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                path=str(target),
                metadata={"operation": operation},
            )

        receipt.duration_ms = int((time.monotonic() - start) * 1000)
        return receipt

    # ── Operations ──────────────────────────────────────────────

    def _copy_file(self, ctx: ExecutionContext, target: Path, uid: int, gid: int) -> Receipt:
        source = ctx.asset_path(ctx.action.params["src"])
        mode = int(ctx.action.params["mode"])

        if not source.is_file():
            raise FileNotFoundError(errno.ENOENT, "No such file", str(source))
        if not target.parent.is_dir():
            raise FileNotFoundError(errno.ENOENT, "Parent directory does not exist", str(target.parent))

        _place_file(source, target, uid, gid, mode)
        logger.debug("Copied %s → %s (%o)", source, target, mode)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Copied {source} to {target}",
            path=str(target),
            metadata={"source": str(source), "mode": oct(mode)},
        )

    def _copy_dir(self, ctx: ExecutionContext, target: Path, uid: int, gid: int) -> Receipt:
        source = ctx.asset_path(ctx.action.params["src"])
        mode = int(ctx.action.params["mode"])

        if not source.is_dir():
            raise FileNotFoundError(errno.ENOENT, "No such directory", str(source))

        _make_dirs(target, uid, gid, DIR_MODE)
        dest_root = target / source.name
        copied = 0

        for dirpath, dirnames, filenames in os.walk(source):
            rel = Path(dirpath).relative_to(source)
            dest_dir = dest_root / rel
            _make_dirs(dest_dir, uid, gid, DIR_MODE)
            dirnames.sort()
            for filename in sorted(filenames):
                _place_file(Path(dirpath) / filename, dest_dir / filename, uid, gid, mode)
                copied += 1

        logger.debug("Copied tree %s → %s (%d files)", source, dest_root, copied)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Copied {copied} files from {source} into {target}",
            path=str(dest_root),
            metadata={"source": str(source), "files": copied, "mode": oct(mode)},
        )

    def _mkdirp(self, ctx: ExecutionContext, target: Path, uid: int, gid: int) -> Receipt:
        mode = int(ctx.action.params["mode"])
        created = _make_dirs(target, uid, gid, mode)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Directory ready: {target}",
            path=str(target),
            metadata={"created": [str(p) for p in created]},
        )

    def _symlink(self, ctx: ExecutionContext, link: Path, uid: int, gid: int) -> Receipt:
        link_target = str(ctx.action.params["target"])

        if os.path.lexists(link):
            if link.is_symlink() and os.readlink(link) == link_target:
                return Receipt.skip(
                    adapter=self.name,
                    action_id=ctx.action.id,
                    reason=f"{link} already links to {link_target}",
                    path=str(link),
                )
            raise FileExistsError(errno.EEXIST, "File exists", str(link))

        _make_dirs(link.parent, uid, gid, DIR_MODE)
        os.symlink(link_target, link)
        os.lchown(link, uid, gid)
        logger.debug("Linked %s → %s", link, link_target)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Linked {link} to {link_target}",
            path=str(link),
            metadata={"target": link_target},
        )

    def _unlink(self, ctx: ExecutionContext, target: Path) -> Receipt:
        os.unlink(target)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Removed {target}",
            path=str(target),
        )


def _place_file(source: Path, target: Path, uid: int, gid: int, mode: int) -> None:
    """Copy one file's bytes, then apply ownership and mode."""
    # Never write through a link planted in the guest.
    if target.is_symlink():
        target.unlink()
    shutil.copyfile(source, target)
    os.chown(target, uid, gid)
    os.chmod(target, mode)


def _make_dirs(path: Path, uid: int, gid: int, mode: int) -> list[Path]:
    """Create ``path`` and any missing ancestors; return the ones created."""
    missing: list[Path] = []
    current = path
    while not current.exists():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent

    if current.exists() and not current.is_dir():
        raise NotADirectoryError(errno.ENOTDIR, "Not a directory", str(current))

    created: list[Path] = []
    for directory in reversed(missing):
        directory.mkdir()
        os.chown(directory, uid, gid)
        os.chmod(directory, mode)
        created.append(directory)
    return created
