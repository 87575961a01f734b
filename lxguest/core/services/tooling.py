"""
Tooling installer — provisions guest-agent tooling into a guest root.

Runs four steps in a fixed order, aborting on the first failure:

    1. metadata command links   usr/sbin/mdata-* → /native/usr/sbin/mdata-*
    2. manpath profile script   etc/profile.d/native_manpath.sh
    3. shared helper scripts    lib/smartdc/
    4. distro integration       detect + install (always last)

Steps already applied when a later one fails stay applied.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from lxguest.adapters.base import Adapter
from lxguest.adapters.filesystem import FilesystemAdapter
from lxguest.core.config.loader import DEFAULT_ASSETS_DIR
from lxguest.core.engine.executor import ExecutionReport, StepRunner
from lxguest.core.errors import UnlinkFailed
from lxguest.core.models.action import Action
from lxguest.core.models.distro import Distribution, InstallStep
from lxguest.core.services import distro

logger = logging.getLogger(__name__)

# Host-provided overlay holding the real metadata binaries.
NATIVE_ROOT = "/native"

MDATA_COMMANDS = ("mdata-get", "mdata-put", "mdata-delete", "mdata-list")

MANPATH_STEP = InstallStep(
    name="native_manpath.sh",
    operation="copy_file",
    source="guest/etc/profile.d/native_manpath.sh",
    destination="etc/profile.d/native_manpath.sh",
    mode=0o744,
)

SMARTDC_STEP = InstallStep(
    name="smartdc",
    operation="copy_dir",
    source="guest/lib/smartdc",
    destination="lib",
    mode=0o755,
)


def mdata_steps() -> list[InstallStep]:
    """Symlink steps for the metadata commands."""
    return [
        InstallStep(
            name=command,
            operation="symlink",
            source=f"{NATIVE_ROOT}/usr/sbin/{command}",
            destination=f"usr/sbin/{command}",
        )
        for command in MDATA_COMMANDS
    ]


def _unlink_action(step: InstallStep) -> Action:
    return Action(
        id=f"mdata:{step.name}:unlink",
        name=f"unlink {step.name}",
        params={"operation": "unlink", "dst": step.destination},
    )


def install_mdata_commands(runner: StepRunner) -> None:
    """Link the metadata commands, replacing whatever is already there."""
    for step in mdata_steps():
        dst = runner.guest_root / step.destination
        # lexists: a dangling link from an earlier run still has to go.
        if os.path.lexists(dst):
            runner.run(_unlink_action(step), error_cls=UnlinkFailed)
            logger.info("Unlinked %s", dst)
        runner.run(step.to_action("mdata"))


def install_native_manpath(runner: StepRunner) -> None:
    runner.run(MANPATH_STEP.to_action("manpath"))


def install_smartdc(runner: StepRunner) -> None:
    runner.run(SMARTDC_STEP.to_action("smartdc"))


def install_distro(runner: StepRunner) -> None:
    detected = distro.detect(runner.guest_root)
    runner.report.distribution = detected.value
    distro.install(detected, runner.guest_root, runner=runner)


def install_tools(
    guest_root: Path | str,
    *,
    assets_dir: Path | str | None = None,
    adapter: Adapter | None = None,
    dry_run: bool = False,
    report: ExecutionReport | None = None,
) -> ExecutionReport:
    """Provision guest-agent tooling into ``guest_root``.

    Args:
        guest_root: Root of the guest filesystem.
        assets_dir: Asset bundle root (default: the packaged assets).
        adapter: Filesystem adapter (default: FilesystemAdapter).
        dry_run: Validate every action but change nothing.
        report: Report to collect receipts into. Pass one in to keep the
            receipts of a run that raised.

    Returns:
        ExecutionReport with one receipt per action.

    Raises:
        ProvisionError: on the first failing step.
    """
    root = Path(guest_root)
    runner = StepRunner(
        guest_root=root,
        assets_dir=Path(assets_dir) if assets_dir is not None else DEFAULT_ASSETS_DIR,
        adapter=adapter or FilesystemAdapter(),
        dry_run=dry_run,
        report=report if report is not None else ExecutionReport(guest_root=str(root)),
    )

    logger.info("Installing tools into %s%s", root, " (dry run)" if dry_run else "")

    install_mdata_commands(runner)
    install_native_manpath(runner)
    install_smartdc(runner)
    install_distro(runner)

    logger.info(
        "Installed tools into %s: %d ok, %d skipped",
        root, runner.report.succeeded, runner.report.skipped,
    )
    return runner.report


def _resolve_source(action: Action, assets_dir: Path) -> Action:
    src = action.params.get("src")
    if not src:
        return action
    return action.model_copy(update={"params": {**action.params, "src": str(assets_dir / src)}})


def plan_tools(
    guest_root: Path | str,
    assets_dir: Path | str | None = None,
    distribution: Distribution | None = None,
) -> list[Action]:
    """Actions ``install_tools`` would perform, without touching anything.

    Copy sources are shown as absolute paths inside ``assets_dir``.
    Pass ``distribution`` to skip detection when the caller already ran it.

    Raises:
        UnsupportedDistribution: when the guest has no known marker.
    """
    root = Path(guest_root)
    assets = Path(assets_dir) if assets_dir is not None else DEFAULT_ASSETS_DIR
    if distribution is None:
        distribution = distro.detect(root)

    actions: list[Action] = []
    for step in mdata_steps():
        if os.path.lexists(root / step.destination):
            actions.append(_unlink_action(step))
        actions.append(step.to_action("mdata"))
    actions.append(MANPATH_STEP.to_action("manpath"))
    actions.append(SMARTDC_STEP.to_action("smartdc"))
    actions.extend(distro.plan(distribution, root))
    return [_resolve_source(action, assets) for action in actions]
