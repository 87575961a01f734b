"""
Distribution service — identify the guest's Linux distribution and
install the matching init-system integration.

Detection only reads the guest root. Installation is table-driven:
``DISTRO_STEPS`` maps each supported distribution to the ordered
InstallSteps that hook the guest agent into its boot sequence.
"""

from __future__ import annotations

import logging
from pathlib import Path

from lxguest.core.engine.executor import StepRunner
from lxguest.core.errors import UnsupportedDistribution
from lxguest.core.models.action import Action, Receipt
from lxguest.core.models.distro import MARKER_TABLE, Distribution, InstallStep

logger = logging.getLogger(__name__)

# Bundled assets, relative to the asset directory.
RC_LOCAL_ASSET = "guest/lib/smartdc/joyent_rc.local"
SHUTDOWN_ASSET = "guest/sbin/shutdown"
SYSTEMD_UNIT_ASSET = "etc/systemd/system/joyent.service"

SYSTEMD_SYSTEM_DIR = "etc/systemd/system"
SYSTEMD_UNIT = f"{SYSTEMD_SYSTEM_DIR}/joyent.service"
SYSTEMD_WANTS_LINK = f"{SYSTEMD_SYSTEM_DIR}/multi-user.target.wants/joyent.service"

_RC_LOCAL = InstallStep(
    name="rc.local",
    operation="copy_file",
    source=RC_LOCAL_ASSET,
    destination="etc/rc.local",
    mode=0o755,
)

_SHUTDOWN = InstallStep(
    name="shutdown",
    operation="copy_file",
    source=SHUTDOWN_ASSET,
    destination="sbin/shutdown",
    mode=0o744,
)

DISTRO_STEPS: dict[Distribution, tuple[InstallStep, ...]] = {
    Distribution.ALPINE: (_RC_LOCAL, _SHUTDOWN),
    Distribution.ARCH: (
        InstallStep(
            name="systemd-dir",
            operation="mkdirp",
            destination=SYSTEMD_SYSTEM_DIR,
            mode=0o755,
        ),
        InstallStep(
            name="joyent.service",
            operation="copy_file",
            source=SYSTEMD_UNIT_ASSET,
            destination=SYSTEMD_UNIT,
            mode=0o755,
        ),
        # Relative so the link resolves both inside the guest and from the host.
        InstallStep(
            name="enable",
            operation="symlink",
            source="../joyent.service",
            destination=SYSTEMD_WANTS_LINK,
        ),
    ),
    Distribution.DEBIAN: (_RC_LOCAL,),
    Distribution.REDHAT: (_RC_LOCAL,),
    Distribution.VOID: (_RC_LOCAL, _SHUTDOWN),
}


def detect(guest_root: Path | str) -> Distribution:
    """Identify the distribution installed under ``guest_root``.

    Marker files are checked in ``MARKER_TABLE`` order and the first one
    present wins. Never raises: with no marker present the result is
    ``Distribution.UNKNOWN``.
    """
    root = Path(guest_root)
    for distribution, marker in MARKER_TABLE:
        if _present(root / marker):
            logger.info("Detected distro as %s (marker %s)", distribution.value, marker)
            return distribution

    logger.warning("No distribution marker found under %s", root)
    return Distribution.UNKNOWN


def _present(path: Path) -> bool:
    try:
        return path.exists()
    except OSError as e:
        logger.debug("Cannot check %s: %s", path, e)
        return False


def steps_for(distribution: Distribution, guest_root: Path | str = "") -> tuple[InstallStep, ...]:
    """Return the install steps for a distribution, or raise if unsupported."""
    try:
        return DISTRO_STEPS[distribution]
    except KeyError:
        raise UnsupportedDistribution(str(guest_root)) from None


def plan(distribution: Distribution, guest_root: Path | str = "") -> list[Action]:
    """Actions ``install`` would perform for ``distribution``."""
    prefix = f"distro:{distribution.value}"
    return [step.to_action(prefix) for step in steps_for(distribution, guest_root)]


def install(
    distribution: Distribution,
    guest_root: Path | str,
    runner: StepRunner | None = None,
) -> list[Receipt]:
    """Apply the distribution's integration steps to ``guest_root``.

    Raises:
        UnsupportedDistribution: for ``Distribution.UNKNOWN``; nothing is touched.
        FilesystemOperationFailed: on the first failing step. Earlier
            steps stay applied.
    """
    root = Path(guest_root)
    steps = steps_for(distribution, root)

    if runner is None:
        runner = StepRunner(guest_root=root)

    logger.info("Installing %s integration into %s", distribution.value, root)
    return runner.run_steps(steps, prefix=f"distro:{distribution.value}")
