"""
Provision use case — install tooling into a guest root, end to end.

Ties together config loading, the tooling installer, and the audit
ledger. Never raises: failures come back in ``ProvisionResult.error``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from lxguest.adapters.base import Adapter
from lxguest.core.config.loader import ConfigError, ToolingConfig, load_config
from lxguest.core.engine.executor import ExecutionReport
from lxguest.core.errors import ProvisionError
from lxguest.core.models.action import Action
from lxguest.core.persistence.audit import AuditEntry, AuditWriter
from lxguest.core.services import distro
from lxguest.core.services.tooling import install_tools, plan_tools

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Result of a provisioning run."""

    guest_root: Path | None = None
    report: ExecutionReport | None = None
    dry_run: bool = False
    error: str | None = None
    error_detail: dict | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {
            "guest_root": str(self.guest_root) if self.guest_root else None,
            "ok": self.ok,
            "dry_run": self.dry_run,
        }
        if self.error:
            result["error"] = self.error
            if self.error_detail:
                result["error_detail"] = self.error_detail
        if self.report:
            result["report"] = self.report.to_dict()
        return result


@dataclass
class PlanResult:
    """Result of planning a provisioning run."""

    guest_root: Path | None = None
    distribution: str | None = None
    actions: list[Action] | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {
            "guest_root": str(self.guest_root) if self.guest_root else None,
            "distribution": self.distribution,
        }
        if self.error:
            result["error"] = self.error
        result["actions"] = [a.model_dump(mode="json") for a in self.actions or []]
        return result


def _load(config_path: Path | None, assets_dir: Path | None) -> ToolingConfig:
    config = load_config(config_path)
    if assets_dir is not None:
        config.assets_dir = Path(assets_dir)
    return config


def run_provision(
    guest_root: Path,
    config_path: Path | None = None,
    assets_dir: Path | None = None,
    dry_run: bool = False,
    adapter: Adapter | None = None,
) -> ProvisionResult:
    """Provision guest-agent tooling into ``guest_root``.

    Args:
        guest_root: Root of the guest filesystem.
        config_path: Optional explicit path to lxguest.yml.
        assets_dir: Optional override for the asset bundle.
        dry_run: Validate but change nothing.
        adapter: Optional adapter override (tests).

    Returns:
        ProvisionResult; ``error`` is set when the run aborted.
    """
    result = ProvisionResult(guest_root=Path(guest_root), dry_run=dry_run)

    try:
        config = _load(config_path, assets_dir)
    except ConfigError as e:
        result.error = str(e)
        return result

    if not result.guest_root.is_dir():
        result.error = f"Guest root is not a directory: {result.guest_root}"
        return result

    report = ExecutionReport(guest_root=str(result.guest_root))
    result.report = report
    start = time.monotonic()

    try:
        install_tools(
            result.guest_root,
            assets_dir=config.assets_dir,
            adapter=adapter,
            dry_run=dry_run,
            report=report,
        )
    except ProvisionError as e:
        logger.error("Provisioning %s failed: %s", result.guest_root, e)
        result.error = str(e)
        result.error_detail = e.to_dict()

    if config.audit_log is not None:
        AuditWriter(config.audit_log).write(
            AuditEntry(
                operation_id=report.operation_id,
                operation_type="dry-run" if dry_run else "install",
                guest_root=str(result.guest_root),
                distribution=report.distribution,
                status="ok" if result.ok else "failed",
                actions_total=report.total,
                actions_succeeded=report.succeeded,
                actions_skipped=report.skipped,
                actions_failed=report.failed,
                duration_ms=int((time.monotonic() - start) * 1000),
                errors=[result.error] if result.error else [],
            )
        )

    return result


def run_plan(
    guest_root: Path,
    config_path: Path | None = None,
    assets_dir: Path | None = None,
) -> PlanResult:
    """List the actions a provisioning run would perform."""
    result = PlanResult(guest_root=Path(guest_root))

    try:
        config = _load(config_path, assets_dir)
    except ConfigError as e:
        result.error = str(e)
        return result

    if not result.guest_root.is_dir():
        result.error = f"Guest root is not a directory: {result.guest_root}"
        return result

    detected = distro.detect(result.guest_root)
    result.distribution = detected.value
    try:
        result.actions = plan_tools(
            result.guest_root,
            assets_dir=config.assets_dir,
            distribution=detected,
        )
    except ProvisionError as e:
        result.error = str(e)
    return result
