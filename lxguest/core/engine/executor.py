"""
Engine executor — runs install steps through an adapter.

The services describe what to place where (InstallSteps / Actions);
the executor sends each Action through the adapter, collects the
Receipts into a report, and turns the first failed Receipt into an
exception that aborts the run.

Flow:
    steps → actions → adapter → receipts → report (or raise on failure)
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from lxguest.adapters.base import Adapter, ExecutionContext
from lxguest.adapters.filesystem import FilesystemAdapter
from lxguest.core.config.loader import DEFAULT_ASSETS_DIR
from lxguest.core.errors import FilesystemOperationFailed
from lxguest.core.models.action import Action, Receipt
from lxguest.core.models.distro import InstallStep

logger = logging.getLogger(__name__)


@dataclass
class ExecutionReport:
    """Receipts collected during one provisioning run."""

    operation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    guest_root: str = ""
    distribution: str | None = None
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.skipped)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "guest_root": self.guest_root,
            "distribution": self.distribution,
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass
class StepRunner:
    """Executes Actions against one guest root, stopping at the first failure."""

    guest_root: Path
    assets_dir: Path = DEFAULT_ASSETS_DIR
    adapter: Adapter = field(default_factory=FilesystemAdapter)
    dry_run: bool = False
    report: ExecutionReport = field(default_factory=ExecutionReport)

    def __post_init__(self) -> None:
        self.guest_root = Path(self.guest_root)
        self.assets_dir = Path(self.assets_dir)
        if not self.report.guest_root:
            self.report.guest_root = str(self.guest_root)

    def run(
        self,
        action: Action,
        error_cls: type[FilesystemOperationFailed] = FilesystemOperationFailed,
    ) -> Receipt:
        """Execute one action; raise ``error_cls`` if its receipt failed."""
        context = ExecutionContext(
            action=action,
            guest_root=self.guest_root,
            assets_dir=self.assets_dir,
            dry_run=self.dry_run,
        )
        receipt = self.adapter.run(context)
        self.report.receipts.append(receipt)

        if receipt.failed:
            logger.error("Step %s failed: %s", action.id, receipt.error)
            raise error_cls(action.id, receipt, operation=action.operation)

        if receipt.skipped:
            logger.info("Step %s skipped: %s", action.id, receipt.output)
        else:
            logger.info("Step %s ok (%s)", action.id, receipt.path or "")
        return receipt

    def run_steps(self, steps: Iterable[InstallStep], prefix: str = "") -> list[Receipt]:
        """Execute steps in order; the first failure aborts the rest."""
        return [self.run(step.to_action(prefix)) for step in steps]
