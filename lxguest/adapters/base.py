"""
Adapter base — the protocol contract between the installer and the host.

The installer services only talk to the filesystem through this
protocol. That keeps every mutation of a guest root observable as a
Receipt, and lets tests swap in a recording double.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from lxguest.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action.

    Relative ``src`` params resolve against ``assets_dir``; relative
    ``dst`` params resolve against ``guest_root``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    action: Action
    guest_root: Path = Path("/")
    assets_dir: Path = Path(".")
    dry_run: bool = False

    def guest_path(self, relpath: str) -> Path:
        """Destination path inside the guest root."""
        return self.guest_root / relpath.lstrip("/")

    def asset_path(self, relpath: str) -> Path:
        """Source path inside the asset bundle."""
        p = Path(relpath)
        if p.is_absolute():
            return p
        return self.assets_dir / p


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'filesystem')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter can be used. Should be fast and never raise."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def preflight(self, context: ExecutionContext) -> Receipt | None:
        """Dry-run checks beyond param validation. Return a failed receipt or None."""
        return None

    def run(self, context: ExecutionContext) -> Receipt:
        """Validate, then execute (or skip on dry run)."""
        action = context.action
        try:
            is_valid, error_msg = self.validate(context)
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Validation error: {e}",
            )
        if not is_valid:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Validation failed: {error_msg}",
            )

        if context.dry_run:
            try:
                failed = self.preflight(context)
            except Exception as e:
                failed = Receipt.failure(
                    adapter=self.name,
                    action_id=action.id,
                    error=f"Preflight error: {e}",
                )
            if failed is not None:
                return failed
            return Receipt.skip(
                adapter=self.name,
                action_id=action.id,
                reason=f"[dry-run] Would {action.operation} {action.params.get('dst', '')}",
                metadata={"dry_run": True},
            )

        return self.execute(context)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
