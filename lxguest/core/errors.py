"""
Provisioning errors.

Every error names the step that failed and the path it was working on,
so a failed run can be diagnosed from the message alone.
"""

from __future__ import annotations

from lxguest.core.models.action import Receipt


class ProvisionError(Exception):
    """Base class for errors that abort a provisioning run."""

    def __init__(self, message: str, *, step: str = "", path: str | None = None):
        super().__init__(message)
        self.step = step
        self.path = path

    def to_dict(self) -> dict:
        return {
            "type": self.__class__.__name__,
            "message": str(self),
            "step": self.step,
            "path": self.path,
        }


class UnsupportedDistribution(ProvisionError):
    """No marker file matched; nothing was installed for the distribution."""

    def __init__(self, guest_root: str):
        super().__init__(
            f"failed to detect supported Linux distribution in {guest_root}",
            step="distro",
            path=guest_root,
        )


class FilesystemOperationFailed(ProvisionError):
    """A filesystem primitive returned a failed receipt."""

    def __init__(self, step: str, receipt: Receipt, operation: str = ""):
        self.receipt = receipt
        self.operation = operation or str(receipt.metadata.get("operation", ""))
        self.errno = receipt.errno
        super().__init__(
            f"step {step!r} failed: {receipt.error or 'unknown error'}",
            step=step,
            path=receipt.path,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["operation"] = self.operation
        data["errno"] = self.errno
        return data


class UnlinkFailed(FilesystemOperationFailed):
    """A pre-existing metadata command could not be removed before relinking."""
