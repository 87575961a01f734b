"""
Action and Receipt models.

An Action is one filesystem primitive to perform against a guest root.
A Receipt is what the adapter reports back; the services decide which
failed Receipts abort the run.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class Action(BaseModel):
    """A requested filesystem operation.

    ``params`` carries the operation arguments, e.g.::

        {"operation": "copy_file", "src": "guest/sbin/shutdown",
         "dst": "sbin/shutdown", "uid": 0, "gid": 0, "mode": 0o744}
    """

    id: str                         # e.g. "distro:arch:enable"
    name: str = ""
    adapter: str = "filesystem"
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def operation(self) -> str:
        return str(self.params.get("operation", ""))


class Receipt(BaseModel):
    """Outcome of one Action."""

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    errno: int | None = None        # set when the OS reported the failure
    path: str | None = None         # guest or asset path involved

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        """A receipt for an action that was deliberately not applied."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **kwargs)
