"""
Mock adapter — records actions instead of touching a guest root.

Tests use it to check step order and abort-on-first-failure without
needing real assets or ownership changes.
"""

from __future__ import annotations

from lxguest.adapters.base import Adapter, ExecutionContext
from lxguest.core.models.action import Receipt


class MockAdapter(Adapter):
    """Recording adapter. Every action succeeds unless told to fail."""

    def __init__(self):
        self._failures: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return "filesystem"

    @property
    def call_log(self) -> list[ExecutionContext]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def action_ids(self) -> list[str]:
        return [ctx.action.id for ctx in self._call_log]

    def is_available(self) -> bool:
        return True

    def set_failure(self, action_id: str, error: str = "Mock failure", errno: int | None = None) -> None:
        """Make ``action_id`` come back failed."""
        self._failures[action_id] = Receipt.failure(
            adapter=self.name, action_id=action_id, error=error, errno=errno
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        if context.action.id in self._failures:
            return self._failures[context.action.id]

        dst = context.action.params.get("dst", "")
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=f"[mock] {context.action.operation} {dst}".rstrip(),
            path=str(context.guest_path(dst)),
        )

    def reset(self) -> None:
        self._call_log.clear()
        self._failures.clear()
