"""
Audit ledger — one NDJSON line per provisioning run.

Enabled by ``audit_log`` in lxguest.yml. Lines are only ever appended.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """Outcome of one provisioning run against one guest root."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    operation_type: str = ""       # install, dry-run

    guest_root: str = ""
    distribution: str | None = None

    status: str = ""               # ok, failed
    actions_total: int = 0
    actions_succeeded: int = 0
    actions_skipped: int = 0
    actions_failed: int = 0
    duration_ms: int = 0

    errors: list[str] = Field(default_factory=list)


class AuditWriter:
    """Reads and appends ledger lines at ``path``; parents are created on write."""

    def __init__(self, path: Path):
        self._path = Path(path)

    def write(self, entry: AuditEntry) -> None:
        """Append ``entry``. An unwritable ledger is logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audited %s run %s", entry.operation_type, entry.operation_id)
        except OSError as e:
            logger.error("Failed to write audit entry to %s: %s", self._path, e)

    def read_all(self) -> list[AuditEntry]:
        """Entries oldest first. Corrupt lines are skipped with a warning."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:]
