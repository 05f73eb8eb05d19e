"""
audit/models.py -- Domain dataclasses for audit-log records.

Pattern: Data class (pure data container, zero logic). The store owns key
construction and scanning; routes own rendering.

Layer rule: no imports from api/, web/, or auth/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class AuditEntry:
    """One recorded POST /auth attempt.

    result is the exact JSON body the caller received, e.g.
    {"success": False, "error": "invalid_credentials"}.
    time is the storage timestamp (UTC, see core.time_utils) shared by the
    global-channel and per-user copies of the attempt.
    formatted_time is filled in for display only and never persisted.
    """

    user: str | None
    result: dict[str, Any]
    time: str
    formatted_time: str | None = None

    def to_record(self) -> dict[str, Any]:
        """Return the persisted shape: {user, result, time}."""
        record = asdict(self)
        record.pop("formatted_time")
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> AuditEntry:
        return cls(
            user=record.get("user"),
            result=record.get("result") or {},
            time=record.get("time", ""),
        )


@dataclass
class LogPage:
    """A page of a reverse-chronological range scan.

    has_more is True iff the range held more entries than the page size.
    next_till is the storage timestamp of the first entry past this page;
    passing it as the next request's till continues the listing.
    """

    entries: list[AuditEntry] = field(default_factory=list)
    has_more: bool = False
    next_till: str | None = None
