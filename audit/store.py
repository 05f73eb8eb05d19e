"""
audit/store.py -- Append-only audit log with time-range pagination.

Key scheme:
    <channel>-<UTC storage timestamp>-<48 hex chars of randomness>

  channel   -- the attempted username, or GLOBAL_CHANNEL ("everyone") for the
               feed that aggregates every attempt.
  timestamp -- fixed-width UTC string from core.time_utils.format_storage, so
               within one channel string order == chronological order.
  nonce     -- 24 random bytes. Separates entries written in the same
               microsecond; imposes no order among them.

Every POST /auth attempt is written twice, once per channel, with the same
record and the same captured timestamp. That gives a global feed and a
per-user feed served by one range-scan routine. The two writes are
independent (no transaction): a crash between them leaves one copy missing.

Range scans run in reverse key order (newest first) and read one record more
than the page size to learn whether another page exists.

Usage:
    log = AuditLogStore(KVStore.open(Path("db/log.db")))
    log.record_attempt("alice", {"success": True})
    page = log.query_range("alice", "begin", "now", page_size=50)
    page.entries, page.has_more

Layer rule: no imports from api/, web/, or auth/.
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime
from typing import Any

from audit.models import AuditEntry, LogPage
from core.time_utils import format_display, format_storage, resolve_since, resolve_till, utc_now
from kv.store import KVStore

logger = logging.getLogger("authlog.audit")

GLOBAL_CHANNEL = "everyone"

_NONCE_BYTES = 24
# Sorts after every hex digit, so "<channel>-<till>-~" bounds every nonce
# written at exactly <till>.
_UPPER_SENTINEL = "~"
# What follows "<channel>" in a key of that channel.
_KEY_SUFFIX = r"-\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}Z-[0-9a-f]{48}"


def make_key(channel: str, timestamp: str) -> str:
    return f"{channel}-{timestamp}-{secrets.token_hex(_NONCE_BYTES)}"


class AuditLogStore:
    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(self, channel: str, record: dict[str, Any], at: datetime | None = None) -> str:
        """Write record to channel under a fresh composite key and return the key.

        at defaults to the current UTC instant.
        """
        timestamp = format_storage(at if at is not None else utc_now())
        key = make_key(channel, timestamp)
        self._kv.put(key, record)
        return key

    def record_attempt(self, user: str | None, result: dict[str, Any], at: datetime | None = None) -> AuditEntry:
        """Log one auth attempt to the global channel and to the user's channel.

        One timestamp is captured and shared by both copies. Without a
        username there is no per-user channel, so only the global copy is
        written. Raises StorageError if either write fails; a failure of
        the second write leaves the first in place.
        """
        moment = at if at is not None else utc_now()
        entry = AuditEntry(user=user, result=result, time=format_storage(moment))
        record = entry.to_record()
        self.append(GLOBAL_CHANNEL, record, at=moment)
        if user:
            self.append(user, record, at=moment)
        return entry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query_range(self, channel: str, since: str, till: str, page_size: int) -> LogPage:
        """Return up to page_size entries of channel within [since, till], newest first.

        since/till are ISO8601 timestamps or the sentinels "begin"/"now".
        Raises core.time_utils.InvalidTimeBound for an unparseable bound and
        StorageError if the scan fails. An empty range is an empty page.

        The key range is a string range, so a channel named "<channel>-<digits>..."
        can fall inside it. Rows whose key does not belong to channel are
        skipped and the scan continues below the last key read.
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        lower = f"{channel}-{format_storage(resolve_since(since))}"
        upper = f"{channel}-{format_storage(resolve_till(till))}-{_UPPER_SENTINEL}"
        own_key = re.compile(re.escape(channel) + _KEY_SUFFIX)
        wanted = page_size + 1

        rows: list[tuple[str, Any]] = []
        cursor = upper
        while len(rows) < wanted:
            batch = self._kv.scan(lower, cursor, reverse=True, limit=wanted)
            rows.extend((key, value) for key, value in batch if key != cursor and own_key.fullmatch(key))
            if len(batch) < wanted:
                break
            cursor = batch[-1][0]
        rows = rows[:wanted]

        entries = [AuditEntry.from_record(value) for _key, value in rows[:page_size]]
        has_more = len(rows) > page_size
        next_till = AuditEntry.from_record(rows[page_size][1]).time if has_more else None
        return LogPage(entries=entries, has_more=has_more, next_till=next_till)

    def close(self) -> None:
        self._kv.close()

    def ping(self) -> bool:
        return self._kv.ping()


def annotate_for_display(entries: list[AuditEntry]) -> list[AuditEntry]:
    """Fill formatted_time on each entry (local time with explicit offset)."""
    for entry in entries:
        try:
            entry.formatted_time = format_display(entry.time)
        except ValueError:
            logger.warning("Audit entry has unparseable time %r", entry.time)
            entry.formatted_time = entry.time
    return entries
