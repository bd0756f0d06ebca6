from datetime import datetime
from typing import Iterable

from claudetheus.models import UsageRecord

# read up to this many times the target count before
# dedup and truncation
EARLY_EXIT_FACTOR = 5


class DeduplicationStore:
    """
    DeduplicationStore: tracks the (message_id, request_id)
    pairs already accepted in one merge pass.

    The same response can be logged in more than one file
    (resumed sessions, rotated logs). Records missing either
    identifier cannot be proven duplicates and are always
    accepted.
    """

    def __init__(self) -> "None":
        self._seen: "set[str]" = set()

    @staticmethod
    def make_key(
        message_id: "str | None",
        request_id: "str | None",
    ) -> "str | None":
        """
        constructs the composite key, or None when an identifier
        is missing.
        """
        if not message_id or not request_id:
            return None
        return f"{message_id}:{request_id}"

    def is_new(self, record: "UsageRecord") -> "bool":
        """
        checks if the given record is new. If so, mark it as seen
        and returns True.
        """
        key = self.make_key(record.message_id, record.request_id)
        if key is None:
            return True

        if key in self._seen:
            return False

        self._seen.add(key)
        return True


def deduplicate(records: "Iterable[UsageRecord]") -> "list[UsageRecord]":
    """
    drops repeated (message_id, request_id) pairs, keeping the
    first occurrence and the input order.
    """
    store = DeduplicationStore()
    return [r for r in records if store.is_new(r)]


def apply_window(
    records: "Iterable[UsageRecord]",
    cutoff: "datetime | None" = None,
    max_entries: "int" = 2000,
) -> "list[UsageRecord]":
    """
    filters records older than cutoff, deduplicates them and
    returns at most max_entries, newest first.
    """
    if cutoff is not None:
        records = [r for r in records if r.timestamp >= cutoff]

    unique = deduplicate(records)
    unique.sort(key=lambda r: r.timestamp, reverse=True)
    return unique[:max_entries]
