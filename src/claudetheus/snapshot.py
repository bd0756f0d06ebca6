from datetime import datetime, timedelta, timezone
from typing import Sequence

from claudetheus.models import BurnRate, Snapshot, TokenCounts, UsageRecord
from claudetheus.pricing import record_cost

# width of a session block and of the rolling session window
SESSION_BLOCK = timedelta(hours=5)


def session_block_key(timestamp: "datetime") -> "int":
    """
    index of the 5-hour block a timestamp falls in, counted
    from the unix epoch.
    """
    return int(timestamp.timestamp() // SESSION_BLOCK.total_seconds())


def utc_day_start(now: "datetime") -> "datetime":
    return now.astimezone(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0
    )


def empty_snapshot(now: "datetime") -> "Snapshot":
    return Snapshot(computed_at=now)


def compute_snapshot(
    records: "Sequence[UsageRecord]",
    now: "datetime",
) -> "Snapshot":
    """
    reduces the windowed record set into the live counters.

    "today" is the UTC calendar day of now. The current
    session is every record within SESSION_BLOCK of now, and
    the burn rate spreads its totals over the elapsed time
    since that window's start.
    """
    today_start = utc_day_start(now)
    session_start = now - SESSION_BLOCK

    tokens_all_time = 0
    tokens_today = 0
    cost_all_time = 0.0
    cost_today = 0.0
    messages_today = 0
    session_tokens = 0
    session_cost = 0.0
    totals = TokenCounts()

    model_breakdown: "dict[str, TokenCounts]" = {}
    blocks: "set[int]" = set()
    blocks_today: "set[int]" = set()
    latest: "UsageRecord | None" = None

    for record in records:
        tokens = record.total_tokens
        cost = record_cost(record)
        block = session_block_key(record.timestamp)

        tokens_all_time += tokens
        cost_all_time += cost
        totals = totals + record.tokens
        blocks.add(block)

        model_breakdown[record.model] = (
            model_breakdown.get(record.model, TokenCounts()) + record.tokens
        )

        if record.timestamp >= today_start:
            tokens_today += tokens
            cost_today += cost
            messages_today += 1
            blocks_today.add(block)

        if record.timestamp >= session_start:
            session_tokens += tokens
            session_cost += cost

        if latest is None or record.timestamp > latest.timestamp:
            latest = record

    elapsed_minutes = (now - session_start).total_seconds() / 60
    if elapsed_minutes > 0:
        burn_rate = BurnRate(
            tokens_per_minute=session_tokens / elapsed_minutes,
            cost_per_hour=session_cost / elapsed_minutes * 60,
        )
    else:
        burn_rate = BurnRate()

    return Snapshot(
        computed_at=now,
        sessions_today=len(blocks_today),
        total_sessions=len(blocks),
        tokens_today=tokens_today,
        tokens_all_time=tokens_all_time,
        total_input_tokens=totals.input_tokens,
        total_output_tokens=totals.output_tokens,
        total_cache_tokens=totals.cache_tokens,
        cost_today=cost_today,
        cost_all_time=cost_all_time,
        messages_today=messages_today,
        messages_count=len(records),
        current_session_tokens=session_tokens,
        current_session_cost=session_cost,
        burn_rate=burn_rate,
        model_breakdown=model_breakdown,
        latest_record=latest,
    )
