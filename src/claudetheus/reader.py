import asyncio
import json
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiofiles
import structlog

from claudetheus.dedup import EARLY_EXIT_FACTOR, apply_window
from claudetheus.models import TokenCounts, UsageRecord

logger = structlog.get_logger()

LOG_SUFFIX = ".jsonl"
PREVIEW_MAX_CHARS = 200

# log usage field -> TokenCounts field
_USAGE_FIELDS: "dict[str, str]" = {
    "input_tokens": "input_tokens",
    "output_tokens": "output_tokens",
    "cache_creation_input_tokens": "cache_creation_tokens",
    "cache_read_input_tokens": "cache_read_tokens",
}

_COST_FIELDS = ("costUSD", "cost_usd", "cost")


def find_log_files(root: "Path") -> "list[Path]":
    """
    recursively lists the log files under root, newest
    modification first. A missing root yields no files.
    """
    if not root.is_dir():
        logger.info("projects_dir_missing", path=str(root))
        return []

    candidates: "list[tuple[float, Path]]" = []
    for path in root.rglob(f"*{LOG_SUFFIX}"):
        try:
            if not path.is_file():
                continue
            mtime = path.stat().st_mtime
        except OSError:
            # removed between listing and stat
            continue
        candidates.append((mtime, path))

    candidates.sort(key=lambda c: c[0], reverse=True)
    return [path for _, path in candidates]


def _parse_timestamp(value: "Any") -> "datetime":
    if not isinstance(value, str):
        raise ValueError(f"timestamp is not a string: {value!r}")

    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _extract_preview(content: "Any") -> "str | None":
    if not isinstance(content, list):
        return None

    for block in content:
        if isinstance(block, dict) and block.get("type") == "text":
            text = block.get("text")
            if text:
                return str(text)[:PREVIEW_MAX_CHARS]
    return None


def _token_count(value: "Any") -> "int":
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"token count is not a number: {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"token count is not finite: {value!r}")
    return max(0, int(value))


def _optional_str(data: "dict[str, Any]", *names: "str") -> "str | None":
    for name in names:
        value = data.get(name)
        if value is None or value == "":
            continue
        if not isinstance(value, str):
            raise ValueError(f"{name} is not a string: {value!r}")
        return value
    return None


def _extract_cost(data: "dict[str, Any]") -> "float | None":
    for name in _COST_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        cost = float(value)
        # NaN or negative costs would poison every total
        if not math.isfinite(cost) or cost < 0:
            raise ValueError(f"{name} is not a valid cost: {value!r}")
        return cost
    return None


def parse_line(line: "str") -> "UsageRecord | None":
    """
    parses one log line. Returns None for lines that are not
    assistant responses carrying usage (user turns, tool results,
    summaries). Raises ValueError on malformed content.
    """
    line = line.strip()
    if not line:
        return None

    data = json.loads(line)
    if not isinstance(data, dict):
        raise ValueError("log line is not a JSON object")

    if data.get("type") != "assistant":
        return None

    message = data.get("message")
    if not isinstance(message, dict) or message.get("role") != "assistant":
        return None

    usage = message.get("usage")
    model = message.get("model")
    if not data.get("timestamp") or not model or not isinstance(usage, dict):
        return None

    if not any(name in usage for name in _USAGE_FIELDS):
        return None

    counts = {
        field: _token_count(usage.get(name))
        for name, field in _USAGE_FIELDS.items()
    }

    return UsageRecord(
        timestamp=_parse_timestamp(data["timestamp"]),
        model=str(model),
        tokens=TokenCounts(**counts),
        cost=_extract_cost(data),
        session_id=_optional_str(data, "sessionId", "session_id"),
        working_directory=_optional_str(data, "cwd"),
        stop_reason=message.get("stop_reason"),
        response_preview=_extract_preview(message.get("content")),
        message_id=_optional_str(message, "id"),
        request_id=_optional_str(data, "requestId", "request_id"),
    )


async def read_log_file(path: "Path") -> "list[UsageRecord]":
    """
    streams a single log file. Malformed lines are skipped,
    and an unreadable file yields whatever was read before
    the error.
    """
    records: "list[UsageRecord]" = []
    malformed = 0
    line_number = 0

    try:
        async with aiofiles.open(
            path, mode="r", encoding="utf-8", errors="replace"
        ) as f:
            async for line in f:
                line_number += 1
                try:
                    record = parse_line(line)
                except (ValueError, TypeError, OverflowError) as e:
                    malformed += 1
                    logger.debug(
                        "malformed_line",
                        path=str(path),
                        line=line_number,
                        error=str(e),
                    )
                    continue

                if record is not None:
                    records.append(record)

    except OSError:
        logger.warning("log_file_read_error", path=str(path), exc_info=True)

    if malformed:
        logger.debug("malformed_lines_skipped", path=str(path), count=malformed)

    return records


class UsageReader:
    """
    UsageReader reads usage records from every log file under
    a projects directory and merges them into one deduplicated,
    time-bounded, size-bounded sequence.
    """

    def __init__(self, root: "Path | str") -> "None":
        self._root = Path(root).expanduser()

    @property
    def root(self) -> "Path":
        return self._root

    async def read_records(
        self,
        cutoff: "datetime | None" = None,
        max_entries: "int" = 2000,
    ) -> "list[UsageRecord]":
        """
        reads files newest first and stops early once enough raw
        records are collected for dedup to reach max_entries.
        """
        files = await asyncio.to_thread(find_log_files, self._root)
        logger.debug("log_files_found", root=str(self._root), count=len(files))

        collected: "list[UsageRecord]" = []
        limit = max_entries * EARLY_EXIT_FACTOR

        for index, path in enumerate(files):
            collected.extend(await read_log_file(path))
            if len(collected) > limit:
                logger.info(
                    "log_read_stopped_early",
                    collected=len(collected),
                    files_read=index + 1,
                    files_total=len(files),
                )
                break

        records = apply_window(collected, cutoff, max_entries)
        logger.debug(
            "records_windowed",
            raw=len(collected),
            kept=len(records),
        )
        return records
