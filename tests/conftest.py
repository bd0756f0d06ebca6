import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pytest
from prometheus_client import CollectorRegistry

from claudetheus.models import TokenCounts, UsageRecord


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


def _to_datetime(value: "str | datetime") -> "datetime":
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.fixture()
def make_record() -> "Callable[..., UsageRecord]":
    """
    builds UsageRecord objects with compact token arguments.
    """

    def _make(
        timestamp: "str | datetime" = "2025-01-01T12:00:00Z",
        model: "str" = "claude-3-haiku",
        tokens: "tuple[int, int, int, int]" = (0, 0, 0, 0),
        **kwargs: "Any",
    ) -> "UsageRecord":
        return UsageRecord(
            timestamp=_to_datetime(timestamp),
            model=model,
            tokens=TokenCounts(*tokens),
            **kwargs,
        )

    return _make


@pytest.fixture()
def make_entry() -> "Callable[..., dict[str, Any]]":
    """
    builds an assistant log line as Claude Code writes it.
    """

    def _make(
        timestamp: "str" = "2025-01-01T12:00:00.000Z",
        model: "str" = "claude-sonnet-4-5-20250929",
        input_tokens: "int" = 100,
        output_tokens: "int" = 50,
        cache_creation: "int" = 0,
        cache_read: "int" = 0,
        message_id: "str | None" = "msg-1",
        request_id: "str | None" = "req-1",
        session_id: "str" = "session-1",
        cwd: "str" = "/home/dev/project-a",
        text: "str" = "Done.",
    ) -> "dict[str, Any]":
        message: "dict[str, Any]" = {
            "model": model,
            "role": "assistant",
            "stop_reason": "end_turn",
            "content": [{"type": "text", "text": text}],
            "usage": {
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "cache_creation_input_tokens": cache_creation,
                "cache_read_input_tokens": cache_read,
            },
        }
        if message_id is not None:
            message["id"] = message_id

        entry: "dict[str, Any]" = {
            "type": "assistant",
            "timestamp": timestamp,
            "sessionId": session_id,
            "cwd": cwd,
            "message": message,
        }
        if request_id is not None:
            entry["requestId"] = request_id
        return entry

    return _make


@pytest.fixture()
def write_log(tmp_path: "Path") -> "Callable[..., Path]":
    """
    writes a JSONL file under tmp_path. Dict lines are
    JSON-encoded, strings are written verbatim.
    """

    def _write(
        relative: "str",
        lines: "list[dict[str, Any] | str]",
        mtime: "float | None" = None,
    ) -> "Path":
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for line in lines:
                f.write(line if isinstance(line, str) else json.dumps(line))
                f.write("\n")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write


@pytest.fixture()
def now() -> "datetime":
    return datetime(2025, 1, 2, 12, 0, 0, tzinfo=timezone.utc)
