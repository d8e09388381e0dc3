"""Activity log for MCP tool calls.

Every tool invocation is appended as one JSON line so you can see which builds
an agent checked and what verdicts it got back. Besides the raw arguments and a
preview of the reply, each entry carries a compact ``verdict`` pulled out of
the result: the score and isCompatible flag for analyses, the compatible /
incompatible counts for lookups.

The file sits next to buildcheck.db unless BUILDCHECK_LOG_PATH points elsewhere.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

RESULT_PREVIEW_LIMIT = 500
LOG_FILENAME = "buildcheck-activity.jsonl"


def _resolve_log_path() -> Path:
    explicit = os.getenv("BUILDCHECK_LOG_PATH")
    if explicit:
        return Path(explicit)
    return Path(os.getenv("BUILDCHECK_DB_PATH", "buildcheck.db")).parent / LOG_FILENAME


def _verdict(result_text: str) -> dict | None:
    """Summarize a JSON tool result; None for plain-text replies."""
    try:
        payload = json.loads(result_text)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    if "score" in payload:
        return {"score": payload["score"], "isCompatible": payload.get("isCompatible")}
    if "compatible" in payload:
        return {
            "compatible": len(payload.get("compatible") or []),
            "incompatible": len(payload.get("incompatible") or []),
        }
    return None


def log_tool_call(
    tool_name: str,
    arguments: dict,
    result_text: str,
    error: str | None,
    duration_ms: int,
) -> None:
    """Append one tool call to the activity log. Never raises."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "tool_name": tool_name,
        "arguments": arguments,
        "verdict": None if error else _verdict(result_text),
        "result_preview": (result_text or "")[:RESULT_PREVIEW_LIMIT],
        "error": error,
        "duration_ms": duration_ms,
    }
    try:
        with open(_resolve_log_path(), "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")
    except (OSError, TypeError, ValueError) as e:
        # A broken log must not take the MCP server down
        logger.debug(f"Could not write activity log: {e}")


def _iter_entries(path: Path) -> Iterator[dict]:
    with open(path) as f:
        for line in f:
            if not line.strip():
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                logger.debug(f"Skipping corrupt activity line in {path}")


def read_activity_log(
    limit: int = 20,
    tool_name: str | None = None,
    log_path: Path | None = None,
    errors_only: bool = False,
) -> list[dict]:
    """Most recent entries first, optionally filtered by tool or failure."""
    path = log_path or _resolve_log_path()
    if not path.exists():
        return []

    entries = [
        e for e in _iter_entries(path)
        if (tool_name is None or e.get("tool_name") == tool_name)
        and (not errors_only or e.get("error"))
    ]
    entries.reverse()
    return entries[:limit]


def summarize_activity(entries: list[dict]) -> dict[str, dict]:
    """Per-tool call counts, error counts, incompatible verdicts and mean duration."""
    summary: dict[str, dict] = {}
    for entry in entries:
        stats = summary.setdefault(
            entry.get("tool_name", "unknown"),
            {"calls": 0, "errors": 0, "incompatible": 0, "total_ms": 0},
        )
        stats["calls"] += 1
        if entry.get("error"):
            stats["errors"] += 1
        verdict = entry.get("verdict") or {}
        if verdict.get("isCompatible") is False:
            stats["incompatible"] += 1
        stats["total_ms"] += entry.get("duration_ms") or 0

    for stats in summary.values():
        stats["mean_ms"] = stats.pop("total_ms") // stats["calls"]
    return summary
