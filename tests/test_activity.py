"""Tests for buildcheck.activity — logging, reading and summarizing."""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

from buildcheck.activity import log_tool_call, read_activity_log, summarize_activity


def _write_entries(log_path: Path, entries: list[dict]) -> None:
    with open(log_path, "a") as f:
        for entry in entries:
            f.write(json.dumps(entry) + "\n")


def _entry(tool: str = "analyze_build", error: str | None = None, duration_ms: int = 0, **extra) -> dict:
    return {
        "timestamp": "2024-01-01T00:00:00",
        "tool_name": tool,
        "arguments": {},
        "result_preview": "",
        "error": error,
        "duration_ms": duration_ms,
        **extra,
    }


class TestLogToolCall:
    def test_creates_log_file(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        with patch.dict(os.environ, {"BUILDCHECK_LOG_PATH": str(log_path)}):
            log_tool_call("analyze_build", {"component_ids": ["cpu-1"]}, '{"score": 100}', None, 12)
        entry = json.loads(log_path.read_text().strip())
        assert entry["tool_name"] == "analyze_build"
        assert entry["arguments"]["component_ids"] == ["cpu-1"]
        assert entry["duration_ms"] == 12
        assert entry["error"] is None
        assert entry["verdict"] == {"score": 100, "isCompatible": None}

    def test_logs_error(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        with patch.dict(os.environ, {"BUILDCHECK_LOG_PATH": str(log_path)}):
            log_tool_call("find_compatible", {}, "", "Unknown relation 'x'", 3)
        entry = json.loads(log_path.read_text().strip())
        assert entry["error"] == "Unknown relation 'x'"

    def test_truncates_result_preview(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        with patch.dict(os.environ, {"BUILDCHECK_LOG_PATH": str(log_path)}):
            log_tool_call("tool", {}, "x" * 1000, None, 10)
        entry = json.loads(log_path.read_text().strip())
        assert len(entry["result_preview"]) == 500

    def test_defaults_next_to_database(self, tmp_path: Path):
        env = {k: v for k, v in os.environ.items() if k != "BUILDCHECK_LOG_PATH"}
        env["BUILDCHECK_DB_PATH"] = str(tmp_path / "catalog.db")
        with patch.dict(os.environ, env, clear=True):
            log_tool_call("tool", {}, "ok", None, 1)
        assert (tmp_path / "buildcheck-activity.jsonl").exists()

    def test_never_raises(self, tmp_path: Path):
        unwritable = tmp_path / "missing-dir" / "activity.jsonl"
        with patch.dict(os.environ, {"BUILDCHECK_LOG_PATH": str(unwritable)}):
            log_tool_call("tool", {}, "ok", None, 1)
        assert not unwritable.exists()


class TestReadActivityLog:
    def test_read_missing(self, tmp_path: Path):
        assert read_activity_log(log_path=tmp_path / "missing.jsonl") == []

    def test_most_recent_first(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        _write_entries(log_path, [_entry(result_preview=f"result {i}") for i in range(5)])
        entries = read_activity_log(log_path=log_path)
        assert len(entries) == 5
        assert entries[0]["result_preview"] == "result 4"

    def test_filter_by_tool_name(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        _write_entries(log_path, [_entry("analyze_build"), _entry("get_requirements"), _entry("analyze_build")])
        assert len(read_activity_log(tool_name="analyze_build", log_path=log_path)) == 2

    def test_respects_limit(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        _write_entries(log_path, [_entry() for _ in range(10)])
        assert len(read_activity_log(limit=3, log_path=log_path)) == 3

    def test_errors_only(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        _write_entries(log_path, [_entry(), _entry(error="boom"), _entry()])
        entries = read_activity_log(log_path=log_path, errors_only=True)
        assert [e["error"] for e in entries] == ["boom"]

    def test_skips_corrupt_lines(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        _write_entries(log_path, [_entry()])
        with open(log_path, "a") as f:
            f.write("{truncated\n\n")
        assert len(read_activity_log(log_path=log_path)) == 1


class TestSummarizeActivity:
    def test_empty(self):
        assert summarize_activity([]) == {}

    def test_per_tool(self):
        summary = summarize_activity([
            _entry("analyze_build", duration_ms=10),
            _entry("analyze_build", error="boom", duration_ms=30),
            _entry("find_compatible", duration_ms=5),
        ])
        assert summary == {
            "analyze_build": {"calls": 2, "errors": 1, "incompatible": 0, "mean_ms": 20},
            "find_compatible": {"calls": 1, "errors": 0, "incompatible": 0, "mean_ms": 5},
        }

    def test_counts_incompatible_verdicts(self):
        summary = summarize_activity([
            _entry(verdict={"score": 75, "isCompatible": False}),
            _entry(verdict={"score": 100, "isCompatible": True}),
            _entry(verdict=None),
        ])
        assert summary["analyze_build"]["incompatible"] == 1


class TestVerdict:
    def _logged(self, tmp_path: Path, result_text: str, error: str | None = None) -> dict:
        log_path = tmp_path / "activity.jsonl"
        with patch.dict(os.environ, {"BUILDCHECK_LOG_PATH": str(log_path)}):
            log_tool_call("tool", {}, result_text, error, 1)
        return json.loads(log_path.read_text().strip())

    def test_analysis_verdict(self, tmp_path: Path):
        entry = self._logged(tmp_path, json.dumps({"isCompatible": False, "score": 75, "issues": []}))
        assert entry["verdict"] == {"score": 75, "isCompatible": False}

    def test_lookup_verdict(self, tmp_path: Path):
        entry = self._logged(tmp_path, json.dumps({"compatible": [{}, {}], "incompatible": [{}]}))
        assert entry["verdict"] == {"compatible": 2, "incompatible": 1}

    def test_plain_text_has_no_verdict(self, tmp_path: Path):
        assert self._logged(tmp_path, "No active psu parts in the catalog.")["verdict"] is None

    def test_errors_have_no_verdict(self, tmp_path: Path):
        assert self._logged(tmp_path, "Invalid argument: x", error="x")["verdict"] is None
