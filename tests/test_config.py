"""Tests for buildcheck.config."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

from buildcheck.config import DEFAULT_DB_PATH, Config

ENV_KEYS = [
    "BUILDCHECK_DB_PATH",
    "BUILDCHECK_DUPLICATE_POLICY",
    "BUILDCHECK_LOG_LEVEL",
]


class TestConfigDefaults:
    def test_default_values(self):
        config = Config()
        assert config.db_path == DEFAULT_DB_PATH
        assert config.duplicate_policy == "last"
        assert config.log_level == "WARNING"


class TestConfigLoad:
    def test_load_from_env(self):
        env = {
            "BUILDCHECK_DB_PATH": "/tmp/test.db",
            "BUILDCHECK_DUPLICATE_POLICY": " Reject ",
            "BUILDCHECK_LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=False):
            config = Config.load()
        assert config.db_path == Path("/tmp/test.db")
        assert config.duplicate_policy == "reject"
        assert config.log_level == "DEBUG"

    def test_load_defaults_when_env_empty(self):
        cleaned = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
        with patch.dict(os.environ, cleaned, clear=True):
            config = Config.load()
        assert config.db_path == DEFAULT_DB_PATH
        assert config.duplicate_policy == "last"
        assert config.log_level == "WARNING"


class TestConfigValidate:
    def test_defaults_valid(self):
        assert Config().validate() == []

    def test_bad_duplicate_policy(self):
        issues = Config(duplicate_policy="first").validate()
        assert len(issues) == 1
        assert "BUILDCHECK_DUPLICATE_POLICY" in issues[0]

    def test_bad_log_level(self):
        issues = Config(log_level="LOUD").validate()
        assert len(issues) == 1
        assert "LOUD" in issues[0]

    def test_multiple_problems(self):
        assert len(Config(duplicate_policy="x", log_level="y").validate()) == 2
