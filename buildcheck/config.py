"""Configuration loading for buildcheck.

Config sources (in priority order):
1. Explicit arguments passed to functions
2. Environment variables (BUILDCHECK_DB_PATH, etc.)
3. .env file in current directory
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DB_PATH = Path("buildcheck.db")
DEFAULT_DUPLICATE_POLICY = "last"
DEFAULT_LOG_LEVEL = "WARNING"
DUPLICATE_POLICIES = ("last", "reject")


@dataclass
class Config:
    db_path: Path = DEFAULT_DB_PATH
    duplicate_policy: str = DEFAULT_DUPLICATE_POLICY  # "last" | "reject"
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def load(cls) -> Config:
        return cls(
            db_path=Path(os.getenv("BUILDCHECK_DB_PATH", str(DEFAULT_DB_PATH))),
            duplicate_policy=os.getenv(
                "BUILDCHECK_DUPLICATE_POLICY", DEFAULT_DUPLICATE_POLICY
            ).strip().lower(),
            log_level=os.getenv("BUILDCHECK_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper(),
        )

    def validate(self) -> list[str]:
        """Return a list of config problems."""
        issues = []
        if self.duplicate_policy not in DUPLICATE_POLICIES:
            issues.append(
                f"Unknown duplicate policy '{self.duplicate_policy}' "
                "(BUILDCHECK_DUPLICATE_POLICY must be 'last' or 'reject')"
            )
        if not isinstance(logging.getLevelName(self.log_level), int):
            issues.append(f"Unknown log level '{self.log_level}' (BUILDCHECK_LOG_LEVEL)")
        return issues
