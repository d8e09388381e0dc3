"""Exceptions raised by buildcheck."""

from __future__ import annotations


class InvalidArgumentError(ValueError):
    """The caller broke the engine's contract (wrong anchor category, bad relation, ...).

    Carries no transport semantics; the CLI and MCP server translate it into
    their own user-facing errors.
    """
