"""Parse component records out of JSON documents.

Accepted shapes:
    [ {component}, ... ]
    {"components": [ {component}, ... ]}

A component entry needs an ``id`` and a ``category``; ``specifications`` is
optional. Keys may be camelCase (``isActive``) as exported by the catalog API,
or snake_case.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from buildcheck.catalog.models import ComponentRecord
from buildcheck.errors import InvalidArgumentError


def record_from_dict(data: dict, position: int | None = None) -> ComponentRecord:
    """Build a ComponentRecord from a plain dict."""
    where = f"component #{position}" if position is not None else "component"
    if not isinstance(data, dict):
        raise InvalidArgumentError(f"{where} must be an object, got {type(data).__name__}")

    raw_id = data.get("id")
    if raw_id is None or str(raw_id).strip() == "":
        raise InvalidArgumentError(f"{where} is missing an 'id'")
    if not data.get("category"):
        raise InvalidArgumentError(f"{where} ({raw_id}) is missing a 'category'")

    specifications = data.get("specifications") or {}
    if not isinstance(specifications, dict):
        raise InvalidArgumentError(f"{where} ({raw_id}) has non-object 'specifications'")

    price = data.get("price")
    try:
        price = float(price) if price is not None else None
    except (TypeError, ValueError):
        price = None

    is_active = data.get("isActive", data.get("is_active", True))

    try:
        return ComponentRecord(
            id=str(raw_id),
            category=data["category"],
            specifications=specifications,
            name=str(data.get("name") or ""),
            brand=str(data.get("brand") or ""),
            price=price,
            is_active=bool(is_active),
        )
    except InvalidArgumentError as e:
        raise InvalidArgumentError(f"{where} ({raw_id}): {e}") from e


def records_from_json(payload: Any) -> list[ComponentRecord]:
    """Convert an already-decoded JSON payload into component records."""
    if isinstance(payload, dict) and "components" in payload:
        payload = payload["components"]
    if not isinstance(payload, list):
        raise InvalidArgumentError(
            "Expected a list of components or an object with a 'components' list"
        )
    return [record_from_dict(item, position=i) for i, item in enumerate(payload, 1)]


def load_records(path: Path) -> list[ComponentRecord]:
    """Read component records from a JSON file."""
    try:
        payload = json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        raise InvalidArgumentError(f"{path} is not valid JSON: {e}") from e
    return records_from_json(payload)
