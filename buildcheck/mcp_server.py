"""MCP server for buildcheck.

Exposes the compatibility engine to AI assistants via the Model Context
Protocol. Agents can analyze a set of parts, look up compatible parts for an
anchor component, and read the requirements catalog.

Usage:
    uv run python -m buildcheck.mcp_server [--db /path/to/buildcheck.db]

Configure in your MCP client:
    {
      "mcpServers": {
        "buildcheck": {
          "command": "buildcheck",
          "args": ["serve"],
          "env": {"BUILDCHECK_DB_PATH": "/path/to/buildcheck.db"}
        }
      }
    }
"""

from __future__ import annotations

import json
import os
import sys
import time
from pathlib import Path

import mcp.server.stdio
import mcp.types as types
from mcp.server import Server

from buildcheck.activity import log_tool_call
from buildcheck.catalog.loader import records_from_json
from buildcheck.catalog.models import Category
from buildcheck.compatibility.engine import CompatibilityEngine, resolve_relation
from buildcheck.compatibility.requirements import get_requirements
from buildcheck.compatibility.rules import RELATIONS, RelationKind
from buildcheck.config import Config
from buildcheck.errors import InvalidArgumentError
from buildcheck.storage.db import get_connection
from buildcheck.storage.repository import Repository


def _resolve_db_path() -> Path:
    """Find the database, checking CLI args, env var, then current directory."""
    for i, arg in enumerate(sys.argv):
        if arg == "--db" and i + 1 < len(sys.argv):
            return Path(sys.argv[i + 1])

    env_db = os.getenv("BUILDCHECK_DB_PATH")
    if env_db:
        return Path(env_db)

    return Path("buildcheck.db")


DB_PATH = _resolve_db_path()

server = Server("buildcheck")


def _get_repo() -> Repository:
    if not DB_PATH.exists():
        raise FileNotFoundError(
            f"Catalog database not found at {DB_PATH}. "
            "Run 'buildcheck import <catalog.json>' first, or set BUILDCHECK_DB_PATH."
        )
    conn = get_connection(DB_PATH)
    return Repository(conn)


def _get_engine() -> CompatibilityEngine:
    return CompatibilityEngine(duplicate_policy=Config.load().duplicate_policy)


def _text(payload: dict | str) -> list[types.TextContent]:
    if isinstance(payload, str):
        return [types.TextContent(type="text", text=payload)]
    return [types.TextContent(type="text", text=json.dumps(payload, indent=2, default=str))]


@server.list_tools()
async def list_tools() -> list[types.Tool]:
    return [
        types.Tool(
            name="analyze_build",
            description=(
                "Check whether a set of PC parts can work together. Returns a 0-100 score, "
                "an isCompatible verdict, the issues found (socket, memory type, storage "
                "interface, cooler socket, GPU clearance, PSU wattage) with suggested fixes, "
                "and advisory recommendations. Pass catalog ids in component_ids, or full "
                "component objects in components."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "component_ids": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Catalog ids of the selected parts",
                    },
                    "components": {
                        "type": "array",
                        "items": {"type": "object"},
                        "description": (
                            "Inline parts: {id, category, specifications}. "
                            "Used instead of the catalog when given."
                        ),
                    },
                },
            },
        ),
        types.Tool(
            name="find_compatible",
            description=(
                "Given one anchor part from the catalog, split every active catalog part of the "
                "related category into compatible and incompatible. Relations: "
                + ", ".join(
                    f"{kind.value} ({spec.anchor.value} → {spec.target.value})"
                    for kind, spec in RELATIONS.items()
                )
                + "."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "anchor_id": {
                        "type": "string",
                        "description": "Catalog id of the anchor part",
                    },
                    "relation": {
                        "type": "string",
                        "enum": [kind.value for kind in RelationKind],
                        "description": "Which relation to evaluate",
                    },
                },
                "required": ["anchor_id", "relation"],
            },
        ),
        types.Tool(
            name="get_requirements",
            description=(
                "List the specification dimensions that matter for a part category, with "
                "valid values or ranges. Informational only."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {
                        "type": "string",
                        "enum": [c.value for c in Category],
                    },
                },
                "required": ["category"],
            },
        ),
        types.Tool(
            name="list_components",
            description="List active catalog parts of one category, with their specifications.",
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {
                        "type": "string",
                        "enum": [c.value for c in Category],
                    },
                    "limit": {"type": "integer", "default": 25},
                },
                "required": ["category"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
    start = time.time()
    result: list[types.TextContent] = []
    error: str | None = None
    try:
        result = _dispatch_tool(name, arguments)
        return result
    except FileNotFoundError as e:
        error = str(e)
        result = _text(f"Setup required: {e}")
        return result
    except InvalidArgumentError as e:
        error = str(e)
        result = _text(f"Invalid argument: {e}")
        return result
    except Exception as e:
        error = str(e)
        result = _text(f"Error: {e}")
        return result
    finally:
        duration_ms = int((time.time() - start) * 1000)
        result_text = result[0].text if result else ""
        log_tool_call(name, arguments, result_text, error, duration_ms)


def _dispatch_tool(name: str, arguments: dict) -> list[types.TextContent]:
    """Route a tool call to the appropriate handler."""
    if name == "analyze_build":
        return _handle_analyze(
            arguments.get("component_ids") or [],
            arguments.get("components"),
        )
    elif name == "find_compatible":
        return _handle_find_compatible(arguments["anchor_id"], arguments["relation"])
    elif name == "get_requirements":
        return _handle_requirements(arguments["category"])
    elif name == "list_components":
        return _handle_list_components(arguments["category"], arguments.get("limit", 25))
    else:
        return _text(f"Unknown tool: {name}")


def _handle_analyze(component_ids: list[str], inline: list[dict] | None) -> list[types.TextContent]:
    if inline:
        components = records_from_json(inline)
        missing: list[str] = []
    else:
        if not component_ids:
            raise InvalidArgumentError("Pass component_ids or components")
        repo = _get_repo()
        components = repo.get_components(component_ids)
        found = {c.id for c in components}
        missing = [i for i in component_ids if i not in found]

    result = _get_engine().analyze(components).to_dict()
    if missing:
        result["unknownComponentIds"] = missing
    return _text(result)


def _handle_find_compatible(anchor_id: str, relation: str) -> list[types.TextContent]:
    kind = resolve_relation(relation)
    repo = _get_repo()
    anchor = repo.get_component(anchor_id)
    if anchor is None:
        raise InvalidArgumentError(f"No component with id '{anchor_id}' in the catalog")

    candidates = repo.get_components_by_category(RELATIONS[kind].target)
    lookup = _get_engine().find_compatible(anchor, candidates, kind)
    return _text(lookup.to_dict())


def _handle_requirements(category: str) -> list[types.TextContent]:
    requirements = get_requirements(category)
    if not requirements:
        return _text(f"No requirements recorded for '{category}'.")
    return _text({"category": category, "requirements": requirements})


def _handle_list_components(category: str, limit: int) -> list[types.TextContent]:
    repo = _get_repo()
    components = repo.get_components_by_category(category, limit=limit)
    if not components:
        return _text(f"No active {category} parts in the catalog.")
    return _text({
        "category": category,
        "count": len(components),
        "components": [c.to_dict() for c in components],
    })


async def main() -> None:
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


if __name__ == "__main__":
    import asyncio
    asyncio.run(main())
