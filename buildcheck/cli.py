"""CLI entry point for buildcheck."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.logging import RichHandler
from rich.table import Table

from buildcheck.activity import read_activity_log, summarize_activity
from buildcheck.catalog.loader import load_records
from buildcheck.catalog.models import Build, ComponentRecord
from buildcheck.compatibility.engine import (
    CompatibilityEngine,
    CompatibilityResult,
    resolve_relation,
)
from buildcheck.compatibility.requirements import get_requirements
from buildcheck.compatibility.rules import RELATIONS
from buildcheck.config import Config
from buildcheck.errors import InvalidArgumentError
from buildcheck.storage.db import get_connection
from buildcheck.storage.repository import Repository

app = typer.Typer(help="Check whether PC parts work together.")

EXIT_INVALID_ARGUMENT = 2


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    config = Config.load()
    level = logging.getLevelName(config.log_level)
    if verbose:
        level = logging.DEBUG
    elif not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def _config_or_exit() -> Config:
    config = Config.load()
    issues = config.validate()
    if issues:
        for issue in issues:
            rprint(f"[red]Config error: {issue}[/red]")
        raise typer.Exit(1)
    return config


def _open_db(db_path: Optional[str], must_exist: bool = True) -> sqlite3.Connection:
    db = Path(db_path) if db_path else Config.load().db_path
    if must_exist and not db.exists():
        rprint(f"[red]Database not found at {db}. Run 'buildcheck import' first.[/red]")
        raise typer.Exit(1)
    return get_connection(db)


def _invalid(e: InvalidArgumentError) -> typer.Exit:
    rprint(f"[red]Invalid argument: {e}[/red]")
    return typer.Exit(EXIT_INVALID_ARGUMENT)


def _print_result(result: CompatibilityResult, format: str) -> None:
    if format == "json":
        typer.echo(result.to_json())
        return

    colour = "green" if result.is_compatible else "red"
    verdict = "Compatible" if result.is_compatible else "Not compatible"
    rprint(f"[{colour} bold]{verdict}[/{colour} bold] (score {result.score}/100)")
    if result.issues:
        table = Table("Severity", "Check", "Issue", "Solution")
        for issue in result.issues:
            table.add_row(issue.severity.value, issue.component, issue.issue, issue.solution or "")
        rprint(table)
    for rec in result.recommendations:
        rprint(f"  • {rec}")


@app.command("import")
def import_catalog(
    file: Path = typer.Argument(help="JSON file with a list of components"),
    db_path: Optional[str] = typer.Option(None, help="Database file path"),
) -> None:
    """Import catalog components from a JSON file (existing ids are replaced)."""
    if not file.exists():
        rprint(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)

    try:
        records = load_records(file)
    except InvalidArgumentError as e:
        raise _invalid(e)

    conn = _open_db(db_path, must_exist=False)
    repo = Repository(conn)
    try:
        count = repo.save_components(records)
        rprint(f"Imported [bold]{count}[/bold] components from {file}")
        stats = repo.get_stats()
        for category, n in stats["by_category"].items():
            if n:
                rprint(f"  {category}: {n}")
    finally:
        conn.close()


@app.command()
def check(
    component_ids: Optional[list[str]] = typer.Argument(None, help="Catalog ids of the selected parts"),
    file: Optional[Path] = typer.Option(None, "--file", help="Analyze parts from a JSON file instead"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text or json"),
    strict: bool = typer.Option(False, help="Exit with code 1 when the build is not compatible"),
    db_path: Optional[str] = typer.Option(None, help="Database file path"),
) -> None:
    """Analyze a build for compatibility."""
    config = _config_or_exit()
    engine = CompatibilityEngine(duplicate_policy=config.duplicate_policy)

    components: list[ComponentRecord]
    try:
        if file is not None:
            if not file.exists():
                rprint(f"[red]File not found: {file}[/red]")
                raise typer.Exit(1)
            components = load_records(file)
        elif component_ids:
            conn = _open_db(db_path)
            try:
                components = Repository(conn).get_components(component_ids)
            finally:
                conn.close()
            found = {c.id for c in components}
            for missing in (i for i in component_ids if i not in found):
                rprint(f"[yellow]Unknown component id: {missing}[/yellow]")
        else:
            rprint("[red]Pass component ids or --file[/red]")
            raise typer.Exit(EXIT_INVALID_ARGUMENT)

        result = engine.analyze(components)
    except InvalidArgumentError as e:
        raise _invalid(e)

    _print_result(result, format)
    if strict and not result.is_compatible:
        raise typer.Exit(1)


@app.command()
def compatible(
    anchor_id: str = typer.Argument(help="Catalog id of the anchor part"),
    relation: str = typer.Argument(
        help="Relation: " + ", ".join(kind.value for kind in RELATIONS)
    ),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text or json"),
    db_path: Optional[str] = typer.Option(None, help="Database file path"),
) -> None:
    """List catalog parts compatible with an anchor part."""
    config = _config_or_exit()
    engine = CompatibilityEngine(duplicate_policy=config.duplicate_policy)
    conn = _open_db(db_path)
    repo = Repository(conn)

    try:
        kind = resolve_relation(relation)
        anchor = repo.get_component(anchor_id)
        if anchor is None:
            rprint(f"[red]No component with id '{anchor_id}'[/red]")
            raise typer.Exit(1)
        candidates = repo.get_components_by_category(RELATIONS[kind].target)
        lookup = engine.find_compatible(anchor, candidates, kind)
    except InvalidArgumentError as e:
        raise _invalid(e)
    finally:
        conn.close()

    if format == "json":
        typer.echo(lookup.to_json())
    else:
        rprint(lookup.to_text())


@app.command()
def requirements(
    category: str = typer.Argument(help="Component category, e.g. cpu or psu"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text or json"),
) -> None:
    """Show the specification dimensions relevant to a category."""
    reqs = get_requirements(category)
    if format == "json":
        typer.echo(json.dumps(reqs, indent=2))
        return

    if not reqs:
        rprint(f"[yellow]No requirements recorded for '{category}'[/yellow]")
        return

    rprint(f"[bold]{category} requirements:[/bold]")
    for key, value in reqs.items():
        if isinstance(value, dict):
            rprint(f"  {key}: {value['min']}–{value['max']}")
        else:
            rprint(f"  {key}: {', '.join(value)}")


@app.command("build-save")
def build_save(
    name: str = typer.Argument(help="Build name"),
    component_ids: list[str] = typer.Argument(help="Catalog ids of the parts"),
    db_path: Optional[str] = typer.Option(None, help="Database file path"),
) -> None:
    """Save a named build and record its compatibility score."""
    config = _config_or_exit()
    conn = _open_db(db_path)
    repo = Repository(conn)

    try:
        components = repo.get_components(component_ids)
        found = {c.id for c in components}
        missing = [i for i in component_ids if i not in found]
        if missing:
            rprint(f"[red]Unknown component id(s): {', '.join(missing)}[/red]")
            raise typer.Exit(1)

        result = CompatibilityEngine(config.duplicate_policy).analyze(components)
        build_id = repo.save_build(Build(name=name, component_ids=component_ids))
        repo.update_build_score(build_id, result.score, result.is_compatible)
    except InvalidArgumentError as e:
        raise _invalid(e)
    finally:
        conn.close()

    rprint(f"[green]Saved build #{build_id} '{name}'[/green]")
    _print_result(result, "text")


@app.command("build-check")
def build_check(
    build_id: int = typer.Argument(help="Saved build id"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text or json"),
    db_path: Optional[str] = typer.Option(None, help="Database file path"),
) -> None:
    """Re-run the compatibility check on a saved build and persist the new score."""
    config = _config_or_exit()
    conn = _open_db(db_path)
    repo = Repository(conn)

    try:
        build = repo.get_build(build_id)
        if build is None:
            rprint(f"[red]No build with id {build_id}[/red]")
            raise typer.Exit(1)
        components = repo.get_build_components(build_id)
        result = CompatibilityEngine(config.duplicate_policy).analyze(components)
        repo.update_build_score(build_id, result.score, result.is_compatible)
    except InvalidArgumentError as e:
        raise _invalid(e)
    finally:
        conn.close()

    if format != "json":
        rprint(f"[bold]Build #{build_id} '{build.name}'[/bold]")
    _print_result(result, format)


@app.command()
def stats(
    db_path: Optional[str] = typer.Option(None, help="Database file path"),
) -> None:
    """Show catalog statistics."""
    conn = _open_db(db_path)
    repo = Repository(conn)

    try:
        s = repo.get_stats()
        rprint("[bold]buildcheck catalog:[/bold]")
        rprint(f"  Components: {s['total_components']} ({s['active_components']} active)")
        rprint(f"  Saved builds: {s['total_builds']}")
        rprint("\n[bold]By category:[/bold]")
        for category, n in s["by_category"].items():
            rprint(f"  {category}: {n}")
    finally:
        conn.close()


@app.command()
def activity(
    limit: int = typer.Option(20, help="Number of entries to show"),
    tool: Optional[str] = typer.Option(None, help="Only show calls to this tool"),
    errors: bool = typer.Option(False, "--errors", help="Only show failed calls"),
) -> None:
    """Show recent MCP tool calls."""
    entries = read_activity_log(limit=limit, tool_name=tool, errors_only=errors)
    if not entries:
        rprint("No MCP activity recorded yet.")
        return

    for e in entries:
        status = "[red]error[/red]" if e.get("error") else "[green]ok[/green]"
        verdict = e.get("verdict") or {}
        if "score" in verdict:
            status += f" score {verdict['score']}"
        elif "compatible" in verdict:
            status += f" {verdict['compatible']} compatible / {verdict['incompatible']} not"
        rprint(f"  {e.get('timestamp', '')}  {e.get('tool_name', '')}  {status}  {e.get('duration_ms', 0)}ms")

    rprint("\n[bold]Summary:[/bold]")
    for tool_name, s in summarize_activity(entries).items():
        rprint(
            f"  {tool_name}: {s['calls']} call(s), {s['errors']} error(s), "
            f"{s['incompatible']} incompatible verdict(s), mean {s['mean_ms']}ms"
        )


@app.command()
def serve() -> None:
    """Start the MCP server."""
    import asyncio
    from buildcheck.mcp_server import main as mcp_main
    asyncio.run(mcp_main())


if __name__ == "__main__":
    app()
