"""MSCC CLI — Typer-based entry point for managing connector scripts.

Commands
--------
list        Show stored scripts.
new         Create a script from the template and save it.
compile     Compile one script (or ``--all`` enabled scripts) and register it.
validate    Syntax-check a source file.
complete    Show completions for a cursor offset in a source file.
template    Print the template for a new connector.
import      Copy an external script into the repository under a fresh id.
export      Write a stored script's source to a file.
delete      Remove a script and its files.
enable      Include a script in ``compile --all``.
disable     Exclude a script from ``compile --all``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from mscc.config.settings import get_settings
from mscc.scripting import (
    CompilationError,
    ConnectorScript,
    ScriptingService,
    ScriptRepository,
)

app = typer.Typer(
    name="mscc",
    help="MSCC — connector scripting for the metasearch host",
    add_completion=False,
)
console = Console()

_state: dict[str, Optional[Path]] = {"scripts_dir": None}


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
    )


def _open_repository() -> ScriptRepository:
    repo = ScriptRepository(ScriptingService(), scripts_dir=_state["scripts_dir"])
    asyncio.run(repo.load_all_async())
    return repo


def _find_script(repo: ScriptRepository, script_id: str) -> ConnectorScript:
    """Resolve a full id or an unambiguous id prefix, or exit with an error."""
    script = repo.get_by_id(script_id)
    if script is not None:
        return script

    matches = [s for s in repo.get_all() if s.id.startswith(script_id)]
    if len(matches) == 1:
        return matches[0]
    if matches:
        typer.echo(f"Ambiguous script id: {script_id}")
    else:
        typer.echo(f"Script not found: {script_id}")
    raise typer.Exit(1)


def _print_diagnostics(diagnostics: list[CompilationError]) -> None:
    for diagnostic in diagnostics:
        typer.echo(f"  {diagnostic}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    scripts_dir: Optional[Path] = typer.Option(
        None, "--scripts-dir", help="Override the scripts directory.",
    ),
) -> None:
    _setup_logging(verbose)
    _state["scripts_dir"] = scripts_dir


@app.command("list")
def list_scripts() -> None:
    """Show stored scripts."""
    repo = _open_repository()
    scripts = sorted(repo.get_all(), key=lambda s: s.metadata.name.lower())
    if not scripts:
        typer.echo("No scripts found.")
        return

    table = Table(title=f"Scripts in {repo.scripts_dir}")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Enabled")
    table.add_column("File")
    for script in scripts:
        table.add_row(
            script.id[:8],
            script.metadata.name,
            script.metadata.version,
            "yes" if script.metadata.is_enabled else "no",
            script.file_path.name if script.file_path else "-",
        )
    console.print(table)


@app.command()
def new(
    name: str = typer.Argument(..., help="Display name of the new connector."),
    description: str = typer.Option("", "--description", "-d", help="Script description."),
) -> None:
    """Create a script from the template and save it."""
    repo = _open_repository()
    script = repo.create(name, description)
    if not repo.save(script):
        typer.echo("Could not save the new script.")
        raise typer.Exit(1)
    typer.echo(f"Created script {script.id} at {script.file_path}")


@app.command()
def compile(  # noqa: A001
    script_id: Optional[str] = typer.Argument(None, help="Script id (or unique prefix)."),
    all_scripts: bool = typer.Option(False, "--all", help="Compile every enabled script."),
) -> None:
    """Compile a script and register its connector."""
    repo = _open_repository()

    if all_scripts:
        succeeded, failed = asyncio.run(repo.compile_all_async())
        typer.echo(f"Compiled: {succeeded} succeeded, {failed} failed.")
        for connector_id in repo.registry.ids():
            typer.echo(f"  registered {connector_id}")
        if failed:
            raise typer.Exit(1)
        return

    if script_id is None:
        typer.echo("Provide a script id or --all.")
        raise typer.Exit(1)

    script = _find_script(repo, script_id)
    result = repo.compile_and_register(script)
    _print_diagnostics(result.errors + result.warnings)
    if not result.is_usable:
        typer.echo(f"'{script.metadata.name}' produced no connector.")
        raise typer.Exit(1)
    assert result.connector_instance is not None
    typer.echo(f"Registered connector {result.connector_instance.id} ({result.connector_instance.name}).")


@app.command()
def validate(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Source file to check."),
) -> None:
    """Syntax-check a source file."""
    diagnostics = ScriptingService().validate(file.read_text(encoding="utf-8"))
    if not diagnostics:
        typer.echo("No problems found.")
        return
    _print_diagnostics(diagnostics)
    if any(d.is_error for d in diagnostics):
        raise typer.Exit(1)


@app.command()
def complete(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Source file."),
    offset: int = typer.Argument(..., min=0, help="Cursor offset in characters."),
) -> None:
    """Show completions at a cursor offset."""
    items = ScriptingService().get_completions(file.read_text(encoding="utf-8"), offset)
    if not items:
        typer.echo("No completions.")
        return

    table = Table()
    table.add_column("Name", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Description")
    for item in items:
        table.add_row(item.display_text, item.kind, item.description or "")
    console.print(table)


@app.command()
def template(
    name: str = typer.Argument(..., help="Display name of the connector."),
    connector_id: Optional[str] = typer.Option(None, "--id", help="Connector id (default: new UUID)."),
) -> None:
    """Print the template for a new connector."""
    typer.echo(ScriptingService.get_template(name, connector_id or str(uuid.uuid4())), nl=False)


@app.command("import")
def import_script(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Script to import."),
) -> None:
    """Copy an external script into the repository under a fresh id."""
    repo = _open_repository()
    script = asyncio.run(repo.import_async(file))
    if script is None or not repo.save(script):
        typer.echo(f"Import of {file} failed.")
        raise typer.Exit(1)
    typer.echo(f"Imported '{script.metadata.name}' as {script.id}")


@app.command()
def export(
    script_id: str = typer.Argument(..., help="Script id (or unique prefix)."),
    target: Path = typer.Argument(..., help="Destination file."),
) -> None:
    """Write a stored script's source to a file."""
    repo = _open_repository()
    script = _find_script(repo, script_id)
    if not repo.export(script.id, target):
        typer.echo(f"Export to {target} failed.")
        raise typer.Exit(1)
    typer.echo(f"Exported '{script.metadata.name}' to {target}")


@app.command()
def delete(
    script_id: str = typer.Argument(..., help="Script id (or unique prefix)."),
) -> None:
    """Remove a script and its files."""
    repo = _open_repository()
    script = _find_script(repo, script_id)
    repo.delete(script.id)
    typer.echo(f"Deleted '{script.metadata.name}'.")


def _set_enabled(script_id: str, enabled: bool) -> None:
    repo = _open_repository()
    script = _find_script(repo, script_id)
    if not (repo.set_enabled(script.id, enabled) and repo.save(script)):
        typer.echo("Could not update the script.")
        raise typer.Exit(1)
    typer.echo(f"{'Enabled' if enabled else 'Disabled'} '{script.metadata.name}'.")


@app.command()
def enable(script_id: str = typer.Argument(..., help="Script id (or unique prefix).")) -> None:
    """Include a script in ``compile --all``."""
    _set_enabled(script_id, True)


@app.command()
def disable(script_id: str = typer.Argument(..., help="Script id (or unique prefix).")) -> None:
    """Exclude a script from ``compile --all``."""
    _set_enabled(script_id, False)


def main() -> int:
    """Entry point: delegates to Typer."""
    app()
    return 0
