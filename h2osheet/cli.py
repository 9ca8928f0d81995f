"""h2osheet CLI.

Commands:
- templates: List registered templates
- parameters: Browse the parameter library
- resolve: Show which template a sector/subsector resolves to
- init: Create (or reset) a project's technical sheet
- show: Print a project's technical sheet
- set: Set one field value
- completion: Completion, source breakdown and derived values
- export: Export a sheet to CSV or Excel
- validate: Check template/library consistency and, optionally, a project's values
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from h2osheet.config import get_config
from h2osheet.context import get_context
from h2osheet.core.logging import configure_logging
from h2osheet.models import DataSource, FieldType, FieldUpdate, FieldValue
from h2osheet.reporting.export import export_summary_csv, export_summary_excel, format_value
from h2osheet.session import TechnicalSheetSession
from h2osheet.sheet.completion import section_completion, source_breakdown
from h2osheet.sheet.mutation import find_field
from h2osheet.sheet.projections import calculate_derived_values
from h2osheet.sheet.validation import validate_sections
from h2osheet.startup_validation import StartupValidationError, run_startup_validation
from h2osheet.storage.persistence import create_cache, create_remote
from h2osheet.templates.resolution import resolve_template

app = typer.Typer(
    name="h2osheet",
    help="h2osheet - Technical sheets for water-treatment projects",
    no_args_is_help=True,
)

console = Console()

TRUE_WORDS = {"true", "yes", "y", "1", "si", "sí"}
FALSE_WORDS = {"false", "no", "n", "0"}


@app.callback()
def main():
    """Configure logging from the environment."""
    config = get_config()
    configure_logging(config.log_level, config.json_logs)


@asynccontextmanager
async def open_session(
    project_id: str, sector: str | None = None, subsector: str | None = None
):
    """Session wired to the configured cache and remote API, loaded and ready."""
    config = get_config()
    cache = create_cache(config)
    remote = create_remote(config)
    session = TechnicalSheetSession(
        project_id,
        context=get_context(),
        cache=cache,
        remote=remote,
        sector=sector,
        subsector=subsector,
    )
    try:
        await session.load()
        if session.load_error is not None:
            console.print(f"[red]Error: Could not read the stored sheet: {session.load_error}[/red]")
            raise typer.Exit(1)
        yield session
    finally:
        if remote is not None:
            await remote.aclose()
        aclose = getattr(cache, "aclose", None)
        if aclose is not None:
            await aclose()


def parse_value(raw: str, field_type: FieldType) -> FieldValue:
    """Convert command-line text to a value of the field's type.

    Raises:
        typer.BadParameter: If the text can't be read as the field's type
    """
    if field_type in (FieldType.NUMBER, FieldType.UNIT):
        try:
            number = float(raw)
        except ValueError as e:
            raise typer.BadParameter(f"{raw!r} is not a number") from e
        return int(number) if number.is_integer() and "." not in raw else number
    if field_type is FieldType.BOOLEAN:
        word = raw.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
        raise typer.BadParameter(f"{raw!r} is not a yes/no value")
    if field_type is FieldType.TAGS:
        return [tag.strip() for tag in raw.split(",") if tag.strip()]
    return raw


@app.command()
def templates():
    """List registered templates."""
    context = get_context()

    table = Table(title="Templates")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Sector")
    table.add_column("Subsector")
    table.add_column("Extends", style="dim")

    for template in context.registry:
        table.add_row(
            template.id,
            template.name,
            template.sector or "-",
            template.subsector or "-",
            template.extends or "-",
        )

    console.print(table)


@app.command()
def parameters(
    section: str | None = typer.Option(None, "--section", help="Only parameters offered in this section"),
    search: str | None = typer.Option(None, "--search", help="Search labels, descriptions and tags"),
    sector: str | None = typer.Option(None, "--sector", help="Filter by sector relevance"),
):
    """Browse the parameter library."""
    library = get_context().library

    if search:
        definitions = library.search(search)
    elif section:
        definitions = library.for_section(section, sector)
    else:
        definitions = [d for d in library if d.applies_to(sector)]

    table = Table(title=f"Parameters ({len(definitions)})")
    table.add_column("ID", style="cyan")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Unit")
    table.add_column("Typical range")
    table.add_column("Section", style="dim")

    for definition in definitions:
        table.add_row(
            definition.id,
            definition.label,
            definition.type.value,
            definition.default_unit or "",
            definition.typical_range.describe() if definition.typical_range else "",
            definition.target_section,
        )

    console.print(table)


@app.command()
def resolve(
    sector: str | None = typer.Option(None, "--sector", help="Project sector"),
    subsector: str | None = typer.Option(None, "--subsector", help="Project subsector"),
):
    """Show which template a sector/subsector resolves to."""
    template = resolve_template(get_context().registry, sector, subsector)
    console.print(f"[bold]Template:[/bold] {template.id} ({template.name})")


@app.command()
def init(
    project_id: str = typer.Argument(..., help="Project ID"),
    sector: str | None = typer.Option(None, "--sector", help="Project sector"),
    subsector: str | None = typer.Option(None, "--subsector", help="Project subsector"),
    force: bool = typer.Option(False, "--force", help="Discard an existing sheet"),
):
    """Create (or reset) a project's technical sheet."""
    console.print(f"[bold]Initializing technical sheet:[/bold] project={project_id}")

    async def _init():
        async with open_session(project_id, sector, subsector) as session:
            if force:
                console.print("[yellow]Resetting existing sheet...[/yellow]")
                session.reset_to_initial()
            result = await session.save()
            fields = sum(len(s.fields) for s in session.sections)
            console.print(
                f"[bold green]✓[/bold green] {len(session.sections)} sections, {fields} fields"
            )
            if not result.synced and session.remote is not None:
                console.print("[yellow]⚠[/yellow] Remote sync failed (saved locally)")

    asyncio.run(_init())


@app.command()
def show(
    project_id: str = typer.Argument(..., help="Project ID"),
    section: str | None = typer.Option(None, "--section", help="Only this section"),
):
    """Print a project's technical sheet."""

    async def _show():
        async with open_session(project_id) as session:
            sections = session.sections

        for sec in sections:
            if section and sec.id != section:
                continue
            stats = section_completion(sec)
            table = Table(title=f"{sec.title} ({stats.percentage}%)")
            table.add_column("Field", style="cyan")
            table.add_column("Value")
            table.add_column("Unit")
            table.add_column("Source", style="dim")
            for field in sec.fields:
                value = format_value(field.value)
                if not value and field.suggested_value not in (None, ""):
                    value = f"[dim]{format_value(field.suggested_value)} (suggested)[/dim]"
                table.add_row(field.label, value, field.unit or "", field.source.value)
            console.print(table)

    asyncio.run(_show())


@app.command(name="set")
def set_value(
    project_id: str = typer.Argument(..., help="Project ID"),
    section_id: str = typer.Argument(..., help="Section ID"),
    field_id: str = typer.Argument(..., help="Field ID"),
    value: str = typer.Argument(..., help="New value"),
    unit: str | None = typer.Option(None, "--unit", help="Unit"),
    source: DataSource = typer.Option(DataSource.MANUAL, "--source", help="Data source"),
):
    """Set one field value."""

    async def _set():
        async with open_session(project_id) as session:
            field = find_field(session.sections, section_id, field_id)
            if field is None:
                console.print(f"[red]Error: Field not found: {section_id}/{field_id}[/red]")
                raise typer.Exit(1)

            session.update_field(
                FieldUpdate(
                    section_id=section_id,
                    field_id=field_id,
                    value=parse_value(value, field.type),
                    unit=unit,
                    source=source,
                )
            )
            await session.save()
            console.print(
                f"[bold green]✓[/bold green] {field.label} updated "
                f"(completion {session.completion.percentage}%)"
            )

    asyncio.run(_set())


@app.command()
def completion(
    project_id: str = typer.Argument(..., help="Project ID"),
):
    """Show completion, source breakdown and derived values."""

    async def _completion():
        async with open_session(project_id) as session:
            sections = session.sections
            overall = session.completion

        table = Table(title="Completion")
        table.add_column("Section", style="cyan")
        table.add_column("Completed", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("%", justify="right")
        for sec in sections:
            stats = section_completion(sec)
            table.add_row(sec.title, str(stats.completed), str(stats.total), f"{stats.percentage}%")
        console.print(table)

        console.print(
            f"\n[bold]Overall:[/bold] {overall.completed}/{overall.total} ({overall.percentage}%)"
        )

        console.print("\n[bold]Sources:[/bold]")
        for name, count in source_breakdown(sections).items():
            console.print(f"  {name}: {count}")

        derived = calculate_derived_values(sections)
        console.print("\n[bold]Derived values:[/bold]")
        if derived.daily_volume_m3 is not None:
            console.print(f"  Daily volume: {derived.daily_volume_m3:,.1f} m³/day")
        if derived.per_capita_lpd is not None:
            console.print(f"  Per capita: {derived.per_capita_lpd:,.1f} L/person/day")
        console.print(f"  Peak factor: {derived.peak_factor}")

    asyncio.run(_completion())


@app.command()
def export(
    project_id: str = typer.Argument(..., help="Project ID"),
    output: Path = typer.Option(..., "--output", "-o", help="Output file (.csv or .xlsx)"),
):
    """Export a technical sheet to CSV or Excel."""
    suffix = output.suffix.lower()
    if suffix not in (".csv", ".xlsx"):
        console.print(f"[red]Error: Unsupported export format: {suffix or output.name}[/red]")
        raise typer.Exit(1)

    async def _export():
        async with open_session(project_id) as session:
            sections = session.sections

        if suffix == ".csv":
            output.write_text(export_summary_csv(sections), encoding="utf-8")
        else:
            output.write_bytes(export_summary_excel(sections, project_id))
        console.print(f"[green]✓[/green] Exported to: {output}")

    asyncio.run(_export())


@app.command()
def validate(
    project_id: str | None = typer.Argument(None, help="Project ID (optional)"),
):
    """Check template/library consistency and, optionally, a project's values."""
    try:
        run_startup_validation(get_context())
    except StartupValidationError as e:
        console.print(f"[bold red]✗ Startup validation failed:[/bold red] {e}")
        raise typer.Exit(1)
    console.print("[bold green]✓[/bold green] Templates and parameter library are consistent")

    if project_id is None:
        return

    async def _validate():
        async with open_session(project_id) as session:
            return validate_sections(session.sections)

    issues = asyncio.run(_validate())
    if not issues:
        console.print(f"[bold green]✓[/bold green] No issues in project {project_id}")
        return

    table = Table(title=f"Issues ({len(issues)})")
    table.add_column("Section", style="cyan")
    table.add_column("Field")
    table.add_column("Issue", style="yellow")
    for issue in issues:
        table.add_row(issue.section_id, issue.label, issue.message)
    console.print(table)
    raise typer.Exit(1)


if __name__ == "__main__":
    app()
