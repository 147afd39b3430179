"""Main CLI interface for warpack."""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config import Config, LogLevel, WarSettings, get_session_logger, set_config
from model.project import MavenProject
from reporting import render_condensed_summary
from webapp.builder import PackagingReport, WarBuilder
from webapp.errors import OverlayConfigurationError, PackagingError
from webapp.structure_store import WebappStructureSerializer

console = Console()

VERSION = "0.1.0"


def load_descriptor(descriptor: str, config: Config) -> Tuple[MavenProject, WarSettings]:
    """Read the project and packaging settings of a JSON descriptor."""
    path = Path(descriptor)
    try:
        project = MavenProject.from_file(path)
        settings = WarSettings.from_file(path)
    except (OSError, ValueError) as e:
        raise OverlayConfigurationError(
            f"Invalid descriptor [{path}]: {e}",
            suggestions=["The descriptor is a JSON object with a \"project\" and a \"war\" section"],
            error_code="INVALID_DESCRIPTOR",
        ) from e
    if "use_cache" not in settings.model_fields_set:
        settings.use_cache = config.use_cache
    return project, settings


def apply_overrides(settings: WarSettings, **overrides) -> WarSettings:
    """Copy of *settings* with the CLI options that were actually given."""
    update = {key: value for key, value in overrides.items() if value is not None}
    return settings.model_copy(update=update) if update else settings


def print_error(error: PackagingError) -> None:
    console.print(f"[bold red]❌ {error.kind.value.replace('_', ' ').title()} error: {escape(str(error))}[/bold red]")
    if error.owner_id:
        console.print(f"[dim]Overlay:[/dim] {error.owner_id}")
    for suggestion in error.suggestions:
        console.print(f"  [yellow]•[/yellow] {escape(suggestion)}")


def print_report(report: PackagingReport) -> None:
    console.print(Panel(Text(render_condensed_summary(report.model_dump(mode="json"))), border_style="green"))
    if not report.tasks:
        return

    table = Table(title="Packaging Tasks", show_header=True, header_style="bold magenta")
    table.add_column("Task", style="cyan", no_wrap=True)
    table.add_column("Owner", style="blue")
    table.add_column("Copied", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Removed", justify="right", style="red")
    for result in report.tasks:
        table.add_row(
            result.task,
            result.owner_id or "",
            str(result.copied),
            str(result.skipped),
            str(result.removed),
        )
    console.print(table)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Set the logging level",
)
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option("--verbose", is_flag=True, help="Enable verbose debugging output with detailed logs")
@click.pass_context
def cli(ctx, log_level, log_file, verbose):
    """warpack: assemble WAR webapps from project sources and overlays."""

    # Create configuration
    config = Config.from_env()

    # Override with CLI options if provided
    if log_level:
        config.log_level = LogLevel(log_level)
    if log_file:
        config.log_file = log_file
    if verbose:
        config.verbose = verbose

    # Set global config (this also initializes session logging)
    set_config(config)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    if config.verbose:
        session_logger = get_session_logger()
        if session_logger and session_logger.session_log_dir:
            summary = session_logger.get_session_summary()
            logger.info(f"Session ID: {summary['session_id']}")
            logger.info(f"Logs directory: {summary['session_dir']}")


@cli.command()
@click.argument("descriptor", type=click.Path(exists=True, dir_okay=False))
@click.option("--use-cache/--no-cache", default=None, help="Reuse the webapp structure of the previous run")
@click.option("--classifier", help="Classifier appended to the archive name")
@click.option("--output-dir", type=click.Path(file_okay=False), help="Directory the archive is written to")
@click.option(
    "--fail-on-missing-web-xml/--allow-missing-web-xml",
    default=None,
    help="Whether a webapp without WEB-INF/web.xml is an error",
)
@click.option("--skip", is_flag=True, help="Skip packaging entirely")
@click.pass_context
def package(ctx, descriptor, use_cache, classifier, output_dir, fail_on_missing_web_xml, skip):
    """Assemble the webapp and write the WAR archive."""

    config = ctx.obj["config"]
    try:
        project, settings = load_descriptor(descriptor, config)
        settings = apply_overrides(
            settings,
            use_cache=use_cache,
            classifier=classifier,
            output_directory=Path(output_dir).resolve() if output_dir else None,
            fail_on_missing_web_xml=fail_on_missing_web_xml,
            skip=skip or None,
        )
        console.print(f"[bold green]📦 Packaging[/bold green] {project.group_id}:{project.artifact_id}:{project.version}")
        report = WarBuilder(project, settings).package()
    except PackagingError as e:
        logger.error(f"Packaging failed: {e}")
        print_error(e)
        sys.exit(1)

    print_report(report)
    if report.archive:
        console.print(f"[bold green]✅ Built {report.archive}[/bold green]")


@cli.command()
@click.argument("descriptor", type=click.Path(exists=True, dir_okay=False))
@click.option("--use-cache/--no-cache", default=None, help="Reuse the webapp structure of the previous run")
@click.option("--webapp-dir", type=click.Path(file_okay=False), help="Directory the webapp is assembled in")
@click.pass_context
def explode(ctx, descriptor, use_cache, webapp_dir):
    """Assemble the exploded webapp directory only."""

    config = ctx.obj["config"]
    try:
        project, settings = load_descriptor(descriptor, config)
        settings = apply_overrides(
            settings,
            use_cache=use_cache,
            webapp_directory=Path(webapp_dir).resolve() if webapp_dir else None,
        )
        report = WarBuilder(project, settings).build_exploded_webapp()
    except PackagingError as e:
        logger.error(f"Webapp assembly failed: {e}")
        print_error(e)
        sys.exit(1)

    print_report(report)
    console.print(f"[bold green]✅ Webapp assembled in {report.webapp_directory}[/bold green]")


@cli.command()
@click.argument("descriptor", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def overlays(ctx, descriptor):
    """Show the resolved overlay order."""

    config = ctx.obj["config"]
    try:
        project, settings = load_descriptor(descriptor, config)
        manager = WarBuilder(project, settings).resolve_overlays()
    except PackagingError as e:
        print_error(e)
        sys.exit(1)

    table = Table(title="Overlays", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Type", style="blue")
    table.add_column("Artifact", style="white")
    table.add_column("Target Path", style="white")
    table.add_column("Origin", style="green")

    for index, overlay in enumerate(manager.overlays, start=1):
        if overlay.is_current_project:
            origin = Text("current project", style="bold green")
        elif overlay.skip:
            origin = Text("skipped", style="yellow")
        else:
            origin = Text("implicit" if overlay.implicit else "configured")
        table.add_row(
            str(index),
            overlay.get_id(),
            "" if overlay.is_current_project else overlay.type,
            str(overlay.artifact) if overlay.artifact else "",
            overlay.normalized_target_path() or "/",
            origin,
        )
    console.print(table)


@cli.command()
@click.argument("descriptor", type=click.Path(exists=True, dir_okay=False))
@click.option("--owner", help="List the paths of this owner")
@click.pass_context
def structure(ctx, descriptor, owner: Optional[str]):
    """Show the webapp structure recorded by the last cached run."""

    config = ctx.obj["config"]
    try:
        project, settings = load_descriptor(descriptor, config)
    except PackagingError as e:
        print_error(e)
        sys.exit(1)

    cache_file = settings.resolved(project).cache_file
    cached = WebappStructureSerializer().from_xml(cache_file, project.artifacts)
    if cached is None:
        console.print(f"[yellow]No usable webapp cache at {cache_file}.[/yellow]")
        console.print("[dim]Run 'warpack package --use-cache <descriptor>' to create one.[/dim]")
        return

    if owner:
        for path in cached.get_structure(owner):
            console.print(path)
        return

    table = Table(title=f"Webapp Structure ({cache_file})", show_header=True, header_style="bold magenta")
    table.add_column("Owner", style="cyan", no_wrap=True)
    table.add_column("Files", justify="right", style="green")
    for owner_id in cached.owners:
        table.add_row(owner_id, str(len(cached.get_structure(owner_id))))
    console.print(table)
    if not cached.owners:
        console.print("[dim]Dependencies changed since the cache was written; no paths are trusted.[/dim]")


@cli.command()
def version():
    """Show warpack version information."""
    console.print(f"[bold blue]warpack[/bold blue] version [green]{VERSION}[/green]")
    console.print("[dim]WAR webapp assembly with overlays[/dim]")


if __name__ == "__main__":
    cli()
