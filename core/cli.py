"""
Command-line interface for ReportRunner
"""
from pathlib import Path
from typing import Optional, Tuple

import click

from core.config import settings
from core.exceptions import ReportEngineError
from core.logging import get_logger

logger = get_logger(__name__)


def parse_parameters(values: Tuple[str, ...]) -> dict:
    """Turn repeated ``--param name=value`` options into a dict"""
    parameters = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected name=value, got {item!r}", param_hint="--param")
        parameters[name.strip()] = value
    return parameters


class ReportCommandError(click.ClickException):
    """Shows a structured error on stderr and exits with status 1"""

    def __init__(self, error: ReportEngineError):
        entity = f" [{error.entity}]" if error.entity else ""
        super().__init__(f"{error.error_code}{entity}: {error.message}")


@click.group()
@click.version_option(version=settings.app_version)
def cli():
    """ReportRunner CLI - build report designs and render them to PDF or HTML"""
    pass


@cli.command("create-sample")
@click.option("--url", required=True, help="SQLAlchemy URL of the reception database")
@click.option("--driver", default="firebird", show_default=True, help="Dialect name")
@click.option("--driver-class", default=None, help="DBAPI module, e.g. fdb")
@click.option("--user", default=None, help="Login name")
@click.option("--password", default=None, help="Password (prompted when --user is given without it)")
@click.option("--query", "query_text", default=None, help="Query feeding the reception table")
@click.option("--row-limit", default=10, show_default=True, type=click.IntRange(min=0))
@click.option("--columns", "column_count", default=8, show_default=True, type=click.IntRange(min=1))
@click.option("--output", "output_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the design file here instead of the design store")
def create_sample(
    url: str,
    driver: str,
    driver_class: Optional[str],
    user: Optional[str],
    password: Optional[str],
    query_text: Optional[str],
    row_limit: int,
    column_count: int,
    output_path: Optional[Path],
):
    """Build the reception listing sample design"""
    from d1_design import DesignStore, build_sample_design, save_design_file

    if user and password is None:
        password = click.prompt("Password", hide_input=True)

    kwargs = {"row_limit": row_limit, "column_count": column_count}
    if query_text:
        kwargs["query_text"] = query_text

    try:
        design = build_sample_design(url, driver, user, password, driver_class, **kwargs)
        if output_path:
            save_design_file(design, output_path)
            click.echo(f"Design written to {output_path}")
        else:
            design_ref = DesignStore(settings.designs_dir).save(design)
            click.echo(design_ref)
    except ReportEngineError as e:
        raise ReportCommandError(e) from e


@cli.command()
@click.argument("design")
@click.option("--output", "output_path", type=click.Path(dir_okay=False, path_type=Path), required=True,
              help="Destination of the rendered document")
@click.option("--format", "output_format", type=click.Choice(["pdf", "html"]), default=None)
@click.option("--page-size", type=click.Choice(["A4", "LETTER", "LEGAL"], case_sensitive=False), default=None)
@click.option("--landscape", is_flag=True, help="Rotate the page")
@click.option("--title", default=None, help="Document title")
@click.option("--param", "params", multiple=True, help="Query parameter as name=value (repeatable)")
@click.option("--timeout", type=float, default=None, help="Seconds allowed for each data source call")
def render(
    design: str,
    output_path: Path,
    output_format: Optional[str],
    page_size: Optional[str],
    landscape: bool,
    title: Optional[str],
    params: Tuple[str, ...],
    timeout: Optional[float],
):
    """Render DESIGN (a design file path or a stored design reference)"""
    from d1_design import DesignStore, load_design_file
    from d2_query import EngineContext
    from d3_render import RenderOptions
    from d4_jobs import RenderJob, RenderTask

    overrides = {"landscape": landscape}
    if output_format:
        overrides["output_format"] = output_format
    elif output_path.suffix.lower() in (".html", ".htm"):
        overrides["output_format"] = "html"
    if page_size:
        overrides["page_size"] = page_size.upper()
    if title:
        overrides["title"] = title

    try:
        source = Path(design)
        loaded = load_design_file(source) if source.suffix == ".json" else DesignStore(settings.designs_dir).get(design)
        job = RenderJob(
            design=loaded,
            destination=output_path,
            options=RenderOptions.defaults(**overrides),
            parameters=parse_parameters(params),
            timeout_seconds=timeout,
        )
        with EngineContext(pool_size=settings.data_source_pool_size) as context:
            stats = RenderTask(job, context).execute()
    except ReportEngineError as e:
        raise ReportCommandError(e) from e

    click.echo(f"Rendered {stats.pages} page(s), {stats.total_rows} row(s) to {output_path}")


@cli.command("list-designs")
def list_designs():
    """List stored designs, newest first"""
    from d1_design import DesignStore

    summaries = DesignStore(settings.designs_dir).list()
    if not summaries:
        click.echo("No designs stored")
        return
    for summary in summaries:
        tables = ", ".join(summary["tables"]) or "-"
        click.echo(f"{summary['design_ref']}  {summary['name']}  tables: {tables}  updated: {summary['updated_at']}")


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to")
@click.option("--port", default=8000, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def runserver(host: str, port: int, reload: bool):
    """Run the FastAPI development server"""
    import uvicorn

    click.echo(f"Starting ReportRunner server on {host}:{port}")
    click.echo(f"Environment: {settings.environment}")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command("env-info")
def env_info():
    """Display environment information"""
    click.echo(f"ReportRunner v{settings.app_version}")
    click.echo(f"Environment: {settings.environment}")
    click.echo(f"Designs: {settings.designs_dir}")
    click.echo(f"Output: {settings.output_dir}")
    click.echo(f"Query timeout: {settings.query_timeout_seconds}s")
    click.echo(f"Default format: {settings.default_output_format} on {settings.default_page_size}")


def main():
    """Main entry point"""
    cli()


if __name__ == "__main__":
    main()
