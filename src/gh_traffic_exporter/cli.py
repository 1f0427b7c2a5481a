"""CLI entry point for gh-traffic-exporter.

Runs one export: collect traffic, engagement and CI metrics for the token
owner's public repositories and write them to InfluxDB. Meant to be
scheduled periodically (cron, systemd timer).
"""

import asyncio
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from gh_traffic_exporter import __version__
from gh_traffic_exporter.config import DEFAULT_CONFIG_PATH, load_config
from gh_traffic_exporter.errors import ExporterError
from gh_traffic_exporter.exporter import run_export
from gh_traffic_exporter.logging import setup_logging

console = Console(stderr=True)


def _fail(message: str, verbose: bool, error: BaseException) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    if verbose:
        import traceback

        console.print("\n[dim]Traceback:[/dim]")
        console.print(escape("".join(traceback.format_exception(error))))
    raise click.exceptions.Exit(1) from error


@click.command()
@click.version_option(version=__version__, prog_name="gh-traffic-exporter")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the JSON configuration file",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable verbose output")
@click.option("--json-logs", is_flag=True, default=False, help="Emit logs as JSON lines")
def main(config_path: Path, verbose: bool, json_logs: bool) -> None:
    """Export GitHub repository traffic metrics to InfluxDB.

    \b
    The configuration file must define:
        Bucket, InfluxDBHost, InfluxDBApiToken, Org, GithubApiToken
    """
    setup_logging(verbose=verbose, json_format=json_logs)

    try:
        cfg = load_config(config_path)
    except FileNotFoundError as e:
        _fail(f"Error reading config file: {e}", verbose, e)
    except ValidationError as e:
        _fail(f"Error reading configuration: {e}", verbose, e)

    try:
        result = asyncio.run(run_export(cfg))
    except ExporterError as e:
        _fail(str(e), verbose, e)
    except KeyboardInterrupt:
        console.print("\n[yellow]Export interrupted by user[/yellow]")
        raise click.Abort() from None
    except Exception as e:
        _fail(f"Unexpected error: {e}", verbose, e)

    console.print(
        f"[bold green]Export complete![/bold green] "
        f"{result.samples_written} samples from {result.repos_exported} repositories "
        f"({result.compressed_bytes} bytes compressed) in {result.duration_seconds:.1f}s"
    )


if __name__ == "__main__":
    main()
