"""CLI entry point for buildgate."""

import asyncio
import sys
from pathlib import Path

import click
import structlog

from buildgate.cli.params import RunParameters, parse_parameters
from buildgate.config.settings import BuildGateSettings
from buildgate.engine.orchestrator import ReleaseOrchestrator, RunResult
from buildgate.exceptions import BuildGateError, ConfigurationError
from buildgate.models.domain import OperationType
from buildgate.providers.jira_rest import JiraRestProvider
from buildgate.providers.teamcity_rest import TeamCityRestProvider
from buildgate.utils.logging_config import bind_run_context, configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--config",
    default="buildgate.yaml",
    envvar="BUILDGATE_CONFIG",
    help="Path to configuration file",
)
@click.option("--log-level", default="INFO", help="Logging level")
@click.option("--json-logs/--console-logs", default=True, help="Log format")
@click.pass_context
def cli(ctx: click.Context, config: str, log_level: str, json_logs: bool) -> None:
    """buildgate: start TeamCity builds for branches and move Jira issues through the release gates."""
    configure_logging(log_level, json_output=json_logs)

    config_path = Path(config)
    if not config_path.exists():
        click.echo(f"Error: Configuration file not found: {config}", err=True)
        sys.exit(1)

    try:
        settings = BuildGateSettings.from_yaml(str(config_path))
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    ctx.obj = {"settings": settings}


@cli.command()
@click.option("--tracker", default=None, help="Tracker instance name (defaults to run.default_tracker)")
@click.argument("tokens", nargs=-1, required=True)
@click.pass_context
def run(ctx: click.Context, tracker: str | None, tokens: tuple[str, ...]) -> None:
    """Run a build or check pass.

    TOKENS are key=value pairs: type, on, buildtype, branch, domain, checkon,
    checkbuildid, jira, notstartbuilds.

    Examples:
        buildgate run type=build on=dev buildtype=Deploy_Dev

        buildgate run type=smoke on=dev buildtype=Deploy_Dev branch=fn-101
        domain=fn-101 checkon=ci checkbuildid=4711 jira=true
    """
    settings: BuildGateSettings = ctx.obj["settings"]
    try:
        params = parse_parameters(list(tokens), settings.run)
        bind_run_context(operation=params.operation.value, build_type=params.build_type)
        result = asyncio.run(_execute(settings, params, tracker or settings.run.default_tracker))
    except BuildGateError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("run_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        log.error("run_unexpected", exc_info=True)
        sys.exit(1)

    for line in result.lines():
        click.echo(line)


@cli.command("check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate the configuration and list the configured instances."""
    settings: BuildGateSettings = ctx.obj["settings"]

    click.echo("Trackers:")
    for name, tracker in sorted(settings.trackers.items()):
        click.echo(f"  {name}: {tracker.url} (project {tracker.project_key})")
    click.echo("Build servers:")
    for name, server in sorted(settings.build_servers.items()):
        click.echo(f"  {name}: {server.url}")


async def _execute(settings: BuildGateSettings, params: RunParameters, tracker_name: str) -> RunResult:
    """Create providers for the named instances and run the orchestrator.

    All instance names are resolved before any remote call is made.
    """
    tracker_config = settings.tracker(tracker_name)
    build_server_config = settings.build_server(params.on)
    check_server_config = None
    if params.operation is not OperationType.BUILD:
        assert params.check_on is not None
        check_server_config = settings.build_server(params.check_on)

    async with JiraRestProvider(tracker_config) as jira, TeamCityRestProvider(build_server_config) as teamcity:
        check_server = None
        if check_server_config is not None:
            check_server = TeamCityRestProvider(check_server_config)

        orchestrator = ReleaseOrchestrator(
            settings.run,
            jira,
            tracker_config,
            teamcity,
            build_server_config,
            check_server=check_server,
        )
        try:
            return await orchestrator.run(params)
        finally:
            if check_server is not None:
                await check_server.close()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
