"""Command line interface for Commit History."""

import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .api_clients.codecommit_client import CodeCommitClient
from .api_clients.error_handler import ProviderError, ProviderErrorHandler
from .config import Config, ConfigManager
from .history.errors import HistoryError
from .history.models import Repository
from .services.history_service import HistoryService
from .services.report_export import format_commit_log, write_export
from .utils.exception_logger import ExceptionLogger

logger = logging.getLogger(__name__)

console = Console()


def _provider_cause(error: BaseException) -> BaseException:
    """Return the innermost provider error in the cause chain, or ``error``."""
    innermost: BaseException = error
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ProviderError):
            innermost = current
        current = current.__cause__
    return innermost


def _fail(message: str, error: Optional[BaseException] = None) -> NoReturn:
    """Print an error with troubleshooting guidance and exit with status 1."""
    console.print(f"❌ {escape(message)}", style="red")
    if error is not None:
        cause = _provider_cause(error)
        guidance = ProviderErrorHandler().get_guidance(cause)
        console.print(guidance.format_for_console())
    sys.exit(1)


def _load_config(ctx: click.Context) -> Config:
    config_manager: ConfigManager = ctx.obj["config_manager"]
    try:
        return config_manager.get_config()
    except ValueError as e:
        _fail(str(e))


def _create_service(ctx: click.Context, config: Config) -> HistoryService:
    client = CodeCommitClient(config.provider)
    ctx.call_on_close(client.close)
    config_manager: ConfigManager = ctx.obj["config_manager"]
    return HistoryService(
        client,
        config,
        exception_logger=ExceptionLogger.create(config_manager.config_path.parent),
    )


@click.group()
@click.option("--config", "-c", type=click.Path(exists=False), help="Config file path")
@click.option(
    "--verbose", "-v", count=True, help="Verbose output (-v info, -vv debug)"
)
@click.version_option(version=__version__, prog_name="commit-history")
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: int):
    """Reconstruct linear branch histories of hosted repositories.

    \b
    CONFIGURATION:
      Config file: .commit-history/config.json (searched in parent directories)
      Credentials: standard AWS chain (environment, ~/.aws, instance role)

    \b
    EXAMPLES:
      commit-history init --region us-east-1 --profile dev
      commit-history repos
      commit-history branches my-repo --resolve-heads
      commit-history log my-repo main
      commit-history scan --output history.json --workers 4
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    logging.basicConfig(
        level=logging.WARNING, format="%(levelname)s:%(name)s:%(message)s"
    )
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.getLogger().setLevel(level)
    # Request lines from the HTTP stack only at debug level
    for noisy in ("httpx", "botocore"):
        logging.getLogger(noisy).setLevel(
            logging.NOTSET if level == logging.DEBUG else logging.WARNING
        )

    if config:
        ctx.obj["config_manager"] = ConfigManager(Path(config))
    else:
        ctx.obj["config_manager"] = ConfigManager.create_with_backtrack()


@cli.command()
@click.option("--region", help="AWS region (default: AWS_REGION or profile region)")
@click.option("--profile", help="Named AWS profile for credentials")
@click.option("--endpoint", help="Endpoint URL override")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
@click.pass_context
def init(
    ctx: click.Context,
    region: Optional[str],
    profile: Optional[str],
    endpoint: Optional[str],
    force: bool,
):
    """Create a configuration file with default settings."""
    config_manager: ConfigManager = ctx.obj["config_manager"]
    if config_manager.config_path.exists() and not force:
        _fail(
            f"Configuration already exists at {config_manager.config_path} "
            "(use --force to overwrite)"
        )

    overrides = {
        key: value
        for key, value in (
            ("region", region),
            ("profile", profile),
            ("endpoint", endpoint),
        )
        if value
    }
    try:
        config_manager.create_default_config(**overrides)
    except ValueError as e:
        _fail(f"Invalid configuration: {e}")
    console.print(
        f"✅ Configuration written to {config_manager.config_path}", style="green"
    )


@cli.command()
@click.pass_context
def repos(ctx: click.Context):
    """List repositories visible to the configured credentials."""
    service = _create_service(ctx, _load_config(ctx))
    try:
        repositories = service.repositories.list_repositories()
    except HistoryError as e:
        _fail(str(e), e)

    if not repositories:
        console.print("No repositories found.", style="yellow")
        return

    table = Table(title=f"Repositories ({len(repositories)})")
    table.add_column("Name", style="cyan")
    table.add_column("ID", style="dim")
    for repository in repositories:
        table.add_row(escape(repository.name), escape(repository.id))
    console.print(table)


@cli.command()
@click.argument("repository")
@click.option(
    "--resolve-heads", is_flag=True, help="Resolve each branch to its head commit"
)
@click.pass_context
def branches(ctx: click.Context, repository: str, resolve_heads: bool):
    """List branches of REPOSITORY."""
    service = _create_service(ctx, _load_config(ctx))
    # Only the name is needed to address the provider.
    target = Repository(name=repository, id="")

    table = Table(title=f"Branches of {escape(repository)}")
    table.add_column("Branch", style="cyan")
    table.add_column("Head commit", style="dim")

    listing = None
    try:
        if resolve_heads:
            listing = service.branches.list_resolved_branches(target)
        else:
            for branch in service.branches.list_branches(target):
                table.add_row(escape(branch.name), "")
    except HistoryError as e:
        _fail(str(e), e)

    if listing is not None:
        for branch in listing.branches:
            table.add_row(
                escape(branch.name), branch.head_commit_id or "(no commits)"
            )
    console.print(table)

    if listing is not None and listing.failures:
        for failure in listing.failures:
            console.print(
                f"⚠️  {escape(failure.branch or '')}: {escape(failure.message)}",
                style="yellow",
            )
        sys.exit(1)


@cli.command()
@click.argument("repository")
@click.argument("branch")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text)",
)
@click.pass_context
def log(ctx: click.Context, repository: str, branch: str, output_format: str):
    """Print the first-parent history of BRANCH in REPOSITORY, newest first."""
    service = _create_service(ctx, _load_config(ctx))
    try:
        result = service.get_commits_on_branch(repository, branch)
    except HistoryError as e:
        _fail(str(e), e)

    if output_format == "json":
        click.echo(result.model_dump_json(indent=2))
        return

    if result.is_empty:
        console.print(f"Branch {escape(branch)} has no commits.", style="yellow")
        return
    console.print(format_commit_log(result), markup=False, highlight=False)


@cli.command()
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False), help="Write JSON report to file"
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    help="Branches traversed concurrently per repository",
)
@click.pass_context
def scan(ctx: click.Context, output: Optional[str], workers: Optional[int]):
    """Traverse every branch of every repository."""
    config = _load_config(ctx)
    if workers:
        config = config.model_copy(
            update={
                "traversal": config.traversal.model_copy(
                    update={"max_workers": workers}
                )
            }
        )
    service = _create_service(ctx, config)

    try:
        reports = service.enumerate_all()
    except HistoryError as e:
        _fail(str(e), e)

    table = Table(title="Branch histories")
    table.add_column("Repository", style="cyan")
    table.add_column("Branch")
    table.add_column("Commits", justify="right")
    table.add_column("Status")

    failures = 0
    for report in reports:
        name = escape(report.repository.name)
        if report.error:
            table.add_row(name, "-", "-", f"[red]{escape(report.error.message)}[/red]")
        for outcome in report.outcomes:
            if outcome.result is not None:
                table.add_row(
                    name,
                    escape(outcome.branch),
                    str(len(outcome.result.records)),
                    "[green]ok[/green]",
                )
            elif outcome.error is not None:
                table.add_row(
                    name,
                    escape(outcome.branch),
                    "-",
                    f"[red]{escape(outcome.error.message)}[/red]",
                )
        failures += report.failed_count
    console.print(table)

    if output:
        output_path = write_export(reports, Path(output))
        console.print(f"✅ Report written to {output_path}", style="green")

    if failures:
        console.print(f"⚠️  {failures} failures", style="yellow")
        exception_logger = service.exception_logger
        if exception_logger and exception_logger.log_file_path.exists():
            console.print(f"Details: {exception_logger.log_file_path}", style="dim")
        sys.exit(1)


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
