"""Command-line interface for Joomla to MediaWiki credential sync."""

from pathlib import Path
from typing import List, Optional, Tuple

import structlog
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from credsync.cli.factory import ComponentFactory, RepositoryFactory
from credsync.cli.formatters import ConfigFormatter, ReportFormatter, SyncPlanFormatter
from credsync.config.loader import build_config, find_config_file
from credsync.config.models import SyncConfig
from credsync.core.executor import SyncReport
from credsync.core.reconciler import SyncPlan
from credsync.exceptions import (
    ConfigurationError,
    ConsistencyError,
    CredSyncError,
    ProvisioningError,
    StoreConnectionError,
    StoreQueryError,
    UnsupportedHashAlgorithm,
)
from credsync.logging_config import setup_logging
from credsync.security.validation import sanitize_log_input

console = Console()
logger = structlog.get_logger(__name__)

ERROR_LABELS = {
    ConfigurationError: "Configuration error",
    StoreQueryError: "Database error",
    StoreConnectionError: "Connection error",
    UnsupportedHashAlgorithm: "Unsupported password hash",
    ProvisioningError: "Account creation failed",
    ConsistencyError: "Consistency error",
}

app = typer.Typer(
    name="credsync",
    help=(
        "Transfer user accounts and passwords from Joomla CMS to a mediawiki installation.\n\n"
        "This can be used to keep accounts and passwords in sync between Joomla and mediawiki."
    ),
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _error_label(error: CredSyncError) -> str:
    for error_type, label in ERROR_LABELS.items():
        if isinstance(error, error_type):
            return label
    return "Sync failed"


def run_sync(config: SyncConfig, show_progress: bool = True) -> Tuple[SyncPlan, SyncReport]:
    """Read both stores, reconcile and apply the actions.

    Both connections are closed before this returns or raises.

    Args:
        config: Run configuration
        show_progress: Whether to show a spinner while reading the stores

    Returns:
        The plan and the execution report

    Raises:
        CredSyncError: On any fatal configuration, connection, hash,
            provisioning or consistency error
    """
    executor = ComponentFactory.create_sync_executor(config)

    with RepositoryFactory.open_repositories(config) as (source, target):
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            disable=not show_progress,
            transient=True,
        ) as progress:
            progress.add_task("Reading Joomla users...", total=None)
            source_users = source.list_all()
            progress.add_task("Reading mediawiki users...", total=None)
            target_users = target.list_all()

        reconciler = ComponentFactory.create_reconciler(config, target)
        plan = reconciler.plan(source_users, target_users, config.exclusions)
        report = executor.apply(plan.actions, dry_run=config.dry_run, target=target)

    return plan, report


@app.command()
def sync(
    joomla_dir: Optional[Path] = typer.Option(
        None, "--joomla", "-j", help="Joomla base directory (containing configuration.php)"
    ),
    mediawiki_dir: Optional[Path] = typer.Option(
        None, "--mediawiki", "-m", help="mediawiki base directory (containing LocalSettings.php)"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to YAML configuration file"
    ),
    exclude: Optional[List[str]] = typer.Option(
        None,
        "--exclude",
        "-x",
        help="Joomla user name that should not be transferred (repeatable), e.g. admin",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-k", help="Show what would be done without making changes"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log every action before it is applied"
    ),
) -> None:
    """Synchronize Joomla accounts and password hashes into mediawiki."""
    # Lets ${VAR} placeholders in the YAML file come from a local .env
    load_dotenv()

    if config_file is None and (joomla_dir is None or mediawiki_dir is None):
        config_file = find_config_file()

    try:
        config = build_config(
            config_file=config_file,
            joomla_dir=joomla_dir,
            mediawiki_dir=mediawiki_dir,
            exclude_users=exclude or [],
            dry_run=dry_run,
            verbose=verbose,
        )
    except CredSyncError as e:
        console.print(f"[red]{_error_label(e)}: {sanitize_log_input(str(e))}[/red]")
        raise typer.Exit(1)

    setup_logging(config.logging.level.value, config.logging.format.value)

    if verbose:
        ConfigFormatter(console).format_config_summary(config)

    try:
        plan, report = run_sync(config)
    except CredSyncError as e:
        if e.report is not None:
            report_formatter = ReportFormatter(console)
            report_formatter.format_report_summary(e.report)
            report_formatter.format_errors(e.report)
        console.print(f"[red]{_error_label(e)}: {sanitize_log_input(str(e))}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        logger.error("Unexpected error", error=str(e), exc_info=True)
        console.print(f"[red]Sync failed: {sanitize_log_input(str(e))}[/red]")
        raise typer.Exit(1)

    formatter = SyncPlanFormatter(console)
    formatter.format_terraform_style(plan, show_unchanged=verbose)
    formatter.format_summary_matrix(plan)
    ReportFormatter(console).format_report_summary(report)

    if config.dry_run:
        console.print("[blue]Dry run: no changes were made[/blue]")
    else:
        console.print("[green]✓ Sync completed successfully[/green]")


if __name__ == "__main__":
    app()
