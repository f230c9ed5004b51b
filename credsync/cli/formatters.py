"""Output formatters for CLI commands."""

from rich.console import Console
from rich.table import Table

from credsync.config.models import DatabaseConfig, StoreBackend, SyncConfig
from credsync.core.executor import SyncReport
from credsync.core.reconciler import CreateAction, SyncPlan, UpdateAction
from credsync.security.validation import sanitize_log_input


class SyncPlanFormatter:
    """Formats sync plans for display."""

    def __init__(self, console: Console):
        self.console = console

    def format_terraform_style(self, plan: SyncPlan, show_unchanged: bool = False) -> None:
        """Display the plan one user per line, Terraform style."""
        self.console.print()
        self.console.print("[bold blue]Sync Plan[/bold blue]")
        self.console.print()

        if not plan.has_changes:
            self.console.print("[yellow]No changes to apply[/yellow]")

        for action in plan.actions:
            name = sanitize_log_input(action.username)
            if isinstance(action, CreateAction):
                self.console.print(f"  [green]+ user: {name}[/green]")
            elif isinstance(action, UpdateAction):
                self.console.print(f"  [yellow]~ user: {name}[/yellow] [dim](password hash)[/dim]")
            elif show_unchanged:
                self.console.print(f"  [blue]= user: {name}[/blue]")

        for username in plan.excluded:
            self.console.print(f"  [dim]- skipped: {sanitize_log_input(username)}[/dim]")

        self.console.print()
        if plan.has_changes:
            self.console.print(
                f"[bold]Plan:[/bold] {len(plan.creates)} to create, "
                f"{len(plan.updates)} to update."
            )
            self.console.print()

    def format_summary_matrix(self, plan: SyncPlan) -> None:
        """Display action counts."""
        summary = plan.get_summary()
        table = Table(title="Operations for mediawiki users")
        table.add_column("Create", style="green")
        table.add_column("Update", style="yellow")
        table.add_column("Unchanged", style="blue")
        table.add_column("Excluded", style="dim")
        table.add_column("Total", style="bold")
        table.add_row(
            str(summary["create"]) if summary["create"] > 0 else "-",
            str(summary["update"]) if summary["update"] > 0 else "-",
            str(summary["noop"]) if summary["noop"] > 0 else "-",
            str(len(plan.excluded)) if plan.excluded else "-",
            str(len(plan.actions)),
        )
        self.console.print(table)


class ReportFormatter:
    """Formats execution reports for display."""

    def __init__(self, console: Console):
        self.console = console

    def format_report_summary(self, report: SyncReport) -> None:
        """Display the counts of a finished (or aborted) run."""
        title = "Dry Run Results" if report.dry_run else "Sync Results"
        table = Table(title=title)
        table.add_column("Result", style="cyan")
        table.add_column("Users", style="bold")
        table.add_row("[green]Created[/green]", str(report.created))
        table.add_row("[yellow]Updated[/yellow]", str(report.updated))
        table.add_row("[blue]Unchanged[/blue]", str(report.unchanged))
        table.add_row("[red]Failed[/red]", str(report.failed))
        self.console.print(table)

        if report.completed_at:
            duration = (report.completed_at - report.started_at).total_seconds()
            self.console.print(f"Duration: {duration:.1f}s")

    def format_errors(self, report: SyncReport) -> None:
        """Display failed actions."""
        failures = [r for r in report.results if not r.success]
        if not failures:
            return
        self.console.print("[red]Errors:[/red]")
        for result in failures:
            self.console.print(
                f"  {result.action} {sanitize_log_input(result.username)}: "
                f"{sanitize_log_input(result.error_message or '')}"
            )


class ConfigFormatter:
    """Formats configuration information for display."""

    def __init__(self, console: Console):
        self.console = console

    @staticmethod
    def _describe_store(config: DatabaseConfig) -> str:
        if config.backend == StoreBackend.SQLITE:
            location = str(config.path)
        else:
            location = f"{config.host}/{config.database}"
        return sanitize_log_input(f"{config.backend.value}: {location}")

    def format_config_summary(self, config: SyncConfig) -> None:
        """Display configuration summary. Passwords are never shown."""
        table = Table(title="Configuration Summary")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Joomla Database", self._describe_store(config.source))
        table.add_row("Joomla Table Prefix", sanitize_log_input(config.source.table_prefix) or "-")
        table.add_row("mediawiki Database", self._describe_store(config.target))
        table.add_row("mediawiki Table Prefix", sanitize_log_input(config.target.table_prefix) or "-")
        table.add_row("mediawiki Directory", sanitize_log_input(str(config.provisioning.mediawiki_path)))
        table.add_row(
            "Excluded Users",
            sanitize_log_input(", ".join(config.exclude_users)) or "-",
        )
        table.add_row("Dry Run", "Yes" if config.dry_run else "No")

        self.console.print(table)
