"""
Command-line interface for the OFX to YNAB ledger sync tool.
"""

from pathlib import Path
from typing import Optional
import logging
import sys

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .client.ynab_client import YNABClient
from .config import SyncConfig, generate_default_config, load_config
from .history_sync import register_remote_budgets, sync_account_history
from .importer import StatementImporter
from .models.transaction import ImportReport
from .parsers.ofx_parser import OFXParser
from .reports.excel_generator import ImportReportGenerator
from .storage.ledger_store import LedgerStore
from .utils.exceptions import LedgerSyncError
from .utils.logging_config import setup_logging

console = Console()

config_option = click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
verbose_option = click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")


@click.group()
@click.version_option(version=__version__)
def main():
    """Import OFX bank statements into YNAB without creating duplicates."""
    load_dotenv()


@main.command()
@click.argument("ofx_file", type=click.Path(exists=True, path_type=Path))
@config_option
def parse(ofx_file: Path, config: Optional[Path]):
    """
    Parse an OFX file and display its transactions.

    OFX_FILE: Path to the OFX/QFX statement export
    """
    sync_config = load_config(config)
    parser = OFXParser(sync_config)

    try:
        transactions = parser.parse_file(ofx_file)
    except LedgerSyncError as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"OFX Transactions: {ofx_file.name}")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Amount", justify="right")
    table.add_column("Payee")
    table.add_column("Memo")

    for txn in transactions[:20]:  # Show first 20
        memo = txn.memo or "-"
        table.add_row(
            str(txn.posted_date),
            txn.kind.value,
            f"{txn.amount:,.2f}",
            txn.payee_name or "-",
            memo[:40] + "..." if len(memo) > 40 else memo,
        )

    console.print(table)

    if len(transactions) > 20:
        console.print(f"\n... and {len(transactions) - 20} more transactions")

    console.print(f"\nTotal transactions: {len(transactions)}")


@main.command("import-file")
@click.argument("ofx_files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("-a", "--account", help="Destination as BUDGET/ACCOUNT (default: from file location)")
@click.option("-r", "--report", type=click.Path(path_type=Path), help="Write an Excel report")
@click.option("--dry-run", is_flag=True, help="Show what would be submitted without contacting YNAB")
@config_option
@verbose_option
def import_file(
    ofx_files: tuple[Path, ...],
    account: Optional[str],
    report: Optional[Path],
    dry_run: bool,
    config: Optional[Path],
    verbose: bool,
):
    """
    Import OFX statement files into their YNAB accounts.

    OFX_FILES: One or more OFX/QFX statement exports
    """
    sync_config = _setup(config, verbose)

    try:
        store = LedgerStore(sync_config.storage.database_url)
        client = YNABClient(sync_config.ledger)
        importer = StatementImporter(sync_config, client, store)

        if dry_run:
            for path in ofx_files:
                batch = importer.plan_file(path, account)
                _display_plan(path, batch)
            console.print("\n[yellow]Dry run - nothing submitted[/yellow]")
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task(f"Importing {len(ofx_files)} file(s)...", total=None)
            reports = importer.import_files(ofx_files, account)
            progress.update(task, completed=True)

        _display_reports(reports)

        if report is not None:
            report_path = ImportReportGenerator(sync_config).generate_report(reports, report)
            console.print(f"\n[green]Report generated: {report_path}[/green]")

        if not all(r.succeeded for r in reports):
            sys.exit(1)

    except LedgerSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@config_option
@verbose_option
def setup(config: Optional[Path], verbose: bool):
    """Register the budgets and accounts of the YNAB user locally."""
    sync_config = _setup(config, verbose)

    try:
        store = LedgerStore(sync_config.storage.database_url)
        accounts = register_remote_budgets(YNABClient(sync_config.ledger), store)
    except LedgerSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    table = Table(title="Registered Accounts")
    table.add_column("Budget", style="cyan")
    table.add_column("Account")
    table.add_column("Account ID")
    for acc in accounts:
        table.add_row(acc.budget_name, acc.name, acc.account_id)
    console.print(table)


@main.command("sync-history")
@config_option
@verbose_option
def sync_history(config: Optional[Path], verbose: bool):
    """Record transactions already held by YNAB so they are never resubmitted."""
    sync_config = _setup(config, verbose)

    try:
        store = LedgerStore(sync_config.storage.database_url)
        counts = sync_account_history(YNABClient(sync_config.ledger), store)
    except LedgerSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    table = Table(title="History Sync")
    table.add_column("Account", style="cyan")
    table.add_column("New Records", justify="right")
    for label, count in counts.items():
        table.add_row(label, str(count))
    console.print(table)


@main.command()
@click.option("-n", "--limit", type=int, default=20, show_default=True)
@config_option
def history(limit: int, config: Optional[Path]):
    """Show the most recent imports."""
    sync_config = load_config(config)

    try:
        entries = LedgerStore(sync_config.storage.database_url).import_history(limit)
    except LedgerSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    table = Table(title="Import History")
    table.add_column("Time")
    table.add_column("Account", style="cyan")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Created", justify="right")
    for entry in entries:
        status = entry.status if entry.status == "done" else f"[red]{entry.status}[/red]"
        table.add_row(
            entry.inserted_at.strftime("%Y-%m-%d %H:%M:%S"),
            f"{entry.budget_name}/{entry.account_name}",
            entry.file_name or "-",
            status,
            str(len(entry.import_ids)),
        )
    console.print(table)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _setup(config: Optional[Path], verbose: bool) -> SyncConfig:
    """Load configuration and configure logging, exiting on bad configuration."""
    try:
        sync_config = load_config(config)
    except LedgerSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    level = logging.DEBUG if verbose else sync_config.logging.level
    setup_logging(level, sync_config.logging.file, sync_config.logging.format)
    return sync_config


def _display_plan(path: Path, batch) -> None:
    """Display the transactions a dry run would submit."""
    table = Table(title=f"{path.name} -> {batch.account.label}")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Payee")
    table.add_column("Import ID", style="cyan")

    for entry in batch.pending_entries():
        table.add_row(
            str(entry.key.date),
            f"{entry.raw.amount:,.2f}",
            entry.raw.payee_name or "-",
            entry.import_id,
        )

    console.print(table)
    console.print(
        f"{len(batch.pending)} to submit, {len(batch.skipped)} already imported"
    )


def _display_reports(reports: list[ImportReport]) -> None:
    """Display import summary in console."""
    table = Table(title="Import Summary")
    table.add_column("File", style="cyan")
    table.add_column("Account")
    table.add_column("Parsed", justify="right")
    table.add_column("Created", justify="right")
    table.add_column("Already Imported", justify="right")
    table.add_column("Rounds", justify="right")
    table.add_column("Status")

    for report in reports:
        result = report.result
        table.add_row(
            report.file_path.name,
            report.account.label if report.account else "-",
            str(report.parsed_count),
            str(len(report.committed)),
            str(len(result.skipped)) if result else "-",
            str(result.rounds) if result else "-",
            "[green]OK[/green]" if report.succeeded else f"[red]{report.error}[/red]",
        )

    console.print(table)

    for report in reports:
        for entry in report.unresolved:
            console.print(
                f"[red]Unresolved: {entry.import_id} {entry.raw.amount} "
                f"{entry.raw.payee_name or ''}[/red]"
            )


if __name__ == "__main__":
    main()
