"""scan command — analyze recent commits with the worker pool."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import click
from rich.console import Console
from rich.table import Table

from commitscore_cli.render import score_style
from commitscore_cli.runtime import build_pipeline, merged_config
from commitscore_core.errors import TransportFailure
from commitscore_core.worker import CommitScanner, ScanResult

console = Console()


def _print_result(result: ScanResult) -> None:
    if result.already_analyzed:
        console.print(f"[dim]{len(result.already_analyzed)} commit(s) already analyzed.[/dim]")
    if not result.reports and not result.errors:
        console.print("[yellow]No new commits to analyze.[/yellow]")
        return

    table = Table(title="Scan results", show_header=True, header_style="bold cyan")
    table.add_column("Commit", width=9)
    table.add_column("Author", max_width=20)
    table.add_column("Files", justify="right", width=6)
    table.add_column("Not analyzed", justify="right", width=13)
    table.add_column("Score", justify="right", width=7)

    for report in sorted(result.reports, key=lambda r: r.commit.date):
        analysis = report.analysis
        if analysis is None:
            score = "[red]n/a[/red]"
            files = "0"
        else:
            style = score_style(analysis.overall_score)
            score = f"[{style}]{analysis.overall_score:.1f}[/{style}]"
            files = str(len(analysis.file_analyses))
        table.add_row(report.commit.short_id, report.commit.author, files, str(len(report.failures)), score)
    console.print(table)

    for commit_id, reason in result.errors.items():
        console.print(f"[red]{commit_id[:8]}: {reason}[/red]")
    if result.cancelled:
        console.print("[yellow]Scan was cancelled before all commits were analyzed.[/yellow]")


@click.command("scan")
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Overrides config file.")
@click.option("--since-hours", type=float, default=None, help="Look back this many hours. Overrides lookback_hours.")
@click.option("--workers", type=int, default=None, help="Maximum commits analyzed in parallel. Overrides max_workers.")
@click.option("--watch", is_flag=True, help="Keep scanning every scan_interval seconds until interrupted.")
@click.pass_context
def scan_cmd(ctx, repo: str | None, since_hours: float | None, workers: int | None, watch: bool):
    """Analyze every recent commit that has no stored result yet."""
    config = merged_config(ctx, repo=repo, lookback_hours=since_hours, max_workers=workers)
    source, analyzer = build_pipeline(ctx, config)
    scanner = CommitScanner(
        analyzer,
        source,
        max_workers=int(config["max_workers"]),
        scan_interval=float(config["scan_interval"]),
        lookback_hours=float(config["lookback_hours"]),
    )

    cancel = threading.Event()
    if not watch:
        since = datetime.now(timezone.utc) - timedelta(hours=scanner.lookback_hours)
        try:
            result = scanner.scan_once(since=since, cancel=cancel)
        except TransportFailure as e:
            raise click.ClickException(str(e))
        except KeyboardInterrupt:
            cancel.set()
            console.print("[yellow]Interrupted.[/yellow]")
            return
        _print_result(result)
        return

    console.print(
        f"[cyan]Watching {config['repo']} every {int(scanner.scan_interval)}s. Press Ctrl+C to stop.[/cyan]"
    )
    try:
        scanner.run_forever(cancel, on_scan=_print_result)
    except KeyboardInterrupt:
        cancel.set()
        console.print("[yellow]Stopped.[/yellow]")
