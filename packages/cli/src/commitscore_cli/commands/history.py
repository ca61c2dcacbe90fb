"""history command — list persisted commit analyses."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from commitscore_cli.render import score_style
from commitscore_core.models import quality_level

console = Console()


@click.command("history")
@click.option("--repo", default=None, help="Only show commits of this repository (owner/name).")
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def history_cmd(ctx, repo: str | None, limit: int):
    """Show past commit analyses, most recent first."""
    store = ctx.obj["store"]
    records = store.list_commit_analyses(repository=repo, limit=limit)
    if not records:
        console.print("[yellow]No analysis records found.[/yellow]")
        return

    title = f"Analysis History — {repo}" if repo else "Analysis History"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Commit", style="bold", width=9)
    table.add_column("Repository", max_width=30)
    table.add_column("Author", max_width=20)
    table.add_column("Files", justify="right", width=6)
    table.add_column("Score", justify="right", width=7)
    table.add_column("Level", width=18)
    table.add_column("Analyzed At", width=20)

    for r in records:
        style = score_style(r.overall_score)
        level = quality_level(r.overall_score) + ("" if r.reliable else " *")
        table.add_row(
            r.commit_id[:8],
            r.repository,
            r.author,
            str(len(r.file_analyses)),
            f"[{style}]{r.overall_score:.1f}[/{style}]",
            level,
            r.analyzed_at[:19].replace("T", " "),
        )

    console.print(table)
    if any(not r.reliable for r in records):
        console.print("[dim]* includes unreliable default scores[/dim]")
