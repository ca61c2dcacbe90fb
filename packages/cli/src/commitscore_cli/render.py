"""rich tables for file and commit analyses."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from commitscore_core.models import DIMENSION_LABELS, DIMENSIONS, CommitAnalysis, FileAnalysis

_STATUS_STYLE = {"analyzed": "green", "cached": "cyan", "skipped": "yellow", "failed": "red"}
_PRIORITY_STYLE = {"high": "red", "medium": "yellow", "low": "dim"}


def score_style(score: float) -> str:
    if score >= 7.5:
        return "green"
    if score >= 5.0:
        return "yellow"
    return "red"


def file_table(title: str, analyses: list[FileAnalysis]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("File", max_width=50)
    for dim in DIMENSIONS:
        table.add_column(DIMENSION_LABELS[dim], justify="right")
    table.add_column("Overall", justify="right")

    for fa in analyses:
        style = score_style(fa.overall_score)
        path = escape(fa.file_path) if fa.reliable else f"{escape(fa.file_path)} [dim](unreliable)[/dim]"
        table.add_row(
            path,
            *(str(fa.scores.score(d)) for d in DIMENSIONS),
            f"[{style}]{fa.overall_score:.1f}[/{style}]",
        )
    return table


def outcome_table(title: str, outcomes) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("File", max_width=50)
    table.add_column("Status", width=10)
    table.add_column("Score", justify="right", width=7)
    table.add_column("Details", max_width=60)

    for o in outcomes:
        style = _STATUS_STYLE.get(o.status, "white")
        score = f"{o.analysis.overall_score:.1f}" if o.analysis is not None else "—"
        table.add_row(escape(o.path), f"[{style}]{o.status}[/{style}]", score, escape(o.reason))
    return table


def print_recommendations(console: Console, analysis: CommitAnalysis | FileAnalysis) -> None:
    if not analysis.recommendations:
        return
    console.print("\n[bold]Recommendations[/bold]")
    for rec in analysis.recommendations:
        style = _PRIORITY_STYLE.get(rec.priority, "white")
        where = f"  [dim]{escape(rec.referenced_file)}[/dim]" if rec.referenced_file else ""
        console.print(f"  [{style}]{rec.priority.upper()}[/{style}] [bold]{escape(rec.title)}[/bold]{where}")
        if rec.description:
            console.print(f"    {rec.description}", markup=False)
