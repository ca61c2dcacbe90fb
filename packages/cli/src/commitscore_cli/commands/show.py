"""show command — per-file scores and recommendations of a persisted commit."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.markup import escape

from commitscore_cli.render import file_table, print_recommendations
from commitscore_core.models import quality_level
from commitscore_store.records import commit_analysis_to_dict

console = Console()


@click.command("show")
@click.argument("commit_id")
@click.option("--json", "as_json", is_flag=True, help="Print the stored record as JSON.")
@click.pass_context
def show_cmd(ctx, commit_id: str, as_json: bool):
    """Show the stored analysis of COMMIT_ID."""
    store = ctx.obj["store"]
    analysis = store.get_commit_analysis(commit_id)
    if analysis is None:
        raise click.ClickException(f"No analysis stored for commit {commit_id}. Run `commitscore analyze` first.")

    if as_json:
        click.echo(json.dumps(commit_analysis_to_dict(analysis), indent=2))
        return

    console.print(f"[bold]{analysis.commit_id}[/bold]  {analysis.repository}")
    console.print(f"Author: {analysis.author}   Date: {analysis.commit_date}")
    console.print(
        f"Overall: [bold]{analysis.overall_score:.1f}/10[/bold] ({quality_level(analysis.overall_score)})"
        + ("" if analysis.reliable else "  [yellow]contains unreliable scores[/yellow]")
    )
    console.print(file_table("Files", analysis.file_analyses))

    if analysis.justification:
        console.print("\n[bold]Justification[/bold]")
        console.print(analysis.justification, markup=False)
    print_recommendations(console, analysis)

    if analysis.failures:
        console.print("\n[bold]Not analyzed[/bold]")
        for failure in analysis.failures:
            console.print(f"  [yellow]{escape(failure.file_path)}[/yellow] ({failure.kind}): {escape(failure.reason)}")
