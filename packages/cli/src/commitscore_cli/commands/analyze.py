"""analyze command — score the changed files of one commit."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markdown import Markdown

from commitscore_cli.render import outcome_table, print_recommendations
from commitscore_cli.runtime import build_pipeline, merged_config
from commitscore_core.errors import TransportFailure
from commitscore_core.report import build_summary

console = Console()


@click.command("analyze")
@click.argument("commit_id")
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Overrides config file.")
@click.option(
    "--provider",
    type=click.Choice(["ollama", "openai", "anthropic"]),
    default=None,
    help="Model provider. Overrides config file.",
)
@click.option("--model", default=None, help="Model name, e.g. codellama:7b. Overrides config file.")
@click.pass_context
def analyze_cmd(ctx, commit_id: str, repo: str | None, provider: str | None, model: str | None):
    """Score the clean-code quality of every file changed in COMMIT_ID.

    Files already analyzed for this commit are read back from the store
    without calling the model again.

    \b
    Environment variables:
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
      OLLAMA_HOST          Ollama server URL (default http://localhost:11434)
      OPENAI_API_KEY       Required when using --provider openai
      ANTHROPIC_API_KEY    Required when using --provider anthropic
    """
    config = merged_config(ctx, repo=repo, provider=provider, model=model)
    _, analyzer = build_pipeline(ctx, config)

    try:
        report = analyzer.analyze_commit(commit_id)
    except TransportFailure as e:
        raise click.ClickException(str(e))

    console.print(outcome_table(f"Commit {report.commit.short_id} — {config['repo']}", report.outcomes))
    console.print(Markdown(build_summary(report)))
    if report.analysis is not None:
        print_recommendations(console, report.analysis)
    else:
        ctx.exit(1)
