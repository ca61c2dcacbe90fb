"""models command — probe the configured provider."""

from __future__ import annotations

import click
from rich.console import Console

from commitscore_cli.runtime import check_provider_credentials, merged_config

console = Console()


@click.command("models")
@click.option(
    "--provider",
    type=click.Choice(["ollama", "openai", "anthropic"]),
    default=None,
    help="Model provider. Overrides config file.",
)
@click.pass_context
def models_cmd(ctx, provider: str | None):
    """Check that the model endpoint is reachable and list its models."""
    from commitscore_core.analyzer import create_client

    config = merged_config(ctx, provider=provider)
    check_provider_credentials(config)
    try:
        client = create_client(config)
    except (ImportError, ValueError) as e:
        raise click.UsageError(str(e))

    if not client.is_available():
        raise click.ClickException(f"The {config['provider']} endpoint is not reachable.")

    models = client.list_models()
    configured = client.model
    console.print(f"[green]{config['provider']} is available.[/green] Configured model: [bold]{configured}[/bold]")
    for name in sorted(models):
        marker = " [green](configured)[/green]" if name == configured else ""
        console.print(f"  {name}{marker}")
    if not client.is_available(configured):
        console.print(f"[yellow]The configured model {configured!r} is not served by this endpoint.[/yellow]")
