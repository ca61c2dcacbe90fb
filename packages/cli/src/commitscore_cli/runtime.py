"""Wiring shared by the commands: credentials, GitHub source and analyzer construction.

Every missing credential is reported as a click.UsageError that names the
environment variable to set.
"""

from __future__ import annotations

import logging
import os
import subprocess

import click

logger = logging.getLogger(__name__)

_API_KEYS = {
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY"),
}


def resolve_github_token() -> str | None:
    """GITHUB_TOKEN if set, else the token of an authenticated `gh` CLI session, else None."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    token = result.stdout.strip() if result.returncode == 0 else ""
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token or None


def merged_config(ctx: click.Context, **overrides) -> dict:
    config = dict(ctx.obj["config"])
    config.update({k: v for k, v in overrides.items() if v is not None})
    return config


def require_repo(config: dict) -> str:
    repo = config.get("repo")
    if not repo:
        raise click.UsageError("No repository given. Pass --repo owner/name or set 'repo' in .commitscore.yml.")
    return repo


def check_provider_credentials(config: dict) -> None:
    provider = config.get("provider", "ollama")
    if provider in _API_KEYS:
        key, env_var = _API_KEYS[provider]
        if not config.get(key):
            raise click.UsageError(f"{env_var} environment variable is not set.")


def build_source(config: dict):
    from commitscore_core.gh.commits import GitHubSource, get_repo

    repo = require_repo(config)
    token = config.get("github_token")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    return GitHubSource(get_repo(repo, token=token))


def build_pipeline(ctx: click.Context, config: dict):
    """Return (source, analyzer) for the current command."""
    from commitscore_core.analyzer import build_analyzer

    check_provider_credentials(config)
    source = build_source(config)
    try:
        analyzer = build_analyzer(config, source, ctx.obj["store"], ctx.obj.get("cache"))
    except (ImportError, ValueError) as e:
        raise click.UsageError(str(e))
    return source, analyzer
