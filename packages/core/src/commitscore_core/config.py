import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "provider": "ollama",  # ollama | openai | anthropic
    "model": None,  # None = the provider's default model
    "ollama_url": "http://localhost:11434",
    "temperature": 0.1,
    "top_p": 0.9,
    "top_k": 40,
    "max_tokens": 2048,
    "request_timeout": 600,
    "max_segment_chars": 2500,
    "max_prompt_chars": 12000,
    "max_file_chars": 100000,
    "max_repair_attempts": 3,
    "model_retries": 2,
    "max_files_per_commit": 20,
    "scan_interval": 3600,
    "lookback_hours": 24,
    "max_workers": 2,
    "cache_ttl": 3600,
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/", "*.min.js")
    "store": "sqlite",  # sqlite | memory
    "store_path": ".commitscore.db",
    "repo": None,  # owner/name
}


def load_config(config_path: str = ".commitscore.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .commitscore.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "exclude": list(DEFAULT_CONFIG["exclude"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    if os.environ.get("OLLAMA_HOST"):
        config["ollama_url"] = os.environ["OLLAMA_HOST"]

    return config
