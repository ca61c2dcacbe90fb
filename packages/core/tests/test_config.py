"""Tests for configuration loading."""

import pytest

from commitscore_core.config import DEFAULT_CONFIG, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GITHUB_TOKEN", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "OLLAMA_HOST"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["provider"] == "ollama"
    assert config["model"] is None
    assert config["ollama_url"] == "http://localhost:11434"
    assert config["max_segment_chars"] == 2500
    assert config["max_repair_attempts"] == 3
    assert config["max_workers"] == 2
    assert config["store"] == "sqlite"
    assert config["exclude"] == []


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".commitscore.yml"
    cfg.write_text("provider: openai\nmax_segment_chars: 4000\nrepo: acme/shop\n")
    config = load_config(config_path=str(cfg))
    assert config["provider"] == "openai"
    assert config["max_segment_chars"] == 4000
    assert config["repo"] == "acme/shop"
    assert config["max_workers"] == 2


def test_exclude_patterns_loaded(tmp_path):
    cfg = tmp_path / ".commitscore.yml"
    cfg.write_text("exclude:\n  - migrations/\n  - '*.lock'\n")
    config = load_config(config_path=str(cfg))
    assert config["exclude"] == ["migrations/", "*.lock"]


def test_empty_config_file_keeps_defaults(tmp_path):
    cfg = tmp_path / ".commitscore.yml"
    cfg.write_text("")
    assert load_config(config_path=str(cfg))["provider"] == "ollama"


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".commitscore.yml"
    cfg.write_text("provider: openai\n")
    config = load_config(config_path=str(cfg), cli_overrides={"provider": "anthropic"})
    assert config["provider"] == "anthropic"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".commitscore.yml"
    cfg.write_text("provider: openai\n")
    config = load_config(config_path=str(cfg), cli_overrides={"provider": None})
    assert config["provider"] == "openai"


def test_credentials_come_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    config = load_config(config_path=str(tmp_path / "none.yml"))
    assert config["github_token"] == "ghp_test"
    assert config["openai_api_key"] == "sk-test"
    assert config["anthropic_api_key"] is None


def test_ollama_host_overrides_url(tmp_path, monkeypatch):
    monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434")
    cfg = tmp_path / ".commitscore.yml"
    cfg.write_text("ollama_url: http://other:11434\n")
    assert load_config(config_path=str(cfg))["ollama_url"] == "http://gpu-box:11434"


def test_defaults_are_not_mutated(tmp_path):
    config = load_config(config_path=str(tmp_path / "none.yml"))
    config["exclude"].append("vendor/")
    assert DEFAULT_CONFIG["exclude"] == []
