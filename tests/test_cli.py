"""Tests for the MINDSCAN command-line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from mindscan import cli as cli_module
from mindscan.cli import cli
from mindscan.llm.models import BackendRequest
from mindscan.orchestration.service import AnalysisService

TEXT = (
    "Before deciding anything I list the options, estimate what each one costs, "
    "and write down what would have to be true for each to be the right choice."
)


def _fake_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_MODE", "fake")
    for var in ["DATABASE_URL", "MINDSCAN_BACKENDS", "MINDSCAN_MAX_ATTEMPTS"]:
        monkeypatch.delenv(var, raising=False)


def test_analyze_prints_alias_map(monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_env(monkeypatch)
    result = CliRunner().invoke(cli, ["analyze", "--backends", "A,C"], input=TEXT)
    assert result.exit_code == 0, result.output
    body = json.loads(result.output)
    assert set(body) == {"provider-1", "provider-3", "degraded", "updatedCredits", "isPreview", "originalText"}


def test_analyze_reads_file_and_streams(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_env(monkeypatch)
    source = tmp_path / "essay.txt"
    source.write_text(TEXT, encoding="utf-8")
    result = CliRunner().invoke(cli, ["analyze", str(source), "--stream", "--kind", "psychological"])
    assert result.exit_code == 0, result.output
    frames = [json.loads(c[len("data: "):]) for c in result.output.split("\n\n") if c]
    assert len(frames) == 5
    assert frames[-1]["status"] == "done"
    assert {f["provider"] for f in frames[:-1]} == {"provider-1", "provider-2", "provider-3", "provider-4"}


def test_analyze_rejects_short_text(monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_env(monkeypatch)
    result = CliRunner().invoke(cli, ["analyze"], input="too short")
    assert result.exit_code == 1
    assert "too short" in result.output


def test_analyze_rejects_unknown_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_env(monkeypatch)
    result = CliRunner().invoke(cli, ["analyze", "--backends", "A,Z"], input=TEXT)
    assert result.exit_code == 2
    assert "Unknown backends" in result.output


def test_analyze_total_failure_exits_2(monkeypatch: pytest.MonkeyPatch) -> None:
    class Failing:
        def analyze(self, request: BackendRequest) -> str:
            raise ConnectionError("refused")

    monkeypatch.setattr(
        cli_module,
        "_build_service",
        lambda *args: AnalysisService({"A": Failing(), "B": Failing()}),
    )
    result = CliRunner().invoke(cli, ["analyze"], input=TEXT)
    assert result.exit_code == 2
    assert "All analysis providers failed" in result.output
    assert "provider-2: refused" in result.output


def test_config_check_fake_succeeds() -> None:
    result = CliRunner().invoke(cli, ["config-check", "--mode", "fake"])
    assert result.exit_code == 0, result.output
    assert "OK" in result.output


def test_config_check_live_reports_missing_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MINDSCAN_BACKENDS", raising=False)
    for var in ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "DEEPSEEK_API_KEY", "PERPLEXITY_API_KEY"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("ANTHROPIC_API_KEY", "ak-test")
    result = CliRunner().invoke(cli, ["config-check", "--mode", "live"])
    assert result.exit_code == 2
    assert "DEEPSEEK_API_KEY, OPENAI_API_KEY, PERPLEXITY_API_KEY" in result.output


def test_config_check_live_only_checks_selected_backends(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "DEEPSEEK_API_KEY", "PERPLEXITY_API_KEY"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    result = CliRunner().invoke(cli, ["config-check", "--mode", "live", "--backends", "A"])
    assert result.exit_code == 0, result.output
    assert "OK (live)" in result.output


def test_analyze_account_without_ledger_is_refused(monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_env(monkeypatch)
    result = CliRunner().invoke(cli, ["analyze", "--account", "alice"], input=TEXT)
    assert result.exit_code == 1
    assert "set DATABASE_URL" in result.output


def test_analyze_single_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_env(monkeypatch)
    result = CliRunner().invoke(cli, ["analyze", "--provider", "provider-4"], input=TEXT)
    assert result.exit_code == 0, result.output
    body = json.loads(result.output)
    assert "intelligenceScore" in body["provider-4"]
    assert "provider-1" not in body


def test_analyze_unknown_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_env(monkeypatch)
    result = CliRunner().invoke(cli, ["analyze", "--provider", "provider-9"], input=TEXT)
    assert result.exit_code == 2
    assert "Unknown provider 'provider-9'" in result.output
