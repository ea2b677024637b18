"""Tests for the CLI entry point."""

import os
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from stockwise.advisor.models import DegradedResponse, ParsedResponse
from stockwise.core.cli import main
from stockwise.core.exceptions import UnavailableError


@pytest.fixture
def data_dir(tmp_config_file):
    path = os.path.join(os.path.dirname(tmp_config_file), "data")
    os.makedirs(path, exist_ok=True)
    with open(os.path.join(path, "warehouse.md"), "w", encoding="utf-8") as f:
        f.write("0050\t10\t元大台灣50\t150\n")
    return path


class TestCliGroup:
    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("advise", "run", "prune", "providers"):
            assert command in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestProvidersCommand:
    def test_lists_inline_providers(self, tmp_config_file):
        runner = CliRunner()
        result = runner.invoke(main, ["--config", tmp_config_file, "providers"])
        assert result.exit_code == 0
        assert "alpha: gpt-4o-mini @ https://alpha.example/v1" in result.output
        assert "k-alpha" not in result.output

    def test_no_providers(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "empty.yaml")
        with open(config_path, "w") as f:
            f.write(f"paths:\n  data_dir: {tmp_dir}/data\n  log_dir: {tmp_dir}/logs\n")
        runner = CliRunner()
        result = runner.invoke(main, ["--config", config_path, "providers"])
        assert result.exit_code == 1
        assert "No usable providers" in result.output


class TestAdviseCommand:
    @pytest.mark.smoke
    def test_advise_records_advice(self, tmp_config_file, data_dir, sample_payload):
        invoke = AsyncMock(return_value=ParsedResponse(payload=sample_payload))
        with patch("stockwise.advisor.gateway.ProviderGateway.invoke", new=invoke):
            result = CliRunner().invoke(main, ["--config", tmp_config_file, "advise"])

        assert result.exit_code == 0, result.output
        assert "[ok] alpha: ok (recorded)" in result.output
        assert "1/1 providers succeeded" in result.output
        with open(os.path.join(data_dir, "advice.md"), encoding="utf-8") as f:
            ledger = f.read()
        assert "- alpha" in ledger
        assert "00878" in ledger

    def test_advise_all_failed_exits_nonzero(self, tmp_config_file, data_dir):
        invoke = AsyncMock(side_effect=UnavailableError("down", provider="alpha"))
        with patch("stockwise.advisor.gateway.ProviderGateway.invoke", new=invoke):
            result = CliRunner().invoke(main, ["--config", tmp_config_file, "advise"])

        assert result.exit_code == 1
        assert "[FAILED]" in result.output
        assert not os.path.exists(os.path.join(data_dir, "advice.md"))

    def test_advise_degraded_is_a_failure(self, tmp_config_file, data_dir):
        invoke = AsyncMock(return_value=DegradedResponse(reason="no JSON object found"))
        with patch("stockwise.advisor.gateway.ProviderGateway.invoke", new=invoke):
            result = CliRunner().invoke(main, ["--config", tmp_config_file, "advise"])

        assert result.exit_code == 1
        assert "MalformedResponseError" in result.output

    def test_advise_unknown_provider(self, tmp_config_file, data_dir):
        result = CliRunner().invoke(main, ["--config", tmp_config_file, "advise", "--provider", "nobody"])
        assert result.exit_code != 0
        assert "Provider not found: nobody" in result.output


class TestPruneCommand:
    def test_prune_removes_old_entries(self, tmp_config_file, data_dir):
        with open(os.path.join(data_dir, "advice.md"), "w", encoding="utf-8") as f:
            f.write("## 2000-01-01 - alpha\n\nold\n\n---\n\n")

        result = CliRunner().invoke(main, ["--config", tmp_config_file, "prune"])
        assert result.exit_code == 0, result.output
        assert "Removed 1 entry older than 30 days." in result.output
        with open(os.path.join(data_dir, "advice.md"), encoding="utf-8") as f:
            assert "2000-01-01" not in f.read()

    def test_prune_without_ledger(self, tmp_config_file, data_dir):
        result = CliRunner().invoke(main, ["--config", tmp_config_file, "prune", "--days", "7"])
        assert result.exit_code == 0
        assert "Removed 0 entries older than 7 days." in result.output


class TestRunCommand:
    def test_run_help(self):
        result = CliRunner().invoke(main, ["run", "--help"])
        assert result.exit_code == 0
        assert "--interval" in result.output

    def test_run_rejects_non_positive_interval(self, tmp_config_file):
        result = CliRunner().invoke(main, ["--config", tmp_config_file, "run", "--interval", "0"])
        assert result.exit_code != 0
        assert "must be positive" in result.output
