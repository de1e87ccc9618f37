"""Tests for the command-line interface."""

import functools

import httpx
import polars as pl
import pytest
from typer.testing import CliRunner

from conftest import TOKEN, echo_handler
from trx_enricher import cli
from trx_enricher.pipeline.enricher import EnrichmentPipeline

runner = CliRunner()


@pytest.fixture
def mocked_api(monkeypatch):
    """Route CLI runs to a mocked Triple API."""
    monkeypatch.setattr(
        cli,
        "EnrichmentPipeline",
        functools.partial(EnrichmentPipeline, transport=httpx.MockTransport(echo_handler)),
    )


class TestEnrichCommand:
    """Test the enrich command."""

    def test_enrich_default_output(self, transactions_csv, mocked_api):
        path = transactions_csv(4)

        result = runner.invoke(cli.app, ["enrich", str(path), "--token", TOKEN, "--yes", "-b", "3"])

        assert result.exit_code == 0, result.output
        output = path.with_name(path.name + ".output")
        df = pl.read_csv(output, infer_schema_length=0)
        assert df["transaction_id"].to_list() == ["T1", "T2", "T3", "T4"]

    def test_enrich_token_from_environment(self, transactions_csv, tmp_path, mocked_api, monkeypatch):
        monkeypatch.setenv("TRIPLE_API_TOKEN", TOKEN)
        out = tmp_path / "enriched.csv"

        result = runner.invoke(cli.app, ["enrich", str(transactions_csv(2)), "-o", str(out), "--yes"])

        assert result.exit_code == 0, result.output
        assert out.exists()

    def test_missing_input_file(self, tmp_path):
        result = runner.invoke(cli.app, ["enrich", str(tmp_path / "nope.csv"), "--token", TOKEN, "--yes"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_input_is_directory(self, tmp_path):
        result = runner.invoke(cli.app, ["enrich", str(tmp_path), "--token", TOKEN, "--yes"])

        assert result.exit_code == 1

    def test_same_input_and_output(self, transactions_csv):
        path = transactions_csv(1)

        result = runner.invoke(cli.app, ["enrich", str(path), "-o", str(path), "--token", TOKEN, "--yes"])

        assert result.exit_code == 1

    def test_missing_token(self, transactions_csv):
        result = runner.invoke(cli.app, ["enrich", str(transactions_csv(1)), "--yes"])

        assert result.exit_code == 1
        assert "token" in result.output

    def test_blank_token(self, transactions_csv):
        result = runner.invoke(cli.app, ["enrich", str(transactions_csv(1)), "--token", "  ", "--yes"])

        assert result.exit_code == 1

    @pytest.mark.parametrize("args", [["-b", "0"], ["-d", "-1"], ["-e", "staging"]])
    def test_invalid_options(self, transactions_csv, args):
        result = runner.invoke(cli.app, ["enrich", str(transactions_csv(1)), "--token", TOKEN, "--yes", *args])

        assert result.exit_code != 0

    def test_declined_confirmation(self, transactions_csv, mocked_api):
        path = transactions_csv(1)

        result = runner.invoke(cli.app, ["enrich", str(path), "--token", TOKEN], input="n\n")

        assert result.exit_code == 0
        assert not path.with_name(path.name + ".output").exists()

    def test_unattended_run_needs_yes(self, transactions_csv, mocked_api):
        """Without -y an unanswered prompt aborts; with -y the run needs no input."""
        path = transactions_csv(2)
        output = path.with_name(path.name + ".output")

        aborted = runner.invoke(cli.app, ["enrich", str(path), "--token", TOKEN], input="")

        assert aborted.exit_code == 1
        assert not output.exists()

        result = runner.invoke(cli.app, ["enrich", str(path), "--token", TOKEN, "-y"], input="")

        assert result.exit_code == 0, result.output
        assert pl.read_csv(output, infer_schema_length=0)["transaction_id"].to_list() == ["T1", "T2"]

    def test_fatal_error_exits_nonzero(self, write_csv):
        path = write_csv("transaction_id,merchant_name\n,Nameless\n")

        result = runner.invoke(cli.app, ["enrich", str(path), "--token", TOKEN, "--yes"])

        assert result.exit_code == 1
        assert path.with_name(path.name + ".output").exists()


class TestInfoCommand:
    """Test the info command."""

    def test_info(self, transactions_csv):
        result = runner.invoke(cli.app, ["info", str(transactions_csv(3))])

        assert result.exit_code == 0
        assert "transaction_id" in result.output

    def test_info_missing_required_column(self, write_csv):
        result = runner.invoke(cli.app, ["info", str(write_csv("merchant_name\nAcme\n"))])

        assert result.exit_code == 1


class TestConfigCommand:
    """Test the config command."""

    def test_token_masked(self, monkeypatch):
        monkeypatch.setenv("TRIPLE_API_TOKEN", "supersecrettoken")

        result = runner.invoke(cli.app, ["config"])

        assert result.exit_code == 0
        assert "supersecrettoken" not in result.output
        assert "oken" in result.output
