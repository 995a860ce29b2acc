"""Unit tests for CLI interface."""

from unittest.mock import AsyncMock

import pytest
import typer
from typer.testing import CliRunner

from polarity_rest.cli import app
from polarity_rest.models.tags import BulkUploadResult, RowRejection
from polarity_rest.utils.exceptions import (
    PartialUploadError,
    ResourceNotFoundError,
    TagUploadError,
    TagValidationError,
)

runner = CliRunner()


@pytest.fixture(autouse=True)
def polarity_env(monkeypatch):
    monkeypatch.setenv("POLARITY_HOST", "https://polarity.example.com")
    monkeypatch.setenv("POLARITY_USERNAME", "analyst")
    monkeypatch.setenv("POLARITY_PASSWORD", "secret")


@pytest.fixture(autouse=True)
def no_logging_setup(mocker):
    return mocker.patch("polarity_rest.cli.configure_logging")


@pytest.fixture
def polarity(mocker):
    """The connected client handed to each command."""
    client = AsyncMock()
    client_class = mocker.patch("polarity_rest.cli.PolarityClient")
    client_class.return_value.__aenter__.return_value = client
    client.client_class = client_class
    return client


@pytest.fixture
def tags_csv(tmp_path):
    csv_file = tmp_path / "tags.csv"
    csv_file.write_text("8.8.8.8,dns,google\nexample.com,phishing\n")
    return csv_file


def test_app_structure():
    assert isinstance(app, typer.Typer)


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "0.3.0" in result.output


class TestApplyTags:
    def test_by_channel_id(self, polarity, tags_csv):
        polarity.apply_tags.return_value = BulkUploadResult(
            last_response={}, batches_submitted=1, pairs_submitted=3
        )

        result = runner.invoke(app, ["apply-tags", str(tags_csv), "--channel-id", "12"])

        assert result.exit_code == 0, result.output
        polarity.apply_tags.assert_awaited_once_with(
            [["8.8.8.8", "dns", "google"], ["example.com", "phishing"]],
            12,
            stop_on_invalid_data=None,
        )
        assert "Tag Upload Summary" in result.output

    def test_by_channel_name(self, polarity, tags_csv):
        polarity.get_channel_id.return_value = "3"
        polarity.apply_tags.return_value = BulkUploadResult()

        result = runner.invoke(
            app, ["apply-tags", str(tags_csv), "--channel", "intel", "--stop-on-invalid-data"]
        )

        assert result.exit_code == 0, result.output
        polarity.get_channel_id.assert_awaited_once_with("intel")
        assert polarity.apply_tags.await_args.args[1] == 3
        assert polarity.apply_tags.await_args.kwargs["stop_on_invalid_data"] is True

    def test_rejections_listed(self, polarity, tags_csv):
        polarity.apply_tags.return_value = BulkUploadResult(
            rejected=[RowRejection(1, 0, "entity", "", "The entity '' is too short")]
        )

        result = runner.invoke(app, ["apply-tags", str(tags_csv), "--channel-id", "1"])

        assert "Row 1 column 0" in result.output

    @pytest.mark.parametrize("options", [[], ["--channel", "a", "--channel-id", "1"]])
    def test_exactly_one_channel_option(self, polarity, tags_csv, options):
        result = runner.invoke(app, ["apply-tags", str(tags_csv), *options])

        assert result.exit_code == 1
        polarity.apply_tags.assert_not_awaited()

    def test_partial_upload_failure(self, polarity, tags_csv):
        polarity.apply_tags.side_effect = PartialUploadError(
            "Could not apply tags",
            status=500,
            body=None,
            failed_pairs=[],
            batch_index=1,
            batches_submitted=1,
            pairs_submitted=2000,
        )

        result = runner.invoke(app, ["apply-tags", str(tags_csv), "--channel-id", "1"])

        assert result.exit_code == 1
        assert "Could not apply tags" in result.output
        assert "partially" in result.output

    def test_stop_on_invalid_data_reports_stored_batches(self, polarity, tags_csv):
        error = TagValidationError(
            "The entity '' is too short", value="", field="entity", row_index=2001, column_index=0
        )
        error.result = BulkUploadResult(last_response={}, batches_submitted=1, pairs_submitted=2000)
        polarity.apply_tags.side_effect = error

        result = runner.invoke(
            app, ["apply-tags", str(tags_csv), "--channel-id", "1", "--stop-on-invalid-data"]
        )

        assert result.exit_code == 1
        assert "too short" in result.output
        assert "partially applied: 2000 pairs stored in 1 batches before row 2001" in result.output

    def test_transport_failure_reports_nothing_stored(self, polarity, tags_csv):
        polarity.apply_tags.side_effect = TagUploadError(
            "Could not apply tags: HTTP Request Error: refused",
            status=None,
            body=None,
            failed_pairs=[],
            batch_index=0,
        )

        result = runner.invoke(app, ["apply-tags", str(tags_csv), "--channel-id", "1"])

        assert result.exit_code == 1
        assert "HTTP Request Error: refused" in result.output
        assert "not applied: 0 pairs stored" in result.output

    def test_unknown_channel(self, polarity, tags_csv):
        polarity.get_channel_id.side_effect = ResourceNotFoundError("channel", "nope")

        result = runner.invoke(app, ["apply-tags", str(tags_csv), "--channel", "nope"])

        assert result.exit_code == 1
        assert "Unable to find channel named nope" in result.output


class TestChannels:
    def test_clear_channel_waits_by_default(self, polarity):
        polarity.clear_channel_by_name.return_value = {"meta": {}, "clearComplete": True}

        result = runner.invoke(app, ["clear-channel", "intel"])

        assert result.exit_code == 0, result.output
        polarity.clear_channel_by_name.assert_awaited_once_with("intel", wait_until_complete=True)
        assert "cleared" in result.output

    def test_clear_channel_no_wait(self, polarity):
        polarity.clear_channel_by_name.return_value = {
            "meta": {"timeout": 30000},
            "clearComplete": False,
        }

        result = runner.invoke(app, ["clear-channel", "intel", "--no-wait"])

        assert result.exit_code == 0, result.output
        polarity.clear_channel_by_name.assert_awaited_once_with("intel", wait_until_complete=False)
        assert "still being cleared" in result.output

    def test_create_channel(self, polarity):
        polarity.create_channel.return_value = {"data": {"id": "9"}}

        result = runner.invoke(app, ["create-channel", "new", "--description", "desc"])

        assert result.exit_code == 0, result.output
        polarity.create_channel.assert_awaited_once_with("new", "desc")


class TestIntegrationsAndUsers:
    def test_users(self, polarity):
        polarity.get_users.return_value = {
            "data": [{"id": "1", "attributes": {"username": "admin", "email": "a@b.c"}}]
        }

        result = runner.invoke(app, ["users"])

        assert result.exit_code == 0, result.output
        assert "admin" in result.output

    def test_integrations(self, polarity):
        polarity.get_integrations.return_value = {
            "data": [{"id": "arin", "attributes": {"name": "ARIN", "status": "running"}}]
        }

        result = runner.invoke(app, ["integrations"])

        assert result.exit_code == 0, result.output
        assert "ARIN" in result.output

    def test_restart_integration_by_directory(self, polarity):
        result = runner.invoke(app, ["restart-integration", "polarity-integration-arin"])

        assert result.exit_code == 0, result.output
        polarity.restart_integration.assert_awaited_once_with("polarity_integration_arin")

    def test_update_integration_option(self, polarity):
        result = runner.invoke(
            app,
            ["update-integration-option", "arin", "apiKey", "--value", "k", "--admin-only"],
        )

        assert result.exit_code == 0, result.output
        polarity.update_integration_option.assert_awaited_once_with(
            "arin", "apiKey", {"value": "k", "admin-only": True}
        )

    def test_search_integrations(self, polarity):
        polarity.search_integrations.return_value = [
            {"integration_id": "a", "result": {"data": []}},
            {"integration_id": "b", "error": "Failed to search integration b"},
        ]

        result = runner.invoke(
            app, ["search-integrations", "8.8.8.8", "-i", "a", "-i", "b", "--ignore-errors"]
        )

        assert result.exit_code == 0, result.output
        polarity.search_integrations.assert_awaited_once_with(
            ["a", "b"], "8.8.8.8", ignore_errors=True
        )
        assert "Failed to search integration b" in result.output

    def test_search_text_too_long(self, polarity):
        polarity.search_integrations.side_effect = ValueError(
            "Search text must be 5000 characters or less, got 5001"
        )

        result = runner.invoke(app, ["search-integrations", "x", "-i", "a"])

        assert result.exit_code == 1
        assert "5000 characters or less" in result.output


class TestConfiguration:
    def test_missing_connection(self, monkeypatch, polarity):
        monkeypatch.delenv("POLARITY_HOST")

        result = runner.invoke(app, ["users"])

        assert result.exit_code == 1
        assert "No Polarity connection configured" in result.output
        polarity.client_class.assert_not_called()

    def test_missing_config_file(self, tmp_path, polarity):
        result = runner.invoke(app, ["--config", str(tmp_path / "nope.yaml"), "users"])

        assert result.exit_code == 1
        assert "Could not load configuration" in result.output

    def test_config_file_missing_connection_key(self, tmp_path, polarity):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("connection:\n  host: https://p.local\n  username: u\n")

        result = runner.invoke(app, ["-c", str(config_file), "users"])

        assert result.exit_code == 1
        assert "Could not load configuration" in result.output
        polarity.client_class.assert_not_called()

    def test_config_file_and_log_level(self, tmp_path, polarity, no_logging_setup):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "connection:\n  host: https://p.local\n  username: u\n  password: p\n"
            "channels:\n  clear_poll_interval_ms: 5000\n"
        )
        polarity.get_users.return_value = {"data": []}

        result = runner.invoke(
            app, ["-c", str(config_file), "--log-level", "DEBUG", "--json-logs", "users"]
        )

        assert result.exit_code == 0, result.output
        no_logging_setup.assert_called_once_with(level="DEBUG", json_logs=True, log_file=None)
        _, kwargs = polarity.client_class.call_args
        assert kwargs["channels"].clear_poll_interval_ms == 5000
        assert polarity.client_class.call_args.args[0].host == "https://p.local"
