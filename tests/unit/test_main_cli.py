"""Tests for jtimer/main.py and jtimer/cli - the command line interface.

The Jira client and the token store are patched out; these tests check
wiring, output and exit codes only.
"""

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from jtimer.exceptions import (
    BackendNotAvailableError,
    CredentialNotFoundError,
    InvalidQueryError,
    ServerError,
    UnauthorizedError,
)
from jtimer.main import cli
from jtimer.models.domain import IssueComment, TimeLogEntry

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep structlog from binding to the runner's temporary streams."""
    with patch("jtimer.main.configure_logging"):
        yield


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text("jira:\n  domain: acme\n  email: dev@example.com\n")
    return path


@pytest.fixture
def mock_tokens():
    with patch("jtimer.main.TokenStore") as store_cls:
        store = store_cls.return_value
        store.get_secret.return_value = "test-api-token"
        store.save_secret.return_value = "keyring"
        yield store


@pytest.fixture
def mock_client_cls(sample_user, sample_issue, mock_tokens):
    with patch("jtimer.main.JiraRestClient") as client_cls:
        client = client_cls.return_value
        client.__aenter__.return_value = client
        client.site_url = "https://acme.atlassian.net"
        client.get_current_user = AsyncMock(return_value=sample_user)
        client.validate_connection = AsyncMock(return_value=sample_user)
        client.search_issues = AsyncMock(return_value=[sample_issue])
        client.log_work = AsyncMock()
        client.post_comment = AsyncMock()
        client.fetch_recent_worklogs = AsyncMock(return_value=[])
        client.fetch_recent_updates = AsyncMock(return_value=[])
        yield client_cls


@pytest.fixture
def mock_client(mock_client_cls) -> MagicMock:
    return mock_client_cls.return_value


def invoke(runner: CliRunner, config_file: Path, *args: str, **kwargs):
    return runner.invoke(cli, ["--config", str(config_file), *args], **kwargs)


# =============================================================================
# Group and configuration
# =============================================================================


class TestCLIGroup:
    def test_help(self, cli_runner) -> None:
        result = cli_runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("configure", "issues", "track", "log", "history", "updates", "credentials"):
            assert command in result.output

    def test_invalid_config_file(self, cli_runner, tmp_path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("jira: [oops")

        result = invoke(cli_runner, bad, "templates")

        assert result.exit_code == 1
        assert "Error: Invalid YAML" in result.output

    def test_templates(self, cli_runner, config_file) -> None:
        result = invoke(cli_runner, config_file, "templates")

        assert result.exit_code == 0
        assert "My Open Issues" in result.output
        assert "assignee = currentUser() ORDER BY updated DESC" in result.output


class TestConfigure:
    def test_saves_without_token_in_file(self, cli_runner, tmp_path, mock_client, mock_tokens) -> None:
        path = tmp_path / "new" / "config.yaml"

        result = invoke(
            cli_runner,
            path,
            "configure",
            "--domain",
            " acme ",
            "--email",
            "dev@example.com",
            "--token",
            "secret-token",
            "--default-jql",
            "project = PROJ",
        )

        assert result.exit_code == 0, result.output
        assert "Connected as Dana Dev" in result.output
        assert "token stored in keyring" in result.output
        mock_tokens.save_secret.assert_called_once_with("secret-token")
        saved = yaml.safe_load(path.read_text())
        assert saved["jira"]["domain"] == "acme"
        assert saved["jira"]["default_jql"] == "project = PROJ"
        assert "secret-token" not in path.read_text()

    def test_verification_failure_saves_nothing(self, cli_runner, tmp_path, mock_client, mock_tokens) -> None:
        mock_client.validate_connection.side_effect = UnauthorizedError()
        path = tmp_path / "config.yaml"

        result = invoke(
            cli_runner, path, "configure", "--domain", "acme", "--email", "dev@example.com", "--token", "bad"
        )

        assert result.exit_code == 1
        assert "Error: Invalid credentials" in result.output
        assert not path.exists()
        mock_tokens.save_secret.assert_not_called()

    def test_no_verify(self, cli_runner, tmp_path, mock_client, mock_tokens) -> None:
        path = tmp_path / "config.yaml"

        result = invoke(
            cli_runner,
            path,
            "configure",
            "--domain",
            "acme",
            "--email",
            "dev@example.com",
            "--token",
            "tok",
            "--no-verify",
        )

        assert result.exit_code == 0
        mock_client.validate_connection.assert_not_called()
        assert path.exists()

    def test_token_without_persistent_backend(self, cli_runner, tmp_path, mock_client, mock_tokens) -> None:
        mock_tokens.save_secret.side_effect = BackendNotAvailableError(
            "No persistent credential backend is available",
            suggestion="Configure an OS keyring, or export JTIMER_API_TOKEN in your shell profile",
        )
        path = tmp_path / "config.yaml"

        result = invoke(
            cli_runner, path, "configure", "--domain", "acme", "--email", "dev@example.com", "--token", "tok"
        )

        assert result.exit_code == 1
        assert "API token was not stored" in result.output
        assert "JTIMER_API_TOKEN" in result.output
        assert "Traceback" not in result.output
        assert path.exists()


# =============================================================================
# Read commands
# =============================================================================


class TestWhoami:
    def test_shows_user(self, cli_runner, config_file, mock_client_cls) -> None:
        result = invoke(cli_runner, config_file, "whoami")

        assert result.exit_code == 0
        assert "Dana Dev <dev@example.com>" in result.output
        assert "Site: https://acme.atlassian.net" in result.output
        connection = mock_client_cls.call_args.args[0]
        assert connection.api_token == "test-api-token"
        assert connection.domain == "acme"

    def test_auth_failure_suggests_configure(self, cli_runner, config_file, mock_client) -> None:
        mock_client.get_current_user.side_effect = UnauthorizedError()

        result = invoke(cli_runner, config_file, "whoami")

        assert result.exit_code == 1
        assert "Error: Invalid credentials" in result.output
        assert "jtimer configure" in result.output


class TestIssues:
    def test_fallback_listing(self, cli_runner, config_file, mock_client) -> None:
        result = invoke(cli_runner, config_file, "issues")

        assert result.exit_code == 0
        assert "Query: assignee = currentUser() AND status NOT IN" in result.output
        assert "PROJ-123" in result.output
        assert "Fix login redirect" in result.output

    def test_explicit_query_error(self, cli_runner, config_file, mock_client) -> None:
        mock_client.search_issues.side_effect = InvalidQueryError()

        result = invoke(cli_runner, config_file, "issues", "--jql", "status = ")

        assert result.exit_code == 1
        assert "Error: Invalid JQL query" in result.output
        mock_client.search_issues.assert_awaited_once_with("status = ")

    def test_filter(self, cli_runner, config_file, mock_client) -> None:
        result = invoke(cli_runner, config_file, "issues", "--filter", "nothing-like-this")

        assert result.exit_code == 0
        assert "1 issue(s), 0 matching 'nothing-like-this'" in result.output


class TestHistory:
    def test_empty(self, cli_runner, config_file, mock_client) -> None:
        result = invoke(cli_runner, config_file, "history")

        assert result.exit_code == 0
        assert "No time logs yet" in result.output

    def test_lists_entries(self, cli_runner, config_file, mock_client) -> None:
        start = datetime(2025, 1, 6, 9, 0, tzinfo=UTC)
        mock_client.fetch_recent_worklogs.return_value = [
            TimeLogEntry("1", "PROJ-1", "Summary one", 1800.0, start, start, "Did things"),
            TimeLogEntry("2", "PROJ-2", "Summary two", 60.0, start, start, ""),
        ]

        result = invoke(cli_runner, config_file, "history", "--limit", "5")

        assert result.exit_code == 0
        assert "PROJ-1" in result.output and "00:30:00" in result.output and "Did things" in result.output
        assert "Summary two" in result.output
        mock_client.fetch_recent_worklogs.assert_awaited_once_with(limit=5)

    def test_limit_must_be_positive(self, cli_runner, config_file, mock_client) -> None:
        result = invoke(cli_runner, config_file, "history", "--limit", "0")

        assert result.exit_code == 2


class TestUpdates:
    def test_shows_comments_by_others(self, cli_runner, config_file, mock_client, sample_issue, sample_user) -> None:
        from dataclasses import replace

        issue = replace(
            sample_issue,
            comments=(
                IssueComment(sample_user.account_id, "Dana Dev", None, "my own note"),
                IssueComment("other", "Olu Other", None, "Can you check this?"),
            ),
        )
        mock_client.fetch_recent_updates.return_value = [issue]

        result = invoke(cli_runner, config_file, "updates", "--days", "7")

        assert result.exit_code == 0
        assert "Olu Other: Can you check this?" in result.output
        assert "my own note" not in result.output
        mock_client.fetch_recent_updates.assert_awaited_once_with(days=7)


# =============================================================================
# Logging time
# =============================================================================


class TestLogCommand:
    def test_logs_work(self, cli_runner, config_file, mock_client) -> None:
        result = invoke(
            cli_runner,
            config_file,
            "log",
            "proj-123",
            "--duration",
            "0:30:00",
            "--started",
            "2025-01-06T09:00:00+00:00",
            "--comment",
            "Did stuff",
        )

        assert result.exit_code == 0, result.output
        assert "Logged 00:30:00 to PROJ-123" in result.output
        mock_client.search_issues.assert_awaited_once_with('key = "PROJ-123"', max_results=1)
        mock_client.log_work.assert_awaited_once_with(
            issue_key="PROJ-123",
            time_spent_seconds=1800,
            start_time=datetime(2025, 1, 6, 9, 0, tzinfo=UTC),
            comment="Did stuff",
        )

    def test_failure_keeps_time_for_retry(self, cli_runner, config_file, mock_client) -> None:
        mock_client.log_work.side_effect = ServerError(500)

        result = invoke(
            cli_runner, config_file, "log", "PROJ-123", "--duration", "0:30:00", "--started", "2025-01-06T09:00:00+00:00"
        )

        assert result.exit_code == 1
        assert "Tracked time kept: PROJ-123 00:30:00" in result.output
        assert "Retry with: jtimer log PROJ-123 --duration 00:30:00" in result.output

    def test_comment_failure_is_reported(self, cli_runner, config_file, mock_client) -> None:
        mock_client.post_comment.side_effect = ServerError(403)

        result = invoke(
            cli_runner, config_file, "log", "PROJ-123", "--duration", "15:00", "--comment", "x", "--also-comment"
        )

        assert result.exit_code == 1
        assert "Logged 00:15:00 to PROJ-123" in result.output
        assert "the comment failed" in result.output

    def test_also_comment(self, cli_runner, config_file, mock_client) -> None:
        result = invoke(
            cli_runner, config_file, "log", "PROJ-123", "--duration", "15:00", "--comment", "x", "--also-comment"
        )

        assert result.exit_code == 0
        assert "Comment added to PROJ-123" in result.output
        mock_client.post_comment.assert_awaited_once_with(issue_key="PROJ-123", text="x")

    def test_bad_duration(self, cli_runner, config_file, mock_client) -> None:
        result = invoke(cli_runner, config_file, "log", "PROJ-123", "--duration", "soon")

        assert result.exit_code == 2
        assert "Invalid duration" in result.output
        mock_client.log_work.assert_not_called()

    def test_unknown_issue(self, cli_runner, config_file, mock_client) -> None:
        mock_client.search_issues.return_value = []

        result = invoke(cli_runner, config_file, "log", "NOPE-1", "--duration", "1:00")

        assert result.exit_code == 1
        assert "Issue not found: NOPE-1" in result.output


class TestTrackCommand:
    def test_track_and_submit_without_confirmation(self, cli_runner, config_file, mock_client) -> None:
        result = invoke(cli_runner, config_file, "track", "PROJ-123", "--yes", "--comment", "Pairing", input="\n")

        assert result.exit_code == 0, result.output
        assert "Tracking PROJ-123" in result.output
        assert "https://acme.atlassian.net/browse/PROJ-123" in result.output
        kwargs = mock_client.log_work.call_args.kwargs
        assert kwargs["issue_key"] == "PROJ-123"
        assert kwargs["comment"] == "Pairing"
        assert kwargs["start_time"].tzinfo is not None

    def test_track_with_edited_duration(self, cli_runner, config_file, mock_client) -> None:
        result = invoke(cli_runner, config_file, "track", "PROJ-123", input="\n0:15:00\nReviewed PR\n")

        assert result.exit_code == 0, result.output
        kwargs = mock_client.log_work.call_args.kwargs
        assert kwargs["time_spent_seconds"] == 900
        assert kwargs["comment"] == "Reviewed PR"
        assert "Logged 00:15:00 to PROJ-123" in result.output


# =============================================================================
# Credentials group
# =============================================================================


class TestCredentialsCommands:
    @pytest.fixture
    def store(self):
        with patch("jtimer.cli.credentials.TokenStore") as store_cls:
            yield store_cls.return_value

    def test_set(self, cli_runner, config_file, store) -> None:
        store.save_secret.return_value = "keyring"

        result = invoke(cli_runner, config_file, "credentials", "set", "--value", "tok")

        assert result.exit_code == 0
        assert "Token stored in keyring" in result.output
        store.save_secret.assert_called_once_with("tok")

    def test_show_masked(self, cli_runner, config_file, store) -> None:
        store.get_secret.return_value = "ATATT3xFfGF0abcdef1234"

        result = invoke(cli_runner, config_file, "credentials", "show")

        assert result.exit_code == 0
        assert "ATAT" in result.output and "1234" in result.output
        assert "ATATT3xFfGF0abcdef1234" not in result.output

    def test_show_missing(self, cli_runner, config_file, store) -> None:
        store.get_secret.return_value = None

        result = invoke(cli_runner, config_file, "credentials", "show")

        assert result.exit_code == 1
        assert "No API token stored" in result.output

    def test_show_backend_error(self, cli_runner, config_file, store) -> None:
        store.get_secret.side_effect = CredentialNotFoundError("Keyring locked", suggestion="Unlock it")

        result = invoke(cli_runner, config_file, "credentials", "show")

        assert result.exit_code == 1
        assert "Suggestion: Unlock it" in result.output

    def test_delete(self, cli_runner, config_file, store) -> None:
        store.delete_secret.return_value = True

        result = invoke(cli_runner, config_file, "credentials", "delete", "--yes")

        assert result.exit_code == 0
        assert "Token deleted" in result.output

    def test_test_backends(self, cli_runner, config_file) -> None:
        with (
            patch("jtimer.cli.credentials.KeyringBackend") as keyring_cls,
            patch("jtimer.cli.credentials.EnvironmentBackend") as env_cls,
        ):
            keyring_cls.return_value.name = "keyring"
            keyring_cls.return_value.available = False
            env_cls.return_value.name = "environment"
            env_cls.return_value.available = True

            result = invoke(cli_runner, config_file, "credentials", "test")

        assert result.exit_code == 0
        assert "keyring: not available" in result.output
        assert "environment: available" in result.output
