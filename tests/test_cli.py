"""Contains unit tests for the command line interface."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from pr_git_client import cli
from pr_git_client.errors import OperationError

AUTH = ["--repository", "org/repo", "--access-token", "tok"]


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace client construction with a mock."""
    client = MagicMock()
    monkeypatch.setattr(cli.GitClient, "from_source", MagicMock(return_value=client))
    return client


def test_pull_invokes_client(tmp_path: Path, fake_client: MagicMock) -> None:
    """Test that pull options map onto GitClient.pull."""
    result = CliRunner().invoke(
        cli._cli,
        ["pull", *AUTH, "--dir", str(tmp_path), "--depth", "2", "--submodules", "https://example.com/org/repo.git", "main"],
    )
    assert result.exit_code == 0, result.output
    fake_client.pull.assert_called_once_with("https://example.com/org/repo.git", "main", 2, True, False)
    source = cli.GitClient.from_source.call_args.args[0]
    assert source.access_token == "tok"


def test_fetch_invokes_client(tmp_path: Path, fake_client: MagicMock) -> None:
    """Test that fetch passes the pull request number."""
    result = CliRunner().invoke(
        cli._cli, ["fetch", *AUTH, "--dir", str(tmp_path), "https://example.com/org/repo.git", "42"]
    )
    assert result.exit_code == 0, result.output
    fake_client.fetch.assert_called_once_with("https://example.com/org/repo.git", 42, 0, False)


def test_rev_parse_prints_sha(tmp_path: Path, fake_client: MagicMock) -> None:
    """Test that rev-parse echoes the resolved SHA."""
    fake_client.rev_parse.return_value = "deadbeef"
    result = CliRunner().invoke(cli._cli, ["rev-parse", *AUTH, "--dir", str(tmp_path), "main"])
    assert result.exit_code == 0
    assert result.output.strip() == "deadbeef"


def test_operation_errors_become_click_errors(tmp_path: Path, fake_client: MagicMock) -> None:
    """Test that library errors exit non-zero with their message."""
    fake_client.merge.side_effect = OperationError("merge", returncode=1, output="CONFLICT")
    result = CliRunner().invoke(cli._cli, ["merge", *AUTH, "--dir", str(tmp_path), "deadbeef"])
    assert result.exit_code == 1
    assert "merge failed: exit status 1: CONFLICT" in result.output


def test_invalid_source_is_reported(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that configuration errors are surfaced before any git command."""
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    result = CliRunner().invoke(cli._cli, ["init", "--repository", "org/repo", "--dir", str(tmp_path)])
    assert result.exit_code == 1
    assert "access_token must be set" in result.output


def test_askpass_option_reaches_client(tmp_path: Path, fake_client: MagicMock) -> None:
    """Test that a custom credential helper is handed to the client."""
    result = CliRunner().invoke(
        cli._cli,
        ["fetch", *AUTH, "--askpass", "/usr/bin/pr-git-askpass", "--dir", str(tmp_path), "https://example.com/o/r.git", "1"],
    )
    assert result.exit_code == 0, result.output
    assert cli.GitClient.from_source.call_args.kwargs["askpass"] == "/usr/bin/pr-git-askpass"


def test_askpass_option_from_environment(
    tmp_path: Path, fake_client: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that the credential helper can come from the environment."""
    monkeypatch.setenv("PR_GIT_ASKPASS", "/opt/askpass")
    result = CliRunner().invoke(cli._cli, ["init", *AUTH, "--dir", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert cli.GitClient.from_source.call_args.kwargs["askpass"] == "/opt/askpass"


@pytest.mark.parametrize(
    "args,message",
    [
        pytest.param(["init"], "Init completed successfully.", id="init"),
        pytest.param(["checkout", "pr", "deadbeef"], "Checkout completed successfully.", id="checkout"),
        pytest.param(["merge", "deadbeef"], "Merge completed successfully.", id="merge"),
        pytest.param(["rebase", "main", "deadbeef"], "Rebase completed successfully.", id="rebase"),
        pytest.param(["crypt-unlock", "--key", "a2V5"], "Unlock completed successfully.", id="crypt-unlock"),
    ],
)
def test_commands_report_success(tmp_path: Path, fake_client: MagicMock, args: list, message: str) -> None:
    """Test that every mutating command confirms completion."""
    command, *rest = args
    result = CliRunner().invoke(cli._cli, [command, *AUTH, "--dir", str(tmp_path), *rest])
    assert result.exit_code == 0, result.output
    assert message in result.output
