"""Tests for the command line interface."""

from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from git_rewrite_commits.adapter import CommitRecord, FilterResult, StagedChanges
from git_rewrite_commits.cli import app
from git_rewrite_commits.config import get_config

runner = CliRunner()


class FakeProvider:
    name = "Fake"

    def __init__(self, *responses, is_remote=False):
        self.responses = list(responses)
        self.is_remote = is_remote

    async def generate(self, prompt_text, system_prompt_text):
        return self.responses.pop(0)


def mock_adapter(messages: dict[str, str]) -> MagicMock:
    adapter = MagicMock()
    adapter.get_current_branch.return_value = "main"
    adapter.has_uncommitted_changes.return_value = False
    adapter.list_commits.return_value = list(messages)
    adapter.get_commit_record.side_effect = lambda c: CommitRecord(c, messages[c], ("a.py",), "+x")
    adapter.create_backup.return_value = "backup-main-1700000000000"
    adapter.apply_messages.return_value = FilterResult(success=True, message="ok")
    return adapter


@pytest.fixture(autouse=True)
def cli_config(monkeypatch):
    """Pin the settings the commands read from the loaded config."""
    config = get_config()
    monkeypatch.setattr(config.rewrite, "delay_seconds", 0)
    monkeypatch.setattr(config.rewrite, "min_quality_score", 7)
    monkeypatch.setattr(config.rewrite, "max_commits", None)
    monkeypatch.setattr(config.ai, "openai_api_key", None)


class TestScoreCommand:
    def test_generic_message(self):
        result = runner.invoke(app, ["score", "update"])

        assert result.exit_code == 0
        assert "1/10 (needs improvement)" in result.output
        assert "too generic" in result.output

    def test_well_formed_message(self):
        result = runner.invoke(app, ["score", "fix: resolve null pointer exception"])

        assert result.exit_code == 0
        assert "10/10 (well-formed)" in result.output

    def test_custom_threshold(self):
        result = runner.invoke(app, ["score", "feat: Add login", "--min-quality-score", "10"])

        assert "9/10 (needs improvement)" in result.output


class TestRewriteCommand:
    def test_dry_run(self):
        adapter = mock_adapter({"c1": "wip", "c2": "fix: resolve null pointer exception"})
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider", return_value=FakeProvider("feat: add parser")
        ):
            result = runner.invoke(app, ["rewrite", "--provider", "ollama", "--dry-run"])

        assert result.exit_code == 0
        assert 'c1: "wip" -> "feat: add parser"' in result.output
        assert "Total commits analyzed: 2" in result.output
        assert "Well-formed commits (skipped): 1" in result.output
        assert "Dry run completed" in result.output
        adapter.apply_messages.assert_not_called()

    def test_apply_with_yes(self):
        adapter = mock_adapter({"c1": "wip"})
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider",
            return_value=FakeProvider("feat: add parser", is_remote=True),
        ):
            result = runner.invoke(app, ["rewrite", "--yes", "--branch", "main"])

        assert result.exit_code == 0
        assert "Created backup branch: backup-main-1700000000000" in result.output
        assert "Successfully rewrote git history!" in result.output
        adapter.apply_messages.assert_called_once_with(["c1"], ["feat: add parser"], branch="main")

    def test_confirmation_declined(self):
        adapter = mock_adapter({"c1": "wip"})
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider", return_value=FakeProvider("feat: add parser")
        ):
            result = runner.invoke(app, ["rewrite"], input="n\n")

        assert result.exit_code == 0
        assert "Operation cancelled." in result.output
        adapter.list_commits.assert_not_called()

    def test_uncommitted_changes_declined(self):
        adapter = mock_adapter({"c1": "wip"})
        adapter.has_uncommitted_changes.return_value = True
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider", return_value=FakeProvider("feat: add parser")
        ):
            result = runner.invoke(app, ["rewrite", "--dry-run"], input="n\n")

        assert result.exit_code == 0
        assert "You have uncommitted changes!" in result.output
        assert "Operation cancelled." in result.output
        adapter.list_commits.assert_not_called()

    def test_uncommitted_changes_accepted(self):
        adapter = mock_adapter({"c1": "wip"})
        adapter.has_uncommitted_changes.return_value = True
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider", return_value=FakeProvider("feat: add parser")
        ):
            result = runner.invoke(app, ["rewrite", "--dry-run"], input="y\n")

        assert result.exit_code == 0
        assert "Dry run completed" in result.output

    def test_remote_consent_declined(self):
        adapter = mock_adapter({"c1": "wip"})
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider",
            return_value=FakeProvider("feat: add parser", is_remote=True),
        ):
            result = runner.invoke(app, ["rewrite", "--dry-run"], input="n\n")

        assert result.exit_code == 0
        assert "No data was sent" in result.output
        adapter.list_commits.assert_not_called()

    def test_missing_api_key(self):
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=mock_adapter({})):
            result = runner.invoke(app, ["rewrite", "--provider", "openai", "--dry-run"])

        assert result.exit_code == 1
        assert "Error: OpenAI API key is required" in result.output

    def test_not_a_repository(self):
        with patch(
            "git_rewrite_commits.cli.GitAdapter", side_effect=ValueError("Not a git repository: /x")
        ):
            result = runner.invoke(app, ["rewrite", "--provider", "ollama"])

        assert result.exit_code == 1
        assert "Error: Not a git repository" in result.output

    def test_no_commits(self):
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=mock_adapter({})), patch(
            "git_rewrite_commits.cli.get_provider", return_value=FakeProvider()
        ):
            result = runner.invoke(app, ["rewrite", "--dry-run"])

        assert result.exit_code == 0
        assert "No commits found to process." in result.output

    def test_failed_apply(self):
        adapter = mock_adapter({"c1": "wip"})
        adapter.apply_messages.return_value = FilterResult(
            success=False, message="Failed to rewrite commit messages", error="filter-repo crashed"
        )
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider", return_value=FakeProvider("feat: add parser")
        ):
            result = runner.invoke(app, ["rewrite", "--yes"])

        assert result.exit_code == 1
        assert "filter-repo crashed" in result.output
        assert "git reset --hard backup-main-1700000000000" in result.output


class TestStagedCommand:
    def test_prints_message(self):
        adapter = MagicMock()
        adapter.get_staged_changes.return_value = StagedChanges(files=["a.py"], diff="+x = 1")
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider", return_value=FakeProvider("feat: add a")
        ):
            result = runner.invoke(app, ["staged", "--provider", "ollama"])

        assert result.exit_code == 0
        assert result.output.strip() == "feat: add a"

    def test_nothing_staged(self):
        adapter = MagicMock()
        adapter.get_staged_changes.return_value = StagedChanges()
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider", return_value=FakeProvider()
        ):
            result = runner.invoke(app, ["staged"])

        assert result.exit_code == 1
        assert "No staged changes found" in result.output

    def test_remote_consent_declined(self):
        adapter = MagicMock()
        with patch("git_rewrite_commits.cli.GitAdapter", return_value=adapter), patch(
            "git_rewrite_commits.cli.get_provider",
            return_value=FakeProvider("feat: add a", is_remote=True),
        ):
            result = runner.invoke(app, ["staged"], input="n\n")

        assert result.exit_code == 1
        adapter.get_staged_changes.assert_not_called()
