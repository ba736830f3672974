"""MCP tool definitions for commit message rewriting."""

from pydantic import BaseModel, Field


class AssessCommitQualityInput(BaseModel):
    """Input for assess_commit_quality tool."""

    message: str = Field(description="Commit message to score")
    min_quality_score: int | None = Field(
        default=None, ge=0, le=10, description="Score needed to count as well-formed (default 7)"
    )


class AnalyzeCommitQualityInput(BaseModel):
    """Input for analyze_commit_quality tool."""

    repo_path: str = Field(description="Path to the git repository")
    branch: str | None = Field(default=None, description="Branch to analyze (default: current)")
    max_commits: int | None = Field(default=None, description="Only the last N commits")
    min_quality_score: int | None = Field(default=None, ge=0, le=10, description="Quality threshold")


class RedactDiffInput(BaseModel):
    """Input for redact_diff tool."""

    text: str = Field(description="Unified diff or any text to redact")


class GenerationOptionsInput(BaseModel):
    """Options shared by the tools that call an AI provider."""

    repo_path: str = Field(description="Path to the git repository")
    ai_provider: str | None = Field(
        default=None, description="AI provider: openai, ollama, or claude-code"
    )
    ai_model: str | None = Field(default=None, description="AI model to use")
    template: str | None = Field(
        default=None,
        description='Message template, e.g. "(feat): message" or "[JIRA-123] feat: message"',
    )
    language: str | None = Field(default=None, description='Language code, e.g. "en", "es", "zh"')
    prompt: str | None = Field(
        default=None, description="Custom instruction that replaces the default rules"
    )
    allow_remote: bool = Field(
        default=False,
        description="Consent to sending redacted diffs and file lists to a remote provider",
    )


class RewriteCommitMessagesInput(GenerationOptionsInput):
    """Input for rewrite_commit_messages tool."""

    branch: str | None = Field(default=None, description="Branch to rewrite (default: current)")
    max_commits: int | None = Field(default=None, description="Process only the last N commits")
    skip_well_formed: bool = Field(
        default=True, description="Keep commits whose message already scores well"
    )
    min_quality_score: int | None = Field(default=None, ge=0, le=10, description="Quality threshold")
    skip_backup: bool = Field(default=False, description="Do not create a backup branch")
    dry_run: bool = Field(default=True, description="If true, only show what would be changed")


class GenerateStagedMessageInput(GenerationOptionsInput):
    """Input for generate_staged_message tool."""


class CreateBackupInput(BaseModel):
    """Input for create_backup tool."""

    repo_path: str = Field(description="Path to the git repository")
    branch: str | None = Field(default=None, description="Branch to back up (default: current)")


class RestoreBackupInput(BaseModel):
    """Input for restore_backup tool."""

    repo_path: str = Field(description="Path to the git repository")
    backup_branch: str = Field(description="Name of the backup branch to restore")


TOOL_DEFINITIONS = [
    {
        "name": "assess_commit_quality",
        "description": """Score a commit message from 0 to 10.

Checks conventional format, subject length, generic wording, lowercase
subject and trailing period. Returns the score, whether it meets the
threshold, and the reasons.""",
        "inputSchema": AssessCommitQualityInput.model_json_schema(),
    },
    {
        "name": "analyze_commit_quality",
        "description": """Score every commit message on a branch without calling any AI.

Use this first to see which commits would be rewritten.""",
        "inputSchema": AnalyzeCommitQualityInput.model_json_schema(),
    },
    {
        "name": "redact_diff",
        "description": """Show exactly what would be sent to an AI provider for a diff.

Hides the content of .env, key, certificate and secrets files, and replaces
API keys, tokens, private keys, passwords and connection strings with
placeholders.""",
        "inputSchema": RedactDiffInput.model_json_schema(),
    },
    {
        "name": "rewrite_commit_messages",
        "description": """Rewrite commit messages on a branch with AI-generated ones.

Commits are processed oldest first. Well-formed messages are kept unless
skip_well_formed is false. A commit whose generation fails keeps its
original message.

IMPORTANT: Always use dry_run=true first to preview changes!""",
        "inputSchema": RewriteCommitMessagesInput.model_json_schema(),
    },
    {
        "name": "generate_staged_message",
        "description": """Generate a commit message for the currently staged changes.""",
        "inputSchema": GenerateStagedMessageInput.model_json_schema(),
    },
    {
        "name": "create_backup",
        "description": """Create a backup branch before making changes.

Returns the backup branch name for later restoration.""",
        "inputSchema": CreateBackupInput.model_json_schema(),
    },
    {
        "name": "restore_backup",
        "description": """Restore the current branch from a backup branch.

Use this to undo a rewrite.""",
        "inputSchema": RestoreBackupInput.model_json_schema(),
    },
]
