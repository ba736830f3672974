"""Git adapter - reads commits and applies rewritten messages."""

import base64
import json
import logging
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)

# Timeout constants (seconds)
TIMEOUT_FAST = 5       # Quick operations (rev-parse, single commit)
TIMEOUT_DEFAULT = 30   # Standard git operations
TIMEOUT_LONG = 300     # filter-repo operations

# Tree object of an empty repository, used to diff root commits
EMPTY_TREE_HASH = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


class GitCommandError(RuntimeError):
    """A git command failed."""

    def __init__(self, args: Sequence[str], message: str):
        self.command = list(args)
        super().__init__(f"Command failed: {' '.join(self.command)}\n{message}".rstrip())


def _parse_lines(output: str) -> list[str]:
    """Parse stdout into non-empty lines."""
    return [line for line in output.strip().split("\n") if line]


@dataclass(frozen=True)
class CommitRecord:
    """One commit as seen by the rewriter."""

    identifier: str
    original_message: str
    changed_files: tuple[str, ...] = ()
    diff_text: str = ""


@dataclass
class FilterResult:
    """Result of applying rewritten messages."""

    success: bool
    message: str
    commits_processed: int = 0
    commits_rewritten: int = 0
    dry_run: bool = False
    error: str | None = None


@dataclass
class StagedChanges:
    files: list[str] = field(default_factory=list)
    diff: str = ""


class GitAdapter:
    """Thin wrapper around the git and git-filter-repo binaries."""

    def __init__(self, repo_path: str = "."):
        self.repo_path = Path(repo_path).resolve()
        self._validate_repo()

    def _validate_repo(self) -> None:
        """Validate that the path is inside a git repository."""
        if not self.repo_path.is_dir():
            raise ValueError(f"Not a git repository: {self.repo_path}")
        result = self._run_command(["git", "rev-parse", "--git-dir"], check=False, timeout=TIMEOUT_FAST)
        if result.returncode != 0:
            raise ValueError(f"Not a git repository: {self.repo_path}")

    def _check_git_filter_repo(self) -> None:
        """Check if git-filter-repo is installed."""
        if not shutil.which("git-filter-repo"):
            raise RuntimeError(
                "git-filter-repo is not installed. Install with: pip install git-filter-repo"
            )

    def _run_command(
        self, args: list[str], check: bool = True, timeout: int = TIMEOUT_DEFAULT
    ) -> subprocess.CompletedProcess:
        """Run a command in the repo directory."""
        try:
            result = subprocess.run(
                args, cwd=self.repo_path, capture_output=True,
                encoding="utf-8", errors="replace", timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"timeout {timeout}s: {' '.join(args[:3])}")
            raise GitCommandError(args, f"timed out after {timeout}s")
        except FileNotFoundError as e:
            raise GitCommandError(args, str(e))

        if check and result.returncode != 0:
            raise GitCommandError(args, result.stderr.strip())
        return result

    def _run_git(self, *args: str, timeout: int = TIMEOUT_DEFAULT) -> subprocess.CompletedProcess:
        """Run a git command."""
        return self._run_command(["git", *args], timeout=timeout)

    def _run_git_fast(self, *args: str) -> subprocess.CompletedProcess:
        """Run a quick git command with short timeout."""
        return self._run_command(["git", *args], timeout=TIMEOUT_FAST)

    def get_current_branch(self) -> str:
        return self._run_git_fast("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def has_uncommitted_changes(self) -> bool:
        return bool(self._run_git("status", "--porcelain").stdout.strip())

    def list_commits(self, branch: str = "HEAD", max_count: int | None = None) -> list[str]:
        """Commit hashes, oldest first.

        With ``max_count`` only the most recent N commits are returned, still
        oldest first.
        """
        args = ["rev-list"]
        if max_count and max_count > 0:
            args.append(f"-n{max_count}")
        args.extend(["--reverse", branch])
        return _parse_lines(self._run_git(*args).stdout)

    def has_parent(self, commit_hash: str) -> bool:
        result = self._run_command(
            ["git", "rev-parse", "--verify", "--quiet", f"{commit_hash}^"],
            check=False,
            timeout=TIMEOUT_FAST,
        )
        return result.returncode == 0

    def get_commit_subject(self, commit_hash: str) -> str:
        return self._run_git_fast("log", "-1", "--format=%s", commit_hash).stdout.strip()

    def get_commit_files(self, commit_hash: str) -> list[str]:
        """Files changed in a commit, in the order git reports them."""
        return _parse_lines(
            self._run_git("diff-tree", "--no-commit-id", "--name-only", "-r", "--root", commit_hash).stdout
        )

    def get_commit_diff(self, commit_hash: str) -> str:
        """Unified diff against the parent, or against the empty tree for a root commit."""
        base = f"{commit_hash}^" if self.has_parent(commit_hash) else EMPTY_TREE_HASH
        return self._run_git("diff-tree", "--no-commit-id", "-p", base, commit_hash).stdout

    def get_commit_record(self, commit_hash: str) -> CommitRecord:
        return CommitRecord(
            identifier=commit_hash,
            original_message=self.get_commit_subject(commit_hash),
            changed_files=tuple(self.get_commit_files(commit_hash)),
            diff_text=self.get_commit_diff(commit_hash),
        )

    def get_staged_changes(self) -> StagedChanges:
        """Files and diff currently staged in the index."""
        files = _parse_lines(self._run_git("diff", "--cached", "--name-only").stdout)
        diff = self._run_git("diff", "--cached").stdout if files else ""
        return StagedChanges(files=files, diff=diff)

    def create_backup(self, branch: str | None = None) -> str:
        """Create a backup branch before rewriting."""
        branch = branch or self.get_current_branch()
        backup_branch = f"backup-{branch.replace('/', '-')}-{int(time.time() * 1000)}"

        self._run_git("branch", backup_branch, branch)
        return backup_branch

    def restore_backup(self, backup_branch: str) -> FilterResult:
        """Restore from a backup branch."""
        try:
            current_branch = self.get_current_branch()

            self._run_git("reset", "--hard", backup_branch)
            self._run_git("branch", "-D", backup_branch)

            return FilterResult(
                success=True,
                message=f"Restored {current_branch} from {backup_branch}",
            )
        except GitCommandError as e:
            return FilterResult(
                success=False,
                message="Failed to restore backup",
                error=str(e),
            )

    def apply_messages(
        self,
        commit_ids: Sequence[str],
        messages: Sequence[str],
        branch: str = "HEAD",
        dry_run: bool = False,
    ) -> FilterResult:
        """Rewrite history so that ``commit_ids[i]`` gets ``messages[i]``.

        Commits missing from ``commit_ids`` keep their full original message.
        """
        if len(commit_ids) != len(messages):
            raise ValueError(
                f"Got {len(messages)} messages for {len(commit_ids)} commits"
            )

        mapping = dict(zip(commit_ids, messages))
        if dry_run:
            return FilterResult(
                success=True,
                message=f"Dry run: {len(mapping)} commit messages would be applied",
                commits_processed=len(mapping),
                dry_run=True,
            )

        self._check_git_filter_repo()

        # Messages travel base64-encoded so no user text is ever parsed as code
        encoded = base64.b64encode(json.dumps(mapping).encode()).decode()
        callback = f'''import base64, json
new_messages = json.loads(base64.b64decode("{encoded}").decode())
original_id = commit.original_id.decode() if commit.original_id else None
new_message = new_messages.get(original_id)
if new_message is not None:
    commit.message = new_message.encode("utf-8") + b"\\n"
'''

        if branch == "HEAD":
            branch = self.get_current_branch()

        result = self._run_command(
            ["git-filter-repo", "--force", "--refs", branch, "--commit-callback", callback],
            check=False,
            timeout=TIMEOUT_LONG,
        )

        if result.returncode != 0:
            return FilterResult(
                success=False,
                message="Failed to rewrite commit messages",
                error=result.stderr,
            )

        return FilterResult(
            success=True,
            message=f"Successfully applied {len(mapping)} commit messages",
            commits_processed=len(mapping),
        )
