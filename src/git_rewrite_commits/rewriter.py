"""Sequential rewrite of commit messages, oldest commit first."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Protocol, Sequence

from .adapter import CommitRecord, FilterResult, GitAdapter
from .ai_engine import AICommitEngine
from .config import RunConfiguration
from .quality import QualityAssessment, assess_commit_quality

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 0.5


class OutcomeStatus(str, Enum):
    """What happened to a single commit."""

    KEPT_ACCEPTABLE = "kept_acceptable"
    REWRITTEN = "rewritten"
    KEPT_UNCHANGED = "kept_unchanged"
    KEPT_AFTER_ERROR = "kept_after_error"


class CommitSource(Protocol):
    """Read-only source of commit records."""

    def get_commit_record(self, commit_hash: str) -> CommitRecord: ...


class ConsentRequiredError(RuntimeError):
    """Diff content would be sent to a remote provider without consent."""


class NothingStagedError(RuntimeError):
    """There are no staged changes to describe."""


@dataclass
class CommitOutcome:
    identifier: str
    original_message: str
    final_message: str
    status: OutcomeStatus
    assessment: QualityAssessment | None = None
    error: str | None = None


@dataclass
class RewritePlan:
    """Per-commit outcomes, in the order the commits were given."""

    outcomes: list[CommitOutcome] = field(default_factory=list)

    @property
    def commit_ids(self) -> list[str]:
        return [o.identifier for o in self.outcomes]

    @property
    def messages(self) -> list[str]:
        """Final message per commit, aligned with ``commit_ids``."""
        return [o.final_message for o in self.outcomes]

    @property
    def replacements(self) -> dict[str, str]:
        return {
            o.identifier: o.final_message
            for o in self.outcomes
            if o.status == OutcomeStatus.REWRITTEN
        }

    @property
    def skipped_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.KEPT_ACCEPTABLE)

    @property
    def improved_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.REWRITTEN)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.KEPT_AFTER_ERROR)


class RewriteAbortedError(RuntimeError):
    """Reading a commit failed mid-batch. ``plan`` holds the outcomes so far."""

    def __init__(self, commit_hash: str, plan: RewritePlan, original_error: Exception):
        self.commit_hash = commit_hash
        self.plan = plan
        self.original_error = original_error
        super().__init__(f"Failed to read commit {commit_hash[:8]}: {original_error}")


@dataclass
class RewriteReport:
    """Summary of a full rewrite run."""

    branch: str
    plan: RewritePlan
    dry_run: bool = False
    dirty_worktree: bool = False
    backup_branch: str | None = None
    applied: bool = False
    filter_result: FilterResult | None = None

    @property
    def total_commits(self) -> int:
        return len(self.plan.outcomes)


class CommitRewriter:
    """Walks commits and decides the final message for each one."""

    def __init__(
        self,
        engine: AICommitEngine,
        source: CommitSource,
        options: RunConfiguration | None = None,
        delay: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.engine = engine
        self.source = source
        self.options = options or engine.options
        self.delay = delay
        self._sleep = sleep

    async def process_commit(self, record: CommitRecord) -> CommitOutcome:
        """Score, and if needed regenerate, the message of one commit."""
        assessment = None
        if self.options.skip_already_acceptable:
            assessment = assess_commit_quality(record.original_message, self.options.min_quality_score)
            if assessment.is_acceptable:
                return CommitOutcome(
                    identifier=record.identifier,
                    original_message=record.original_message,
                    final_message=record.original_message,
                    status=OutcomeStatus.KEPT_ACCEPTABLE,
                    assessment=assessment,
                )

        result = await self.engine.rewrite_message(
            record.original_message,
            record.identifier,
            record.changed_files,
            record.diff_text,
        )

        if result.error is not None:
            status = OutcomeStatus.KEPT_AFTER_ERROR
        elif result.changed:
            status = OutcomeStatus.REWRITTEN
        else:
            status = OutcomeStatus.KEPT_UNCHANGED

        return CommitOutcome(
            identifier=record.identifier,
            original_message=record.original_message,
            final_message=result.rewritten,
            status=status,
            assessment=assessment,
            error=result.error,
        )

    async def build_plan(self, commit_ids: Sequence[str]) -> RewritePlan:
        """Decide the final message of every commit, in the given order."""
        plan = RewritePlan()
        total = len(commit_ids)

        for index, commit_hash in enumerate(commit_ids):
            try:
                record = self.source.get_commit_record(commit_hash)
            except Exception as e:
                raise RewriteAbortedError(commit_hash, plan, e) from e

            outcome = await self.process_commit(record)
            plan.outcomes.append(outcome)
            _log_outcome(outcome, index, total)

            # Rate limiting between provider calls
            if index < total - 1 and self.delay > 0:
                await self._sleep(self.delay)

        return plan

    async def generate_for_staged(self, adapter: GitAdapter) -> str:
        """Message for the currently staged changes."""
        staged = adapter.get_staged_changes()
        if not staged.files or not staged.diff.strip():
            raise NothingStagedError(
                "No staged changes found. Stage your changes with: git add <files>"
            )
        return await self.engine.generate_message(staged.diff, staged.files, "")

    async def run(
        self,
        adapter: GitAdapter,
        branch: str | None = None,
        max_commits: int | None = None,
        dry_run: bool = False,
        skip_backup: bool = False,
        allow_remote: bool = False,
    ) -> RewriteReport:
        """Plan and, unless ``dry_run``, apply new messages to ``branch``."""
        branch = branch or adapter.get_current_branch()
        dirty = adapter.has_uncommitted_changes()
        if dirty:
            logger.warning("uncommitted changes in working tree")

        commit_ids = adapter.list_commits(branch, max_commits)
        logger.info(f"found {len(commit_ids)} commits on {branch}")
        report = RewriteReport(branch=branch, plan=RewritePlan(), dry_run=dry_run, dirty_worktree=dirty)
        if not commit_ids:
            return report

        if getattr(self.engine.provider, "is_remote", False) and not allow_remote:
            raise ConsentRequiredError(
                f"{self.engine.provider.name} is a remote provider. Redacted diffs and file "
                "lists would be sent to it; pass allow_remote to consent, or use ollama."
            )

        report.plan = await self.build_plan(commit_ids)

        if dry_run or not report.plan.replacements:
            return report

        if not skip_backup:
            report.backup_branch = adapter.create_backup(branch)
            logger.info(f"backup branch: {report.backup_branch}")

        replacements = report.plan.replacements
        report.filter_result = adapter.apply_messages(
            list(replacements), list(replacements.values()), branch=branch
        )
        report.applied = report.filter_result.success
        if not report.applied:
            logger.error(f"rewrite failed: {report.filter_result.error}")
        return report


def _log_outcome(outcome: CommitOutcome, index: int, total: int) -> None:
    progress = f"[{(index + 1) / total * 100:.1f}%] {outcome.identifier[:8]}"
    if outcome.status == OutcomeStatus.KEPT_ACCEPTABLE and outcome.assessment:
        logger.info(
            f"{progress}: already well-formed (score: {outcome.assessment.score}/10) - "
            f"{outcome.assessment.explanation}"
        )
    elif outcome.status == OutcomeStatus.REWRITTEN:
        logger.info(f'{progress}: "{outcome.original_message}" -> "{outcome.final_message}"')
    elif outcome.status == OutcomeStatus.KEPT_AFTER_ERROR:
        logger.info(f"{progress}: keeping original message after error")
    else:
        logger.info(f"{progress}: keeping original message")
