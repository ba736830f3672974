"""CLI entry point for git-rewrite-commits."""

import asyncio
import logging
from typing import Optional

import typer

from .adapter import GitAdapter
from .ai_engine import AICommitEngine, get_provider
from .config import RunConfiguration, get_config
from .quality import assess_commit_quality
from .rewriter import CommitRewriter, OutcomeStatus, RewriteAbortedError, RewriteReport

app = typer.Typer(
    name="git-rewrite-commits",
    help="AI-powered git commit message rewriter using OpenAI, Ollama or Claude Code",
    add_completion=False,
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, get_config().server.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")


def _build_engine(
    provider: Optional[str],
    api_key: Optional[str],
    model: Optional[str],
    ollama_url: Optional[str],
    options: RunConfiguration,
    verbose: bool,
) -> AICommitEngine:
    config = get_config()
    ai_provider = get_provider(
        provider or config.ai.provider,
        api_key=api_key or config.ai.openai_api_key,
        model=model or config.ai.model,
        base_url=config.ai.openai_base_url,
        ollama_url=ollama_url or config.ai.ollama_base_url,
    )
    return AICommitEngine(ai_provider, options, verbose=verbose)


def _build_options(
    min_quality_score: Optional[int],
    skip_well_formed: bool,
    template: Optional[str],
    language: Optional[str],
    prompt: Optional[str],
) -> RunConfiguration:
    defaults = get_config().rewrite
    return RunConfiguration(
        min_quality_score=min_quality_score if min_quality_score is not None else defaults.min_quality_score,
        skip_already_acceptable=skip_well_formed,
        template=template or defaults.template,
        language=language or defaults.language,
        custom_prompt_override=prompt or defaults.prompt,
    )


def _confirm_remote(engine: AICommitEngine, yes: bool) -> bool:
    if not engine.provider.is_remote or yes:
        return True
    typer.echo(f"\nThis will send data to a remote AI provider: {engine.provider.name}", err=True)
    typer.echo("  - List of changed files", err=True)
    typer.echo("  - Git diff content (up to 8KB per commit)", err=True)
    typer.echo("Secret files are hidden and keys, tokens and passwords are redacted first.", err=True)
    return typer.confirm("Do you consent to sending this data?", default=False)


def _print_report(report: RewriteReport, skip_well_formed: bool) -> None:
    plan = report.plan
    for outcome in plan.outcomes:
        if outcome.status == OutcomeStatus.REWRITTEN:
            typer.echo(f'{outcome.identifier[:8]}: "{outcome.original_message}" -> "{outcome.final_message}"')

    typer.echo("\nSummary:")
    typer.echo(f"  Total commits analyzed: {report.total_commits}")
    if skip_well_formed:
        typer.echo(f"  Well-formed commits (skipped): {plan.skipped_count}")
    typer.echo(f"  Commits improved: {plan.improved_count}")
    if plan.failed_count:
        typer.echo(f"  Commits kept after errors: {plan.failed_count}")


@app.command()
def rewrite(
    provider: Optional[str] = typer.Option(None, "--provider", help="openai, ollama or claude-code"),
    api_key: Optional[str] = typer.Option(None, "--api-key", "-k", help="OpenAI API key (defaults to OPENAI_API_KEY)"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="AI model to use"),
    ollama_url: Optional[str] = typer.Option(None, "--ollama-url", help="Ollama server URL"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to rewrite (defaults to current branch)"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Show what would change without modifying the repository"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
    max_commits: Optional[int] = typer.Option(None, "--max-commits", help="Process only the last N commits"),
    skip_backup: bool = typer.Option(False, "--skip-backup", help="Skip creating a backup branch (not recommended)"),
    skip_well_formed: bool = typer.Option(True, "--skip-well-formed/--no-skip-well-formed", help="Keep commits that already score well"),
    min_quality_score: Optional[int] = typer.Option(None, "--min-quality-score", help="Score (0-10) needed to count as well-formed"),
    template: Optional[str] = typer.Option(None, "--template", "-t", help='Message template, e.g. "(feat): message"'),
    language: Optional[str] = typer.Option(None, "--language", "-l", help='Language for messages (default "en")'),
    prompt: Optional[str] = typer.Option(None, "--prompt", "-p", help="Custom prompt that overrides the default rules"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip all confirmation prompts"),
) -> None:
    """Rewrite commit messages on a branch with AI-generated ones."""
    _setup_logging(verbose)
    options = _build_options(min_quality_score, skip_well_formed, template, language, prompt)

    try:
        adapter = GitAdapter(".")
        engine = _build_engine(provider, api_key, model, ollama_url, options, verbose)
    except (ValueError, RuntimeError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not yes and adapter.has_uncommitted_changes():
        typer.echo("\nWarning: You have uncommitted changes!", err=True)
        typer.echo("Please commit or stash them before proceeding.", err=True)
        if not typer.confirm("Do you want to continue anyway?", default=False):
            typer.echo("Operation cancelled.", err=True)
            raise typer.Exit(0)

    if not _confirm_remote(engine, yes):
        typer.echo("Operation cancelled. No data was sent.", err=True)
        raise typer.Exit(0)

    if not dry_run and not yes:
        typer.echo("\nWARNING: This will REWRITE your git history!", err=True)
        if not typer.confirm("Do you want to proceed?", default=False):
            typer.echo("Operation cancelled.", err=True)
            raise typer.Exit(0)

    rewriter = CommitRewriter(engine, adapter, options, delay=get_config().rewrite.delay_seconds)

    async def _run() -> RewriteReport:
        try:
            return await rewriter.run(
                adapter,
                branch=branch,
                max_commits=max_commits or get_config().rewrite.max_commits,
                dry_run=dry_run,
                skip_backup=skip_backup,
                allow_remote=True,
            )
        finally:
            await engine.close()

    try:
        report = asyncio.run(_run())
    except RewriteAbortedError as e:
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Processed {len(e.plan.outcomes)} commits before the failure; nothing was rewritten.", err=True)
        raise typer.Exit(1)
    except (ValueError, RuntimeError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if report.total_commits == 0:
        typer.echo("No commits found to process.")
        return

    _print_report(report, skip_well_formed)

    if not report.plan.replacements:
        typer.echo("\nNo commit messages to change.")
        return

    if report.dry_run:
        typer.echo("\nDry run completed. No changes were made to your repository.")
        return

    if report.backup_branch:
        typer.echo(f"\nCreated backup branch: {report.backup_branch}")

    if not report.applied:
        error = report.filter_result.error if report.filter_result else "unknown error"
        typer.echo(f"\nError rewriting history: {error}", err=True)
        if report.backup_branch:
            typer.echo(f"You can restore from backup: git reset --hard {report.backup_branch}", err=True)
        raise typer.Exit(1)

    typer.echo("\nSuccessfully rewrote git history!")
    typer.echo("  1. Review the changes: git log --oneline")
    typer.echo("  2. If satisfied, force push: git push --force-with-lease")
    if report.backup_branch:
        typer.echo(f"  3. If something went wrong, restore: git reset --hard {report.backup_branch}")


@app.command()
def staged(
    provider: Optional[str] = typer.Option(None, "--provider", help="openai, ollama or claude-code"),
    api_key: Optional[str] = typer.Option(None, "--api-key", "-k", help="OpenAI API key"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="AI model to use"),
    ollama_url: Optional[str] = typer.Option(None, "--ollama-url", help="Ollama server URL"),
    template: Optional[str] = typer.Option(None, "--template", "-t", help="Message template"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Language for the message"),
    prompt: Optional[str] = typer.Option(None, "--prompt", "-p", help="Custom prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the remote provider consent prompt"),
) -> None:
    """Print a generated message for the staged changes (for git hooks)."""
    _setup_logging(verbose)
    options = _build_options(None, False, template, language, prompt)

    try:
        adapter = GitAdapter(".")
        engine = _build_engine(provider, api_key, model, ollama_url, options, verbose)
    except (ValueError, RuntimeError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not _confirm_remote(engine, yes):
        typer.echo("User declined to send data to remote AI provider", err=True)
        raise typer.Exit(1)

    rewriter = CommitRewriter(engine, adapter, options)

    async def _run() -> str:
        try:
            return await rewriter.generate_for_staged(adapter)
        finally:
            await engine.close()

    try:
        message = asyncio.run(_run())
    except (ValueError, RuntimeError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(message)


@app.command()
def score(
    message: str = typer.Argument(..., help="Commit message to score"),
    min_quality_score: Optional[int] = typer.Option(None, "--min-quality-score", help="Quality threshold"),
) -> None:
    """Score a commit message from 0 to 10."""
    threshold = min_quality_score if min_quality_score is not None else get_config().rewrite.min_quality_score
    assessment = assess_commit_quality(message, threshold)
    verdict = "well-formed" if assessment.is_acceptable else "needs improvement"
    typer.echo(f"{assessment.score}/10 ({verdict}): {assessment.explanation}")


@app.command()
def serve() -> None:
    """Run the MCP server on stdio."""
    from .server import main as server_main

    server_main()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
