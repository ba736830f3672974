"""MCP server exposing commit message scoring, redaction and rewriting."""

import asyncio
import json
import logging
from functools import wraps
from typing import Any, Awaitable, Callable

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .adapter import FilterResult, GitAdapter
from .ai_engine import AICommitEngine, get_provider
from .config import RunConfiguration, get_config
from .quality import assess_commit_quality
from .redaction import find_redactions, redact_diff
from .rewriter import CommitRewriter, RewriteAbortedError, RewritePlan
from .tools import (
    AnalyzeCommitQualityInput,
    AssessCommitQualityInput,
    CreateBackupInput,
    GenerateStagedMessageInput,
    GenerationOptionsInput,
    RedactDiffInput,
    RestoreBackupInput,
    RewriteCommitMessagesInput,
    TOOL_DEFINITIONS,
)

# Config and logging
config = get_config()
logging.basicConfig(level=getattr(logging, config.server.log_level, logging.INFO))
logger = logging.getLogger(__name__)

server = Server("git-rewrite-commits")

MAX_PREVIEW_COMMITS = 20


def result_to_dict(result: FilterResult) -> dict:
    """FilterResult -> dict"""
    return {
        "success": result.success, "message": result.message,
        "commits_processed": result.commits_processed, "commits_rewritten": result.commits_rewritten,
        "dry_run": result.dry_run, "error": result.error,
    }


def plan_to_dict(plan: RewritePlan) -> dict:
    """RewritePlan -> dict, previewing at most MAX_PREVIEW_COMMITS rewrites."""
    rewrites = [
        {"hash": o.identifier[:8], "original": o.original_message, "new": o.final_message}
        for o in plan.outcomes
        if o.identifier in plan.replacements
    ]
    return {
        "total_commits": len(plan.outcomes),
        "skipped_well_formed": plan.skipped_count,
        "improved": plan.improved_count,
        "failed": plan.failed_count,
        "commits_to_rewrite": rewrites[:MAX_PREVIEW_COMMITS],
        "total_rewrites": len(rewrites),
    }


def create_adapter(repo_path: str) -> GitAdapter:
    """Create adapter with proper error handling."""
    return GitAdapter(repo_path)


def run_options(
    params: GenerationOptionsInput,
    min_quality_score: int | None = None,
    skip_well_formed: bool | None = None,
) -> RunConfiguration:
    """Per-call options layered over the configured defaults."""
    defaults = config.rewrite
    return RunConfiguration(
        min_quality_score=(
            min_quality_score if min_quality_score is not None else defaults.min_quality_score
        ),
        skip_already_acceptable=(
            skip_well_formed if skip_well_formed is not None else defaults.skip_well_formed
        ),
        template=params.template or defaults.template,
        language=params.language or defaults.language,
        custom_prompt_override=params.prompt or defaults.prompt,
    )


def create_engine(params: GenerationOptionsInput, options: RunConfiguration) -> AICommitEngine:
    provider = get_provider(
        params.ai_provider or config.ai.provider,
        model=params.ai_model or config.ai.model,
        api_key=config.ai.openai_api_key,
        base_url=config.ai.openai_base_url,
        ollama_url=config.ai.ollama_base_url,
    )
    return AICommitEngine(provider, options, verbose=config.server.verbose)


def handle_errors(tool_name: str):
    """Decorator for consistent error handling in tool handlers."""
    def decorator(func: Callable[[dict[str, Any]], Awaitable[dict]]):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (ValueError, RuntimeError) as e:
                return {"success": False, "error": str(e)}
            except Exception as e:
                logger.exception(f"{tool_name} failed")
                return {"success": False, "error": str(e)}
        return wrapper
    return decorator


@handle_errors("assess_commit_quality")
async def _assess_commit_quality(args: dict[str, Any]) -> dict:
    params = AssessCommitQualityInput.model_validate(args)
    threshold = params.min_quality_score
    if threshold is None:
        threshold = config.rewrite.min_quality_score
    assessment = assess_commit_quality(params.message, threshold)
    return {
        "success": True,
        "score": assessment.score,
        "is_well_formed": assessment.is_acceptable,
        "reason": assessment.explanation,
    }


@handle_errors("analyze_commit_quality")
async def _analyze_commit_quality(args: dict[str, Any]) -> dict:
    params = AnalyzeCommitQualityInput.model_validate(args)
    adapter = create_adapter(params.repo_path)
    threshold = params.min_quality_score
    if threshold is None:
        threshold = config.rewrite.min_quality_score

    branch = params.branch or adapter.get_current_branch()
    commits = []
    for commit_hash in adapter.list_commits(branch, params.max_commits):
        message = adapter.get_commit_subject(commit_hash)
        assessment = assess_commit_quality(message, threshold)
        commits.append(
            {
                "hash": commit_hash[:8],
                "message": message,
                "score": assessment.score,
                "is_well_formed": assessment.is_acceptable,
                "reason": assessment.explanation,
            }
        )

    return {
        "success": True,
        "branch": branch,
        "total_commits": len(commits),
        "needs_rewrite": sum(1 for c in commits if not c["is_well_formed"]),
        "commits": commits,
    }


@handle_errors("redact_diff")
async def _redact_diff(args: dict[str, Any]) -> dict:
    params = RedactDiffInput.model_validate(args)
    return {
        "success": True,
        "redacted": redact_diff(params.text),
        "rules_applied": find_redactions(params.text),
    }


@handle_errors("rewrite_commit_messages")
async def _rewrite_commit_messages(args: dict[str, Any]) -> dict:
    args = {"dry_run": config.server.default_dry_run, **args}
    params = RewriteCommitMessagesInput.model_validate(args)
    adapter = create_adapter(params.repo_path)
    options = run_options(params, params.min_quality_score, params.skip_well_formed)
    engine = create_engine(params, options)
    rewriter = CommitRewriter(engine, adapter, options, delay=config.rewrite.delay_seconds)

    try:
        report = await rewriter.run(
            adapter,
            branch=params.branch,
            max_commits=params.max_commits or config.rewrite.max_commits,
            dry_run=params.dry_run,
            skip_backup=params.skip_backup or not config.server.auto_backup,
            allow_remote=params.allow_remote,
        )
    except RewriteAbortedError as e:
        return {"success": False, "error": str(e), "partial": plan_to_dict(e.plan)}
    finally:
        await engine.close()

    response = {
        "success": report.filter_result.success if report.filter_result else True,
        "dry_run": report.dry_run,
        "branch": report.branch,
        "ai_provider": engine.provider.name,
        "dirty_worktree": report.dirty_worktree,
        **plan_to_dict(report.plan),
    }
    if report.backup_branch:
        response["backup_branch"] = report.backup_branch
    if report.filter_result:
        response["message"] = report.filter_result.message
        response["error"] = report.filter_result.error
    return response


@handle_errors("generate_staged_message")
async def _generate_staged_message(args: dict[str, Any]) -> dict:
    params = GenerateStagedMessageInput.model_validate(args)
    adapter = create_adapter(params.repo_path)
    options = run_options(params)
    engine = create_engine(params, options)

    try:
        if engine.provider.is_remote and not params.allow_remote:
            return {
                "success": False,
                "error": f"{engine.provider.name} is a remote provider; set allow_remote to consent",
            }
        rewriter = CommitRewriter(engine, adapter, options)
        message = await rewriter.generate_for_staged(adapter)
    finally:
        await engine.close()

    return {"success": True, "message": message, "ai_provider": engine.provider.name}


@handle_errors("create_backup")
async def _create_backup(args: dict[str, Any]) -> dict:
    params = CreateBackupInput.model_validate(args)
    backup = create_adapter(params.repo_path).create_backup(params.branch)
    return {"success": True, "backup_branch": backup, "message": f"Backup: {backup}"}


@handle_errors("restore_backup")
async def _restore_backup(args: dict[str, Any]) -> dict:
    params = RestoreBackupInput.model_validate(args)
    return result_to_dict(create_adapter(params.repo_path).restore_backup(params.backup_branch))


TOOL_HANDLERS: dict[str, Callable[[dict[str, Any]], Awaitable[dict]]] = {
    "assess_commit_quality": _assess_commit_quality,
    "analyze_commit_quality": _analyze_commit_quality,
    "redact_diff": _redact_diff,
    "rewrite_commit_messages": _rewrite_commit_messages,
    "generate_staged_message": _generate_staged_message,
    "create_backup": _create_backup,
    "restore_backup": _restore_backup,
}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """Return tool list."""
    return [
        Tool(
            name=tool["name"],
            description=tool["description"],
            inputSchema=tool["inputSchema"],
        )
        for tool in TOOL_DEFINITIONS
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool call."""
    try:
        result = await _execute_tool(name, arguments)
        return [TextContent(type="text", text=json.dumps(result, indent=2, ensure_ascii=False))]
    except Exception as e:
        logger.exception(f"{name} failed")
        return [TextContent(type="text", text=json.dumps({"error": str(e), "success": False}, indent=2))]


async def _execute_tool(name: str, args: dict[str, Any]) -> dict:
    """Execute tool."""
    logger.info(f"tool: {name}")
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        return {"success": False, "error": f"Unknown tool: {name}"}
    return await handler(args)


async def run_server():
    """Run MCP server."""
    logger.info("server starting")
    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("ready")
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    except Exception:
        logger.exception("server error")
        raise


def main():
    """Entry point."""
    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        logger.info("stopped")
