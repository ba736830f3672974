"""git-rewrite-commits - AI-powered git commit message rewriting."""

__version__ = "0.1.0"

from .adapter import CommitRecord, FilterResult, GitAdapter, GitCommandError
from .ai_engine import (
    AICommitEngine,
    AIConnectionError,
    ClaudeCodeProvider,
    OllamaProvider,
    OpenAIProvider,
    RewriteResult,
    get_provider,
)
from .config import (
    AIConfig,
    Config,
    ConfigurationError,
    RewriteConfig,
    RunConfiguration,
    ServerConfig,
    get_config,
    reload_config,
)
from .prompts import GenerationRequest, build_prompt, compose_request
from .quality import QualityAssessment, assess_commit_quality
from .redaction import RedactionRule, find_redactions, redact_diff
from .rewriter import (
    CommitOutcome,
    CommitRewriter,
    ConsentRequiredError,
    NothingStagedError,
    OutcomeStatus,
    RewriteAbortedError,
    RewritePlan,
    RewriteReport,
)

__all__ = [
    # Version
    "__version__",
    # Adapter
    "GitAdapter",
    "GitCommandError",
    "CommitRecord",
    "FilterResult",
    # AI Engine
    "AICommitEngine",
    "AIConnectionError",
    "RewriteResult",
    "get_provider",
    "OpenAIProvider",
    "OllamaProvider",
    "ClaudeCodeProvider",
    # Config
    "Config",
    "AIConfig",
    "RewriteConfig",
    "ServerConfig",
    "RunConfiguration",
    "ConfigurationError",
    "get_config",
    "reload_config",
    # Composition
    "GenerationRequest",
    "build_prompt",
    "compose_request",
    # Quality
    "QualityAssessment",
    "assess_commit_quality",
    # Redaction
    "RedactionRule",
    "redact_diff",
    "find_redactions",
    # Rewriter
    "CommitRewriter",
    "CommitOutcome",
    "OutcomeStatus",
    "RewritePlan",
    "RewriteReport",
    "RewriteAbortedError",
    "ConsentRequiredError",
    "NothingStagedError",
]
