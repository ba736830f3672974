"""Configuration management for git-rewrite-commits."""

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

logger = logging.getLogger(__name__)

DEFAULT_MIN_QUALITY_SCORE = 7
DEFAULT_LANGUAGE = "en"


class ConfigurationError(ValueError):
    """Configuration is incomplete or invalid."""


@dataclass
class AIConfig:
    """AI provider configuration."""

    provider: Literal["openai", "ollama", "claude-code"] = "openai"
    # None means "use the provider's default model"
    model: str | None = None

    # OpenAI settings
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"

    # Ollama settings
    ollama_base_url: str = "http://localhost:11434"


@dataclass
class RewriteConfig:
    """Defaults for a rewrite run."""

    min_quality_score: int = DEFAULT_MIN_QUALITY_SCORE
    skip_well_formed: bool = True
    template: str | None = None
    language: str = DEFAULT_LANGUAGE
    prompt: str | None = None
    delay_seconds: float = 0.5
    max_commits: int | None = None


@dataclass
class ServerConfig:
    """Server configuration."""

    log_level: str = "INFO"
    default_dry_run: bool = True
    auto_backup: bool = True
    verbose: bool = False


@dataclass
class Config:
    """Main configuration."""

    ai: AIConfig = field(default_factory=AIConfig)
    rewrite: RewriteConfig = field(default_factory=RewriteConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


@dataclass(frozen=True)
class RunConfiguration:
    """Read-only settings consulted while scoring and composing messages."""

    min_quality_score: int = DEFAULT_MIN_QUALITY_SCORE
    skip_already_acceptable: bool = True
    template: str | None = None
    language: str = DEFAULT_LANGUAGE
    custom_prompt_override: str | None = None

    @classmethod
    def from_config(cls, config: Config) -> "RunConfiguration":
        return cls(
            min_quality_score=config.rewrite.min_quality_score,
            skip_already_acceptable=config.rewrite.skip_well_formed,
            template=config.rewrite.template,
            language=config.rewrite.language,
            custom_prompt_override=config.rewrite.prompt,
        )


def load_config() -> Config:
    """
    Load configuration from multiple sources (in priority order):
    1. Environment variables (highest priority)
    2. Local config file (./config.json)
    3. User config file (~/.config/git-rewrite-commits/config.json)
    4. Default values (lowest priority)
    """
    config = Config()

    config_paths = [
        Path("./config.json"),
        Path.home() / ".config" / "git-rewrite-commits" / "config.json",
    ]

    for config_path in reversed(config_paths):  # Lower priority first
        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
                    _apply_config_dict(config, data)
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to parse config file {config_path}: {e}")
            except IOError as e:
                logger.warning(f"Failed to read config file {config_path}: {e}")

    _apply_env_vars(config)

    return config


def _apply_section(section: object, data: dict) -> None:
    for key, value in data.items():
        if hasattr(section, key):
            setattr(section, key, value)
        else:
            logger.warning(f"unknown config key: {key}")


def _apply_config_dict(config: Config, data: dict) -> None:
    """Apply configuration from a dictionary."""
    if "ai" in data:
        _apply_section(config.ai, data["ai"])
    if "rewrite" in data:
        _apply_section(config.rewrite, data["rewrite"])
    if "server" in data:
        _apply_section(config.server, data["server"])


def _apply_env_vars(config: Config) -> None:
    """Apply environment variables to config."""
    # AI settings
    if provider := os.getenv("GIT_REWRITE_COMMITS_PROVIDER"):
        config.ai.provider = provider

    if model := os.getenv("GIT_REWRITE_COMMITS_MODEL"):
        config.ai.model = model

    if openai_key := os.getenv("OPENAI_API_KEY"):
        config.ai.openai_api_key = openai_key

    if openai_url := os.getenv("OPENAI_BASE_URL"):
        config.ai.openai_base_url = openai_url

    if ollama_url := os.getenv("OLLAMA_BASE_URL"):
        config.ai.ollama_base_url = ollama_url

    # Rewrite settings
    if template := os.getenv("GIT_REWRITE_COMMITS_TEMPLATE"):
        config.rewrite.template = template

    if language := os.getenv("GIT_REWRITE_COMMITS_LANGUAGE"):
        config.rewrite.language = language

    if min_score := os.getenv("GIT_REWRITE_COMMITS_MIN_QUALITY_SCORE"):
        try:
            config.rewrite.min_quality_score = int(min_score)
        except ValueError:
            logger.warning(f"ignoring non-integer min quality score: {min_score}")

    # Server settings
    if log_level := os.getenv("GIT_REWRITE_COMMITS_LOG_LEVEL"):
        config.server.log_level = log_level


def create_default_config_file(path: Path | None = None) -> Path:
    """Create a default configuration file."""
    if path is None:
        path = Path.home() / ".config" / "git-rewrite-commits" / "config.json"

    path.parent.mkdir(parents=True, exist_ok=True)

    default_config = {
        "ai": {
            "provider": "openai",
            "model": None,
            "openai_api_key": None,
            "openai_base_url": "https://api.openai.com/v1",
            "ollama_base_url": "http://localhost:11434",
        },
        "rewrite": {
            "min_quality_score": DEFAULT_MIN_QUALITY_SCORE,
            "skip_well_formed": True,
            "template": None,
            "language": DEFAULT_LANGUAGE,
            "prompt": None,
            "delay_seconds": 0.5,
        },
        "server": {"log_level": "INFO", "default_dry_run": True, "auto_backup": True},
    }

    with open(path, "w") as f:
        json.dump(default_config, f, indent=2)

    return path


_config: Config | None = None
_config_lock = threading.Lock()


def get_config() -> Config:
    """Get the global configuration instance (thread-safe)."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from sources (thread-safe)."""
    global _config
    with _config_lock:
        _config = load_config()
        return _config
