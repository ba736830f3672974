"""AI-powered commit message engine using OpenAI, Ollama, or the Claude Code CLI."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import httpx

from .config import ConfigurationError, RunConfiguration
from .prompts import compose_request

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"
DEFAULT_OLLAMA_MODEL = "llama3.2"
DEFAULT_CLAUDE_CODE_MODEL = "haiku"

CLAUDE_CODE_TIMEOUT = 120.0

CLAUDE_INSTALL_HINT = (
    "Claude Code CLI is not installed. Please install it with:\n"
    "  npm install -g @anthropic-ai/claude-code\n"
    "Then authenticate with:\n"
    "  claude login"
)
CLAUDE_LOGIN_HINT = "Claude Code CLI is not authenticated. Please run:\n  claude login"


class AIConnectionError(Exception):
    """AI connection failed."""

    def __init__(self, provider: str, message: str, original_error: Exception | None = None):
        self.provider = provider
        self.original_error = original_error
        super().__init__(f"{provider}: {message}")


@dataclass
class RewriteResult:
    """Rewrite result."""

    original: str
    rewritten: str
    commit_hash: str
    error: str | None = None

    @property
    def changed(self) -> bool:
        return self.rewritten != self.original


class AIProvider(Protocol):
    """AI provider interface."""

    name: str
    is_remote: bool

    async def generate(self, prompt_text: str, system_prompt_text: str) -> str: ...


def clean_response(text: str) -> str:
    """Strip whitespace and wrapping quotes from a model response."""
    return text.strip().strip("\"'").strip()


class OpenAIProvider:
    """OpenAI chat completions provider."""

    is_remote = True

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str = "https://api.openai.com/v1",
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            timeout=30.0,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    @property
    def name(self) -> str:
        return f"OpenAI ({self.model})"

    async def check_connection(self) -> tuple[bool, str]:
        """Check connection."""
        try:
            response = await self.client.get(f"{self.base_url}/models", timeout=5.0)
            if response.status_code == 401:
                return False, "Invalid API key"
            response.raise_for_status()
            return True, "Connected"
        except httpx.ConnectError:
            return False, "Cannot connect to OpenAI"
        except httpx.HTTPError as e:
            return False, f"OpenAI: {e}"

    async def generate(self, prompt_text: str, system_prompt_text: str) -> str:
        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions",
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system_prompt_text},
                        {"role": "user", "content": prompt_text},
                    ],
                    "temperature": 0.3,
                    "max_tokens": 200,
                },
            )
            response.raise_for_status()
        except httpx.ConnectError as e:
            raise AIConnectionError("OpenAI", "Cannot connect to OpenAI", e)
        except httpx.HTTPError as e:
            raise AIConnectionError("OpenAI", str(e), e)

        result = response.json()
        try:
            message = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.debug(f"openai unexpected response: {result}")
            raise AIConnectionError("OpenAI", "Unexpected response format")

        message = clean_response(message or "")
        if not message:
            raise AIConnectionError("OpenAI", "No commit message generated")
        return message

    async def close(self):
        await self.client.aclose()


class OllamaProvider:
    """Ollama provider."""

    is_remote = False

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = DEFAULT_OLLAMA_MODEL,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.client = client or httpx.AsyncClient(timeout=60.0)

    @property
    def name(self) -> str:
        return f"Ollama ({self.model})"

    async def check_connection(self) -> tuple[bool, str]:
        """Check connection."""
        try:
            response = await self.client.get(f"{self.base_url}/api/tags", timeout=5.0)
            response.raise_for_status()
            models = response.json().get("models", [])
            model_names = [m.get("name", "").split(":")[0] for m in models]
            if self.model.split(":")[0] not in model_names:
                return False, f"Model '{self.model}' not found. Available: {model_names}"
            return True, "Connected"
        except httpx.ConnectError:
            return False, f"Cannot connect to Ollama at {self.base_url}"
        except httpx.HTTPError as e:
            return False, f"Ollama: {e}"

    async def generate(self, prompt_text: str, system_prompt_text: str) -> str:
        try:
            response = await self.client.post(
                f"{self.base_url}/api/generate",
                json={
                    "model": self.model,
                    "prompt": prompt_text,
                    "system": system_prompt_text,
                    "stream": False,
                    "options": {
                        "temperature": 0.3,
                        "top_p": 0.9,
                    },
                },
            )
            response.raise_for_status()
        except httpx.ConnectError as e:
            raise AIConnectionError("Ollama", f"Cannot connect to Ollama at {self.base_url}", e)
        except httpx.HTTPError as e:
            raise AIConnectionError("Ollama", str(e), e)

        message = clean_response(response.json().get("response", ""))
        if not message:
            raise AIConnectionError("Ollama", "No commit message generated")
        return message

    async def close(self):
        await self.client.aclose()


class ClaudeCodeProvider:
    """Provider backed by the local ``claude`` CLI in print mode."""

    # The CLI forwards the prompt to Anthropic's API
    is_remote = True

    def __init__(self, model: str = DEFAULT_CLAUDE_CODE_MODEL, timeout: float = CLAUDE_CODE_TIMEOUT):
        self.model = model
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"Claude Code ({self.model})"

    def _build_command(self, full_prompt: str) -> list[str]:
        return [
            "claude",
            "-p",
            full_prompt,
            "--output-format",
            "json",
            "--model",
            self.model,
            "--tools",
            "",
        ]

    @staticmethod
    def _parse_output(stdout: str) -> dict | None:
        try:
            data = json.loads(stdout.strip())
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    async def generate(self, prompt_text: str, system_prompt_text: str) -> str:
        command = self._build_command(f"{system_prompt_text}\n\n{prompt_text}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise AIConnectionError("Claude Code", CLAUDE_INSTALL_HINT, e)

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise AIConnectionError("Claude Code", f"timed out after {self.timeout:.0f}s", e)

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        response = self._parse_output(stdout)

        if process.returncode != 0:
            # A failed run can still carry a usable result
            if response and clean_response(response.get("result") or ""):
                return clean_response(response["result"])
            lowered = stderr.lower()
            if "command not found" in lowered or "not found" in lowered:
                raise AIConnectionError("Claude Code", CLAUDE_INSTALL_HINT)
            if any(word in lowered for word in ("authenticate", "login", "unauthorized")):
                raise AIConnectionError("Claude Code", CLAUDE_LOGIN_HINT)
            raise AIConnectionError(
                "Claude Code", f"exited with code {process.returncode}: {stderr.strip()}"
            )

        if response is None:
            raise AIConnectionError("Claude Code", "Unexpected response format")
        if response.get("subtype") != "success":
            raise AIConnectionError("Claude Code", f"returned error: {response.get('subtype')}")

        message = clean_response(response.get("result") or "")
        if not message:
            raise AIConnectionError("Claude Code", "No commit message generated")
        return message


class AICommitEngine:
    """Composes prompts and turns provider output into commit messages."""

    def __init__(
        self,
        provider: AIProvider,
        options: RunConfiguration | None = None,
        verbose: bool = False,
    ):
        self.provider = provider
        self.options = options or RunConfiguration()
        self.verbose = verbose

    async def rewrite_message(
        self,
        original_message: str,
        commit_hash: str,
        files_changed: Sequence[str] = (),
        diff_text: str = "",
    ) -> RewriteResult:
        """Generate a new message for one commit.

        Never raises: on any failure the original message is kept and the
        error is recorded on the result.
        """
        try:
            request = compose_request(diff_text, files_changed, original_message, self.options)
            new_message = await self.provider.generate(
                request.prompt_text, request.system_prompt_text
            )
        except Exception as e:
            level = logging.WARNING if self.verbose else logging.DEBUG
            logger.log(level, f"generation failed {commit_hash[:8]}: {e}")
            return RewriteResult(
                original=original_message,
                rewritten=original_message,
                commit_hash=commit_hash,
                error=str(e),
            )

        return RewriteResult(
            original=original_message,
            rewritten=new_message,
            commit_hash=commit_hash,
        )

    async def generate_message(
        self, diff_text: str, files_changed: Sequence[str], old_message: str
    ) -> str:
        """Generated message, or ``old_message`` if generation failed."""
        result = await self.rewrite_message(old_message, "", files_changed, diff_text)
        return result.rewritten

    async def close(self):
        if hasattr(self.provider, "close"):
            await self.provider.close()


def get_provider(
    provider_type: str = "openai",
    **kwargs,
) -> AIProvider:
    """Provider factory."""
    model = kwargs.get("model")
    if provider_type == "ollama":
        return OllamaProvider(
            base_url=kwargs.get("ollama_url") or "http://localhost:11434",
            model=model or DEFAULT_OLLAMA_MODEL,
        )
    elif provider_type == "claude-code":
        return ClaudeCodeProvider(model=model or DEFAULT_CLAUDE_CODE_MODEL)
    elif provider_type == "openai":
        api_key = kwargs.get("api_key")
        if not api_key:
            raise ConfigurationError(
                "OpenAI API key is required. Set OPENAI_API_KEY environment variable "
                "or pass it as an option."
            )
        return OpenAIProvider(
            api_key=api_key,
            model=model or DEFAULT_OPENAI_MODEL,
            base_url=kwargs.get("base_url") or "https://api.openai.com/v1",
        )
    else:
        raise ValueError(f"Unknown provider: {provider_type}")
