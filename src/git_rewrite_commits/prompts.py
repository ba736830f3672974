"""Prompt composition for commit message generation."""

import re
from dataclasses import dataclass
from typing import Sequence

from .config import RunConfiguration
from .redaction import redact_diff

MAX_DIFF_CHARS = 8000

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates clear, conventional git commit messages."
)

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "zh-cn": "Simplified Chinese",
    "zh-tw": "Traditional Chinese",
    "ar": "Arabic",
    "hi": "Hindi",
    "nl": "Dutch",
    "pl": "Polish",
    "tr": "Turkish",
    "sv": "Swedish",
    "da": "Danish",
    "no": "Norwegian",
    "fi": "Finnish",
}

DEFAULT_FORMAT_INSTRUCTIONS = """1. Follows the format: <type>(<scope>): <subject>
2. Types can be: feat, fix, docs, style, refactor, test, chore, perf, ci, build, revert
3. Scope is optional but recommended (e.g., auth, api, ui)
4. All should be in lowercase"""

# "(feat): message" -> ("(feat)", ": ", "message")
_TEMPLATE_PATTERN = re.compile(r"^(.*?)(\s*[:\-]\s*)(.*)$")


@dataclass(frozen=True)
class GenerationRequest:
    """Prompt pair handed to an AI provider."""

    prompt_text: str
    system_prompt_text: str = SYSTEM_PROMPT


@dataclass(frozen=True)
class ParsedTemplate:
    prefix: str
    separator: str
    example: str


def parse_template(template: str) -> ParsedTemplate:
    """Split a template like ``[JIRA-123] feat: message`` into its parts."""
    match = _TEMPLATE_PATTERN.match(template)
    if match:
        return ParsedTemplate(*match.groups())
    return ParsedTemplate(prefix="", separator=": ", example=template)


def get_language_name(language: str) -> str:
    """Human-readable name for a language code; unknown codes pass through."""
    return LANGUAGE_NAMES.get(language.lower(), language)


def get_language_instruction(language: str | None) -> str:
    if not language or language == "en":
        return "Write the commit message in English."
    return f"Write the commit message in {get_language_name(language)}."


def get_format_instructions(template: str | None) -> str:
    if not template:
        return DEFAULT_FORMAT_INSTRUCTIONS

    if parse_template(template).prefix:
        return f"""Follow this EXACT format: {template}
Where the message part should describe what was changed.
Example: If template is "(feat): message", generate something like "(feat): add user authentication"
Example: If template is "[JIRA-XXX] type: message", generate something like "[JIRA-123] fix: resolve null pointer exception\""""

    return f"Use this format as a guide: {template}"


def build_prompt(
    diff_text: str,
    changed_files: Sequence[str],
    old_message: str,
    options: RunConfiguration,
) -> str:
    """Build the user prompt. The diff is redacted, then truncated."""
    truncated_diff = redact_diff(diff_text)[:MAX_DIFF_CHARS]
    files = "\n".join(changed_files)
    language_instruction = get_language_instruction(options.language)

    if options.custom_prompt_override:
        template_line = f"Format: {options.template}" if options.template else ""
        return f"""You are a git commit message generator. Analyze the following git diff and file changes, then {options.custom_prompt_override}

Old commit message: "{old_message}"

Files changed:
{files}

Git diff (truncated if too long, sensitive data redacted):
{truncated_diff}

{template_line}
{language_instruction}

Return ONLY the commit message, nothing else."""

    return f"""You are a git commit message generator. Analyze the following git diff and file changes, then generate a clear, concise commit message.

Old commit message: "{old_message}"

Files changed:
{files}

Git diff (truncated if too long, sensitive data redacted):
{truncated_diff}

Generate a commit message that:
{get_format_instructions(options.template)}
4. Subject should be clear and descriptive
5. Be concise but informative
6. Focus on WHAT was changed and WHY, not HOW
7. Use present tense ("add" not "added")
8. Don't end with a period
9. Maximum 72 characters for the first line
10. Lowercase the first letter
11. {language_instruction}

Return ONLY the commit message, nothing else. No explanations, just the message."""


def compose_request(
    diff_text: str,
    changed_files: Sequence[str],
    old_message: str,
    options: RunConfiguration | None = None,
) -> GenerationRequest:
    """Compose the prompt pair for one commit."""
    return GenerationRequest(
        prompt_text=build_prompt(diff_text, changed_files, old_message, options or RunConfiguration()),
        system_prompt_text=SYSTEM_PROMPT,
    )
