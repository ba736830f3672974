"""Redaction of sensitive data in diffs before they are sent to an AI provider."""

import re
from dataclasses import dataclass
from typing import Pattern


@dataclass(frozen=True)
class RedactionRule:
    """Pattern whose matches are replaced with a fixed placeholder."""

    name: str
    pattern: Pattern
    replacement: str
    description: str


# Paths whose diff content is never sent anywhere
SENSITIVE_FILE_PATTERNS: list[Pattern] = [
    re.compile(r"\.env(\.[a-z]+)?$", re.IGNORECASE),  # .env, .env.local, .env.production
    re.compile(r"\.pem$", re.IGNORECASE),
    re.compile(r"\.key$", re.IGNORECASE),
    re.compile(r"\.p12$", re.IGNORECASE),
    re.compile(r"\.pfx$", re.IGNORECASE),
    re.compile(r"id_rsa", re.IGNORECASE),
    re.compile(r"credentials", re.IGNORECASE),
    re.compile(r"secrets?\.(json|ya?ml|toml|ini)$", re.IGNORECASE),
]

HIDDEN_FILE_MARKER = "[{path} CONTENT COMPLETELY HIDDEN FOR SECURITY]"

# Applied in order; each rule sees the output of the previous one.
REDACTION_RULES: list[RedactionRule] = [
    RedactionRule(
        name="openai_key",
        pattern=re.compile(r"sk-[a-zA-Z0-9]{32,}|sk_[a-zA-Z0-9_-]{32,}"),
        replacement="[REDACTED_OPENAI_KEY]",
        description="OpenAI API Key",
    ),
    RedactionRule(
        name="github_token",
        pattern=re.compile(r"(?:ghp|ghs|gho)_[a-zA-Z0-9]{36,}"),
        replacement="[REDACTED_GITHUB_TOKEN]",
        description="GitHub Token",
    ),
    RedactionRule(
        name="slack_token",
        pattern=re.compile(r"xox[pboa]-[a-zA-Z0-9-]{10,}"),
        replacement="[REDACTED_SLACK_TOKEN]",
        description="Slack Token",
    ),
    RedactionRule(
        name="google_client_id",
        pattern=re.compile(r"[a-zA-Z0-9]{32,}\.apps\.googleusercontent\.com"),
        replacement="[REDACTED_GOOGLE_CLIENT_ID]",
        description="Google OAuth Client ID",
    ),
    RedactionRule(
        name="aws_access_key",
        pattern=re.compile(r"AKIA[0-9A-Z]{16}"),
        replacement="[REDACTED_AWS_ACCESS_KEY]",
        description="AWS Access Key ID",
    ),
    # Matches any standalone 40-char base64 token, so it also catches
    # harmless blobs (e.g. full commit hashes). A leading "+" is allowed so
    # that added diff lines are still covered.
    RedactionRule(
        name="aws_secret_key",
        pattern=re.compile(r"(?<![A-Za-z0-9/=])[A-Za-z0-9/+=]{40}(?![A-Za-z0-9/+=])"),
        replacement="[REDACTED_AWS_SECRET_KEY]",
        description="AWS Secret Key",
    ),
    RedactionRule(
        name="stripe_key",
        pattern=re.compile(r"(?:sk|pk)_(?:live|test)_[a-zA-Z0-9]{24,}"),
        replacement="[REDACTED_STRIPE_KEY]",
        description="Stripe Key",
    ),
    RedactionRule(
        name="private_key",
        pattern=re.compile(
            r"-----BEGIN (?:RSA |DSA |EC |OPENSSH )?PRIVATE KEY-----"
            r".*?"
            r"-----END (?:RSA |DSA |EC |OPENSSH )?PRIVATE KEY-----",
            re.DOTALL,
        ),
        replacement="[REDACTED_PRIVATE_KEY]",
        description="Private Key Block",
    ),
    RedactionRule(
        name="jwt_token",
        pattern=re.compile(r"eyJ[a-zA-Z0-9_-]+\.eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+"),
        replacement="[REDACTED_JWT_TOKEN]",
        description="JWT Token",
    ),
    RedactionRule(
        name="password_assignment",
        pattern=re.compile(
            r"(password|passwd|pwd|secret|api_key|apikey|auth_token|access_token|private_key)"
            r"\s*[=:]\s*['\"]([^'\"]{8,})['\"]",
            re.IGNORECASE,
        ),
        replacement=r"\1=[REDACTED]",
        description="Password or Secret Assignment",
    ),
    RedactionRule(
        name="connection_string",
        pattern=re.compile(
            r"(mongodb(?:\+srv)?|postgres(?:ql)?|mysql|redis)://[^@\s]+@[^\s]+",
            re.IGNORECASE,
        ),
        replacement=r"\1://[REDACTED_CONNECTION_STRING]",
        description="Database Connection String",
    ),
    RedactionRule(
        name="bearer_token",
        pattern=re.compile(r"Bearer\s+[a-zA-Z0-9_\-.]+", re.IGNORECASE),
        replacement="Bearer [REDACTED_TOKEN]",
        description="Bearer Token",
    ),
]

_SECTION_START = re.compile(r"^(?=diff --git )", re.MULTILINE)
_HEADER_PATHS = re.compile(r"^diff --git a/(.*?) b/(.*)$")


def is_sensitive_file(file_path: str) -> bool:
    """Check if a file path matches sensitive file patterns."""
    return any(pattern.search(file_path) for pattern in SENSITIVE_FILE_PATTERNS)


def _split_sections(text: str) -> list[str]:
    """Split a unified diff at each ``diff --git`` header, keeping headers."""
    return [section for section in _SECTION_START.split(text) if section]


def hide_sensitive_files(text: str) -> str:
    """Replace the body of every diff section that touches a sensitive file.

    The ``diff --git`` header line is kept verbatim and followed by a single
    marker line naming the file in upper case. Anything before the first
    header passes through untouched.
    """
    output = []
    for section in _split_sections(text):
        header, _, _ = section.partition("\n")
        match = _HEADER_PATHS.match(header)
        if not match:
            output.append(section)
            continue

        old_path, new_path = match.groups()
        if is_sensitive_file(old_path) or is_sensitive_file(new_path):
            marker = HIDDEN_FILE_MARKER.format(path=old_path.upper())
            output.append(f"{header}\n{marker}\n")
        else:
            output.append(section)

    return "".join(output)


def redact_tokens(text: str) -> str:
    """Apply every redaction rule in order."""
    for rule in REDACTION_RULES:
        text = rule.pattern.sub(rule.replacement, text)
    return text


def redact_diff(text: str) -> str:
    """Make a diff safe to send to a remote provider.

    Pure and idempotent: placeholders never match a rule, so redacting twice
    gives the same result as redacting once. Unmatched text is unchanged.
    """
    if not text:
        return text
    return redact_tokens(hide_sensitive_files(text))


def find_redactions(text: str) -> list[str]:
    """Names of the rules that would fire on ``text``, in application order.

    Hidden files are reported as ``sensitive_file:<path>``. The matched
    values themselves are never returned.
    """
    names = []
    for section in _split_sections(text):
        match = _HEADER_PATHS.match(section.partition("\n")[0])
        if match and (is_sensitive_file(match.group(1)) or is_sensitive_file(match.group(2))):
            names.append(f"sensitive_file:{match.group(1)}")

    remaining = hide_sensitive_files(text)
    for rule in REDACTION_RULES:
        remaining, count = rule.pattern.subn(rule.replacement, remaining)
        if count:
            names.append(rule.name)
    return names
