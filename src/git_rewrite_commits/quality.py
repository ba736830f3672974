"""Heuristic quality scoring for existing commit messages."""

import re
from dataclasses import dataclass

from .config import DEFAULT_MIN_QUALITY_SCORE

COMMIT_TYPES = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "test",
    "chore",
    "perf",
    "ci",
    "build",
    "revert",
)

GENERIC_MESSAGES = ("update", "fix", "change", "modify", "commit", "initial", "test", "wip")

MIN_SUBJECT_LENGTH = 10
MAX_SUBJECT_LENGTH = 72
MAX_SCORE = 10

_TYPES = "|".join(COMMIT_TYPES)
CONVENTIONAL_PATTERN = re.compile(rf"^({_TYPES})(\([^)]+\))?: .+")
# The type is optional here, so ": add x" also counts
PRESENT_TENSE_PATTERN = re.compile(rf"^({_TYPES})?(\([^)]+\))?: [a-z]")


@dataclass(frozen=True)
class QualityAssessment:
    """Result of scoring a commit message."""

    score: int
    is_acceptable: bool
    explanation: str


def is_generic_message(message: str) -> bool:
    """Check whether the whole message is a placeholder like "wip" or "update."."""
    lowered = message.lower()
    return any(
        lowered in (generic, f"{generic}.", f"{generic} commit") for generic in GENERIC_MESSAGES
    )


def assess_commit_quality(
    message: str, min_quality_score: int = DEFAULT_MIN_QUALITY_SCORE
) -> QualityAssessment:
    """Score a commit message from 0 to 10.

    Checks are additive and independent:

    - +4 conventional ``type(scope): subject`` format
    - +2 subject line between 10 and 72 characters
    - +2 not a generic placeholder message
    - +1 lowercase letter right after ``type(scope): ``
    - +1 subject does not end with a period

    An empty message scores 3 (not generic, no trailing period).
    """
    score = 0
    reasons = []

    if CONVENTIONAL_PATTERN.match(message):
        score += 4
        reasons.append("follows conventional format")

    subject = message.split("\n")[0]
    if MIN_SUBJECT_LENGTH <= len(subject) <= MAX_SUBJECT_LENGTH:
        score += 2
        reasons.append("appropriate length")
    elif len(subject) < MIN_SUBJECT_LENGTH:
        reasons.append("too short")
    else:
        reasons.append("too long")

    if not is_generic_message(message):
        score += 2
        reasons.append("descriptive")
    else:
        reasons.append("too generic")

    if PRESENT_TENSE_PATTERN.match(message):
        score += 1
        reasons.append("uses present tense")

    if not subject.endswith("."):
        score += 1
        reasons.append("no trailing period")

    return QualityAssessment(
        score=score,
        is_acceptable=score >= min_quality_score,
        explanation=", ".join(reasons),
    )
