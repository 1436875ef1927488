"""
Direct Answer Guard

Flags tutor replies that hand the student a final answer instead of
asking a guiding question. Guidance phrasing always wins, so
"Now we have 2x = 8. What can we do next?" is not a violation.
"""

import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from socratic_math_tutor.session_state import Role, Turn


# Checked first; any hit means the reply is guiding, not answering
GUIDANCE_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\?\s*$",
        r"\bwhat\b",
        r"\bhow\b",
        r"\bcan you\b",
        r"\bdo you\b",
    )
]

DEFINITIVE_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"^the (answer|solution|result) is\s*-?\d+",
        r"^the final answer is\b",
        r"^x\s*=\s*-?\d+(\.\d+)?\.?$",
        r"^(therefore|so),?\s*x\s*=\s*-?\d+",
        r"\bwe get\s*x\s*=\s*-?\d+(\.\d+)?\.?$",
        r"\bthis gives us\s*x\s*=\s*-?\d+",
    )
]

MAX_EXAMPLES = 3


def contains_direct_answer(text: str) -> bool:
    """True when the reply states a final answer and carries no guiding question."""
    if not text or not text.strip():
        return False
    trimmed = text.strip()

    if any(p.search(trimmed) for p in GUIDANCE_PATTERNS):
        return False

    return any(p.search(trimmed) for p in DEFINITIVE_PATTERNS)


@dataclass(frozen=True)
class ComplianceReport:
    """Direct-answer rule compliance across a conversation's tutor turns."""
    violations: int
    score: float
    examples: Tuple[str, ...] = ()


def compliance_report(turns: Sequence[Turn]) -> ComplianceReport:
    """
    Score how well the tutor avoided giving answers.

    Args:
        turns: Conversation turns; only tutor turns are inspected

    Returns:
        ComplianceReport with a 0-100 score and up to three example violations
    """
    tutor_turns = [t for t in turns if t.role is Role.TUTOR]
    flagged: List[str] = [
        t.text for t in tutor_turns if t.rule_violation or contains_direct_answer(t.text)
    ]
    if not tutor_turns:
        return ComplianceReport(violations=0, score=100.0)

    score = 100.0 * (len(tutor_turns) - len(flagged)) / len(tutor_turns)
    return ComplianceReport(
        violations=len(flagged),
        score=round(score, 1),
        examples=tuple(flagged[:MAX_EXAMPLES]),
    )
