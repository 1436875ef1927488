"""
Response Assessor

Fast heuristic reading of a student's free-text reply:
confidence, misconception flags, conceptual understanding and
depth of thinking. No LLM call, no side effects.
"""

import re
from typing import List, Optional

from socratic_math_tutor.concept_lexicon import ConceptLexicon, DEFAULT_LEXICON
from socratic_math_tutor.session_state import Assessment, MAX_DEPTH


UNCERTAINTY_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\bi don['’]?t know\b",
        r"\bnot sure\b",
        r"\bconfused\b",
        r"\bdon['’]?t understand\b",
        r"\bi need help\b",
        r"\bhelp me\b",
        r"\bstuck\b",
        r"\blost\b",
        r"\bno idea\b",
        r"\bcan['’]?t figure\b",
        r"\bdon['’]?t get it\b",
    )
]

CERTAINTY_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\bi['’]?m sure\b",
        r"\bdefinitely\b",
        r"\bcertainly\b",
        r"\bobviously\b",
        r"\bi know\b",
        r"\bi think i got it\b",
        r"\bthat makes sense\b",
    )
]

HEDGE_PATTERN = re.compile(r"\b(maybe|perhaps|might|could|guess|think so)\b", re.IGNORECASE)

# Overgeneralization
MISCONCEPTION_PATTERNS = [
    ("always", re.compile(r"\balways\b", re.IGNORECASE)),
    ("never", re.compile(r"\bnever\b", re.IGNORECASE)),
    ("every time", re.compile(r"\bevery time\b", re.IGNORECASE)),
]

CAUSAL_PATTERN = re.compile(r"\b(because|since|therefore|so that)\b", re.IGNORECASE)
CONDITIONAL_PATTERN = re.compile(r"\b(if|when)\b.*\bthen\b", re.IGNORECASE | re.DOTALL)
COMPARATIVE_PATTERN = re.compile(r"\b(similar to|different from|like|unlike)\b", re.IGNORECASE)
HYPOTHETICAL_PATTERN = re.compile(r"\b(what if|suppose|imagine)\b", re.IGNORECASE)

DEFAULT_CONFIDENCE = 0.5
UNCERTAIN_CONFIDENCE = 0.2
CERTAIN_CONFIDENCE = 0.9
HEDGED_CONFIDENCE = 0.6
SHORT_REPLY_CAP = 0.4
SHORT_REPLY_LENGTH = 10
DETAILED_REPLY_LENGTH = 50
READINESS_THRESHOLD = 0.6


class ResponseAssessor:
    """
    Scores student replies using static lexicons.

    Every input, including empty strings, produces a valid Assessment.
    """

    def __init__(self, lexicon: Optional[ConceptLexicon] = None):
        self.lexicon = lexicon or DEFAULT_LEXICON

    def assess(self, response: str) -> Assessment:
        """
        Assess a student reply.

        Args:
            response: Raw student text

        Returns:
            Assessment with confidence, misconceptions, readiness,
            conceptual understanding (0-1) and depth of thinking (1-5)
        """
        if response is None or not response.strip():
            return Assessment(
                confidence_level=UNCERTAIN_CONFIDENCE,
                misconceptions=(),
                readiness_for_advancement=False,
                conceptual_understanding=0.0,
                depth_of_thinking=1,
            )

        confidence = self.assess_confidence(response)
        misconceptions = tuple(self.detect_misconceptions(response))

        return Assessment(
            confidence_level=confidence,
            misconceptions=misconceptions,
            readiness_for_advancement=confidence > READINESS_THRESHOLD and not misconceptions,
            conceptual_understanding=self.assess_conceptual_understanding(response),
            depth_of_thinking=self.assess_thinking_depth(response),
        )

    def assess_confidence(self, response: str) -> float:
        is_certain = any(p.search(response) for p in CERTAINTY_PATTERNS)

        if any(p.search(response) for p in UNCERTAINTY_PATTERNS):
            confidence = UNCERTAIN_CONFIDENCE
        elif is_certain:
            confidence = CERTAIN_CONFIDENCE
        elif HEDGE_PATTERN.search(response):
            confidence = HEDGED_CONFIDENCE
        else:
            confidence = DEFAULT_CONFIDENCE

        # Very short replies usually mean the student is struggling
        if len(response.strip()) < SHORT_REPLY_LENGTH and not is_certain:
            confidence = min(confidence, SHORT_REPLY_CAP)

        return confidence

    def detect_misconceptions(self, response: str) -> List[str]:
        return [
            f"Potential overgeneralization detected ('{phrase}')"
            for phrase, pattern in MISCONCEPTION_PATTERNS
            if pattern.search(response)
        ]

    def assess_conceptual_understanding(self, response: str) -> float:
        return min(self.lexicon.count_vocabulary(response) / 3, 1.0)

    def assess_thinking_depth(self, response: str) -> int:
        depth = 1
        if len(response) > DETAILED_REPLY_LENGTH:
            depth += 1
        if CAUSAL_PATTERN.search(response):
            depth += 1
        if CONDITIONAL_PATTERN.search(response):
            depth += 1
        if COMPARATIVE_PATTERN.search(response):
            depth += 1
        if HYPOTHETICAL_PATTERN.search(response):
            depth += 1
        return min(depth, MAX_DEPTH)
