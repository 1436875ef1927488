"""
Concept Lexicon

Static subject-domain vocabulary used to tag student turns with the
concepts they mention, plus the math vocabulary that drives the
conceptual-understanding score.
"""

import re
from types import MappingProxyType
from typing import List, Mapping, Tuple


DOMAIN_TERMS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "algebra": ("variables", "equations", "solving", "substitution", "elimination"),
    "geometry": ("shapes", "area", "perimeter", "angles", "theorems"),
    "calculus": ("derivatives", "integrals", "limits", "rates", "optimization"),
    "statistics": ("mean", "median", "distribution", "probability", "correlation"),
    "arithmetic": ("addition", "subtraction", "multiplication", "division"),
    "fractions": ("numerator", "denominator", "equivalent", "simplify"),
})

MATH_VOCABULARY: Tuple[str, ...] = (
    "equation", "variable", "solve", "isolate", "substitute",
    "eliminate", "derivative", "integral", "area", "perimeter",
)


def _word_pattern(term: str) -> "re.Pattern":
    return re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)


class ConceptLexicon:
    """Immutable domain -> keyword table with whole-word matching."""

    def __init__(
        self,
        domain_terms: Mapping[str, Tuple[str, ...]] = DOMAIN_TERMS,
        vocabulary: Tuple[str, ...] = MATH_VOCABULARY,
    ):
        self._domain_terms = MappingProxyType({d: tuple(t) for d, t in domain_terms.items()})
        self._vocabulary = tuple(vocabulary)
        # Precompile once; the tables never change after construction
        self._domain_patterns = {
            domain: tuple(_word_pattern(term) for term in terms)
            for domain, terms in self._domain_terms.items()
        }
        self._vocabulary_patterns = tuple(_word_pattern(term) for term in self._vocabulary)

    def domains(self) -> List[str]:
        return list(self._domain_terms.keys())

    def terms_for(self, domain: str) -> Tuple[str, ...]:
        return self._domain_terms.get(domain, ())

    def extract_concepts(self, text: str) -> List[str]:
        """
        Find the domains mentioned in a piece of text.

        Args:
            text: Free text (student reply or problem statement)

        Returns:
            Domains whose vocabulary appears as a whole word, in table order,
            each at most once.
        """
        if not text:
            return []
        return [
            domain
            for domain, patterns in self._domain_patterns.items()
            if any(p.search(text) for p in patterns)
        ]

    def count_vocabulary(self, text: str) -> int:
        """Number of distinct math vocabulary terms used in the text."""
        if not text:
            return 0
        return sum(1 for p in self._vocabulary_patterns if p.search(text))


DEFAULT_LEXICON = ConceptLexicon()
