"""
String similarity scoring for OrgConsolidate.

Compares two text values on a 0-100 integer scale using normalization,
a substring-containment shortcut and Levenshtein edit distance.
"""

import math
import logging
from typing import Optional

from Levenshtein import distance as levenshtein_distance

from ..normalize.text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """
    Round a non-negative score to the nearest integer, halves going up.

    Python's built-in ``round`` rounds halves to even, which would turn a
    62.5 composite into 62.
    """
    return int(math.floor(value + 0.5))


class StringSimilarity:
    """
    Deterministic, symmetric text similarity on a 0-100 scale.

    Scoring order:
      1. either normalized value empty -> 0
      2. normalized values equal -> 100
      3. one contains the other -> 100 * len(shorter) / len(longer)
      4. otherwise -> 100 * (max_len - edit_distance) / max_len
    """

    def __init__(self, normalizer: Optional[TextNormalizer] = None):
        """
        Initialize similarity scorer.

        Args:
            normalizer: Text normalizer (defaults to the German policy)
        """
        self.normalizer = normalizer or TextNormalizer()

    def normalize(self, text: Optional[str]) -> str:
        return self.normalizer.normalize(text)

    def similarity(self, text1: Optional[str], text2: Optional[str]) -> int:
        """
        Calculate similarity between two raw text values.

        Args:
            text1: First text value
            text2: Second text value

        Returns:
            Integer similarity score in [0, 100]
        """
        return self.similarity_normalized(self.normalize(text1), self.normalize(text2))

    def similarity_normalized(self, s1: str, s2: str) -> int:
        """
        Calculate similarity between two already normalized values.

        Args:
            s1: First normalized value
            s2: Second normalized value

        Returns:
            Integer similarity score in [0, 100]
        """
        if not s1 or not s2:
            return 0

        if s1 == s2:
            return 100

        shorter, longer = (s1, s2) if len(s1) <= len(s2) else (s2, s1)

        # Containment in either direction
        if shorter in longer:
            return round_half_up(len(shorter) / len(longer) * 100)

        max_len = len(longer)
        edit_distance = levenshtein_distance(s1, s2)
        return round_half_up((max_len - edit_distance) / max_len * 100)


_default_similarity = StringSimilarity()


def similarity(text1: Optional[str], text2: Optional[str]) -> int:
    """
    Convenience function to score two text values with the default policy.

    Args:
        text1: First text value
        text2: Second text value

    Returns:
        Integer similarity score in [0, 100]
    """
    return _default_similarity.similarity(text1, text2)
