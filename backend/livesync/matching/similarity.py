"""
Character-level similarity between normalized names.
"""
from __future__ import annotations

from rapidfuzz.distance import Levenshtein


def similarity(a: str, b: str) -> float:
    """
    Levenshtein ratio ``1 - distance / max(len(a), len(b))`` in [0.0, 1.0].

    Two empty strings are identical (1.0); one empty string scores 0.0. Symmetric.
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return float(Levenshtein.normalized_similarity(a, b))
