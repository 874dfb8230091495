"""
Competition-label comparison used to corroborate a team match.
"""
from __future__ import annotations

from typing import Optional

_SIGNIFICANT_WORD_MIN_LEN = 4


def _clean(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def competitions_loosely_match(external: Optional[str], internal: Optional[str]) -> bool:
    """Equal, or one label contains the other. A missing label never matches."""
    a, b = _clean(external), _clean(internal)
    if not a or not b:
        return False
    return a == b or a in b or b in a


def competition_score(external: Optional[str], internal: Optional[str]) -> float:
    """
    1.0 for identical labels, 0.8 when one contains the other, otherwise the share of
    significant words (4+ chars) in common when at least two are shared; else 0.0.
    """
    a, b = _clean(external), _clean(internal)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.8
    words_a = [w for w in a.split() if len(w) >= _SIGNIFICANT_WORD_MIN_LEN]
    words_b = [w for w in b.split() if len(w) >= _SIGNIFICANT_WORD_MIN_LEN]
    common = [w for w in words_b if w in words_a]
    if len(common) >= 2:
        return len(common) / max(len(words_a), len(words_b))
    return 0.0
