"""
Team-name normalization for cross-provider matching.

Steps:
    1. accent folding to ASCII (NFKD + transliteration of letters NFKD keeps)
    2. lowercase, whitespace collapse
    3. club alias table (returns the canonical alias immediately)
    4. generic prefix/suffix stripping, repeated until stable

The alias and affix tables below are data; extend them rather than adding rules.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Mapping, Optional

_SPACE_RE = re.compile(r"\s+")

# Letters that NFKD does not decompose into base + combining mark.
_TRANSLIT = str.maketrans({
    "ø": "o", "Ø": "O",
    "æ": "ae", "Æ": "AE",
    "œ": "oe", "Œ": "OE",
    "ß": "ss",
    "đ": "d", "Đ": "D",
    "ð": "d", "Ð": "D",
    "ł": "l", "Ł": "L",
    "ı": "i",
    "þ": "th", "Þ": "TH",
})

# Canonical name -> known variants (already folded, lowercase).
TEAM_ALIASES: dict[str, tuple[str, ...]] = {
    "inter milan": ("internazionale", "internazionale milano", "fc internazionale milano", "inter"),
    "pafos": ("paphos", "paphos fc", "pafos fc", "pafo", "pafo fc"),
    "manchester united": ("man utd", "man united", "manchester utd", "manchester united fc"),
    "manchester city": ("man city", "manchester city fc"),
    "sporting cp": (
        "sporting clube de portugal", "sporting cp portugal", "sporting du portugal",
        "sporting portugal", "sporting lisbon",
    ),
    "benfica": ("sl benfica", "sport lisboa e benfica", "lisboa e benfica", "lisboa benfica"),
    "copenhagen": ("kobenhavn", "fc kobenhavn", "fc copenhagen"),
    "atletico madrid": ("atletico de madrid", "club atletico de madrid", "atl. madrid"),
    "athletic club": ("athletic bilbao",),
    "marseille": ("olympique de marseille", "olympique marseille", "om marseille", "om"),
    "monaco": ("as monaco", "monaco fc", "as monaco fc"),
    "napoli": ("ssc napoli", "napoli ssc"),
    "psv eindhoven": ("psv",),
    "bodo/glimt": ("fk bodo/glimt", "bodo glimt"),
    "qarabag": ("qarabag agdam", "qarabag agdam fk", "qarabag fk"),
    "galatasaray": ("galatasaray sk", "galatasaray as"),
    "paris saint-germain": ("psg", "paris sg", "paris saint germain"),
    "bayern munich": ("bayern munchen", "fc bayern munchen", "bayern"),
    "union saint-gilloise": ("union st. gilloise", "royale union saint-gilloise", "saint-gilloise"),
}

# Generic affixes, folded and lowercase, with the separating space included.
GENERIC_PREFIXES: tuple[str, ...] = (
    "sporting clube de ",
    "fc ", "ac ", "as ", "cf ", "sc ", "ssc ", "afc ", "fk ", "pae ", "sfp ", "ec ",
    "club ", "royale ", "olympique ", "real ",
)
GENERIC_SUFFIXES: tuple[str, ...] = (
    " clube de portugal",
    " fc", " cf", " ac", " as", " afc", " fk", " sk", " pae", " sfp", " ec",
    " united",
)


def fold_accents(raw: str) -> str:
    """Fold to lowercase ASCII; characters without an ASCII equivalent are dropped."""
    text = unicodedata.normalize("NFKD", raw or "")
    text = text.translate(_TRANSLIT)
    text = text.encode("ascii", "ignore").decode("ascii")
    return text.lower()


def collapse_whitespace(text: str) -> str:
    return _SPACE_RE.sub(" ", text).strip()


def _build_alias_lookup(aliases: Mapping[str, Iterable[str]]) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for canonical, variants in aliases.items():
        key = collapse_whitespace(fold_accents(canonical))
        lookup[key] = key
        for variant in variants:
            lookup.setdefault(collapse_whitespace(fold_accents(variant)), key)
    return lookup


class NameNormalizer:
    """Deterministic, idempotent team-name canonicalizer."""

    def __init__(
        self,
        aliases: Optional[Mapping[str, Iterable[str]]] = None,
        prefixes: Optional[Iterable[str]] = None,
        suffixes: Optional[Iterable[str]] = None,
    ) -> None:
        self._aliases = _build_alias_lookup(TEAM_ALIASES if aliases is None else aliases)
        self._prefixes = tuple(GENERIC_PREFIXES if prefixes is None else prefixes)
        self._suffixes = tuple(GENERIC_SUFFIXES if suffixes is None else suffixes)

    def resolve_alias(self, folded: str) -> Optional[str]:
        return self._aliases.get(folded)

    def _strip_one_affix(self, text: str) -> str:
        for prefix in self._prefixes:
            if text.startswith(prefix) and len(text) > len(prefix):
                return text[len(prefix):].strip()
        for suffix in self._suffixes:
            if text.endswith(suffix) and len(text) > len(suffix):
                return text[: -len(suffix)].strip()
        return text

    def normalize(self, raw: str) -> str:
        text = collapse_whitespace(fold_accents(raw))
        # Alias lookup between strip rounds keeps the result a fixed point.
        while True:
            alias = self._aliases.get(text)
            if alias is not None:
                return alias
            stripped = self._strip_one_affix(text)
            if stripped == text:
                return text
            text = stripped

    __call__ = normalize


_default = NameNormalizer()


def normalize_team_name(raw: str) -> str:
    """Normalize with the default alias and affix tables."""
    return _default.normalize(raw)
