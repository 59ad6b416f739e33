"""String similarity helpers used to match hotels to external listings.

Pure functions, no I/O.
"""

import re
import unicodedata
from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein

# Generic lodging vocabulary that says nothing about which hotel it is
STOP_WORDS = frozenset({
    "hotel", "hotels", "resort", "resorts", "inn", "lodge", "suites", "suite",
    "the", "a", "an", "and", "&", "by", "at", "of", "in", "on",
    "boutique", "luxury", "spa", "beach", "city", "center", "centre",
})

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Lowercase, strip accents and punctuation, collapse whitespace."""
    nfkd = unicodedata.normalize("NFKD", text.lower())
    stripped = "".join(c for c in nfkd if not unicodedata.combining(c))
    spaced = _NON_WORD_RE.sub(" ", stripped)
    return _WHITESPACE_RE.sub(" ", spaced).strip()


def keywords(name: str) -> list[str]:
    """Meaningful words of a hotel name, in order of appearance."""
    return [w for w in normalize(name).split() if len(w) > 1 and w not in STOP_WORDS]


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Intersection over union of two word collections.

    Two empty inputs share no vocabulary, so the result is 0.0 rather than 1.0.
    """
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def levenshtein_ratio(a: str, b: str) -> float:
    """1 - edit distance / length of the longer string (1.0 for two empty strings)."""
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - Levenshtein.distance(a, b)) / longer
