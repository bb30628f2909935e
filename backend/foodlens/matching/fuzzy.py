"""
Query-vs-candidate name scoring on a 0-100 scale.
  exact (case-insensitive)     -> 100
  one contains the other       -> 90
  otherwise max(token overlap * 80, edit similarity * 60)
"""
import re
import logging
from typing import Callable, Iterable, List, Sequence, Tuple, TypeVar

from rapidfuzz.distance import Levenshtein

logger = logging.getLogger(__name__)

GOOD_MATCH = 60
MINIMUM_MATCH = 25
# A database photo is only reused above this; strictly above MINIMUM_MATCH.
IMAGE_TRUST_MATCH = 40

T = TypeVar("T")

_TOKEN_RE = re.compile(r"[^\W_]+", re.UNICODE)


def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").lower()).strip()


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens longer than one character."""
    return [t for t in _TOKEN_RE.findall(_clean(text)) if len(t) > 1]


def _tokens_match(a: str, b: str) -> bool:
    return a == b or a in b or b in a


def token_overlap_score(query: str, candidate: str) -> float:
    q_tokens = tokenize(query)
    c_tokens = tokenize(candidate)
    if not q_tokens or not c_tokens:
        return 0.0
    matched = sum(1 for q in q_tokens if any(_tokens_match(q, c) for c in c_tokens))
    return matched / max(len(q_tokens), len(c_tokens)) * 80


def edit_similarity_score(query: str, candidate: str) -> float:
    q = _clean(query)
    c = _clean(candidate)
    longest = max(len(q), len(c))
    if longest == 0:
        return 0.0
    distance = Levenshtein.distance(q, c)
    return (longest - distance) / longest * 60


def match_score(query: str, candidate: str) -> float:
    q = _clean(query)
    c = _clean(candidate)
    if not q or not c:
        return 0.0
    if q == c:
        return 100.0
    if q in c or c in q:
        return 90.0
    return round(max(token_overlap_score(q, c), edit_similarity_score(q, c)), 2)


def rank_candidates(
    query: str,
    candidates: Iterable[T],
    key: Callable[[T], Sequence[str]],
) -> List[Tuple[float, T]]:
    """
    Score each candidate against the query and sort best-first.
    key returns one or more names per candidate (e.g. name, "brand name");
    the best of them counts. Ties keep the source's original order.
    """
    scored: List[Tuple[float, T]] = []
    for cand in candidates:
        names = [n for n in key(cand) if n]
        best = max((match_score(query, n) for n in names), default=0.0)
        scored.append((best, cand))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    if scored:
        logger.debug("FUZZY rank query=%s top=%.1f n=%d", query[:60], scored[0][0], len(scored))
    return scored
