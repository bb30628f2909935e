from .fuzzy import (
    GOOD_MATCH,
    IMAGE_TRUST_MATCH,
    MINIMUM_MATCH,
    match_score,
    rank_candidates,
    tokenize,
)

__all__ = [
    "GOOD_MATCH",
    "IMAGE_TRUST_MATCH",
    "MINIMUM_MATCH",
    "match_score",
    "rank_candidates",
    "tokenize",
]
