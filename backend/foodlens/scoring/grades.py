"""
Deterministic grade normalization.
Sources report grades as "a", " B ", "nutri-score c", "unknown", "not-applicable"
or null; everything downstream only ever sees one of GRADES or UNKNOWN_GRADE.
"""
import re
import logging
from typing import Any

logger = logging.getLogger(__name__)

GRADES = ("A", "B", "C", "D", "E")
UNKNOWN_GRADE = "unknown"

# Higher is better; unknown sorts last.
GRADE_RANK: dict[str, int] = {"A": 5, "B": 4, "C": 3, "D": 2, "E": 1, UNKNOWN_GRADE: 0}

# Prefixes some sources put in front of the letter
_GRADE_PREFIXES = re.compile(
    r"^(?:nutri[\s\-_]?score|eco[\s\-_]?score|green[\s\-_]?score|grade|score)[\s:\-_]*",
    re.IGNORECASE,
)


def normalize_grade(value: Any) -> str:
    """
    Canonicalize a grade to "A".."E" or "unknown".
    Only the first character after known prefixes counts, so "b" -> "B",
    "Nutri-Score: c" -> "C", "a-plus" -> "A"; anything else is "unknown".
    """
    if value is None or isinstance(value, bool):
        return UNKNOWN_GRADE
    t = str(value).strip()
    if not t:
        return UNKNOWN_GRADE
    t = _GRADE_PREFIXES.sub("", t).strip()
    if not t:
        return UNKNOWN_GRADE
    first = t[0].upper()
    if first in GRADES:
        # "unknown" / "not-applicable" start with letters outside A-E, but "exempt"
        # would otherwise pass as E: require a lone letter or a letter + separator.
        if len(t) == 1 or not t[1].isalpha():
            return first
        logger.debug("GRADE rejected word-like grade raw=%s", value)
    return UNKNOWN_GRADE


def grade_rank(grade: Any) -> int:
    return GRADE_RANK.get(normalize_grade(grade), 0)


def is_known_grade(grade: Any) -> bool:
    return normalize_grade(grade) != UNKNOWN_GRADE
