"""
Unit tests for grade normalization.
Run from backend: python -m pytest tests/test_grades.py -v
"""
import pytest


@pytest.mark.parametrize("raw,expected", [
    ("a", "A"),
    (" B ", "B"),
    ("e", "E"),
    ("Nutri-Score: c", "C"),
    ("nutriscore d", "D"),
    ("grade A", "A"),
    ("a-plus", "A"),
    ("B+", "B"),
])
def test_normalize_grade_letters(raw, expected):
    """Mixed case, whitespace and known prefixes collapse to one capital letter."""
    from foodlens.scoring.grades import normalize_grade
    assert normalize_grade(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "unknown", "not-applicable", "exempt", "excellent", "F", 3, True])
def test_normalize_grade_unknown(raw):
    """Anything that is not a lone A-E letter becomes "unknown"."""
    from foodlens.scoring.grades import normalize_grade, UNKNOWN_GRADE
    assert normalize_grade(raw) == UNKNOWN_GRADE


def test_grade_rank_orders_best_first():
    """A ranks highest, unknown lowest."""
    from foodlens.scoring.grades import grade_rank
    assert grade_rank("A") > grade_rank("b") > grade_rank("C") > grade_rank("D") > grade_rank("E")
    assert grade_rank("E") > grade_rank("unknown") == 0


def test_is_known_grade():
    from foodlens.scoring.grades import is_known_grade
    assert is_known_grade("c")
    assert not is_known_grade("not-applicable")
