"""
Unit tests for the fuzzy name scorer.
Run from backend: python -m pytest tests/test_fuzzy.py -v
"""
import pytest


@pytest.mark.parametrize("text", ["KitKat", "nutella", "Coca-Cola Zero", "x y", "Parle-G Glucose Biscuits"])
def test_exact_match_is_100(text):
    """score(x, x) == 100, case-insensitive."""
    from foodlens.matching.fuzzy import match_score
    assert match_score(text, text) == 100
    assert match_score(text.upper(), text.lower()) == 100


def test_containment_is_90():
    from foodlens.matching.fuzzy import match_score
    assert match_score("nutella", "Nutella Hazelnut Spread") == 90
    assert match_score("Nutella Hazelnut Spread 400g", "nutella") == 90


def test_token_overlap_score():
    """3 of max(3, 4) tokens match -> 60; single-char tokens are ignored."""
    from foodlens.matching.fuzzy import match_score, token_overlap_score
    assert token_overlap_score("maggi masala noodles", "noodles masala maggi 2 minute") == pytest.approx(60.0)
    assert match_score("maggi masala noodles", "noodles masala maggi 2 minute") == pytest.approx(60.0)


def test_edit_similarity_catches_typos():
    """One typo in a single-word query still scores well above the minimum match."""
    from foodlens.matching.fuzzy import match_score, edit_similarity_score, MINIMUM_MATCH
    assert edit_similarity_score("kitkat", "kitkot") == pytest.approx(50.0)
    assert match_score("kitkat", "kitkot") > MINIMUM_MATCH


def test_unrelated_product_below_image_trust():
    """'Carrot cake' vs a margarine scores below the image-trust threshold."""
    from foodlens.matching.fuzzy import match_score, IMAGE_TRUST_MATCH
    assert match_score("Carrot cake", "Flora margarine") < IMAGE_TRUST_MATCH


def test_empty_inputs_score_zero():
    from foodlens.matching.fuzzy import match_score
    assert match_score("", "anything") == 0
    assert match_score("query", "   ") == 0


def test_thresholds_ordering():
    from foodlens.matching.fuzzy import GOOD_MATCH, IMAGE_TRUST_MATCH, MINIMUM_MATCH
    assert MINIMUM_MATCH < IMAGE_TRUST_MATCH < GOOD_MATCH


def test_rank_candidates_best_first_with_brand_name():
    """The best of several names per candidate counts; output is sorted best-first."""
    from foodlens.matching.fuzzy import rank_candidates
    candidates = [
        {"name": "Hazelnut spread", "brand": "Generic"},
        {"name": "KitKat 4 Finger", "brand": "Nestle"},
        {"name": "Crunchy bar", "brand": "Mars"},
    ]
    ranked = rank_candidates(
        "nestle kitkat",
        candidates,
        key=lambda c: (c["name"], f"{c['brand']} {c['name']}"),
    )
    assert ranked[0][1]["name"] == "KitKat 4 Finger"
    assert ranked[0][0] == 90
    assert [s for s, _ in ranked] == sorted((s for s, _ in ranked), reverse=True)
