"""
Unit tests for the heuristic eco grade.
Run from backend: python -m pytest tests/test_eco_estimate.py -v
"""


def test_no_signals_is_baseline():
    """No signals -> neutral baseline (50) -> C."""
    from foodlens.scoring.eco_estimate import estimate_eco_score, BASELINE
    est = estimate_eco_score()
    assert est.score == BASELINE
    assert est.grade == "C"
    assert est.reasons == []


def test_grade_cut_points():
    from foodlens.scoring.eco_estimate import grade_for_score
    assert grade_for_score(75) == "A"
    assert grade_for_score(74) == "B"
    assert grade_for_score(60) == "B"
    assert grade_for_score(45) == "C"
    assert grade_for_score(30) == "D"
    assert grade_for_score(29) == "E"


def test_ultra_processed_plastic_imported_meat_is_e():
    """Heavy penalties stack: 50 - 15 - 10 - 8 - 20 = -3 -> E."""
    from foodlens.scoring.eco_estimate import estimate_eco_score
    est = estimate_eco_score(
        nova_group=4,
        packaging="Plastic tray, film",
        origins="Imported from Brazil",
        categories="Beef steaks",
    )
    assert est.score == -3
    assert est.grade == "E"
    assert "category_red_meat:-20" in est.reasons


def test_local_organic_vegetables_in_cardboard_is_a():
    """50 + 10 (NOVA 1) + 8 (cardboard) + 8 (local) + 10 (plant) + 8 (organic) = 94 -> A."""
    from foodlens.scoring.eco_estimate import estimate_eco_score
    est = estimate_eco_score(
        nova_group=1,
        packaging="cardboard box",
        origins="Local farm",
        categories="Vegetables",
        labels=["en:organic"],
    )
    assert est.score == 94
    assert est.grade == "A"


def test_glass_mild_penalty_and_plural_packaging():
    """Glass is -3; 'cans' matches the metal rule through plural tolerance."""
    from foodlens.scoring.eco_estimate import estimate_eco_score
    assert estimate_eco_score(packaging="glass jar").score == 47
    assert estimate_eco_score(packaging="aluminium cans").score == 42


def test_peanut_butter_is_not_dairy():
    """Plant override: 'peanut butter' counts as plant-based, not dairy."""
    from foodlens.scoring.eco_estimate import estimate_eco_score
    est = estimate_eco_score(name="Crunchy peanut butter")
    assert "category_plant:+10" in est.reasons
    assert not any("dairy" in r for r in est.reasons)


def test_dairy_penalty():
    from foodlens.scoring.eco_estimate import estimate_eco_score
    est = estimate_eco_score(categories="Dairies, Cheeses")
    assert est.score == 40
    assert est.grade == "D"


def test_fair_trade_label_tag():
    """OFF label tags like en:fair-trade are recognized."""
    from foodlens.scoring.eco_estimate import estimate_eco_score
    est = estimate_eco_score(labels=["en:fair-trade"])
    assert est.score == 55
