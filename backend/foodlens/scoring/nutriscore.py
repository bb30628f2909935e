"""
Nutri-Score (2017 general-food tables) from per-100g nutrients.
Only used when the public database reports nutrition but no grade.
"""
from bisect import bisect_left
from dataclasses import dataclass
from typing import Sequence

from foodlens.models.product import Nutrition

# Negative components: points = number of thresholds the value exceeds.
ENERGY_KJ_THRESHOLDS = (335, 670, 1005, 1340, 1675, 2010, 2345, 2680, 3015, 3350)
SUGARS_THRESHOLDS = (4.5, 9, 13.5, 18, 22.5, 27, 31, 36, 40, 45)
SATURATED_FAT_THRESHOLDS = (1, 2, 3, 4, 5, 6, 7, 8, 9, 10)
SODIUM_MG_THRESHOLDS = (90, 180, 270, 360, 450, 540, 630, 720, 810, 900)

# Positive components: points = number of thresholds the value reaches.
FIBER_THRESHOLDS = (0.9, 1.9, 2.8, 3.7, 4.7)
PROTEIN_THRESHOLDS = (1.6, 3.2, 4.8, 6.4, 8.0)


def _points_above(value: float, thresholds: Sequence[float]) -> int:
    """Count thresholds strictly below value (value <= t scores 0 for that step)."""
    return bisect_left(thresholds, value)


def _points_at_least(value: float, thresholds: Sequence[float]) -> int:
    return sum(1 for t in thresholds if value >= t)


@dataclass(frozen=True)
class NutriScoreDetails:
    energy_points: int
    sugar_points: int
    saturated_fat_points: int
    sodium_points: int
    fiber_points: int
    protein_points: int
    fruit_veg_points: int

    @property
    def negative_points(self) -> int:
        return self.energy_points + self.sugar_points + self.saturated_fat_points + self.sodium_points

    @property
    def positive_points(self) -> int:
        # Protein does not count once negatives reach 11, unless fruit/veg is maxed.
        if self.negative_points >= 11 and self.fruit_veg_points < 5:
            return self.fiber_points + self.fruit_veg_points
        return self.fiber_points + self.protein_points + self.fruit_veg_points

    @property
    def score(self) -> int:
        return self.negative_points - self.positive_points


def compute_nutriscore(nutrition: Nutrition, fruit_veg_percent: float = 0.0) -> NutriScoreDetails:
    energy_kj = nutrition.energy_kj or nutrition.energy_kcal * 4.184
    sodium_mg = (nutrition.sodium or nutrition.salt / 2.5) * 1000
    return NutriScoreDetails(
        energy_points=_points_above(energy_kj, ENERGY_KJ_THRESHOLDS),
        sugar_points=_points_above(nutrition.sugars, SUGARS_THRESHOLDS),
        saturated_fat_points=_points_above(nutrition.saturated_fat, SATURATED_FAT_THRESHOLDS),
        sodium_points=_points_above(sodium_mg, SODIUM_MG_THRESHOLDS),
        fiber_points=_points_at_least(nutrition.fiber, FIBER_THRESHOLDS),
        protein_points=_points_at_least(nutrition.protein, PROTEIN_THRESHOLDS),
        fruit_veg_points=_fruit_veg_points(fruit_veg_percent),
    )


def _fruit_veg_points(percent: float) -> int:
    if percent > 80:
        return 5
    if percent > 60:
        return 2
    if percent > 40:
        return 1
    return 0


def grade_for_score(score: int) -> str:
    if score <= -1:
        return "A"
    if score <= 2:
        return "B"
    if score <= 10:
        return "C"
    if score <= 18:
        return "D"
    return "E"


def nutriscore_grade(nutrition: Nutrition, fruit_veg_percent: float = 0.0) -> str:
    """Grade A-E, or "unknown" when there is no energy value to score."""
    if not nutrition.has_energy:
        return "unknown"
    return grade_for_score(compute_nutriscore(nutrition, fruit_veg_percent).score)
