"""
Heuristic environmental grade for products the public database has no
eco grade for. Additive score from a neutral baseline, bucketed to A-E.
Used only as a fallback; a database-supplied grade always wins.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

logger = logging.getLogger(__name__)

BASELINE = 50
# (minimum score, grade), checked top-down
GRADE_CUTS: Sequence[tuple[int, str]] = ((75, "A"), (60, "B"), (45, "C"), (30, "D"))

NOVA_ADJUST = {1: 10, 2: 5, 3: -5, 4: -15}

_PACKAGING_RULES: Sequence[tuple[Sequence[str], int]] = (
    (("plastic", "pet", "polystyrene", "polyethylene", "polypropylene", "film", "sachet"), -10),
    (("metal", "aluminium", "aluminum", "can", "tin", "steel"), -8),
    (("glass", "jar"), -3),
    (("paper", "cardboard", "carton", "kraft", "compostable"), 8),
)

_LOCAL_WORDS = ("local", "locally", "regional", "region", "farm", "domestic", "home grown")
_LONG_HAUL_WORDS = (
    "imported", "import", "overseas", "air freight", "air-freighted",
    "new zealand", "australia", "south america", "brazil", "argentina",
    "peru", "chile", "kenya", "china", "thailand", "vietnam", "indonesia",
)

_RED_MEAT_WORDS = ("beef", "lamb", "mutton", "veal", "steak")
_MEAT_WORDS = ("meat", "pork", "ham", "bacon", "sausage", "chicken", "poultry", "turkey", "salami")
_DAIRY_WORDS = ("dairy", "dairies", "cheese", "milk", "yogurt", "yoghurt", "butter", "cream")
_PLANT_WORDS = (
    "plant-based", "plant based", "vegan", "vegetable", "vegetables", "fruit", "fruits",
    "legume", "legumes", "pulses", "beans", "lentils", "cereal", "cereals", "grains", "nuts",
)
# "peanut butter" is not dairy.
_PLANT_OVERRIDE_PATTERNS = (
    "peanut butter", "almond butter", "cocoa butter", "almond milk", "oat milk",
    "soy milk", "rice milk", "coconut milk", "coconut cream", "plant-based", "plant based",
    "dairy-free", "dairy free", "vegan",
)

_CERTIFICATIONS: Sequence[tuple[Sequence[str], int]] = (
    (("organic", "bio", "eu organic", "usda organic"), 8),
    (("fair trade", "fairtrade", "fair-trade"), 5),
    (("sustainable", "rainforest alliance", "msc", "asc", "utz", "sustainable farming"), 5),
)


def _word_match(text: str, word: str) -> bool:
    """Word-boundary match with plural tolerance: 'can' matches 'can' and 'cans'."""
    return bool(re.search(r"\b" + re.escape(word) + r"(?:e?s)?\b", text))


def _any_word(text: str, words: Iterable[str]) -> bool:
    return any(_word_match(text, w) for w in words)


@dataclass
class EcoEstimate:
    score: int
    grade: str
    reasons: List[str] = field(default_factory=list)


def grade_for_score(score: float) -> str:
    for cut, grade in GRADE_CUTS:
        if score >= cut:
            return grade
    return "E"


def estimate_eco_score(
    nova_group: int = 0,
    packaging: str = "",
    origins: str = "",
    categories: str = "",
    labels: Iterable[str] = (),
    name: str = "",
) -> EcoEstimate:
    """Score the available signals; every adjustment is recorded in reasons."""
    score = BASELINE
    reasons: List[str] = []

    adj = NOVA_ADJUST.get(int(nova_group or 0), 0)
    if adj:
        score += adj
        reasons.append(f"nova_{nova_group}:{adj:+d}")

    pack = (packaging or "").lower()
    for words, delta in _PACKAGING_RULES:
        if pack and _any_word(pack, words):
            score += delta
            reasons.append(f"packaging_{words[0]}:{delta:+d}")

    origin = (origins or "").lower()
    if origin:
        if _any_word(origin, _LOCAL_WORDS):
            score += 8
            reasons.append("origin_local:+8")
        elif _any_word(origin, _LONG_HAUL_WORDS):
            score -= 8
            reasons.append("origin_long_haul:-8")

    cat = f"{categories or ''} {name or ''}".lower()
    plant_override = any(p in cat for p in _PLANT_OVERRIDE_PATTERNS)
    if not plant_override and _any_word(cat, _RED_MEAT_WORDS):
        score -= 20
        reasons.append("category_red_meat:-20")
    elif not plant_override and _any_word(cat, _MEAT_WORDS):
        score -= 15
        reasons.append("category_meat:-15")
    elif not plant_override and _any_word(cat, _DAIRY_WORDS):
        score -= 10
        reasons.append("category_dairy:-10")
    elif plant_override or _any_word(cat, _PLANT_WORDS):
        score += 10
        reasons.append("category_plant:+10")

    label_text = " ".join(l.lower().replace("en:", "").replace("-", " ") for l in labels or ())
    for words, delta in _CERTIFICATIONS:
        if label_text and _any_word(label_text, [w.replace("-", " ") for w in words]):
            score += delta
            reasons.append(f"label_{words[0].replace(' ', '_')}:{delta:+d}")

    grade = grade_for_score(score)
    logger.debug("ECO_ESTIMATE score=%d grade=%s reasons=%s", score, grade, reasons)
    return EcoEstimate(score=score, grade=grade, reasons=reasons)
