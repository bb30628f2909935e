"""
Confidence bands for model-produced records.
  HIGH    -> model-generated, nothing flagged
  MEDIUM  -> minimum for accepting an image recognition
  MINIMUM -> below this a model record is unusable
Model records under HIGH list UNCERTAIN_FIELDS so the UI can mark them.
"""
from typing import Any, Optional

from foodlens.models.product import DataSource

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5
MINIMUM_CONFIDENCE = 0.3
DEFAULT_MODEL_CONFIDENCE = 0.5

UNCERTAIN_FIELDS: tuple[str, ...] = (
    "energy_kcal",
    "energy_kj",
    "fat",
    "saturated_fat",
    "carbohydrates",
    "sugars",
    "fiber",
    "protein",
    "salt",
    "sodium",
    "nutri_score",
    "nova_group",
)


def parse_confidence(value: Any, default: float = DEFAULT_MODEL_CONFIDENCE) -> float:
    """
    Model self-reported confidence -> [0, 1].
    Accepts 0-1 floats, 0-100 percentages and strings like "85%".
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
        if not value:
            return default
    try:
        conf = float(value)
    except (TypeError, ValueError):
        return default
    if conf != conf:  # NaN
        return default
    if 1.0 < conf <= 100.0:
        conf = conf / 100.0
    return round(min(1.0, max(0.0, conf)), 4)


def uncertain_fields_for(confidence: Optional[float]) -> tuple[str, ...]:
    if confidence is None or confidence >= HIGH_CONFIDENCE:
        return ()
    return UNCERTAIN_FIELDS


def model_source_for(confidence: float) -> DataSource:
    if confidence >= HIGH_CONFIDENCE:
        return DataSource.MODEL_GENERATED
    return DataSource.MODEL_PARTIAL


def is_usable(confidence: Optional[float]) -> bool:
    return confidence is not None and confidence >= MINIMUM_CONFIDENCE
