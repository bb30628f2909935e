"""
Canonical product record. One shape for every source.
Records are frozen: merging two sources means building a new record with
dataclasses.replace().
"""
import math
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from foodlens.scoring.grades import normalize_grade


class DataSource(str, Enum):
    LOCAL_CACHE = "local-cache"
    PUBLIC_DATABASE = "public-database"
    MODEL_GENERATED = "model-generated"
    MODEL_PARTIAL = "model-partial"
    IMAGE_PIPELINE = "image-pipeline"

    @property
    def is_model(self) -> bool:
        return self in (DataSource.MODEL_GENERATED, DataSource.MODEL_PARTIAL)


def _non_negative(value: Any) -> float:
    """Coerce to a finite float >= 0; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        f = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(f) or math.isinf(f) or f < 0:
        return 0.0
    return round(f, 3)


@dataclass(frozen=True)
class Nutrition:
    """Per-100g values. Absent values are 0, never None."""
    energy_kcal: float = 0.0
    energy_kj: float = 0.0
    fat: float = 0.0
    saturated_fat: float = 0.0
    carbohydrates: float = 0.0
    sugars: float = 0.0
    fiber: float = 0.0
    protein: float = 0.0
    salt: float = 0.0
    sodium: float = 0.0

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, _non_negative(getattr(self, f.name)))

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "Nutrition":
        """Build from a loose mapping; derives kJ/kcal and salt/sodium pairs."""
        data = data or {}
        values = {f.name: _non_negative(data.get(f.name)) for f in fields(cls)}
        if not values["energy_kj"] and values["energy_kcal"]:
            values["energy_kj"] = values["energy_kcal"] * 4.184
        if not values["energy_kcal"] and values["energy_kj"]:
            values["energy_kcal"] = values["energy_kj"] / 4.184
        if not values["sodium"] and values["salt"]:
            values["sodium"] = values["salt"] / 2.5
        if not values["salt"] and values["sodium"]:
            values["salt"] = values["sodium"] * 2.5
        return cls(**values)

    @property
    def has_energy(self) -> bool:
        return self.energy_kcal > 0 or self.energy_kj > 0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ProductRecord:
    """
    Normalized product plus provenance.
    confidence is set only for model provenance; uncertain_fields is empty
    unless a model record is below the high-confidence threshold.
    """
    id: str
    barcode: str
    name: str
    data_source: DataSource
    brand: str = ""
    image_url: str = ""
    categories: str = ""
    ingredients_text: str = ""
    nutrition: Nutrition = field(default_factory=Nutrition)
    allergens: tuple[str, ...] = ()
    labels: tuple[str, ...] = ()
    nutri_score: str = "unknown"
    eco_score: str = "unknown"
    nova_group: int = 0
    serving_size: str = ""
    quantity: str = ""
    packaging: str = ""
    origins: str = ""
    stores: str = ""
    countries: str = ""
    resolved_at: str = field(default_factory=_utc_now)
    confidence: Optional[float] = None
    uncertain_fields: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        source = DataSource(self.data_source)
        object.__setattr__(self, "data_source", source)
        object.__setattr__(self, "nutri_score", normalize_grade(self.nutri_score))
        object.__setattr__(self, "eco_score", normalize_grade(self.eco_score))
        object.__setattr__(self, "allergens", tuple(self.allergens))
        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "uncertain_fields", tuple(self.uncertain_fields))
        try:
            nova = int(self.nova_group or 0)
        except (TypeError, ValueError):
            nova = 0
        object.__setattr__(self, "nova_group", nova if 0 <= nova <= 4 else 0)

        if source.is_model:
            if self.confidence is None:
                raise ValueError(f"{source.value} record requires a confidence value")
            if not 0.0 <= self.confidence <= 1.0:
                raise ValueError(f"confidence out of range: {self.confidence}")
        elif self.confidence is not None or self.uncertain_fields:
            raise ValueError(f"{source.value} record must not carry model confidence")

    def with_source(
        self,
        source: DataSource,
        confidence: Optional[float] = None,
        uncertain_fields: tuple[str, ...] = (),
        **changes: Any,
    ) -> "ProductRecord":
        """New record with different provenance (and optional field changes)."""
        return replace(
            self,
            data_source=source,
            confidence=confidence,
            uncertain_fields=uncertain_fields,
            **changes,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "barcode": self.barcode,
            "name": self.name,
            "brand": self.brand,
            "image_url": self.image_url,
            "categories": self.categories,
            "ingredients_text": self.ingredients_text,
            "nutrition": self.nutrition.to_dict(),
            "allergens": list(self.allergens),
            "labels": list(self.labels),
            "nutri_score": self.nutri_score,
            "eco_score": self.eco_score,
            "nova_group": self.nova_group,
            "serving_size": self.serving_size,
            "quantity": self.quantity,
            "packaging": self.packaging,
            "origins": self.origins,
            "stores": self.stores,
            "countries": self.countries,
            "resolved_at": self.resolved_at,
            "data_source": self.data_source.value,
            "confidence": self.confidence,
            "uncertain_fields": list(self.uncertain_fields),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProductRecord":
        """Inverse of to_dict; used for records coming back from the UI layer."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs["nutrition"] = Nutrition.from_mapping(data.get("nutrition"))
        kwargs["allergens"] = tuple(data.get("allergens") or ())
        kwargs["labels"] = tuple(data.get("labels") or ())
        kwargs["uncertain_fields"] = tuple(data.get("uncertain_fields") or ())
        if not kwargs.get("resolved_at"):
            kwargs.pop("resolved_at", None)
        return cls(**kwargs)


@dataclass(frozen=True)
class AlternativeSuggestion:
    """A healthier product suggestion. barcode is empty when unverified."""
    name: str
    brand: str = ""
    barcode: str = ""
    nutri_score: str = "unknown"
    nova_group: int = 0
    image_url: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "nutri_score", normalize_grade(self.nutri_score))
        try:
            nova = int(self.nova_group or 0)
        except (TypeError, ValueError):
            nova = 0
        object.__setattr__(self, "nova_group", nova if 0 <= nova <= 4 else 0)

    @property
    def verified(self) -> bool:
        return bool(self.barcode)

    def to_dict(self) -> dict[str, Any]:
        return {
            "barcode": self.barcode,
            "name": self.name,
            "brand": self.brand,
            "nutri_score": self.nutri_score,
            "nova_group": self.nova_group,
            "image_url": self.image_url,
            "reason": self.reason,
            "verified": self.verified,
        }
