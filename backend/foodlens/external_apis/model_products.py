"""
Model adapter: turns generative-model answers into ProductRecords.
Gateway exceptions and unparseable output become SourceResult statuses;
nothing here raises to the orchestrator.
"""
import logging
import uuid
from typing import Any, Mapping, Optional, Sequence

from foodlens.external_apis.base import SourceResult
from foodlens.external_apis.model_gateway import (
    ModelGateway,
    ModelGatewayError,
    ModelUnavailableError,
    image_part,
    text_part,
)
from foodlens.external_apis import prompts
from foodlens.models.product import Nutrition, ProductRecord
from foodlens.parsing.json_extract import extract_json_object
from foodlens.scoring.confidence import (
    is_usable,
    model_source_for,
    parse_confidence,
    uncertain_fields_for,
)
from foodlens.scoring.eco_estimate import estimate_eco_score
from foodlens.scoring.grades import UNKNOWN_GRADE, normalize_grade
from foodlens.scoring.nutriscore import nutriscore_grade

logger = logging.getLogger(__name__)

SOURCE = "model"


def synthetic_barcode() -> str:
    """Placeholder barcode for records with no real one. Never numeric."""
    return f"ai-{uuid.uuid4().hex[:12]}"


def _str(data: Mapping[str, Any], key: str) -> str:
    v = data.get(key)
    return v.strip() if isinstance(v, str) else ""


def _str_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(v).strip() for v in value if str(v).strip())


def record_from_model(data: Mapping[str, Any], fallback_name: str = "") -> Optional[ProductRecord]:
    """
    Build a model-provenance record from extracted JSON.
    Returns None when the answer has no usable name.
    """
    name = _str(data, "name") or fallback_name.strip()
    if len(name) <= 2:
        return None

    nutrition_raw = data.get("nutrition")
    if not isinstance(nutrition_raw, dict):
        nutrition_raw = data
    nutrition = Nutrition.from_mapping(nutrition_raw)

    confidence = parse_confidence(data.get("confidence"))
    categories = _str(data, "categories")
    labels = _str_list(data.get("labels"))
    packaging = _str(data, "packaging")
    origins = _str(data, "origins")
    try:
        nova = int(data.get("nova_group") or 0)
    except (TypeError, ValueError):
        nova = 0

    nutri = normalize_grade(data.get("nutri_score"))
    if nutri == UNKNOWN_GRADE and nutrition.has_energy:
        nutri = nutriscore_grade(nutrition)
    eco = normalize_grade(data.get("eco_score"))
    if eco == UNKNOWN_GRADE:
        eco = estimate_eco_score(
            nova_group=nova, packaging=packaging, origins=origins,
            categories=categories, labels=labels, name=name,
        ).grade

    barcode = synthetic_barcode()
    return ProductRecord(
        id=f"model_{barcode[3:]}",
        barcode=barcode,
        name=name,
        brand=_str(data, "brand"),
        categories=categories,
        ingredients_text=_str(data, "ingredients_text"),
        nutrition=nutrition,
        allergens=_str_list(data.get("allergens")),
        labels=labels,
        nutri_score=nutri,
        eco_score=eco,
        nova_group=nova,
        serving_size=_str(data, "serving_size"),
        quantity=_str(data, "quantity"),
        packaging=packaging,
        origins=origins,
        data_source=model_source_for(confidence),
        confidence=confidence,
        uncertain_fields=uncertain_fields_for(confidence),
    )


class ModelProductSource:
    """Text lookup, nutrition fill and image recognition via the Model Gateway."""

    def __init__(self, gateway: ModelGateway):
        self._gateway = gateway

    @property
    def configured(self) -> bool:
        return self._gateway.configured

    async def _ask(self, parts: Sequence[dict], purpose: str, fallback_name: str = "") -> SourceResult:
        try:
            raw = await self._gateway.generate(parts)
        except ModelUnavailableError as e:
            return SourceResult("unavailable", SOURCE, raw_response_summary=str(e))
        except ModelGatewayError as e:
            logger.warning("MODEL_PRODUCTS %s gateway failed error=%s", purpose, e)
            return SourceResult("failed", SOURCE, raw_response_summary=f"error:{str(e)[:80]}")

        data = extract_json_object(raw)
        if data is None:
            logger.warning("MODEL_PRODUCTS %s unparseable response len=%d", purpose, len(raw))
            return SourceResult("empty", SOURCE, raw_response_summary="unparseable")

        record = record_from_model(data, fallback_name=fallback_name)
        if record is None:
            logger.info("MODEL_PRODUCTS %s no usable name", purpose)
            return SourceResult("empty", SOURCE, raw_response_summary="no_name")
        logger.info(
            "MODEL_PRODUCTS %s name=%s confidence=%.2f source=%s",
            purpose, record.name[:60], record.confidence, record.data_source.value,
        )
        return SourceResult(
            "ok", SOURCE, [record],
            raw_response_summary=f"name={record.name[:60]} confidence={record.confidence}",
        )

    async def generate_product(self, query: str) -> SourceResult:
        """Full record for a free-text query. Records below the minimum confidence are dropped."""
        result = await self._ask([text_part(prompts.product_prompt(query))], "text")
        if result.ok and not is_usable(result.best.confidence):
            logger.info("MODEL_PRODUCTS text low confidence query=%s confidence=%.2f",
                        query[:60], result.best.confidence)
            return SourceResult("empty", SOURCE, raw_response_summary=f"low_confidence:{result.best.confidence}")
        return result

    async def fill_nutrition(self, name: str, brand: str = "") -> SourceResult:
        """Nutrition and grades for a product the database knows by name only."""
        result = await self._ask(
            [text_part(prompts.nutrition_fill_prompt(name, brand))], "fill", fallback_name=name
        )
        if result.ok and not (is_usable(result.best.confidence) and result.best.nutrition.has_energy):
            return SourceResult("empty", SOURCE, raw_response_summary="unusable_fill")
        return result

    async def recognize_image(self, image: bytes, mime_type: str) -> SourceResult:
        """Recognition keeps low-confidence answers; the caller applies its own threshold."""
        return await self._ask([text_part(prompts.image_prompt()), image_part(image, mime_type)], "image")
