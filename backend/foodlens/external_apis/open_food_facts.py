"""
Open Food Facts connector (no key required).
Barcode: {OPEN_FOOD_FACTS_URL}/api/v2/product/{barcode}.json
Search:  {OPEN_FOOD_FACTS_URL}/cgi/search.pl?search_terms=...&json=1
"""
import logging
import re
import uuid
from typing import Any, Mapping

import httpx

from foodlens.config import Settings
from foodlens.external_apis.base import SourceResult
from foodlens.external_apis.http_client import get_json
from foodlens.models.product import DataSource, Nutrition, ProductRecord
from foodlens.scoring.eco_estimate import estimate_eco_score
from foodlens.scoring.grades import UNKNOWN_GRADE, normalize_grade
from foodlens.scoring.nutriscore import nutriscore_grade

logger = logging.getLogger(__name__)

SOURCE = "open_food_facts"
PRODUCT_PATH = "/api/v2/product/{barcode}.json"
SEARCH_PATH = "/cgi/search.pl"

# Per-100g value first, then the bare key some older records use.
_NUTRIMENT_KEYS: Mapping[str, tuple[str, ...]] = {
    "energy_kcal": ("energy-kcal_100g", "energy-kcal"),
    "energy_kj": ("energy-kj_100g", "energy-kj", "energy_100g", "energy"),
    "fat": ("fat_100g", "fat"),
    "saturated_fat": ("saturated-fat_100g", "saturated-fat"),
    "carbohydrates": ("carbohydrates_100g", "carbohydrates"),
    "sugars": ("sugars_100g", "sugars"),
    "fiber": ("fiber_100g", "fiber"),
    "protein": ("proteins_100g", "proteins"),
    "salt": ("salt_100g", "salt"),
    "sodium": ("sodium_100g", "sodium"),
}
_ENERGY_KEYS = _NUTRIMENT_KEYS["energy_kcal"] + _NUTRIMENT_KEYS["energy_kj"]
_FRUIT_VEG_KEYS = (
    "fruits-vegetables-nuts_100g",
    "fruits-vegetables-nuts-estimate_100g",
    "fruits-vegetables-nuts-estimate-from-ingredients_100g",
)


def _first_present(nutriments: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for k in keys:
        v = nutriments.get(k)
        if v is not None and v != "":
            return v
    return 0


def energy_reported(product: Mapping[str, Any]) -> bool:
    """True when the record carries any energy key, even a legitimate 0 (water)."""
    nutriments = product.get("nutriments") or {}
    return any(nutriments.get(k) not in (None, "") for k in _ENERGY_KEYS)


def _parse_allergens(product: Mapping[str, Any]) -> tuple[str, ...]:
    """en:milk -> Milk; falls back to the comma-separated allergens text."""
    tags = product.get("allergens_tags") or []
    out: list[str] = []
    if tags:
        for tag in tags:
            name = str(tag).split(":", 1)[-1].replace("-", " ").strip()
            if name:
                out.append(name[0].upper() + name[1:])
    else:
        for part in str(product.get("allergens") or "").split(","):
            name = part.split(":", 1)[-1].strip()
            if name:
                out.append(name)
    return tuple(dict.fromkeys(out))


def _parse_labels(product: Mapping[str, Any]) -> tuple[str, ...]:
    tags = product.get("labels_tags") or []
    if tags:
        return tuple(str(t).split(":", 1)[-1].replace("-", " ").strip() for t in tags if t)
    return tuple(l.strip() for l in str(product.get("labels") or "").split(",") if l.strip())


def _first_brand(brands: Any) -> str:
    return str(brands or "").split(",")[0].strip()


def _text(product: Mapping[str, Any], *keys: str) -> str:
    for k in keys:
        v = product.get(k)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return ""


def _fruit_veg_percent(nutriments: Mapping[str, Any]) -> float:
    try:
        return float(_first_present(nutriments, _FRUIT_VEG_KEYS))
    except (TypeError, ValueError):
        return 0.0


def map_off_product(product: Mapping[str, Any], barcode: str = "") -> ProductRecord:
    """
    Map one OFF product to ProductRecord (public-database provenance).
    Missing grades are filled locally: Nutri-Score from nutrients when energy
    is present, eco grade from the heuristic estimator.
    """
    nutriments = product.get("nutriments") or {}
    nutrition = Nutrition.from_mapping(
        {name: _first_present(nutriments, keys) for name, keys in _NUTRIMENT_KEYS.items()}
    )
    code = str(product.get("code") or barcode or "").strip()
    name = _text(product, "product_name", "product_name_en", "generic_name")
    categories = _text(product, "categories")
    labels = _parse_labels(product)
    packaging = _text(product, "packaging")
    origins = _text(product, "origins")
    try:
        nova = int(product.get("nova_group") or 0)
    except (TypeError, ValueError):
        nova = 0

    nutri = normalize_grade(product.get("nutriscore_grade"))
    if nutri == UNKNOWN_GRADE and nutrition.has_energy:
        nutri = nutriscore_grade(nutrition, _fruit_veg_percent(nutriments))
        logger.debug("OPEN_FOOD_FACTS computed nutriscore code=%s grade=%s", code, nutri)

    eco = normalize_grade(product.get("ecoscore_grade"))
    if eco == UNKNOWN_GRADE:
        eco = estimate_eco_score(
            nova_group=nova,
            packaging=packaging,
            origins=origins,
            categories=categories,
            labels=labels,
            name=name,
        ).grade

    return ProductRecord(
        id=f"off_{code}" if code else f"off_{uuid.uuid4().hex[:12]}",
        barcode=code,
        name=name,
        brand=_first_brand(product.get("brands")),
        image_url=_text(product, "image_front_url", "image_url"),
        categories=categories,
        ingredients_text=_text(product, "ingredients_text", "ingredients_text_en"),
        nutrition=nutrition,
        allergens=_parse_allergens(product),
        labels=labels,
        nutri_score=nutri,
        eco_score=eco,
        nova_group=nova,
        serving_size=_text(product, "serving_size"),
        quantity=_text(product, "quantity"),
        packaging=packaging,
        origins=origins,
        stores=_text(product, "stores"),
        countries=_text(product, "countries"),
        data_source=DataSource.PUBLIC_DATABASE,
    )


class OpenFoodFactsClient:
    """Async Open Food Facts adapter. One attempt per call, no retries."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._settings = settings

    @property
    def enabled(self) -> bool:
        return self._settings.off_enabled

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._settings.user_agent}

    async def fetch_by_barcode(self, barcode: str) -> SourceResult:
        if not self.enabled:
            return SourceResult("unavailable", SOURCE, raw_response_summary="disabled")
        code = (barcode or "").strip()
        if not re.fullmatch(r"\d{6,14}", code):
            return SourceResult("empty", SOURCE, raw_response_summary="invalid_barcode")

        url = self._settings.off_url + PRODUCT_PATH.format(barcode=code)
        data, err = await get_json(
            self._client, url, timeout=self._settings.off_timeout, headers=self._headers()
        )
        if err == "HTTP 404":
            logger.info("OPEN_FOOD_FACTS barcode not found barcode=%s", code)
            return SourceResult("empty", SOURCE, raw_response_summary="not_found")
        if err is not None:
            logger.warning("OPEN_FOOD_FACTS barcode fetch failed barcode=%s error=%s", code, err)
            return SourceResult("failed", SOURCE, raw_response_summary=f"error:{err[:80]}")
        if not isinstance(data, dict) or data.get("status") != 1 or not data.get("product"):
            logger.info("OPEN_FOOD_FACTS barcode not found barcode=%s", code)
            return SourceResult("empty", SOURCE, raw_response_summary="not_found")

        product = data["product"]
        record = map_off_product(product, barcode=code)
        complete = energy_reported(product)
        logger.info(
            "OPEN_FOOD_FACTS barcode resolved barcode=%s name=%s energy_reported=%s",
            code, record.name[:60], complete,
        )
        return SourceResult(
            "ok", SOURCE, [record],
            raw_response_summary=f"product_name={record.name[:80]}",
            complete=complete,
        )

    async def search(self, query: str, page_size: int = 20) -> SourceResult:
        """Free-text search. Records keep the database's ranking; re-rank locally."""
        if not self.enabled:
            return SourceResult("unavailable", SOURCE, raw_response_summary="disabled")
        if not query or not query.strip():
            return SourceResult("empty", SOURCE, raw_response_summary="empty_query")

        q = query.strip()[:200]
        params = {
            "search_terms": q,
            "search_simple": 1,
            "action": "process",
            "json": 1,
            "page_size": page_size,
        }
        data, err = await get_json(
            self._client,
            self._settings.off_url + SEARCH_PATH,
            params=params,
            timeout=self._settings.off_timeout,
            headers=self._headers(),
        )
        if err is not None:
            logger.warning("OPEN_FOOD_FACTS search failed query=%s error=%s", q[:60], err)
            return SourceResult("failed", SOURCE, raw_response_summary=f"error:{err[:80]}")

        raw_products = (data or {}).get("products") if isinstance(data, dict) else None
        records: list[ProductRecord] = []
        for product in raw_products or []:
            if not isinstance(product, dict):
                continue
            record = map_off_product(product)
            if record.name:
                records.append(record)
        if not records:
            logger.info("OPEN_FOOD_FACTS no results query=%s", q[:60])
            return SourceResult("empty", SOURCE, raw_response_summary="no_results")

        logger.info("OPEN_FOOD_FACTS search query=%s results=%d", q[:60], len(records))
        return SourceResult(
            "ok", SOURCE, records,
            raw_response_summary=f"count={len(records)} first={records[0].name[:60]}",
        )

