"""
Resolution Orchestrator: which sources to ask, in what order, and how to
merge what they return. One entry point per input modality; every call
returns a ResolutionOutcome and never raises.

Barcode: cache -> database -> (model nutrition fill when energy is missing)
Text:    cache -> database + model concurrently
Image:   model recognition -> cache by name -> database search -> model guess
"""
import asyncio
import logging
import re
from dataclasses import replace
from typing import Awaitable, Iterable, List, Tuple

import httpx

from foodlens.config import Settings
from foodlens.external_apis.base import SourceResult
from foodlens.external_apis.image_resolver import ImageResolver
from foodlens.external_apis.model_gateway import ModelGateway
from foodlens.external_apis.model_products import ModelProductSource
from foodlens.external_apis.open_food_facts import OpenFoodFactsClient
from foodlens.matching.fuzzy import GOOD_MATCH, IMAGE_TRUST_MATCH, MINIMUM_MATCH, rank_candidates, tokenize
from foodlens.models.outcome import ResolutionOutcome, ResolutionStatus
from foodlens.models.product import DataSource, ProductRecord
from foodlens.scan_cache import ScanCache
from foodlens.scoring.confidence import MEDIUM_CONFIDENCE, is_usable, uncertain_fields_for
from foodlens.scoring.grades import is_known_grade

logger = logging.getLogger(__name__)

MAX_TEXT_RESULTS = 5
_BARCODE_RE = re.compile(r"^\d{6,14}$")


async def _guarded(call: Awaitable[SourceResult], source: str) -> SourceResult:
    """Adapters should not raise; if one does, it counts as a failed source."""
    try:
        return await call
    except Exception as e:
        logger.warning("RESOLVE adapter raised source=%s error=%s: %s", source, type(e).__name__, e)
        return SourceResult("failed", source, raw_response_summary=f"exception:{type(e).__name__}")


def _exhausted(results: Iterable[SourceResult], message: str) -> ResolutionOutcome:
    """Outcome once every source in the chain came back without a usable record."""
    statuses = {r.status for r in results}
    if statuses == {"unavailable"}:
        return ResolutionOutcome.failed(ResolutionStatus.UNAVAILABLE, "No product source is configured.")
    if statuses and statuses <= {"failed", "unavailable"}:
        return ResolutionOutcome.failed(ResolutionStatus.ERROR, "Product sources could not be reached.")
    return ResolutionOutcome.failed(ResolutionStatus.NOT_FOUND, message)


def _names(record: ProductRecord) -> Tuple[str, ...]:
    return (record.name, f"{record.brand} {record.name}".strip())


def _leading_word(text: str) -> str:
    tokens = tokenize(text)
    return tokens[0] if tokens else ""


def merge_model_nutrition(db_record: ProductRecord, model_record: ProductRecord) -> ProductRecord:
    """
    Database identity (name, brand, image, allergens) plus model nutrition and
    grades. Always model-partial: the record is only partly model-made.
    """
    confidence = model_record.confidence
    return db_record.with_source(
        DataSource.MODEL_PARTIAL,
        confidence=confidence,
        uncertain_fields=uncertain_fields_for(confidence),
        nutrition=model_record.nutrition,
        nutri_score=model_record.nutri_score if is_known_grade(model_record.nutri_score) else db_record.nutri_score,
        eco_score=model_record.eco_score if is_known_grade(model_record.eco_score) else db_record.eco_score,
        nova_group=model_record.nova_group or db_record.nova_group,
        allergens=db_record.allergens or model_record.allergens,
        categories=db_record.categories or model_record.categories,
        ingredients_text=db_record.ingredients_text or model_record.ingredients_text,
    )


class ProductResolver:
    def __init__(
        self,
        database: OpenFoodFactsClient,
        model: ModelProductSource,
        images: ImageResolver,
        cache: ScanCache,
    ):
        self.database = database
        self.model = model
        self.images = images
        self.cache = cache

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings, cache: ScanCache) -> "ProductResolver":
        return cls(
            database=OpenFoodFactsClient(client, settings),
            model=ModelProductSource(ModelGateway(client, settings)),
            images=ImageResolver(client, settings),
            cache=cache,
        )

    def _from_cache(self, records: List[ProductRecord]) -> List[ProductRecord]:
        return [r.with_source(DataSource.LOCAL_CACHE) for r in records]

    async def _image_for(self, record: ProductRecord) -> str:
        """Validated image URL for a database record, "" when none checks out."""
        try:
            return await self.images.resolve_for(record)
        except Exception as e:
            logger.warning("RESOLVE image check raised barcode=%s error=%s: %s", record.barcode, type(e).__name__, e)
            return ""

    async def _with_images(self, records: List[ProductRecord]) -> List[ProductRecord]:
        """Replace each record's image with its validated one, checked in parallel."""
        images = await asyncio.gather(*(self._image_for(r) for r in records))
        return [replace(r, image_url=image) for r, image in zip(records, images)]

    # --- Barcode ---
    async def resolve_barcode(self, barcode: str) -> ResolutionOutcome:
        code = (barcode or "").strip()
        if not code:
            return ResolutionOutcome.failed(ResolutionStatus.INVALID_INPUT, "Barcode is empty.")

        cached = self.cache.get_by_barcode(code)
        if cached is not None:
            logger.info("RESOLVE_BARCODE cache_hit barcode=%s", code)
            return ResolutionOutcome.found(*self._from_cache([cached]))

        if not _BARCODE_RE.match(code):
            return ResolutionOutcome.failed(ResolutionStatus.INVALID_INPUT, "Barcode must be 6-14 digits.")

        db = await _guarded(self.database.fetch_by_barcode(code), "open_food_facts")
        if not db.ok:
            logger.info("RESOLVE_BARCODE database miss barcode=%s status=%s", code, db.status)
            return _exhausted([db], "Product not found. Try searching by name.")

        record = db.best
        record = replace(record, image_url=await self._image_for(record))

        if db.complete or len(record.name.strip()) <= 2:
            logger.info("RESOLVE_BARCODE database barcode=%s complete=%s", code, db.complete)
            return ResolutionOutcome.found(record)

        fill = await _guarded(self.model.fill_nutrition(record.name, record.brand), "model")
        if not fill.ok:
            logger.info("RESOLVE_BARCODE fill unavailable barcode=%s status=%s", code, fill.status)
            return ResolutionOutcome.found(record)
        merged = merge_model_nutrition(record, fill.best)
        logger.info("RESOLVE_BARCODE model_partial barcode=%s confidence=%.2f", code, merged.confidence)
        return ResolutionOutcome.found(merged)

    # --- Free text ---
    async def resolve_text(self, query: str) -> ResolutionOutcome:
        q = re.sub(r"\s+", " ", query or "").strip()
        if len(q) < 2:
            return ResolutionOutcome.failed(ResolutionStatus.INVALID_INPUT, "Search query is too short.")

        cached = self.cache.find_by_name(q, limit=MAX_TEXT_RESULTS)
        if cached:
            logger.info("RESOLVE_TEXT cache_hit query=%s n=%d", q[:60], len(cached))
            return ResolutionOutcome.found(*self._from_cache(cached))

        db_task = asyncio.ensure_future(_guarded(self.database.search(q), "open_food_facts"))
        model_task = asyncio.ensure_future(_guarded(self.model.generate_product(q), "model"))

        db = await db_task
        ranked = rank_candidates(q, db.products, key=_names) if db.ok else []
        best_score, best = ranked[0] if ranked else (0.0, None)
        matches = [r for score, r in ranked if score >= MINIMUM_MATCH][:MAX_TEXT_RESULTS]
        # ranked is sorted, so the good matches are a prefix of matches
        good_count = sum(1 for score, _ in ranked[:len(matches)] if score >= GOOD_MATCH)

        # Database images only count once validated; the model keeps running meanwhile
        validated: List[ProductRecord] = []
        if good_count:
            validated = await self._with_images(matches)
            if validated[0].image_url:
                model_task.cancel()
                logger.info("RESOLVE_TEXT database query=%s score=%.1f n=%d", q[:60], best_score, len(validated))
                return ResolutionOutcome.found(*validated)

        model = await model_task
        if model.ok and is_usable(model.best.confidence):
            record = model.best
            if best is not None and best_score >= IMAGE_TRUST_MATCH:
                image = validated[0].image_url if validated else await self._image_for(best)
                if image:
                    record = replace(record, image_url=image)
            else:
                logger.debug("RESOLVE_TEXT no image donor query=%s best_score=%.1f", q[:60], best_score)
            logger.info(
                "RESOLVE_TEXT model query=%s confidence=%.2f source=%s",
                q[:60], record.confidence, record.data_source.value,
            )
            return ResolutionOutcome.found(record)

        if good_count:
            logger.info("RESOLVE_TEXT database fallback query=%s score=%.1f n=%d", q[:60], best_score, good_count)
            return ResolutionOutcome.found(*validated[:good_count])

        logger.info("RESOLVE_TEXT not_found query=%s db=%s model=%s", q[:60], db.status, model.status)
        return _exhausted([db, model], f'Could not find "{q}". Add the brand name or scan the barcode.')

    # --- Image ---
    async def resolve_image(self, image: bytes, mime_type: str, image_ref: str = "") -> ResolutionOutcome:
        """
        image_ref is the caller's reference to the captured photo; every record
        returned from this flow shows that photo, never a database image.
        """
        if not image:
            return ResolutionOutcome.failed(ResolutionStatus.INVALID_INPUT, "Image is empty.")
        if not (mime_type or "").lower().startswith("image/"):
            return ResolutionOutcome.failed(ResolutionStatus.INVALID_INPUT, f"Unsupported type: {mime_type}")

        recognized = await _guarded(self.model.recognize_image(image, mime_type.lower()), "model")
        if recognized.status in ("unavailable", "failed"):
            return _exhausted([recognized], "")
        guess = recognized.best
        if guess is None or guess.confidence < MEDIUM_CONFIDENCE:
            logger.info(
                "RESOLVE_IMAGE not_recognized confidence=%s",
                f"{guess.confidence:.2f}" if guess else "none",
            )
            return ResolutionOutcome.failed(
                ResolutionStatus.NOT_RECOGNIZED,
                "Could not identify this product with enough confidence. Show the front label clearly.",
            )

        cached = self.cache.find_by_name(guess.name, limit=1)
        if cached:
            logger.info("RESOLVE_IMAGE cache_hit name=%s", guess.name[:60])
            return ResolutionOutcome.found(cached[0].with_source(DataSource.LOCAL_CACHE, image_url=image_ref))

        lead = _leading_word(guess.name)
        db = await _guarded(self.database.search(guess.name), "open_food_facts")
        for candidate in db.products:
            if lead and lead in (_leading_word(candidate.name), _leading_word(candidate.brand)) \
                    and candidate.nutrition.has_energy:
                logger.info("RESOLVE_IMAGE database name=%s matched=%s", guess.name[:60], candidate.name[:60])
                return ResolutionOutcome.found(candidate.with_source(DataSource.IMAGE_PIPELINE, image_url=image_ref))

        logger.info("RESOLVE_IMAGE model guess name=%s confidence=%.2f", guess.name[:60], guess.confidence)
        return ResolutionOutcome.found(replace(guess, image_url=image_ref))
