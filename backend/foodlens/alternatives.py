"""
Healthier-alternative suggestions.
  1. model proposes up to 4 same-category products with a search query each
  2. each is verified against the public database in parallel
  3. D/E alternatives are dropped whatever their source; a C original only
     gets A/B alternatives
  4. best grade first
Every failure degrades to fewer (or zero) suggestions, never an exception.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from foodlens.external_apis.base import SourceResult
from foodlens.external_apis.model_gateway import (
    ModelGateway,
    ModelGatewayError,
    ModelUnavailableError,
    text_part,
)
from foodlens.external_apis.open_food_facts import OpenFoodFactsClient
from foodlens.external_apis.prompts import alternatives_prompt
from foodlens.matching.fuzzy import rank_candidates
from foodlens.models.product import AlternativeSuggestion, ProductRecord
from foodlens.parsing.json_extract import extract_json_array
from foodlens.scoring.grades import GRADE_RANK, UNKNOWN_GRADE, normalize_grade

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 4
VERIFY_PAGE_SIZE = 5
TRIGGER_GRADES = ("C", "D", "E")
ULTRA_PROCESSED = 4
NEVER_SUGGEST = ("D", "E")


def should_suggest(product: ProductRecord) -> bool:
    """C/D/E grade or ultra-processed; A/B lightly processed products never trigger."""
    return product.nutri_score in TRIGGER_GRADES or product.nova_group == ULTRA_PROCESSED


@dataclass(frozen=True)
class ModelSuggestion:
    """One alternative as the model proposed it, before verification."""
    name: str
    search_query: str
    brand: str = ""
    nutri_score: str = UNKNOWN_GRADE
    nova_group: int = 0
    reason: str = ""


def parse_suggestions(items: Optional[List[Any]]) -> List[ModelSuggestion]:
    """Keep items with a name and a search query longer than 2 characters."""
    out: List[ModelSuggestion] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        query = item.get("search_query")
        if not isinstance(name, str) or not name.strip():
            continue
        if not isinstance(query, str) or len(query.strip()) <= 2:
            continue
        try:
            nova = int(item.get("nova_group") or 0)
        except (TypeError, ValueError):
            nova = 0
        out.append(ModelSuggestion(
            name=name.strip(),
            search_query=query.strip(),
            brand=str(item.get("brand") or "").strip(),
            nutri_score=normalize_grade(item.get("nutri_score")),
            nova_group=nova,
            reason=str(item.get("reason") or "").strip(),
        ))
        if len(out) >= MAX_SUGGESTIONS:
            break
    return out


def passes_grade_rule(original_grade: str, candidate_grade: str) -> bool:
    if candidate_grade in NEVER_SUGGEST:
        return False
    if candidate_grade == UNKNOWN_GRADE:
        # Model-only fallback with no grade: already screened by the prompt
        return True
    if original_grade == "C":
        return GRADE_RANK[candidate_grade] > GRADE_RANK["C"]
    return GRADE_RANK[candidate_grade] >= GRADE_RANK["C"]


class AlternativesPipeline:
    def __init__(self, gateway: ModelGateway, database: OpenFoodFactsClient):
        self._gateway = gateway
        self._database = database

    async def _ask_model(self, product: ProductRecord) -> List[ModelSuggestion]:
        prompt = alternatives_prompt(
            name=product.name,
            brand=product.brand,
            categories=product.categories,
            nutri_score=product.nutri_score,
            nova_group=product.nova_group,
            max_items=MAX_SUGGESTIONS,
        )
        try:
            raw = await self._gateway.generate([text_part(prompt)])
        except ModelUnavailableError:
            logger.info("ALTERNATIVES model not configured")
            return []
        except ModelGatewayError as e:
            logger.warning("ALTERNATIVES model failed product=%s error=%s", product.name[:60], e)
            return []
        suggestions = parse_suggestions(extract_json_array(raw))
        logger.info("ALTERNATIVES model suggested=%d product=%s", len(suggestions), product.name[:60])
        return suggestions

    async def verify(self, suggestion: ModelSuggestion) -> AlternativeSuggestion:
        """
        Database-backed suggestion when a search hit shares a meaningful word
        with the query; otherwise the model's own data with an empty barcode.
        """
        try:
            result = await self._database.search(suggestion.search_query, page_size=VERIFY_PAGE_SIZE)
        except Exception as e:
            logger.warning("ALTERNATIVES verify raised query=%s error=%s", suggestion.search_query[:60], e)
            result = SourceResult("failed", "open_food_facts")

        words = [w for w in suggestion.search_query.lower().split() if len(w) > 2]
        ranked = rank_candidates(
            suggestion.search_query,
            result.products,
            key=lambda r: (f"{r.brand} {r.name}".strip(), r.name),
        )
        for _score, record in ranked:
            combined = f"{record.brand} {record.name}".lower()
            if any(w in combined for w in words):
                logger.debug("ALTERNATIVES verified query=%s match=%s", suggestion.search_query[:60], record.name[:60])
                return AlternativeSuggestion(
                    name=record.name,
                    brand=record.brand or suggestion.brand,
                    barcode=record.barcode,
                    nutri_score=record.nutri_score if record.nutri_score != UNKNOWN_GRADE else suggestion.nutri_score,
                    nova_group=record.nova_group or suggestion.nova_group,
                    image_url=record.image_url,
                    reason=suggestion.reason,
                )

        logger.debug("ALTERNATIVES unverified query=%s status=%s", suggestion.search_query[:60], result.status)
        return AlternativeSuggestion(
            name=suggestion.name,
            brand=suggestion.brand,
            nutri_score=suggestion.nutri_score,
            nova_group=suggestion.nova_group,
            reason=suggestion.reason,
        )

    async def suggest(self, product: ProductRecord) -> List[AlternativeSuggestion]:
        if not should_suggest(product):
            logger.info(
                "ALTERNATIVES not needed product=%s nutri=%s nova=%s",
                product.name[:60], product.nutri_score, product.nova_group,
            )
            return []

        suggestions = await self._ask_model(product)
        if not suggestions:
            return []
        verified = await asyncio.gather(*(self.verify(s) for s in suggestions))

        results = [
            alt for alt in verified
            if passes_grade_rule(product.nutri_score, alt.nutri_score)
            and not (alt.barcode and alt.barcode == product.barcode)
        ]
        results.sort(key=lambda alt: GRADE_RANK[alt.nutri_score], reverse=True)
        logger.info("ALTERNATIVES final=%d of=%d product=%s", len(results), len(verified), product.name[:60])
        return results
