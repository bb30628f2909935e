"""
FoodLens FastAPI application.

Endpoints:
    GET  /                  Health check
    POST /resolve/barcode   Barcode -> cache -> public database (-> model nutrition fill)
    POST /resolve/text      Free text -> cache -> public database + model
    POST /resolve/image     Photo -> model recognition -> cache / database -> model guess
    POST /alternatives      Healthier alternatives for a resolved product
    GET  /cache/recent      Most recent scans
"""
from fastapi import FastAPI, UploadFile, File, Form, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Any, Dict, Optional
import logging
from dotenv import load_dotenv
from pathlib import Path

import httpx

# Load env vars
load_dotenv(Path(__file__).parent / ".env")

from foodlens.config import Settings, log_config
from foodlens.alternatives import AlternativesPipeline
from foodlens.external_apis.model_gateway import ModelGateway
from foodlens.external_apis.open_food_facts import OpenFoodFactsClient
from foodlens.models.outcome import ResolutionOutcome
from foodlens.models.product import DataSource, ProductRecord
from foodlens.resolver import ProductResolver
from foodlens.scan_cache import ScanCache

# Initialize App
app = FastAPI(title="FoodLens Product Resolution API")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Logger
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = Settings.from_env()
log_config(settings)
scan_cache = ScanCache(settings.scan_cache_size)

# Built on startup: they share one AsyncClient bound to the running loop.
http_client: Optional[httpx.AsyncClient] = None
resolver: Optional[ProductResolver] = None
alternatives: Optional[AlternativesPipeline] = None


# --- Startup / shutdown ---
@app.on_event("startup")
async def _startup():
    global http_client, resolver, alternatives
    http_client = httpx.AsyncClient(headers={"User-Agent": settings.user_agent})
    resolver = ProductResolver.from_settings(http_client, settings, scan_cache)
    alternatives = AlternativesPipeline(
        ModelGateway(http_client, settings),
        OpenFoodFactsClient(http_client, settings),
    )
    logger.info("STARTUP services ready model_configured=%s", settings.model_configured)


@app.on_event("shutdown")
async def _shutdown():
    if http_client is not None:
        await http_client.aclose()


# --- Request Models ---
class BarcodeRequest(BaseModel):
    barcode: str


class TextSearchRequest(BaseModel):
    query: str


class AlternativesRequest(BaseModel):
    product: Dict[str, Any]


def _remember(outcome: ResolutionOutcome) -> None:
    """Write the best product of a successful resolution into the scan cache."""
    product = outcome.product
    if product is None:
        return
    if product.data_source == DataSource.LOCAL_CACHE:
        # Cache hit: refresh recency of the stored record, keep its provenance
        stored = scan_cache.get_by_barcode(product.barcode or product.id)
        if stored is not None:
            scan_cache.add(stored)
        return
    scan_cache.add(product)


# --- Endpoints ---

@app.get("/")
def health_check():
    return {
        "status": "ok",
        "service": "FoodLens Product Resolution",
        "model_configured": settings.model_configured,
        "database_enabled": settings.off_enabled,
    }


@app.post("/resolve/barcode")
async def resolve_barcode(request: BarcodeRequest):
    logger.info("Resolve barcode=%s", request.barcode[:32])
    try:
        outcome = await resolver.resolve_barcode(request.barcode)
        _remember(outcome)
        return outcome.to_dict()
    except Exception as e:
        logger.error("Barcode resolution failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/resolve/text")
async def resolve_text(request: TextSearchRequest):
    logger.info("Resolve text query=%s", request.query[:60])
    try:
        outcome = await resolver.resolve_text(request.query)
        _remember(outcome)
        return outcome.to_dict()
    except Exception as e:
        logger.error("Text resolution failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/resolve/image")
async def resolve_image(file: UploadFile = File(...), image_ref: str = Form("")):
    """image_ref is the client's handle for the captured photo (URI or URL)."""
    logger.info("Resolve image filename=%s type=%s", file.filename, file.content_type)
    try:
        image_bytes = await file.read()
        outcome = await resolver.resolve_image(image_bytes, file.content_type or "", image_ref=image_ref)
        _remember(outcome)
        return outcome.to_dict()
    except Exception as e:
        logger.error("Image resolution failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/alternatives")
async def get_alternatives(request: AlternativesRequest):
    try:
        product = ProductRecord.from_dict(request.product)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid product: {e}")
    logger.info("Alternatives for product=%s", product.name[:60])
    try:
        suggestions = await alternatives.suggest(product)
        return {"alternatives": [s.to_dict() for s in suggestions]}
    except Exception as e:
        logger.error("Alternatives failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/cache/recent")
def recent_scans(limit: int = 20):
    return {"products": [p.to_dict() for p in scan_cache.recent(limit)]}
