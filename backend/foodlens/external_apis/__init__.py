"""
Network collaborators: Open Food Facts, the Gemini model, and image hosts.
"""
from .base import SourceResult, SourceStatus
from .image_resolver import ImageResolver, derive_image_url
from .model_gateway import (
    AllModelsExhaustedError,
    ModelGateway,
    ModelGatewayError,
    ModelUnavailableError,
)
from .model_products import ModelProductSource
from .open_food_facts import OpenFoodFactsClient, map_off_product

__all__ = [
    "SourceResult",
    "SourceStatus",
    "ImageResolver",
    "derive_image_url",
    "AllModelsExhaustedError",
    "ModelGateway",
    "ModelGatewayError",
    "ModelUnavailableError",
    "ModelProductSource",
    "OpenFoodFactsClient",
    "map_off_product",
]
