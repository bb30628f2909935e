"""
Gemini generateContent client with an ordered model fallback list.
  429 / 404           -> try the next model
  other HTTP error    -> abort (ModelGatewayError)
  transport / timeout -> abort (ModelGatewayError)
  empty text          -> try the next model
No API key -> ModelUnavailableError before any request is made.
"""
import asyncio
import base64
import logging
from typing import Any, Optional, Sequence

import httpx

from foodlens.config import Settings

logger = logging.getLogger(__name__)

# Rate limited / model retired or renamed: the next model may still answer.
FALLBACK_STATUSES = frozenset({404, 429})


class ModelUnavailableError(Exception):
    """Model collaborator not configured (no API key)."""


class ModelGatewayError(Exception):
    """Model call failed for good: fatal transport error or nothing answered."""


class AllModelsExhaustedError(ModelGatewayError):
    pass


def text_part(text: str) -> dict[str, Any]:
    return {"text": text}


def image_part(data: bytes, mime_type: str) -> dict[str, Any]:
    return {
        "inline_data": {
            "mime_type": mime_type,
            "data": base64.b64encode(data).decode("ascii"),
        }
    }


def extract_text(payload: Any) -> str:
    """Join the text parts of the first candidate; "" for anything else."""
    if not isinstance(payload, dict):
        return ""
    candidates = payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content") or {}
    parts = content.get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()


class ModelGateway:
    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._settings = settings

    @property
    def configured(self) -> bool:
        return self._settings.model_configured

    def _payload(
        self,
        parts: Sequence[dict[str, Any]],
        max_output_tokens: Optional[int],
        temperature: Optional[float],
    ) -> dict[str, Any]:
        return {
            "contents": [{"parts": list(parts)}],
            "generationConfig": {
                "temperature": self._settings.gemini_temperature if temperature is None else temperature,
                "maxOutputTokens": max_output_tokens or self._settings.gemini_max_output_tokens,
            },
        }

    async def generate(
        self,
        parts: Sequence[dict[str, Any]],
        max_output_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Raw text of the first model in the chain that answers with content."""
        if not self.configured:
            raise ModelUnavailableError("GEMINI_API_KEY not set")

        payload = self._payload(parts, max_output_tokens, temperature)
        budget = self._settings.model_timeout
        last_error = "no models configured"
        for model in self._settings.model_chain:
            url = f"{self._settings.gemini_url}/{model.split('/')[-1]}:generateContent"
            try:
                resp = await asyncio.wait_for(
                    self._client.post(
                        url,
                        params={"key": self._settings.gemini_api_key},
                        json=payload,
                        timeout=budget,
                    ),
                    timeout=budget,
                )
            except asyncio.TimeoutError as e:
                logger.warning("MODEL_GATEWAY timeout model=%s budget=%.0fs", model, budget)
                raise ModelGatewayError(f"timeout model={model}") from e
            except httpx.HTTPError as e:
                logger.warning("MODEL_GATEWAY transport error model=%s error=%s", model, type(e).__name__)
                raise ModelGatewayError(f"{type(e).__name__} model={model}") from e

            if resp.status_code in FALLBACK_STATUSES:
                last_error = f"HTTP {resp.status_code} model={model}"
                logger.warning("MODEL_GATEWAY fallback model=%s status=%s", model, resp.status_code)
                continue
            if resp.status_code >= 400:
                logger.warning("MODEL_GATEWAY fatal model=%s status=%s", model, resp.status_code)
                raise ModelGatewayError(f"HTTP {resp.status_code} model={model}")

            try:
                text = extract_text(resp.json())
            except ValueError:
                text = ""
            if not text:
                last_error = f"empty response model={model}"
                logger.warning("MODEL_GATEWAY empty response model=%s", model)
                continue
            logger.info("MODEL_GATEWAY answered model=%s chars=%d", model, len(text))
            return text

        raise AllModelsExhaustedError(f"all models exhausted ({last_error})")
