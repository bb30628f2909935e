"""
Single-attempt, time-boxed async GET for external APIs.
No retries here: callers fall back to the next source instead.
"""
import asyncio
import logging
from typing import Any, Mapping, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Mapping[str, Any]] = None,
    timeout: float = 10.0,
    headers: Optional[Mapping[str, str]] = None,
) -> Tuple[Optional[Any], Optional[str]]:
    """
    GET url and decode JSON within timeout seconds.
    Returns (data, None) on success, (None, error_message) on failure.
    Non-2xx responses are failures with error "HTTP <status>".
    """
    try:
        resp = await asyncio.wait_for(
            client.get(url, params=params, headers=headers, timeout=timeout),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("EXTERNAL_API timeout url=%s budget=%.1fs", url[:80], timeout)
        return None, "timeout"
    except httpx.HTTPError as e:
        logger.warning("EXTERNAL_API request failed url=%s error=%s", url[:80], type(e).__name__)
        return None, f"{type(e).__name__}: {e}"

    if resp.status_code >= 400:
        return None, f"HTTP {resp.status_code}"
    try:
        return resp.json(), None
    except ValueError:
        logger.warning("EXTERNAL_API invalid json url=%s", url[:80])
        return None, "invalid_json"
