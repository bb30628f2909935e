"""
Image URL derivation and validation.
derive_image_url is pure string templating (no network). ImageResolver checks
candidates in parallel and returns the first that is really an image.
"""
import asyncio
import logging
from typing import Iterable, Optional, Tuple

import httpx

from foodlens.config import DEFAULT_OFF_IMAGE_URL, Settings
from foodlens.models.product import ProductRecord

logger = logging.getLogger(__name__)


def derive_image_url(barcode: str, base_url: str = DEFAULT_OFF_IMAGE_URL) -> str:
    """
    Front image URL for a numeric barcode, "" for anything else.
      up to 8 digits -> {base}/{barcode}/1.400.jpg
      longer         -> zero-padded to 13, {base}/xxx/xxx/xxx/rest/1.400.jpg
    """
    code = (barcode or "").strip()
    if not code.isdigit():
        return ""
    if len(code) <= 8:
        folder = code
    else:
        code = code.zfill(13)
        folder = f"{code[:3]}/{code[3:6]}/{code[6:9]}/{code[9:]}"
    return f"{base_url.rstrip('/')}/{folder}/1.400.jpg"


def _dedupe(urls: Iterable[Optional[str]]) -> list[str]:
    out: list[str] = []
    for u in urls:
        u = (u or "").strip()
        if u.startswith(("http://", "https://")) and u not in out:
            out.append(u)
    return out


class ImageResolver:
    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._settings = settings

    def candidates_for(self, record: ProductRecord) -> list[str]:
        """Database-provided URL first, then the derived one."""
        return _dedupe([record.image_url, derive_image_url(record.barcode, self._settings.off_image_url)])

    async def _request(self, url: str) -> httpx.Response:
        headers = {"User-Agent": self._settings.user_agent}
        timeout = self._settings.image_check_timeout
        resp = await self._client.head(url, headers=headers, timeout=timeout, follow_redirects=True)
        if resp.status_code == 405:
            # HEAD not allowed: ask for the first byte only
            resp = await self._client.get(
                url, headers={**headers, "Range": "bytes=0-0"}, timeout=timeout, follow_redirects=True
            )
        return resp

    async def check(self, url: str) -> Tuple[str, bool]:
        """(url, True) when url answers 2xx with an image/* content type."""
        try:
            resp = await asyncio.wait_for(self._request(url), timeout=self._settings.image_check_timeout)
        except asyncio.TimeoutError:
            logger.debug("IMAGE_RESOLVER timeout url=%s", url[:80])
            return url, False
        except httpx.HTTPError as e:
            logger.debug("IMAGE_RESOLVER error url=%s error=%s", url[:80], type(e).__name__)
            return url, False
        except Exception as e:
            # Malformed URLs (bad port, bad host encoding) raise outside httpx.HTTPError
            logger.warning("IMAGE_RESOLVER unusable url=%s error=%s: %s", url[:80], type(e).__name__, e)
            return url, False
        content_type = resp.headers.get("content-type", "").lower()
        ok = resp.status_code < 400 and content_type.startswith("image/")
        logger.debug("IMAGE_RESOLVER url=%s status=%s type=%s ok=%s", url[:80], resp.status_code, content_type, ok)
        return url, ok

    async def resolve(self, candidates: Iterable[Optional[str]]) -> str:
        """First candidate confirmed as an image (fastest wins), or ""."""
        urls = _dedupe(candidates)
        if not urls:
            return ""
        tasks = [asyncio.ensure_future(self.check(u)) for u in urls]
        for next_done in asyncio.as_completed(tasks):
            url, ok = await next_done
            if ok:
                logger.info("IMAGE_RESOLVER resolved url=%s of=%d", url[:80], len(urls))
                return url
        logger.info("IMAGE_RESOLVER no valid image candidates=%d", len(urls))
        return ""

    async def resolve_for(self, record: ProductRecord) -> str:
        return await self.resolve(self.candidates_for(record))
