"""
Unit tests for image URL derivation and validation.
Run from backend: python -m pytest tests/test_image_resolver.py -v
"""
import asyncio

import httpx
import pytest

BASE = "https://images.test/images/products"


def _settings(**overrides):
    from foodlens.config import Settings
    base = dict(off_image_url=BASE, image_check_timeout=1.0)
    base.update(overrides)
    return Settings(**base)


def _resolve(handler, candidates, **settings_overrides):
    from foodlens.external_apis.image_resolver import ImageResolver

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await ImageResolver(http, _settings(**settings_overrides)).resolve(candidates)

    return asyncio.run(scenario())


@pytest.mark.parametrize("barcode,expected", [
    ("3017620422003", f"{BASE}/301/762/042/2003/1.400.jpg"),
    ("12345678", f"{BASE}/12345678/1.400.jpg"),
    ("123456789", f"{BASE}/000/012/345/6789/1.400.jpg"),
    ("ai-3f9a0c1b2d4e", ""),
    ("", ""),
    ("30176204x2003", ""),
])
def test_derive_image_url(barcode, expected):
    """Pure templating; placeholder or non-numeric barcodes derive nothing."""
    from foodlens.external_apis.image_resolver import derive_image_url
    assert derive_image_url(barcode, BASE) == expected


def test_first_valid_image_wins():
    def handler(request):
        if request.url.path.endswith("missing.jpg"):
            return httpx.Response(404)
        return httpx.Response(200, headers={"content-type": "image/jpeg"})

    url = _resolve(handler, ["https://a.test/missing.jpg", "https://b.test/front.jpg"])
    assert url == "https://b.test/front.jpg"


def test_non_image_content_type_rejected():
    """A 200 HTML error page is not an image."""
    def handler(request):
        return httpx.Response(200, headers={"content-type": "text/html; charset=utf-8"})

    assert _resolve(handler, ["https://a.test/front.jpg"]) == ""


def test_head_not_allowed_falls_back_to_ranged_get():
    seen = []

    def handler(request):
        seen.append((request.method, request.headers.get("range")))
        if request.method == "HEAD":
            return httpx.Response(405)
        return httpx.Response(206, headers={"content-type": "image/png"})

    assert _resolve(handler, ["https://a.test/p.png"]) == "https://a.test/p.png"
    assert seen == [("HEAD", None), ("GET", "bytes=0-0")]


def test_slow_host_times_out():
    async def handler(request):
        await asyncio.sleep(0.5)
        return httpx.Response(200, headers={"content-type": "image/jpeg"})

    assert _resolve(handler, ["https://slow.test/a.jpg"], image_check_timeout=0.05) == ""


def test_fastest_success_wins():
    """Checks run in parallel: a fast valid host beats a slow valid one listed first."""
    async def handler(request):
        if request.url.host == "slow.test":
            await asyncio.sleep(0.3)
        return httpx.Response(200, headers={"content-type": "image/jpeg"})

    url = _resolve(handler, ["https://slow.test/a.jpg", "https://fast.test/b.jpg"])
    assert url == "https://fast.test/b.jpg"


def test_no_candidates_makes_no_request():
    def handler(request):
        raise AssertionError("no request expected")

    assert _resolve(handler, ["", None, "file:///local/photo.jpg"]) == ""


def test_transport_error_is_invalid():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert _resolve(handler, ["https://down.test/a.jpg"]) == ""


def test_candidates_for_record():
    """Database URL first, then the derived one; duplicates dropped."""
    from foodlens.external_apis.image_resolver import ImageResolver
    from foodlens.models.product import ProductRecord
    rec = ProductRecord(
        id="off_1", barcode="3017620422003", name="Nutella", data_source="public-database",
        image_url="https://images.test/nutella.jpg",
    )
    resolver = ImageResolver(client=None, settings=_settings())
    assert resolver.candidates_for(rec) == [
        "https://images.test/nutella.jpg",
        f"{BASE}/301/762/042/2003/1.400.jpg",
    ]


def test_malformed_port_is_invalid_not_raised():
    """A URL httpx cannot even build a request for counts as a failed candidate."""
    def handler(request):
        raise AssertionError("no request expected")

    assert _resolve(handler, ["https://images.test:abc/x.jpg"]) == ""


def test_malformed_candidate_does_not_hide_a_good_one():
    def handler(request):
        return httpx.Response(200, headers={"content-type": "image/jpeg"})

    url = _resolve(handler, ["https://images.test:abc/x.jpg", "https://b.test/front.jpg"])
    assert url == "https://b.test/front.jpg"
