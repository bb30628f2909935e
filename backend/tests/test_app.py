"""
API tests for the FastAPI app (resolver and alternatives mocked; no network).
Run from backend: python -m pytest tests/test_app.py -v
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient


def _record(source="public-database", barcode="3017620422003", name="Nutella", **kwargs):
    from foodlens.models.product import ProductRecord
    return ProductRecord(id=f"off_{barcode}", barcode=barcode, name=name, brand="Ferrero",
                         data_source=source, **kwargs)


@pytest.fixture
def app_module():
    import app as app_module
    app_module.scan_cache.clear()
    yield app_module
    app_module.scan_cache.clear()


def test_health_check(app_module):
    client = TestClient(app_module.app)
    resp = client.get("/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert "model_configured" in body


def test_resolve_barcode_returns_outcome_and_caches(app_module):
    from foodlens.models.outcome import ResolutionOutcome
    fake = MagicMock()
    fake.resolve_barcode = AsyncMock(return_value=ResolutionOutcome.found(_record()))
    with patch.object(app_module, "resolver", fake):
        resp = TestClient(app_module.app).post("/resolve/barcode", json={"barcode": "3017620422003"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "found"
    assert body["product"]["data_source"] == "public-database"
    assert body["product"]["confidence"] is None
    fake.resolve_barcode.assert_awaited_once_with("3017620422003")
    assert app_module.scan_cache.get_by_barcode("3017620422003").name == "Nutella"


def test_not_found_is_not_cached(app_module):
    from foodlens.models.outcome import ResolutionOutcome, ResolutionStatus
    fake = MagicMock()
    fake.resolve_text = AsyncMock(
        return_value=ResolutionOutcome.failed(ResolutionStatus.NOT_FOUND, "Could not find it.")
    )
    with patch.object(app_module, "resolver", fake):
        resp = TestClient(app_module.app).post("/resolve/text", json={"query": "zzz"})
    assert resp.json() == {"status": "not_found", "product": None, "products": [], "message": "Could not find it."}
    assert len(app_module.scan_cache) == 0


def test_cache_hit_keeps_stored_provenance(app_module):
    """A local-cache answer refreshes the stored record rather than overwriting its source."""
    from foodlens.models.outcome import ResolutionOutcome
    from foodlens.models.product import DataSource
    app_module.scan_cache.add(_record())
    fake = MagicMock()
    fake.resolve_barcode = AsyncMock(
        return_value=ResolutionOutcome.found(_record().with_source(DataSource.LOCAL_CACHE))
    )
    with patch.object(app_module, "resolver", fake):
        TestClient(app_module.app).post("/resolve/barcode", json={"barcode": "3017620422003"})
    assert app_module.scan_cache.get_by_barcode("3017620422003").data_source is DataSource.PUBLIC_DATABASE


def test_resolve_image_passes_bytes_type_and_ref(app_module):
    from foodlens.models.outcome import ResolutionOutcome
    rec = _record(source="image-pipeline", image_url="file:///photo.jpg")
    fake = MagicMock()
    fake.resolve_image = AsyncMock(return_value=ResolutionOutcome.found(rec))
    with patch.object(app_module, "resolver", fake):
        resp = TestClient(app_module.app).post(
            "/resolve/image",
            files={"file": ("photo.jpg", b"\xff\xd8jpeg", "image/jpeg")},
            data={"image_ref": "file:///photo.jpg"},
        )
    assert resp.status_code == 200
    assert resp.json()["product"]["image_url"] == "file:///photo.jpg"
    fake.resolve_image.assert_awaited_once_with(b"\xff\xd8jpeg", "image/jpeg", image_ref="file:///photo.jpg")


def test_resolver_exception_is_500(app_module):
    fake = MagicMock()
    fake.resolve_text = AsyncMock(side_effect=RuntimeError("boom"))
    with patch.object(app_module, "resolver", fake):
        resp = TestClient(app_module.app).post("/resolve/text", json={"query": "nutella"})
    assert resp.status_code == 500


def test_alternatives_endpoint(app_module):
    from foodlens.models.product import AlternativeSuggestion
    fake = MagicMock()
    fake.suggest = AsyncMock(return_value=[
        AlternativeSuggestion(name="Crunchy Oat Granola", barcode="5010477348678", nutri_score="A"),
    ])
    product = _record(nutri_score="E", nova_group=4).to_dict()
    with patch.object(app_module, "alternatives", fake):
        resp = TestClient(app_module.app).post("/alternatives", json={"product": product})
    assert resp.status_code == 200
    alts = resp.json()["alternatives"]
    assert alts[0]["name"] == "Crunchy Oat Granola"
    assert alts[0]["verified"] is True
    passed = fake.suggest.await_args[0][0]
    assert passed.nutri_score == "E"
    assert passed.name == "Nutella"


def test_alternatives_invalid_product_is_422(app_module):
    """Model provenance without a confidence value is rejected."""
    fake = MagicMock()
    fake.suggest = AsyncMock(return_value=[])
    bad = {"id": "model_1", "barcode": "", "name": "Thing", "data_source": "model-generated"}
    with patch.object(app_module, "alternatives", fake):
        resp = TestClient(app_module.app).post("/alternatives", json={"product": bad})
    assert resp.status_code == 422
    fake.suggest.assert_not_called()


def test_recent_scans(app_module):
    app_module.scan_cache.add(_record(barcode="1", name="One"))
    app_module.scan_cache.add(_record(barcode="2", name="Two"))
    resp = TestClient(app_module.app).get("/cache/recent", params={"limit": 1})
    assert [p["name"] for p in resp.json()["products"]] == ["Two"]
