"""
Tests for scripts/check_external_apis.py (requests mocked).
Run from backend: python -m pytest tests/test_check_script.py -v
"""
from unittest.mock import MagicMock, patch


def test_api_health_check_script():
    """At least one source ok -> exit 0; both fail -> exit 1."""
    from scripts.check_external_apis import main
    with patch("scripts.check_external_apis.check_model", return_value=(True, "ok")):
        with patch("scripts.check_external_apis.check_open_food_facts", return_value=(False, "HTTP 503")):
            assert main() == 0
    with patch("scripts.check_external_apis.check_model", return_value=(False, "no API key")):
        with patch("scripts.check_external_apis.check_open_food_facts", return_value=(False, "timeout")):
            assert main() == 1


@patch("scripts.check_external_apis.requests.get")
def test_check_open_food_facts_sample_barcode(mock_get):
    from foodlens.config import Settings
    from scripts.check_external_apis import SAMPLE_BARCODE, check_open_food_facts
    mock_get.return_value = MagicMock(
        status_code=200,
        json=lambda: {"status": 1, "product": {"product_name": "Nutella"}},
    )
    ok, msg = check_open_food_facts(Settings(off_url="https://off.test"))
    assert ok is True
    assert "Nutella" in msg
    assert mock_get.call_args[0][0] == f"https://off.test/api/v2/product/{SAMPLE_BARCODE}.json"


def test_check_model_without_key_makes_no_request():
    from foodlens.config import Settings
    from scripts.check_external_apis import check_model
    with patch("scripts.check_external_apis.requests.get") as mock_get:
        ok, msg = check_model(Settings(gemini_api_key=""))
    assert ok is False
    assert "GEMINI_API_KEY" in msg
    mock_get.assert_not_called()


@patch("scripts.check_external_apis.requests.get")
def test_check_model_requires_configured_model_listed(mock_get):
    from foodlens.config import Settings
    from scripts.check_external_apis import check_model
    mock_get.return_value = MagicMock(
        status_code=200,
        json=lambda: {"models": [{"name": "models/gemini-2.0-flash"}, {"name": "models/other"}]},
    )
    settings = Settings(gemini_api_key="k", gemini_model="gemini-2.0-flash-lite",
                        gemini_fallback_models=("gemini-2.0-flash",))
    ok, msg = check_model(settings)
    assert ok is True
    assert "gemini-2.0-flash" in msg

    ok, _ = check_model(Settings(gemini_api_key="k", gemini_model="missing", gemini_fallback_models=()))
    assert ok is False
