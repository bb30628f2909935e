"""
Unit tests for the Gemini gateway (HTTP mocked with httpx.MockTransport).
Run from backend: python -m pytest tests/test_model_gateway.py -v
"""
import asyncio
import base64
import json

import httpx
import pytest


def _settings(**overrides):
    from foodlens.config import Settings
    base = dict(
        gemini_api_key="test-key",
        gemini_url="https://gemini.test/v1beta/models",
        gemini_model="m1",
        gemini_fallback_models=("m2", "m3"),
        model_timeout=5.0,
    )
    base.update(overrides)
    return Settings(**base)


def _answer(text):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def _generate(handler, parts=None, **settings_overrides):
    from foodlens.external_apis.model_gateway import ModelGateway, text_part

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            gateway = ModelGateway(http, _settings(**settings_overrides))
            return await gateway.generate(parts or [text_part("hello")])

    return asyncio.run(scenario())


def test_no_key_fails_fast_without_request():
    """Missing credentials: ModelUnavailableError, no network call."""
    from foodlens.external_apis.model_gateway import ModelUnavailableError
    calls = []

    def handler(request):
        calls.append(request)
        return _answer("x")

    with pytest.raises(ModelUnavailableError):
        _generate(handler, gemini_api_key="")
    assert calls == []


def test_falls_back_on_429_and_404():
    """Rate limit and model-not-found move on to the next model."""
    calls = []

    def handler(request):
        calls.append(request)
        model = request.url.path.rsplit("/", 1)[-1].split(":")[0]
        if model == "m1":
            return httpx.Response(429, json={"error": {"message": "quota"}})
        if model == "m2":
            return httpx.Response(404, json={"error": {"message": "not found"}})
        return _answer('{"name": "KitKat"}')

    assert _generate(handler) == '{"name": "KitKat"}'
    assert [r.url.path for r in calls] == [
        "/v1beta/models/m1:generateContent",
        "/v1beta/models/m2:generateContent",
        "/v1beta/models/m3:generateContent",
    ]
    assert calls[0].url.params["key"] == "test-key"
    body = json.loads(calls[0].content)
    assert body["contents"][0]["parts"] == [{"text": "hello"}]
    assert body["generationConfig"]["maxOutputTokens"] == 4096
    assert body["generationConfig"]["temperature"] == 0.2


def test_other_http_error_aborts_chain():
    """A 500 is fatal: no further models are tried."""
    from foodlens.external_apis.model_gateway import ModelGatewayError, AllModelsExhaustedError
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, text="internal")

    with pytest.raises(ModelGatewayError) as exc:
        _generate(handler)
    assert not isinstance(exc.value, AllModelsExhaustedError)
    assert len(calls) == 1


def test_transport_error_aborts_chain():
    from foodlens.external_apis.model_gateway import ModelGatewayError
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ModelGatewayError):
        _generate(handler)
    assert len(calls) == 1


def test_empty_content_tries_next_model():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(200, json={"candidates": [{"content": {"parts": []}, "finishReason": "SAFETY"}]})
        return _answer("second")

    assert _generate(handler) == "second"
    assert len(calls) == 2


def test_all_models_exhausted():
    from foodlens.external_apis.model_gateway import AllModelsExhaustedError

    def handler(request):
        return httpx.Response(429)

    with pytest.raises(AllModelsExhaustedError) as exc:
        _generate(handler)
    assert "exhausted" in str(exc.value)


def test_model_chain_drops_duplicates():
    """Preferred model first; a fallback equal to it is not tried twice."""
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(404)

    from foodlens.external_apis.model_gateway import AllModelsExhaustedError
    with pytest.raises(AllModelsExhaustedError):
        _generate(handler, gemini_model="m2", gemini_fallback_models=("m2", "m3"))
    assert calls == ["/v1beta/models/m2:generateContent", "/v1beta/models/m3:generateContent"]


def test_image_part_is_inline_base64():
    from foodlens.external_apis.model_gateway import image_part
    part = image_part(b"\x89PNG", "image/png")
    assert part["inline_data"]["mime_type"] == "image/png"
    assert base64.b64decode(part["inline_data"]["data"]) == b"\x89PNG"


def test_extract_text_joins_parts():
    from foodlens.external_apis.model_gateway import extract_text
    payload = {"candidates": [{"content": {"parts": [{"text": '{"a": '}, {"text": "1}"}]}}]}
    assert extract_text(payload) == '{"a": 1}'
    assert extract_text({"candidates": []}) == ""
    assert extract_text(None) == ""
