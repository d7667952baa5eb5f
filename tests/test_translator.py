import json

import httpx
import pytest

from conftest import make_settings
from core.errors import TranslationError
from services.translator import BaseTranslator, DeepLTranslator, build_translator

API_URL = "https://api-free.deepl.com/v2/translate"


def _translator(handler) -> DeepLTranslator:
    return DeepLTranslator("key:fx", API_URL, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_deepl_request_and_response() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"translations": [{"detected_source_language": "EN", "text": "ciao"}]})

    translator = _translator(handler)
    try:
        assert await translator.translate("hello", "EN", "IT") == "ciao"
    finally:
        await translator.aclose()

    assert seen["auth"] == "DeepL-Auth-Key key:fx"
    assert seen["body"] == {"text": ["hello"], "target_lang": "IT", "source_lang": "EN"}


@pytest.mark.asyncio
async def test_deepl_quota_exceeded() -> None:
    translator = _translator(lambda request: httpx.Response(456, json={"message": "Quota exceeded"}))
    try:
        with pytest.raises(TranslationError, match="quota exceeded"):
            await translator.translate("hello", "EN", "IT")
    finally:
        await translator.aclose()


@pytest.mark.asyncio
async def test_deepl_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    translator = _translator(handler)
    try:
        with pytest.raises(TranslationError, match="DeepL request failed"):
            await translator.translate("hello", "EN", "IT")
    finally:
        await translator.aclose()


@pytest.mark.asyncio
async def test_deepl_malformed_response() -> None:
    translator = _translator(lambda request: httpx.Response(200, json={"unexpected": True}))
    try:
        with pytest.raises(TranslationError, match="Unexpected DeepL response"):
            await translator.translate("hello", "EN", "IT")
    finally:
        await translator.aclose()


@pytest.mark.asyncio
async def test_empty_text_skips_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    translator = _translator(handler)
    try:
        assert await translator.translate("", "EN", "IT") == ""
    finally:
        await translator.aclose()


def test_build_translator_without_key_is_unconfigured() -> None:
    assert build_translator(make_settings(DEEPL_AUTH_KEY="")) is None


def test_build_translator_with_key() -> None:
    translator = build_translator(make_settings(DEEPL_AUTH_KEY="abc", DEEPL_API_URL=API_URL))
    assert isinstance(translator, DeepLTranslator)


def test_base_translator_is_abstract() -> None:
    with pytest.raises(TypeError):
        BaseTranslator()
