# backend/services/translator.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from core.config import Settings
from core.errors import TranslationError

logger = logging.getLogger(__name__)

# DeepL answers these instead of a translation when the account is limited
_DEEPL_STATUS_REASONS = {
    403: "Authorization failed, check DEEPL_AUTH_KEY",
    429: "Too many requests, translation rate limited",
    456: "Translation quota exceeded",
}


class BaseTranslator(ABC):
    """
    Remote translation capability: translate(text, source, target) -> text.

    Implementations raise TranslationError for any failure of a single call.
    """

    async def translate(self, text: str, source_lang: Optional[str], target_lang: str) -> str:
        if not text:
            return ""
        return await self._translate_impl(text, source_lang, target_lang)

    @abstractmethod
    async def _translate_impl(self, text: str, source_lang: Optional[str], target_lang: str) -> str:
        """Translate non-empty `text`; raise TranslationError on failure."""

    async def aclose(self) -> None:
        return None


class DeepLTranslator(BaseTranslator):
    """
    DeepL REST API client (POST /v2/translate).

    Args:
        auth_key: DeepL authentication key
        api_url: Full translate endpoint (free and pro accounts differ)
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        auth_key: str,
        api_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_url = api_url
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"DeepL-Auth-Key {auth_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def _translate_impl(self, text: str, source_lang: Optional[str], target_lang: str) -> str:
        payload = {"text": [text], "target_lang": target_lang}
        if source_lang:
            payload["source_lang"] = source_lang

        try:
            response = await self._client.post(self._api_url, json=payload)
        except httpx.HTTPError as e:
            raise TranslationError(f"DeepL request failed: {e}") from e

        if response.status_code != 200:
            reason = _DEEPL_STATUS_REASONS.get(response.status_code)
            if reason is None:
                reason = f"DeepL returned HTTP {response.status_code}: {response.text[:200]}"
            raise TranslationError(reason)

        try:
            translations = response.json()["translations"]
            return translations[0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TranslationError(f"Unexpected DeepL response: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()


def build_translator(settings: Settings) -> Optional[BaseTranslator]:
    """
    Create the configured translator, or None when no credential is set.

    A None translator leaves the TranslationGateway unconfigured: messages
    are still ingested, every language just carries an explicit error.
    """
    if not settings.DEEPL_AUTH_KEY:
        logger.warning("DEEPL_AUTH_KEY not set. Translation will not work.")
        return None

    logger.info("DeepL translator initialized (%s)", settings.DEEPL_API_URL)
    return DeepLTranslator(
        auth_key=settings.DEEPL_AUTH_KEY,
        api_url=settings.DEEPL_API_URL,
        timeout=settings.TRANSLATION_TIMEOUT_SECONDS,
    )
