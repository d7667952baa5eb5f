# backend/services/translation_gateway.py

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Optional

from core.errors import (
    GatewayUnconfigured,
    MessageNotFound,
    TranslationError,
    TranslationUnavailable,
)
from models.models import Room, TranslationEntry
from services.translator import BaseTranslator

logger = logging.getLogger(__name__)

NOT_CONFIGURED_REASON = "Translation service not configured."

# Speech-recognition locale tags -> translator source codes
SOURCE_LANG_MAP = {
    "en-US": "EN",
    "it-IT": "IT",
    "cs-CZ": "CS",
}


def normalize_source_lang(tag: Optional[str]) -> str:
    """
    Map a client language tag to a canonical source code.

    Known tags use SOURCE_LANG_MAP, anything else falls back to its first two
    letters upper-cased ("de-AT" -> "DE"). Empty tags stay empty.
    """
    if not tag:
        return ""
    tag = tag.strip()
    if tag in SOURCE_LANG_MAP:
        return SOURCE_LANG_MAP[tag]
    return tag[:2].upper()


def is_same_language(source_code: str, target_lang: str) -> bool:
    """Prefix match in both directions, so "EN" equals "EN-US" and "EN-GB"."""
    if not source_code:
        return False
    target = target_lang.upper()
    return target.startswith(source_code) or source_code.startswith(target)


class TranslationGateway:
    """
    Fans one utterance out to every target language.

    Each target is attempted independently: a failure or timeout for one
    language becomes an error entry for that language and never prevents
    the others from completing. With no translator configured every target
    gets an error entry and no remote call is made.
    """

    def __init__(self, translator: Optional[BaseTranslator], timeout: float = 10.0) -> None:
        self.translator = translator
        self.timeout = timeout
        self.remote_calls = 0
        self.failures = 0

    @property
    def configured(self) -> bool:
        return self.translator is not None

    async def fan_out(self, text: str, source_lang: Optional[str], targets: Iterable[str]) -> Dict[str, TranslationEntry]:
        """
        Translate `text` into every language in `targets`.

        Returns:
            Mapping target -> TranslationEntry, in the order of `targets`.
            Every requested target has an entry.
        """
        targets = list(targets)

        if self.translator is None:
            logger.warning("Translator not configured. Skipping translation for %d targets.", len(targets))
            return {lang: TranslationEntry.failure(NOT_CONFIGURED_REASON) for lang in targets}

        source_code = normalize_source_lang(source_lang)
        results: Dict[str, Optional[TranslationEntry]] = {}
        pending = []
        for lang in targets:
            if is_same_language(source_code, lang):
                results[lang] = TranslationEntry.success(text)
            else:
                # Reserve the slot so the result keeps target order
                results[lang] = None
                pending.append(lang)

        if pending:
            entries = await asyncio.gather(
                *(self._translate_one(text, source_code, lang) for lang in pending)
            )
            for lang, entry in zip(pending, entries):
                results[lang] = entry

        return {lang: entry for lang, entry in results.items() if entry is not None}

    async def _translate_one(self, text: str, source_code: str, target_lang: str) -> TranslationEntry:
        self.remote_calls += 1
        try:
            translated = await asyncio.wait_for(
                self.translator.translate(text, source_code or None, target_lang),
                timeout=self.timeout,
            )
            return TranslationEntry.success(translated)
        except asyncio.TimeoutError:
            reason = f"Translation to {target_lang} timed out after {self.timeout:g}s"
        except TranslationError as e:
            reason = str(e) or f"Translation to {target_lang} failed"
        except Exception as e:
            # Any failure stays local to this language
            reason = f"Translation to {target_lang} failed: {e}"

        self.failures += 1
        logger.warning("Error translating %r from %s to %s: %s", text[:20], source_code or "auto", target_lang, reason)
        return TranslationEntry.failure(reason)

    def lookup_cached(self, room: Optional[Room], message_id: str, target_lang: str) -> str:
        """
        Return the stored translation of a message. Never calls the translator.

        Raises:
            MessageNotFound: room or message missing, or language never attempted
            GatewayUnconfigured: attempted while no translator was configured
            TranslationUnavailable: attempted and failed (carries the stored error)
        """
        if room is None:
            raise MessageNotFound("Room not found.")

        message = room.find_message(message_id)
        if message is None:
            raise MessageNotFound("Message not found.")

        entry = message.translations.get(target_lang)
        if entry is None:
            raise MessageNotFound(f"Translation not available or not found for {target_lang}")

        if not entry.ok:
            if entry.error == NOT_CONFIGURED_REASON:
                raise GatewayUnconfigured(f"Translation to {target_lang} unavailable: {entry.error}")
            raise TranslationUnavailable(f"Translation to {target_lang} previously failed: {entry.error}")

        return entry.text
