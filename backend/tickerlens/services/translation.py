from __future__ import annotations

from typing import Optional, Protocol

import httpx
from loguru import logger
from pydantic import BaseModel

from tickerlens.core.errors import TranslationError

GOOGLE_TRANSLATE_URL = "https://translation.googleapis.com/language/translate/v2"


class Translation(BaseModel):
    translated_text: str
    original_text: str
    detected_language: Optional[str] = None


class Translator(Protocol):
    async def translate(self, text: str, target: str = "en") -> Translation: ...


class PassthroughTranslator:
    """Used when no translation key is configured: returns the text untouched."""

    async def translate(self, text: str, target: str = "en") -> Translation:
        return Translation(translated_text=text, original_text=text)


class GoogleTranslator:
    def __init__(
        self,
        api_key: str,
        url: str = GOOGLE_TRANSLATE_URL,
        timeout_s: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout_s = timeout_s
        self.client = client

    async def _post(self, client: httpx.AsyncClient, text: str, target: str) -> dict:
        resp = await client.post(
            self.url,
            params={"key": self.api_key},
            json={"q": text, "target": target, "format": "text"},
        )
        resp.raise_for_status()
        return resp.json()

    async def translate(self, text: str, target: str = "en") -> Translation:
        # plain ASCII is already latin-script; skip the round trip
        if not text or text.isascii():
            return Translation(translated_text=text, original_text=text)

        try:
            if self.client is not None:
                payload = await self._post(self.client, text, target)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                    payload = await self._post(client, text, target)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Translation request failed: {e}")
            raise TranslationError(f"Failed to translate text: {e}") from e

        try:
            first = payload["data"]["translations"][0]
            translated = str(first["translatedText"])
        except (KeyError, IndexError, TypeError) as e:
            raise TranslationError(f"unexpected translation payload: {payload!r}") from e

        logger.debug(f"Translated {text!r} -> {translated!r}")
        return Translation(
            translated_text=translated,
            original_text=text,
            detected_language=first.get("detectedSourceLanguage"),
        )
