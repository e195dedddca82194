"""Async Google Cloud Translation (v2 REST) client using httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import settings
from . import TranslatorError

logger = logging.getLogger(__name__)


class GoogleTranslateClient:
    """Thin async client for the Translation v2 ``translate`` endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.google_translate_api_key
        if not self._api_key:
            raise TranslatorError("Google Translate API key is not configured")
        self._base_url = base_url or settings.translate_api_url
        self._client = httpx.AsyncClient(timeout=timeout or settings.translate_timeout)

    async def translate(
        self,
        text: str,
        target: str,
        source: str | None = None,
    ) -> tuple[str, str | None]:
        """Translate ``text`` into ``target``.

        Returns:
            (translated_text, detected_source_language); the detected
            language is only reported by the API when ``source`` is omitted.
        """
        payload: dict[str, Any] = {"q": text, "target": target, "format": "text"}
        if source:
            payload["source"] = source

        try:
            resp = await self._client.post(
                self._base_url, params={"key": self._api_key}, json=payload,
            )
        except httpx.HTTPError as e:
            raise TranslatorError(f"Translate HTTP error: {e}") from e

        if resp.status_code != 200:
            raise TranslatorError(
                f"Translate API returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
            translation = data["data"]["translations"][0]
            translated = translation["translatedText"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TranslatorError(f"Unexpected Translate API payload: {e}") from e

        return translated, translation.get("detectedSourceLanguage")

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
