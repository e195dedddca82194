"""Translation with graceful degradation.

The translator settles its client state on the first call and never
re-probes it:

  UNINITIALIZED ──first call──▶ READY        (API key set, client built)
                           └──▶ UNAVAILABLE  (no key / client failed)

UNAVAILABLE is not an error.  Every call then returns a *simulated* result
that carries the original text through, and downstream matching must work
on untranslated names.  READY calls that fail come back with ``error`` set
and the original text; nothing is raised to the caller.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from ..config import settings

logger = logging.getLogger(__name__)

SIMULATED_CONFIDENCE = 0.5
REMOTE_CONFIDENCE = 0.9
SIMULATED_DEFAULT_LANGUAGE = "en"


class TranslationClient(Protocol):
    async def translate(
        self, text: str, target: str, source: str | None = None,
    ) -> tuple[str, str | None]: ...


class ClientState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    UNAVAILABLE = "unavailable"


@dataclass
class TranslationResult:
    """Outcome of a translation attempt."""

    original_text: str
    translated_text: str
    detected_language: str
    confidence: float
    is_simulated: bool
    error: str | None = None

    @property
    def status(self) -> str:
        """One of ``translated``, ``simulated`` or ``failed``."""
        if self.error:
            return "failed"
        if self.is_simulated:
            return "simulated"
        return "translated"


def _default_client_factory() -> TranslationClient | None:
    if not settings.translate_enabled:
        return None
    from .client import GoogleTranslateClient

    return GoogleTranslateClient()


class Translator:
    """Translates listing names into the catalog language (Portuguese)."""

    def __init__(
        self,
        client_factory: Callable[[], TranslationClient | None] | None = None,
        target_language: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._client_factory = client_factory or _default_client_factory
        self._target = target_language or settings.translate_target_language
        self._timeout = timeout or settings.translate_timeout
        self._client: TranslationClient | None = None
        self._state = ClientState.UNINITIALIZED
        self._init_lock = asyncio.Lock()

    @property
    def state(self) -> ClientState:
        return self._state

    async def _ensure_client(self) -> TranslationClient | None:
        if self._state is not ClientState.UNINITIALIZED:
            return self._client
        async with self._init_lock:
            if self._state is not ClientState.UNINITIALIZED:
                return self._client
            try:
                client = self._client_factory()
            except Exception as e:
                logger.warning("Translation client failed to initialize: %s", e)
                client = None
            if client is None:
                self._state = ClientState.UNAVAILABLE
                logger.warning("Translation not configured, results will be simulated")
            else:
                self._client = client
                self._state = ClientState.READY
                logger.info("Translation client initialized (target=%s)", self._target)
        return self._client

    async def translate(
        self,
        text: str,
        source_language_hint: str | None = None,
    ) -> TranslationResult:
        """Translate ``text`` to the target language. Never raises."""
        client = await self._ensure_client()

        if client is None:
            logger.debug("Simulating translation for %r", str(text)[:50])
            return TranslationResult(
                original_text=text,
                translated_text=text,
                detected_language=source_language_hint or SIMULATED_DEFAULT_LANGUAGE,
                confidence=SIMULATED_CONFIDENCE,
                is_simulated=True,
            )

        if not isinstance(text, str) or not text.strip():
            return self._failed(text, source_language_hint, "invalid text for translation")

        logger.info("Translating: %r", text[:50])
        try:
            translated, detected = await asyncio.wait_for(
                client.translate(text, self._target, source_language_hint),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Translation timed out after %.1fs", self._timeout)
            return self._failed(text, source_language_hint, "translation timed out")
        except Exception as e:
            logger.warning("Translation failed: %s", e)
            return self._failed(text, source_language_hint, str(e) or type(e).__name__)

        logger.info("Translated: %r", translated[:50])
        return TranslationResult(
            original_text=text,
            translated_text=translated,
            detected_language=detected or source_language_hint or "unknown",
            confidence=REMOTE_CONFIDENCE,
            is_simulated=False,
        )

    @staticmethod
    def _failed(text: str, hint: str | None, error: str) -> TranslationResult:
        return TranslationResult(
            original_text=text,
            translated_text=text,
            detected_language=hint or "unknown",
            confidence=0.0,
            is_simulated=False,
            error=error,
        )


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_translator: Translator | None = None


def get_translator() -> Translator:
    """Return the shared translator, creating it on first use."""
    global _translator
    if _translator is None:
        _translator = Translator()
    return _translator


def set_translator(translator: Translator | None) -> None:
    """Replace the shared translator (``None`` resets it)."""
    global _translator
    _translator = translator


async def translate(text: str, source_language_hint: str | None = None) -> TranslationResult:
    """Translate with the shared translator."""
    return await get_translator().translate(text, source_language_hint)
