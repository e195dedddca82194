"""Lazy, process-wide holder for the sentence-embedding model.

sentence-transformers is synchronous, so loading and inference run in the
default executor, each bounded by a timeout.  The model is loaded at most
once: the primary multilingual model first, then the smaller fallback.  If
both fail the holder stays UNAVAILABLE for the life of the process and
callers fall back to lexical matching.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from functools import partial
from typing import Any, Callable

import numpy as np

from ..config import settings
from . import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


class ModelState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    UNAVAILABLE = "unavailable"


def _load_sentence_transformer(model_id: str) -> Any:
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_id)


def _as_token_matrix(output: Any) -> np.ndarray:
    """Coerce encoder output to a 2-D (tokens x features) float array."""
    if hasattr(output, "detach"):  # torch.Tensor
        output = output.detach().cpu().numpy()
    matrix = np.asarray(output, dtype=np.float64)
    if matrix.ndim == 3:  # (batch, tokens, features) with batch of one
        matrix = matrix[0]
    elif matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    if matrix.ndim != 2 or matrix.shape[0] == 0:
        raise ValueError(f"unexpected embedding shape {matrix.shape}")
    return matrix


class EmbeddingBackend:
    """Loads a sentence-transformers model on first use and reuses it."""

    def __init__(
        self,
        loader: Callable[[str], Any] | None = None,
        model_ids: tuple[str, ...] | None = None,
        load_timeout: float | None = None,
        inference_timeout: float | None = None,
    ) -> None:
        self._loader = loader or _load_sentence_transformer
        self._model_ids = model_ids or (
            settings.embedding_model,
            settings.embedding_fallback_model,
        )
        self._load_timeout = load_timeout or settings.embedding_load_timeout
        self._inference_timeout = inference_timeout or settings.embedding_inference_timeout
        self._model: Any = None
        self._model_id: str | None = None
        self._state = ModelState.UNINITIALIZED
        self._init_lock = asyncio.Lock()

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def model_id(self) -> str | None:
        """Identifier of the loaded model (None until READY)."""
        return self._model_id

    async def _ensure_model(self) -> Any:
        if self._state is ModelState.READY:
            return self._model
        if self._state is ModelState.UNAVAILABLE:
            raise EmbeddingUnavailableError("no embedding model available")

        async with self._init_lock:
            if self._state is ModelState.UNINITIALIZED:
                await self._load()
        if self._state is not ModelState.READY:
            raise EmbeddingUnavailableError("no embedding model available")
        return self._model

    async def _load(self) -> None:
        loop = asyncio.get_event_loop()
        for model_id in self._model_ids:
            logger.info("Loading embedding model %s", model_id)
            try:
                model = await asyncio.wait_for(
                    loop.run_in_executor(None, partial(self._loader, model_id)),
                    timeout=self._load_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Embedding model %s timed out after %.0fs", model_id, self._load_timeout)
                continue
            except Exception as e:
                logger.warning("Embedding model %s failed to load: %s", model_id, e)
                continue
            self._model = model
            self._model_id = model_id
            self._state = ModelState.READY
            logger.info("Embedding model %s ready", model_id)
            return

        self._state = ModelState.UNAVAILABLE
        logger.warning("No embedding model could be loaded, using lexical matching")

    async def embed_tokens(self, text: str) -> np.ndarray:
        """Per-token embeddings for ``text`` as a (tokens x features) array.

        Raises:
            EmbeddingUnavailableError: no model could be loaded.
        """
        model = await self._ensure_model()
        loop = asyncio.get_event_loop()
        output = await asyncio.wait_for(
            loop.run_in_executor(
                None,
                partial(model.encode, text, output_value="token_embeddings"),
            ),
            timeout=self._inference_timeout,
        )
        return _as_token_matrix(output)


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_backend: EmbeddingBackend | None = None


def get_embedding_backend() -> EmbeddingBackend:
    """Return the shared backend, creating it on first use."""
    global _backend
    if _backend is None:
        _backend = EmbeddingBackend()
    return _backend


def set_embedding_backend(backend: EmbeddingBackend | None) -> None:
    """Replace the shared backend (``None`` resets it)."""
    global _backend
    _backend = backend
