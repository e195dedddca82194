"""Test fixtures: stub embedding models, stub translation clients, singleton reset."""

from unittest.mock import AsyncMock

import numpy as np
import pytest

from listingmatch.embedding.backend import EmbeddingBackend, set_embedding_backend
from listingmatch.matcher import canonicalize
from listingmatch.translator.service import Translator, set_translator

EMBEDDING_DIM = 64


class StubModel:
    """Deterministic token embedder: one one-hot vector per distinct word.

    Words are canonicalized first, so cross-language synonyms share a
    vector, roughly what a multilingual model does for these titles.
    """

    def __init__(self) -> None:
        self.vocab: dict[str, int] = {}
        self.calls: list[str] = []

    def encode(self, text, output_value="sentence_embedding", **kwargs):
        assert output_value == "token_embeddings"
        self.calls.append(text)
        tokens = canonicalize(text).split() or [text]
        matrix = np.zeros((len(tokens), EMBEDDING_DIM), dtype=np.float32)
        for i, tok in enumerate(tokens):
            idx = self.vocab.setdefault(tok, len(self.vocab) % EMBEDDING_DIM)
            matrix[i, idx] = 1.0
        return matrix


class BrokenModel:
    def encode(self, text, **kwargs):
        raise RuntimeError("CUDA out of memory")


@pytest.fixture(autouse=True)
def _reset_singletons():
    set_translator(None)
    set_embedding_backend(None)
    yield
    set_translator(None)
    set_embedding_backend(None)


@pytest.fixture()
def stub_model():
    return StubModel()


@pytest.fixture()
def semantic_backend(stub_model):
    """Backend whose loader returns the stub model."""
    return EmbeddingBackend(loader=lambda model_id: stub_model)


@pytest.fixture()
def failing_backend():
    """Backend whose model can never be loaded."""

    def _loader(model_id):
        raise OSError(f"cannot download {model_id}")

    return EmbeddingBackend(loader=_loader)


@pytest.fixture()
def broken_backend():
    """Backend that loads but fails at inference time."""
    return EmbeddingBackend(loader=lambda model_id: BrokenModel())


@pytest.fixture()
def offline_translator():
    """Translator without credentials (always simulated)."""
    return Translator(client_factory=lambda: None)


@pytest.fixture()
def remote_client():
    client = AsyncMock()
    client.translate = AsyncMock(return_value=("Fone de ouvido sem fio Bluetooth", "en"))
    return client


@pytest.fixture()
def remote_translator(remote_client):
    return Translator(client_factory=lambda: remote_client)
