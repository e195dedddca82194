"""Tests for the lazy embedding model holder."""

import asyncio

import numpy as np
import pytest

from listingmatch.embedding import EmbeddingUnavailableError
from listingmatch.embedding.backend import (
    EmbeddingBackend,
    ModelState,
    _as_token_matrix,
    get_embedding_backend,
    set_embedding_backend,
)


class TestLazyLoad:
    @pytest.mark.asyncio
    async def test_loads_primary_on_first_use(self, stub_model):
        loaded = []
        model = stub_model

        def _loader(model_id):
            loaded.append(model_id)
            return model

        backend = EmbeddingBackend(loader=_loader, model_ids=("primary", "fallback"))
        assert backend.state is ModelState.UNINITIALIZED
        assert loaded == []

        matrix = await backend.embed_tokens("fone bluetooth")
        assert backend.state is ModelState.READY
        assert backend.model_id == "primary"
        assert loaded == ["primary"]
        assert matrix.shape[0] == 2

    @pytest.mark.asyncio
    async def test_falls_back_to_smaller_model(self, stub_model):
        loaded = []

        def _loader(model_id):
            loaded.append(model_id)
            if model_id == "primary":
                raise OSError("download failed")
            return stub_model

        backend = EmbeddingBackend(loader=_loader, model_ids=("primary", "fallback"))
        await backend.embed_tokens("fone")
        assert backend.model_id == "fallback"
        assert loaded == ["primary", "fallback"]

    @pytest.mark.asyncio
    async def test_model_reused(self, stub_model):
        loaded = []

        def _loader(model_id):
            loaded.append(model_id)
            return stub_model

        backend = EmbeddingBackend(loader=_loader, model_ids=("primary", "fallback"))
        for text in ("a b", "c d", "e f"):
            await backend.embed_tokens(text)
        assert loaded == ["primary"]

    @pytest.mark.asyncio
    async def test_concurrent_callers_load_once(self, stub_model):
        loaded = []

        def _loader(model_id):
            loaded.append(model_id)
            return stub_model

        backend = EmbeddingBackend(loader=_loader, model_ids=("primary", "fallback"))
        await asyncio.gather(*(backend.embed_tokens(f"item {i}") for i in range(5)))
        assert loaded == ["primary"]

    @pytest.mark.asyncio
    async def test_all_models_fail(self, failing_backend):
        with pytest.raises(EmbeddingUnavailableError):
            await failing_backend.embed_tokens("fone")
        assert failing_backend.state is ModelState.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_unavailable_is_never_reprobed(self):
        attempts = []

        def _loader(model_id):
            attempts.append(model_id)
            raise OSError("offline")

        backend = EmbeddingBackend(loader=_loader, model_ids=("primary", "fallback"))
        for _ in range(3):
            with pytest.raises(EmbeddingUnavailableError):
                await backend.embed_tokens("fone")
        assert attempts == ["primary", "fallback"]

    @pytest.mark.asyncio
    async def test_load_timeout(self, stub_model):
        import time

        def _slow_loader(model_id):
            time.sleep(0.2)
            return stub_model

        backend = EmbeddingBackend(
            loader=_slow_loader, model_ids=("primary",), load_timeout=0.01,
        )
        with pytest.raises(EmbeddingUnavailableError):
            await backend.embed_tokens("fone")
        assert backend.state is ModelState.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_inference_error_propagates(self, broken_backend):
        with pytest.raises(RuntimeError):
            await broken_backend.embed_tokens("fone")
        assert broken_backend.state is ModelState.READY


class TestAsTokenMatrix:
    def test_2d_passthrough(self):
        matrix = _as_token_matrix(np.ones((3, 4), dtype=np.float32))
        assert matrix.shape == (3, 4)

    def test_batch_of_one(self):
        assert _as_token_matrix(np.ones((1, 3, 4))).shape == (3, 4)

    def test_single_vector(self):
        assert _as_token_matrix([1.0, 2.0]).shape == (1, 2)

    def test_tensor_like(self):
        class _Tensor:
            def detach(self):
                return self

            def cpu(self):
                return self

            def numpy(self):
                return np.zeros((2, 5))

        assert _as_token_matrix(_Tensor()).shape == (2, 5)

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            _as_token_matrix(np.zeros((0, 4)))


class TestSharedBackend:
    def test_singleton(self):
        assert get_embedding_backend() is get_embedding_backend()

    def test_injection(self, semantic_backend):
        set_embedding_backend(semantic_backend)
        assert get_embedding_backend() is semantic_backend
