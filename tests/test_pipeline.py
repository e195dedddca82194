"""End-to-end tests for listing-name processing."""

from datetime import timezone
from unittest.mock import AsyncMock

import pytest

from listingmatch.matcher import MatchMethod
from listingmatch.pipeline import get_search_term, process_listing_name
from listingmatch.translator import TranslatorError


@pytest.fixture()
def english(monkeypatch):
    monkeypatch.setattr("listingmatch.language.detect", lambda text: "en")


@pytest.fixture()
def portuguese(monkeypatch):
    monkeypatch.setattr("listingmatch.language.detect", lambda text: "pt")


class TestProcessListingName:
    @pytest.mark.asyncio
    async def test_translated(self, english, remote_translator, remote_client):
        result = await process_listing_name("Wireless Bluetooth Earbuds", translator=remote_translator)
        assert result.original_name == "Wireless Bluetooth Earbuds"
        assert result.language.language == "en"
        assert result.needed_translation is True
        assert result.translation_succeeded is True
        assert result.portuguese_name == "Fone de ouvido sem fio Bluetooth"
        assert result.search_terms.primary == "fone ouvido fio bluetooth"
        assert result.final_term == "fone ouvido fio bluetooth"
        assert result.ranking is None
        assert result.processed_at.tzinfo is timezone.utc
        remote_client.translate.assert_awaited_once_with("Wireless Bluetooth Earbuds", "pt", "en")

    @pytest.mark.asyncio
    async def test_already_portuguese(self, portuguese, remote_translator, remote_client):
        result = await process_listing_name("Fone de Ouvido Bluetooth Sem Fio", translator=remote_translator)
        assert result.translation is None
        assert result.needed_translation is False
        assert result.translation_succeeded is True
        assert result.portuguese_name == "Fone de Ouvido Bluetooth Sem Fio"
        remote_client.translate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_simulated_translation_passthrough(self, english, offline_translator):
        result = await process_listing_name("Wireless Bluetooth Earbuds TWS", translator=offline_translator)
        assert result.translation.is_simulated is True
        assert result.translation_succeeded is True
        assert result.portuguese_name == "Wireless Bluetooth Earbuds TWS"
        assert result.search_terms.primary == "wireless bluetooth earbuds tws"

    @pytest.mark.asyncio
    async def test_failed_translation_continues(self, english, remote_translator, remote_client):
        remote_client.translate = AsyncMock(side_effect=TranslatorError("quota exceeded"))
        result = await process_listing_name("Wireless Bluetooth Earbuds", translator=remote_translator)
        assert result.translation.error == "quota exceeded"
        assert result.translation_succeeded is False
        assert result.portuguese_name == "Wireless Bluetooth Earbuds"
        assert result.final_term == "wireless bluetooth earbuds"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_unknown_language_sends_no_hint(self, monkeypatch, remote_translator, remote_client):
        from langdetect.lang_detect_exception import LangDetectException

        def _raise(text):
            raise LangDetectException(0, "No features in text.")

        monkeypatch.setattr("listingmatch.language.detect", _raise)
        await process_listing_name("12345 67890", translator=remote_translator)
        remote_client.translate.assert_awaited_once_with("12345 67890", "pt", None)

    @pytest.mark.asyncio
    async def test_uses_shared_translator(self, english, offline_translator):
        from listingmatch.translator.service import set_translator

        set_translator(offline_translator)
        result = await process_listing_name("Wireless Earbuds")
        assert result.translation.is_simulated is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [None, "", "   ", 42])
    async def test_invalid_name(self, value, offline_translator):
        result = await process_listing_name(value, translator=offline_translator)
        assert result.error == "product name is required"
        assert result.translation is None
        assert result.translation_succeeded is False
        assert result.language.language == "unknown"
        assert result.portuguese_name == result.original_name
        assert result.search_terms.primary == result.original_name
        assert result.search_terms.error == "product name is required"


class TestWithCandidates:
    @pytest.mark.asyncio
    async def test_ranking_semantic(self, english, offline_translator, semantic_backend):
        candidates = ["Faca de Cozinha", "Fone de Ouvido Bluetooth Sem Fio True Wireless"]
        result = await process_listing_name(
            "Wireless Bluetooth Earbuds TWS", candidates,
            translator=offline_translator, backend=semantic_backend,
        )
        assert result.ranking.best == "Fone de Ouvido Bluetooth Sem Fio True Wireless"
        assert result.ranking.method is MatchMethod.SEMANTIC
        assert result.ranking.best_result.score >= 70
        assert result.ranking.best_result.is_compatible is True

    @pytest.mark.asyncio
    async def test_ranking_lexical_fallback(self, english, offline_translator, failing_backend):
        candidates = ["Fone de Ouvido Bluetooth Sem Fio True Wireless", "Faca de Cozinha"]
        result = await process_listing_name(
            "Wireless Bluetooth Earbuds TWS", candidates,
            translator=offline_translator, backend=failing_backend,
        )
        assert result.ranking.method is MatchMethod.LEXICAL_FALLBACK
        assert result.ranking.best_result.score >= 60
        assert result.ranking.best_result.is_compatible is True

    @pytest.mark.asyncio
    async def test_ranks_against_translated_name(self, english, remote_translator, semantic_backend, stub_model):
        await process_listing_name(
            "Wireless Bluetooth Earbuds", ["Fone Bluetooth"],
            translator=remote_translator, backend=semantic_backend,
        )
        assert stub_model.calls[0] == "fone de ouvido sem fio bluetooth"

    @pytest.mark.asyncio
    async def test_empty_candidate_list(self, english, offline_translator, semantic_backend):
        result = await process_listing_name(
            "Wireless Earbuds", [], translator=offline_translator, backend=semantic_backend,
        )
        assert result.ranking is not None
        assert result.ranking.best is None


class TestGetSearchTerm:
    @pytest.mark.asyncio
    async def test_primary_term(self, english, offline_translator):
        term = await get_search_term("Wireless Bluetooth Earphones with Charging Case", offline_translator)
        assert term == "wireless bluetooth earphones charging case"

    @pytest.mark.asyncio
    async def test_falls_back_to_raw_name(self, english, offline_translator):
        assert await get_search_term("Frete Grátis 2024", offline_translator) == "Frete Grátis 2024"
