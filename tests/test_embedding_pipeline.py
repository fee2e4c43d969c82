"""Tests for chunking and embedding of records."""

import pytest

from services.vector_sync.EmbeddingPipeline import EmbeddingPipeline
from shared.helper.errors import DerivedDataError
from shared.models.record import CarRecord


class TestSplitText:
    def test_empty_text(self, pipeline):
        assert pipeline.split_text("") == []

    def test_short_text_single_chunk(self, pipeline):
        assert pipeline.split_text("Name: Corolla") == ["Name: Corolla"]

    def test_overlapping_chunks(self, pipeline):
        text = "".join(chr(ord("a") + i % 26) for i in range(2500))
        chunks = pipeline.split_text(text)
        assert [len(c) for c in chunks] == [1000, 1000, 700]
        assert chunks[0][-100:] == chunks[1][:100]
        assert chunks[1][-100:] == chunks[2][:100]

    def test_same_text_same_boundaries(self, pipeline):
        text = "x" * 3333
        assert pipeline.split_text(text) == pipeline.split_text(text)

    def test_configured_chunking(self, helper_config, embed_client, monkeypatch):
        monkeypatch.setenv("SYNC_CHUNK_SIZE", "10")
        monkeypatch.setenv("SYNC_CHUNK_OVERLAP", "2")
        small = EmbeddingPipeline(helper_config=helper_config, embed_client=embed_client)
        assert small.split_text("abcdefghijklmnop") == ["abcdefghij", "ijklmnop"]

    def test_invalid_overlap_rejected(self, helper_config, embed_client, monkeypatch):
        monkeypatch.setenv("SYNC_CHUNK_SIZE", "10")
        monkeypatch.setenv("SYNC_CHUNK_OVERLAP", "10")
        with pytest.raises(ValueError):
            EmbeddingPipeline(helper_config=helper_config, embed_client=embed_client)


class TestEmbedding:
    @pytest.mark.asyncio
    async def test_embed_record_one_batch_call(self, pipeline, embed_client):
        record = CarRecord(id="car-1", name="Corolla", brand="Toyota", description="d" * 1500)
        chunks = await pipeline.embed_record(record)
        assert len(chunks) == 2
        assert [c.index for c in chunks] == [0, 1]
        assert len(embed_client.calls) == 1
        assert embed_client.calls[0] == [c.text for c in chunks]

    @pytest.mark.asyncio
    async def test_embed_single_text(self, pipeline):
        vector = await pipeline.embed("cheap sedan")
        assert isinstance(vector, list)
        assert any(vector)

    @pytest.mark.asyncio
    async def test_provider_failure_raises_derived_data_error(self, pipeline, embed_client):
        embed_client.fail = True
        with pytest.raises(DerivedDataError):
            await pipeline.embed_record(CarRecord(id="car-1", name="Corolla", brand="Toyota"))

    @pytest.mark.asyncio
    async def test_embed_batch_empty(self, pipeline, embed_client):
        assert await pipeline.embed_batch([]) == []
        assert embed_client.calls == []
