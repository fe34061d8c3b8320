"""Unit tests for BatchEmbedder."""
import pytest

from exceptions import DimensionMismatchError
from models.chunk import Chunk
from services.batch_embedder import BatchEmbedder


def _chunks(count: int):
    return [Chunk(chunk_id=f"1-{i}", text=f"text {i}", page_number=1, start_offset=i) for i in range(count)]


class TestBatchEmbedder:
    """Test suite for BatchEmbedder."""

    @pytest.mark.asyncio
    async def test_all_chunks_embedded(self, embedding_model_factory):
        model = embedding_model_factory()
        chunks = _chunks(3)

        result = await BatchEmbedder(model).embed_all(chunks)

        assert result == chunks
        assert all(chunk.embedding == model.default for chunk in result)

    @pytest.mark.asyncio
    async def test_failed_chunks_are_dropped(self, embedding_model_factory):
        """Seven chunks, two failures: five embedded chunks survive, in order."""
        model = embedding_model_factory(fail_when=lambda text: text in ("text 2", "text 5"))
        chunks = _chunks(7)

        result = await BatchEmbedder(model, batch_size=5).embed_all(chunks)

        assert [c.chunk_id for c in result] == ["1-0", "1-1", "1-3", "1-4", "1-6"]
        assert chunks[2].embedding is None
        assert chunks[5].embedding is None

    @pytest.mark.asyncio
    async def test_every_chunk_attempted_once(self, embedding_model_factory):
        model = embedding_model_factory(fail_when=lambda text: True)
        chunks = _chunks(12)

        result = await BatchEmbedder(model, batch_size=5).embed_all(chunks)

        assert result == []
        assert sorted(model.calls) == sorted(c.text for c in chunks)

    @pytest.mark.asyncio
    async def test_at_most_batch_size_calls_in_flight(self, embedding_model_factory):
        model = embedding_model_factory()
        await BatchEmbedder(model, batch_size=5).embed_all(_chunks(12))

        assert model.max_in_flight == 5

    @pytest.mark.asyncio
    async def test_next_batch_waits_for_previous(self, embedding_model_factory):
        model = embedding_model_factory()
        chunks = _chunks(7)

        await BatchEmbedder(model, batch_size=5).embed_all(chunks)

        last_end_of_first_batch = max(
            i for i, (kind, text) in enumerate(model.events)
            if kind == "end" and text in {c.text for c in chunks[:5]}
        )
        first_start_of_second_batch = min(
            i for i, (kind, text) in enumerate(model.events)
            if kind == "start" and text in {c.text for c in chunks[5:]}
        )
        assert last_end_of_first_batch < first_start_of_second_batch

    @pytest.mark.asyncio
    async def test_progress_messages(self, embedding_model_factory):
        messages = []
        await BatchEmbedder(embedding_model_factory(), batch_size=5).embed_all(_chunks(12), messages.append)

        assert messages == [
            "Generating embeddings for 12 chunks...",
            "Embedding chunks 1 to 5 of 12...",
            "Embedding chunks 6 to 10 of 12...",
            "Embedding chunks 11 to 12 of 12...",
        ]

    @pytest.mark.asyncio
    async def test_no_chunks(self, embedding_model_factory):
        model = embedding_model_factory()
        assert await BatchEmbedder(model).embed_all([]) == []
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_mixed_widths_raise(self, embedding_model_factory):
        model = embedding_model_factory(vectors={"text 1": [1.0, 2.0]}, default=[1.0, 2.0, 3.0])

        with pytest.raises(DimensionMismatchError):
            await BatchEmbedder(model).embed_all(_chunks(3))

    def test_invalid_batch_size(self, embedding_model_factory):
        with pytest.raises(ValueError):
            BatchEmbedder(embedding_model_factory(), batch_size=0)
