"""Bounded-concurrency embedding of document chunks."""
import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from config import EMBED_BATCH_SIZE
from exceptions import DimensionMismatchError
from models.chunk import Chunk
from services.embedding_model import EmbeddingModel

logger = logging.getLogger(__name__)


class BatchEmbedder:
    """Embed chunks in fixed-size batches, dropping chunks that fail."""

    def __init__(self, embedding_model: EmbeddingModel, batch_size: int = EMBED_BATCH_SIZE):
        """
        Args:
            embedding_model: Anything with an async embed_text(text) method
            batch_size: Maximum number of embedding calls in flight at once
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.embedding_model = embedding_model
        self.batch_size = batch_size

    async def embed_all(
        self,
        chunks: Sequence[Chunk],
        on_progress: Optional[Callable[[str], None]] = None
    ) -> List[Chunk]:
        """
        Attach embeddings to chunks batch by batch.

        All calls of a batch run concurrently; the next batch starts only after
        every call of the current one has settled. A failed call is logged and
        leaves that chunk unembedded.

        Args:
            chunks: Chunks in document order
            on_progress: Optional status callback, called once per batch

        Returns:
            The embedded chunks, in their original order

        Raises:
            DimensionMismatchError: If the capability returned vectors of different widths
        """
        notify = on_progress or (lambda status: None)
        total = len(chunks)
        notify(f"Generating embeddings for {total} chunks...")

        failed = 0
        for i in range(0, total, self.batch_size):
            batch = chunks[i:i + self.batch_size]
            notify(f"Embedding chunks {i + 1} to {min(i + self.batch_size, total)} of {total}...")

            results = await asyncio.gather(*(self._embed_chunk(chunk) for chunk in batch))
            failed += results.count(False)

        embedded = [chunk for chunk in chunks if chunk.embedding is not None]
        self._check_dimensions(embedded)

        if failed:
            logger.warning(f"Dropped {failed} of {total} chunks that could not be embedded")
        logger.info(f"Embedded {len(embedded)} of {total} chunks")
        return embedded

    async def _embed_chunk(self, chunk: Chunk) -> bool:
        try:
            vector = await self.embedding_model.embed_text(chunk.text)
        except Exception as e:
            logger.warning(
                f"Failed to embed chunk {chunk.chunk_id}: {e}",
                extra={"chunk_id": chunk.chunk_id, "error_type": type(e).__name__}
            )
            return False

        chunk.attach_embedding(vector)
        return True

    @staticmethod
    def _check_dimensions(chunks: Sequence[Chunk]) -> None:
        widths = {len(chunk.embedding) for chunk in chunks}
        if len(widths) > 1:
            raise DimensionMismatchError(f"Embedding widths differ within one document: {sorted(widths)}")
