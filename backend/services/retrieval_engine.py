"""Retrieval engine for orchestrating query embedding and chunk ranking."""
import logging
from typing import List, Optional

from exceptions import EmbeddingError
from models.chunk import ScoredChunk
from models.document import ProcessedDocument
from services.embedding_model import EmbeddingModel
from services.similarity_ranker import SimilarityRanker

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Embed a question and rank a document's chunks against it."""

    def __init__(self, embedding_model: EmbeddingModel, ranker: SimilarityRanker):
        """
        Initialize the retrieval engine.

        Args:
            embedding_model: EmbeddingModel instance for query embedding
            ranker: SimilarityRanker applied to the document chunks
        """
        self.embedding_model = embedding_model
        self.ranker = ranker
        logger.info("Initialized RetrievalEngine")

    async def retrieve(
        self,
        query: str,
        document: ProcessedDocument,
        top_k: Optional[int] = None
    ) -> List[ScoredChunk]:
        """
        Retrieve the chunks of one document most similar to the query.

        Args:
            query: User question
            document: The session's processed document
            top_k: Maximum number of chunks (default: the ranker's cutoff)

        Returns:
            Scored chunks sorted by relevance, empty for an empty query

        Raises:
            EmbeddingError: If the question could not be embedded
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        logger.debug(f"Embedding query: {query[:100]}...")
        try:
            query_embedding = await self.embedding_model.embed_text(query)
        except EmbeddingError as e:
            logger.error(f"Failed to embed question: {e}")
            raise EmbeddingError(f"Failed to embed question: {e}") from e

        scored_chunks = self.ranker.rank(query_embedding, document.chunks, top_k=top_k)

        if not scored_chunks:
            logger.info(f"No chunks available in {document.filename}")
            return []

        logger.info(
            f"Retrieved {len(scored_chunks)} chunks from {document.filename} "
            f"(top score: {scored_chunks[0].relevance_score:.3f})"
        )
        return scored_chunks
