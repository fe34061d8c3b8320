"""Cosine-similarity ranking of embedded chunks against a query vector."""
import logging
from typing import List, Optional, Sequence

import numpy as np

from config import RETRIEVAL_TOP_K
from exceptions import DimensionMismatchError
from models.chunk import Chunk, ScoredChunk

logger = logging.getLogger(__name__)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors of equal width.

    A zero vector has no direction and scores 0.0 against everything.

    Raises:
        DimensionMismatchError: If the vectors differ in width
    """
    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)
    if a.shape != b.shape:
        raise DimensionMismatchError(f"Cannot compare vectors of width {a.shape} and {b.shape}")

    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0:
        return 0.0
    return float(np.dot(a, b) / denominator)


class SimilarityRanker:
    """Score chunks against a query embedding and keep the best ones."""

    def __init__(self, top_k: int = RETRIEVAL_TOP_K):
        if top_k <= 0:
            raise ValueError("top_k must be positive")
        self.top_k = top_k

    def rank(
        self,
        query_vector: Sequence[float],
        chunks: Sequence[Chunk],
        top_k: Optional[int] = None
    ) -> List[ScoredChunk]:
        """
        Rank chunks by cosine similarity to the query, highest first.

        Chunks with equal scores keep their document order.

        Args:
            query_vector: Embedding of the question
            chunks: Embedded chunks of one document
            top_k: Cutoff override (default: self.top_k)

        Returns:
            At most top_k scored chunks, sorted non-increasing by score

        Raises:
            DimensionMismatchError: If a chunk embedding differs in width from the query
            ValueError: If top_k is not positive
        """
        k = self.top_k if top_k is None else top_k
        if k <= 0:
            raise ValueError(f"top_k must be positive, got {k}")
        candidates = [chunk for chunk in chunks if chunk.embedding is not None]
        if not candidates:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        for chunk in candidates:
            if len(chunk.embedding) != query.shape[0]:
                raise DimensionMismatchError(
                    f"Chunk {chunk.chunk_id} has width {len(chunk.embedding)}, "
                    f"query has width {query.shape[0]}"
                )

        matrix = np.asarray([chunk.embedding for chunk in candidates], dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)

        order = np.argsort(-scores, kind="stable")[:k]
        ranked = [ScoredChunk(chunk=candidates[i], relevance_score=float(scores[i])) for i in order]

        logger.debug(
            f"Ranked {len(candidates)} chunks, kept {len(ranked)} "
            f"(top score: {ranked[0].relevance_score:.3f})"
        )
        return ranked
